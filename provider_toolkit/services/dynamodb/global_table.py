"""
DynamoDB global table (2017.11.29 version).

State ID is the global table name. Replica regions change through
update_global_table; every change is followed by a wait for ACTIVE.
"""

from __future__ import annotations

import logging

from botocore.exceptions import ClientError

from provider_toolkit.common.aws_client_factory import DYNAMODB
from provider_toolkit.common.errors import NotFoundError, ProviderError, error_code_equals
from provider_toolkit.common.waiter_utils import wait_for_creation, wait_for_deletion

STATUS_CREATING = "CREATING"
STATUS_ACTIVE = "ACTIVE"
STATUS_UPDATING = "UPDATING"
STATUS_DELETING = "DELETING"

NOT_FOUND_CODE = "GlobalTableNotFoundException"


def find_global_table(conn, name: str) -> dict:
    try:
        output = conn.describe_global_table(GlobalTableName=name)
    except ClientError as exc:
        if error_code_equals(exc, NOT_FOUND_CODE):
            raise NotFoundError(f"DynamoDB Global Table ({name}) not found", exc) from exc
        raise
    description = output.get("GlobalTableDescription")
    if not description:
        raise NotFoundError(f"DynamoDB Global Table ({name}) not found")
    return description


def _status(conn, name: str):
    def refresh():
        description = find_global_table(conn, name)
        return description, description.get("GlobalTableStatus", "")

    return refresh


def _replica_regions(description: dict) -> set:
    return {replica["RegionName"] for replica in description.get("ReplicationGroup", [])}


def _wait_active(aws_client, conn, name: str, action: str):
    return wait_for_creation(
        _status(conn, name),
        {STATUS_ACTIVE},
        aws_client.timeout_for(DYNAMODB),
        pending_states={STATUS_CREATING, STATUS_UPDATING},
        backoff=aws_client.backoff(),
        description=f"DynamoDB Global Table ({name}) {action}",
        cancel_event=aws_client.cancel_event,
    )


def create(aws_client, name: str, replica_regions) -> dict:
    """Create the global table and wait for it to become ACTIVE."""
    conn = aws_client.client(DYNAMODB)
    replication_group = [{"RegionName": region} for region in sorted(set(replica_regions))]
    logging.debug("Creating DynamoDB Global Table %s with replicas %s", name, replication_group)
    try:
        conn.create_global_table(GlobalTableName=name, ReplicationGroup=replication_group)
    except ClientError as exc:
        raise ProviderError(f"error creating DynamoDB Global Table ({name}): {exc}") from exc

    _wait_active(aws_client, conn, name, "creation")
    return read(aws_client, name)


def read(aws_client, name: str):
    conn = aws_client.client(DYNAMODB)
    try:
        description = find_global_table(conn, name)
    except NotFoundError:
        logging.warning("DynamoDB Global Table (%s) not found, removing from state", name)
        return None

    return {
        "id": name,
        "name": description.get("GlobalTableName", name),
        "arn": description.get("GlobalTableArn"),
        "replica_regions": sorted(_replica_regions(description)),
    }


def _replica_updates(old_regions, new_regions) -> list[dict]:
    old_regions, new_regions = set(old_regions), set(new_regions)
    updates = [{"Delete": {"RegionName": region}} for region in sorted(old_regions - new_regions)]
    updates.extend({"Create": {"RegionName": region}} for region in sorted(new_regions - old_regions))
    return updates


def update(aws_client, name: str, old_regions, new_regions) -> dict:
    """Add and remove replica regions, waiting for ACTIVE after the change."""
    conn = aws_client.client(DYNAMODB)
    updates = _replica_updates(old_regions, new_regions)
    if updates:
        try:
            conn.update_global_table(GlobalTableName=name, ReplicaUpdates=updates)
        except ClientError as exc:
            raise ProviderError(f"error updating DynamoDB Global Table ({name}): {exc}") from exc
        _wait_active(aws_client, conn, name, "update")
    return read(aws_client, name)


def delete(aws_client, name: str, replica_regions=None) -> None:
    """
    Remove every replica; the global table disappears with the last one.

    When replica_regions is empty the replicas are taken from the live table.

    Raises:
        ProviderError: If the table has no replicas to remove or the update fails
    """
    conn = aws_client.client(DYNAMODB)
    if not replica_regions:
        try:
            replica_regions = _replica_regions(find_global_table(conn, name))
        except NotFoundError:
            return
    updates = _replica_updates(replica_regions, ())
    if not updates:
        raise ProviderError(f"error deleting DynamoDB Global Table ({name}): no replicas to remove")

    try:
        conn.update_global_table(GlobalTableName=name, ReplicaUpdates=updates)
    except ClientError as exc:
        if error_code_equals(exc, NOT_FOUND_CODE):
            return
        raise ProviderError(f"error deleting DynamoDB Global Table ({name}): {exc}") from exc

    wait_for_deletion(
        _status(conn, name),
        aws_client.timeout_for(DYNAMODB),
        pending_states={STATUS_ACTIVE, STATUS_DELETING, STATUS_UPDATING},
        backoff=aws_client.backoff(),
        description=f"DynamoDB Global Table ({name}) deletion",
        cancel_event=aws_client.cancel_event,
    )
