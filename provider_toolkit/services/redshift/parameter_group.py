"""
Redshift cluster parameter group.

State ID is the parameter group name. Parameters are compared
case-insensitively on value, matching how Redshift echoes them back.
Tag changes go through the shared reconciler using the group ARN.
"""

from __future__ import annotations

import logging

from botocore.exceptions import ClientError

from provider_toolkit.common.aws_client_factory import REDSHIFT
from provider_toolkit.common.errors import NotFoundError, ProviderError, error_code_equals
from provider_toolkit.common.tag_utils import KeyValueTags, update_tags

DEFAULT_DESCRIPTION = "Managed by Terraform"
NOT_FOUND_CODE = "ClusterParameterGroupNotFound"


def _parameter_key(name: str, value: str) -> tuple[str, str]:
    return name, str(value).lower()


def expand_parameters(parameters: dict) -> list[dict]:
    """Convert {name: value} into the Redshift Parameters request shape."""
    return [
        {"ParameterName": name, "ParameterValue": str(parameters[name])}
        for name in sorted(parameters)
    ]


def flatten_parameters(parameters: list[dict]) -> dict:
    return {
        parameter["ParameterName"]: str(parameter.get("ParameterValue", "")).lower()
        for parameter in parameters
    }


def changed_parameters(old: dict, new: dict) -> dict:
    """Parameters in new that are not already set, ignoring value case."""
    existing = {_parameter_key(name, value) for name, value in (old or {}).items()}
    return {
        name: value
        for name, value in (new or {}).items()
        if _parameter_key(name, value) not in existing
    }


def _modify_parameters(conn, name: str, parameters: dict) -> None:
    logging.debug("Modify Redshift Parameter Group %s: %s", name, sorted(parameters))
    try:
        conn.modify_cluster_parameter_group(
            ParameterGroupName=name, Parameters=expand_parameters(parameters)
        )
    except ClientError as exc:
        raise ProviderError(f"error modifying Redshift Parameter Group ({name}) parameters: {exc}") from exc


def find_parameter_group(conn, name: str) -> dict:
    try:
        output = conn.describe_cluster_parameter_groups(ParameterGroupName=name)
    except ClientError as exc:
        if error_code_equals(exc, NOT_FOUND_CODE):
            raise NotFoundError(f"Redshift Parameter Group ({name}) not found", exc) from exc
        raise
    groups = [g for g in output.get("ParameterGroups", []) if g.get("ParameterGroupName") == name]
    if len(groups) != 1:
        raise NotFoundError(f"Redshift Parameter Group ({name}) not found")
    return groups[0]


def create(
    aws_client,
    name: str,
    family: str,
    description: str = DEFAULT_DESCRIPTION,
    parameters=None,
    tags=None,
) -> dict:
    conn = aws_client.client(REDSHIFT)
    all_tags = aws_client.default_tags.merge_tags(tags).ignore_aws()

    logging.debug("Create Redshift Parameter Group: %s (%s)", name, family)
    try:
        conn.create_cluster_parameter_group(
            ParameterGroupName=name,
            ParameterGroupFamily=family,
            Description=description,
            Tags=all_tags.to_tag_list(),
        )
    except ClientError as exc:
        raise ProviderError(f"error creating Redshift Parameter Group ({name}): {exc}") from exc

    if parameters:
        _modify_parameters(conn, name, parameters)

    return read(aws_client, name)


def read(aws_client, name: str):
    """
    Read the group, its user-set parameters and its tags.

    Returns:
        dict: State attributes, or None when the group no longer exists
    """
    conn = aws_client.client(REDSHIFT)
    try:
        group = find_parameter_group(conn, name)
    except NotFoundError:
        logging.warning("Redshift Parameter Group (%s) not found, removing from state", name)
        return None

    tags = (
        KeyValueTags.from_tag_list(group.get("Tags", []))
        .ignore_aws()
        .ignore_config(aws_client.ignore_tags)
    )

    try:
        output = conn.describe_cluster_parameters(ParameterGroupName=name, Source="user")
    except ClientError as exc:
        raise ProviderError(f"error reading Redshift Parameter Group ({name}) parameters: {exc}") from exc

    return {
        "id": name,
        "name": group.get("ParameterGroupName"),
        "family": group.get("ParameterGroupFamily"),
        "description": group.get("Description"),
        "parameters": flatten_parameters(output.get("Parameters", [])),
        "tags": aws_client.default_tags.remove_default_config(tags).to_dict(),
        "tags_all": tags.to_dict(),
    }


def update(
    aws_client,
    name: str,
    arn: str,
    old_parameters=None,
    new_parameters=None,
    old_tags_all=None,
    new_tags=None,
) -> dict:
    """Apply parameter additions/changes and converge tags_all to defaults + new_tags."""
    conn = aws_client.client(REDSHIFT)

    parameters = changed_parameters(old_parameters, new_parameters)
    if parameters:
        _modify_parameters(conn, name, parameters)

    new_tags_all = aws_client.default_tags.merge_tags(new_tags)
    update_tags(
        conn,
        arn,
        old_tags_all,
        new_tags_all,
        tag_method="create_tags",
        untag_method="delete_tags",
        identifier_field="ResourceName",
        ignore_config=aws_client.ignore_tags,
    )

    return read(aws_client, name)


def delete(aws_client, name: str) -> None:
    conn = aws_client.client(REDSHIFT)
    try:
        conn.delete_cluster_parameter_group(ParameterGroupName=name)
    except ClientError as exc:
        if error_code_equals(exc, NOT_FOUND_CODE):
            return
        raise ProviderError(f"error deleting Redshift Parameter Group ({name}): {exc}") from exc
