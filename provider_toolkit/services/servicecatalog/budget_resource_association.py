"""
Service Catalog budget/resource association.

State ID is "budget_name,resource_id". Associations are eventually
consistent in both directions: a fresh association may not be listed yet,
and a removed one may still be listed for a while.
"""

from __future__ import annotations

import logging

from botocore.exceptions import ClientError

from provider_toolkit.common.aws_client_factory import IAM, SERVICECATALOG
from provider_toolkit.common.errors import (
    NotFoundError,
    ProviderError,
    error_code_equals,
    error_message_contains,
)
from provider_toolkit.common.resource_id import create_resource_id, parse_resource_id
from provider_toolkit.common.waiter_utils import (
    retry_until_timeout,
    wait_for_creation,
    wait_for_deletion,
)

ID_SEPARATOR = ","
STATUS_AVAILABLE = "AVAILABLE"


def association_id(budget_name: str, resource_id: str) -> str:
    return create_resource_id(budget_name, resource_id, separator=ID_SEPARATOR)


def parse_association_id(state_id: str) -> tuple[str, str]:
    budget_name, resource_id = parse_resource_id(state_id, 2, separator=ID_SEPARATOR)
    return budget_name, resource_id


def find_budget_resource_association(conn, budget_name: str, resource_id: str) -> dict:
    """
    Look up one association by listing the budgets attached to the resource.

    Raises:
        NotFoundError: If the resource is gone or the budget is not attached
    """
    paginator = conn.get_paginator("list_budgets_for_resource")
    try:
        for page in paginator.paginate(ResourceId=resource_id):
            for budget in page.get("Budgets", []):
                if budget.get("BudgetName") == budget_name:
                    return budget
    except ClientError as exc:
        if error_code_equals(exc, "ResourceNotFoundException"):
            raise NotFoundError(f"resource {resource_id} not found", exc) from exc
        raise
    raise NotFoundError(f"budget {budget_name} is not associated with {resource_id}")


def _status(conn, budget_name: str, resource_id: str):
    def refresh():
        return find_budget_resource_association(conn, budget_name, resource_id), STATUS_AVAILABLE

    return refresh


def _is_profile_propagation_error(exc: Exception) -> bool:
    return error_message_contains(exc, "InvalidParametersException", "profile does not exist")


def create(aws_client, budget_name: str, resource_id: str) -> dict:
    """Associate a budget with a resource and wait until the association is visible."""
    conn = aws_client.client(SERVICECATALOG)
    state_id = association_id(budget_name, resource_id)

    def _associate():
        return conn.associate_budget_with_resource(BudgetName=budget_name, ResourceId=resource_id)

    try:
        output = retry_until_timeout(
            _associate,
            aws_client.timeout_for(IAM),
            _is_profile_propagation_error,
            backoff=aws_client.backoff(),
            description=f"Service Catalog Budget Resource Association ({state_id})",
            cancel_event=aws_client.cancel_event,
        )
    except ClientError as exc:
        raise ProviderError(
            f"error associating Service Catalog Budget with Resource ({state_id}): {exc}"
        ) from exc

    if output is None:
        raise ProviderError(
            "error creating Service Catalog Budget Resource Association: empty response"
        )

    logging.info("Created Service Catalog Budget Resource Association %s", state_id)
    return read(aws_client, state_id, is_new_resource=True)


def read(aws_client, state_id: str, is_new_resource: bool = False):
    """
    Read an association into state.

    Returns:
        dict: State attributes, or None when the association no longer exists
    """
    budget_name, resource_id = parse_association_id(state_id)
    conn = aws_client.client(SERVICECATALOG)
    description = f"Service Catalog Budget Resource Association ({state_id})"

    if is_new_resource:
        output = wait_for_creation(
            _status(conn, budget_name, resource_id),
            {STATUS_AVAILABLE},
            aws_client.timeout_for(SERVICECATALOG),
            backoff=aws_client.backoff(),
            description=description,
            cancel_event=aws_client.cancel_event,
        )
    else:
        try:
            output = find_budget_resource_association(conn, budget_name, resource_id)
        except NotFoundError:
            logging.warning("%s not found, removing from state", description)
            return None

    return {
        "id": state_id,
        "budget_name": output.get("BudgetName", budget_name),
        "resource_id": resource_id,
    }


def delete(aws_client, state_id: str) -> None:
    """Disassociate the budget and wait for the association to disappear."""
    budget_name, resource_id = parse_association_id(state_id)
    conn = aws_client.client(SERVICECATALOG)
    description = f"Service Catalog Budget Resource Association ({state_id})"

    try:
        conn.disassociate_budget_from_resource(BudgetName=budget_name, ResourceId=resource_id)
    except ClientError as exc:
        if error_code_equals(exc, "ResourceNotFoundException"):
            return
        raise ProviderError(
            f"error disassociating Service Catalog Budget from Resource ({state_id}): {exc}"
        ) from exc

    wait_for_deletion(
        _status(conn, budget_name, resource_id),
        aws_client.timeout_for(SERVICECATALOG),
        backoff=aws_client.backoff(),
        description=description,
        cancel_event=aws_client.cancel_event,
    )
    logging.info("Deleted %s", description)
