"""Cloud Control API resource (data source, read only)."""

from __future__ import annotations

from botocore.exceptions import ClientError

from provider_toolkit.common.aws_client_factory import CLOUDCONTROL
from provider_toolkit.common.errors import NotFoundError, ProviderError, error_code_equals


def find_resource_by_id(conn, identifier, type_name, type_version_id=None, role_arn=None) -> dict:
    """
    Fetch one resource description through Cloud Control.

    Raises:
        NotFoundError: If Cloud Control reports no such resource
    """
    params = {"Identifier": identifier, "TypeName": type_name}
    if type_version_id:
        params["TypeVersionId"] = type_version_id
    if role_arn:
        params["RoleArn"] = role_arn

    try:
        output = conn.get_resource(**params)
    except ClientError as exc:
        if error_code_equals(exc, "ResourceNotFoundException"):
            raise NotFoundError(f"Cloud Control API Resource ({identifier}) not found", exc) from exc
        raise

    description = output.get("ResourceDescription")
    if not description:
        raise NotFoundError(f"Cloud Control API Resource ({identifier}): empty result")
    return description


def read(aws_client, identifier: str, type_name: str, type_version_id=None, role_arn=None) -> dict:
    conn = aws_client.client(CLOUDCONTROL)
    try:
        description = find_resource_by_id(conn, identifier, type_name, type_version_id, role_arn)
    except (NotFoundError, ClientError) as exc:
        raise ProviderError(f"error reading Cloud Control API Resource ({identifier}): {exc}") from exc

    return {
        "id": description.get("Identifier", identifier),
        "identifier": identifier,
        "type_name": type_name,
        "properties": description.get("Properties"),
    }
