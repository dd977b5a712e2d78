"""EC2 transit gateway route table (data source, read only)."""

from __future__ import annotations

import logging

from botocore.exceptions import ClientError

from provider_toolkit.common.aws_client_factory import EC2
from provider_toolkit.common.errors import ProviderError
from provider_toolkit.common.tag_utils import KeyValueTags


def build_filters(filters: dict) -> list[dict]:
    """Convert {name: [values]} into the EC2 Filters request shape."""
    return [
        {"Name": name, "Values": list(values) if isinstance(values, (list, tuple, set)) else [values]}
        for name, values in sorted((filters or {}).items())
    ]


def read(aws_client, route_table_id=None, filters=None) -> dict:
    """
    Look up exactly one transit gateway route table by ID and/or filters.

    Raises:
        ProviderError: If the lookup fails or matches zero or several tables
    """
    conn = aws_client.client(EC2)
    params = {}
    if filters:
        params["Filters"] = build_filters(filters)
    if route_table_id:
        params["TransitGatewayRouteTableIds"] = [route_table_id]

    logging.debug("Reading EC2 Transit Gateway Route Tables: %s", params)
    try:
        output = conn.describe_transit_gateway_route_tables(**params)
    except ClientError as exc:
        raise ProviderError(f"error reading EC2 Transit Gateway Route Table: {exc}") from exc

    tables = output.get("TransitGatewayRouteTables") or []
    if not tables:
        raise ProviderError("error reading EC2 Transit Gateway Route Table: no results found")
    if len(tables) > 1:
        raise ProviderError(
            "error reading EC2 Transit Gateway Route Table: multiple results found, try adjusting search criteria"
        )

    table = tables[0]
    tags = (
        KeyValueTags.from_tag_list(table.get("Tags", []))
        .ignore_aws()
        .ignore_config(aws_client.ignore_tags)
    )
    return {
        "id": table.get("TransitGatewayRouteTableId"),
        "transit_gateway_id": table.get("TransitGatewayId"),
        "default_association_route_table": table.get("DefaultAssociationRouteTable"),
        "default_propagation_route_table": table.get("DefaultPropagationRouteTable"),
        "tags": tags.to_dict(),
    }
