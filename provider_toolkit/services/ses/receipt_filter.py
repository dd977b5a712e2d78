"""SES receipt IP filter. State ID is the filter name."""

from __future__ import annotations

import logging

from botocore.exceptions import ClientError

from provider_toolkit.common.aws_client_factory import SES
from provider_toolkit.common.errors import NotFoundError, ProviderError


def find_receipt_filter(conn, name: str) -> dict:
    """SES has no describe call for one filter, so list them all and match by name."""
    output = conn.list_receipt_filters()
    for receipt_filter in output.get("Filters", []):
        if receipt_filter.get("Name") == name:
            return receipt_filter
    raise NotFoundError(f"SES Receipt Filter ({name}) not found")


def create(aws_client, name: str, cidr: str, policy: str) -> dict:
    conn = aws_client.client(SES)
    try:
        conn.create_receipt_filter(
            Filter={"Name": name, "IpFilter": {"Cidr": cidr, "Policy": policy}}
        )
    except ClientError as exc:
        raise ProviderError(f"error creating SES Receipt Filter ({name}): {exc}") from exc
    logging.info("Created SES Receipt Filter %s", name)
    return read(aws_client, name)


def read(aws_client, name: str):
    conn = aws_client.client(SES)
    try:
        receipt_filter = find_receipt_filter(conn, name)
    except NotFoundError:
        logging.warning("SES Receipt Filter (%s) not found, removing from state", name)
        return None
    except ClientError as exc:
        raise ProviderError(f"error reading SES Receipt Filter ({name}): {exc}") from exc

    ip_filter = receipt_filter.get("IpFilter", {})
    return {
        "id": name,
        "name": name,
        "cidr": ip_filter.get("Cidr"),
        "policy": ip_filter.get("Policy"),
    }


def delete(aws_client, name: str) -> None:
    conn = aws_client.client(SES)
    try:
        conn.delete_receipt_filter(FilterName=name)
    except ClientError as exc:
        raise ProviderError(f"error deleting SES Receipt Filter ({name}): {exc}") from exc
