"""Route53 query logging configuration. State ID is the configuration ID."""

from __future__ import annotations

import logging

from botocore.exceptions import ClientError

from provider_toolkit.common.aws_client_factory import ROUTE53
from provider_toolkit.common.errors import NotFoundError, ProviderError, error_code_equals

NOT_FOUND_CODE = "NoSuchQueryLoggingConfig"


def clean_zone_id(zone_id: str) -> str:
    """Remove the /hostedzone/ prefix Route53 returns on zone IDs."""
    return zone_id.split("/")[-1]


def find_query_logging_config(conn, config_id: str) -> dict:
    try:
        output = conn.get_query_logging_config(Id=config_id)
    except ClientError as exc:
        if error_code_equals(exc, NOT_FOUND_CODE):
            raise NotFoundError(f"Route53 query logging configuration ({config_id}) not found", exc) from exc
        raise
    config = output.get("QueryLoggingConfig")
    if not config:
        raise NotFoundError(f"Route53 query logging configuration ({config_id}) not found")
    return config


def create(aws_client, zone_id: str, log_group_arn: str) -> dict:
    conn = aws_client.client(ROUTE53)
    logging.debug("Creating Route53 query logging configuration for zone %s", zone_id)
    try:
        output = conn.create_query_logging_config(
            HostedZoneId=clean_zone_id(zone_id), CloudWatchLogsLogGroupArn=log_group_arn
        )
    except ClientError as exc:
        raise ProviderError(f"error creating Route53 query logging configuration: {exc}") from exc

    config_id = output["QueryLoggingConfig"]["Id"]
    logging.info("Route53 query logging configuration created: %s", config_id)
    return read(aws_client, config_id)


def read(aws_client, config_id: str):
    conn = aws_client.client(ROUTE53)
    try:
        config = find_query_logging_config(conn, config_id)
    except NotFoundError:
        logging.warning("Route53 query logging configuration (%s) not found, removing from state", config_id)
        return None

    return {
        "id": config_id,
        "zone_id": clean_zone_id(config.get("HostedZoneId", "")),
        "cloudwatch_log_group_arn": config.get("CloudWatchLogsLogGroupArn"),
    }


def delete(aws_client, config_id: str) -> None:
    conn = aws_client.client(ROUTE53)
    try:
        conn.delete_query_logging_config(Id=config_id)
    except ClientError as exc:
        if error_code_equals(exc, NOT_FOUND_CODE):
            return
        raise ProviderError(f"error deleting Route53 query logging configuration ({config_id}): {exc}") from exc
