"""
ELBv2 listener certificate (an additional SNI certificate on a listener).

State ID is "listener_arn_certificate_arn". Listener ARNs never contain an
underscore while IAM server certificate ARNs may, so the ID splits on the
first underscore only.
"""

from __future__ import annotations

import logging

from botocore.exceptions import ClientError

from provider_toolkit.common.aws_client_factory import ELBV2, IAM
from provider_toolkit.common.errors import NotFoundError, ProviderError, error_code_equals
from provider_toolkit.common.resource_id import create_resource_id, parse_resource_id
from provider_toolkit.common.waiter_utils import retry_until_timeout, wait_for_creation

ID_SEPARATOR = "_"
STATUS_PRESENT = "present"


def listener_certificate_id(listener_arn: str, certificate_arn: str) -> str:
    return create_resource_id(listener_arn, certificate_arn, separator=ID_SEPARATOR)


def parse_listener_certificate_id(state_id: str) -> tuple[str, str]:
    listener_arn, certificate_arn = parse_resource_id(state_id, 2, separator=ID_SEPARATOR)
    return listener_arn, certificate_arn


def find_listener_certificate(conn, listener_arn: str, certificate_arn: str) -> dict:
    """
    Find a non-default certificate on a listener, following pagination markers.

    Raises:
        NotFoundError: If the listener is gone or the certificate is not attached
    """
    params = {"ListenerArn": listener_arn}
    while True:
        try:
            page = conn.describe_listener_certificates(**params)
        except ClientError as exc:
            if error_code_equals(exc, "ListenerNotFound"):
                raise NotFoundError(f"listener {listener_arn} not found", exc) from exc
            raise
        for certificate in page.get("Certificates", []):
            if certificate.get("IsDefault"):
                continue
            if certificate.get("CertificateArn") == certificate_arn:
                return certificate
        marker = page.get("NextMarker")
        if not marker:
            break
        params["Marker"] = marker
    raise NotFoundError(f"certificate {certificate_arn} not attached to listener {listener_arn}")


def create(aws_client, listener_arn: str, certificate_arn: str) -> dict:
    """Attach the certificate, retrying while a new IAM certificate propagates."""
    conn = aws_client.client(ELBV2)
    state_id = listener_certificate_id(listener_arn, certificate_arn)

    def _add():
        return conn.add_listener_certificates(
            ListenerArn=listener_arn, Certificates=[{"CertificateArn": certificate_arn}]
        )

    logging.debug("Adding certificate %s to listener %s", certificate_arn, listener_arn)
    try:
        retry_until_timeout(
            _add,
            aws_client.timeout_for(IAM),
            lambda exc: error_code_equals(exc, "CertificateNotFound"),
            backoff=aws_client.backoff(),
            description=f"ELBv2 Listener Certificate ({state_id})",
            cancel_event=aws_client.cancel_event,
        )
    except ClientError as exc:
        raise ProviderError(f"error creating ELBv2 Listener Certificate ({state_id}): {exc}") from exc

    return read(aws_client, state_id, is_new_resource=True)


def read(aws_client, state_id: str, is_new_resource: bool = False):
    listener_arn, certificate_arn = parse_listener_certificate_id(state_id)
    conn = aws_client.client(ELBV2)

    if is_new_resource:
        wait_for_creation(
            lambda: (find_listener_certificate(conn, listener_arn, certificate_arn), STATUS_PRESENT),
            {STATUS_PRESENT},
            aws_client.timeout_for(IAM),
            backoff=aws_client.backoff(),
            description=f"ELBv2 Listener Certificate ({state_id})",
            cancel_event=aws_client.cancel_event,
        )
    else:
        try:
            find_listener_certificate(conn, listener_arn, certificate_arn)
        except NotFoundError:
            logging.warning("ELBv2 Listener Certificate (%s) not found, removing from state", state_id)
            return None

    return {"id": state_id, "listener_arn": listener_arn, "certificate_arn": certificate_arn}


def delete(aws_client, state_id: str) -> None:
    listener_arn, certificate_arn = parse_listener_certificate_id(state_id)
    conn = aws_client.client(ELBV2)
    logging.debug("Removing certificate %s from listener %s", certificate_arn, listener_arn)
    try:
        conn.remove_listener_certificates(
            ListenerArn=listener_arn, Certificates=[{"CertificateArn": certificate_arn}]
        )
    except ClientError as exc:
        if error_code_equals(exc, "CertificateNotFound", "ListenerNotFound"):
            return
        raise ProviderError(f"error removing ELBv2 Listener Certificate ({state_id}): {exc}") from exc
