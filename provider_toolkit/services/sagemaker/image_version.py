"""SageMaker image version. State ID is the image name; the latest version is managed."""

from __future__ import annotations

import logging
import uuid

from botocore.exceptions import ClientError

from provider_toolkit.common.aws_client_factory import SAGEMAKER
from provider_toolkit.common.errors import NotFoundError, ProviderError, error_code_equals
from provider_toolkit.common.waiter_utils import wait_for_creation, wait_for_deletion

STATUS_CREATING = "CREATING"
STATUS_CREATED = "CREATED"
STATUS_CREATE_FAILED = "CREATE_FAILED"
STATUS_DELETING = "DELETING"
STATUS_DELETE_FAILED = "DELETE_FAILED"


def find_image_version(conn, image_name: str, version=None) -> dict:
    """Describe the given version of an image, or its latest version."""
    params = {"ImageName": image_name}
    if version is not None:
        params["Version"] = version
    try:
        return conn.describe_image_version(**params)
    except ClientError as exc:
        if error_code_equals(exc, "ResourceNotFound"):
            raise NotFoundError(f"SageMaker Image Version ({image_name}) not found", exc) from exc
        raise


def _status(conn, image_name: str, version=None):
    def refresh():
        output = find_image_version(conn, image_name, version)
        return output, output.get("ImageVersionStatus", "")

    return refresh


def _failure_reason(output) -> str:
    return (output or {}).get("FailureReason", "")


def create(aws_client, image_name: str, base_image: str) -> dict:
    """Create a new image version and wait for it to finish building."""
    conn = aws_client.client(SAGEMAKER)
    try:
        conn.create_image_version(
            ImageName=image_name,
            BaseImage=base_image,
            ClientToken=str(uuid.uuid4()),
        )
    except ClientError as exc:
        raise ProviderError(f"error creating SageMaker Image Version ({image_name}): {exc}") from exc

    wait_for_creation(
        _status(conn, image_name),
        {STATUS_CREATED},
        aws_client.timeout_for(SAGEMAKER),
        pending_states={STATUS_CREATING},
        failure_states={STATUS_CREATE_FAILED},
        backoff=aws_client.backoff(),
        description=f"SageMaker Image Version ({image_name}) creation",
        failure_reason=_failure_reason,
        cancel_event=aws_client.cancel_event,
    )
    logging.info("Created SageMaker Image Version %s", image_name)
    return read(aws_client, image_name)


def read(aws_client, image_name: str):
    """Read the latest image version, or None if the image is gone."""
    conn = aws_client.client(SAGEMAKER)
    try:
        output = find_image_version(conn, image_name)
    except NotFoundError:
        logging.warning("SageMaker Image Version (%s) not found, removing from state", image_name)
        return None

    return {
        "id": image_name,
        "image_name": image_name,
        "base_image": output.get("BaseImage"),
        "container_image": output.get("ContainerImage"),
        "image_arn": output.get("ImageArn"),
        "arn": output.get("ImageVersionArn"),
        "version": output.get("Version"),
    }


def delete(aws_client, image_name: str, version: int) -> None:
    """Delete an image version and wait until SageMaker no longer reports it."""
    conn = aws_client.client(SAGEMAKER)
    try:
        conn.delete_image_version(ImageName=image_name, Version=version)
    except ClientError as exc:
        if error_code_equals(exc, "ResourceNotFound"):
            return
        raise ProviderError(f"error deleting SageMaker Image Version ({image_name}): {exc}") from exc

    wait_for_deletion(
        _status(conn, image_name, version),
        aws_client.timeout_for(SAGEMAKER),
        pending_states={STATUS_DELETING},
        failure_states={STATUS_DELETE_FAILED},
        backoff=aws_client.backoff(),
        description=f"SageMaker Image Version ({image_name}) deletion",
        failure_reason=_failure_reason,
        cancel_event=aws_client.cancel_event,
    )
