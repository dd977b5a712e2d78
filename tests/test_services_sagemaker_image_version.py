"""Tests for provider_toolkit/services/sagemaker/image_version.py"""

from __future__ import annotations

import pytest

from provider_toolkit.common.errors import NotFoundError, ProviderError, UnexpectedStateError
from provider_toolkit.services.sagemaker import image_version
from tests.aws_test_utils import make_client_error

IMAGE = "my-image"
BASE_IMAGE = "012345678912.dkr.ecr.us-west-2.amazonaws.com/image:latest"


def _version(status, version=1, **extra):
    output = {
        "ImageVersionStatus": status,
        "BaseImage": BASE_IMAGE,
        "ContainerImage": f"{BASE_IMAGE}@sha256:abc",
        "ImageArn": f"arn:aws:sagemaker:us-west-2:1:image/{IMAGE}",
        "ImageVersionArn": f"arn:aws:sagemaker:us-west-2:1:image-version/{IMAGE}/{version}",
        "Version": version,
    }
    output.update(extra)
    return output


def test_find_image_version_passes_version(service_client):
    """Test the finder only sends Version when one is given."""
    image_version.find_image_version(service_client, IMAGE)
    image_version.find_image_version(service_client, IMAGE, 3)

    assert service_client.describe_image_version.call_args_list[0].kwargs == {"ImageName": IMAGE}
    assert service_client.describe_image_version.call_args_list[1].kwargs == {
        "ImageName": IMAGE,
        "Version": 3,
    }


def test_find_image_version_not_found(service_client):
    """Test ResourceNotFound maps to NotFoundError."""
    service_client.describe_image_version.side_effect = make_client_error("ResourceNotFound")

    with pytest.raises(NotFoundError):
        image_version.find_image_version(service_client, IMAGE)


def test_create_waits_for_created(service_client, aws_client_for):
    """Test create polls through CREATING and returns the created version."""
    service_client.describe_image_version.side_effect = [
        _version("CREATING"),
        _version("CREATED"),
        _version("CREATED"),
    ]

    state = image_version.create(aws_client_for("sagemaker", timeouts={"sagemaker": 5}), IMAGE, BASE_IMAGE)

    assert state["version"] == 1
    assert state["base_image"] == BASE_IMAGE
    assert state["arn"].endswith(f"{IMAGE}/1")
    create_kwargs = service_client.create_image_version.call_args.kwargs
    assert create_kwargs["ImageName"] == IMAGE
    assert create_kwargs["ClientToken"]


def test_create_failure_includes_reason(service_client, aws_client_for):
    """Test CREATE_FAILED aborts the wait with the service's failure reason."""
    service_client.describe_image_version.return_value = _version(
        "CREATE_FAILED", FailureReason="image not found in ECR"
    )

    with pytest.raises(UnexpectedStateError, match="image not found in ECR"):
        image_version.create(aws_client_for("sagemaker"), IMAGE, BASE_IMAGE)


def test_create_api_error(service_client, aws_client_for):
    """Test create wraps a failed create call."""
    service_client.create_image_version.side_effect = make_client_error("ResourceLimitExceeded")

    with pytest.raises(ProviderError, match="error creating SageMaker Image Version"):
        image_version.create(aws_client_for("sagemaker"), IMAGE, BASE_IMAGE)


def test_read_missing_returns_none(service_client, aws_client_for):
    """Test read drops a vanished image from state."""
    service_client.describe_image_version.side_effect = make_client_error("ResourceNotFound")

    assert image_version.read(aws_client_for("sagemaker"), IMAGE) is None


def test_delete_polls_specific_version(service_client, aws_client_for):
    """Test delete waits on the deleted version until it is gone."""
    service_client.describe_image_version.side_effect = [
        _version("DELETING", version=2),
        make_client_error("ResourceNotFound"),
    ]

    image_version.delete(aws_client_for("sagemaker", timeouts={"sagemaker": 5}), IMAGE, 2)

    service_client.delete_image_version.assert_called_once_with(ImageName=IMAGE, Version=2)
    for call in service_client.describe_image_version.call_args_list:
        assert call.kwargs == {"ImageName": IMAGE, "Version": 2}


def test_delete_failed_state(service_client, aws_client_for):
    """Test DELETE_FAILED aborts the deletion wait."""
    service_client.describe_image_version.return_value = _version(
        "DELETE_FAILED", FailureReason="in use"
    )

    with pytest.raises(UnexpectedStateError, match="in use"):
        image_version.delete(aws_client_for("sagemaker"), IMAGE, 1)


def test_delete_already_gone(service_client, aws_client_for):
    """Test delete treats a missing version as deleted."""
    service_client.delete_image_version.side_effect = make_client_error("ResourceNotFound")

    image_version.delete(aws_client_for("sagemaker"), IMAGE, 1)

    service_client.describe_image_version.assert_not_called()
