"""Shared pytest fixtures for test files."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError

from tests.aws_test_utils import build_aws_client


class _StubBotoClient:
    """Minimal stub for boto3 clients so tests never reach AWS."""

    def __init__(self, service_name: str, **kwargs):
        self.service_name = service_name
        self.region_name = kwargs.get("region_name")
        self.kwargs = kwargs
        self.exceptions = ClientError

    def __getattr__(self, name: str):
        raise AssertionError(f"unexpected call to {self.service_name}.{name} on stub client")


@pytest.fixture(autouse=True)
def stub_boto3_client(monkeypatch):
    """Replace boto3.client with a stub so tests don't call real AWS."""

    def fake_client(service_name, **kwargs):
        return _StubBotoClient(service_name, **kwargs)

    monkeypatch.setattr("boto3.client", fake_client)


@pytest.fixture(autouse=True)
def stub_credentials(monkeypatch):
    """Provide fake AWS credentials so create_client doesn't fail."""
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "stub-key")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "stub-secret")
    monkeypatch.delenv("AWS_SESSION_TOKEN", raising=False)


@pytest.fixture
def service_client():
    """A bare MagicMock standing in for any boto3 service client."""
    return MagicMock()


@pytest.fixture
def aws_client_for(service_client):
    """Factory: AWSClient whose client(service) returns service_client."""

    def _build(service_name, **setting_overrides):
        return build_aws_client({service_name: service_client}, **setting_overrides)

    return _build
