"""Per-provider AWS handle passed to every resource module."""

from __future__ import annotations

from threading import Event, Lock
from typing import Optional

from provider_toolkit.common import aws_client_factory
from provider_toolkit.config import ProviderSettings


class AWSClient:
    """
    Settings plus lazily created, cached boto3 clients.

    Clients can be injected up front, which is how tests supply mocks.
    """

    def __init__(
        self,
        settings: Optional[ProviderSettings] = None,
        clients: Optional[dict] = None,
        cancel_event: Optional[Event] = None,
    ):
        self.settings = settings or ProviderSettings()
        self.cancel_event = cancel_event
        self._clients = dict(clients or {})
        self._lock = Lock()

    @property
    def region(self) -> str:
        return self.settings.region

    @property
    def default_tags(self):
        return self.settings.default_tags

    @property
    def ignore_tags(self):
        return self.settings.ignore_tags

    def client(self, service_name: str):
        """Return the cached client for a service, creating it on first use."""
        with self._lock:
            if service_name not in self._clients:
                self._clients[service_name] = aws_client_factory.create_client(
                    service_name, self.settings.region
                )
            return self._clients[service_name]

    def timeout_for(self, service: str) -> float:
        return self.settings.timeout_for(service)

    def backoff(self):
        return self.settings.backoff()
