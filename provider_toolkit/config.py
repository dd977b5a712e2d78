"""
Provider settings.

Propagation timeouts and polling cadence are configuration, handed to the
waiter by each resource module, rather than constants scattered across
services. Values come from a .env file (resolved like the client
factory's credentials) and the process environment.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Optional

from dotenv import load_dotenv

from provider_toolkit.common.aws_client_factory import resolve_env_path
from provider_toolkit.common.tag_utils import DefaultTagsConfig, IgnoreTagsConfig, KeyValueTags
from provider_toolkit.common.waiter_utils import BackoffPolicy

DEFAULT_REGION = "us-east-1"
DEFAULT_PROPAGATION_TIMEOUT = 120.0
DEFAULT_POLL_INTERVAL = 5.0
DEFAULT_MAX_POLL_INTERVAL = 30.0

# Per-service budgets that differ from the propagation default. IAM and ECR
# propagation use propagation_timeout unless PROVIDER_TIMEOUT_<SERVICE> is set.
DEFAULT_SERVICE_TIMEOUTS = {
    "servicecatalog": 180.0,
    "sagemaker": 600.0,
    "dynamodb": 1800.0,
}

_TIMEOUT_ENV_PREFIX = "PROVIDER_TIMEOUT_"


class ConfigurationError(RuntimeError):
    """Raised when provider configuration is missing or malformed."""


@dataclass(frozen=True)
class ProviderSettings:
    """Provider-wide configuration shared by every resource module."""

    region: str = DEFAULT_REGION
    propagation_timeout: float = DEFAULT_PROPAGATION_TIMEOUT
    poll_interval: float = DEFAULT_POLL_INTERVAL
    max_poll_interval: float = DEFAULT_MAX_POLL_INTERVAL
    backoff_factor: float = 1.0
    timeouts: dict = field(default_factory=lambda: dict(DEFAULT_SERVICE_TIMEOUTS))
    default_tags: DefaultTagsConfig = field(default_factory=DefaultTagsConfig)
    ignore_tags: IgnoreTagsConfig = field(default_factory=IgnoreTagsConfig)

    def timeout_for(self, service: str) -> float:
        """Wait budget for a service, falling back to the propagation timeout."""
        return float(self.timeouts.get(service, self.propagation_timeout))

    def backoff(self) -> BackoffPolicy:
        return BackoffPolicy(
            interval=self.poll_interval,
            factor=self.backoff_factor,
            max_delay=max(self.max_poll_interval, self.poll_interval),
        )


def _parse_float(name: str, raw: Optional[str], default: float) -> float:
    if raw is None or raw == "":
        return default
    try:
        value = float(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be a number of seconds, got {raw!r}") from exc
    if value < 0:
        raise ConfigurationError(f"{name} must not be negative, got {raw!r}")
    return value


def _parse_list(raw: Optional[str]) -> list[str]:
    if not raw:
        return []
    return [item.strip() for item in raw.split(",") if item.strip()]


def parse_tag_pairs(raw: Optional[str]) -> KeyValueTags:
    """Parse 'k=v,k2=v2' into tags."""
    tags = {}
    for item in _parse_list(raw):
        key, sep, value = item.partition("=")
        if not sep or not key.strip():
            raise ConfigurationError(f"default tag {item!r} must look like key=value")
        tags[key.strip()] = value.strip()
    return KeyValueTags(tags)


def _service_timeouts(environ) -> dict:
    timeouts = dict(DEFAULT_SERVICE_TIMEOUTS)
    for name, raw in environ.items():
        if name.startswith(_TIMEOUT_ENV_PREFIX):
            service = name[len(_TIMEOUT_ENV_PREFIX):].lower()
            if service:
                timeouts[service] = _parse_float(name, raw, DEFAULT_PROPAGATION_TIMEOUT)
    return timeouts


def load_settings(env_path: Optional[str] = None, environ=None) -> ProviderSettings:
    """
    Build ProviderSettings from a .env file and the environment.

    Args:
        env_path: Optional .env override (AWS_ENV_FILE, then ~/.env otherwise)
        environ: Mapping to read instead of os.environ

    Raises:
        ConfigurationError: If a value cannot be parsed
    """
    if environ is None:
        load_dotenv(resolve_env_path(env_path))
        environ = os.environ

    poll_interval = _parse_float(
        "PROVIDER_POLL_INTERVAL", environ.get("PROVIDER_POLL_INTERVAL"), DEFAULT_POLL_INTERVAL
    )
    if poll_interval <= 0:
        raise ConfigurationError("PROVIDER_POLL_INTERVAL must be greater than zero")
    max_poll_interval = _parse_float(
        "PROVIDER_MAX_POLL_INTERVAL",
        environ.get("PROVIDER_MAX_POLL_INTERVAL"),
        DEFAULT_MAX_POLL_INTERVAL,
    )
    if max_poll_interval < poll_interval:
        raise ConfigurationError("PROVIDER_MAX_POLL_INTERVAL must be at least PROVIDER_POLL_INTERVAL")
    backoff_factor = _parse_float("PROVIDER_BACKOFF_FACTOR", environ.get("PROVIDER_BACKOFF_FACTOR"), 1.0)
    if backoff_factor < 1.0:
        raise ConfigurationError("PROVIDER_BACKOFF_FACTOR must be at least 1.0")

    return ProviderSettings(
        region=environ.get("AWS_DEFAULT_REGION") or environ.get("AWS_REGION") or DEFAULT_REGION,
        propagation_timeout=_parse_float(
            "PROVIDER_PROPAGATION_TIMEOUT",
            environ.get("PROVIDER_PROPAGATION_TIMEOUT"),
            DEFAULT_PROPAGATION_TIMEOUT,
        ),
        poll_interval=poll_interval,
        max_poll_interval=max_poll_interval,
        backoff_factor=backoff_factor,
        timeouts=_service_timeouts(environ),
        default_tags=DefaultTagsConfig(parse_tag_pairs(environ.get("PROVIDER_DEFAULT_TAGS"))),
        ignore_tags=IgnoreTagsConfig(
            keys=frozenset(_parse_list(environ.get("PROVIDER_IGNORE_TAG_KEYS"))),
            key_prefixes=tuple(_parse_list(environ.get("PROVIDER_IGNORE_TAG_PREFIXES"))),
        ),
    )
