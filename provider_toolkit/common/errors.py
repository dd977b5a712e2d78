"""
Error taxonomy shared by the waiter, the tag reconciler and resource glue.

Also provides helpers for classifying botocore errors as transient
(retried inside a polling budget) or unretryable (surfaced immediately).
"""

from __future__ import annotations

from botocore.exceptions import (
    BotoCoreError,
    ClientError,
    ConnectionClosedError,
    ConnectTimeoutError,
    EndpointConnectionError,
    ReadTimeoutError,
)

# AWS error codes that should trigger a retry
TRANSIENT_ERROR_CODES = frozenset(
    {
        "Throttling",
        "ThrottlingException",
        "ThrottledException",
        "TooManyRequestsException",
        "RequestLimitExceeded",
        "RequestThrottled",
        "ProvisionedThroughputExceededException",
        "ServiceUnavailable",
        "ServiceUnavailableException",
        "InternalError",
        "InternalFailure",
        "InternalServerError",
        "RequestTimeout",
        "RequestTimeoutException",
        "PriorRequestNotComplete",
    }
)

# AWS error codes that will not self-correct by waiting
UNRETRYABLE_ERROR_CODES = frozenset(
    {
        "AccessDenied",
        "AccessDeniedException",
        "UnauthorizedOperation",
        "UnrecognizedClientException",
        "InvalidClientTokenId",
        "AuthFailure",
        "ExpiredToken",
        "ExpiredTokenException",
        "ValidationError",
        "ValidationException",
        "MalformedQueryString",
        "InvalidParameterValue",
        "InvalidParameterCombination",
        "MissingParameter",
        "SerializationException",
    }
)

_TRANSIENT_BOTOCORE_ERRORS = (
    EndpointConnectionError,
    ConnectTimeoutError,
    ReadTimeoutError,
    ConnectionClosedError,
)


class ProviderError(RuntimeError):
    """Base class for errors surfaced to the provider framework."""


class NotFoundError(ProviderError):
    """Raised when the remote object does not exist."""

    def __init__(self, message: str, last_error: Exception | None = None):
        super().__init__(message)
        self.last_error = last_error


class UnexpectedStateError(ProviderError):
    """Raised when a remote object reaches a state outside the expected set."""

    def __init__(self, state: str, expected, description: str = "", reason: str = ""):
        self.state = state
        self.expected = sorted(expected)
        self.reason = reason
        subject = f"{description}: " if description else ""
        message = f"{subject}unexpected state '{state}', wanted target {self.expected}"
        if reason:
            message = f"{message}. last error: {reason}"
        super().__init__(message)


class WaitTimeoutError(ProviderError):
    """Raised when the polling budget runs out before a target state is reached."""

    def __init__(
        self,
        timeout: float,
        last_state: str | None,
        description: str = "",
        last_error: Exception | None = None,
    ):
        self.timeout = timeout
        self.last_state = last_state
        self.last_error = last_error
        subject = f"{description}: " if description else ""
        message = f"{subject}timeout while waiting for state to become target (last state: '{last_state}', timeout: {timeout:g}s)"
        if last_error is not None:
            message = f"{message}: {last_error}"
        super().__init__(message)


class UnretryableError(ProviderError):
    """Wraps an underlying API error that should not be retried."""

    def __init__(self, description: str, error: Exception):
        self.error = error
        subject = f"{description}: " if description else ""
        super().__init__(f"{subject}{error}")


class WaitCancelledError(ProviderError):
    """Raised when the caller cancels an in-progress wait."""


class TagUpdateError(ProviderError):
    """Raised when tagging or untagging a resource fails."""


class ResourceIdError(ValueError):
    """Raised when a composite resource identifier cannot be parsed."""


def error_code(error: Exception) -> str:
    """Return the AWS error code of a ClientError, or an empty string."""
    if isinstance(error, ClientError):
        return error.response.get("Error", {}).get("Code", "")
    return ""


def error_message(error: Exception) -> str:
    """Return the AWS error message of a ClientError, or an empty string."""
    if isinstance(error, ClientError):
        return error.response.get("Error", {}).get("Message", "")
    return ""


def error_code_equals(error: Exception, *codes: str) -> bool:
    """Check whether a ClientError carries one of the given error codes."""
    return error_code(error) in codes


def error_message_contains(error: Exception, code: str, fragment: str) -> bool:
    """Check a ClientError's code and that its message contains a fragment."""
    return error_code(error) == code and fragment in error_message(error)


def _http_status(error: ClientError) -> int:
    return error.response.get("ResponseMetadata", {}).get("HTTPStatusCode", 0)


def is_transient_error(error: Exception) -> bool:
    """Check if an error is transient and should be retried.

    Throttling codes, 429 and 5xx responses, and connection-level botocore
    errors all count as transient.
    """
    if isinstance(error, _TRANSIENT_BOTOCORE_ERRORS):
        return True
    if isinstance(error, ClientError):
        if error_code(error) in TRANSIENT_ERROR_CODES:
            return True
        status = _http_status(error)
        return status == 429 or status >= 500
    return False


def is_unretryable_error(error: Exception) -> bool:
    """Check if an error should abort a wait immediately.

    Authorization and validation failures are unretryable, as are local
    botocore failures (missing credentials, parameter validation) and any
    exception that does not come from botocore at all.
    """
    if isinstance(error, ClientError):
        return error_code(error) in UNRETRYABLE_ERROR_CODES
    if isinstance(error, BotoCoreError):
        return not isinstance(error, _TRANSIENT_BOTOCORE_ERRORS)
    return True
