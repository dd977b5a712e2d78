"""
Consolidated waiter utilities.

Every eventually-consistent resource waits through wait_for_state: the
resource supplies a refresh function and the states it cares about, and
the waiter owns polling cadence, timeout accounting, error
classification and cancellation. retry_until_timeout covers the other
recurring shape, retrying a mutating call while a known propagation
error persists.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from threading import Event
from typing import Any, Callable, Iterator, Optional

from provider_toolkit.common.errors import (
    NotFoundError,
    UnexpectedStateError,
    UnretryableError,
    WaitCancelledError,
    WaitTimeoutError,
    is_transient_error,
    is_unretryable_error,
)

NOT_FOUND_STATE = "NotFound"

RefreshFunc = Callable[[], "tuple[Any, str]"]


@dataclass(frozen=True)
class BackoffPolicy:
    """Delay sequence between polls: fixed when factor is 1.0, exponential otherwise."""

    interval: float = 5.0
    factor: float = 1.0
    max_delay: float = 30.0

    def __post_init__(self):
        if self.interval <= 0:
            raise ValueError("interval must be greater than zero")
        if self.factor < 1.0:
            raise ValueError("factor must be at least 1.0")
        if self.max_delay < self.interval:
            raise ValueError("max_delay must be at least interval")

    def delays(self) -> Iterator[float]:
        delay = self.interval
        while True:
            yield delay
            delay = min(delay * self.factor, self.max_delay)


@dataclass(frozen=True)
class ConvergenceRequest:
    """
    One polling operation.

    refresh returns (raw_result, state). A raw_result of None, or a raised
    NotFoundError, means the remote object is absent.
    """

    refresh: RefreshFunc
    target_states: frozenset
    timeout: float
    failure_states: frozenset = frozenset()
    pending_states: frozenset = frozenset()
    backoff: BackoffPolicy = field(default_factory=BackoffPolicy)
    delay: float = 0.0
    absence_means_done: bool = False
    description: str = ""
    failure_reason: Optional[Callable[[Any], str]] = None

    def __post_init__(self):
        for name in ("target_states", "failure_states", "pending_states"):
            object.__setattr__(self, name, frozenset(getattr(self, name)))
        if self.target_states & self.failure_states:
            raise ValueError(
                f"target and failure states overlap: {sorted(self.target_states & self.failure_states)}"
            )
        if self.pending_states & (self.target_states | self.failure_states):
            raise ValueError("pending states must not overlap target or failure states")
        if not self.target_states and not self.absence_means_done:
            raise ValueError("a request without target states must set absence_means_done")
        if self.timeout < 0:
            raise ValueError("timeout must not be negative")


def _sleep(seconds: float, cancel_event: Optional[Event], description: str) -> None:
    """Sleep, waking early and raising if the caller cancels."""
    if seconds <= 0:
        _check_cancelled(cancel_event, description)
        return
    if cancel_event is None:
        time.sleep(seconds)
        return
    if cancel_event.wait(seconds):
        raise WaitCancelledError(f"{description or 'wait'} cancelled")


def _check_cancelled(cancel_event: Optional[Event], description: str) -> None:
    if cancel_event is not None and cancel_event.is_set():
        raise WaitCancelledError(f"{description or 'wait'} cancelled")


def _poll_once(request: ConvergenceRequest):
    """Run refresh, mapping absence to the NotFound pseudo-state."""
    try:
        result, state = request.refresh()
    except NotFoundError:
        return None, NOT_FOUND_STATE
    if result is None:
        return None, NOT_FOUND_STATE
    return result, state


def wait_for_state(request: ConvergenceRequest, cancel_event: Optional[Event] = None):
    """
    Poll until the remote object reaches a target state.

    Args:
        request: What to poll and which states end the wait
        cancel_event: Optional event; setting it stops the wait at the next check

    Returns:
        The raw result of the refresh that reported a target state, or None
        when absence_means_done and the object is gone

    Raises:
        UnexpectedStateError: A failure state (or an unlisted state) was reported
        UnretryableError: refresh raised an error that will not self-correct
        WaitTimeoutError: The budget ran out; carries the last observed state
        WaitCancelledError: cancel_event was set
    """
    description = request.description
    started = time.monotonic()
    deadline = started + request.timeout
    delays = request.backoff.delays()
    last_state: Optional[str] = None
    last_error: Optional[Exception] = None

    if request.delay:
        _sleep(request.delay, cancel_event, description)

    while True:
        _check_cancelled(cancel_event, description)
        try:
            result, state = _poll_once(request)
        except Exception as exc:  # noqa: BLE001
            if is_unretryable_error(exc):
                raise UnretryableError(description, exc) from exc
            if is_transient_error(exc):
                logging.debug("%s: retrying after transient error: %s", description, exc)
            else:
                logging.warning("%s: retrying after unclassified error: %s", description, exc)
            last_error = exc
        else:
            last_error = None
            last_state = state
            logging.debug("%s: observed state %s", description, state)

            if state == NOT_FOUND_STATE:
                if request.absence_means_done:
                    logging.info("%s: no longer exists", description)
                    return None
            elif state in request.failure_states:
                reason = request.failure_reason(result) if request.failure_reason else ""
                raise UnexpectedStateError(state, request.target_states, description, reason)
            elif state in request.target_states:
                logging.info("%s: reached state %s", description, state)
                return result
            elif request.pending_states and state not in request.pending_states:
                raise UnexpectedStateError(state, request.target_states, description)

        remaining = deadline - time.monotonic()
        if remaining <= 0:
            raise WaitTimeoutError(request.timeout, last_state, description, last_error)
        _sleep(min(next(delays), remaining), cancel_event, description)


def wait_for_creation(
    refresh: RefreshFunc,
    target_states,
    timeout: float,
    *,
    pending_states=frozenset(),
    failure_states=frozenset(),
    backoff: Optional[BackoffPolicy] = None,
    description: str = "",
    failure_reason: Optional[Callable[[Any], str]] = None,
    cancel_event: Optional[Event] = None,
):
    """Wait for a newly created object; absence counts as not yet visible."""
    request = ConvergenceRequest(
        refresh=refresh,
        target_states=frozenset(target_states),
        pending_states=frozenset(pending_states),
        failure_states=frozenset(failure_states),
        timeout=timeout,
        backoff=backoff or BackoffPolicy(),
        description=description,
        failure_reason=failure_reason,
    )
    return wait_for_state(request, cancel_event)


def wait_for_deletion(
    refresh: RefreshFunc,
    timeout: float,
    *,
    pending_states=frozenset(),
    failure_states=frozenset(),
    backoff: Optional[BackoffPolicy] = None,
    description: str = "",
    failure_reason: Optional[Callable[[Any], str]] = None,
    cancel_event: Optional[Event] = None,
) -> None:
    """Wait until refresh reports the object gone."""
    request = ConvergenceRequest(
        refresh=refresh,
        target_states=frozenset(),
        pending_states=frozenset(pending_states),
        failure_states=frozenset(failure_states),
        timeout=timeout,
        backoff=backoff or BackoffPolicy(),
        absence_means_done=True,
        description=description,
        failure_reason=failure_reason,
    )
    wait_for_state(request, cancel_event)


def retry_until_timeout(
    func: Callable[[], Any],
    timeout: float,
    is_retryable: Callable[[Exception], bool],
    *,
    backoff: Optional[BackoffPolicy] = None,
    description: str = "",
    cancel_event: Optional[Event] = None,
):
    """
    Call func until it succeeds, retrying errors is_retryable accepts.

    Used around calls that fail until another change propagates, e.g. an
    IAM principal or certificate that is not yet visible to the service.
    Other errors propagate at once. When the budget runs out, func is
    attempted one final time and its outcome is returned or raised as is.
    """
    deadline = time.monotonic() + timeout
    delays = (backoff or BackoffPolicy()).delays()

    while True:
        _check_cancelled(cancel_event, description)
        try:
            return func()
        except Exception as exc:  # noqa: BLE001
            if not is_retryable(exc):
                raise
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                break
            logging.info("%s: retrying after propagation error: %s", description, exc)
            _sleep(min(next(delays), remaining), cancel_event, description)

    logging.info("%s: retry budget exhausted, making final attempt", description)
    return func()
