"""Retry policy and state transitions for request execution.

This module holds the pure parts of the retry loop: failure
classification, the exponential backoff schedule and the transition
function of the per-call state machine. The executor in
:mod:`rest_resource.utils.http_client` drives the machine and performs
the I/O; everything here can be tested without a network.

States of one ``execute`` call::

    ATTEMPT --completed--------------------------> DONE
    ATTEMPT --transport/read/status failure------> BACKOFF (attempts left)
    ATTEMPT --transport/read/status failure------> EXHAUSTED (no attempts left)
    ATTEMPT --2xx body read failure--------------> FAILED
    ATTEMPT/BACKOFF --cancelled------------------> CANCELLED
    BACKOFF --delay elapsed----------------------> ATTEMPT (index + 1)
"""

import asyncio
from dataclasses import dataclass, field
from enum import Enum
from typing import FrozenSet, Iterable, Optional

import httpx

DEFAULT_RETRYABLE_STATUS_CODES: FrozenSet[int] = frozenset({429, 500, 502, 503, 504})

BASE_DELAY = 1.0
MAX_DELAY = 30.0

_RETRYABLE_ERROR_SUBSTRINGS = (
    "connection refused",
    "timeout",
    "timed out",
    "temporary failure",
    "network is unreachable",
)

_RETRYABLE_ERROR_TYPES = (
    httpx.TimeoutException,
    httpx.ConnectError,
    httpx.NetworkError,
    asyncio.TimeoutError,
    ConnectionRefusedError,
)


class RetryState(str, Enum):
    """Named states of one execution."""

    ATTEMPT = "attempt"
    BACKOFF = "backoff"
    EXHAUSTED = "exhausted"
    DONE = "done"
    FAILED = "failed"
    CANCELLED = "cancelled"


class OutcomeKind(str, Enum):
    """What happened during a single attempt."""

    COMPLETED = "completed"
    TRANSPORT_ERROR = "transport_error"
    BODY_READ_ERROR = "body_read_error"
    RETRYABLE_STATUS = "retryable_status"
    CANCELLED = "cancelled"


@dataclass
class AttemptOutcome:
    """Result of one attempt, fed into :func:`next_state`."""

    kind: OutcomeKind
    status_code: Optional[int] = None
    error: Optional[BaseException] = None
    response: Optional[object] = None


def calculate_backoff(
    attempt: int, base_delay: float = BASE_DELAY, max_delay: float = MAX_DELAY
) -> float:
    """Return the delay before the attempt following ``attempt``.

    ``min(max_delay, base_delay * 2**attempt)`` for a 0-based attempt index.

    :param attempt: 0-based index of the attempt that just failed
    :type attempt: int
    :param base_delay: Delay after the first failure in seconds
    :type base_delay: float
    :param max_delay: Upper bound for any delay in seconds
    :type max_delay: float
    :return: Delay in seconds
    :rtype: float
    """
    if attempt < 0:
        attempt = 0
    # Avoid huge intermediate values for large attempt counts
    if attempt >= 63:
        return max_delay
    return min(max_delay, base_delay * (1 << attempt))


def is_retryable_error(error: Optional[BaseException]) -> bool:
    """Return True for transient transport failures.

    Connection refused, timeouts, temporary name-resolution failures and
    unreachable networks are retryable, recognised either by exception
    type or by the error text. ``None`` is not retryable.

    :param error: Exception raised while sending a request
    :type error: Optional[BaseException]
    :return: Whether another attempt may succeed
    :rtype: bool
    """
    if error is None:
        return False
    if isinstance(error, _RETRYABLE_ERROR_TYPES):
        return True
    text = str(error).lower()
    return any(s in text for s in _RETRYABLE_ERROR_SUBSTRINGS)


def is_retryable_status_code(
    status_code: int, extra_codes: Iterable[int] = ()
) -> bool:
    """Return True for status codes worth retrying.

    :param status_code: HTTP status code
    :type status_code: int
    :param extra_codes: Caller-supplied additional retryable codes
    :type extra_codes: Iterable[int]
    :return: Whether the status is in the default or extra retryable set
    :rtype: bool
    """
    return status_code in DEFAULT_RETRYABLE_STATUS_CODES or status_code in set(
        extra_codes
    )


def is_success_status(status_code: Optional[int]) -> bool:
    return status_code is not None and 200 <= status_code < 300


@dataclass
class RetryPolicy:
    """Backoff schedule and retryable status set for an executor."""

    base_delay: float = BASE_DELAY
    max_delay: float = MAX_DELAY
    retryable_status_codes: FrozenSet[int] = field(
        default_factory=lambda: DEFAULT_RETRYABLE_STATUS_CODES
    )

    def delay_for(self, attempt: int) -> float:
        """Backoff delay after the 0-based ``attempt``."""
        return calculate_backoff(attempt, self.base_delay, self.max_delay)

    def should_retry_status(
        self, status_code: int, extra_codes: Iterable[int] = ()
    ) -> bool:
        return status_code in self.retryable_status_codes or status_code in set(
            extra_codes
        )


def next_state(outcome: AttemptOutcome, attempt: int, max_attempts: int) -> RetryState:
    """Transition out of ``ATTEMPT`` for the given outcome.

    :param outcome: What happened during the attempt
    :type outcome: AttemptOutcome
    :param attempt: 0-based index of the attempt
    :type attempt: int
    :param max_attempts: Total attempts allowed for this call
    :type max_attempts: int
    :return: The next state
    :rtype: RetryState
    """
    if outcome.kind is OutcomeKind.CANCELLED:
        return RetryState.CANCELLED
    if outcome.kind is OutcomeKind.COMPLETED:
        return RetryState.DONE

    if outcome.kind is OutcomeKind.BODY_READ_ERROR and is_success_status(
        outcome.status_code
    ):
        return RetryState.FAILED

    if attempt < max_attempts - 1:
        return RetryState.BACKOFF
    return RetryState.EXHAUSTED
