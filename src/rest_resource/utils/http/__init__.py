"""HTTP utilities public API (barrel module).

This package provides:
- URL composition and default/per-call header merging
- Connection pool construction (timeouts, limits, TLS)
- Retry classification, backoff schedule and state transitions
- The fully-read response type returned by the executor

The executor itself lives in :mod:`rest_resource.utils.http_client`.

Recommended import pattern for consumers:
    from rest_resource.utils.http import build_url, RetryPolicy, Response
"""

from .client_manager import create_http_client, create_limits, create_timeout
from .request import Response
from .retry import (
    DEFAULT_RETRYABLE_STATUS_CODES,
    AttemptOutcome,
    OutcomeKind,
    RetryPolicy,
    RetryState,
    calculate_backoff,
    is_retryable_error,
    is_retryable_status_code,
    next_state,
)
from .url import build_url, default_headers, join_path, merge_headers, validate_base_url

__all__ = [
    "create_http_client",
    "create_limits",
    "create_timeout",
    "Response",
    "DEFAULT_RETRYABLE_STATUS_CODES",
    "AttemptOutcome",
    "OutcomeKind",
    "RetryPolicy",
    "RetryState",
    "calculate_backoff",
    "is_retryable_error",
    "is_retryable_status_code",
    "next_state",
    "build_url",
    "default_headers",
    "join_path",
    "merge_headers",
    "validate_base_url",
]
