"""Structured exception classes for the REST resource client."""

import json
from enum import Enum
from typing import Any, Dict, Optional


class RestResourceError(Exception):
    """Base exception for all REST resource client errors.

    This exception serves as the parent class for all client specific
    exceptions, providing a consistent interface for error handling
    across configuration, request execution and the resource adapter.

    :param message: Human-readable error message
    :param code: Optional error code for programmatic handling
    :param details: Optional dictionary containing additional error context
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        """Initialize the exception with message, code, and details."""
        super().__init__(message)
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary format.

        :return: Dictionary containing error code, message, and details
        """
        return {
            "error": self.code,
            "message": self.message,
            "details": self.details,
        }

    def to_json(self) -> str:
        """Convert exception to JSON string.

        :return: JSON-encoded string representation of the exception
        """
        return json.dumps(self.to_dict())


class ConfigErrorReason(str, Enum):
    """Reasons a client configuration can be rejected."""

    INVALID_CERTIFICATE = "invalid_certificate"
    FILE_READ_FAILURE = "file_read_failure"
    INVALID_PKCS12 = "invalid_pkcs12"
    MISSING_BASE_URL = "missing_base_url"
    MALFORMED_BASE_URL = "malformed_base_url"
    MISSING_AUTHENTICATION = "missing_authentication"
    MULTIPLE_AUTHENTICATION = "multiple_authentication"
    INCOMPLETE_CERTIFICATE = "incomplete_certificate"


class ConfigError(RestResourceError):
    """Raised when credential or URL setup fails.

    Configuration errors are fatal and surface before any request is
    attempted. They are never retried.

    :param message: Description of the configuration error
    :param reason: Machine-readable reason for the failure
    :param setting: Optional name of the problematic setting
    """

    def __init__(
        self,
        message: str,
        reason: ConfigErrorReason,
        setting: Optional[str] = None,
    ):
        """Initialize configuration error with message, reason and setting."""
        details: Dict[str, Any] = {"reason": reason.value}
        if setting:
            details["setting"] = setting
        super().__init__(message=message, code="CONFIG_ERROR", details=details)
        self.reason = reason
        self.setting = setting


class URLErrorReason(str, Enum):
    """Reasons a target URL cannot be built."""

    MALFORMED = "malformed"


class URLError(RestResourceError):
    """Raised when a target URL cannot be composed.

    :param message: Description of the URL error
    :param url: The URL string that failed to parse
    """

    def __init__(
        self,
        message: str,
        url: Optional[str] = None,
        reason: URLErrorReason = URLErrorReason.MALFORMED,
    ):
        """Initialize URL error with message and the offending URL."""
        details: Dict[str, Any] = {"reason": reason.value}
        if url:
            details["url"] = url
        super().__init__(message=message, code="URL_ERROR", details=details)
        self.reason = reason
        self.url = url


class ExecutionErrorKind(str, Enum):
    """Terminal outcomes of a failed request execution."""

    CANCELLED = "cancelled"
    RETRIES_EXHAUSTED = "retries_exhausted"
    BODY_READ_FAILURE = "body_read_failure"


class ExecutionError(RestResourceError):
    """Raised when a single request execution ends without a response.

    The last underlying cause is kept on ``last_error`` (and chained as
    ``__cause__`` by the executor). When the retry budget ran out on a
    retryable status code, the final response is kept on ``response`` so
    the caller still sees the last status and body.

    :param message: Description of the execution failure
    :param kind: Terminal outcome classification
    :param last_error: Last underlying exception, if any
    :param attempts: Number of attempts made
    :param response: Last response received, if any
    """

    def __init__(
        self,
        message: str,
        kind: ExecutionErrorKind,
        last_error: Optional[BaseException] = None,
        attempts: int = 0,
        response: Optional[Any] = None,
    ):
        """Initialize execution error with kind and failure context."""
        details: Dict[str, Any] = {"kind": kind.value, "attempts": attempts}
        if last_error is not None:
            details["last_error"] = str(last_error)
            details["error_type"] = type(last_error).__name__
        if response is not None:
            details["status_code"] = response.status_code
        super().__init__(message=message, code="EXECUTION_ERROR", details=details)
        self.kind = kind
        self.last_error = last_error
        self.attempts = attempts
        self.response = response


class APIError(RestResourceError):
    """Raised by the resource adapter for unacceptable API responses.

    The executor never raises this; it returns non-2xx responses as-is.
    The adapter decides which status codes are failures.

    :param message: Description of the API error
    :param status_code: Optional HTTP status code from the API response
    :param response_body: Optional response body from the failed request
    """

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        response_body: Optional[str] = None,
    ):
        """Initialize API error with message and optional response details."""
        details: Dict[str, Any] = {}
        if status_code:
            details["status_code"] = status_code
        if response_body:
            details["response_body"] = response_body
        super().__init__(message=message, code="API_ERROR", details=details)
        self.status_code = status_code
        self.response_body = response_body


class ValidationError(RestResourceError):
    """Raised when caller input fails validation.

    :param message: Description of the validation error
    :param field: Optional name of the field that failed validation
    :param value: Optional value that caused the validation failure
    """

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        value: Optional[Any] = None,
    ):
        """Initialize validation error with message and optional field/value."""
        details = {}
        if field:
            details["field"] = field
        if value is not None:
            details["value"] = str(value)
        super().__init__(message=message, code="VALIDATION_ERROR", details=details)
