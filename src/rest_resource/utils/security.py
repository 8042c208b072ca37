"""Sanitization helpers and secure logging setup.

This module keeps credentials out of log output:
- Redaction of tokens, keys and PEM material in strings
- Redaction of sensitive HTTP headers
- Redaction of secret query parameters in URLs
- A logging formatter that applies the redaction to every record
"""

import copy
import logging
import re
import sys
from typing import Any, Dict, Iterable, Optional

# Patterns for sensitive data detection
SENSITIVE_PATTERNS = {
    "private_key": re.compile(r"-----BEGIN [A-Z ]*PRIVATE KEY-----"),
    "jwt_token": re.compile(r"eyJ[A-Za-z0-9_-]+\.[A-Za-z0-9_-]+\.[A-Za-z0-9_-]+"),
    "bearer_token": re.compile(r"Bearer\s+[A-Za-z0-9._~+/=-]+", re.IGNORECASE),
    "basic_auth": re.compile(r"Basic\s+[A-Za-z0-9+/=]+", re.IGNORECASE),
}

# Headers that should never be logged
SENSITIVE_HEADERS = {
    "authorization",
    "proxy-authorization",
    "x-api-key",
    "x-auth-token",
    "cookie",
    "set-cookie",
    "x-csrf-token",
    "x-access-token",
    "x-refresh-token",
}

SENSITIVE_PARAMS = (
    "token",
    "key",
    "secret",
    "password",
    "auth",
    "access_token",
    "api_key",
    "client_secret",
)


def sanitize_string(value: str, partial: bool = False) -> str:
    """Sanitize a string containing potential sensitive data.

    Sensitive fragments are replaced in place; the rest of the string is
    kept so log lines stay readable.

    :param value: String to sanitize
    :type value: str
    :param partial: If True, show the fragment length instead of a bare tag
    :type partial: bool
    :return: String with sensitive data redacted
    :rtype: str
    """
    if not value:
        return value
    for pattern_name, pattern in SENSITIVE_PATTERNS.items():
        if pattern_name == "private_key" and pattern.search(value):
            return f"<{pattern_name}:REDACTED>"

        def _redact(match, name=pattern_name):
            if partial:
                return f"<{name}:length={len(match.group(0))}>"
            return f"<{name}:REDACTED>"

        value = pattern.sub(_redact, value)
    return value


def sanitize_headers(
    headers: Optional[Dict[str, Any]], extra_sensitive: Iterable[str] = ()
) -> Optional[Dict[str, Any]]:
    """Sanitize HTTP headers for logging.

    :param headers: Dictionary of HTTP headers
    :type headers: Optional[Dict[str, Any]]
    :param extra_sensitive: Additional header names to redact, such as a
                            custom token header
    :type extra_sensitive: Iterable[str]
    :return: Sanitized headers dictionary
    :rtype: Optional[Dict[str, Any]]
    """
    if not headers:
        return headers
    sensitive = SENSITIVE_HEADERS | {h.lower() for h in extra_sensitive}
    sanitized = copy.deepcopy(dict(headers))
    for key, value in sanitized.items():
        if key.lower() in sensitive:
            if isinstance(value, str) and len(value) > 0:
                sanitized[key] = f"<REDACTED:length={len(value)}>"
            else:
                sanitized[key] = "<REDACTED>"
        elif isinstance(value, str):
            sanitized[key] = sanitize_string(value)
    return sanitized


def sanitize_url(url: str) -> str:
    """Sanitize URLs that might contain tokens or keys.

    :param url: URL to sanitize
    :type url: str
    :return: URL with sensitive query parameters redacted
    :rtype: str
    """
    if not url:
        return url
    for param in SENSITIVE_PARAMS:
        url = re.sub(
            rf"([?&]{param}=)[^&\s#]+", r"\1<REDACTED>", url, flags=re.IGNORECASE
        )
    return url


class SanitizingFormatter(logging.Formatter):
    """Formatter that automatically sanitizes sensitive data."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record with automatic sanitization.

        :param record: Log record to format
        :type record: logging.LogRecord
        :return: Sanitized log message
        :rtype: str
        """
        try:
            record.msg = sanitize_string(record.getMessage())
            record.args = None
        except (TypeError, ValueError) as e:
            print(f"Warning: Failed to sanitize log record: {e}", file=sys.stderr)
        return super().format(record)


# Global flag to track if logging has been set up
_LOGGING_CONFIGURED = False


def setup_secure_logging(level: str = "INFO") -> None:
    """Set up logging with automatic sanitization.

    Installs a single stdout handler with :class:`SanitizingFormatter` on
    the root logger. Repeated calls only adjust the level.

    :param level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    :type level: str
    """
    global _LOGGING_CONFIGURED

    numeric_level = getattr(logging, level.upper(), logging.INFO)
    if _LOGGING_CONFIGURED:
        logging.getLogger().setLevel(numeric_level)
        logging.getLogger(__name__).debug(
            "Logging already configured, skipping duplicate setup"
        )
        return

    formatter = SanitizingFormatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    logging.basicConfig(level=numeric_level, handlers=[handler], force=True)

    # httpx logs every request at INFO, including full URLs
    for logger_name in ("httpx", "httpcore"):
        logging.getLogger(logger_name).setLevel(
            max(numeric_level, logging.WARNING)
        )

    _LOGGING_CONFIGURED = True
