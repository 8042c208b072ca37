"""URL and header composition for outgoing requests.

Endpoints are always relative to the client's base URL. Query parameters
are percent-encoded and appended to any query already present on the
endpoint. Header names are matched case-insensitively when per-call
headers override the client defaults.
"""

from typing import Dict, Mapping, Optional
from urllib.parse import parse_qsl, urlencode, urlparse, urlunparse

import httpx

from ...exceptions import ConfigError, ConfigErrorReason, URLError
from ...models import DEFAULT_USER_AGENT


def validate_base_url(base_url: Optional[str]) -> str:
    """Check that a base URL is present and carries a scheme and host.

    :param base_url: Base URL from configuration
    :type base_url: Optional[str]
    :return: The base URL with trailing slashes removed
    :rtype: str
    :raises ConfigError: ``MISSING_BASE_URL`` or ``MALFORMED_BASE_URL``
    """
    if not base_url or not base_url.strip():
        raise ConfigError(
            "base URL is required",
            reason=ConfigErrorReason.MISSING_BASE_URL,
            setting="base_url",
        )
    base_url = base_url.strip()
    try:
        parsed = httpx.URL(base_url)
    except httpx.InvalidURL as e:
        raise ConfigError(
            f"invalid base URL: {e}",
            reason=ConfigErrorReason.MALFORMED_BASE_URL,
            setting="base_url",
        ) from e
    if not parsed.scheme:
        raise ConfigError(
            "base URL must include a scheme (http or https)",
            reason=ConfigErrorReason.MALFORMED_BASE_URL,
            setting="base_url",
        )
    if parsed.scheme not in ("http", "https") or not parsed.host:
        raise ConfigError(
            f"base URL must be an absolute http(s) URL, got '{base_url}'",
            reason=ConfigErrorReason.MALFORMED_BASE_URL,
            setting="base_url",
        )
    return base_url.rstrip("/")


def join_path(endpoint: str, name: str) -> str:
    """Append a resource name to an endpoint path with a single slash."""
    return f"{endpoint.rstrip('/')}/{name.lstrip('/')}"


def build_url(
    base: str,
    endpoint: str,
    query_params: Optional[Mapping[str, str]] = None,
) -> str:
    """Compose the full request URL.

    One leading slash is stripped from ``endpoint`` and the remainder is
    joined to ``base`` with exactly one slash. Query parameters are added
    with standard percent-encoding; their order is not guaranteed.

    :param base: Base URL (trailing slashes are ignored)
    :type base: str
    :param endpoint: Endpoint relative to the base URL
    :type endpoint: str
    :param query_params: Optional query parameters
    :type query_params: Optional[Mapping[str, str]]
    :return: Full URL
    :rtype: str
    :raises URLError: If the result does not parse as a URL
    """
    if endpoint.startswith("/"):
        endpoint = endpoint[1:]
    full_url = f"{base.rstrip('/')}/{endpoint}"

    try:
        parsed = urlparse(full_url)
        if query_params:
            query = parse_qsl(parsed.query, keep_blank_values=True)
            query.extend((str(k), str(v)) for k, v in query_params.items())
            parsed = parsed._replace(query=urlencode(query))
        result = urlunparse(parsed)
        httpx.URL(result)
    except (ValueError, httpx.InvalidURL) as e:
        raise URLError(f"failed to build URL: {e}", url=full_url) from e
    return result


def default_headers(
    user_agent: Optional[str] = None,
    token: Optional[str] = None,
    token_header: Optional[str] = None,
    custom_headers: Optional[Mapping[str, str]] = None,
) -> Dict[str, str]:
    """Build the headers sent with every request.

    :param user_agent: User-Agent value
    :param token: API token, sent verbatim in ``token_header``
    :param token_header: Header name for the token
    :param custom_headers: Extra headers that override the defaults
    :return: Default header map
    """
    headers = {
        "User-Agent": user_agent or DEFAULT_USER_AGENT,
        "Accept": "application/json",
        "Content-Type": "application/json",
    }
    if token and token_header:
        headers[token_header] = token
    return merge_headers(headers, custom_headers)


def merge_headers(
    defaults: Mapping[str, str], per_call: Optional[Mapping[str, str]] = None
) -> Dict[str, str]:
    """Merge per-call headers over defaults.

    A per-call header replaces any default with the same name regardless
    of case; the per-call spelling wins.

    :param defaults: Default headers
    :type defaults: Mapping[str, str]
    :param per_call: Per-call headers
    :type per_call: Optional[Mapping[str, str]]
    :return: Final header map
    :rtype: Dict[str, str]
    """
    merged: Dict[str, str] = dict(defaults)
    for name, value in (per_call or {}).items():
        for existing in [k for k in merged if k.lower() == name.lower()]:
            del merged[existing]
        merged[name] = value
    return merged
