"""Normalized HTTP response returned by the executor.

The executor reads the whole body before returning, so a
:class:`Response` is a plain value: status code, body bytes, the header
multimap and the request specification it answers.
"""

import json
from typing import Any, List, Optional

import httpx

from ...models import RequestSpec


class Response:
    """Fully-read HTTP response with convenient access methods.

    The status code is reported as-is; whether it counts as success is
    decided by the caller. JSON parsing is cached.
    """

    def __init__(
        self,
        status_code: int,
        body: bytes,
        headers: httpx.Headers,
        request: RequestSpec,
        url: str = "",
        attempts: int = 1,
    ):
        """Initialize the response.

        :param status_code: HTTP status code
        :type status_code: int
        :param body: Raw response body
        :type body: bytes
        :param headers: Response headers (multi-valued)
        :type headers: httpx.Headers
        :param request: Specification of the originating request
        :type request: RequestSpec
        :param url: Final request URL
        :type url: str
        :param attempts: Number of attempts the executor made
        :type attempts: int
        """
        self.status_code = status_code
        self.body = body
        self.headers = headers
        self.request = request
        self.url = url
        self.attempts = attempts
        self._json_cache: Optional[Any] = None

    @property
    def text(self) -> str:
        """Get the response body decoded as UTF-8 text."""
        return self.body.decode("utf-8", errors="replace")

    def json(self) -> Any:
        """Get the response body as parsed JSON.

        :return: Parsed JSON response
        :rtype: Any
        :raises ValueError: If the body is not valid JSON
        """
        if self._json_cache is None:
            self._json_cache = json.loads(self.body)
        return self._json_cache

    def header_values(self, name: str) -> List[str]:
        """Return every value of a (possibly repeated) header."""
        return self.headers.get_list(name)

    def __repr__(self) -> str:
        return (
            f"<Response [{self.status_code}] {self.request.method} {self.url or self.request.endpoint}>"
        )
