"""REST client with retry, backoff and TLS credential support.

This module provides :class:`RestClient`, the request-execution engine
used for every CRUD verb. Each client owns its own pooled
``httpx.AsyncClient``; nothing is shared between clients.

Key Features:

- Base URL validation and endpoint/query composition
- Default headers (content type, accept, user agent, token header)
  merged with per-call headers
- Client certificates from PEM or PKCS12, inline or on disk
- Exponential backoff (1s doubling, capped at 30s) on transport errors,
  unreadable non-2xx bodies and retryable status codes
- Per-attempt timeouts and cooperative cancellation through an
  ``asyncio.Event``

Examples:
    >>> async with RestClient(ClientConfig(base_url="https://api.example.com")) as client:
    ...     response = await client.execute(RequestSpec(method="GET", endpoint="/users"))
"""

import asyncio
import logging
from typing import Dict, Mapping, Optional

import httpx

from ..auth import TLSMaterial, build_tls_config
from ..exceptions import APIError, ExecutionError, ExecutionErrorKind
from ..models import ClientConfig, RequestSpec
from .http.client_manager import create_http_client
from .http.request import Response
from .http.retry import (
    AttemptOutcome,
    OutcomeKind,
    RetryPolicy,
    RetryState,
    is_retryable_error,
    next_state,
)
from .http.url import build_url, default_headers, merge_headers, validate_base_url
from .security import sanitize_headers, sanitize_url

logger = logging.getLogger(__name__)


def _is_cancelled(cancel_event: Optional[asyncio.Event]) -> bool:
    return cancel_event is not None and cancel_event.is_set()


async def _cancellable_sleep(delay: float, cancel_event: Optional[asyncio.Event]) -> bool:
    """Sleep for ``delay`` seconds; return True if cancelled first."""
    if cancel_event is None:
        await asyncio.sleep(delay)
        return False
    try:
        await asyncio.wait_for(cancel_event.wait(), timeout=delay)
    except asyncio.TimeoutError:
        return False
    return True


class RestClient:
    """HTTP client for REST endpoints with retry and backoff.

    The client validates its configuration eagerly: a missing or
    unschemed base URL and unusable certificate material raise
    :class:`~rest_resource.exceptions.ConfigError` from the constructor,
    before any request is made.

    :param config: Client configuration
    :type config: ClientConfig
    :param retry_policy: Backoff schedule and retryable status codes
    :type retry_policy: Optional[RetryPolicy]
    :param transport: Optional httpx transport override
    :type transport: Optional[httpx.AsyncBaseTransport]
    :raises ConfigError: If the base URL or TLS material is invalid
    """

    def __init__(
        self,
        config: ClientConfig,
        retry_policy: Optional[RetryPolicy] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = validate_base_url(config.base_url)
        self.config = config
        self.tls: TLSMaterial = build_tls_config(config)
        self.headers: Dict[str, str] = default_headers(
            user_agent=config.user_agent,
            token=config.token,
            token_header=config.token_header,
            custom_headers=config.custom_headers,
        )
        self.timeout = config.timeout
        self.retries = config.retry_attempts
        self.retry_policy = retry_policy or RetryPolicy()
        self._client = create_http_client(config, self.tls, transport=transport)

    @classmethod
    def from_settings(cls, settings=None, **kwargs) -> "RestClient":
        """Build a client from environment settings.

        :param settings: Settings instance; loaded from the environment if omitted
        :type settings: Optional[Settings]
        :param **kwargs: Passed through to the constructor
        :return: Configured client
        :rtype: RestClient
        """
        from ..config.settings import Settings

        settings = settings or Settings()
        return cls(settings.to_client_config(), **kwargs)

    async def __aenter__(self) -> "RestClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the underlying connection pool."""
        await self._client.aclose()

    @property
    def is_closed(self) -> bool:
        return self._client.is_closed

    def build_url(
        self, endpoint: str, query_params: Optional[Mapping[str, str]] = None
    ) -> str:
        """Compose the full URL for ``endpoint`` relative to the base URL."""
        return build_url(self.base_url, endpoint, query_params)

    async def execute(
        self,
        spec: RequestSpec,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> Response:
        """Execute a request, retrying transient failures.

        Any status code that is not retryable is returned as a normal
        :class:`Response`, including 4xx and 5xx codes outside the
        retryable set.

        :param spec: Request specification
        :type spec: RequestSpec
        :param cancel_event: Event that aborts the call when set, both
                             during network I/O and during backoff
        :type cancel_event: Optional[asyncio.Event]
        :return: The final response
        :rtype: Response
        :raises URLError: If the URL cannot be built
        :raises ExecutionError: ``CANCELLED``, ``RETRIES_EXHAUSTED``,
                                or ``BODY_READ_FAILURE``
        """
        url = self.build_url(spec.endpoint, spec.query_params)
        headers = merge_headers(self.headers, spec.headers)
        timeout = spec.timeout if spec.timeout and spec.timeout > 0 else self.timeout
        max_attempts = spec.retries if spec.retries and spec.retries > 0 else self.retries

        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(
                "=== EXECUTE: %s %s headers=%s",
                spec.method,
                sanitize_url(url),
                sanitize_headers(headers, extra_sensitive=[self.config.token_header]),
            )

        state = RetryState.ATTEMPT
        attempt = 0
        outcome: Optional[AttemptOutcome] = None
        last_error: Optional[BaseException] = None

        while True:
            if state is RetryState.ATTEMPT:
                if _is_cancelled(cancel_event):
                    state = RetryState.CANCELLED
                    continue
                outcome = await self._attempt(spec, url, headers, timeout, cancel_event)
                if outcome.kind is not OutcomeKind.COMPLETED and _is_cancelled(cancel_event):
                    outcome = AttemptOutcome(OutcomeKind.CANCELLED, error=outcome.error)
                if outcome.error is not None:
                    last_error = outcome.error
                    logger.warning(
                        "Request attempt %d/%d failed for %s %s: %s (transient=%s)",
                        attempt + 1,
                        max_attempts,
                        spec.method,
                        sanitize_url(url),
                        outcome.error,
                        is_retryable_error(outcome.error),
                    )
                state = next_state(outcome, attempt, max_attempts)

            elif state is RetryState.BACKOFF:
                delay = self.retry_policy.delay_for(attempt)
                logger.debug("Retrying in %.2fs (attempt %d)", delay, attempt + 2)
                if await _cancellable_sleep(delay, cancel_event):
                    state = RetryState.CANCELLED
                    continue
                attempt += 1
                state = RetryState.ATTEMPT

            elif state is RetryState.DONE:
                response = outcome.response
                response.attempts = attempt + 1
                logger.debug(
                    "HTTP request completed: method=%s url=%s status_code=%d attempt=%d",
                    spec.method,
                    sanitize_url(url),
                    response.status_code,
                    attempt + 1,
                )
                return response

            elif state is RetryState.CANCELLED:
                logger.info("Request cancelled: %s %s", spec.method, sanitize_url(url))
                raise ExecutionError(
                    f"request cancelled after {attempt + 1} attempt(s)",
                    kind=ExecutionErrorKind.CANCELLED,
                    last_error=last_error,
                    attempts=attempt + 1,
                ) from last_error

            elif state is RetryState.FAILED:
                message = f"failed to read response body: {last_error}"
                logger.error("%s %s: %s", spec.method, sanitize_url(url), message)
                raise ExecutionError(
                    message,
                    kind=ExecutionErrorKind.BODY_READ_FAILURE,
                    last_error=last_error,
                    attempts=attempt + 1,
                ) from last_error

            else:  # RetryState.EXHAUSTED
                if outcome.response is not None:
                    outcome.response.attempts = attempt + 1
                logger.error(
                    "Request failed after %d attempts: %s %s: %s",
                    attempt + 1,
                    spec.method,
                    sanitize_url(url),
                    last_error,
                )
                raise ExecutionError(
                    f"request failed after {attempt + 1} attempts: {last_error}",
                    kind=ExecutionErrorKind.RETRIES_EXHAUSTED,
                    last_error=last_error,
                    attempts=attempt + 1,
                    response=outcome.response,
                ) from last_error

    async def _attempt(
        self,
        spec: RequestSpec,
        url: str,
        headers: Dict[str, str],
        timeout: float,
        cancel_event: Optional[asyncio.Event],
    ) -> AttemptOutcome:
        """Run one attempt with a fresh request and its own deadline."""
        request = self._client.build_request(
            spec.method,
            url,
            headers=headers,
            content=spec.body,
            timeout=timeout,
        )
        # Filled in by _send once the status line and headers arrive
        received: Dict[str, int] = {}
        attempt_coro = asyncio.wait_for(
            self._send(request, spec, url, received), timeout
        )

        try:
            if cancel_event is None:
                return await attempt_coro
            return await self._race_cancel(attempt_coro, cancel_event)
        except asyncio.TimeoutError:
            if "status_code" in received:
                return AttemptOutcome(
                    OutcomeKind.BODY_READ_ERROR,
                    status_code=received["status_code"],
                    error=httpx.ReadTimeout(
                        f"body read timeout after {timeout:g}s", request=request
                    ),
                )
            return AttemptOutcome(
                OutcomeKind.TRANSPORT_ERROR,
                error=httpx.TimeoutException(
                    f"attempt timeout after {timeout:g}s", request=request
                ),
            )

    @staticmethod
    async def _race_cancel(attempt_coro, cancel_event: asyncio.Event) -> AttemptOutcome:
        attempt_task = asyncio.ensure_future(attempt_coro)
        cancel_task = asyncio.ensure_future(cancel_event.wait())
        try:
            await asyncio.wait(
                {attempt_task, cancel_task}, return_when=asyncio.FIRST_COMPLETED
            )
        except asyncio.CancelledError:
            attempt_task.cancel()
            raise
        finally:
            cancel_task.cancel()

        if attempt_task.done():
            return attempt_task.result()
        attempt_task.cancel()
        await asyncio.gather(attempt_task, return_exceptions=True)
        return AttemptOutcome(OutcomeKind.CANCELLED)

    async def _send(
        self,
        request: httpx.Request,
        spec: RequestSpec,
        url: str,
        received: Dict[str, int],
    ) -> AttemptOutcome:
        try:
            http_response = await self._client.send(request, stream=True)
        except (httpx.HTTPError, OSError) as e:
            return AttemptOutcome(OutcomeKind.TRANSPORT_ERROR, error=e)

        status_code = http_response.status_code
        received["status_code"] = status_code
        try:
            body = await http_response.aread()
        except (httpx.HTTPError, OSError) as e:
            return AttemptOutcome(
                OutcomeKind.BODY_READ_ERROR, status_code=status_code, error=e
            )
        finally:
            await http_response.aclose()

        response = Response(
            status_code=status_code,
            body=body,
            headers=http_response.headers,
            request=spec,
            url=url,
        )
        if self.retry_policy.should_retry_status(status_code, spec.retry_status_codes):
            return AttemptOutcome(
                OutcomeKind.RETRYABLE_STATUS,
                status_code=status_code,
                error=APIError(
                    f"received retryable status code {status_code}",
                    status_code=status_code,
                    response_body=response.text,
                ),
                response=response,
            )
        return AttemptOutcome(
            OutcomeKind.COMPLETED, status_code=status_code, response=response
        )

    async def request(self, method: str, endpoint: str, **kwargs) -> Response:
        """Build a :class:`RequestSpec` from keyword arguments and execute it."""
        cancel_event = kwargs.pop("cancel_event", None)
        spec = RequestSpec(method=method, endpoint=endpoint, **kwargs)
        return await self.execute(spec, cancel_event=cancel_event)

    async def get(self, endpoint: str, **kwargs) -> Response:
        return await self.request("GET", endpoint, **kwargs)

    async def post(self, endpoint: str, **kwargs) -> Response:
        return await self.request("POST", endpoint, **kwargs)

    async def put(self, endpoint: str, **kwargs) -> Response:
        return await self.request("PUT", endpoint, **kwargs)

    async def patch(self, endpoint: str, **kwargs) -> Response:
        return await self.request("PATCH", endpoint, **kwargs)

    async def delete(self, endpoint: str, **kwargs) -> Response:
        return await self.request("DELETE", endpoint, **kwargs)
