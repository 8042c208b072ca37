"""Lifecycle operations for REST-backed resources.

:class:`ResourceManager` turns :class:`~rest_resource.models.ResourceState`
into requests and responses back into state. It never talks to the
network directly: every call goes through :meth:`RestClient.execute`,
and read results are checked for drift with the configured
:class:`~rest_resource.utils.drift.DriftPolicy`.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Dict, Optional

from ..models import QueryResult, RequestSpec, ResourceState
from ..utils.drift import DriftPolicy
from ..utils.http.request import Response
from ..utils.http.url import join_path
from ..utils.http_client import RestClient
from ..utils.response_projector import project
from .methods import Operation, StatusPolicy, parse_import_id, resolve_method

logger = logging.getLogger(__name__)

EMPTY_BODY = "{}"

# Methods that carry a request body in one-off queries
_BODY_METHODS = frozenset({"POST", "PUT", "PATCH"})


def _now() -> datetime:
    return datetime.now(timezone.utc)


class ResourceManager:
    """Create, read, update and delete resources through a RestClient.

    :param client: Executor used for every request
    :type client: RestClient
    :param drift_policy: Drift detection settings for reads
    :type drift_policy: Optional[DriftPolicy]
    :param status_policy: Expected status codes per operation
    :type status_policy: Optional[StatusPolicy]
    """

    def __init__(
        self,
        client: RestClient,
        drift_policy: Optional[DriftPolicy] = None,
        status_policy: Optional[StatusPolicy] = None,
    ):
        self.client = client
        self.drift_policy = drift_policy or DriftPolicy()
        self.status_policy = status_policy or StatusPolicy()

    def _spec(
        self,
        state: ResourceState,
        method: str,
        endpoint: str,
        body: Optional[str] = None,
    ) -> RequestSpec:
        return RequestSpec(
            method=method,
            endpoint=endpoint,
            body=body,
            headers=state.headers,
            query_params=state.query_params,
            timeout=state.timeout,
            retries=state.retry_attempts,
            retry_status_codes=self.status_policy.retry_on_status,
        )

    async def _run(
        self,
        operation: Operation,
        spec: RequestSpec,
        cancel_event: Optional[asyncio.Event],
    ) -> Response:
        response = await self.client.execute(spec, cancel_event=cancel_event)
        self.status_policy.check(operation, response.status_code, response.text)
        return response

    async def create(
        self, state: ResourceState, cancel_event: Optional[asyncio.Event] = None
    ) -> ResourceState:
        """Create the resource and return its new state.

        The body defaults to an empty JSON object. The identifier is the
        ``id`` field of the response, or ``endpoint/name`` when the
        response has none.

        :param state: Desired state
        :type state: ResourceState
        :param cancel_event: Event that aborts the request when set
        :type cancel_event: Optional[asyncio.Event]
        :return: State including response, status code and parsed data
        :rtype: ResourceState
        :raises APIError: If the status code is not expected for create
        :raises ExecutionError: If the request cannot be completed
        """
        method = resolve_method(Operation.CREATE, state.create_method, state.method)
        spec = self._spec(state, method, state.endpoint, state.body or EMPTY_BODY)
        response = await self._run(Operation.CREATE, spec, cancel_event)

        projected = project(response.body)
        now = _now()
        logger.info(
            "Created resource %s at %s (status %d)",
            state.name,
            state.endpoint,
            response.status_code,
        )
        return state.model_copy(
            update={
                "id": projected.identifier or join_path(state.endpoint, state.name),
                "response": response.text,
                "status_code": response.status_code,
                "parsed_data": projected.data,
                "created_at": now,
                "updated_at": now,
                "drift_detected": False,
            }
        )

    async def read(
        self, state: ResourceState, cancel_event: Optional[asyncio.Event] = None
    ) -> Optional[ResourceState]:
        """Refresh the state from the server.

        A 404 means the resource is gone and returns ``None``. Drift
        against the configured body is detected and recorded but never
        fails the read.

        :param state: Current state
        :type state: ResourceState
        :param cancel_event: Event that aborts the request when set
        :type cancel_event: Optional[asyncio.Event]
        :return: Refreshed state, or None if the resource no longer exists
        :rtype: Optional[ResourceState]
        """
        method = resolve_method(Operation.READ, state.read_method, state.method)
        spec = self._spec(state, method, join_path(state.endpoint, state.name))
        response = await self.client.execute(spec, cancel_event=cancel_event)
        if response.status_code == 404:
            logger.info("Resource %s no longer exists at %s", state.name, state.endpoint)
            return None
        self.status_policy.check(Operation.READ, response.status_code, response.text)

        drift_detected = False
        if state.body:
            report = self.drift_policy.check(state.body, response.body)
            drift_detected = report.drift_detected

        projected = project(response.body)
        return state.model_copy(
            update={
                "id": state.id or projected.identifier or join_path(state.endpoint, state.name),
                "response": response.text,
                "status_code": response.status_code,
                "parsed_data": projected.data,
                "drift_detected": drift_detected,
            }
        )

    async def update(
        self, state: ResourceState, cancel_event: Optional[asyncio.Event] = None
    ) -> ResourceState:
        """Send the update body (or the create body) to ``endpoint/name``."""
        method = resolve_method(Operation.UPDATE, state.update_method, state.method)
        body = state.update_body or state.body or EMPTY_BODY
        spec = self._spec(state, method, join_path(state.endpoint, state.name), body)
        response = await self._run(Operation.UPDATE, spec, cancel_event)

        projected = project(response.body)
        logger.info("Updated resource %s (status %d)", state.name, response.status_code)
        return state.model_copy(
            update={
                "response": response.text,
                "status_code": response.status_code,
                "parsed_data": projected.data if projected.is_json else state.parsed_data,
                "updated_at": _now(),
                "drift_detected": False,
            }
        )

    async def delete(
        self, state: ResourceState, cancel_event: Optional[asyncio.Event] = None
    ) -> None:
        """Delete the resource, sending the destroy body."""
        method = resolve_method(Operation.DELETE, state.delete_method, state.method)
        spec = self._spec(
            state,
            method,
            join_path(state.endpoint, state.name),
            state.destroy_body or EMPTY_BODY,
        )
        response = await self._run(Operation.DELETE, spec, cancel_event)
        logger.info("Deleted resource %s (status %d)", state.name, response.status_code)

    async def import_state(
        self, import_id: str, cancel_event: Optional[asyncio.Event] = None
    ) -> Optional[ResourceState]:
        """Adopt an existing resource from an ``endpoint/name`` identifier.

        :param import_id: Identifier such as ``/api/users/john``
        :type import_id: str
        :param cancel_event: Event that aborts the request when set
        :type cancel_event: Optional[asyncio.Event]
        :return: State read from the server, or None if it does not exist
        :rtype: Optional[ResourceState]
        :raises ValidationError: If the identifier is malformed
        """
        endpoint, name = parse_import_id(import_id)
        state = ResourceState(id=join_path(endpoint, name), endpoint=endpoint, name=name)
        return await self.read(state, cancel_event=cancel_event)

    async def query(
        self,
        endpoint: str,
        method: str = "GET",
        headers: Optional[Dict[str, str]] = None,
        body: Optional[str] = None,
        query_params: Optional[Dict[str, str]] = None,
        timeout: Optional[float] = None,
        retries: Optional[int] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> QueryResult:
        """Perform a one-off request and project its response.

        Any status code is returned to the caller unless it is listed in
        the policy's ``fail_on_status``. The body is only sent for POST,
        PUT and PATCH.

        :param endpoint: Endpoint relative to the base URL
        :type endpoint: str
        :param method: HTTP method
        :type method: str
        :param headers: Per-call headers
        :type headers: Optional[Dict[str, str]]
        :param body: Request body
        :type body: Optional[str]
        :param query_params: Query parameters
        :type query_params: Optional[Dict[str, str]]
        :param timeout: Per-attempt timeout override
        :type timeout: Optional[float]
        :param retries: Attempt count override
        :type retries: Optional[int]
        :param cancel_event: Event that aborts the request when set
        :type cancel_event: Optional[asyncio.Event]
        :return: Status, raw body, projected data and the request URL as id
        :rtype: QueryResult
        """
        spec = RequestSpec(
            method=method or "GET",
            endpoint=endpoint,
            body=body,
            headers=headers or {},
            query_params=query_params or {},
            timeout=timeout,
            retries=retries,
            retry_status_codes=self.status_policy.retry_on_status,
        )
        if spec.method not in _BODY_METHODS:
            spec = spec.model_copy(update={"body": None})

        response = await self.client.execute(spec, cancel_event=cancel_event)
        if response.status_code in self.status_policy.fail_on_status:
            self.status_policy.check(Operation.READ, response.status_code, response.text)

        return QueryResult(
            id=response.url,
            status_code=response.status_code,
            response=response.text,
            parsed_data=project(response.body).data,
        )
