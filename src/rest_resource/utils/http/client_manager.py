"""HTTP client construction with connection pooling.

This module builds the ``httpx.AsyncClient`` owned by a
:class:`~rest_resource.utils.http_client.RestClient`. Every RestClient
gets its own pool; there is no process-wide client cache, so two clients
never share connections or TLS settings.
"""

import logging
from typing import Any, Dict, Optional

import httpx

from ...auth import TLSMaterial
from ...models import ClientConfig

logger = logging.getLogger(__name__)

TLS_HANDSHAKE_TIMEOUT = 10.0


def create_timeout(
    timeout: float = 30.0,
    connect: Optional[float] = TLS_HANDSHAKE_TIMEOUT,
) -> httpx.Timeout:
    """Create a timeout configuration object.

    The connect phase (which includes the TLS handshake) is bounded by
    ``connect`` but never exceeds the overall ``timeout``.

    :param timeout: Read, write and pool timeout in seconds
    :type timeout: float
    :param connect: Connection and handshake timeout in seconds
    :type connect: Optional[float]
    :return: Configured timeout object
    :rtype: httpx.Timeout
    """
    if connect is None or connect > timeout:
        connect = timeout
    return httpx.Timeout(timeout, connect=connect)


def create_limits(
    max_idle_conns: int = 100,
    idle_conn_timeout: float = 90.0,
    disable_keep_alives: bool = False,
) -> httpx.Limits:
    """Create a connection limits configuration object.

    Disabling keep-alives is expressed as a pool that keeps no idle
    connections.

    :param max_idle_conns: Maximum number of idle keep-alive connections
    :type max_idle_conns: int
    :param idle_conn_timeout: Seconds an idle connection stays in the pool
    :type idle_conn_timeout: float
    :param disable_keep_alives: Close every connection after use
    :type disable_keep_alives: bool
    :return: Configured limits object
    :rtype: httpx.Limits
    """
    return httpx.Limits(
        max_keepalive_connections=0 if disable_keep_alives else max_idle_conns,
        max_connections=None,
        keepalive_expiry=idle_conn_timeout,
    )


def create_http_client(
    config: ClientConfig,
    tls: TLSMaterial,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    **kwargs,
) -> httpx.AsyncClient:
    """Create a pooled async HTTP client for ``config``.

    :param config: Client configuration
    :type config: ClientConfig
    :param tls: Assembled TLS material
    :type tls: TLSMaterial
    :param transport: Optional transport override (used by tests)
    :type transport: Optional[httpx.AsyncBaseTransport]
    :param **kwargs: Additional ``httpx.AsyncClient`` options
    :return: Configured HTTP client instance
    :rtype: httpx.AsyncClient
    """
    client_config: Dict[str, Any] = {
        "timeout": create_timeout(config.timeout),
        "limits": create_limits(
            config.max_idle_conns,
            config.idle_conn_timeout,
            config.disable_keep_alives,
        ),
        "verify": tls.ssl_context,
        "follow_redirects": True,
        **kwargs,
    }
    if transport is not None:
        client_config["transport"] = transport

    client = httpx.AsyncClient(**client_config)
    logger.debug(
        "Created HTTP client (max_idle=%d, keepalive=%s, tls=%s)",
        config.max_idle_conns,
        not config.disable_keep_alives,
        tls.source.value,
    )
    return client
