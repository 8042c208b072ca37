"""Shared Pydantic models for the REST resource client.

This module contains the data models used throughout the client:

- Client configuration (base URL, credentials, pool and retry settings)
- Per-call request specifications
- Drift policy and drift reports
- Projected response data
- Resource state owned by the resource adapter
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Optional

from pydantic import BaseModel, Field, field_validator

from .. import __version__

DEFAULT_USER_AGENT = f"rest-resource-client/{__version__}"
DEFAULT_TOKEN_HEADER = "Authorization"

HTTP_METHODS = ("GET", "POST", "PUT", "DELETE", "PATCH", "HEAD", "OPTIONS")


class ClientConfig(BaseModel):
    """Configuration for a :class:`RestClient`.

    Holds the base URL, one authentication variant and the transport
    settings. Only one authentication variant should be populated; the
    settings layer enforces that before building this model, the TLS
    assembler itself just takes the first matching variant.

    :param base_url: Base URL for every request, including scheme
    :type base_url: str
    :param token: API token sent in ``token_header``
    :type token: Optional[str]
    :param token_header: Header name carrying the token
    :type token_header: str
    :param client_cert: Inline PEM client certificate
    :type client_cert: Optional[str]
    :param client_key: Inline PEM client private key
    :type client_key: Optional[str]
    :param client_cert_file: Path to a PEM client certificate
    :type client_cert_file: Optional[str]
    :param client_key_file: Path to a PEM client private key
    :type client_key_file: Optional[str]
    :param pkcs12_bundle: Base64-encoded PKCS12 bundle
    :type pkcs12_bundle: Optional[str]
    :param pkcs12_file: Path to a PKCS12 bundle
    :type pkcs12_file: Optional[str]
    :param pkcs12_password: Password for the PKCS12 bundle
    :type pkcs12_password: Optional[str]
    :param timeout: Default per-attempt timeout in seconds
    :type timeout: float
    :param insecure: Skip TLS certificate verification
    :type insecure: bool
    :param retry_attempts: Default number of attempts per request
    :type retry_attempts: int
    :param max_idle_conns: Maximum idle (keep-alive) connections in the pool
    :type max_idle_conns: int
    :param idle_conn_timeout: Seconds an idle connection is kept
    :type idle_conn_timeout: float
    :param disable_keep_alives: Close connections after each request
    :type disable_keep_alives: bool
    :param user_agent: User-Agent header value
    :type user_agent: str
    :param custom_headers: Extra default headers for every request
    :type custom_headers: Dict[str, str]
    """

    base_url: str = ""

    # Token authentication
    token: Optional[str] = None
    token_header: str = DEFAULT_TOKEN_HEADER

    # Certificate authentication
    client_cert: Optional[str] = None
    client_key: Optional[str] = None
    client_cert_file: Optional[str] = None
    client_key_file: Optional[str] = None

    # PKCS12 authentication
    pkcs12_bundle: Optional[str] = None
    pkcs12_file: Optional[str] = None
    pkcs12_password: Optional[str] = None

    # General options
    timeout: float = 30.0
    insecure: bool = False
    retry_attempts: int = 3
    max_idle_conns: int = 100
    idle_conn_timeout: float = 90.0
    disable_keep_alives: bool = False
    user_agent: str = DEFAULT_USER_AGENT
    custom_headers: Dict[str, str] = Field(default_factory=dict)

    @field_validator("timeout", "idle_conn_timeout")
    @classmethod
    def default_non_positive_durations(cls, v: float, info) -> float:
        """Fall back to defaults for zero or negative durations."""
        if v <= 0:
            return 30.0 if info.field_name == "timeout" else 90.0
        return v

    @field_validator("retry_attempts")
    @classmethod
    def default_retry_attempts(cls, v: int) -> int:
        """Fall back to three attempts when unset or invalid."""
        return v if v > 0 else 3

    @field_validator("max_idle_conns")
    @classmethod
    def default_max_idle_conns(cls, v: int) -> int:
        return v if v > 0 else 100

    @field_validator("user_agent")
    @classmethod
    def default_user_agent(cls, v: str) -> str:
        return v or DEFAULT_USER_AGENT


class RequestSpec(BaseModel):
    """A single logical HTTP call.

    Constructed per call and never persisted. ``timeout`` and ``retries``
    override the client defaults when set to positive values.
    ``retry_status_codes`` adds caller-supplied retryable status codes on
    top of the executor defaults.
    """

    method: str = "GET"
    endpoint: str = ""
    body: Optional[bytes] = None
    headers: Dict[str, str] = Field(default_factory=dict)
    query_params: Dict[str, str] = Field(default_factory=dict)
    timeout: Optional[float] = None
    retries: Optional[int] = None
    retry_status_codes: FrozenSet[int] = frozenset()

    @field_validator("method")
    @classmethod
    def validate_method(cls, v: str) -> str:
        """Normalize the method to upper case and reject unknown verbs."""
        method = (v or "").upper()
        if method not in HTTP_METHODS:
            raise ValueError(
                f"Unsupported HTTP method '{v}', expected one of {', '.join(HTTP_METHODS)}"
            )
        return method

    @field_validator("body", mode="before")
    @classmethod
    def encode_text_body(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.encode("utf-8")
        return v


class DiffKind(str, Enum):
    """Kinds of field-level drift."""

    MISSING = "missing"
    CHANGED = "changed"
    BODY = "body"


class FieldDiff(BaseModel):
    """A single difference between expected and observed data.

    :param path: Dotted field path (empty for whole-body comparisons)
    :type path: str
    :param kind: What kind of difference was found
    :type kind: DiffKind
    :param expected: Expected value
    :type expected: Any
    :param observed: Observed value (None when missing)
    :type observed: Any
    """

    path: str
    kind: DiffKind
    expected: Any = None
    observed: Any = None


class DriftReport(BaseModel):
    """Outcome of a drift comparison."""

    drift_detected: bool = False
    diffs: List[FieldDiff] = Field(default_factory=list)

    @property
    def paths(self) -> List[str]:
        """Dotted paths of all drifted fields."""
        return [d.path for d in self.diffs]


class ProjectedResponse(BaseModel):
    """Flat, string-valued view of a JSON response body.

    :param data: Top-level keys mapped to string values
    :type data: Dict[str, str]
    :param identifier: Top-level string ``id``, if present
    :type identifier: Optional[str]
    :param is_json: Whether the body parsed as a JSON object
    :type is_json: bool
    :param received_at: When the body was projected
    :type received_at: datetime
    """

    data: Dict[str, str] = Field(default_factory=dict)
    identifier: Optional[str] = None
    is_json: bool = False
    received_at: datetime


class ResourceState(BaseModel):
    """Persisted state of a managed REST resource.

    Owned by the resource adapter; the core only reads and writes the
    fields below on each call.
    """

    id: Optional[str] = None
    endpoint: str
    name: str

    # Per-operation method overrides and the legacy shared method
    create_method: Optional[str] = None
    read_method: Optional[str] = None
    update_method: Optional[str] = None
    delete_method: Optional[str] = None
    method: Optional[str] = None

    body: Optional[str] = None
    update_body: Optional[str] = None
    destroy_body: Optional[str] = None

    headers: Dict[str, str] = Field(default_factory=dict)
    query_params: Dict[str, str] = Field(default_factory=dict)
    timeout: Optional[float] = None
    retry_attempts: Optional[int] = None

    response: Optional[str] = None
    status_code: Optional[int] = None
    parsed_data: Dict[str, str] = Field(default_factory=dict)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    drift_detected: bool = False


class QueryResult(BaseModel):
    """Result of a one-off (data source) request.

    :param id: Full request URL, used as the identifier
    :type id: str
    :param status_code: HTTP status code
    :type status_code: int
    :param response: Raw response body
    :type response: str
    :param parsed_data: Projected top-level fields of a JSON object body
    :type parsed_data: Dict[str, str]
    """

    id: str
    status_code: int
    response: str = ""
    parsed_data: Dict[str, str] = Field(default_factory=dict)
