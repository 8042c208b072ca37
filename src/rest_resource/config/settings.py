"""Configuration settings for the REST resource client.

This module defines the settings used to build a standalone client:
the API base URL, exactly one authentication method, transport tuning
and the drift policy. Settings are loaded from ``REST_*`` environment
variables and .env files.
"""

from typing import List, Literal, Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..auth import validate_auth_configuration
from ..exceptions import ConfigError, ConfigErrorReason
from ..models import DEFAULT_TOKEN_HEADER, DEFAULT_USER_AGENT, ClientConfig
from ..utils.drift import DriftPolicy


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Every field maps to ``REST_<FIELD>`` (case-insensitive), except the
    logging level which is read from ``LOG_LEVEL``.

    :param api_url: Base URL of the REST API
    :type api_url: Optional[str]
    :param api_token: API token for header authentication
    :type api_token: Optional[str]
    :param api_header: Header name carrying the token
    :type api_header: str
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
    :param pkcs12_password: PKCS12 password
    :type pkcs12_password: Optional[str]
    :param timeout: Default per-attempt timeout in seconds
    :type timeout: float
    :param insecure: Skip TLS certificate verification
    :type insecure: bool
    :param retry_attempts: Default attempts per request
    :type retry_attempts: int
    :param max_idle_conns: Maximum idle pooled connections
    :type max_idle_conns: int
    :param idle_conn_timeout: Seconds an idle connection is kept
    :type idle_conn_timeout: float
    :param disable_keep_alives: Close connections after each request
    :type disable_keep_alives: bool
    :param user_agent: User-Agent header value
    :type user_agent: str
    :param drift_detection: Run drift detection on reads
    :type drift_detection: bool
    :param drift_ignore_fields: Comma-separated extra fields to ignore
    :type drift_ignore_fields: Optional[str]
    :param log_level: Logging level for the application
    :type log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
    """

    model_config = SettingsConfigDict(
        env_prefix="REST_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # Ignore extra fields in .env file
    )

    # API
    api_url: Optional[str] = Field(None, description="Base URL of the REST API")

    # Token authentication
    api_token: Optional[str] = Field(None, description="API token")
    api_header: str = Field(
        DEFAULT_TOKEN_HEADER, description="Header name used to send the API token"
    )

    # Certificate authentication
    client_cert: Optional[str] = Field(None, description="Inline PEM certificate")
    client_key: Optional[str] = Field(None, description="Inline PEM private key")
    client_cert_file: Optional[str] = Field(None, description="PEM certificate path")
    client_key_file: Optional[str] = Field(None, description="PEM private key path")

    # PKCS12 authentication
    pkcs12_bundle: Optional[str] = Field(None, description="Base64 PKCS12 bundle")
    pkcs12_file: Optional[str] = Field(None, description="PKCS12 bundle path")
    pkcs12_password: Optional[str] = Field(None, description="PKCS12 password")

    # Transport
    timeout: float = Field(30.0, description="Per-attempt timeout in seconds")
    insecure: bool = Field(False, description="Skip TLS certificate verification")
    retry_attempts: int = Field(3, description="Attempts per request")
    max_idle_conns: int = Field(100, description="Maximum idle pooled connections")
    idle_conn_timeout: float = Field(
        90.0, description="Seconds an idle connection is kept"
    )
    disable_keep_alives: bool = Field(
        False, description="Close connections after each request"
    )
    user_agent: str = Field(DEFAULT_USER_AGENT, description="User-Agent header")

    # Drift detection
    drift_detection: bool = Field(True, description="Run drift detection on reads")
    drift_ignore_fields: Optional[str] = Field(
        None, description="Comma-separated field names ignored during drift detection"
    )

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        "INFO",
        validation_alias=AliasChoices("LOG_LEVEL", "REST_LOG_LEVEL"),
        description="Logging level",
    )

    @property
    def ignore_fields(self) -> List[str]:
        """User-supplied drift ignore fields as a list."""
        if not self.drift_ignore_fields:
            return []
        return [f.strip() for f in self.drift_ignore_fields.split(",") if f.strip()]

    def drift_policy(self) -> DriftPolicy:
        """Build the drift policy described by these settings."""
        return DriftPolicy(enabled=self.drift_detection, ignore_fields=self.ignore_fields)

    def to_client_config(self) -> ClientConfig:
        """Build a validated client configuration.

        The API URL is required and exactly one authentication method must
        be configured; certificate and key must be supplied together.

        :return: Client configuration
        :rtype: ClientConfig
        :raises ConfigError: ``MISSING_BASE_URL``, ``MISSING_AUTHENTICATION``,
                             ``MULTIPLE_AUTHENTICATION`` or
                             ``INCOMPLETE_CERTIFICATE``
        """
        if not self.api_url or not self.api_url.strip():
            raise ConfigError(
                "REST_API_URL is required",
                reason=ConfigErrorReason.MISSING_BASE_URL,
                setting="api_url",
            )

        config = ClientConfig(
            base_url=self.api_url.strip(),
            token=self.api_token,
            token_header=self.api_header or DEFAULT_TOKEN_HEADER,
            client_cert=self.client_cert,
            client_key=self.client_key,
            client_cert_file=self.client_cert_file,
            client_key_file=self.client_key_file,
            pkcs12_bundle=self.pkcs12_bundle,
            pkcs12_file=self.pkcs12_file,
            pkcs12_password=self.pkcs12_password,
            timeout=self.timeout,
            insecure=self.insecure,
            retry_attempts=self.retry_attempts,
            max_idle_conns=self.max_idle_conns,
            idle_conn_timeout=self.idle_conn_timeout,
            disable_keep_alives=self.disable_keep_alives,
            user_agent=self.user_agent,
        )
        validate_auth_configuration(config, require=True)
        return config
