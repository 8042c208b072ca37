"""Authentication module for the REST resource client.

This module detects which credential scheme a configuration uses,
enforces the single-method rule for standalone configurations, and
assembles TLS material for certificate based authentication.

:var __all__: List of public exports from this module
:type __all__: List[str]
"""

from .credentials import AuthMethod, detect_auth_methods, validate_auth_configuration
from .tls import (
    TLSMaterial,
    build_tls_config,
    create_ssl_context,
    decode_pkcs12,
    parse_key_pair,
)

__all__ = [
    "AuthMethod",
    "detect_auth_methods",
    "validate_auth_configuration",
    "TLSMaterial",
    "build_tls_config",
    "create_ssl_context",
    "decode_pkcs12",
    "parse_key_pair",
]
