"""Detect and validate the configured authentication method.

A client configuration may carry a header token, a PEM certificate pair
(inline or on disk) or a PKCS12 bundle (inline or on disk). Standalone
provider configurations must choose exactly one of those families and
must supply certificate pairs completely.
"""

import logging
from enum import Enum
from typing import Dict, List

from ..exceptions import ConfigError, ConfigErrorReason
from ..models import ClientConfig

logger = logging.getLogger(__name__)


class AuthMethod(str, Enum):
    """Authentication variants, in the order the TLS assembler checks them."""

    TOKEN = "token"
    PEM_CERTIFICATE = "pem_certificate"
    CERTIFICATE_FILES = "certificate_files"
    PKCS12_BUNDLE = "pkcs12_bundle"
    PKCS12_FILE = "pkcs12_file"
    NONE = "none"


def _present(value) -> bool:
    return bool(value and str(value).strip())


def detect_auth_methods(config: ClientConfig) -> List[AuthMethod]:
    """Return every authentication variant populated in ``config``.

    :param config: Client configuration to inspect
    :type config: ClientConfig
    :return: Populated variants in assembler order (empty if none)
    :rtype: List[AuthMethod]
    """
    methods: List[AuthMethod] = []
    if _present(config.token):
        methods.append(AuthMethod.TOKEN)
    if _present(config.client_cert) and _present(config.client_key):
        methods.append(AuthMethod.PEM_CERTIFICATE)
    if _present(config.client_cert_file) and _present(config.client_key_file):
        methods.append(AuthMethod.CERTIFICATE_FILES)
    if _present(config.pkcs12_bundle):
        methods.append(AuthMethod.PKCS12_BUNDLE)
    if _present(config.pkcs12_file):
        methods.append(AuthMethod.PKCS12_FILE)
    return methods


_FAMILIES: Dict[AuthMethod, str] = {
    AuthMethod.TOKEN: "api_token",
    AuthMethod.PEM_CERTIFICATE: "client certificates",
    AuthMethod.CERTIFICATE_FILES: "client certificates",
    AuthMethod.PKCS12_BUNDLE: "pkcs12 bundle",
    AuthMethod.PKCS12_FILE: "pkcs12 bundle",
}


def validate_auth_configuration(
    config: ClientConfig, require: bool = True
) -> AuthMethod:
    """Enforce the one-authentication-method rule.

    Inline and file-based certificates count as one family, as do inline
    and file-based PKCS12 bundles.

    :param config: Client configuration to validate
    :type config: ClientConfig
    :param require: Whether a configuration without credentials is an error
    :type require: bool
    :return: The selected authentication method
    :rtype: AuthMethod
    :raises ConfigError: If no method, several methods, or half a
                         certificate pair is configured
    """
    pairs = (
        ("client_cert", "client_key"),
        ("client_cert_file", "client_key_file"),
    )
    for cert_field, key_field in pairs:
        has_cert = _present(getattr(config, cert_field))
        has_key = _present(getattr(config, key_field))
        if has_cert != has_key:
            raise ConfigError(
                f"Both {cert_field} and {key_field} must be provided together",
                reason=ConfigErrorReason.INCOMPLETE_CERTIFICATE,
                setting=key_field if has_cert else cert_field,
            )

    methods = detect_auth_methods(config)
    families = {_FAMILIES[m] for m in methods}

    if not families:
        if require:
            raise ConfigError(
                "At least one authentication method must be provided: "
                "api_token, client certificates (cert+key), or pkcs12 bundle",
                reason=ConfigErrorReason.MISSING_AUTHENTICATION,
            )
        return AuthMethod.NONE

    if len(families) > 1:
        raise ConfigError(
            "Only one authentication method should be provided: "
            f"got {', '.join(sorted(families))}",
            reason=ConfigErrorReason.MULTIPLE_AUTHENTICATION,
        )

    logger.debug("Using %s authentication", methods[0].value)
    return methods[0]
