"""TLS material assembly for client-certificate authentication.

This module turns the certificate settings of a :class:`ClientConfig`
into an :class:`ssl.SSLContext` that httpx can use. Four sources are
supported and checked in a fixed order, the first populated one wins:

1. Inline PEM certificate and key
2. PEM certificate and key files
3. Inline base64 PKCS12 bundle
4. PKCS12 bundle file

When none is populated (token or no authentication) the context carries
no client certificate. The insecure flag is applied in every case.
"""

import base64
import binascii
import logging
import os
import ssl
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple

from cryptography import x509
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.serialization import pkcs12

from ..exceptions import ConfigError, ConfigErrorReason
from ..models import ClientConfig
from .credentials import AuthMethod

logger = logging.getLogger(__name__)


@dataclass
class TLSMaterial:
    """Assembled TLS client configuration.

    :param ssl_context: Context to hand to the HTTP transport
    :param certificate: Leaf client certificate, if one was configured
    :param source: Which configuration variant produced the certificate
    :param insecure: Whether certificate verification is disabled
    """

    ssl_context: ssl.SSLContext
    certificate: Optional[x509.Certificate] = None
    source: AuthMethod = AuthMethod.NONE
    insecure: bool = False

    @property
    def has_client_certificate(self) -> bool:
        return self.certificate is not None


def _public_key_der(key) -> bytes:
    return key.public_bytes(
        serialization.Encoding.DER,
        serialization.PublicFormat.SubjectPublicKeyInfo,
    )


def parse_key_pair(cert_pem: bytes, key_pem: bytes) -> Tuple[x509.Certificate, object]:
    """Parse a PEM certificate and private key and check they belong together.

    :param cert_pem: PEM-encoded certificate
    :type cert_pem: bytes
    :param key_pem: PEM-encoded unencrypted private key
    :type key_pem: bytes
    :return: Parsed certificate and private key
    :raises ValueError: If either part is invalid or the key does not
                        match the certificate
    """
    cert = x509.load_pem_x509_certificate(cert_pem)
    key = serialization.load_pem_private_key(key_pem, password=None)
    if _public_key_der(cert.public_key()) != _public_key_der(key.public_key()):
        raise ValueError("private key does not match certificate public key")
    return cert, key


def decode_pkcs12(data: bytes, password: Optional[str]) -> Tuple[x509.Certificate, object]:
    """Decode a PKCS12 bundle into its leaf certificate and private key.

    :param data: Raw PKCS12 bytes
    :type data: bytes
    :param password: Bundle password (None or empty for unprotected bundles)
    :type password: Optional[str]
    :return: Leaf certificate and private key
    :raises ValueError: If the bundle cannot be decoded or lacks a key or
                        certificate
    """
    secret = password.encode("utf-8") if password else None
    key, cert, _ = pkcs12.load_key_and_certificates(data, secret)
    if key is None:
        raise ValueError("PKCS12 bundle contains no private key")
    if cert is None:
        raise ValueError("PKCS12 bundle contains no certificate")
    return cert, key


def _load_into_context(
    context: ssl.SSLContext, cert: x509.Certificate, key
) -> None:
    # SSLContext only loads chains from files
    cert_pem = cert.public_bytes(serialization.Encoding.PEM)
    key_pem = key.private_bytes(
        serialization.Encoding.PEM,
        serialization.PrivateFormat.PKCS8,
        serialization.NoEncryption(),
    )
    with tempfile.TemporaryDirectory() as tmp:
        cert_path = os.path.join(tmp, "client.crt")
        key_path = os.path.join(tmp, "client.key")
        with open(cert_path, "wb") as fh:
            fh.write(cert_pem)
        with open(key_path, "wb") as fh:
            fh.write(key_pem)
        os.chmod(key_path, 0o600)
        context.load_cert_chain(cert_path, key_path)


def create_ssl_context(insecure: bool = False) -> ssl.SSLContext:
    """Create a client SSL context, optionally without verification."""
    context = ssl.create_default_context()
    if insecure:
        context.check_hostname = False
        context.verify_mode = ssl.CERT_NONE
    return context


def _config_error(message: str, reason: ConfigErrorReason, setting: str, exc) -> ConfigError:
    logger.error("%s: %s", message, exc)
    return ConfigError(f"{message}: {exc}", reason=reason, setting=setting)


def build_tls_config(config: ClientConfig) -> TLSMaterial:
    """Build TLS material from the certificate settings in ``config``.

    Exclusivity between variants is not re-validated here; the first
    populated variant is used.

    :param config: Client configuration
    :type config: ClientConfig
    :return: Assembled TLS material
    :rtype: TLSMaterial
    :raises ConfigError: ``INVALID_CERTIFICATE``, ``FILE_READ_FAILURE`` or
                         ``INVALID_PKCS12`` depending on the failing source
    """
    context = create_ssl_context(config.insecure)
    material = TLSMaterial(ssl_context=context, insecure=config.insecure)

    if config.client_cert and config.client_key:
        try:
            cert, key = parse_key_pair(
                config.client_cert.encode("utf-8"), config.client_key.encode("utf-8")
            )
            _load_into_context(context, cert, key)
        except (ValueError, TypeError, ssl.SSLError) as e:
            raise _config_error(
                "Failed to parse client certificate and key",
                ConfigErrorReason.INVALID_CERTIFICATE,
                "client_cert",
                e,
            ) from e
        material.certificate = cert
        material.source = AuthMethod.PEM_CERTIFICATE

    elif config.client_cert_file and config.client_key_file:
        try:
            cert, _ = parse_key_pair(
                Path(config.client_cert_file).read_bytes(),
                Path(config.client_key_file).read_bytes(),
            )
            context.load_cert_chain(config.client_cert_file, config.client_key_file)
        except (OSError, ValueError, TypeError) as e:
            # ssl.SSLError is an OSError subclass
            raise _config_error(
                "Failed to load client certificate files",
                ConfigErrorReason.FILE_READ_FAILURE,
                "client_cert_file",
                e,
            ) from e
        material.certificate = cert
        material.source = AuthMethod.CERTIFICATE_FILES

    elif config.pkcs12_bundle:
        try:
            data = base64.b64decode(config.pkcs12_bundle, validate=True)
            cert, key = decode_pkcs12(data, config.pkcs12_password)
            _load_into_context(context, cert, key)
        except (binascii.Error, ValueError, TypeError, ssl.SSLError) as e:
            raise _config_error(
                "Failed to parse PKCS12 bundle",
                ConfigErrorReason.INVALID_PKCS12,
                "pkcs12_bundle",
                e,
            ) from e
        material.certificate = cert
        material.source = AuthMethod.PKCS12_BUNDLE

    elif config.pkcs12_file:
        try:
            data = Path(config.pkcs12_file).read_bytes()
        except OSError as e:
            raise _config_error(
                "Failed to read PKCS12 file",
                ConfigErrorReason.FILE_READ_FAILURE,
                "pkcs12_file",
                e,
            ) from e
        try:
            cert, key = decode_pkcs12(data, config.pkcs12_password)
            _load_into_context(context, cert, key)
        except (ValueError, TypeError, ssl.SSLError) as e:
            raise _config_error(
                "Failed to parse PKCS12 file",
                ConfigErrorReason.INVALID_PKCS12,
                "pkcs12_file",
                e,
            ) from e
        material.certificate = cert
        material.source = AuthMethod.PKCS12_FILE

    if material.certificate is not None:
        logger.debug(
            "Loaded client certificate %s from %s",
            material.certificate.subject.rfc4514_string(),
            material.source.value,
        )
    if config.insecure:
        logger.warning("TLS certificate verification is disabled")
    return material
