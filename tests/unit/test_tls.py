"""Tests for TLS material assembly from certificate settings."""

import base64
import ssl

import pytest

from rest_resource.auth import AuthMethod, build_tls_config, decode_pkcs12, parse_key_pair
from rest_resource.exceptions import ConfigError, ConfigErrorReason
from rest_resource.models import ClientConfig

BASE_URL = "https://api.example.com"


def config(**kwargs) -> ClientConfig:
    return ClientConfig(base_url=BASE_URL, **kwargs)


@pytest.mark.auth
class TestBuildTLSConfig:
    """Test each certificate source and its failure reason."""

    def test_no_certificate(self):
        material = build_tls_config(config(token="abc"))
        assert not material.has_client_certificate
        assert material.source is AuthMethod.NONE
        assert material.ssl_context.verify_mode == ssl.CERT_REQUIRED

    def test_inline_pem(self, cert_pem, key_pem):
        material = build_tls_config(config(client_cert=cert_pem, client_key=key_pem))
        assert material.has_client_certificate
        assert material.source is AuthMethod.PEM_CERTIFICATE
        assert "test-client" in material.certificate.subject.rfc4514_string()

    def test_inline_pem_garbage(self, key_pem):
        with pytest.raises(ConfigError) as exc_info:
            build_tls_config(config(client_cert="not a certificate", client_key=key_pem))
        assert exc_info.value.reason is ConfigErrorReason.INVALID_CERTIFICATE

    def test_inline_pem_mismatched_key(self, cert_pem, other_key_pem):
        with pytest.raises(ConfigError) as exc_info:
            build_tls_config(config(client_cert=cert_pem, client_key=other_key_pem))
        assert exc_info.value.reason is ConfigErrorReason.INVALID_CERTIFICATE

    def test_certificate_files(self, cert_files):
        cert_path, key_path = cert_files
        material = build_tls_config(
            config(client_cert_file=cert_path, client_key_file=key_path)
        )
        assert material.source is AuthMethod.CERTIFICATE_FILES
        assert material.has_client_certificate

    def test_missing_certificate_file(self, tmp_path, cert_files):
        _, key_path = cert_files
        with pytest.raises(ConfigError) as exc_info:
            build_tls_config(
                config(
                    client_cert_file=str(tmp_path / "missing.crt"),
                    client_key_file=key_path,
                )
            )
        assert exc_info.value.reason is ConfigErrorReason.FILE_READ_FAILURE
        assert exc_info.value.setting == "client_cert_file"

    def test_inline_pkcs12(self, pkcs12_b64, pkcs12_password):
        material = build_tls_config(
            config(pkcs12_bundle=pkcs12_b64, pkcs12_password=pkcs12_password)
        )
        assert material.source is AuthMethod.PKCS12_BUNDLE
        assert material.has_client_certificate

    def test_inline_pkcs12_wrong_password(self, pkcs12_b64):
        with pytest.raises(ConfigError) as exc_info:
            build_tls_config(config(pkcs12_bundle=pkcs12_b64, pkcs12_password="wrong"))
        assert exc_info.value.reason is ConfigErrorReason.INVALID_PKCS12

    def test_inline_pkcs12_bad_base64(self):
        with pytest.raises(ConfigError) as exc_info:
            build_tls_config(config(pkcs12_bundle="%%% not base64 %%%"))
        assert exc_info.value.reason is ConfigErrorReason.INVALID_PKCS12

    def test_inline_pkcs12_not_a_bundle(self, pkcs12_password):
        bundle = base64.b64encode(b"definitely not pkcs12").decode("ascii")
        with pytest.raises(ConfigError) as exc_info:
            build_tls_config(config(pkcs12_bundle=bundle, pkcs12_password=pkcs12_password))
        assert exc_info.value.reason is ConfigErrorReason.INVALID_PKCS12

    def test_pkcs12_file(self, pkcs12_file, pkcs12_password):
        material = build_tls_config(
            config(pkcs12_file=pkcs12_file, pkcs12_password=pkcs12_password)
        )
        assert material.source is AuthMethod.PKCS12_FILE

    def test_pkcs12_file_missing(self, tmp_path):
        with pytest.raises(ConfigError) as exc_info:
            build_tls_config(config(pkcs12_file=str(tmp_path / "missing.p12")))
        assert exc_info.value.reason is ConfigErrorReason.FILE_READ_FAILURE

    def test_pkcs12_file_wrong_password(self, pkcs12_file, pkcs12_password):
        with pytest.raises(ConfigError) as exc_info:
            build_tls_config(config(pkcs12_file=pkcs12_file, pkcs12_password="wrong"))
        assert exc_info.value.reason is ConfigErrorReason.INVALID_PKCS12

    def test_first_source_wins(self, cert_pem, key_pem):
        material = build_tls_config(
            config(
                client_cert=cert_pem,
                client_key=key_pem,
                pkcs12_bundle="ignored",
            )
        )
        assert material.source is AuthMethod.PEM_CERTIFICATE

    def test_insecure(self):
        material = build_tls_config(config(insecure=True))
        assert material.insecure
        assert material.ssl_context.verify_mode == ssl.CERT_NONE
        assert not material.ssl_context.check_hostname


class TestHelpers:
    """Test the parsing helpers directly."""

    def test_parse_key_pair(self, cert_pem, key_pem):
        cert, key = parse_key_pair(cert_pem.encode(), key_pem.encode())
        assert cert.public_key().public_numbers() == key.public_key().public_numbers()

    def test_decode_pkcs12(self, pkcs12_bytes, pkcs12_password):
        cert, _ = decode_pkcs12(pkcs12_bytes, pkcs12_password)
        assert "test-client" in cert.subject.rfc4514_string()

    def test_decode_pkcs12_wrong_password(self, pkcs12_bytes):
        with pytest.raises(ValueError):
            decode_pkcs12(pkcs12_bytes, "nope")
