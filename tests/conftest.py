import base64
import datetime
import sys
from pathlib import Path

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.hazmat.primitives.serialization import pkcs12
from cryptography.x509.oid import NameOID

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

REST_ENV_VARS = (
    "REST_API_URL",
    "REST_API_TOKEN",
    "REST_API_HEADER",
    "REST_CLIENT_CERT",
    "REST_CLIENT_KEY",
    "REST_CLIENT_CERT_FILE",
    "REST_CLIENT_KEY_FILE",
    "REST_PKCS12_BUNDLE",
    "REST_PKCS12_FILE",
    "REST_PKCS12_PASSWORD",
    "REST_TIMEOUT",
    "REST_INSECURE",
    "REST_RETRY_ATTEMPTS",
    "REST_MAX_IDLE_CONNS",
    "REST_IDLE_CONN_TIMEOUT",
    "REST_DISABLE_KEEP_ALIVES",
    "REST_USER_AGENT",
    "REST_DRIFT_DETECTION",
    "REST_DRIFT_IGNORE_FIELDS",
    "REST_LOG_LEVEL",
)

PKCS12_PASSWORD = "secret"


def pytest_configure(config):
    # Register the asyncio marker so pytest doesn't warn when it's used.
    config.addinivalue_line(
        "markers", "asyncio: mark test to run in an asyncio event loop"
    )
    # Add custom markers for test organization
    config.addinivalue_line(
        "markers", "unit: mark test as a unit test"
    )
    config.addinivalue_line(
        "markers", "integration: mark test as an integration test"
    )
    config.addinivalue_line(
        "markers", "auth: mark test as testing authentication"
    )


@pytest.fixture(autouse=True)
def mock_env_vars(monkeypatch, tmp_path):
    """Start every test from a clean REST_* environment.

    Tests run from a temporary working directory so a developer's .env
    file never leaks into Settings.
    """
    for name in REST_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)

    # Logging
    monkeypatch.setenv("LOG_LEVEL", "INFO")

    yield


def _generate_key_and_cert(common_name: str = "test-client"):
    key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, common_name)])
    now = datetime.datetime.now(datetime.timezone.utc)
    cert = (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now - datetime.timedelta(days=1))
        .not_valid_after(now + datetime.timedelta(days=30))
        .sign(key, hashes.SHA256())
    )
    return key, cert


@pytest.fixture(scope="session")
def key_and_cert():
    """RSA key and self-signed certificate shared by the session."""
    return _generate_key_and_cert()


@pytest.fixture(scope="session")
def other_key_and_cert():
    """A second, unrelated key and certificate."""
    return _generate_key_and_cert("other-client")


@pytest.fixture(scope="session")
def cert_pem(key_and_cert):
    _, cert = key_and_cert
    return cert.public_bytes(serialization.Encoding.PEM).decode("ascii")


@pytest.fixture(scope="session")
def key_pem(key_and_cert):
    key, _ = key_and_cert
    return key.private_bytes(
        serialization.Encoding.PEM,
        serialization.PrivateFormat.PKCS8,
        serialization.NoEncryption(),
    ).decode("ascii")


@pytest.fixture(scope="session")
def other_key_pem(other_key_and_cert):
    key, _ = other_key_and_cert
    return key.private_bytes(
        serialization.Encoding.PEM,
        serialization.PrivateFormat.PKCS8,
        serialization.NoEncryption(),
    ).decode("ascii")


@pytest.fixture(scope="session")
def pkcs12_password():
    return PKCS12_PASSWORD


@pytest.fixture(scope="session")
def pkcs12_bytes(key_and_cert):
    """PKCS12 bundle protected with PKCS12_PASSWORD."""
    key, cert = key_and_cert
    return pkcs12.serialize_key_and_certificates(
        b"client",
        key,
        cert,
        None,
        serialization.BestAvailableEncryption(PKCS12_PASSWORD.encode("utf-8")),
    )


@pytest.fixture(scope="session")
def pkcs12_b64(pkcs12_bytes):
    return base64.b64encode(pkcs12_bytes).decode("ascii")


@pytest.fixture
def cert_files(tmp_path, cert_pem, key_pem):
    """Write the certificate and key to disk and return their paths."""
    cert_path = tmp_path / "client.crt"
    key_path = tmp_path / "client.key"
    cert_path.write_text(cert_pem)
    key_path.write_text(key_pem)
    return str(cert_path), str(key_path)


@pytest.fixture
def pkcs12_file(tmp_path, pkcs12_bytes):
    path = tmp_path / "client.p12"
    path.write_bytes(pkcs12_bytes)
    return str(path)


# Rely on pytest-asyncio for async test handling; no custom hook needed.
