"""Tests for the rest-resource command line entry point."""

import json
from unittest.mock import patch

import httpx
import pytest

from rest_resource import cli
from rest_resource.utils.http_client import RestClient


@pytest.fixture(autouse=True)
def quiet_cli():
    """Keep the CLI away from the real .env file and root logger."""
    with patch.object(cli, "load_dotenv"), patch.object(cli, "setup_secure_logging"):
        yield


@pytest.fixture
def mock_api(monkeypatch):
    """Route RestClient.from_settings through a MockTransport."""
    requests = []

    def handler(request):
        requests.append(request)
        return httpx.Response(200, json={"id": "u-1", "name": "John"})

    original = RestClient.from_settings.__func__

    def from_settings(cls, settings=None, **kwargs):
        return original(cls, settings, transport=httpx.MockTransport(handler))

    monkeypatch.setattr(RestClient, "from_settings", classmethod(from_settings))
    monkeypatch.setenv("REST_API_URL", "https://api.example.com")
    monkeypatch.setenv("REST_API_TOKEN", "abc123")
    return requests


class TestRequestCommand:
    """Test the request subcommand."""

    def test_get(self, mock_api, capsys):
        exit_code = cli.main(["request", "GET", "/api/users/john", "--query", "expand=roles"])

        out = capsys.readouterr().out
        assert exit_code == 0
        assert "HTTP 200 https://api.example.com/api/users/john?expand=roles" in out
        assert json.loads(out.splitlines()[1]) == {"id": "u-1", "name": "John"}
        assert mock_api[0].headers["authorization"] == "abc123"

    def test_post_with_headers(self, mock_api):
        exit_code = cli.main(
            [
                "request",
                "POST",
                "/api/users",
                "--body",
                '{"name": "John"}',
                "--header",
                "X-Trace=t-1",
                "--retries",
                "1",
            ]
        )

        request = mock_api[0]
        assert exit_code == 0
        assert json.loads(request.content) == {"name": "John"}
        assert request.headers["x-trace"] == "t-1"

    def test_missing_configuration(self, capsys):
        exit_code = cli.main(["request", "GET", "/api/users"])

        err = capsys.readouterr().err
        assert exit_code == 2
        assert json.loads(err)["error"] == "CONFIG_ERROR"

    def test_bad_pair(self, mock_api):
        with pytest.raises(SystemExit):
            cli.main(["request", "GET", "/api/users", "--query", "no-equals-sign"])


class TestDriftCommand:
    """Test the drift subcommand."""

    def test_no_drift(self, tmp_path, capsys):
        expected = tmp_path / "expected.json"
        observed = tmp_path / "observed.json"
        expected.write_text('{"name": "John"}')
        observed.write_text('{"name": "John", "id": "u-1"}')

        assert cli.main(["drift", str(expected), str(observed)]) == 0
        assert "No drift detected" in capsys.readouterr().out

    def test_drift(self, tmp_path, capsys):
        expected = tmp_path / "expected.json"
        observed = tmp_path / "observed.json"
        expected.write_text('{"name": "John", "profile": {"city": "Oslo"}}')
        observed.write_text('{"name": "John", "profile": {"city": "Bergen"}}')

        assert cli.main(["drift", str(expected), str(observed)]) == 1
        assert "profile.city" in capsys.readouterr().out

    def test_ignore_option(self, tmp_path):
        expected = tmp_path / "expected.json"
        observed = tmp_path / "observed.json"
        expected.write_text('{"name": "John", "lastLogin": "mon"}')
        observed.write_text('{"name": "John", "lastLogin": "tue"}')

        assert cli.main(["drift", str(expected), str(observed), "--ignore", "lastLogin"]) == 0

    def test_missing_file(self, tmp_path, capsys):
        exit_code = cli.main(["drift", str(tmp_path / "a.json"), str(tmp_path / "b.json")])
        assert exit_code == 2
        assert "error:" in capsys.readouterr().err
