"""Tests for configuration loading and client wiring."""

import json

import httpx
import pydantic
import pytest
import structlog

from salesforce_rest_api import client, config, session

CONFIG = {
    "instance_url": "https://login.salesforce.com",
    "api_version": "36.0",
    "client_id": "consumer-key",
    "client_secret": "consumer-secret",
    "username": "user@example.com",
    "password": "p",
    "security_token": "t",
}


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "salesforce.json"
    path.write_text(json.dumps(CONFIG))
    return path


@pytest.fixture(autouse=True)
def _reset_structlog():
    yield
    structlog.reset_defaults()


def test_load_config_reads_json(config_file):
    """Values from the JSON file populate the model."""
    loaded = config.load_config(config_file)
    assert loaded.instance_url == "https://login.salesforce.com"
    assert loaded.api_version == "36.0"
    assert loaded.security_token == "t"


def test_load_config_applies_defaults(tmp_path):
    """Timeouts, version and log level have defaults."""
    data = {k: v for k, v in CONFIG.items() if k not in ("api_version", "security_token")}
    path = tmp_path / "minimal.json"
    path.write_text(json.dumps(data))

    loaded = config.load_config(path)

    assert loaded.api_version == session.DEFAULT_API_VERSION
    assert loaded.security_token == ""
    assert loaded.connect_timeout == 2.0
    assert loaded.timeout == 60.0
    assert loaded.log_level == "INFO"


def test_load_config_missing_file_raises(tmp_path):
    """A missing config file raises FileNotFoundError."""
    with pytest.raises(FileNotFoundError):
        config.load_config(tmp_path / "absent.json")


def test_config_rejects_non_positive_timeout():
    """Timeouts must be positive."""
    with pytest.raises(pydantic.ValidationError):
        config.ClientConfig(**CONFIG, timeout=0)


def test_config_repr_hides_secrets():
    """Secrets are excluded from repr."""
    text = repr(config.ClientConfig(**CONFIG))
    assert "consumer-secret" not in text
    assert "password='p'" not in text


def test_create_client_wires_shared_session_manager():
    """The request client reads sessions from the manager it is built with."""
    sessions, request_client = config.create_client(
        config.ClientConfig(**CONFIG, connect_timeout=1.5, timeout=30.0),
    )

    assert isinstance(request_client, client.RequestClient)
    assert request_client.sessions is sessions
    assert sessions.api_version == "36.0"
    assert sessions.timeout.connect == 1.5
    assert sessions.timeout.read == 30.0


def test_connect_logs_in_using_env_config(config_file, monkeypatch, fake):
    """connect() resolves the path from the environment and logs in."""
    monkeypatch.setenv(config.CONFIG_ENV_VAR, str(config_file))

    sessions, request_client = config.connect(transport=httpx.MockTransport(fake.handler))

    assert sessions.require_session().access_token == "token-1"
    assert fake.logins == 1
    request_client.get_all_objects()
    assert fake.api_requests[0].url.path == "/services/data/v36.0/sobjects/"
