"""Pytest fixtures and configuration for graphtutorial tests.

Provides common fixtures for configuration and mocked Graph/MSAL objects.
"""

from pathlib import Path
from typing import Any, Generator
from unittest.mock import MagicMock

import pytest

from graphtutorial.config import reset_config
from graphtutorial.config_schema import Settings


@pytest.fixture(autouse=True)
def reset_config_singleton() -> Generator[None, None, None]:
    """Reset the config singleton before each test."""
    reset_config()
    yield
    reset_config()


@pytest.fixture(autouse=True)
def no_retry_sleep(monkeypatch: pytest.MonkeyPatch) -> None:
    """Make backoff instantaneous."""
    monkeypatch.setattr("graphtutorial.graph.client.time.sleep", lambda _s: None)
    monkeypatch.setattr("graphtutorial.auth.msal_auth.time.sleep", lambda _s: None)


@pytest.fixture
def sample_config_yaml() -> str:
    """Return a minimal valid config.yaml content."""
    return """
schema_version: 1

app:
  client_id: "test-client-id"
  auth_tenant: "common"
  graph_user_scopes: "user.read, mail.read,mail.send"
"""


@pytest.fixture
def sample_config_dict(tmp_path: Path) -> dict[str, Any]:
    """Return a valid config dictionary with app-only settings."""
    return {
        "schema_version": 1,
        "app": {
            "client_id": "test-client-id",
            "auth_tenant": "common",
            "graph_user_scopes": ["user.read", "mail.read", "mail.send"],
            "tenant_id": "test-tenant-id",
            "client_secret": "test-secret",
        },
        "auth": {"token_cache_path": str(tmp_path / "data" / "token_cache.json")},
    }


@pytest.fixture
def sample_settings(sample_config_dict: dict[str, Any]) -> Settings:
    return Settings(**sample_config_dict)


@pytest.fixture
def config_file(tmp_path: Path, sample_config_yaml: str) -> Path:
    """Create a temporary config file with valid content."""
    config_dir = tmp_path / "config"
    config_dir.mkdir()
    config_path = config_dir / "config.yaml"
    config_path.write_text(sample_config_yaml)
    return config_path


@pytest.fixture
def mock_client() -> MagicMock:
    """Return a mock GraphClient."""
    return MagicMock()


@pytest.fixture
def make_response():
    """Return a factory for fake requests.Response objects."""
    return _make_response


def _make_response(
    status_code: int = 200,
    body: dict[str, Any] | None = None,
    headers: dict[str, str] | None = None,
) -> MagicMock:
    """Build a fake requests.Response."""
    response = MagicMock()
    response.status_code = status_code
    response.headers = headers or {}
    response.content = b"{}" if body is not None else b""
    response.json.return_value = body if body is not None else {}
    response.text = str(body or "")
    return response
