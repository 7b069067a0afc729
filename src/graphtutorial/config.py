"""Configuration loader for graphtutorial.

Loads config.yaml, applies environment overrides and validates the result
against the Pydantic schema.

Usage:
    from graphtutorial.config import get_config

    settings = get_config()
    print(settings.app.client_id)
"""

import os
import threading
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from graphtutorial.config_schema import CURRENT_SCHEMA_VERSION, Settings
from graphtutorial.core.errors import ConfigLoadError, ConfigValidationError
from graphtutorial.core.logging import get_logger

logger = get_logger(__name__)

DEFAULT_CONFIG_PATH = Path("config/config.yaml")

CONFIG_PATH_ENV = "GRAPHTUTORIAL_CONFIG_PATH"
CLIENT_SECRET_ENV = "GRAPHTUTORIAL_CLIENT_SECRET"

_config_lock = threading.Lock()
_current_config: Settings | None = None


def _get_config_path() -> Path:
    """Get the config file path from environment or default."""
    env_path = os.environ.get(CONFIG_PATH_ENV)
    if env_path:
        return Path(env_path)
    return DEFAULT_CONFIG_PATH


def _format_validation_errors(error: ValidationError) -> str:
    """Format Pydantic validation errors into one actionable line per field."""
    messages = []
    for err in error.errors():
        field_path = ".".join(str(loc) for loc in err["loc"])
        if err["type"] == "missing":
            messages.append(f"  - Missing required field '{field_path}'")
        elif err["type"] == "string_type":
            messages.append(f"  - Field '{field_path}' must be a string")
        else:
            messages.append(f"  - Field '{field_path}': {err['msg']}")
    return "\n".join(messages)


def _load_yaml(path: Path) -> dict[str, Any]:
    """Load and parse a YAML mapping.

    Raises:
        ConfigLoadError: If file not found or YAML parse error
    """
    if not path.exists():
        raise ConfigLoadError(
            f"Configuration file not found: {path}\n"
            f"Create it by copying config/config.yaml.example to {path}"
        )

    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigLoadError(f"Failed to parse YAML in {path}:\n{e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigLoadError(
            f"Configuration file must be a YAML mapping, got {type(data).__name__}"
        )
    return data


def _apply_env_overrides(data: dict[str, Any]) -> dict[str, Any]:
    """Let the client secret come from the environment instead of the file."""
    secret = os.environ.get(CLIENT_SECRET_ENV)
    if secret:
        app = data.get("app")
        if isinstance(app, dict):
            data = {**data, "app": {**app, "client_secret": secret}}
    return data


def _validate_config(data: dict[str, Any], path: Path) -> Settings:
    """Validate config data against the Pydantic schema.

    Raises:
        ConfigValidationError: If validation fails
    """
    try:
        settings = Settings(**data)
    except ValidationError as e:
        raise ConfigValidationError(
            f"Configuration validation failed for {path}:\n{_format_validation_errors(e)}"
        ) from e

    if settings.schema_version > CURRENT_SCHEMA_VERSION:
        raise ConfigValidationError(
            f"Config schema version {settings.schema_version} is newer than "
            f"supported version {CURRENT_SCHEMA_VERSION}. "
            "Please upgrade graphtutorial or downgrade the config."
        )
    return settings


def load_config(path: Path | None = None) -> Settings:
    """Load and validate configuration from disk (never cached).

    Args:
        path: Optional path to config file. Defaults to GRAPHTUTORIAL_CONFIG_PATH
              or config/config.yaml.

    Raises:
        ConfigLoadError: If file cannot be loaded
        ConfigValidationError: If validation fails
    """
    config_path = path or _get_config_path()

    logger.debug("Loading configuration", path=str(config_path))

    data = _apply_env_overrides(_load_yaml(config_path))
    settings = _validate_config(data, config_path)

    logger.info(
        "Configuration loaded",
        path=str(config_path),
        schema_version=settings.schema_version,
        scopes=settings.app.graph_user_scopes,
        app_only_configured=bool(settings.app.tenant_id and settings.app.client_secret),
    )
    return settings


def get_config() -> Settings:
    """Get the configuration singleton, loading it on first call."""
    global _current_config

    with _config_lock:
        if _current_config is None:
            _current_config = load_config()
        return _current_config


def validate_config_file(path: Path | None = None) -> tuple[bool, str]:
    """Validate a config file without touching the singleton.

    Returns:
        Tuple of (is_valid, message)
    """
    config_path = path or _get_config_path()

    try:
        settings = load_config(config_path)
    except ConfigLoadError as e:
        return (False, f"Load error: {e}")
    except ConfigValidationError as e:
        return (False, f"Validation error: {e}")

    app_only = "configured" if settings.app.tenant_id and settings.app.client_secret else "not configured"
    return (
        True,
        f"Configuration valid (schema version {settings.schema_version})\n"
        f"  - auth tenant: {settings.app.auth_tenant}\n"
        f"  - user scopes: {', '.join(settings.app.graph_user_scopes)}\n"
        f"  - app-only auth: {app_only}",
    )


def reset_config() -> None:
    """Reset the config singleton. Primarily for testing."""
    global _current_config
    with _config_lock:
        _current_config = None
