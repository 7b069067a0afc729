"""Pydantic configuration schema for graphtutorial.

Mirrors the structure of config.yaml. Settings are validated on load.

Usage:
    from graphtutorial.config_schema import Settings

    settings = Settings(**yaml_data)
"""

from typing import Literal

from pydantic import BaseModel, Field, field_validator

from graphtutorial.core.errors import ConfigValidationError

# Current schema version - increment when adding new required fields
CURRENT_SCHEMA_VERSION = 1

GRAPH_DEFAULT_SCOPE = "https://graph.microsoft.com/.default"


class AppSettings(BaseModel):
    """Azure AD app registration settings."""

    client_id: str = Field(description="Azure AD Application (client) ID")
    auth_tenant: str = Field(
        default="common",
        description="Authority tenant for device code sign-in ('common', 'organizations' or a tenant ID)",
    )
    graph_user_scopes: list[str] = Field(
        default=["user.read", "mail.read", "mail.send", "files.readwrite"],
        description="Delegated Graph permission scopes for the signed-in user",
    )
    tenant_id: str | None = Field(
        default=None,
        description="Directory (tenant) ID, required for app-only auth",
    )
    client_secret: str | None = Field(
        default=None,
        description="Client secret, required for app-only auth",
    )

    @field_validator("client_id")
    @classmethod
    def validate_client_id(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("client_id cannot be empty")
        return v.strip()

    @field_validator("graph_user_scopes", mode="before")
    @classmethod
    def split_scopes(cls, v: object) -> object:
        """Accept the comma-separated form used in .properties-style configs."""
        if isinstance(v, str):
            v = v.split(",")
        if isinstance(v, list):
            v = [s.strip() for s in v if isinstance(s, str) and s.strip()]
            if not v:
                raise ValueError("graph_user_scopes must contain at least one scope")
        return v

    def require_app_only(self) -> None:
        """Check that the client-credential fields are present.

        Raises:
            ConfigValidationError: Listing each missing field
        """
        missing = [name for name in ("tenant_id", "client_secret") if not getattr(self, name)]
        if missing:
            raise ConfigValidationError(
                f"App-only auth requires app.{' and app.'.join(missing)}. "
                "Add them to config.yaml (or set GRAPHTUTORIAL_CLIENT_SECRET) "
                "and grant the app the User.Read.All application permission."
            )


class AuthConfig(BaseModel):
    """Token cache settings."""

    token_cache_path: str = Field(
        default="data/token_cache.json",
        description="Path to MSAL token cache file",
    )

    @field_validator("token_cache_path")
    @classmethod
    def validate_token_cache_path(cls, v: str) -> str:
        """Ensure token cache path doesn't contain path traversal."""
        if not v or not v.strip():
            raise ValueError("Token cache path cannot be empty")
        if ".." in v:
            raise ValueError("Token cache path cannot contain '..' (path traversal)")
        return v


class LoggingConfig(BaseModel):
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    json_output: bool = False


class Settings(BaseModel):
    """Root configuration model."""

    schema_version: int = Field(default=CURRENT_SCHEMA_VERSION, ge=1)
    app: AppSettings
    auth: AuthConfig = Field(default_factory=AuthConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
