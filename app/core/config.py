"""
Application configuration models and helpers.

Centralizes settings management so the callback route, the outbound clients
and the environment check script share a consistent configuration surface.
"""

from functools import lru_cache
from pathlib import Path
from typing import Optional

import os

from pydantic import AnyHttpUrl, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _load_env_file(path: str = ".env") -> None:
    """Best-effort load key=value pairs from a .env file without extra deps."""
    env_path = Path(path)
    if not env_path.exists():
        return
    for raw_line in env_path.read_text().splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        key, sep, value = line.partition("=")
        if not sep:
            continue
        key = key.strip()
        if not key or key in os.environ:
            continue
        cleaned = value.strip().strip('"').strip("'")
        os.environ[key] = cleaned


_load_env_file()


class GitHubSettings(BaseSettings):
    """OAuth application credentials and endpoints for GitHub."""

    client_id: Optional[str] = Field(None, validation_alias="GITHUB_CLIENT_ID")
    client_secret: Optional[str] = Field(None, validation_alias="GITHUB_CLIENT_SECRET")
    token_url: AnyHttpUrl = Field(
        "https://github.com/login/oauth/access_token",
        validation_alias="GITHUB_TOKEN_URL",
    )
    api_base: AnyHttpUrl = Field(
        "https://api.github.com",
        validation_alias="GITHUB_API_BASE",
        description="Base URL of the REST API used to resolve the connected login.",
    )

    @property
    def is_configured(self) -> bool:
        return bool(self.client_id and self.client_secret)


class PlatformAuthSettings(BaseSettings):
    """The platform's own identity provider, used to refresh session tokens."""

    oidc_base: AnyHttpUrl = Field(..., validation_alias="OIDC_BASE")
    oidc_client_id: str = Field(..., validation_alias="OIDC_CLIENT_ID")
    disable_auth: bool = Field(
        False,
        validation_alias="DISABLE_AUTH",
        description=(
            "Development-only switch. When true a placeholder bearer token is "
            "sent to the internal API instead of requiring a login."
        ),
    )

    @property
    def token_url(self) -> str:
        return f"{str(self.oidc_base).rstrip('/')}/oauth/v2/token"


class InternalAPISettings(BaseSettings):
    """Settings for the internal Connect API that persists connections."""

    api_host: AnyHttpUrl = Field(..., validation_alias="API_HOST")
    auth_service: str = Field(
        "obiente.cloud.auth.v1.AuthService",
        validation_alias="API_AUTH_SERVICE",
    )


class SecuritySettings(BaseSettings):
    """Security-related configuration."""

    session_password: str = Field(
        ...,
        validation_alias="SESSION_PASSWORD",
        description="Secret used to derive the key sealing the session cookie.",
    )
    oauth_state_secret: Optional[str] = Field(
        None,
        validation_alias="OAUTH_STATE_SECRET",
        description=(
            "When set, OAuth state envelopes must carry a matching HMAC signature."
        ),
    )

    @field_validator("session_password")
    @classmethod
    def _require_password(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("SESSION_PASSWORD must not be empty.")
        return value


class AppSettings(BaseSettings):
    """Root settings object for the FastAPI application."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    environment: str = Field("development", validation_alias="APP_ENV")
    log_level: str = Field("INFO", validation_alias="APP_LOG_LEVEL")
    http_timeout_seconds: float = Field(
        10.0,
        validation_alias="HTTP_TIMEOUT_SECONDS",
        description="Upper bound for each outbound round trip.",
    )
    auth_cookie_name: str = Field("obiente_token", validation_alias="AUTH_COOKIE_NAME")
    session_cookie_name: str = Field(
        "obiente_session", validation_alias="SESSION_COOKIE_NAME"
    )
    settings_path: str = Field(
        "/settings?tab=integrations&provider=github",
        validation_alias="INTEGRATIONS_SETTINGS_PATH",
    )
    login_path: str = Field("/auth/login", validation_alias="LOGIN_PATH")
    security: SecuritySettings = Field(default_factory=SecuritySettings)
    github: GitHubSettings = Field(default_factory=GitHubSettings)
    platform_auth: PlatformAuthSettings = Field(default_factory=PlatformAuthSettings)
    internal_api: InternalAPISettings = Field(default_factory=InternalAPISettings)

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"


@lru_cache()
def get_settings() -> AppSettings:
    """Return a cached settings object."""
    return AppSettings()  # type: ignore[call-arg]


__all__ = [
    "AppSettings",
    "GitHubSettings",
    "InternalAPISettings",
    "PlatformAuthSettings",
    "SecuritySettings",
    "get_settings",
]
