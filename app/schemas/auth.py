"""Wire schemas for the provider, platform and internal API responses."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class OAuthCallbackParams(BaseModel):
    """Query parameters GitHub appends when redirecting back to the callback."""

    code: Optional[str] = Field(None, description="Authorization code returned by GitHub.")
    state: Optional[str] = Field(None, description="Opaque state envelope issued when starting OAuth.")
    error: Optional[str] = Field(None, description="Error code reported by GitHub, e.g. access_denied.")


class GitHubTokenResponse(BaseModel):
    """Body returned by the GitHub token endpoint, success or error."""

    model_config = ConfigDict(extra="ignore")

    access_token: Optional[str] = Field(None, repr=False)
    token_type: Optional[str] = None
    scope: Optional[str] = None
    error: Optional[str] = None
    error_description: Optional[str] = None
    error_uri: Optional[str] = None


class GitHubUserResponse(BaseModel):
    """Subset of ``GET /user`` needed to label a connection."""

    model_config = ConfigDict(extra="ignore")

    login: str = Field(..., min_length=1)
    name: Optional[str] = None
    email: Optional[str] = None
    avatar_url: Optional[str] = None


class PlatformTokenResponse(BaseModel):
    """Refresh-token grant response from the platform identity provider."""

    model_config = ConfigDict(extra="ignore")

    access_token: Optional[str] = Field(None, repr=False)
    refresh_token: Optional[str] = Field(None, repr=False)
    expires_in: Optional[int] = None
    token_type: Optional[str] = None
    scope: Optional[str] = None
    id_token: Optional[str] = Field(None, repr=False)


class ConnectGitHubResponse(BaseModel):
    """Response of both ``ConnectGitHub`` and ``ConnectOrganizationGitHub``."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    success: bool = False
    username: Optional[str] = None
    organization_id: Optional[str] = Field(None, alias="organizationId")


__all__ = [
    "ConnectGitHubResponse",
    "GitHubTokenResponse",
    "GitHubUserResponse",
    "OAuthCallbackParams",
    "PlatformTokenResponse",
]
