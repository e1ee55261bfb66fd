"""
Domain models for the GitHub connection callback.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class ConnectionScope(str, Enum):
    """Who the GitHub account is being linked to."""

    USER = "user"
    ORGANIZATION = "organization"


class StateEnvelope(BaseModel):
    """Request context round-tripped through the provider in ``state``."""

    connection_scope: ConnectionScope = ConnectionScope.USER
    organization_id: Optional[str] = None

    @property
    def targets_organization(self) -> bool:
        """True only when the organization scope is actually usable."""
        return (
            self.connection_scope is ConnectionScope.ORGANIZATION
            and bool(self.organization_id)
        )


class ExchangeResult(BaseModel):
    """Provider token returned by the authorization code exchange."""

    access_token: str = Field(..., repr=False)
    token_type: str = "bearer"
    scope: str = ""


class UpstreamIdentity(BaseModel):
    """Minimal GitHub profile used to label the connection."""

    login: str
    name: Optional[str] = None
    email: Optional[str] = None
    avatar_url: Optional[str] = None


class SessionCredential(BaseModel):
    """The platform's own bearer credential for the current browser session."""

    access_token: str = Field(..., repr=False)
    refresh_token: Optional[str] = Field(None, repr=False)
    expires_at: datetime


class ConnectionRequest(BaseModel):
    """Write request for either linking operation."""

    access_token: str = Field(..., repr=False)
    username: str
    scope: str = ""
    organization_id: Optional[str] = None

    def to_wire(self) -> dict:
        payload = {
            "accessToken": self.access_token,
            "username": self.username,
            "scope": self.scope,
        }
        if self.organization_id:
            payload["organizationId"] = self.organization_id
        return payload


class DispatchResult(BaseModel):
    """Result of a successful linking call."""

    success: bool
    connection_scope: ConnectionScope
    username: str
    organization_id: Optional[str] = None


__all__ = [
    "ConnectionRequest",
    "ConnectionScope",
    "DispatchResult",
    "ExchangeResult",
    "SessionCredential",
    "StateEnvelope",
    "UpstreamIdentity",
]
