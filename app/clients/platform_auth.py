"""
Client for the platform's own OIDC token endpoint.

Only the refresh-token grant is needed here: the callback refreshes the
platform session before calling the internal API.
"""

from __future__ import annotations

from typing import Optional

import httpx
from pydantic import ValidationError

from app.core.config import PlatformAuthSettings
from app.schemas.auth import PlatformTokenResponse


class TokenRefreshError(Exception):
    """Raised when the platform token endpoint rejects or fails a refresh."""


class PlatformAuthClient:
    """Exchange platform refresh tokens for new access tokens."""

    def __init__(
        self,
        settings: PlatformAuthSettings,
        *,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._settings = settings
        self._timeout = timeout
        self._transport = transport

    async def refresh_token(self, refresh_token: str) -> PlatformTokenResponse:
        """Run one refresh-token grant. The returned payload always has an access token."""
        payload = {
            "grant_type": "refresh_token",
            "refresh_token": refresh_token,
            "client_id": self._settings.oidc_client_id,
        }

        try:
            async with httpx.AsyncClient(
                timeout=self._timeout, transport=self._transport
            ) as client:
                response = await client.post(self._settings.token_url, data=payload)
        except httpx.HTTPError as exc:
            raise TokenRefreshError(
                f"Refresh request failed: {type(exc).__name__}"
            ) from exc

        if response.status_code != httpx.codes.OK:
            raise TokenRefreshError(
                f"Refresh rejected with HTTP {response.status_code}"
            )

        try:
            token_payload = PlatformTokenResponse.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            raise TokenRefreshError("Unreadable refresh payload.") from exc

        if not token_payload.access_token or not token_payload.access_token.strip():
            raise TokenRefreshError("Refresh payload did not include an access token.")

        return token_payload


__all__ = ["PlatformAuthClient", "TokenRefreshError"]
