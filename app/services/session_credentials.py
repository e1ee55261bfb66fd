"""
Platform session credential handling for the GitHub callback.

The callback can run minutes after the browser last talked to the platform, so
the platform access token is refreshed before the internal API is called rather
than after a failed call.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone

from app.clients.platform_auth import PlatformAuthClient, TokenRefreshError
from app.models.oauth import SessionCredential
from app.services.session_store import SecureSessionTokens, SessionData, SessionHandle

logger = logging.getLogger(__name__)

PLACEHOLDER_ACCESS_TOKEN = "dev-dummy-token"
_DEFAULT_EXPIRES_IN = 3600
_COOKIE_SKEW_SECONDS = 60


def _cookie_max_age(expires_in: int) -> int:
    # Expire the cookie slightly before the token, but never issue it already expired.
    if expires_in > _COOKIE_SKEW_SECONDS:
        return expires_in - _COOKIE_SKEW_SECONDS
    return max(expires_in, 1)


class LoginRequiredError(Exception):
    """Raised when no platform credential exists and authentication is enforced."""


class SessionCredentialManager:
    """Read, proactively refresh and persist the platform session credential."""

    def __init__(
        self,
        platform_client: PlatformAuthClient,
        *,
        auth_disabled: bool,
        auth_cookie_name: str,
        secure_cookies: bool = False,
    ) -> None:
        self._platform = platform_client
        self._auth_disabled = auth_disabled
        self._cookie_name = auth_cookie_name
        self._secure_cookies = secure_cookies

    @property
    def auth_disabled(self) -> bool:
        return self._auth_disabled

    async def ensure_fresh_session(self, session: SessionHandle) -> SessionCredential:
        """Return the credential to use for the internal API call.

        Raises ``LoginRequiredError`` when enforcement is on and nothing usable
        is available, even after a refresh attempt.
        """
        data = session.read()
        tokens = data.secure
        access_token = session.cookie(self._cookie_name) or tokens.access_token
        if access_token:
            logger.info("User access token found (length): %d", len(access_token))
        else:
            logger.warning("No user access token found")

        if not self._auth_disabled:
            refreshed = await self._refresh(session, tokens)
            if refreshed is not None:
                return refreshed

        if access_token:
            return SessionCredential(
                access_token=access_token,
                refresh_token=tokens.refresh_token,
                expires_at=tokens.expires_at or datetime.now(timezone.utc),
            )

        if self._auth_disabled:
            logger.info("Auth disabled - using placeholder token for API call")
            return SessionCredential(
                access_token=PLACEHOLDER_ACCESS_TOKEN,
                expires_at=datetime.now(timezone.utc) + timedelta(seconds=_DEFAULT_EXPIRES_IN),
            )

        logger.error("No user access token available - user must be logged in")
        raise LoginRequiredError("Please log in to connect your GitHub account")

    async def _refresh(
        self, session: SessionHandle, tokens: SecureSessionTokens
    ) -> SessionCredential | None:
        if not tokens.refresh_token:
            logger.warning("No refresh token available, using existing token if available")
            return None

        logger.info("Proactively refreshing token...")
        try:
            response = await self._platform.refresh_token(tokens.refresh_token)
        except TokenRefreshError as exc:
            logger.warning("Proactive token refresh failed, using existing token: %s", exc)
            return None

        expires_in = response.expires_in or _DEFAULT_EXPIRES_IN
        expires_at = datetime.now(timezone.utc) + timedelta(seconds=expires_in)
        updated = tokens.model_copy(
            update={
                "access_token": response.access_token,
                "refresh_token": response.refresh_token or tokens.refresh_token,
                "id_token": response.id_token or tokens.id_token,
                "token_type": response.token_type or tokens.token_type,
                "scope": response.scope or tokens.scope,
                "expires_in": response.expires_in,
                "expires_at": expires_at,
            }
        )
        session.write(SessionData(secure=updated))
        session.set_cookie(
            self._cookie_name,
            response.access_token,
            max_age=_cookie_max_age(expires_in),
            path="/",
            httponly=False,
            secure=self._secure_cookies,
            samesite="lax",
        )
        logger.info("Token refreshed proactively")

        return SessionCredential(
            access_token=updated.access_token,
            refresh_token=updated.refresh_token,
            expires_at=expires_at,
        )


__all__ = [
    "LoginRequiredError",
    "PLACEHOLDER_ACCESS_TOKEN",
    "SessionCredentialManager",
]
