"""
GitHub OAuth utilities.

Exchange an authorization code for a GitHub access token and resolve the login
the token belongs to. Errors are raised as typed exceptions so the callback can
decide which redirect to issue; nothing here retries, since an authorization
code can only be redeemed once.
"""

from __future__ import annotations

import logging
from typing import Optional

import httpx
from pydantic import ValidationError

from app.core.config import GitHubSettings
from app.core.logging import mask_value
from app.models.oauth import ExchangeResult, UpstreamIdentity
from app.schemas.auth import GitHubTokenResponse, GitHubUserResponse

logger = logging.getLogger(__name__)

IDENTITY_FETCH_FAILED_MESSAGE = (
    "Could not load your GitHub account details. Please try connecting again."
)


class GitHubOAuthError(Exception):
    """Base class for failures talking to GitHub during the callback."""


class TokenExchangeError(GitHubOAuthError):
    """Raised when the token endpoint cannot be reached or its reply cannot be read."""


class MissingAccessTokenError(GitHubOAuthError):
    """Raised when the token endpoint replied without an access token."""


class ProviderExchangeError(GitHubOAuthError):
    """Raised when GitHub explicitly reports an error for the exchange."""

    def __init__(
        self, error: str, description: Optional[str], redirect_uri: str
    ) -> None:
        self.error = error
        self.description = description
        super().__init__(self._actionable_message(error, description, redirect_uri))

    @staticmethod
    def _actionable_message(
        error: str, description: Optional[str], redirect_uri: str
    ) -> str:
        if error == "bad_verification_code":
            return (
                "The authorization code has expired or is invalid. "
                "Please try connecting again."
            )
        if error == "redirect_uri_mismatch":
            return (
                "Redirect URI mismatch. Expected redirect_uri to match the one "
                f"registered with GitHub. Used: {redirect_uri}"
            )
        if description:
            return f"{error}: {description}"
        return error


class IdentityFetchError(GitHubOAuthError):
    """Raised when the connected GitHub login cannot be resolved."""


class GitHubOAuthClient:
    """Exchange authorization codes and look up the authenticated GitHub user."""

    def __init__(
        self,
        settings: GitHubSettings,
        *,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._settings = settings
        self._timeout = timeout
        self._transport = transport

    @property
    def is_configured(self) -> bool:
        return self._settings.is_configured

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self._timeout, transport=self._transport)

    async def exchange_authorization_code(
        self, code: str, redirect_uri: str
    ) -> ExchangeResult:
        """
        Exchange an authorization code for an access token.

        ``redirect_uri`` must be byte-for-byte the value the grant was started
        with, otherwise GitHub answers ``redirect_uri_mismatch``.
        """
        logger.info("Redirect URI being used for token exchange: %s", redirect_uri)
        logger.info("Authorization code received: %s", mask_value(code))

        body = {
            "client_id": self._settings.client_id,
            "client_secret": self._settings.client_secret,
            "code": code,
            "redirect_uri": redirect_uri,
        }

        try:
            async with self._client() as client:
                response = await client.post(
                    str(self._settings.token_url),
                    json=body,
                    headers={"Accept": "application/json"},
                )
        except httpx.HTTPError as exc:
            logger.error(
                "Token exchange request failed: %s (%s)", exc, type(exc).__name__
            )
            raise TokenExchangeError(
                f"Token exchange failed: {str(exc) or type(exc).__name__}"
            ) from exc

        try:
            payload = GitHubTokenResponse.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            logger.error(
                "Unreadable token exchange response (HTTP %s)", response.status_code
            )
            raise TokenExchangeError(
                f"Token exchange failed: unreadable response (HTTP {response.status_code})"
            ) from exc

        logger.info(
            "Token exchange response received: has_access_token=%s error=%s",
            bool(payload.access_token),
            payload.error,
        )

        if payload.error:
            logger.error(
                "GitHub API error: error=%s description=%s uri=%s redirect_uri=%s code=%s",
                payload.error,
                payload.error_description,
                payload.error_uri,
                redirect_uri,
                mask_value(code),
            )
            raise ProviderExchangeError(
                payload.error, payload.error_description, redirect_uri
            )

        if response.is_error:
            raise TokenExchangeError(
                f"Token exchange failed: HTTP {response.status_code}"
            )

        if not payload.access_token:
            logger.error(
                "No access token in response: redirect_uri=%s code=%s",
                redirect_uri,
                mask_value(code),
            )
            raise MissingAccessTokenError(
                "No access token received from GitHub. Please check that the "
                "authorization code is valid and hasn't expired."
            )

        return ExchangeResult(
            access_token=payload.access_token,
            token_type=payload.token_type or "bearer",
            scope=payload.scope or "",
        )

    async def fetch_identity(self, access_token: str) -> UpstreamIdentity:
        """Resolve the GitHub login that owns ``access_token``."""
        url = f"{str(self._settings.api_base).rstrip('/')}/user"
        try:
            async with self._client() as client:
                response = await client.get(
                    url,
                    headers={
                        "Authorization": f"Bearer {access_token}",
                        "Accept": "application/vnd.github.v3+json",
                    },
                )
            response.raise_for_status()
            user = GitHubUserResponse.model_validate(response.json())
        except httpx.HTTPStatusError as exc:
            logger.error("GitHub user lookup failed: HTTP %s", exc.response.status_code)
            raise IdentityFetchError(IDENTITY_FETCH_FAILED_MESSAGE) from exc
        except httpx.HTTPError as exc:
            logger.error("GitHub user lookup failed: %s", type(exc).__name__)
            raise IdentityFetchError(IDENTITY_FETCH_FAILED_MESSAGE) from exc
        except (ValueError, ValidationError) as exc:
            logger.error("GitHub user lookup returned an unusable profile")
            raise IdentityFetchError(IDENTITY_FETCH_FAILED_MESSAGE) from exc

        logger.info("Connected as: %s", user.login)
        return UpstreamIdentity(
            login=user.login,
            name=user.name,
            email=user.email,
            avatar_url=user.avatar_url,
        )


__all__ = [
    "GitHubOAuthClient",
    "GitHubOAuthError",
    "IdentityFetchError",
    "MissingAccessTokenError",
    "ProviderExchangeError",
    "TokenExchangeError",
]
