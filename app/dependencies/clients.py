"""
Factory functions to provide shared clients and services as FastAPI dependencies.

Stateless clients are cached per process. The services that combine them are
assembled through ``Depends`` so tests can override any single collaborator.
"""

from functools import lru_cache

from fastapi import Depends

from app.clients import (
    AuthServiceClient,
    GitHubOAuthClient,
    PlatformAuthClient,
    StateEnvelopeCodec,
)
from app.core.config import AppSettings, get_settings
from app.services import (
    ConnectorDispatcher,
    CookieSessionStore,
    GitHubCallbackPipeline,
    OutcomeClassifier,
    SessionCredentialManager,
    SessionStore,
    TokenCipherService,
)


@lru_cache()
def _settings() -> AppSettings:
    """Internal helper to cache settings for client factories."""
    return get_settings()


def get_app_settings() -> AppSettings:
    """FastAPI dependency returning application settings."""
    return _settings()


@lru_cache()
def get_state_codec() -> StateEnvelopeCodec:
    """Provide the OAuth state codec, signing only when a secret is configured."""
    settings = _settings()
    return StateEnvelopeCodec(secret_key=settings.security.oauth_state_secret)


@lru_cache()
def get_github_oauth_client() -> GitHubOAuthClient:
    """Create a singleton GitHub OAuth client."""
    settings = _settings()
    return GitHubOAuthClient(settings.github, timeout=settings.http_timeout_seconds)


@lru_cache()
def get_platform_auth_client() -> PlatformAuthClient:
    """Provide the client for the platform's own token endpoint."""
    settings = _settings()
    return PlatformAuthClient(
        settings.platform_auth, timeout=settings.http_timeout_seconds
    )


@lru_cache()
def get_auth_service_client() -> AuthServiceClient:
    """Provide the internal auth service client."""
    settings = _settings()
    return AuthServiceClient(
        settings.internal_api, timeout=settings.http_timeout_seconds
    )


@lru_cache()
def get_token_cipher_service() -> TokenCipherService:
    """Provide symmetric encryption helper for the session cookie."""
    settings = _settings()
    return TokenCipherService(secret=settings.security.session_password)


def get_session_store(
    settings: AppSettings = Depends(get_app_settings),
    cipher: TokenCipherService = Depends(get_token_cipher_service),
) -> SessionStore:
    """Provide the platform session store."""
    return CookieSessionStore(
        cipher,
        cookie_name=settings.session_cookie_name,
        secure=settings.is_production,
    )


def get_session_credential_manager(
    settings: AppSettings = Depends(get_app_settings),
    platform_client: PlatformAuthClient = Depends(get_platform_auth_client),
) -> SessionCredentialManager:
    """Build the session credential manager for the current settings."""
    return SessionCredentialManager(
        platform_client,
        auth_disabled=settings.platform_auth.disable_auth,
        auth_cookie_name=settings.auth_cookie_name,
        secure_cookies=settings.is_production,
    )


def get_connector_dispatcher(
    auth_client: AuthServiceClient = Depends(get_auth_service_client),
) -> ConnectorDispatcher:
    """Build the connection dispatcher."""
    return ConnectorDispatcher(auth_client)


def get_outcome_classifier(
    settings: AppSettings = Depends(get_app_settings),
) -> OutcomeClassifier:
    """Build the redirect classifier."""
    return OutcomeClassifier(
        settings_path=settings.settings_path, login_path=settings.login_path
    )


def get_callback_pipeline(
    state_codec: StateEnvelopeCodec = Depends(get_state_codec),
    oauth_client: GitHubOAuthClient = Depends(get_github_oauth_client),
    session_manager: SessionCredentialManager = Depends(get_session_credential_manager),
    dispatcher: ConnectorDispatcher = Depends(get_connector_dispatcher),
) -> GitHubCallbackPipeline:
    """Assemble the callback pipeline from its collaborators."""
    return GitHubCallbackPipeline(
        state_codec=state_codec,
        oauth_client=oauth_client,
        session_manager=session_manager,
        dispatcher=dispatcher,
    )


__all__ = [
    "get_app_settings",
    "get_auth_service_client",
    "get_callback_pipeline",
    "get_connector_dispatcher",
    "get_github_oauth_client",
    "get_outcome_classifier",
    "get_platform_auth_client",
    "get_session_credential_manager",
    "get_session_store",
    "get_state_codec",
    "get_token_cipher_service",
]
