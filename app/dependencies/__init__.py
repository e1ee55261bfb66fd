"""Expose dependency helpers for FastAPI routers."""

from .clients import (
    get_app_settings,
    get_auth_service_client,
    get_callback_pipeline,
    get_connector_dispatcher,
    get_github_oauth_client,
    get_outcome_classifier,
    get_platform_auth_client,
    get_session_credential_manager,
    get_session_store,
    get_state_codec,
    get_token_cipher_service,
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
