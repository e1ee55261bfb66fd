"""
GitHub OAuth callback pipeline.

Runs the callback stages in order (state decode, code exchange, identity lookup,
session refresh, connection dispatch). Each stage either hands its value to the
next or ends the request with an ``Outcome``; nothing raised by a stage escapes
``handle``.
"""

from __future__ import annotations

import logging

from app.clients.connect_rpc import FailureClass, RPCError
from app.clients.github_oauth import (
    GitHubOAuthClient,
    IdentityFetchError,
    MissingAccessTokenError,
    ProviderExchangeError,
    TokenExchangeError,
)
from app.clients.state_codec import StateEnvelopeCodec, StateSignatureError
from app.schemas.auth import OAuthCallbackParams
from app.services.connector_dispatch import ConnectionDeclinedError, ConnectorDispatcher
from app.services.outcomes import Outcome, OutcomeReason, redact_secrets
from app.services.session_credentials import LoginRequiredError, SessionCredentialManager
from app.services.session_store import SessionHandle

logger = logging.getLogger(__name__)


class GitHubCallbackPipeline:
    """Turn a GitHub OAuth callback into a terminal ``Outcome``."""

    def __init__(
        self,
        *,
        state_codec: StateEnvelopeCodec,
        oauth_client: GitHubOAuthClient,
        session_manager: SessionCredentialManager,
        dispatcher: ConnectorDispatcher,
    ) -> None:
        self._codec = state_codec
        self._oauth = oauth_client
        self._sessions = session_manager
        self._dispatcher = dispatcher

    async def handle(
        self,
        params: OAuthCallbackParams,
        *,
        redirect_uri: str,
        continuation: str,
        session: SessionHandle,
    ) -> Outcome:
        """Run the pipeline; always returns an outcome."""
        try:
            return await self._run(
                params,
                redirect_uri=redirect_uri,
                continuation=continuation,
                session=session,
            )
        except Exception:  # pylint: disable=broad-except
            logger.exception("Unexpected failure while completing GitHub connection")
            return Outcome.fixed_error(OutcomeReason.TOKEN_EXCHANGE_FAILED)

    async def _run(
        self,
        params: OAuthCallbackParams,
        *,
        redirect_uri: str,
        continuation: str,
        session: SessionHandle,
    ) -> Outcome:
        if params.error:
            logger.error("Error from GitHub: %s", params.error)
            return Outcome.provider_error(params.error)

        if not params.code:
            logger.error("Missing authorization code")
            return Outcome.fixed_error(OutcomeReason.MISSING_CODE)

        if not self._oauth.is_configured:
            logger.error("Missing GitHub credentials in config")
            return Outcome.fixed_error(OutcomeReason.CONFIGURATION_ERROR)

        try:
            envelope = self._codec.decode(params.state)
        except StateSignatureError as exc:
            logger.error("Rejected OAuth state: %s", exc)
            return Outcome.fixed_error(OutcomeReason.INVALID_STATE)

        try:
            exchange = await self._oauth.exchange_authorization_code(
                params.code, redirect_uri
            )
        except ProviderExchangeError as exc:
            return Outcome.failure(OutcomeReason.PROVIDER_EXCHANGE_ERROR, str(exc))
        except MissingAccessTokenError as exc:
            return Outcome.failure(OutcomeReason.MISSING_ACCESS_TOKEN, str(exc))
        except TokenExchangeError as exc:
            return Outcome.failure(OutcomeReason.TOKEN_EXCHANGE_FAILED, str(exc))

        try:
            identity = await self._oauth.fetch_identity(exchange.access_token)
        except IdentityFetchError as exc:
            return Outcome.failure(OutcomeReason.IDENTITY_FETCH_FAILED, str(exc))

        try:
            credential = await self._sessions.ensure_fresh_session(session)
        except LoginRequiredError:
            return Outcome.login_required(OutcomeReason.LOGIN_REQUIRED, continuation)

        try:
            result = await self._dispatcher.dispatch(
                envelope, exchange, identity, credential
            )
        except RPCError as exc:
            if (
                exc.failure_class is FailureClass.UNAUTHENTICATED
                and not self._sessions.auth_disabled
            ):
                logger.error(
                    "Authentication error after proactive refresh - user may need to log in again"
                )
                return Outcome.login_required(
                    OutcomeReason.RPC_UNAUTHENTICATED, continuation
                )
            message = redact_secrets(
                exc.message, exchange.access_token, credential.access_token
            )
            logger.error("Token storage failed: %s", message)
            return Outcome.failure(OutcomeReason.PERSISTENCE_FAILED, message)
        except ConnectionDeclinedError as exc:
            logger.error("Token storage failed: %s", exc)
            return Outcome.failure(OutcomeReason.PERSISTENCE_FAILED, str(exc))

        logger.info("Token saved to database successfully")
        return Outcome.success(identity.login, result.organization_id)


__all__ = ["GitHubCallbackPipeline"]
