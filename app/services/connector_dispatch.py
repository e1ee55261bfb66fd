"""
Persist a GitHub connection through the internal auth service.
"""

from __future__ import annotations

import logging

from app.clients.connect_rpc import AuthServiceClient
from app.models.oauth import (
    ConnectionRequest,
    ConnectionScope,
    DispatchResult,
    ExchangeResult,
    SessionCredential,
    StateEnvelope,
    UpstreamIdentity,
)

logger = logging.getLogger(__name__)


class ConnectionDeclinedError(Exception):
    """Raised when the internal API answered but did not persist the connection."""


class ConnectorDispatcher:
    """Choose the user- or organization-scoped linking call and run exactly one."""

    def __init__(self, auth_client: AuthServiceClient) -> None:
        self._client = auth_client

    async def dispatch(
        self,
        envelope: StateEnvelope,
        exchange: ExchangeResult,
        identity: UpstreamIdentity,
        session: SessionCredential,
    ) -> DispatchResult:
        """Store the connection. ``RPCError`` from the transport propagates."""
        # An organization scope without an id cannot be honoured; link to the user.
        organization_id = envelope.organization_id if envelope.targets_organization else None
        request = ConnectionRequest(
            access_token=exchange.access_token,
            username=identity.login,
            scope=exchange.scope,
            organization_id=organization_id,
        )

        logger.info(
            "Storing token in database: connection_type=%s org_id=%s username=%s",
            envelope.connection_scope.value,
            organization_id or "none",
            identity.login,
        )

        if organization_id:
            response = await self._client.connect_organization_github(
                request, bearer_token=session.access_token
            )
            scope = ConnectionScope.ORGANIZATION
        else:
            response = await self._client.connect_github(
                request, bearer_token=session.access_token
            )
            scope = ConnectionScope.USER

        logger.info(
            "%s connection response: success=%s",
            scope.value.capitalize(),
            response.success,
        )
        if not response.success:
            raise ConnectionDeclinedError("Failed to save GitHub token to database")

        return DispatchResult(
            success=True,
            connection_scope=scope,
            username=identity.login,
            organization_id=organization_id,
        )


__all__ = ["ConnectionDeclinedError", "ConnectorDispatcher"]
