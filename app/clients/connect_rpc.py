"""
Connect-protocol client for the internal auth service.

Unary calls are sent as JSON over HTTP/1.1. Transport and protocol failures are
mapped to a small ``FailureClass`` here, once, so callers never inspect status
codes or error strings themselves.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Optional

import httpx
from pydantic import ValidationError

from app.core.config import InternalAPISettings
from app.models.oauth import ConnectionRequest
from app.schemas.auth import ConnectGitHubResponse

logger = logging.getLogger(__name__)


class FailureClass(str, Enum):
    """Normalized reasons an internal RPC can fail."""

    UNAUTHENTICATED = "unauthenticated"
    PERMISSION_DENIED = "permission_denied"
    UNAVAILABLE = "unavailable"
    INVALID_RESPONSE = "invalid_response"
    UNKNOWN = "unknown"


_CONNECT_CODES: dict[str, FailureClass] = {
    "unauthenticated": FailureClass.UNAUTHENTICATED,
    "16": FailureClass.UNAUTHENTICATED,
    "permission_denied": FailureClass.PERMISSION_DENIED,
    "7": FailureClass.PERMISSION_DENIED,
    "unavailable": FailureClass.UNAVAILABLE,
    "14": FailureClass.UNAVAILABLE,
    "deadline_exceeded": FailureClass.UNAVAILABLE,
    "4": FailureClass.UNAVAILABLE,
}

_HTTP_STATUSES: dict[int, FailureClass] = {
    401: FailureClass.UNAUTHENTICATED,
    403: FailureClass.PERMISSION_DENIED,
    502: FailureClass.UNAVAILABLE,
    503: FailureClass.UNAVAILABLE,
    504: FailureClass.UNAVAILABLE,
}

_UNAUTHENTICATED_HINTS = ("unauthenticated", "invalid authorization token")


class RPCError(Exception):
    """A failed internal RPC, already classified."""

    def __init__(
        self,
        failure_class: FailureClass,
        message: str,
        *,
        code: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.failure_class = failure_class
        self.message = message
        self.code = code


def classify_failure(
    code: Any, message: str, status_code: Optional[int] = None
) -> FailureClass:
    """Map a Connect error code, message and HTTP status to a ``FailureClass``.

    Any one of code, message or status saying "unauthenticated" wins over the
    other classes.
    """
    mapped = _CONNECT_CODES.get(str(code).lower()) if code is not None else None
    by_status = _HTTP_STATUSES.get(status_code) if status_code is not None else None
    lowered = (message or "").lower()
    if (
        mapped is FailureClass.UNAUTHENTICATED
        or by_status is FailureClass.UNAUTHENTICATED
        or any(hint in lowered for hint in _UNAUTHENTICATED_HINTS)
    ):
        return FailureClass.UNAUTHENTICATED
    return mapped or by_status or FailureClass.UNKNOWN


class AuthServiceClient:
    """Bearer-authenticated client for the ``AuthService`` linking procedures."""

    def __init__(
        self,
        settings: InternalAPISettings,
        *,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._base_url = str(settings.api_host).rstrip("/")
        self._service = settings.auth_service
        self._timeout = timeout
        self._transport = transport

    async def connect_github(
        self, request: ConnectionRequest, *, bearer_token: str
    ) -> ConnectGitHubResponse:
        """Link a GitHub account to the calling user."""
        return await self._call("ConnectGitHub", request, bearer_token)

    async def connect_organization_github(
        self, request: ConnectionRequest, *, bearer_token: str
    ) -> ConnectGitHubResponse:
        """Link a GitHub account to an organization."""
        if not request.organization_id:
            raise ValueError("Organization connections require an organization id.")
        return await self._call("ConnectOrganizationGitHub", request, bearer_token)

    async def _call(
        self, method: str, request: ConnectionRequest, bearer_token: str
    ) -> ConnectGitHubResponse:
        url = f"{self._base_url}/{self._service}/{method}"
        headers = {
            "Authorization": f"Bearer {bearer_token}",
            "Content-Type": "application/json",
            "Connect-Protocol-Version": "1",
        }
        try:
            async with httpx.AsyncClient(
                timeout=self._timeout, transport=self._transport
            ) as client:
                response = await client.post(url, json=request.to_wire(), headers=headers)
        except httpx.TimeoutException as exc:
            raise RPCError(
                FailureClass.UNAVAILABLE, f"{method} timed out", code="deadline_exceeded"
            ) from exc
        except httpx.HTTPError as exc:
            raise RPCError(
                FailureClass.UNAVAILABLE,
                f"{method} failed: {type(exc).__name__}",
                code="unavailable",
            ) from exc

        if response.is_error:
            raise self._error_from_response(method, response)

        try:
            return ConnectGitHubResponse.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            raise RPCError(
                FailureClass.INVALID_RESPONSE, f"{method} returned an unreadable response"
            ) from exc

    @staticmethod
    def _error_from_response(method: str, response: httpx.Response) -> RPCError:
        code: Any = None
        message = ""
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict):
            code = body.get("code")
            message = str(body.get("message") or "")
        if not message:
            message = f"{method} failed with HTTP {response.status_code}"

        failure_class = classify_failure(code, message, response.status_code)
        logger.error(
            "API call failed: method=%s status=%s code=%s class=%s message=%s",
            method,
            response.status_code,
            code,
            failure_class.value,
            message,
        )
        return RPCError(
            failure_class, message, code=str(code) if code is not None else None
        )


__all__ = ["AuthServiceClient", "FailureClass", "RPCError", "classify_failure"]
