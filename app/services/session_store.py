"""
Platform session storage.

The session is treated as an injected dependency with an explicit read/write
contract. ``CookieSessionStore`` keeps the whole payload in a sealed cookie;
``SessionHandle`` binds a store to one request and buffers writes until the
redirect response has been built.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Optional, Protocol

from fastapi import Request, Response
from pydantic import BaseModel, Field, ValidationError

from app.services.token_cipher import TokenCipherService

logger = logging.getLogger(__name__)

_SESSION_MAX_AGE = 7 * 24 * 60 * 60


class SecureSessionTokens(BaseModel):
    """Tokens issued to the browser session by the platform identity provider."""

    access_token: Optional[str] = Field(None, repr=False)
    refresh_token: Optional[str] = Field(None, repr=False)
    id_token: Optional[str] = Field(None, repr=False)
    token_type: Optional[str] = None
    scope: Optional[str] = None
    expires_in: Optional[int] = None
    expires_at: Optional[datetime] = None


class SessionData(BaseModel):
    """Payload persisted for a browser session."""

    secure: SecureSessionTokens = Field(default_factory=SecureSessionTokens)


class SessionStore(Protocol):
    """Read/write contract for the platform session."""

    def read(self, request: Request) -> Optional[SessionData]:
        ...

    def write(self, response: Response, data: SessionData) -> None:
        ...


class CookieSessionStore:
    """Session store that seals the payload into a single cookie."""

    def __init__(
        self,
        cipher: TokenCipherService,
        *,
        cookie_name: str,
        secure: bool = False,
        max_age: int = _SESSION_MAX_AGE,
    ) -> None:
        self._cipher = cipher
        self._cookie_name = cookie_name
        self._secure = secure
        self._max_age = max_age

    def read(self, request: Request) -> Optional[SessionData]:
        sealed = request.cookies.get(self._cookie_name)
        if not sealed:
            return None
        try:
            return SessionData.model_validate_json(
                self._cipher.decrypt(sealed, max_age=self._max_age)
            )
        except (ValueError, ValidationError):
            logger.warning("Ignoring unreadable session cookie")
            return None

    def write(self, response: Response, data: SessionData) -> None:
        response.set_cookie(
            self._cookie_name,
            self._cipher.encrypt(data.model_dump_json()),
            max_age=self._max_age,
            path="/",
            httponly=True,
            secure=self._secure,
            samesite="lax",
        )


class SessionHandle:
    """Request-scoped view over a ``SessionStore``."""

    def __init__(self, store: SessionStore, request: Request) -> None:
        self._store = store
        self._request = request
        self._data: Optional[SessionData] = None
        self._dirty = False
        self._cookies: list[tuple[str, str, dict[str, Any]]] = []

    def read(self) -> SessionData:
        if self._data is None:
            self._data = self._store.read(self._request) or SessionData()
        return self._data

    def write(self, data: SessionData) -> None:
        self._data = data
        self._dirty = True

    def cookie(self, name: str) -> Optional[str]:
        return self._request.cookies.get(name)

    def set_cookie(self, name: str, value: str, **options: Any) -> None:
        self._cookies.append((name, value, options))

    def apply(self, response: Response) -> None:
        """Flush buffered session and cookie writes onto ``response``."""
        if self._dirty and self._data is not None:
            self._store.write(response, self._data)
        for name, value, options in self._cookies:
            response.set_cookie(name, value, **options)


__all__ = [
    "CookieSessionStore",
    "SecureSessionTokens",
    "SessionData",
    "SessionHandle",
    "SessionStore",
]
