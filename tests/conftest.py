"""Pytest configuration shared across the suite."""

from __future__ import annotations

import json
from typing import Any, Callable, Optional

import _bootstrap  # noqa: F401
import httpx
import pytest

from app.services.session_store import SessionData

GITHUB_TOKEN_URL = "https://github.com/login/oauth/access_token"
GITHUB_USER_URL = "https://api.github.com/user"
PLATFORM_TOKEN_URL = "https://auth.example.com/oauth/v2/token"
RPC_BASE = "https://api.example.com/obiente.cloud.auth.v1.AuthService"


@pytest.fixture
def anyio_backend() -> str:
    """Force AnyIO-powered tests to run against asyncio backend only."""
    return "asyncio"


Reply = Any  # (status, json body) tuple, an httpx.Response, or an exception to raise


class FakeUpstream:
    """Routes outbound HTTP calls to canned replies and records every request."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.replies: dict[str, Reply] = {
            GITHUB_TOKEN_URL: (
                200,
                {"access_token": "tok1", "token_type": "bearer", "scope": "repo,read:user"},
            ),
            GITHUB_USER_URL: (200, {"login": "alice", "name": "Alice"}),
            PLATFORM_TOKEN_URL: (
                200,
                {
                    "access_token": "platform-fresh",
                    "refresh_token": "platform-refresh-2",
                    "expires_in": 3600,
                    "token_type": "Bearer",
                },
            ),
            f"{RPC_BASE}/ConnectGitHub": (200, {"success": True, "username": "alice"}),
            f"{RPC_BASE}/ConnectOrganizationGitHub": (200, {"success": True}),
        }

    def reply(self, url: str, value: Reply) -> None:
        self.replies[url] = value

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        url = str(request.url.copy_with(query=None))
        value = self.replies.get(url)
        if value is None:
            return httpx.Response(404, json={"message": f"unexpected call to {url}"})
        if isinstance(value, Exception):
            raise value
        if isinstance(value, httpx.Response):
            return value
        status, body = value
        return httpx.Response(status, json=body)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def calls_to(self, url: str) -> list[httpx.Request]:
        return [r for r in self.requests if str(r.url.copy_with(query=None)) == url]

    def json_body(self, url: str, index: int = 0) -> dict:
        return json.loads(self.calls_to(url)[index].content)


class FakeSessionStore:
    """In-memory session store honoring the read/write contract."""

    def __init__(self, data: Optional[SessionData] = None) -> None:
        self.data = data
        self.writes: list[SessionData] = []

    def read(self, request) -> Optional[SessionData]:
        return self.data

    def write(self, response, data: SessionData) -> None:
        self.writes.append(data)
        self.data = data


@pytest.fixture
def upstream() -> FakeUpstream:
    return FakeUpstream()


@pytest.fixture
def session_factory() -> Callable[..., SessionData]:
    def _build(**secure: Any) -> SessionData:
        return SessionData.model_validate({"secure": secure})

    return _build
