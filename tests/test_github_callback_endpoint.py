try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover
    import _bootstrap  # type: ignore # noqa: F401

import copy
from urllib.parse import parse_qs, urlsplit

import httpx
import pytest

from app.clients import (
    AuthServiceClient,
    GitHubOAuthClient,
    PlatformAuthClient,
    StateEnvelopeCodec,
)
from app.core.config import GitHubSettings
from app.main import app
from app.models.oauth import ConnectionScope, StateEnvelope
from conftest import (
    GITHUB_TOKEN_URL,
    GITHUB_USER_URL,
    PLATFORM_TOKEN_URL,
    RPC_BASE,
    FakeSessionStore,
    FakeUpstream,
)

pytestmark = pytest.mark.anyio

USER_RPC_URL = f"{RPC_BASE}/ConnectGitHub"
ORG_RPC_URL = f"{RPC_BASE}/ConnectOrganizationGitHub"


class CallbackHarness:
    def __init__(self, upstream: FakeUpstream, settings, store: FakeSessionStore) -> None:
        self.upstream = upstream
        self.settings = settings
        self.store = store

    def use_github_client(self, client: GitHubOAuthClient) -> None:
        from app import dependencies

        app.dependency_overrides[dependencies.get_github_oauth_client] = lambda: client

    def use_state_codec(self, codec: StateEnvelopeCodec) -> None:
        from app import dependencies

        app.dependency_overrides[dependencies.get_state_codec] = lambda: codec

    async def get(self, params: dict, *, headers: dict | None = None, cookies: dict | None = None):
        async with httpx.AsyncClient(
            transport=httpx.ASGITransport(app=app),
            base_url="http://testserver",
            cookies=cookies,
        ) as client:
            return await client.get("/oauth/callback", params=params, headers=headers)


@pytest.fixture()
def callback(upstream: FakeUpstream, session_factory):
    from app import dependencies
    from app.core.config import get_settings

    settings = copy.deepcopy(get_settings())
    store = FakeSessionStore(
        session_factory(access_token="platform-old", refresh_token="platform-refresh-1")
    )
    transport = upstream.transport

    github_client = GitHubOAuthClient(settings.github, timeout=2.0, transport=transport)
    platform_client = PlatformAuthClient(settings.platform_auth, timeout=2.0, transport=transport)
    auth_client = AuthServiceClient(settings.internal_api, timeout=2.0, transport=transport)

    app.dependency_overrides.update(
        {
            dependencies.get_app_settings: lambda: settings,
            dependencies.get_state_codec: lambda: StateEnvelopeCodec(),
            dependencies.get_github_oauth_client: lambda: github_client,
            dependencies.get_platform_auth_client: lambda: platform_client,
            dependencies.get_auth_service_client: lambda: auth_client,
            dependencies.get_session_store: lambda: store,
        }
    )

    yield CallbackHarness(upstream, settings, store)

    app.dependency_overrides.clear()


def _location(response: httpx.Response) -> tuple[str, dict[str, list[str]]]:
    assert response.status_code == 302
    parts = urlsplit(response.headers["location"])
    return parts.path, parse_qs(parts.query)


def _state(scope: ConnectionScope, org_id: str | None = None) -> str:
    return StateEnvelopeCodec().encode(
        StateEnvelope(connection_scope=scope, organization_id=org_id)
    )


async def test_provider_error_short_circuits(callback: CallbackHarness) -> None:
    response = await callback.get({"error": "access_denied", "code": "abc123"})

    path, query = _location(response)
    assert path == "/settings"
    assert query["error"] == ["access_denied"]
    assert callback.upstream.requests == []


async def test_missing_code(callback: CallbackHarness) -> None:
    response = await callback.get({"state": _state(ConnectionScope.USER)})

    _, query = _location(response)
    assert query["error"] == ["missing_code"]
    assert callback.upstream.requests == []


async def test_unconfigured_github_credentials(callback: CallbackHarness) -> None:
    callback.use_github_client(
        GitHubOAuthClient(
            GitHubSettings(GITHUB_CLIENT_ID=None, GITHUB_CLIENT_SECRET=None),
            transport=callback.upstream.transport,
        )
    )

    response = await callback.get({"code": "abc123"})

    _, query = _location(response)
    assert query["error"] == ["configuration_error"]
    assert callback.upstream.requests == []


@pytest.mark.parametrize(
    ("headers", "expected"),
    [
        ({}, "http://testserver/oauth/callback"),
        (
            {"x-forwarded-proto": "https", "x-forwarded-host": "app.example.com"},
            "https://app.example.com/oauth/callback",
        ),
        (
            {"host": "dashboard.example.com:8443", "x-forwarded-proto": "https"},
            "https://dashboard.example.com:8443/oauth/callback",
        ),
        (
            {"x-forwarded-proto": "https, http", "x-forwarded-host": "edge.example.com, internal"},
            "https://edge.example.com/oauth/callback",
        ),
    ],
)
async def test_redirect_uri_follows_inbound_request(
    callback: CallbackHarness, headers: dict, expected: str
) -> None:
    await callback.get({"code": "abc123"}, headers=headers)

    assert callback.upstream.json_body(GITHUB_TOKEN_URL)["redirect_uri"] == expected


async def test_user_connection_end_to_end(callback: CallbackHarness) -> None:
    response = await callback.get({"code": "abc123", "state": _state(ConnectionScope.USER)})

    path, query = _location(response)
    assert path == "/settings"
    assert query == {
        "tab": ["integrations"],
        "provider": ["github"],
        "success": ["true"],
        "username": ["alice"],
    }

    upstream = callback.upstream
    assert len(upstream.calls_to(GITHUB_TOKEN_URL)) == 1
    assert upstream.calls_to(GITHUB_USER_URL)[0].headers["authorization"] == "Bearer tok1"
    assert len(upstream.calls_to(PLATFORM_TOKEN_URL)) == 1
    assert upstream.calls_to(ORG_RPC_URL) == []
    rpc = upstream.calls_to(USER_RPC_URL)
    assert len(rpc) == 1
    assert rpc[0].headers["authorization"] == "Bearer platform-fresh"
    assert upstream.json_body(USER_RPC_URL) == {
        "accessToken": "tok1",
        "username": "alice",
        "scope": "repo,read:user",
    }

    assert callback.store.writes[-1].secure.access_token == "platform-fresh"
    set_cookies = response.headers.get_list("set-cookie")
    assert any(cookie.startswith("obiente_token=platform-fresh") for cookie in set_cookies)


async def test_organization_connection_end_to_end(callback: CallbackHarness) -> None:
    response = await callback.get(
        {"code": "abc123", "state": _state(ConnectionScope.ORGANIZATION, "org_9")}
    )

    _, query = _location(response)
    assert query["success"] == ["true"]
    assert query["username"] == ["alice"]
    assert query["orgId"] == ["org_9"]
    assert callback.upstream.calls_to(USER_RPC_URL) == []
    assert callback.upstream.json_body(ORG_RPC_URL)["organizationId"] == "org_9"


async def test_unreadable_state_connects_user(callback: CallbackHarness) -> None:
    response = await callback.get({"code": "abc123", "state": "%%%not-base64"})

    _, query = _location(response)
    assert query["success"] == ["true"]
    assert "orgId" not in query
    assert len(callback.upstream.calls_to(USER_RPC_URL)) == 1


async def test_declined_write_reports_failure(callback: CallbackHarness) -> None:
    callback.upstream.reply(USER_RPC_URL, (200, {"success": False}))

    response = await callback.get({"code": "abc123"})

    _, query = _location(response)
    assert query["error"] == ["Failed to save GitHub token to database"]
    assert "success" not in query


async def test_stale_code_reports_friendly_message(callback: CallbackHarness) -> None:
    callback.upstream.reply(GITHUB_TOKEN_URL, (200, {"error": "bad_verification_code"}))

    response = await callback.get({"code": "stale"})

    _, query = _location(response)
    assert "expired or is invalid" in query["error"][0]
    assert callback.upstream.calls_to(GITHUB_USER_URL) == []


async def test_refresh_failure_uses_existing_token(callback: CallbackHarness) -> None:
    callback.upstream.reply(PLATFORM_TOKEN_URL, (400, {"error": "invalid_grant"}))

    response = await callback.get({"code": "abc123"})

    _, query = _location(response)
    assert query["success"] == ["true"]
    rpc = callback.upstream.calls_to(USER_RPC_URL)[0]
    assert rpc.headers["authorization"] == "Bearer platform-old"
    assert callback.store.writes == []


async def test_auth_cookie_is_preferred(callback: CallbackHarness, session_factory) -> None:
    callback.store.data = session_factory()

    response = await callback.get({"code": "abc123"}, cookies={"obiente_token": "cookie-token"})

    _, query = _location(response)
    assert query["success"] == ["true"]
    rpc = callback.upstream.calls_to(USER_RPC_URL)[0]
    assert rpc.headers["authorization"] == "Bearer cookie-token"


async def test_missing_session_redirects_to_login(callback: CallbackHarness) -> None:
    callback.store.data = None
    params = {"code": "abc123", "state": _state(ConnectionScope.ORGANIZATION, "org_9")}

    response = await callback.get(params)

    path, query = _location(response)
    assert path == "/auth/login"
    continuation = urlsplit(query["redirect"][0])
    assert continuation.path == "/oauth/callback"
    assert {k: v[0] for k, v in parse_qs(continuation.query).items()} == params
    assert callback.upstream.calls_to(USER_RPC_URL) == []
    assert callback.upstream.calls_to(ORG_RPC_URL) == []


async def test_disabled_auth_sends_placeholder_token(callback: CallbackHarness) -> None:
    callback.store.data = None
    callback.settings.platform_auth.disable_auth = True

    response = await callback.get({"code": "abc123"})

    _, query = _location(response)
    assert query["success"] == ["true"]
    rpc = callback.upstream.calls_to(USER_RPC_URL)[0]
    assert rpc.headers["authorization"] == "Bearer dev-dummy-token"


async def test_rejected_session_redirects_to_login(callback: CallbackHarness) -> None:
    callback.upstream.reply(
        USER_RPC_URL, (401, {"code": "unauthenticated", "message": "invalid authorization token"})
    )

    response = await callback.get({"code": "abc123"})

    path, query = _location(response)
    assert path == "/auth/login"
    assert query["redirect"][0].startswith("/oauth/callback?")


async def test_rpc_failure_message_is_redacted(callback: CallbackHarness) -> None:
    callback.upstream.reply(
        USER_RPC_URL, (500, {"code": "internal", "message": "could not store tok1"})
    )

    response = await callback.get({"code": "abc123"})

    _, query = _location(response)
    assert query["error"] == ["could not store [redacted]"]


async def test_tampered_signed_state_is_rejected(callback: CallbackHarness) -> None:
    codec = StateEnvelopeCodec(secret_key="state-secret")
    callback.use_state_codec(codec)
    forged = _state(ConnectionScope.ORGANIZATION, "org_9")

    response = await callback.get({"code": "abc123", "state": forged})

    _, query = _location(response)
    assert query["error"] == ["invalid_state"]
    assert callback.upstream.requests == []


async def test_signed_state_is_accepted(callback: CallbackHarness) -> None:
    codec = StateEnvelopeCodec(secret_key="state-secret")
    callback.use_state_codec(codec)
    signed = codec.encode(
        StateEnvelope(connection_scope=ConnectionScope.ORGANIZATION, organization_id="org_9")
    )

    response = await callback.get({"code": "abc123", "state": signed})

    _, query = _location(response)
    assert query["orgId"] == ["org_9"]


async def test_unauthenticated_hint_overrides_other_codes(callback: CallbackHarness) -> None:
    callback.upstream.reply(
        ORG_RPC_URL,
        (403, {"code": "permission_denied", "message": "invalid authorization token"}),
    )

    response = await callback.get(
        {"code": "abc123", "state": _state(ConnectionScope.ORGANIZATION, "org_9")}
    )

    path, _ = _location(response)
    assert path == "/auth/login"
