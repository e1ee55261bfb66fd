"""HTTP helpers for deriving URLs from the inbound request."""

from __future__ import annotations

from fastapi import Request

CALLBACK_PATH = "/oauth/callback"


def _first_header_value(request: Request, name: str) -> str | None:
    raw = request.headers.get(name)
    if not raw:
        return None
    value = raw.split(",")[0].strip()
    return value or None


def request_origin(request: Request) -> str:
    """Return ``scheme://host`` as the browser saw it, honoring proxy headers."""
    scheme = _first_header_value(request, "x-forwarded-proto") or request.url.scheme
    host = (
        _first_header_value(request, "x-forwarded-host")
        or request.headers.get("host")
        or request.url.netloc
    )
    return f"{scheme.lower()}://{host}"


def callback_redirect_uri(request: Request) -> str:
    """The ``redirect_uri`` GitHub expects, rebuilt from the inbound request."""
    return f"{request_origin(request)}{CALLBACK_PATH}"


def callback_continuation(request: Request) -> str:
    """Same-origin path that replays the current callback after logging in."""
    query = request.url.query
    return f"{CALLBACK_PATH}?{query}" if query else CALLBACK_PATH


__all__ = [
    "CALLBACK_PATH",
    "callback_continuation",
    "callback_redirect_uri",
    "request_origin",
]
