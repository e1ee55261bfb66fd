"""
Terminal outcomes of the GitHub callback and their redirect targets.

Every path through the callback ends in exactly one ``Outcome``; the
``OutcomeClassifier`` turns it into a same-origin redirect. Only non-secret
values (login, organization id, error codes and messages) are ever placed in
the URL.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional
from urllib.parse import quote, urlencode


class OutcomeKind(str, Enum):
    SUCCESS = "success"
    ERROR = "error"
    LOGIN_REQUIRED = "login_required"


class OutcomeReason(str, Enum):
    """Machine-readable reason attached to every outcome."""

    CONNECTED = "connected"
    PROVIDER_ERROR = "provider_error"
    MISSING_CODE = "missing_code"
    CONFIGURATION_ERROR = "configuration_error"
    INVALID_STATE = "invalid_state"
    TOKEN_EXCHANGE_FAILED = "token_exchange_failed"
    PROVIDER_EXCHANGE_ERROR = "provider_exchange_error"
    MISSING_ACCESS_TOKEN = "missing_access_token"
    IDENTITY_FETCH_FAILED = "identity_fetch_failed"
    LOGIN_REQUIRED = "login_required"
    RPC_UNAUTHENTICATED = "rpc_unauthenticated"
    PERSISTENCE_FAILED = "failed_to_save_token"


_REDACTED = "[redacted]"


def redact_secrets(message: str, *secrets: Optional[str]) -> str:
    """Replace every occurrence of the given secrets in ``message``."""
    for secret in secrets:
        if secret:
            message = message.replace(secret, _REDACTED)
    return message


@dataclass(frozen=True)
class Outcome:
    """A terminal result of the callback."""

    kind: OutcomeKind
    reason: OutcomeReason
    message: str = ""
    username: Optional[str] = None
    organization_id: Optional[str] = None
    continuation: Optional[str] = None

    @classmethod
    def success(cls, username: str, organization_id: Optional[str] = None) -> "Outcome":
        return cls(
            OutcomeKind.SUCCESS,
            OutcomeReason.CONNECTED,
            username=username,
            organization_id=organization_id,
        )

    @classmethod
    def provider_error(cls, error: str) -> "Outcome":
        # GitHub's own error code is passed through untouched.
        return cls(OutcomeKind.ERROR, OutcomeReason.PROVIDER_ERROR, message=error)

    @classmethod
    def fixed_error(cls, reason: OutcomeReason) -> "Outcome":
        return cls(OutcomeKind.ERROR, reason, message=reason.value)

    @classmethod
    def failure(cls, reason: OutcomeReason, message: str) -> "Outcome":
        return cls(OutcomeKind.ERROR, reason, message=message or reason.value)

    @classmethod
    def login_required(cls, reason: OutcomeReason, continuation: str) -> "Outcome":
        return cls(
            OutcomeKind.LOGIN_REQUIRED,
            reason,
            message="Please log in to connect your GitHub account",
            continuation=continuation,
        )


def _with_query(path: str, params: dict[str, str]) -> str:
    separator = "&" if "?" in path else "?"
    return f"{path}{separator}{urlencode(params, quote_via=quote)}"


class OutcomeClassifier:
    """Map outcomes to redirect URLs on the integrations settings surface."""

    def __init__(self, *, settings_path: str, login_path: str) -> None:
        self._settings_path = settings_path
        self._login_path = login_path

    def classify(self, outcome: Outcome) -> str:
        if outcome.kind is OutcomeKind.SUCCESS:
            params = {"success": "true", "username": outcome.username or ""}
            if outcome.organization_id:
                params["orgId"] = outcome.organization_id
            return _with_query(self._settings_path, params)

        if outcome.kind is OutcomeKind.LOGIN_REQUIRED:
            return _with_query(
                self._login_path, {"redirect": outcome.continuation or self._settings_path}
            )

        return _with_query(self._settings_path, {"error": outcome.message})


__all__ = [
    "Outcome",
    "OutcomeClassifier",
    "OutcomeKind",
    "OutcomeReason",
    "redact_secrets",
]
