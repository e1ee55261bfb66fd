"""
OAuth ``state`` envelope encoding.

The envelope is base64-encoded JSON (``{"type": ..., "orgId": ...}``) built by the
dashboard before redirecting to GitHub. Decoding is deliberately forgiving: a
state we cannot read falls back to a user-scoped connection instead of failing an
otherwise completed grant. When a secret is configured the envelope also carries
an HMAC and tampering is reported instead of tolerated.
"""

from __future__ import annotations

import base64
import binascii
import hmac
import json
import logging
from hashlib import sha256
from typing import Optional

from app.models.oauth import ConnectionScope, StateEnvelope

logger = logging.getLogger(__name__)

_SIGNATURE_SEPARATOR = "."


class StateSignatureError(Exception):
    """Raised when a signed state envelope fails verification."""


def _b64decode(value: str) -> bytes:
    normalized = value.strip().replace("-", "+").replace("_", "/")
    normalized += "=" * (-len(normalized) % 4)
    return base64.b64decode(normalized, validate=True)


class StateEnvelopeCodec:
    """Encode and decode OAuth state envelopes."""

    def __init__(self, secret_key: Optional[str] = None) -> None:
        self._secret_key = secret_key.encode("utf-8") if secret_key else None

    def encode(self, envelope: StateEnvelope) -> str:
        payload: dict = {"type": envelope.connection_scope.value}
        if envelope.organization_id is not None:
            payload["orgId"] = envelope.organization_id
        serialized = json.dumps(payload, separators=(",", ":"), sort_keys=True)
        encoded = base64.b64encode(serialized.encode("utf-8")).decode("ascii")
        if self._secret_key is None:
            return encoded
        return f"{encoded}{_SIGNATURE_SEPARATOR}{self._sign(encoded)}"

    def decode(self, raw: Optional[str]) -> StateEnvelope:
        """Return the envelope carried by ``raw`` or the user-scoped default.

        Only a signature failure raises; every other problem degrades to the
        default envelope.
        """
        if not raw:
            return StateEnvelope()

        encoded = raw
        if self._secret_key is not None:
            encoded, sep, signature = raw.rpartition(_SIGNATURE_SEPARATOR)
            if not sep:
                raise StateSignatureError("OAuth state is not signed.")
            if not hmac.compare_digest(signature, self._sign(encoded)):
                raise StateSignatureError("OAuth state signature mismatch.")

        try:
            data = json.loads(_b64decode(encoded).decode("utf-8"))
        except (binascii.Error, UnicodeDecodeError, ValueError) as exc:
            logger.warning("Failed to parse OAuth state parameter: %s", exc)
            return StateEnvelope()

        if not isinstance(data, dict):
            logger.warning("OAuth state is not a JSON object; defaulting to user scope")
            return StateEnvelope()

        try:
            scope = ConnectionScope(data.get("type"))
        except ValueError:
            logger.warning("OAuth state has no usable connection type; defaulting to user scope")
            return StateEnvelope()

        org_id = data.get("orgId")
        return StateEnvelope(
            connection_scope=scope,
            organization_id=org_id if isinstance(org_id, str) else None,
        )

    def _sign(self, encoded: str) -> str:
        assert self._secret_key is not None
        digest = hmac.new(self._secret_key, encoded.encode("utf-8"), sha256).digest()
        return base64.urlsafe_b64encode(digest).decode("ascii").rstrip("=")


__all__ = ["StateEnvelopeCodec", "StateSignatureError"]
