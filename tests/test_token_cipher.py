try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover - fallback for direct execution
    import _bootstrap  # type: ignore # noqa: F401

import time

import pytest

from app.services.token_cipher import TokenCipherService


def test_session_payload_roundtrip() -> None:
    cipher = TokenCipherService(secret="session-password")
    payload = '{"secure": {"access_token": "platform-token"}}'

    sealed = cipher.encrypt(payload)
    assert "platform-token" not in sealed

    assert cipher.decrypt(sealed) == payload


def test_rejects_bad_ciphertext() -> None:
    cipher = TokenCipherService(secret="another-secret")

    with pytest.raises(ValueError):
        cipher.decrypt("not-valid")


def test_rejects_payload_sealed_with_other_secret() -> None:
    sealed = TokenCipherService(secret="first").encrypt("value")

    with pytest.raises(ValueError):
        TokenCipherService(secret="second").decrypt(sealed)


def test_rejects_expired_payload(monkeypatch: pytest.MonkeyPatch) -> None:
    cipher = TokenCipherService(secret="session-password")
    sealed = cipher.encrypt("value")
    issued_at = time.time()
    monkeypatch.setattr(time, "time", lambda: issued_at + 120)

    assert cipher.decrypt(sealed, max_age=300) == "value"
    with pytest.raises(ValueError):
        cipher.decrypt(sealed, max_age=60)


def test_requires_secret() -> None:
    with pytest.raises(ValueError):
        TokenCipherService(secret="")
