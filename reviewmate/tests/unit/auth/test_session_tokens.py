"""Tests for session token issuing and validation."""

from __future__ import annotations

from types import SimpleNamespace

import jwt
import pytest
from fastapi import HTTPException

from reviewmate.auth import manager as manager_module
from reviewmate.auth.manager import SESSION_AUDIENCE, SessionAuthManager


def test_issued_token_resolves_to_subject() -> None:
    auth = SessionAuthManager(secret="s" * 32, ttl_seconds=60)
    token = auth.issue_token("g-1", "owner@example.com")

    assert auth.get_user_from_token(token) == {"id": "g-1", "email": "owner@example.com"}
    assert auth.authenticate_request_token(f"Bearer {token}") == "g-1"


def test_tokens_signed_with_another_secret_are_rejected() -> None:
    issuer = SessionAuthManager(secret="a" * 32)
    verifier = SessionAuthManager(secret="b" * 32)

    assert verifier.verify_jwt_token(issuer.issue_token("g-1")) is None


def test_expired_tokens_are_rejected() -> None:
    auth = SessionAuthManager(secret="s" * 32, ttl_seconds=60)
    expired = jwt.encode(
        {"sub": "g-1", "aud": SESSION_AUDIENCE, "exp": 1},
        "s" * 32,
        algorithm="HS256",
    )

    assert auth.verify_jwt_token(expired) is None


def test_header_without_bearer_prefix_is_rejected() -> None:
    auth = SessionAuthManager(secret="s" * 32)

    assert auth.authenticate_request_token(auth.issue_token("g-1")) is None
    assert auth.authenticate_request_token("") is None


def test_manager_requires_secret(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(manager_module, "CONFIG", SimpleNamespace(session_secret=None, session_ttl_seconds=60))
    monkeypatch.delenv("SESSION_SECRET", raising=False)

    with pytest.raises(ValueError):
        SessionAuthManager()


def test_require_auth_raises_401_for_invalid_token(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(manager_module, "_auth_manager", SessionAuthManager(secret="s" * 32))

    with pytest.raises(HTTPException) as exc:
        manager_module.require_auth("Bearer not-a-token")

    assert exc.value.status_code == 401


def test_require_auth_returns_user_id(monkeypatch: pytest.MonkeyPatch) -> None:
    auth = SessionAuthManager(secret="s" * 32)
    monkeypatch.setattr(manager_module, "_auth_manager", auth)

    assert manager_module.require_auth(f"Bearer {auth.issue_token('g-9')}") == "g-9"
