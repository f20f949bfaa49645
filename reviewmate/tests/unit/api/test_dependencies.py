"""Tests for shared FastAPI dependency helpers."""

from __future__ import annotations

import pytest
from fastapi import HTTPException

from reviewmate.api import dependencies


def test_get_current_user_id_requires_header() -> None:
    with pytest.raises(HTTPException) as exc:
        dependencies.get_current_user_id(authorization=None)

    assert exc.value.status_code == 401


def test_get_current_user_id_returns_value(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(dependencies, "require_auth", lambda header: "g-123")

    result = dependencies.get_current_user_id("Bearer abc")
    assert result == "g-123"


def test_get_database_with_user_pairs_values() -> None:
    db = object()

    assert dependencies.get_database_with_user(user_id="g-1", db=db) == ("g-1", db)


def test_require_cron_secret_accepts_matching_header() -> None:
    assert dependencies.require_cron_secret("cron-secret") is None


def test_require_cron_secret_rejects_wrong_or_missing_header() -> None:
    for value in ("nope", None, ""):
        with pytest.raises(HTTPException) as exc:
            dependencies.require_cron_secret(value)
        assert exc.value.status_code == 403


def test_require_cron_secret_unconfigured(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(dependencies.CONFIG, "cron_secret", None)

    with pytest.raises(HTTPException) as exc:
        dependencies.require_cron_secret("anything")

    assert exc.value.status_code == 503


def test_get_automation_runner_uses_factory(monkeypatch: pytest.MonkeyPatch) -> None:
    seen = {}

    def fake_build_runner(db):
        seen["db"] = db
        return "runner"

    monkeypatch.setattr(dependencies, "build_runner", fake_build_runner)
    db = object()

    assert dependencies.get_automation_runner(db=db) == "runner"
    assert seen["db"] is db
