"""Tests for environment-driven settings."""

from __future__ import annotations

import pytest

from reviewmate.config import CONFIG, reload_config


def test_defaults_apply_when_unset(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("REVIEW_PAGE_SIZE", "RUN_DEADLINE_SECONDS", "BULK_MAX_CONCURRENCY", "REPLY_MODEL"):
        monkeypatch.delenv(name, raising=False)
    reload_config()

    assert CONFIG.environment == "test"
    assert CONFIG.review_page_size == 50
    assert CONFIG.run_deadline_seconds == 300.0
    assert CONFIG.bulk_max_concurrency == 4
    assert CONFIG.reply_model == "gpt-4o-mini"
    assert CONFIG.users_table == "review_users"


def test_page_size_is_clamped(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("REVIEW_PAGE_SIZE", "500")
    reload_config()
    assert CONFIG.review_page_size == 50

    monkeypatch.setenv("REVIEW_PAGE_SIZE", "0")
    reload_config()
    assert CONFIG.review_page_size == 1


def test_invalid_numbers_fall_back(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("QUOTA_MAX_RETRIES", "many")
    monkeypatch.setenv("QUOTA_BACKOFF_CAP_SECONDS", "soon")
    reload_config()

    assert CONFIG.quota_max_retries == 3
    assert CONFIG.quota_backoff_cap_seconds == 60.0


def test_unknown_environment_is_treated_as_prod(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ENV", "staging")
    reload_config()

    assert CONFIG.environment == "prod"
    assert CONFIG.is_development is False


def test_redirect_uri_alias(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("GOOGLE_OAUTH_REDIRECT_URI", raising=False)
    monkeypatch.setenv("REDIRECT_URI", "https://alt.example.com/callback")
    reload_config()

    assert CONFIG.google_redirect_uri == "https://alt.example.com/callback"
