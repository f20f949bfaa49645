"""Repository-wide pytest fixtures."""

from __future__ import annotations

import os
from collections.abc import Generator

import pytest
from cryptography.fernet import Fernet

from reviewmate.config import reload_config

_TEST_ENCRYPTION_KEY = Fernet.generate_key().decode()


@pytest.fixture(autouse=True)
def _set_default_env(monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    """Give every test a complete, offline configuration."""

    monkeypatch.setenv("ENV", "test")
    monkeypatch.setenv("SESSION_SECRET", "test-session-secret-with-enough-length")
    monkeypatch.setenv("ENCRYPTION_KEY", _TEST_ENCRYPTION_KEY)
    monkeypatch.setenv("CRON_SECRET", "cron-secret")
    monkeypatch.setenv("GOOGLE_CLIENT_ID", "client-id.apps.googleusercontent.com")
    monkeypatch.setenv("GOOGLE_CLIENT_SECRET", "client-secret")
    monkeypatch.setenv("GOOGLE_OAUTH_REDIRECT_URI", "https://api.example.com/v1/auth/google/callback")
    monkeypatch.setenv("OPENAI_CLIENT", "openai")
    monkeypatch.setenv("OPENAI_API_KEY", os.getenv("OPENAI_API_KEY", "test-key"))
    reload_config()
    yield
    monkeypatch.undo()
    reload_config()
