"""Tests for OpenAI client helpers."""

from __future__ import annotations

from types import SimpleNamespace

import pytest

from reviewmate.services.openai import client as client_module


@pytest.fixture(autouse=True)
def _reset_client_state():
    client_module.reset_client()
    yield
    client_module.reset_client()


def test_supports_temperature_flags_reasoning_models() -> None:
    assert client_module._supports_temperature("gpt-5-mini") is False
    assert client_module._supports_temperature("o3-mini") is False
    assert client_module._supports_temperature("gpt-4o-mini") is True


def test_openai_client_prefers_standard_openai(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("OPENAI_CLIENT", "openai")
    monkeypatch.setenv("OPENAI_API_KEY", "test-key")
    monkeypatch.delenv("AZURE_OPENAI_ENDPOINT", raising=False)
    monkeypatch.delenv("AZURE_OPENAI_API_KEY", raising=False)

    created = {}

    class DummyOpenAI:
        def __init__(self, *, api_key):
            created["api_key"] = api_key

    monkeypatch.setattr(client_module, "OpenAI", DummyOpenAI)

    obj = client_module.openai_client()

    assert isinstance(obj, DummyOpenAI)
    assert created["api_key"] == "test-key"
    assert client_module.openai_client() is obj


def test_openai_client_initializes_azure(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("OPENAI_CLIENT", "azure")
    monkeypatch.setenv("AZURE_OPENAI_ENDPOINT", "https://example.com")
    monkeypatch.setenv("AZURE_OPENAI_API_KEY", "azure-key")
    monkeypatch.setenv("AZURE_OPENAI_API_VERSION", "2024-12-01-preview")
    monkeypatch.setenv("AZURE_OPENAI_DEPLOYMENT", "replies-prod")

    created = {}

    class DummyAzure:
        def __init__(self, *, azure_endpoint, api_key, api_version):
            created["endpoint"] = azure_endpoint
            created["api_key"] = api_key
            created["api_version"] = api_version

    monkeypatch.setattr(client_module, "AzureOpenAI", DummyAzure)

    obj = client_module.openai_client()

    assert isinstance(obj, DummyAzure)
    assert created["endpoint"] == "https://example.com"
    assert client_module._azure_deployment == "replies-prod"


def test_explicit_azure_without_credentials_fails(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("OPENAI_CLIENT", "azure")
    monkeypatch.delenv("AZURE_OPENAI_ENDPOINT", raising=False)
    monkeypatch.delenv("AZURE_OPENAI_API_KEY", raising=False)

    with pytest.raises(RuntimeError):
        client_module.openai_client()


def test_call_response_with_metrics_builds_request(monkeypatch: pytest.MonkeyPatch) -> None:
    captured = {}

    class DummyResponses:
        def create(self, **kwargs):
            captured.update(kwargs)
            usage = SimpleNamespace(input_tokens=100, output_tokens=20, total_tokens=120)
            return SimpleNamespace(output_text="  Thank you!  ", usage=usage)

    monkeypatch.setattr(client_module, "openai_client", lambda: SimpleNamespace(responses=DummyResponses()))

    text, metrics = client_module.call_response_with_metrics(
        model="gpt-4o-mini",
        system_prompt="system",
        user_prompt="Write a reply",
        temperature=0.7,
        max_output_tokens=200,
    )

    assert text == "Thank you!"
    assert captured["model"] == "gpt-4o-mini"
    assert captured["temperature"] == 0.7
    assert captured["max_output_tokens"] == 200
    assert "reasoning" not in captured
    assert [message["role"] for message in captured["input"]] == ["system", "user"]
    assert metrics["total_tokens"] == 120
    assert metrics["estimated_cost_usd"] > 0


def test_reasoning_models_skip_temperature(monkeypatch: pytest.MonkeyPatch) -> None:
    captured = {}

    class DummyResponses:
        def create(self, **kwargs):
            captured.update(kwargs)
            return SimpleNamespace(output_text="ok", usage=None)

    monkeypatch.setattr(client_module, "openai_client", lambda: SimpleNamespace(responses=DummyResponses()))

    client_module.call_response_with_metrics(
        model="gpt-5-mini",
        system_prompt=None,
        user_prompt="Write a reply",
        temperature=0.7,
    )

    assert "temperature" not in captured
    assert captured["reasoning"] == {"effort": "low"}
    assert len(captured["input"]) == 1


def test_logfire_instruments_client_when_enabled(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("OPENAI_CLIENT", "openai")
    monkeypatch.setenv("ENABLE_LOGFIRE", "1")
    monkeypatch.setenv("LOGFIRE_TOKEN", "lf-token")
    monkeypatch.setattr(client_module, "_LOGFIRE_CONFIGURED", False)
    monkeypatch.setattr(client_module, "OpenAI", lambda *, api_key: "client")

    calls = []
    fake_logfire = SimpleNamespace(
        configure=lambda **kwargs: calls.append(("configure", kwargs["token"])),
        instrument_openai=lambda client: calls.append(("instrument", client)),
    )
    monkeypatch.setattr(client_module, "logfire", fake_logfire)

    client_module.openai_client()

    assert calls == [("configure", "lf-token"), ("instrument", "client")]


def test_logfire_skipped_without_token(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("OPENAI_CLIENT", "openai")
    monkeypatch.setenv("ENABLE_LOGFIRE", "1")
    monkeypatch.delenv("LOGFIRE_TOKEN", raising=False)
    monkeypatch.setattr(client_module, "_LOGFIRE_CONFIGURED", False)
    monkeypatch.setattr(client_module, "OpenAI", lambda *, api_key: "client")

    def fail(**kwargs):
        raise AssertionError("logfire should stay unconfigured")

    monkeypatch.setattr(client_module, "logfire", SimpleNamespace(configure=fail, instrument_openai=fail))

    assert client_module.openai_client() == "client"
