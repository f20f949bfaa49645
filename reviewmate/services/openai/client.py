import os, time
from typing import Tuple, Dict, Any, Optional, List
import logfire
from openai import OpenAI, AzureOpenAI

# Approximate pricing per 1K tokens
MODEL_PRICING = {
    "gpt-5-mini": {"input": 0.00025, "cached_input": 0.000025, "output": 0.002},
    "gpt-4.1-mini": {"input": 0.0004, "output": 0.0016},
    "gpt-4o-mini": {"input": 0.00015, "output": 0.0006},
    "gpt-4o": {"input": 0.005, "output": 0.015},
}

_client = None
_client_is_azure = False
_azure_deployment = None
_LOGFIRE_CONFIGURED = False


def _is_truthy(value: Optional[str]) -> bool:
    if value is None:
        return False
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _configure_observability(client: OpenAI) -> None:
    """Trace reply generation calls in Logfire when ENABLE_LOGFIRE and LOGFIRE_TOKEN are set."""
    global _LOGFIRE_CONFIGURED

    if _LOGFIRE_CONFIGURED or not _is_truthy(os.getenv("ENABLE_LOGFIRE")):
        return
    token = os.getenv("LOGFIRE_TOKEN")
    if not token:
        return
    try:
        logfire.configure(token=token, console=False, service_name="reviewmate")
        logfire.instrument_openai(client)
        _LOGFIRE_CONFIGURED = True
    except Exception as exc:  # pragma: no cover - observability must not block replies
        _log(f"[openai] Failed to configure Logfire: {exc}")


def _is_reasoning_model(model: str) -> bool:
    lowered = (model or "").strip().lower()
    return lowered.startswith("gpt-5") or lowered.startswith("o1") or lowered.startswith("o3") or lowered.startswith("o4")


def _supports_temperature(model: str) -> bool:
    """Determine if the target model accepts the temperature parameter."""
    lowered = (model or "").strip().lower()
    if not lowered:
        return True
    return not _is_reasoning_model(lowered)


def reset_client() -> None:
    """Forget the cached client so the next call re-reads the environment."""
    global _client, _client_is_azure, _azure_deployment
    _client = None
    _client_is_azure = False
    _azure_deployment = None


def openai_client() -> OpenAI:
    global _client, _client_is_azure, _azure_deployment
    if _client is None:
        azure_endpoint = os.getenv("AZURE_OPENAI_ENDPOINT")
        azure_key = os.getenv("AZURE_OPENAI_API_KEY")
        azure_version = os.getenv("AZURE_OPENAI_API_VERSION", "2024-12-01-preview")
        azure_deployment = os.getenv("AZURE_OPENAI_DEPLOYMENT")
        preference = (os.getenv("OPENAI_CLIENT") or "").strip().lower()

        def _init_azure(*, explicit: bool) -> OpenAI:
            if not (azure_endpoint and azure_key):
                if explicit:
                    raise RuntimeError(
                        "OPENAI_CLIENT=azure requested but AZURE_OPENAI_ENDPOINT and AZURE_OPENAI_API_KEY are not set"
                    )
                raise RuntimeError(
                    "AZURE_OPENAI_ENDPOINT and AZURE_OPENAI_API_KEY must be set to use Azure OpenAI"
                )
            client = AzureOpenAI(
                azure_endpoint=azure_endpoint,
                api_key=azure_key,
                api_version=azure_version,
            )
            _log(
                "[openai] initialized Azure client",
                "| endpoint:",
                azure_endpoint,
                "| deployment:",
                (azure_deployment or "(model name)"),
            )
            return client

        def _init_openai(*, explicit: bool) -> OpenAI:
            key = os.getenv("OPENAI_API_KEY")
            if not key:
                if explicit:
                    raise RuntimeError("OPENAI_CLIENT=openai requested but OPENAI_API_KEY is not set")
                raise RuntimeError("OPENAI_API_KEY must be set to use the standard OpenAI client")
            client = OpenAI(api_key=key)
            _log("[openai] initialized standard OpenAI client")
            return client

        if preference == "azure":
            _client = _init_azure(explicit=True)
            _client_is_azure = True
            _azure_deployment = azure_deployment
        elif preference == "openai":
            _client = _init_openai(explicit=True)
            _client_is_azure = False
            _azure_deployment = None
        elif azure_endpoint and azure_key:
            _client = _init_azure(explicit=False)
            _client_is_azure = True
            _azure_deployment = azure_deployment
        else:
            _client = _init_openai(explicit=False)
            _client_is_azure = False
            _azure_deployment = None
        _configure_observability(_client)
    return _client


def _log(*parts: Any) -> None:
    from .utils import log as _base_log

    _base_log(*parts)


def call_response_with_metrics(
    *,
    model: str,
    system_prompt: Optional[str],
    user_prompt: str,
    temperature: Optional[float] = 0.0,
    max_output_tokens: Optional[int] = None,
) -> Tuple[str, Dict[str, Any]]:
    """Send one prompt through the responses API; returns (stripped text, metrics)."""
    start_time = time.time()

    messages: List[Dict[str, Any]] = []
    if system_prompt:
        messages.append({"role": "system", "content": system_prompt})
    messages.append({"role": "user", "content": user_prompt})

    client = openai_client()
    target_model = model
    if _client_is_azure and _azure_deployment:
        target_model = _azure_deployment
    provider = "azure" if _client_is_azure else "openai"
    _log(
        f"[openai:{provider}] response model:",
        model,
        "| deployed_as:",
        target_model,
        "| prompt_len:",
        len(user_prompt),
    )

    kwargs: Dict[str, Any] = {
        "model": target_model,
        "input": messages,
    }
    if temperature is not None and _supports_temperature(model):
        kwargs["temperature"] = temperature
    elif temperature is not None:
        _log("[openai] temperature parameter omitted; model does not support it")
    if _is_reasoning_model(model):
        kwargs["reasoning"] = {"effort": "low"}
        kwargs["text"] = {"verbosity": "low"}
    if max_output_tokens:
        kwargs["max_output_tokens"] = max_output_tokens

    resp = client.responses.create(**kwargs)

    duration_ms = int((time.time() - start_time) * 1000)

    text = getattr(resp, "output_text", "") or ""
    text = text.strip()

    usage = getattr(resp, "usage", None)
    input_tokens = getattr(usage, "input_tokens", None) or 0
    output_tokens = getattr(usage, "output_tokens", None) or 0
    total_tokens = getattr(usage, "total_tokens", None) or (input_tokens + output_tokens)

    pricing = MODEL_PRICING.get(model, {"input": 0, "output": 0})
    total_cost = (input_tokens / 1000) * pricing.get("input", 0) + (output_tokens / 1000) * pricing.get("output", 0)

    metrics = {
        "duration_ms": duration_ms,
        "prompt_tokens": input_tokens,
        "completion_tokens": output_tokens,
        "total_tokens": total_tokens,
        "estimated_cost_usd": round(total_cost, 6),
        "model": model,
    }

    _log(
        f"[openai:{provider}] response output_len:",
        len(text),
        "| duration:",
        f"{duration_ms}ms",
        "| tokens:",
        total_tokens,
        "| cost:",
        f"${total_cost:.6f}",
    )

    return text, metrics
