"""Review reply generation on top of the shared OpenAI client."""

from __future__ import annotations

from typing import Any, Optional

import openai

from reviewmate.automation.errors import GenerationFailure, QuotaExceeded
from reviewmate.automation.prompts import DEFAULT_SYSTEM_PROMPT
from reviewmate.config import CONFIG

from .client import call_response_with_metrics
from .utils import log

# Replies are capped at 4096 bytes when published; leave headroom for multi-byte text.
DEFAULT_MAX_OUTPUT_TOKENS = 600


def _retry_after(exc: openai.RateLimitError) -> Optional[float]:
    response = getattr(exc, "response", None)
    headers = getattr(response, "headers", None) or {}
    value = headers.get("retry-after") if hasattr(headers, "get") else None
    try:
        return float(value) if value is not None else None
    except (TypeError, ValueError):
        return None


class OpenAIReplyGenerator:
    """Turns a rendered prompt into reply text. Returns an empty string when the model says nothing."""

    def __init__(
        self,
        *,
        model: Optional[str] = None,
        temperature: Optional[float] = None,
        system_prompt: Optional[str] = None,
        max_output_tokens: Optional[int] = DEFAULT_MAX_OUTPUT_TOKENS,
    ) -> None:
        self.model = model or CONFIG.reply_model
        self.temperature = temperature if temperature is not None else CONFIG.reply_temperature
        self.system_prompt = system_prompt or CONFIG.reply_system_prompt or DEFAULT_SYSTEM_PROMPT
        self.max_output_tokens = max_output_tokens

    def generate(self, prompt: str) -> str:
        try:
            text, metrics = call_response_with_metrics(
                model=self.model,
                system_prompt=self.system_prompt,
                user_prompt=prompt,
                temperature=self.temperature,
                max_output_tokens=self.max_output_tokens,
            )
        except openai.RateLimitError as exc:
            raise QuotaExceeded(f"OpenAI rate limit reached: {exc}", retry_after=_retry_after(exc)) from exc
        except openai.OpenAIError as exc:
            raise GenerationFailure(f"OpenAI request failed: {exc}") from exc
        except RuntimeError as exc:
            # Client configuration problems surface as RuntimeError.
            raise GenerationFailure(str(exc)) from exc

        if not text:
            log("[openai] empty reply returned", model=metrics.get("model"))
        return text or ""


__all__ = ["OpenAIReplyGenerator"]
