"""Helper utilities for OpenAI service integration."""

from __future__ import annotations

from typing import Any

from reviewmate.logger import log as base_log


def log(*parts: Any, **metadata: Any) -> None:
    """Forward OpenAI service logs through the shared logging sink."""
    base_log(*parts, service="openai", **metadata)
