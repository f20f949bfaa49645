"""One-line operational logging shared by services, workers, and the CLI."""

from __future__ import annotations

import logging
from typing import Any, Optional

from .config import CONFIG

_LOGGER = logging.getLogger("reviewmate")

_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def _coerce(parts: tuple[object, ...]) -> str:
    rendered = " ".join(str(part) for part in parts if part is not None)
    return rendered.strip()


def _component(message: str) -> Optional[str]:
    for prefix in CONFIG.system_log_prefixes:
        if message.startswith(prefix):
            return prefix.strip("[]")
    return None


def _ensure_configured() -> None:
    if _LOGGER.handlers or logging.getLogger().handlers:
        return
    level = getattr(logging, str(CONFIG.log_level).upper(), logging.INFO)
    logging.basicConfig(level=level, format=_LOG_FORMAT)


def log(*parts: object, level: int = logging.INFO, **metadata: Any) -> None:
    """
    Emit a log message with optional structured metadata.

    Keyword arguments such as ``user`` or ``workers`` are rendered as
    ``key=value`` pairs after the message so each line stays greppable.
    Messages starting with a known prefix such as ``[automation]`` carry it
    as the ``component`` record attribute.
    """

    message = _coerce(parts)
    if metadata:
        rendered = " ".join(f"{key}={value}" for key, value in sorted(metadata.items()))
        message = f"{message} | {rendered}"

    _ensure_configured()
    _LOGGER.log(level, message, extra={"component": _component(message)})


__all__ = ["log"]
