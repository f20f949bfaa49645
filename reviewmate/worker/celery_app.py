"""Celery application instance used for scheduled review automation."""

from __future__ import annotations

import os
from pathlib import Path

from celery import Celery
from dotenv import load_dotenv

from reviewmate.config import CONFIG, reload_config


def _should_load_local_env() -> bool:
    env = (os.getenv("ENV") or os.getenv("ENVIRONMENT") or "").lower()
    if env and env != "dev":
        return False
    return Path(".env").is_file()


if _should_load_local_env():  # Only load .env for local development runs
    load_dotenv()


def _default(str_env: str, fallback: str) -> str:
    value = os.getenv(str_env)
    return value if value else fallback


def _schedule_seconds() -> float:
    reload_config()
    return float(CONFIG.automation_schedule_minutes) * 60.0


broker_url = _default("CELERY_BROKER_URL", "redis://localhost:6379/0")
result_backend = _default("CELERY_RESULT_BACKEND", broker_url)

celery_app = Celery(
    "reviewmate",
    broker=broker_url,
    backend=result_backend,
    include=["reviewmate.worker.tasks"],
)

celery_app.conf.update(
    broker_connection_retry_on_startup=True,
    task_track_started=True,
    worker_prefetch_multiplier=int(os.getenv("CELERY_WORKER_PREFETCH", "1")),
    task_default_queue=os.getenv("CELERY_DEFAULT_QUEUE", "automation"),
    timezone=os.getenv("CELERY_TIMEZONE", "UTC"),
    enable_utc=True,
    beat_schedule={
        "automation-run-all": {
            "task": "automation.run_all",
            "schedule": _schedule_seconds(),
        },
    },
)


__all__ = ["celery_app"]
