"""Environment-driven runtime settings for the review automation service."""

from __future__ import annotations

import os
from types import SimpleNamespace
from typing import Optional, Sequence, Tuple


def _env_str(
    name: str,
    default: Optional[str] = None,
    *,
    alias: Optional[str] = None,
    empty_to_none: bool = True,
) -> Optional[str]:
    raw = os.getenv(name)
    if raw is None and alias:
        raw = os.getenv(alias)
    if raw is None:
        return default
    value = raw.strip()
    if not value and empty_to_none:
        return None if default is None else default
    return value if value else default


def _env_bool(name: str, default: bool, *, alias: Optional[str] = None) -> bool:
    raw = os.getenv(name)
    if raw is None and alias:
        raw = os.getenv(alias)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return int(raw.strip())
    except ValueError:
        return default


def _env_float(name: str, default: float, *, alias: Optional[str] = None) -> float:
    raw = os.getenv(name)
    if raw is None and alias:
        raw = os.getenv(alias)
    if raw is None:
        return default
    try:
        return float(raw.strip())
    except ValueError:
        return default


def _env_tuple(name: str, default: Sequence[str]) -> Tuple[str, ...]:
    raw = os.getenv(name)
    if not raw:
        return tuple(default)
    items = tuple(part.strip() for part in raw.split(",") if part.strip())
    return items or tuple(default)


def _clamp(value: int, lower: int, upper: int) -> int:
    return max(lower, min(value, upper))


class Settings(SimpleNamespace):
    """Simple attribute container used throughout the codebase."""

CONFIG = Settings()


def _compute_values() -> dict[str, object]:
    # -----------------------------------------------------------------------
    # RUNTIME ENVIRONMENT
    # -----------------------------------------------------------------------
    environment = _env_str("ENV", "prod", empty_to_none=False).lower()
    if environment not in {"dev", "test", "prod"}:
        environment = "prod"
    is_development = environment == "dev"

    # -----------------------------------------------------------------------
    # SUPABASE (SETTINGS STORE)
    # -----------------------------------------------------------------------
    supabase_url = _env_str("SUPABASE_URL", None)
    supabase_anon_key = _env_str("SUPABASE_ANON_KEY", None)
    supabase_service_role_key = _env_str("SUPABASE_SERVICE_ROLE_KEY", None)
    users_table = _env_str("REVIEWMATE_USERS_TABLE", "review_users", empty_to_none=False)

    # -----------------------------------------------------------------------
    # GOOGLE OAUTH / BUSINESS PROFILE
    # -----------------------------------------------------------------------
    google_client_id = _env_str("GOOGLE_CLIENT_ID", None)
    google_client_secret = _env_str("GOOGLE_CLIENT_SECRET", None)
    google_redirect_uri = _env_str("GOOGLE_OAUTH_REDIRECT_URI", None, alias="REDIRECT_URI")
    review_page_size = _clamp(_env_int("REVIEW_PAGE_SIZE", 50), 1, 50)

    # -----------------------------------------------------------------------
    # APPLICATION SECRETS
    # -----------------------------------------------------------------------
    session_secret = _env_str("SESSION_SECRET", None)
    session_ttl_seconds = _env_int("SESSION_TTL_SECONDS", 24 * 60 * 60)
    cron_secret = _env_str("CRON_SECRET", None)

    # -----------------------------------------------------------------------
    # REPLY GENERATION
    # -----------------------------------------------------------------------
    reply_model = _env_str("REPLY_MODEL", "gpt-4o-mini", empty_to_none=False)
    reply_temperature = _env_float("REPLY_TEMPERATURE", 0.7)
    reply_system_prompt = _env_str("REPLY_SYSTEM_PROMPT", None)

    # -----------------------------------------------------------------------
    # AUTOMATION RUN LIMITS
    # -----------------------------------------------------------------------
    run_deadline_seconds = _env_float("RUN_DEADLINE_SECONDS", 300.0)
    run_max_external_calls = _env_int("RUN_MAX_EXTERNAL_CALLS", 500)
    quota_max_retries = _env_int("QUOTA_MAX_RETRIES", 3)
    quota_backoff_base_seconds = _env_float("QUOTA_BACKOFF_BASE_SECONDS", 5.0)
    quota_backoff_cap_seconds = _env_float("QUOTA_BACKOFF_CAP_SECONDS", 60.0)
    bulk_max_concurrency = max(1, _env_int("BULK_MAX_CONCURRENCY", 4))
    automation_schedule_minutes = max(1, _env_int("AUTOMATION_SCHEDULE_MINUTES", 60))

    # -----------------------------------------------------------------------
    # LOGGING
    # -----------------------------------------------------------------------
    log_level = _env_str("LOG_LEVEL", "INFO", empty_to_none=False).upper()
    system_log_prefixes = _env_tuple(
        "SYSTEM_LOG_PREFIXES",
        ("[openai]", "[automation]", "[settings]", "[db]", "[dispatcher]"),
    )

    return {
        "environment": environment,
        "is_development": is_development,
        "supabase_url": supabase_url,
        "supabase_anon_key": supabase_anon_key,
        "supabase_service_role_key": supabase_service_role_key,
        "users_table": users_table,
        "google_client_id": google_client_id,
        "google_client_secret": google_client_secret,
        "google_redirect_uri": google_redirect_uri,
        "review_page_size": review_page_size,
        "session_secret": session_secret,
        "session_ttl_seconds": session_ttl_seconds,
        "cron_secret": cron_secret,
        "reply_model": reply_model,
        "reply_temperature": reply_temperature,
        "reply_system_prompt": reply_system_prompt,
        "run_deadline_seconds": run_deadline_seconds,
        "run_max_external_calls": run_max_external_calls,
        "quota_max_retries": quota_max_retries,
        "quota_backoff_base_seconds": quota_backoff_base_seconds,
        "quota_backoff_cap_seconds": quota_backoff_cap_seconds,
        "bulk_max_concurrency": bulk_max_concurrency,
        "automation_schedule_minutes": automation_schedule_minutes,
        "log_level": log_level,
        "system_log_prefixes": system_log_prefixes,
    }


def reload_config() -> None:
    CONFIG.__dict__.update(_compute_values())


# Load once on import so downstream modules can use CONFIG immediately.
reload_config()
