"""
Per-location automation settings persistence.

Settings are stored as a JSON list on the user row and are always saved by
replacing the whole list. Concurrent saves are last-writer-wins.
"""

from __future__ import annotations

from typing import Any, Iterable, List, Mapping, Optional, Tuple

from reviewmate.automation.models import TIME_FILTER_DAYS, AutomationSetting
from reviewmate.logger import log

from .client import get_database_client


class SettingsValidationError(ValueError):
    """Raised when a settings payload cannot be saved as given."""


def _safe_log(*parts: Any) -> None:
    """Log messages without letting logging problems break a save."""
    message = " ".join(str(p) for p in parts)
    if not message:
        return
    try:
        log(message)
    except Exception:
        # Fallback to direct stdout if logging helpers are unavailable.
        print(message, flush=True)


def normalize_automation_settings(
    raw_settings: Iterable[Mapping[str, Any] | AutomationSetting],
) -> List[AutomationSetting]:
    """
    Turn a submitted list into settings, preserving order.

    Raises:
        SettingsValidationError: for a missing location id, an unknown time
            filter or a location listed twice.
    """

    settings: List[AutomationSetting] = []
    seen: set[str] = set()
    for index, item in enumerate(raw_settings or []):
        if isinstance(item, AutomationSetting):
            setting = AutomationSetting.from_dict(item.to_dict())
        elif isinstance(item, Mapping):
            setting = AutomationSetting.from_dict(item)
        else:
            raise SettingsValidationError(f"settings[{index}] must be an object")

        if not setting.location_id:
            raise SettingsValidationError(f"settings[{index}] is missing a location id")
        if setting.time_filter not in TIME_FILTER_DAYS:
            raise SettingsValidationError(
                f"settings[{index}] has unknown time filter {setting.time_filter!r}"
            )
        if setting.location_id in seen:
            raise SettingsValidationError(
                f"location {setting.location_id} appears more than once"
            )
        seen.add(setting.location_id)
        settings.append(setting)
    return settings


def load_automation_settings(user_id: str, db: Optional[Any] = None) -> List[AutomationSetting]:
    """Load the saved settings of a user; unknown users have none."""
    client = db or get_database_client()
    user = client.get_user(user_id)
    if user is None:
        return []
    return list(user.automation_settings)


def save_automation_settings(
    user_id: str,
    raw_settings: Iterable[Mapping[str, Any] | AutomationSetting],
    db: Optional[Any] = None,
) -> Tuple[bool, List[AutomationSetting]]:
    """Validate and replace the full settings list; returns (success, saved settings)."""

    settings = normalize_automation_settings(raw_settings)
    client = db or get_database_client()
    success = client.replace_automation_settings(user_id, settings)
    if success:
        enabled = sum(1 for setting in settings if setting.enabled)
        _safe_log(f"[settings] saved {len(settings)} locations ({enabled} enabled) for user {user_id}")
    else:
        _safe_log(f"[settings] failed to save automation settings for user {user_id}")
    return success, settings


__all__ = [
    "SettingsValidationError",
    "load_automation_settings",
    "normalize_automation_settings",
    "save_automation_settings",
]
