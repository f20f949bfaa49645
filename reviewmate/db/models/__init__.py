"""Row models for the review automation tables."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from reviewmate.auth.tokens import decrypt_token
from reviewmate.automation.models import AutomationSetting


def _parse_timestamp(value: Any) -> Optional[datetime]:
    if not value:
        return None
    if isinstance(value, datetime):
        return value
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return None


def _load_settings(value: Any) -> List[AutomationSetting]:
    if not value:
        return []
    if isinstance(value, str):
        try:
            value = json.loads(value)
        except json.JSONDecodeError:
            return []
    if not isinstance(value, list):
        return []
    settings: List[AutomationSetting] = []
    for item in value:
        if isinstance(item, dict):
            setting = AutomationSetting.from_dict(item)
            if setting.location_id:
                settings.append(setting)
    return settings


@dataclass
class UserRecord:
    """
    A business owner who signed in with Google.

    ``access_token`` and ``refresh_token`` hold plain text in memory; rows in
    the database carry their Fernet-encrypted form.
    """

    google_id: str
    email: str = ""
    name: str = ""
    picture: Optional[str] = None
    access_token: str = ""
    refresh_token: str = ""
    token_expiry: Optional[datetime] = None
    automation_settings: List[AutomationSetting] = field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def has_enabled_settings(self) -> bool:
        return any(setting.enabled for setting in self.automation_settings)

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "UserRecord":
        return cls(
            google_id=str(row.get("google_id") or ""),
            email=row.get("email") or "",
            name=row.get("name") or "",
            picture=row.get("picture"),
            access_token=decrypt_token(row.get("access_token") or ""),
            refresh_token=decrypt_token(row.get("refresh_token") or ""),
            token_expiry=_parse_timestamp(row.get("token_expiry")),
            automation_settings=_load_settings(row.get("automation_settings")),
            created_at=_parse_timestamp(row.get("created_at")),
            updated_at=_parse_timestamp(row.get("updated_at")),
        )


__all__ = ["UserRecord"]
