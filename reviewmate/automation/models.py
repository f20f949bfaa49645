"""
Data structures for review reply automation.

Settings are stored as plain JSON documents, so every type here can be built
from and rendered to a dictionary.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional


class TimeFilter(str, Enum):
    """Maximum review age considered for automation."""

    LAST_7_DAYS = "7days"
    LAST_14_DAYS = "14days"
    LAST_30_DAYS = "30days"
    ALL = "all"


# None means unbounded.
TIME_FILTER_DAYS: Dict[str, Optional[int]] = {
    TimeFilter.LAST_7_DAYS.value: 7,
    TimeFilter.LAST_14_DAYS.value: 14,
    TimeFilter.LAST_30_DAYS.value: 30,
    TimeFilter.ALL.value: None,
}


class ReplyScope(str, Enum):
    """Whether existing replies are left alone or always replaced."""

    UNREPLIED_ONLY = "unreplied_only"
    REWRITE_ALL = "rewrite_all"

    @classmethod
    def parse(cls, value: Any) -> "ReplyScope":
        """Normalise user input; unknown values fall back to the non-destructive scope."""
        if isinstance(value, ReplyScope):
            return value
        candidate = str(value or "").strip().lower().replace("-", "_")
        if candidate in {"rewrite_all", "rewrite"}:
            return cls.REWRITE_ALL
        return cls.UNREPLIED_ONLY


class ReplyAction(str, Enum):
    NEW = "new_reply"
    UPDATED = "updated_reply"


def _split_keywords(value: Any) -> List[str]:
    if not value:
        return []
    if isinstance(value, str):
        parts = value.split(",")
    elif isinstance(value, (list, tuple)):
        parts = [str(item) for item in value]
    else:
        return []
    return [part.strip() for part in parts if part and part.strip()]


def _first(data: Mapping[str, Any], *keys: str, default: Any = None) -> Any:
    for key in keys:
        if key in data and data[key] is not None:
            return data[key]
    return default


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "on"}
    return bool(value)


@dataclass
class AutomationSetting:
    """Per-location automation configuration owned by one user."""

    location_id: str
    location_title: str = ""
    enabled: bool = False
    tone: str = "Professional"
    keywords: List[str] = field(default_factory=list)
    time_filter: str = TimeFilter.ALL.value
    reply_scope: str = ReplyScope.UNREPLIED_ONLY.value

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "AutomationSetting":
        """Build a setting from a stored document, accepting legacy field names."""
        location_id = _first(data, "location_id", "locationName", "name", default="")
        time_filter = str(_first(data, "time_filter", "timeFilter", default=TimeFilter.ALL.value))
        return cls(
            location_id=str(location_id).strip(),
            location_title=str(_first(data, "location_title", "locationTitle", "title", default="")),
            enabled=_as_bool(_first(data, "enabled", "isEnabled", default=False)),
            tone=str(_first(data, "tone", default="Professional")),
            keywords=_split_keywords(_first(data, "keywords")),
            time_filter=time_filter.strip().lower(),
            reply_scope=ReplyScope.parse(_first(data, "reply_scope", "replyScope")).value,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "location_id": self.location_id,
            "location_title": self.location_title,
            "enabled": self.enabled,
            "tone": self.tone,
            "keywords": list(self.keywords),
            "time_filter": self.time_filter,
            "reply_scope": self.reply_scope,
        }

    @property
    def display_name(self) -> str:
        return self.location_title or self.location_id


@dataclass
class Review:
    """A customer review as returned by the review source."""

    review_id: str
    created_at: datetime
    star_rating: int = 0
    comment: Optional[str] = None
    reviewer_name: str = "Customer"
    existing_reply: Optional[str] = None

    @property
    def has_reply(self) -> bool:
        return bool(self.existing_reply)


@dataclass
class ReportEntry:
    location_title: str
    reviewer_name: str
    action: ReplyAction
    reply_text: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "location_title": self.location_title,
            "reviewer_name": self.reviewer_name,
            "action": self.action.value,
            "reply_text": self.reply_text,
        }


@dataclass
class RunReport:
    """Outcome of one automation run for one user."""

    user_id: str
    entries: List[ReportEntry] = field(default_factory=list)
    skipped: int = 0
    errors: List[str] = field(default_factory=list)
    truncated: bool = False

    @property
    def failures(self) -> int:
        return len(self.errors)

    def add(self, entry: ReportEntry) -> None:
        self.entries.append(entry)

    def record_failure(self, message: str) -> None:
        self.errors.append(message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "user_id": self.user_id,
            "entries": [entry.to_dict() for entry in self.entries],
            "skipped": self.skipped,
            "failures": self.failures,
            "errors": list(self.errors),
            "truncated": self.truncated,
        }


@dataclass
class BulkRunSummary:
    users_processed: int = 0
    users_failed: int = 0
    replies_posted: int = 0

    def to_dict(self) -> Dict[str, int]:
        return {
            "users_processed": self.users_processed,
            "users_failed": self.users_failed,
            "replies_posted": self.replies_posted,
        }
