"""Decide whether a review should receive an automated reply."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from .models import TIME_FILTER_DAYS, AutomationSetting, ReplyScope, Review

SECONDS_PER_DAY = 86400

SKIP_OLD_REVIEW = "old_review"
SKIP_ALREADY_REPLIED = "already_replied"


def day_threshold(time_filter: str) -> Optional[int]:
    """Return the maximum age in days, or None for unbounded. Unknown filters are unbounded."""
    return TIME_FILTER_DAYS.get((time_filter or "").strip().lower())


def age_in_days(review: Review, now: datetime) -> float:
    return (now - review.created_at).total_seconds() / SECONDS_PER_DAY


def skip_reason(review: Review, setting: AutomationSetting, now: datetime) -> Optional[str]:
    """Return why a review is skipped, or None when it is eligible."""
    threshold = day_threshold(setting.time_filter)
    if threshold is not None and age_in_days(review, now) > threshold:
        return SKIP_OLD_REVIEW

    scope = ReplyScope.parse(setting.reply_scope)
    if scope is ReplyScope.REWRITE_ALL:
        return None
    if review.has_reply:
        return SKIP_ALREADY_REPLIED
    return None


def is_eligible(review: Review, setting: AutomationSetting, now: datetime) -> bool:
    return skip_reason(review, setting, now) is None


__all__ = [
    "SKIP_ALREADY_REPLIED",
    "SKIP_OLD_REVIEW",
    "age_in_days",
    "day_threshold",
    "is_eligible",
    "skip_reason",
]
