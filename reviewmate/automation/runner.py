"""
Automation runner: fetch reviews, pick the eligible ones, generate and post replies.

One run covers one user. Locations are processed in settings order and reviews
in the order the review source returns them. Failures for a single location or
review are logged and counted on the report; only an unknown user aborts the
run. Every external call counts against a per-run budget (wall clock deadline
and call cap) and quota errors are retried with exponential backoff.
"""

from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from typing import Any, Callable, List, Optional, TypeVar

from reviewmate.config import CONFIG

from .eligibility import skip_reason
from .errors import (
    ExternalFetchFailure,
    GenerationFailure,
    PublishFailure,
    QuotaExceeded,
    UserNotFound,
)
from .models import AutomationSetting, ReplyAction, ReportEntry, Review, RunReport
from .prompts import build_prompt

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RunBudgetExhausted(Exception):
    """Raised internally when the run deadline or external call cap is reached."""


class RunBudget:
    """Tracks the wall clock deadline and external call cap of a single run."""

    def __init__(
        self,
        *,
        deadline_seconds: Optional[float],
        max_calls: Optional[int],
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._clock = clock
        self._started = clock()
        self._deadline_seconds = deadline_seconds if deadline_seconds and deadline_seconds > 0 else None
        self._max_calls = max_calls if max_calls and max_calls > 0 else None
        self.calls = 0

    def remaining_seconds(self) -> Optional[float]:
        if self._deadline_seconds is None:
            return None
        return self._deadline_seconds - (self._clock() - self._started)

    def exhausted(self) -> bool:
        remaining = self.remaining_seconds()
        if remaining is not None and remaining <= 0:
            return True
        return self._max_calls is not None and self.calls >= self._max_calls

    def consume(self) -> None:
        if self.exhausted():
            raise RunBudgetExhausted(
                f"run budget exhausted after {self.calls} external calls"
            )
        self.calls += 1


class AutomationRunner:
    """
    Orchestrates one automation run per user.

    Collaborators:
        db: exposes ``get_user(user_id)`` returning a user record or None.
        google: exposes ``build_credentials(user)``,
            ``store_refreshed_credentials(user, credentials)``,
            ``list_reviews(credentials, location_id, page_size=...)`` and
            ``publish_reply(credentials, review_id, text)``.
        generator: exposes ``generate(prompt) -> str``.

    Credentials are built per run and passed explicitly to every Google call.
    """

    def __init__(
        self,
        *,
        db: Any,
        google: Any,
        generator: Any,
        page_size: Optional[int] = None,
        deadline_seconds: Optional[float] = None,
        max_external_calls: Optional[int] = None,
        quota_max_retries: Optional[int] = None,
        backoff_base_seconds: Optional[float] = None,
        backoff_cap_seconds: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
        now: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._db = db
        self._google = google
        self._generator = generator
        self.page_size = page_size or CONFIG.review_page_size
        self.deadline_seconds = (
            deadline_seconds if deadline_seconds is not None else CONFIG.run_deadline_seconds
        )
        self.max_external_calls = (
            max_external_calls if max_external_calls is not None else CONFIG.run_max_external_calls
        )
        self.quota_max_retries = (
            quota_max_retries if quota_max_retries is not None else CONFIG.quota_max_retries
        )
        self.backoff_base_seconds = (
            backoff_base_seconds if backoff_base_seconds is not None else CONFIG.quota_backoff_base_seconds
        )
        self.backoff_cap_seconds = (
            backoff_cap_seconds if backoff_cap_seconds is not None else CONFIG.quota_backoff_cap_seconds
        )
        self._clock = clock
        self._sleep = sleep
        self._now = now

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------
    def run(self, user_id: str) -> RunReport:
        """Run automation for a user id. Raises UserNotFound for unknown users."""

        user = self._db.get_user(user_id) if user_id else None
        if user is None:
            raise UserNotFound(user_id)
        return self.run_for_user(user)

    def run_for_user(self, user: Any) -> RunReport:
        report = RunReport(user_id=user.google_id)
        enabled = [setting for setting in user.automation_settings if setting.enabled]
        if not enabled:
            logger.info("No enabled locations for user %s; nothing to do", user.google_id)
            return report

        try:
            credentials = self._google.build_credentials(user)
        except Exception as exc:
            logger.warning("Cannot build Google credentials for user %s: %s", user.google_id, exc)
            report.record_failure(f"credentials: {exc}")
            return report

        budget = RunBudget(
            deadline_seconds=self.deadline_seconds,
            max_calls=self.max_external_calls,
            clock=self._clock,
        )
        now = self._now()

        logger.info(
            "Starting automation run for user %s across %s locations",
            user.google_id,
            len(enabled),
        )
        try:
            for setting in enabled:
                self._process_location(credentials, setting, report, budget, now)
        except RunBudgetExhausted as exc:
            logger.warning("Automation run for user %s stopped early: %s", user.google_id, exc)
            report.truncated = True

        self._persist_credentials(user, credentials)

        logger.info(
            "Automation run for user %s finished: %s replies, %s skipped, %s failures",
            user.google_id,
            len(report.entries),
            report.skipped,
            report.failures,
        )
        return report

    def _persist_credentials(self, user: Any, credentials: Any) -> None:
        try:
            self._google.store_refreshed_credentials(user, credentials)
        except Exception:
            logger.exception("Could not store refreshed Google token for user %s", user.google_id)

    # ------------------------------------------------------------------
    # Per-location / per-review work
    # ------------------------------------------------------------------
    def _process_location(
        self,
        credentials: Any,
        setting: AutomationSetting,
        report: RunReport,
        budget: RunBudget,
        now: datetime,
    ) -> None:
        location = setting.display_name
        try:
            reviews: List[Review] = self._call_with_quota_retry(
                budget,
                lambda: self._google.list_reviews(
                    credentials, setting.location_id, page_size=self.page_size
                ),
            )
        except RunBudgetExhausted:
            raise
        except (ExternalFetchFailure, QuotaExceeded) as exc:
            logger.warning("Skipping location %s: could not fetch reviews: %s", location, exc)
            report.record_failure(f"{location}: {exc}")
            return
        except Exception as exc:
            logger.exception("Unexpected error fetching reviews for location %s", location)
            report.record_failure(f"{location}: {exc}")
            return

        for review in reviews or []:
            reason = skip_reason(review, setting, now)
            if reason:
                report.skipped += 1
                logger.info(
                    "Skipping review %s at %s (%s)",
                    review.review_id,
                    location,
                    reason.replace("_", " "),
                )
                continue
            self._reply_to_review(credentials, setting, review, report, budget)

    def _reply_to_review(
        self,
        credentials: Any,
        setting: AutomationSetting,
        review: Review,
        report: RunReport,
        budget: RunBudget,
    ) -> None:
        location = setting.display_name
        prompt = build_prompt(review, setting)

        try:
            generated = self._call_with_quota_retry(budget, lambda: self._generator.generate(prompt))
        except RunBudgetExhausted:
            raise
        except (GenerationFailure, QuotaExceeded) as exc:
            logger.warning("Reply generation failed for review %s at %s: %s", review.review_id, location, exc)
            report.record_failure(f"{location}/{review.review_id}: {exc}")
            return
        except Exception as exc:
            logger.exception("Unexpected error generating reply for review %s", review.review_id)
            report.record_failure(f"{location}/{review.review_id}: {exc}")
            return

        reply_text = (generated or "").strip()
        if not reply_text:
            logger.info("Generator returned no text for review %s at %s; not posting", review.review_id, location)
            return

        try:
            self._call_with_quota_retry(
                budget,
                lambda: self._google.publish_reply(credentials, review.review_id, reply_text),
            )
        except RunBudgetExhausted:
            raise
        except (PublishFailure, QuotaExceeded) as exc:
            logger.warning("Publishing reply failed for review %s at %s: %s", review.review_id, location, exc)
            report.record_failure(f"{location}/{review.review_id}: {exc}")
            return
        except Exception as exc:
            logger.exception("Unexpected error publishing reply for review %s", review.review_id)
            report.record_failure(f"{location}/{review.review_id}: {exc}")
            return

        action = ReplyAction.UPDATED if review.has_reply else ReplyAction.NEW
        report.add(
            ReportEntry(
                location_title=location,
                reviewer_name=review.reviewer_name,
                action=action,
                reply_text=reply_text,
            )
        )
        logger.info("Posted %s for review %s at %s", action.value, review.review_id, location)

    # ------------------------------------------------------------------
    # External call wrapper
    # ------------------------------------------------------------------
    def backoff_delay(self, attempt: int, retry_after: Optional[float] = None) -> float:
        delay = min(self.backoff_cap_seconds, self.backoff_base_seconds * (2 ** attempt))
        if retry_after is not None and retry_after > delay:
            delay = min(self.backoff_cap_seconds, retry_after)
        return max(0.0, delay)

    def _call_with_quota_retry(self, budget: RunBudget, call: Callable[[], T]) -> T:
        attempt = 0
        while True:
            budget.consume()
            try:
                return call()
            except QuotaExceeded as exc:
                if attempt >= self.quota_max_retries:
                    raise
                delay = self.backoff_delay(attempt, exc.retry_after)
                remaining = budget.remaining_seconds()
                if remaining is not None and delay >= remaining:
                    raise
                logger.warning(
                    "Quota exceeded (attempt %s), retrying in %ss: %s",
                    attempt + 1,
                    delay,
                    exc,
                )
                self._sleep(delay)
                attempt += 1


__all__ = ["AutomationRunner", "RunBudget", "RunBudgetExhausted"]
