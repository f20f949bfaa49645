"""Tests for the scheduled bulk automation run."""

from __future__ import annotations

import threading
import time
from typing import List

import pytest

from reviewmate.automation.bulk import run_for_all_enabled_users
from reviewmate.automation.models import AutomationSetting, ReplyAction, ReportEntry, RunReport
from reviewmate.db.models import UserRecord


def _user(google_id: str) -> UserRecord:
    return UserRecord(
        google_id=google_id,
        automation_settings=[AutomationSetting(location_id=f"accounts/{google_id}/locations/1", enabled=True)],
    )


class StubDB:
    def __init__(self, users: List[UserRecord]):
        self.users = users

    def list_users_with_enabled_settings(self):
        return list(self.users)


class StubRunner:
    def __init__(self, replies_per_user: int = 1, failing: tuple = ()):
        self.replies_per_user = replies_per_user
        self.failing = set(failing)
        self.seen: List[str] = []
        self._lock = threading.Lock()
        self.active = 0
        self.max_active = 0

    def run_for_user(self, user: UserRecord) -> RunReport:
        with self._lock:
            self.seen.append(user.google_id)
            self.active += 1
            self.max_active = max(self.max_active, self.active)
        try:
            time.sleep(0.01)
            if user.google_id in self.failing:
                raise RuntimeError("boom")
            report = RunReport(user_id=user.google_id)
            for index in range(self.replies_per_user):
                report.add(ReportEntry("Cafe", f"Guest {index}", ReplyAction.NEW, "Thanks!"))
            return report
        finally:
            with self._lock:
                self.active -= 1


def test_bulk_run_processes_every_user_and_sums_replies() -> None:
    users = [_user(f"g-{index}") for index in range(5)]
    runner = StubRunner(replies_per_user=2)

    summary = run_for_all_enabled_users(runner, StubDB(users), max_concurrency=3)

    assert sorted(runner.seen) == sorted(user.google_id for user in users)
    assert summary.users_processed == 5
    assert summary.users_failed == 0
    assert summary.replies_posted == 10


def test_bulk_run_isolates_failing_users() -> None:
    users = [_user("g-1"), _user("g-2"), _user("g-3")]
    runner = StubRunner(failing=("g-2",))

    summary = run_for_all_enabled_users(runner, StubDB(users), max_concurrency=2)

    assert summary.users_processed == 2
    assert summary.users_failed == 1
    assert summary.replies_posted == 2


def test_bulk_run_respects_concurrency_bound() -> None:
    users = [_user(f"g-{index}") for index in range(8)]
    runner = StubRunner()

    run_for_all_enabled_users(runner, StubDB(users), max_concurrency=2)

    assert runner.max_active <= 2


def test_bulk_run_with_no_users_returns_empty_summary() -> None:
    summary = run_for_all_enabled_users(StubRunner(), StubDB([]), max_concurrency=4)

    assert summary.to_dict() == {"users_processed": 0, "users_failed": 0, "replies_posted": 0}


def test_bulk_run_propagates_user_listing_errors() -> None:
    class BrokenDB:
        def list_users_with_enabled_settings(self):
            raise RuntimeError("database offline")

    with pytest.raises(RuntimeError):
        run_for_all_enabled_users(StubRunner(), BrokenDB(), max_concurrency=1)
