"""Tests for automation settings, runs and the internal bulk endpoint."""

from __future__ import annotations

from typing import Dict, List

import pytest
from fastapi.testclient import TestClient

from reviewmate.api import dependencies
from reviewmate.api.main import app
from reviewmate.automation.errors import UserNotFound
from reviewmate.automation.models import (
    AutomationSetting,
    ReplyAction,
    ReportEntry,
    RunReport,
)
from reviewmate.db.models import UserRecord


class StubDB:
    def __init__(self, users: Dict[str, UserRecord] | None = None, *, save_ok: bool = True):
        self.users = users if users is not None else {"g-1": UserRecord(google_id="g-1", email="o@example.com")}
        self.save_ok = save_ok
        self.saved: List[List[AutomationSetting]] = []

    def get_user(self, user_id: str):
        return self.users.get(user_id)

    def replace_automation_settings(self, google_id: str, settings: List[AutomationSetting]) -> bool:
        self.saved.append(list(settings))
        if self.save_ok and google_id in self.users:
            self.users[google_id].automation_settings = list(settings)
        return self.save_ok

    def list_users_with_enabled_settings(self):
        return [user for user in self.users.values() if user.has_enabled_settings]


class StubRunner:
    def __init__(self, db: StubDB):
        self.db = db
        self.runs: List[str] = []

    def run(self, user_id: str) -> RunReport:
        self.runs.append(user_id)
        if self.db.get_user(user_id) is None:
            raise UserNotFound(user_id)
        report = RunReport(user_id=user_id)
        report.add(ReportEntry("Cafe", "Sam", ReplyAction.NEW, "Thanks Sam!"))
        return report

    def run_for_user(self, user: UserRecord) -> RunReport:
        return self.run(user.google_id)


@pytest.fixture
def stub_db() -> StubDB:
    return StubDB()


@pytest.fixture
def runner(stub_db: StubDB) -> StubRunner:
    return StubRunner(stub_db)


@pytest.fixture
def client(stub_db: StubDB, runner: StubRunner):
    app.dependency_overrides[dependencies.get_current_user_id] = lambda: "g-1"
    app.dependency_overrides[dependencies.get_database] = lambda: stub_db
    app.dependency_overrides[dependencies.get_automation_runner] = lambda: runner
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def _setting(location_id: str, **overrides):
    payload = {
        "location_id": location_id,
        "location_title": "Cafe",
        "enabled": True,
        "tone": "Friendly",
        "keywords": "coffee, pastries",
        "time_filter": "7days",
        "reply_scope": "rewrite-all",
    }
    payload.update(overrides)
    return payload


def test_health_is_served_at_root(client: TestClient) -> None:
    assert client.get("/health").json() == {"status": "ok"}


def test_put_settings_saves_then_runs(client: TestClient, stub_db: StubDB, runner: StubRunner) -> None:
    response = client.put(
        "/v1/automation/settings",
        json={"settings": [_setting("accounts/1/locations/1"), _setting("accounts/1/locations/2", enabled=False)]},
    )

    assert response.status_code == 200
    body = response.json()
    assert [item["location_id"] for item in body["settings"]] == [
        "accounts/1/locations/1",
        "accounts/1/locations/2",
    ]
    assert body["settings"][0]["keywords"] == ["coffee", "pastries"]
    assert body["settings"][0]["reply_scope"] == "rewrite_all"
    assert body["report"]["entries"][0]["action"] == "new_reply"
    assert runner.runs == ["g-1"]
    assert len(stub_db.saved) == 1


def test_put_settings_rejects_duplicate_locations(client: TestClient, stub_db: StubDB, runner: StubRunner) -> None:
    response = client.put(
        "/v1/automation/settings",
        json={"settings": [_setting("accounts/1/locations/1"), _setting("accounts/1/locations/1")]},
    )

    assert response.status_code == 422
    assert stub_db.saved == []
    assert runner.runs == []


def test_put_settings_rejects_unknown_time_filter(client: TestClient, stub_db: StubDB) -> None:
    response = client.put(
        "/v1/automation/settings",
        json={"settings": [_setting("accounts/1/locations/1", time_filter="90days")]},
    )

    assert response.status_code == 422
    assert stub_db.saved == []


def test_put_settings_reports_save_failure(runner: StubRunner) -> None:
    failing_db = StubDB(save_ok=False)
    app.dependency_overrides[dependencies.get_current_user_id] = lambda: "g-1"
    app.dependency_overrides[dependencies.get_database] = lambda: failing_db
    app.dependency_overrides[dependencies.get_automation_runner] = lambda: runner
    try:
        response = TestClient(app).put(
            "/v1/automation/settings",
            json={"settings": [_setting("accounts/1/locations/1")]},
        )
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 500
    assert runner.runs == []


def test_get_settings_returns_saved_order(client: TestClient, stub_db: StubDB) -> None:
    stub_db.users["g-1"].automation_settings = [
        AutomationSetting(location_id="accounts/1/locations/2", enabled=True),
        AutomationSetting(location_id="accounts/1/locations/1"),
    ]

    response = client.get("/v1/automation/settings")

    assert response.status_code == 200
    assert [item["location_id"] for item in response.json()["settings"]] == [
        "accounts/1/locations/2",
        "accounts/1/locations/1",
    ]


def test_unknown_user_is_unauthorized(client: TestClient, stub_db: StubDB) -> None:
    stub_db.users.clear()

    assert client.get("/v1/automation/settings").status_code == 401
    assert client.post("/v1/automation/run").status_code == 401


def test_run_uses_authenticated_user(client: TestClient, runner: StubRunner) -> None:
    response = client.post("/v1/automation/run")

    assert response.status_code == 200
    assert response.json()["user_id"] == "g-1"
    assert runner.runs == ["g-1"]


def test_requests_without_session_are_rejected(stub_db: StubDB) -> None:
    app.dependency_overrides[dependencies.get_database] = lambda: stub_db
    try:
        response = TestClient(app).post("/v1/automation/run")
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 401


def test_internal_run_all_requires_cron_secret(client: TestClient) -> None:
    assert client.post("/v1/internal/automation/run-all").status_code == 403
    assert (
        client.post("/v1/internal/automation/run-all", headers={"X-Cron-Secret": "wrong"}).status_code
        == 403
    )


def test_internal_run_all_summarises_users(client: TestClient, stub_db: StubDB) -> None:
    stub_db.users["g-1"].automation_settings = [AutomationSetting(location_id="accounts/1/locations/1", enabled=True)]
    stub_db.users["g-2"] = UserRecord(google_id="g-2")

    response = client.post("/v1/internal/automation/run-all", headers={"X-Cron-Secret": "cron-secret"})

    assert response.status_code == 200
    assert response.json() == {"users_processed": 1, "users_failed": 0, "replies_posted": 1}
