"""Celery task definitions for review automation.

``automation.run_all`` is fired by the beat schedule; ``automation.run_user``
lets the API or an operator queue a single account.
"""

from __future__ import annotations

from typing import Any, Dict

from celery.utils.log import get_task_logger

from reviewmate.automation.bulk import run_for_all_enabled_users
from reviewmate.automation.errors import UserNotFound
from reviewmate.automation.factory import build_runner
from reviewmate.db import get_database_client
from reviewmate.db.client import DatabaseError

from .celery_app import celery_app


logger = get_task_logger(__name__)


def _retry_delay(retries: int) -> int:
    return min(60, 5 * (2 ** retries))


@celery_app.task(bind=True, name="automation.run_user", max_retries=3)
def run_user_automation(self, user_id: str) -> Dict[str, Any]:
    """Run automation for one account with its saved settings."""

    db = get_database_client()
    runner = build_runner(db)
    try:
        report = runner.run(user_id)
    except UserNotFound:
        logger.warning("Skipping automation for unknown user %s", user_id)
        return {"user_id": user_id, "status": "user_not_found"}
    except DatabaseError as exc:
        retry_count = getattr(self.request, "retries", 0)
        delay = _retry_delay(retry_count)
        logger.warning(
            "Database error for user %s (attempt %s), retrying in %ss: %s",
            user_id,
            retry_count + 1,
            delay,
            exc,
        )
        raise self.retry(exc=exc, countdown=delay)

    payload = report.to_dict()
    payload["status"] = "completed"
    return payload


@celery_app.task(bind=True, name="automation.run_all", max_retries=3)
def run_all_automation(self) -> Dict[str, Any]:
    """Run automation for every account with an enabled location."""

    db = get_database_client()
    runner = build_runner(db)
    try:
        summary = run_for_all_enabled_users(runner, db)
    except DatabaseError as exc:
        retry_count = getattr(self.request, "retries", 0)
        delay = _retry_delay(retry_count)
        logger.warning(
            "Database error listing users (attempt %s), retrying in %ss: %s",
            retry_count + 1,
            delay,
            exc,
        )
        raise self.retry(exc=exc, countdown=delay)

    logger.info(
        "Scheduled automation complete: %s users, %s failed, %s replies",
        summary.users_processed,
        summary.users_failed,
        summary.replies_posted,
    )
    return summary.to_dict()


__all__ = ["run_all_automation", "run_user_automation"]
