"""Scheduled automation across every user with at least one enabled location."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Any, Optional

from reviewmate.config import CONFIG
from reviewmate.logger import log

from .models import BulkRunSummary

logger = logging.getLogger(__name__)


def run_for_all_enabled_users(
    runner: Any,
    db: Any,
    max_concurrency: Optional[int] = None,
) -> BulkRunSummary:
    """
    Run automation for every user with an enabled location.

    Users are processed through a bounded thread pool. A failing user is
    logged and counted; the remaining users still run.
    """

    workers = max(1, int(max_concurrency or CONFIG.bulk_max_concurrency))
    summary = BulkRunSummary()

    try:
        users = list(db.list_users_with_enabled_settings())
    except Exception:
        logger.exception("Could not load users for the scheduled automation run")
        raise

    if not users:
        log("[automation] scheduled run: no users with enabled locations")
        return summary

    log(f"[automation] scheduled run starting for {len(users)} users", workers=workers)

    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="reviewmate-bulk") as pool:
        futures = {pool.submit(runner.run_for_user, user): user for user in users}
        for future in as_completed(futures):
            user = futures[future]
            user_id = getattr(user, "google_id", None)
            try:
                report = future.result()
            except Exception:
                summary.users_failed += 1
                logger.exception("Scheduled automation failed for user %s", user_id)
                continue

            summary.users_processed += 1
            summary.replies_posted += len(report.entries)

    log(
        "[automation] scheduled run finished",
        users_processed=summary.users_processed,
        users_failed=summary.users_failed,
        replies_posted=summary.replies_posted,
    )
    return summary


__all__ = ["run_for_all_enabled_users"]
