"""Internal endpoints for schedulers that cannot run the Celery beat."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from reviewmate.api.dependencies import get_automation_runner, get_database, require_cron_secret
from reviewmate.api.schemas import BulkRunResponse
from reviewmate.automation.bulk import run_for_all_enabled_users
from reviewmate.automation.runner import AutomationRunner

router = APIRouter(prefix="/internal", dependencies=[Depends(require_cron_secret)])


@router.post("/automation/run-all", response_model=BulkRunResponse)
def run_all(
    db=Depends(get_database),
    runner: AutomationRunner = Depends(get_automation_runner),
) -> BulkRunResponse:
    """Run automation for every user with an enabled location."""

    summary = run_for_all_enabled_users(runner, db)
    return BulkRunResponse.from_summary(summary)
