"""Automation settings and on-demand runs for the signed-in account."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status

from reviewmate.api.dependencies import (
    get_automation_runner,
    get_current_user_id,
    get_database_with_user,
)
from reviewmate.api.schemas import (
    AutomationSettingPayload,
    AutomationSettingsRequest,
    AutomationSettingsResponse,
    RunReportResponse,
    SaveSettingsResponse,
)
from reviewmate.automation.errors import UserNotFound
from reviewmate.automation.runner import AutomationRunner
from reviewmate.db.settings import (
    SettingsValidationError,
    load_automation_settings,
    save_automation_settings,
)

router = APIRouter(prefix="/automation")


def _run(runner: AutomationRunner, user_id: str) -> RunReportResponse:
    try:
        report = runner.run(user_id)
    except UserNotFound as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found") from exc
    return RunReportResponse.from_report(report)


@router.get("/settings", response_model=AutomationSettingsResponse)
def get_automation_settings(context=Depends(get_database_with_user)) -> AutomationSettingsResponse:
    """Return the saved per-location settings in their stored order."""

    user_id, db = context
    if db.get_user(user_id) is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found")

    settings = load_automation_settings(user_id, db=db)
    return AutomationSettingsResponse(
        settings=[AutomationSettingPayload.from_setting(setting) for setting in settings]
    )


@router.put("/settings", response_model=SaveSettingsResponse)
def replace_automation_settings(
    payload: AutomationSettingsRequest,
    context=Depends(get_database_with_user),
    runner: AutomationRunner = Depends(get_automation_runner),
) -> SaveSettingsResponse:
    """Replace the whole settings list, then run automation immediately."""

    user_id, db = context
    if db.get_user(user_id) is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found")

    try:
        success, saved = save_automation_settings(
            user_id,
            [item.model_dump() for item in payload.settings],
            db=db,
        )
    except SettingsValidationError as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)) from exc

    if not success:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to persist automation settings",
        )

    report = _run(runner, user_id)
    return SaveSettingsResponse(
        settings=[AutomationSettingPayload.from_setting(setting) for setting in saved],
        report=report,
    )


@router.post("/run", response_model=RunReportResponse)
def run_automation(
    user_id: str = Depends(get_current_user_id),
    runner: AutomationRunner = Depends(get_automation_runner),
) -> RunReportResponse:
    """Run automation with the saved settings without changing them."""

    return _run(runner, user_id)
