"""FastAPI dependencies shared across the public API."""

from __future__ import annotations

import hmac
from typing import Any

from fastapi import Depends, Header, HTTPException, status

from ..auth import require_auth
from ..automation.factory import build_runner
from ..automation.runner import AutomationRunner
from ..config import CONFIG
from ..db import DatabaseClient, get_database_client
from ..services.google.business_profile import BusinessProfileService


def get_current_user_id(authorization: str = Header(None)) -> str:
    """Resolve the authenticated Google account id from the Authorization header."""

    if not authorization:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authorization header required",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return require_auth(authorization)


def get_database() -> DatabaseClient:
    """Return the shared database client instance."""

    return get_database_client()


def get_database_with_user(
    user_id: str = Depends(get_current_user_id),
    db: DatabaseClient = Depends(get_database),
) -> tuple[str, DatabaseClient]:
    """Convenience helper that returns both user id and database client."""

    return user_id, db


def get_business_profile_service(db: Any = Depends(get_database)) -> BusinessProfileService:
    return BusinessProfileService(db=db)


def get_automation_runner(db: Any = Depends(get_database)) -> AutomationRunner:
    return build_runner(db)


def require_cron_secret(x_cron_secret: str = Header(None)) -> None:
    """Guard internal endpoints with the shared ``CRON_SECRET``."""

    expected = CONFIG.cron_secret
    if not expected:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="CRON_SECRET is not configured",
        )
    if not x_cron_secret or not hmac.compare_digest(x_cron_secret, expected):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Invalid cron secret",
        )
