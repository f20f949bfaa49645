"""Wire the automation runner to the production collaborators."""

from __future__ import annotations

from typing import Any, Optional

from .runner import AutomationRunner


def build_runner(db: Optional[Any] = None) -> AutomationRunner:
    from reviewmate.db.client import get_database_client
    from reviewmate.services.google.business_profile import BusinessProfileService
    from reviewmate.services.openai.replies import OpenAIReplyGenerator

    database = db or get_database_client()
    return AutomationRunner(
        db=database,
        google=BusinessProfileService(db=database),
        generator=OpenAIReplyGenerator(),
    )


__all__ = ["build_runner"]
