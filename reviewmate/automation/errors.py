"""Error taxonomy for automation runs."""

from __future__ import annotations

from typing import Optional


class AutomationError(RuntimeError):
    """Base class for automation failures."""


class UserNotFound(AutomationError):
    """Raised before any location is processed when the user is unknown."""

    def __init__(self, user_id: str) -> None:
        super().__init__(f"No user found for account id: {user_id}")
        self.user_id = user_id


class ExternalFetchFailure(AutomationError):
    """Reviews for a location could not be fetched."""


class GenerationFailure(AutomationError):
    """The text generation service failed for a review."""


class PublishFailure(AutomationError):
    """A generated reply could not be posted."""


class QuotaExceeded(AutomationError):
    """A third-party API rejected the call for rate or quota reasons; safe to retry later."""

    def __init__(self, message: str, retry_after: Optional[float] = None) -> None:
        super().__init__(message)
        self.retry_after = retry_after


__all__ = [
    "AutomationError",
    "UserNotFound",
    "ExternalFetchFailure",
    "GenerationFailure",
    "PublishFailure",
    "QuotaExceeded",
]
