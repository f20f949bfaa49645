"""Review reply automation: eligibility, prompting and the per-user runner."""

from .bulk import run_for_all_enabled_users
from .eligibility import is_eligible, skip_reason
from .errors import (
    AutomationError,
    ExternalFetchFailure,
    GenerationFailure,
    PublishFailure,
    QuotaExceeded,
    UserNotFound,
)
from .models import (
    AutomationSetting,
    BulkRunSummary,
    ReplyAction,
    ReplyScope,
    ReportEntry,
    Review,
    RunReport,
    TimeFilter,
)
from .prompts import build_prompt
from .runner import AutomationRunner

__all__ = [
    "AutomationError",
    "AutomationRunner",
    "AutomationSetting",
    "BulkRunSummary",
    "ExternalFetchFailure",
    "GenerationFailure",
    "PublishFailure",
    "QuotaExceeded",
    "ReplyAction",
    "ReplyScope",
    "ReportEntry",
    "Review",
    "RunReport",
    "TimeFilter",
    "UserNotFound",
    "build_prompt",
    "is_eligible",
    "run_for_all_enabled_users",
    "skip_reason",
]
