"""Pydantic schemas for the public API."""

from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field, field_validator

from reviewmate.automation.models import AutomationSetting, BulkRunSummary, RunReport


TimeFilterValue = Literal["7days", "14days", "30days", "all"]


class AuthorizationUrlResponse(BaseModel):
    authorization_url: str = Field(..., description="Google OAuth URL to redirect the user to.")
    state: str = Field(..., description="Signed state parameter that must be returned in the callback.")


class OAuthExchangeRequest(BaseModel):
    code: str = Field(..., min_length=1, description="Authorization code returned by Google.")
    state: str = Field(..., min_length=1, description="State value included with the authorization URL.")


class UserProfile(BaseModel):
    id: str
    email: str = ""
    name: str = ""
    picture: Optional[str] = None


class SessionResponse(BaseModel):
    access_token: str = Field(..., description="Bearer token for subsequent API calls.")
    token_type: str = Field(default="bearer")
    expires_in: int = Field(..., description="Token lifetime in seconds.")
    user: UserProfile


class LocationResponse(BaseModel):
    id: str
    title: str = ""
    store_code: Optional[str] = None
    account: str


class LocationsResponse(BaseModel):
    locations: List[LocationResponse] = Field(default_factory=list)


class AutomationSettingPayload(BaseModel):
    location_id: str = Field(..., min_length=1, description="Full location resource name.")
    location_title: str = Field(default="", description="Label shown in run reports.")
    enabled: bool = False
    tone: str = Field(default="Professional", max_length=200)
    keywords: Union[List[str], str] = Field(default_factory=list)
    time_filter: TimeFilterValue = "all"
    reply_scope: str = Field(default="unreplied_only", description="unreplied_only or rewrite_all.")

    @field_validator("location_id", mode="before")
    @classmethod
    def _strip_location(cls, value: Any) -> Any:
        return value.strip() if isinstance(value, str) else value

    @field_validator("keywords", mode="before")
    @classmethod
    def _split_keywords(cls, value: Any) -> List[str]:
        if value is None:
            return []
        if isinstance(value, str):
            value = value.split(",")
        return [str(item).strip() for item in value if str(item).strip()]

    @classmethod
    def from_setting(cls, setting: AutomationSetting) -> "AutomationSettingPayload":
        return cls(**setting.to_dict())


class AutomationSettingsRequest(BaseModel):
    settings: List[AutomationSettingPayload] = Field(default_factory=list)


class AutomationSettingsResponse(BaseModel):
    settings: List[AutomationSettingPayload] = Field(default_factory=list)


class ReportEntryResponse(BaseModel):
    location_title: str
    reviewer_name: str
    action: Literal["new_reply", "updated_reply"]
    reply_text: str


class RunReportResponse(BaseModel):
    user_id: str
    entries: List[ReportEntryResponse] = Field(default_factory=list)
    skipped: int = 0
    failures: int = 0
    errors: List[str] = Field(default_factory=list)
    truncated: bool = False

    @classmethod
    def from_report(cls, report: RunReport) -> "RunReportResponse":
        return cls(**report.to_dict())


class SaveSettingsResponse(BaseModel):
    settings: List[AutomationSettingPayload] = Field(default_factory=list)
    report: RunReportResponse


class BulkRunResponse(BaseModel):
    users_processed: int = 0
    users_failed: int = 0
    replies_posted: int = 0

    @classmethod
    def from_summary(cls, summary: BulkRunSummary) -> "BulkRunResponse":
        return cls(**summary.to_dict())


class HealthResponse(BaseModel):
    status: str = "ok"
    details: Dict[str, Any] = Field(default_factory=dict)
