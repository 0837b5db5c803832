"""
Notification engine request / response schemas.

POST /notifications/smart-check  → SmartCheckRequest → SmartCheckResponse
GET  /notifications/stats/{id}   → NotificationStatsResponse
POST /notifications/send         → SendRequest       → SendResponse
GET  /notifications/send         → PushStatusResponse
POST /notifications/generate     → GenerateRequest   → GenerateResponse
"""
from __future__ import annotations

import enum
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from lastmove.models.notification import NotificationPriority
from lastmove.schemas.common import ErrorResponse


class SmartCheckAction(str, enum.Enum):
    check = "check"
    trigger = "trigger"
    stats = "stats"


# ---------------------------------------------------------------------------
# Engine results
# ---------------------------------------------------------------------------

class AnalysisResponse(BaseModel):
    analyzed_activities: int
    notification_targets: int
    created: int
    skipped_duplicates: int
    anomalies: int
    message: str


class DispatchResponse(BaseModel):
    claimed: int
    sent: int
    failed: int
    skipped: int = Field(description="Notifications left pending: user has no push subscription.")
    exhausted: int = Field(description="Notifications that reached the retry cap in this run.")
    message: str


class CheckResponse(BaseModel):
    is_regular_time: bool
    current_time: str = Field(description="Local time in the configured timezone (ISO 8601).")
    next_regular_time: str
    message: str
    analysis: Optional[AnalysisResponse] = None


# ---------------------------------------------------------------------------
# Stats
# ---------------------------------------------------------------------------

class NotificationOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    activity_id: Optional[int] = None
    type: str
    priority: str
    status: str
    title: str
    body: str
    scheduled_at: str
    sent_at: Optional[str] = None
    retry_count: int
    error_message: Optional[str] = None
    created_at: str


class NotificationStatsResponse(BaseModel):
    user_id: int
    total: int = Field(description="Notifications created in the last 30 days.")
    sent: int
    pending: int = Field(description="Due and not yet sent.")
    failed: int = Field(description="Gave up after the retry cap.")
    recent: list[NotificationOut]


# ---------------------------------------------------------------------------
# Smart check
# ---------------------------------------------------------------------------

class SmartCheckRequest(BaseModel):
    action: str = Field(
        description='"check" (gated), "trigger" (ungated) or "stats".',
        examples=["check"],
    )
    user_id: Optional[int] = Field(default=None, description='Required for "stats".')


class SmartCheckResponse(BaseModel):
    success: bool
    action: str
    message: str
    check_result: Optional[CheckResponse] = None
    trigger_result: Optional[AnalysisResponse] = None
    send_result: Optional[DispatchResponse] = None
    send_error: Optional[ErrorResponse] = Field(
        default=None,
        description="Set when dispatch was refused (e.g. push not configured).",
    )
    stats: Optional[NotificationStatsResponse] = None


# ---------------------------------------------------------------------------
# Send
# ---------------------------------------------------------------------------

class ImmediateNotificationIn(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    title: str = Field(min_length=1, max_length=256)
    body: str = Field(min_length=1, max_length=2000)
    priority: NotificationPriority = NotificationPriority.normal
    data: Optional[dict[str, Any]] = None


class SendRequest(BaseModel):
    type: Literal["pending", "immediate"]
    user_id: Optional[int] = None
    notification: Optional[ImmediateNotificationIn] = None

    @model_validator(mode="after")
    def immediate_needs_target(self) -> "SendRequest":
        if self.type == "immediate" and (self.user_id is None or self.notification is None):
            raise ValueError('type "immediate" requires user_id and notification')
        return self


class SendResponse(BaseModel):
    success: bool
    message: str
    result: Optional[DispatchResponse] = None
    user_id: Optional[int] = None
    status_code: Optional[int] = None


class PushStatusResponse(BaseModel):
    vapid_configured: bool
    vapid_public_key: Optional[str] = None


# ---------------------------------------------------------------------------
# Generate
# ---------------------------------------------------------------------------

class GenerateRequest(BaseModel):
    type: Literal["daily", "inactive", "streak"] = Field(
        description='"daily" (urgency analyzer, ungated), "inactive" or "streak".',
        examples=["inactive"],
    )


class GenerateResponse(BaseModel):
    success: bool
    type: str
    candidates: int
    created: int
    skipped_duplicates: int
    message: str
