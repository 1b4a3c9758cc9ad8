"""Pydantic request/response models for the notifications API.

API schemas are separate from Protean commands (anti-corruption pattern).
"""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Request Models
# ---------------------------------------------------------------------------
class SendNotificationRequest(BaseModel):
    notification_type: str = Field(..., examples=["BOOKING_CONFIRMATION"])
    channels: list[Literal["EMAIL", "SMS"]] = Field(..., min_length=1)
    user_id: str | None = None
    email: str | None = None
    phone: str | None = None
    name: str | None = None

    # Either explicit content, or template context to render it from
    content: str | None = None
    subject: str | None = None
    html_content: str | None = None
    sms_content: str | None = None
    template_id: str | None = None
    context: dict | None = Field(default=None, description="Values used to render the notification template")

    priority: Literal["LOW", "NORMAL", "HIGH", "CRITICAL"] | None = None
    context_type: str | None = None
    context_id: str | None = None
    scheduled_at: datetime | None = None
    max_retries: int = Field(default=3, ge=1, le=10)


class UpdatePreferencesRequest(BaseModel):
    email_enabled: bool | None = None
    sms_enabled: bool | None = None


class CancelNotificationRequest(BaseModel):
    reason: str = Field(..., min_length=1, max_length=500)


class ProcessRetriesRequest(BaseModel):
    as_of: datetime | None = None


# ---------------------------------------------------------------------------
# Response Models
# ---------------------------------------------------------------------------
class StatusResponse(BaseModel):
    status: str = "ok"


class NotificationResultResponse(BaseModel):
    success: bool
    partial_success: bool = False
    notification_ids: list[str] = []
    scheduled_ids: list[str] = []
    skipped_channels: list[str] = []
    errors: list[str] = []
    retry_after_seconds: int | None = None


class NotificationResponse(BaseModel):
    notification_id: str
    notification_type: str
    channel: str
    priority: str
    status: str
    template_id: str
    recipient_id: str | None = None
    provider_id: str | None = None
    error_code: str | None = None
    error_message: str | None = None
    retry_count: int = 0
    max_retries: int = 3
    next_retry_at: datetime | None = None
    escalated: bool = False
    context_type: str | None = None
    context_id: str | None = None
    scheduled_at: datetime | None = None
    sent_at: datetime | None = None
    delivered_at: datetime | None = None
    failed_at: datetime | None = None
    created_at: datetime | None = None


class RetryResponse(BaseModel):
    attempt_number: int
    status: str
    error_message: str | None = None
    provider_id: str | None = None
    scheduled_for: datetime | None = None
    attempted_at: datetime | None = None


class RetryListResponse(BaseModel):
    notification_id: str
    retries: list[RetryResponse]


class PreferencesResponse(BaseModel):
    user_id: str
    email_enabled: bool
    sms_enabled: bool


class DeliveryStatsResponse(BaseModel):
    timeframe: str
    since: datetime
    total: int
    by_status: dict[str, int]
    by_channel: dict[str, dict]
    escalated: int
    retries: dict


class EscalationResponse(BaseModel):
    notification_id: str
    notification_type: str
    channel: str
    recipient_id: str | None = None
    recipient_email: str | None = None
    recipient_phone: str | None = None
    error_code: str | None = None
    error_message: str | None = None
    attempts: int
    escalated_at: datetime | None = None


class EscalationListResponse(BaseModel):
    escalations: list[EscalationResponse]


class MaintenanceResponse(BaseModel):
    status: str = "ok"
    processed: int = 0
    sent: int = 0
    failed: int = 0
    rescheduled: int = 0
    requeued: int = 0
    skipped: bool = False
    purged: int = 0
