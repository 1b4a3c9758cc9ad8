"""FastAPI routes for the notifications service.

Thin adapters that translate HTTP requests into dispatcher calls and domain
commands. Sending, stats and maintenance go through the pipeline stored on
`app.state`; state changes on single records go through commands.
"""

import os
from datetime import UTC, datetime, timedelta
from typing import Literal

from fastapi import APIRouter, Depends, Header, HTTPException, Query, Request, Response
from protean.utils.globals import current_domain
from twilio.request_validator import RequestValidator

from instacares_notify.api.schemas import (
    CancelNotificationRequest,
    DeliveryStatsResponse,
    EscalationListResponse,
    EscalationResponse,
    MaintenanceResponse,
    NotificationResponse,
    NotificationResultResponse,
    PreferencesResponse,
    ProcessRetriesRequest,
    RetryListResponse,
    RetryResponse,
    SendNotificationRequest,
    StatusResponse,
    UpdatePreferencesRequest,
)
from instacares_notify.dispatch.pipeline import NotificationPipeline
from instacares_notify.dispatch.results import UnifiedNotificationOptions
from instacares_notify.notification.cancellation import CancelNotification
from instacares_notify.notification.delivery_receipts import ReceiptProvider, RecordDeliveryReceipt
from instacares_notify.notification.notification import NotificationPriority
from instacares_notify.preference.management import UpdateNotificationPreferences
from instacares_notify.projections.escalated_notifications import EscalatedNotification
from instacares_notify.templates import UnknownNotificationType, resolve
from instacares_notify.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/notifications", tags=["notifications"])

_TIMEFRAMES = {
    "hour": timedelta(hours=1),
    "day": timedelta(days=1),
    "week": timedelta(weeks=1),
}


def get_pipeline(request: Request) -> NotificationPipeline:
    return request.app.state.pipeline


# ---------------------------------------------------------------------------
# Sending
# ---------------------------------------------------------------------------
def _to_options(body: SendNotificationRequest) -> UnifiedNotificationOptions:
    """Build dispatcher options, rendering the template for anything not given explicitly."""
    rendered = None
    if body.content is None or body.template_id is None:
        try:
            rendered = resolve(body.notification_type, body.context or {})
        except UnknownNotificationType as exc:
            raise HTTPException(status_code=422, detail=str(exc)) from exc

    return UnifiedNotificationOptions(
        notification_type=body.notification_type,
        content=body.content if body.content is not None else rendered.content,
        template_id=body.template_id or rendered.template_id,
        channels=list(body.channels),
        user_id=body.user_id,
        email=body.email,
        phone=body.phone,
        name=body.name,
        subject=body.subject or (rendered.subject if rendered else None),
        html_content=body.html_content or (rendered.html_content if rendered else None),
        sms_content=body.sms_content or (rendered.sms_content if rendered else None),
        priority=body.priority or (rendered.priority if rendered else NotificationPriority.NORMAL.value),
        context_type=body.context_type,
        context_id=body.context_id,
        scheduled_at=body.scheduled_at,
        max_retries=body.max_retries,
    )


@router.post("", response_model=NotificationResultResponse)
async def send_notification(
    body: SendNotificationRequest,
    response: Response,
    pipeline: NotificationPipeline = Depends(get_pipeline),
) -> NotificationResultResponse:
    """Send a notification over the requested channels."""
    result = await pipeline.dispatcher.send(_to_options(body))

    if result.is_validation_failure:
        response.status_code = 422
    elif result.is_rate_limited:
        response.status_code = 429
        if result.retry_after_seconds:
            response.headers["Retry-After"] = str(result.retry_after_seconds)

    return NotificationResultResponse(
        success=result.success,
        partial_success=result.partial_success,
        notification_ids=result.notification_ids,
        scheduled_ids=result.scheduled_ids,
        skipped_channels=result.skipped_channels,
        errors=result.errors,
        retry_after_seconds=result.retry_after_seconds,
    )


# ---------------------------------------------------------------------------
# Preferences
# ---------------------------------------------------------------------------
@router.get("/preferences/{user_id}", response_model=PreferencesResponse)
async def get_preferences(user_id: str, pipeline: NotificationPipeline = Depends(get_pipeline)) -> PreferencesResponse:
    """Get a user's channel preferences (all enabled when never set)."""
    prefs = pipeline.dispatcher.preferences.get(user_id)
    return PreferencesResponse(user_id=user_id, email_enabled=prefs.email, sms_enabled=prefs.sms)


@router.put("/preferences/{user_id}", response_model=StatusResponse)
async def update_preferences(user_id: str, body: UpdatePreferencesRequest) -> StatusResponse:
    """Update a user's channel preferences."""
    command = UpdateNotificationPreferences(
        user_id=user_id,
        email_enabled=body.email_enabled,
        sms_enabled=body.sms_enabled,
    )
    current_domain.process(command, asynchronous=False)
    return StatusResponse()


# ---------------------------------------------------------------------------
# Statistics & escalations
# ---------------------------------------------------------------------------
@router.get("/stats", response_model=DeliveryStatsResponse)
async def delivery_stats(
    timeframe: Literal["hour", "day", "week"] = Query(default="day"),
    channel: Literal["EMAIL", "SMS"] | None = Query(default=None),
    pipeline: NotificationPipeline = Depends(get_pipeline),
) -> DeliveryStatsResponse:
    """Delivery counts by status and channel over the timeframe."""
    since = datetime.now(UTC) - _TIMEFRAMES[timeframe]
    stats = pipeline.store.delivery_stats(since, channel=channel)
    return DeliveryStatsResponse(
        timeframe=timeframe,
        since=since,
        retries=pipeline.store.retry_stats(since),
        **stats,
    )


@router.get("/escalations", response_model=EscalationListResponse)
async def list_escalations() -> EscalationListResponse:
    """Critical notifications that failed permanently."""
    repo = current_domain.repository_for(EscalatedNotification)
    records = repo._dao.query.all().items
    return EscalationListResponse(
        escalations=[
            EscalationResponse(
                notification_id=str(e.notification_id),
                notification_type=e.notification_type,
                channel=e.channel,
                recipient_id=str(e.recipient_id) if e.recipient_id else None,
                recipient_email=e.recipient_email,
                recipient_phone=e.recipient_phone,
                error_code=e.error_code,
                error_message=e.error_message,
                attempts=e.attempts,
                escalated_at=e.escalated_at,
            )
            for e in records
        ]
    )


# ---------------------------------------------------------------------------
# Maintenance: periodic background job endpoint
# ---------------------------------------------------------------------------
@router.post("/maintenance/process-retries", response_model=MaintenanceResponse)
async def process_retries(
    body: ProcessRetriesRequest | None = None,
    authorization: str = Header(default=""),
    pipeline: NotificationPipeline = Depends(get_pipeline),
) -> MaintenanceResponse:
    """Run the retry sweep and the retention purge.

    Designed to be called periodically by an external scheduler (cron).
    """
    secret = pipeline.settings.cron_secret
    if secret is None and os.getenv("PROTEAN_ENV") == "production":
        raise HTTPException(status_code=401, detail="Maintenance endpoint is not configured")
    if secret is not None and authorization != f"Bearer {secret}":
        raise HTTPException(status_code=401, detail="Unauthorized")

    summary = await pipeline.run_maintenance(as_of=body.as_of if body else None)
    return MaintenanceResponse(**summary)


# ---------------------------------------------------------------------------
# Provider webhooks: delivery receipts
# ---------------------------------------------------------------------------
@router.post("/webhooks/twilio", response_model=StatusResponse)
async def twilio_status_callback(
    request: Request,
    x_twilio_signature: str = Header(default=""),
    pipeline: NotificationPipeline = Depends(get_pipeline),
) -> StatusResponse:
    """Twilio message status callback (form encoded)."""
    form = await request.form()
    params = {key: value for key, value in form.items()}

    if os.getenv("PROTEAN_ENV") == "production":
        validator = RequestValidator(pipeline.settings.twilio_auth_token or "")
        url = pipeline.settings.sms_status_callback or str(request.url)
        if not validator.validate(url, params, x_twilio_signature):
            raise HTTPException(status_code=401, detail="Invalid webhook signature")

    message_sid = params.get("MessageSid") or params.get("SmsSid")
    status = params.get("MessageStatus") or params.get("SmsStatus")
    if not message_sid or not status:
        raise HTTPException(status_code=400, detail="MessageSid and MessageStatus are required")

    current_domain.process(
        RecordDeliveryReceipt(
            provider=ReceiptProvider.TWILIO.value,
            provider_id=message_sid,
            event_type=status,
            error_code=params.get("ErrorCode") or None,
            error_message=params.get("ErrorMessage") or None,
        ),
        asynchronous=False,
    )
    return StatusResponse()


@router.post("/webhooks/resend", response_model=StatusResponse)
async def resend_webhook(request: Request) -> StatusResponse:
    """Resend email event webhook (JSON)."""
    payload = await request.json()
    event_type = payload.get("type")
    email_id = (payload.get("data") or {}).get("email_id")
    if not event_type or not email_id:
        raise HTTPException(status_code=400, detail="type and data.email_id are required")

    bounce = (payload.get("data") or {}).get("bounce") or {}
    current_domain.process(
        RecordDeliveryReceipt(
            provider=ReceiptProvider.RESEND.value,
            provider_id=email_id,
            event_type=event_type,
            error_message=bounce.get("message"),
        ),
        asynchronous=False,
    )
    return StatusResponse()


# ---------------------------------------------------------------------------
# Single notification
# ---------------------------------------------------------------------------
@router.get("/{notification_id}", response_model=NotificationResponse)
async def get_notification(
    notification_id: str, pipeline: NotificationPipeline = Depends(get_pipeline)
) -> NotificationResponse:
    n = pipeline.store.get(notification_id)
    return NotificationResponse(
        notification_id=str(n.id),
        notification_type=n.notification_type,
        channel=n.channel,
        priority=n.priority,
        status=n.status,
        template_id=n.template_id,
        recipient_id=str(n.recipient_id) if n.recipient_id else None,
        provider_id=n.provider_id,
        error_code=n.error_code,
        error_message=n.error_message,
        retry_count=n.retry_count,
        max_retries=n.max_retries,
        next_retry_at=n.next_retry_at,
        escalated=bool(n.escalated),
        context_type=n.context_type,
        context_id=n.context_id,
        scheduled_at=n.scheduled_at,
        sent_at=n.sent_at,
        delivered_at=n.delivered_at,
        failed_at=n.failed_at,
        created_at=n.created_at,
    )


@router.get("/{notification_id}/retries", response_model=RetryListResponse)
async def get_notification_retries(
    notification_id: str, pipeline: NotificationPipeline = Depends(get_pipeline)
) -> RetryListResponse:
    pipeline.store.get(notification_id)
    retries = pipeline.store.retries_for(notification_id)
    return RetryListResponse(
        notification_id=notification_id,
        retries=[
            RetryResponse(
                attempt_number=r.attempt_number,
                status=r.status,
                error_message=r.error_message,
                provider_id=r.provider_id,
                scheduled_for=r.scheduled_for,
                attempted_at=r.attempted_at,
            )
            for r in retries
        ],
    )


@router.put("/{notification_id}/cancel", response_model=StatusResponse)
async def cancel_notification(notification_id: str, body: CancelNotificationRequest) -> StatusResponse:
    """Cancel a pending or queued notification."""
    command = CancelNotification(
        notification_id=notification_id,
        reason=body.reason,
    )
    current_domain.process(command, asynchronous=False)
    return StatusResponse()
