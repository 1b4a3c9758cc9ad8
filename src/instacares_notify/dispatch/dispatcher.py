"""Unified dispatcher — one logical notification over email and SMS.

For each requested channel the dispatcher checks contact info, the user's
channel preferences, SMS content policy and the SMS rate limit. Channels
that pass get a PENDING record before their provider is called, and are then
delivered concurrently. Every channel settles into one tagged outcome, and
the outcomes are reduced into a NotificationResult.

The fan-out is shielded: a caller that stops waiting does not cancel
provider calls already in flight, and their outcomes are still recorded.
"""

import asyncio
from dataclasses import replace
from datetime import UTC, datetime

from protean.exceptions import ValidationError

from instacares_notify.channel.senders import ContentPolicyViolation, InvalidPhoneNumber
from instacares_notify.dispatch.results import (
    Deferred,
    Delivered,
    Failed,
    FailureKind,
    NotificationResult,
    Skipped,
    UnifiedNotificationOptions,
    aggregate_outcomes,
)
from instacares_notify.notification.notification import (
    DEFAULT_MAX_RETRIES,
    NotificationChannel,
    NotificationEvent,
    NotificationPriority,
    NotificationStatus,
    NotificationType,
    max_retries_allowed,
)
from instacares_notify.notification.store import as_aware
from instacares_notify.preference.store import ALL_CHANNELS_ENABLED
from instacares_notify.utils.logging import get_logger

logger = get_logger(__name__)

_CONTACT_FIELDS = {
    NotificationChannel.EMAIL.value: ("email", "Email address is required"),
    NotificationChannel.SMS.value: ("phone", "Phone number is required"),
}
_NOTIFICATION_TYPES = {t.value for t in NotificationType}
_PRIORITIES = {p.value for p in NotificationPriority}


def _first_message(exc: ValidationError) -> str:
    for field_name, messages in exc.messages.items():
        if messages:
            return f"{field_name}: {messages[0]}"
    return "Invalid notification"


def _with_defaults(options: UnifiedNotificationOptions) -> UnifiedNotificationOptions:
    """Fill optional fields the caller passed as None."""
    defaults = {}
    if options.priority is None:
        defaults["priority"] = NotificationPriority.NORMAL.value
    if options.max_retries is None:
        defaults["max_retries"] = DEFAULT_MAX_RETRIES
    return replace(options, **defaults) if defaults else options


class UnifiedDispatcher:
    def __init__(self, store, senders, rate_limiter, retry_scheduler, preferences=None, clock=None):
        self.store = store
        self.senders = senders
        self.rate_limiter = rate_limiter
        self.retry_scheduler = retry_scheduler
        self.preferences = preferences
        self._clock = clock or (lambda: datetime.now(UTC))
        self._in_flight: set[asyncio.Task] = set()

    # -------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------
    async def send(self, options: UnifiedNotificationOptions) -> NotificationResult:
        """Send a notification over every requested channel. Never raises."""
        options = _with_defaults(options)
        problem = self._validate(options)
        if problem:
            logger.warning("Notification rejected", reason=problem, notification_type=options.notification_type)
            return NotificationResult.rejected(problem)

        try:
            channel_prefs = self._load_preferences(options.user_id)
            channels = list(dict.fromkeys(options.channels))

            tasks = []
            for channel in channels:
                task = asyncio.ensure_future(self._dispatch_channel(channel, options, channel_prefs))
                self._in_flight.add(task)
                task.add_done_callback(self._in_flight.discard)
                tasks.append(task)

            settled = await asyncio.shield(asyncio.gather(*tasks, return_exceptions=True))
        except Exception as exc:
            logger.exception("Notification dispatch failed", error=str(exc))
            return NotificationResult(success=False, errors=[f"Dispatch error: {exc}"])

        outcomes = []
        for channel, item in zip(channels, settled, strict=True):
            if isinstance(item, BaseException):
                logger.error("Channel dispatch raised", channel=channel, error=str(item))
                outcomes.append(Failed(channel=channel, error=str(item) or "Unexpected error"))
            else:
                outcomes.append(item)

        result = aggregate_outcomes(outcomes)
        logger.info(
            "Notification dispatched",
            notification_type=options.notification_type,
            success=result.success,
            partial_success=result.partial_success,
            sent=len(result.notification_ids),
            scheduled=len(result.scheduled_ids),
            errors=len(result.errors),
        )
        return result

    async def drain(self):
        """Wait for provider calls still in flight from abandoned requests."""
        if self._in_flight:
            await asyncio.gather(*self._in_flight, return_exceptions=True)

    # -------------------------------------------------------------------
    # Validation & preferences
    # -------------------------------------------------------------------
    def _validate(self, options) -> str | None:
        if not options.content:
            return "Content is required"
        if not options.notification_type:
            return "Notification type is required"
        if not options.template_id:
            return "Template id is required"
        if not options.channels:
            return "At least one channel is required"
        unknown = [c for c in options.channels if c not in _CONTACT_FIELDS]
        if unknown:
            return f"Unknown channel: {', '.join(unknown)}"
        if options.notification_type not in _NOTIFICATION_TYPES:
            return f"Unknown notification type: {options.notification_type}"
        if options.priority not in _PRIORITIES:
            return f"Unknown priority: {options.priority}"
        limit = max_retries_allowed(options.priority)
        if not isinstance(options.max_retries, int) or not 1 <= options.max_retries <= limit:
            return f"max_retries must be between 1 and {limit} for {options.priority} priority"
        return None

    def _load_preferences(self, user_id):
        if not user_id or self.preferences is None:
            return ALL_CHANNELS_ENABLED
        try:
            return self.preferences.get(user_id)
        except Exception as exc:
            logger.warning("Preference lookup failed, using defaults", user_id=str(user_id), error=str(exc))
            return ALL_CHANNELS_ENABLED

    # -------------------------------------------------------------------
    # Per-channel pipeline
    # -------------------------------------------------------------------
    async def _dispatch_channel(self, channel, options, channel_prefs):
        field_name, missing_message = _CONTACT_FIELDS[channel]
        contact = getattr(options, field_name)
        if not contact:
            return Failed(channel=channel, error=missing_message, kind=FailureKind.VALIDATION)

        if not channel_prefs.allows(channel):
            logger.info("Channel disabled by user preference", channel=channel, user_id=str(options.user_id))
            return Skipped(channel=channel, reason="Disabled by user preference")

        is_sms = channel == NotificationChannel.SMS.value
        body = options.body_for(channel)
        now = self._clock()
        scheduled_at = as_aware(options.scheduled_at)
        deferred = scheduled_at is not None and scheduled_at > now

        normalized = None
        if is_sms:
            try:
                normalized = self.senders[channel].prepare(contact, body, options.notification_type)
            except (InvalidPhoneNumber, ContentPolicyViolation) as exc:
                logger.warning("SMS rejected before send", error=str(exc))
                return Failed(channel=channel, error=str(exc), kind=FailureKind.VALIDATION)

        try:
            event = NotificationEvent.create(
                notification_type=options.notification_type,
                channel=channel,
                template_id=options.template_id,
                content=body,
                priority=options.priority,
                recipient_id=options.user_id,
                recipient_email=None if is_sms else options.email,
                recipient_phone=normalized,
                recipient_name=options.name,
                subject=None if is_sms else options.subject,
                html_content=None if is_sms else options.html_content,
                context_type=options.context_type,
                context_id=options.context_id,
                scheduled_at=scheduled_at,
                max_retries=options.max_retries,
                created_at=now,
            )
        except ValidationError as exc:
            return Failed(channel=channel, error=_first_message(exc), kind=FailureKind.VALIDATION)

        # The rate-limit slot is spent only for a record that will be stored
        if is_sms and not deferred:
            decision = await self.rate_limiter.check(normalized, options.priority)
            if not decision.allowed:
                return Failed(
                    channel=channel,
                    error="Rate limit exceeded",
                    kind=FailureKind.RATE_LIMITED,
                    retry_after_seconds=decision.retry_after_seconds,
                )

        self.store.add(event)

        if deferred:
            logger.info(
                "Notification scheduled",
                notification_id=str(event.id),
                channel=channel,
                scheduled_at=scheduled_at.isoformat(),
            )
            return Deferred(channel=channel, notification_id=str(event.id), scheduled_at=scheduled_at)

        result = await self.senders[channel].send(event)
        recorded = self.retry_scheduler.record_outcome(event, result)

        if recorded.status == NotificationStatus.SENT.value:
            return Delivered(channel=channel, notification_id=str(recorded.id), provider_id=recorded.provider_id)
        return Failed(
            channel=channel,
            error=result.error or recorded.error_message or "Delivery failed",
            kind=FailureKind.DELIVERY,
            notification_id=str(recorded.id),
            retry_scheduled=recorded.status == NotificationStatus.QUEUED.value,
        )
