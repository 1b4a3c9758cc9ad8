"""NotificationEvent aggregate — one delivery of one notification over one channel.

A logical notification sent over Email and SMS produces two NotificationEvent
records. Each record is the system of record for its delivery: it is created
before the provider is called, updated with the provider's answer, queued
again by the retry scheduler after a transient failure, and confirmed or
failed later by provider delivery receipts.

State Machine:
    PENDING → SENT → DELIVERED
    PENDING → SENT → FAILED               (provider receipt)
    PENDING → FAILED → QUEUED → PENDING   (retry, claimed by the sweep)
    PENDING → QUEUED                      (requeued without using an attempt)
    PENDING | QUEUED → CANCELLED
"""

from datetime import UTC, datetime
from enum import Enum

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Identifier, Integer, String, Text

from instacares_notify.domain import notify
from instacares_notify.notification.events import (
    NotificationCancelled,
    NotificationClaimed,
    NotificationCreated,
    NotificationDelivered,
    NotificationEscalated,
    NotificationFailed,
    NotificationRequeued,
    NotificationRetryScheduled,
    NotificationSent,
)

DEFAULT_MAX_RETRIES = 3
MAX_RETRIES_LIMIT = 10
MAX_RETRIES_NON_CRITICAL = 5

ERROR_MESSAGE_MAX_LENGTH = 500


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class NotificationType(Enum):
    BOOKING_REQUEST = "BOOKING_REQUEST"
    BOOKING_CONFIRMATION = "BOOKING_CONFIRMATION"
    BOOKING_CANCELLED = "BOOKING_CANCELLED"
    BOOKING_REMINDER = "BOOKING_REMINDER"
    PICKUP_REMINDER = "PICKUP_REMINDER"
    DROPOFF_CONFIRMATION = "DROPOFF_CONFIRMATION"
    PAYMENT_RECEIVED = "PAYMENT_RECEIVED"
    PAYMENT_FAILED = "PAYMENT_FAILED"
    VERIFICATION_CODE = "VERIFICATION_CODE"
    ACCOUNT_APPROVED = "ACCOUNT_APPROVED"
    SECURITY_ALERT = "SECURITY_ALERT"
    EMERGENCY_ALERT = "EMERGENCY_ALERT"
    REVIEW_REQUEST = "REVIEW_REQUEST"
    SYSTEM_MAINTENANCE = "SYSTEM_MAINTENANCE"
    MARKETING_UPDATE = "MARKETING_UPDATE"


class NotificationChannel(Enum):
    EMAIL = "EMAIL"
    SMS = "SMS"


class NotificationPriority(Enum):
    LOW = "LOW"
    NORMAL = "NORMAL"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


class NotificationStatus(Enum):
    PENDING = "PENDING"
    QUEUED = "QUEUED"
    SENT = "SENT"
    DELIVERED = "DELIVERED"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"


TERMINAL_STATUSES = frozenset(
    {
        NotificationStatus.DELIVERED,
        NotificationStatus.FAILED,
        NotificationStatus.CANCELLED,
    }
)


# ---------------------------------------------------------------------------
# State Machine
# ---------------------------------------------------------------------------
_VALID_TRANSITIONS = {
    NotificationStatus.PENDING: {
        NotificationStatus.SENT,
        NotificationStatus.FAILED,
        NotificationStatus.QUEUED,  # Requeued by the sweep
        NotificationStatus.CANCELLED,
    },
    NotificationStatus.QUEUED: {
        NotificationStatus.PENDING,  # Claimed by the sweep
        NotificationStatus.CANCELLED,
    },
    NotificationStatus.SENT: {
        NotificationStatus.DELIVERED,
        NotificationStatus.FAILED,  # Undelivered / bounced receipt
    },
    NotificationStatus.FAILED: {
        NotificationStatus.QUEUED,  # Via retry
    },
    NotificationStatus.DELIVERED: set(),  # Terminal
    NotificationStatus.CANCELLED: set(),  # Terminal
}


def _truncate(message: str | None) -> str | None:
    if message is None:
        return None
    return message[:ERROR_MESSAGE_MAX_LENGTH]


def max_retries_allowed(priority: str) -> int:
    """Highest max_retries accepted for a priority; only critical alerts may go past 5."""
    if priority == NotificationPriority.CRITICAL.value:
        return MAX_RETRIES_LIMIT
    return MAX_RETRIES_NON_CRITICAL


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@notify.aggregate
class NotificationEvent:
    """A single notification delivery over one channel, with its attempt history."""

    # What
    notification_type: String(choices=NotificationType, required=True)
    channel: String(choices=NotificationChannel, required=True)
    template_id: String(required=True, max_length=100)
    priority: String(choices=NotificationPriority, default=NotificationPriority.NORMAL.value)

    # Who
    recipient_id: Identifier()
    recipient_email: String(max_length=254)
    recipient_phone: String(max_length=20)
    recipient_name: String(max_length=200)

    # Content
    subject: String(max_length=500)
    content: Text(required=True)
    html_content: Text()

    # Status
    status: String(choices=NotificationStatus, default=NotificationStatus.PENDING.value)
    provider_id: String(max_length=100)
    error_code: String(max_length=50)
    error_message: String(max_length=ERROR_MESSAGE_MAX_LENGTH)
    cancel_reason: String(max_length=500)
    escalated: Boolean(default=False)

    # Retry
    retry_count: Integer(default=0, min_value=0)
    max_retries: Integer(default=DEFAULT_MAX_RETRIES, min_value=1, max_value=MAX_RETRIES_LIMIT)
    next_retry_at: DateTime()

    # Business context (e.g. "booking", booking id)
    context_type: String(max_length=50)
    context_id: String(max_length=100)

    # Timestamps
    scheduled_at: DateTime()
    sent_at: DateTime()
    delivered_at: DateTime()
    failed_at: DateTime()
    created_at: DateTime()
    updated_at: DateTime()

    @invariant.post
    def retry_count_cannot_exceed_max_retries(self):
        if self.retry_count > self.max_retries:
            raise ValidationError({"retry_count": ["Retry count cannot exceed max retries"]})

    @invariant.post
    def max_retries_within_priority_limit(self):
        if self.max_retries > max_retries_allowed(self.priority):
            raise ValidationError(
                {"max_retries": [f"At most {max_retries_allowed(self.priority)} attempts allowed for {self.priority}"]}
            )

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def create(
        cls,
        notification_type,
        channel,
        template_id,
        content,
        priority=NotificationPriority.NORMAL.value,
        recipient_id=None,
        recipient_email=None,
        recipient_phone=None,
        recipient_name=None,
        subject=None,
        html_content=None,
        context_type=None,
        context_id=None,
        scheduled_at=None,
        max_retries=DEFAULT_MAX_RETRIES,
        created_at=None,
    ):
        """Create a new notification record.

        The record starts in PENDING, ready for an immediate attempt. When
        `scheduled_at` lies in the future it starts in QUEUED instead and the
        retry sweep delivers it once due.
        """
        now = created_at or datetime.now(UTC)
        deferred = scheduled_at is not None and scheduled_at > now

        notification = cls(
            notification_type=notification_type,
            channel=channel,
            template_id=template_id,
            priority=priority,
            recipient_id=recipient_id,
            recipient_email=recipient_email,
            recipient_phone=recipient_phone,
            recipient_name=recipient_name,
            subject=subject,
            content=content,
            html_content=html_content,
            context_type=context_type,
            context_id=context_id,
            status=NotificationStatus.QUEUED.value if deferred else NotificationStatus.PENDING.value,
            scheduled_at=scheduled_at,
            next_retry_at=scheduled_at if deferred else None,
            retry_count=0,
            max_retries=max_retries,
            escalated=False,
            created_at=now,
            updated_at=now,
        )

        notification.raise_(
            NotificationCreated(
                notification_id=str(notification.id),
                notification_type=notification_type,
                channel=channel,
                priority=priority,
                template_id=template_id,
                recipient_id=str(recipient_id) if recipient_id else None,
                context_type=context_type,
                context_id=context_id,
                scheduled_at=scheduled_at,
                deferred=deferred,
                created_at=now,
            )
        )

        return notification

    # -------------------------------------------------------------------
    # Query helpers
    # -------------------------------------------------------------------
    @property
    def attempt_count(self) -> int:
        """Attempts made or in flight; the initial send counts as attempt 1."""
        return self.retry_count + 1

    @property
    def has_attempts_remaining(self) -> bool:
        return self.attempt_count < self.max_retries

    @property
    def is_critical(self) -> bool:
        return self.priority == NotificationPriority.CRITICAL.value

    # -------------------------------------------------------------------
    # State transitions
    # -------------------------------------------------------------------
    def _assert_can_transition(self, target_status):
        """Validate state machine transition."""
        current = NotificationStatus(self.status)
        if target_status not in _VALID_TRANSITIONS.get(current, set()):
            raise ValidationError({"status": [f"Cannot transition from {current.value} to {target_status.value}"]})

    def mark_sent(self, provider_id=None, sent_at=None):
        """Record that the provider accepted the notification."""
        self._assert_can_transition(NotificationStatus.SENT)

        now = sent_at or datetime.now(UTC)
        self.status = NotificationStatus.SENT.value
        self.provider_id = provider_id
        self.error_code = None
        self.error_message = None
        self.sent_at = now
        self.updated_at = now

        self.raise_(
            NotificationSent(
                notification_id=str(self.id),
                channel=self.channel,
                provider_id=provider_id,
                attempt=self.attempt_count,
                sent_at=now,
            )
        )

    def mark_failed(self, error_message, error_code=None, failed_at=None):
        """Record a failed attempt, or a provider receipt reporting non-delivery."""
        self._assert_can_transition(NotificationStatus.FAILED)

        now = failed_at or datetime.now(UTC)
        self.status = NotificationStatus.FAILED.value
        self.error_code = error_code
        self.error_message = _truncate(error_message)
        self.failed_at = now
        self.updated_at = now

        self.raise_(
            NotificationFailed(
                notification_id=str(self.id),
                channel=self.channel,
                error_code=error_code,
                error_message=self.error_message,
                attempt=self.attempt_count,
                max_retries=self.max_retries,
                failed_at=now,
            )
        )

    def schedule_retry(self, next_retry_at, scheduled_at=None):
        """Queue a failed notification for its next attempt."""
        self._assert_can_transition(NotificationStatus.QUEUED)
        if not self.has_attempts_remaining:
            raise ValidationError({"retry_count": ["Maximum retry attempts exceeded"]})

        now = scheduled_at or datetime.now(UTC)
        self.status = NotificationStatus.QUEUED.value
        self.retry_count = self.retry_count + 1
        self.next_retry_at = next_retry_at
        self.updated_at = now

        self.raise_(
            NotificationRetryScheduled(
                notification_id=str(self.id),
                channel=self.channel,
                retry_count=self.retry_count,
                next_retry_at=next_retry_at,
                scheduled_at=now,
            )
        )

    def claim(self, claimed_at=None):
        """Take a queued notification for delivery; it cannot be claimed twice."""
        self._assert_can_transition(NotificationStatus.PENDING)

        now = claimed_at or datetime.now(UTC)
        self.status = NotificationStatus.PENDING.value
        self.next_retry_at = None
        self.updated_at = now

        self.raise_(
            NotificationClaimed(
                notification_id=str(self.id),
                channel=self.channel,
                retry_count=self.retry_count,
                claimed_at=now,
            )
        )

    def requeue(self, next_retry_at, reason):
        """Put a claimed notification back in the queue without using an attempt."""
        if NotificationStatus(self.status) != NotificationStatus.PENDING:
            raise ValidationError({"status": ["Only pending notifications can be requeued"]})

        self.status = NotificationStatus.QUEUED.value
        self.next_retry_at = next_retry_at
        self.updated_at = datetime.now(UTC)

        self.raise_(
            NotificationRequeued(
                notification_id=str(self.id),
                channel=self.channel,
                reason=reason,
                next_retry_at=next_retry_at,
            )
        )

    def mark_delivered(self, delivered_at=None):
        """Record the provider's confirmation that the recipient received it."""
        self._assert_can_transition(NotificationStatus.DELIVERED)

        now = delivered_at or datetime.now(UTC)
        self.status = NotificationStatus.DELIVERED.value
        self.delivered_at = now
        self.updated_at = now

        self.raise_(
            NotificationDelivered(
                notification_id=str(self.id),
                channel=self.channel,
                delivered_at=now,
            )
        )

    def escalate(self, escalated_at=None):
        """Flag a critical notification that failed for good."""
        if NotificationStatus(self.status) != NotificationStatus.FAILED:
            raise ValidationError({"status": ["Only failed notifications can be escalated"]})
        if not self.is_critical:
            raise ValidationError({"priority": ["Only critical notifications are escalated"]})
        if self.escalated:
            return

        now = escalated_at or datetime.now(UTC)
        self.escalated = True
        self.updated_at = now

        self.raise_(
            NotificationEscalated(
                notification_id=str(self.id),
                notification_type=self.notification_type,
                channel=self.channel,
                recipient_id=str(self.recipient_id) if self.recipient_id else None,
                recipient_email=self.recipient_email,
                recipient_phone=self.recipient_phone,
                error_code=self.error_code,
                error_message=self.error_message,
                attempts=self.attempt_count,
                escalated_at=now,
            )
        )

    def cancel(self, reason, cancelled_at=None):
        """Withdraw a notification that has not been handed to a provider yet."""
        self._assert_can_transition(NotificationStatus.CANCELLED)

        now = cancelled_at or datetime.now(UTC)
        self.status = NotificationStatus.CANCELLED.value
        self.cancel_reason = reason
        self.next_retry_at = None
        self.updated_at = now

        self.raise_(
            NotificationCancelled(
                notification_id=str(self.id),
                channel=self.channel,
                reason=reason,
                cancelled_at=now,
            )
        )
