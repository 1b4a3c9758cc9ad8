"""Domain events for the NotificationEvent aggregate."""

from protean.fields import Boolean, DateTime, Identifier, Integer, String

from instacares_notify.domain import notify


@notify.event(part_of="NotificationEvent")
class NotificationCreated:
    """A notification record was created ahead of its first delivery attempt."""

    __version__ = 1

    notification_id: Identifier(required=True)
    notification_type: String(required=True)
    channel: String(required=True)
    priority: String(required=True)
    template_id: String(required=True)
    recipient_id: Identifier()
    context_type: String()
    context_id: String()
    scheduled_at: DateTime()
    deferred: Boolean(default=False)
    created_at: DateTime(required=True)


@notify.event(part_of="NotificationEvent")
class NotificationSent:
    """The provider accepted the notification."""

    __version__ = 1

    notification_id: Identifier(required=True)
    channel: String(required=True)
    provider_id: String()
    attempt: Integer(required=True)
    sent_at: DateTime(required=True)


@notify.event(part_of="NotificationEvent")
class NotificationFailed:
    """A delivery attempt failed, either at send time or via a provider receipt."""

    __version__ = 1

    notification_id: Identifier(required=True)
    channel: String(required=True)
    error_code: String()
    error_message: String(max_length=500)
    attempt: Integer(required=True)
    max_retries: Integer(required=True)
    failed_at: DateTime(required=True)


@notify.event(part_of="NotificationEvent")
class NotificationRetryScheduled:
    """A failed notification was queued for another attempt."""

    __version__ = 1

    notification_id: Identifier(required=True)
    channel: String(required=True)
    retry_count: Integer(required=True)
    next_retry_at: DateTime(required=True)
    scheduled_at: DateTime(required=True)


@notify.event(part_of="NotificationEvent")
class NotificationRequeued:
    """A claimed notification was put back in the queue without using up an attempt."""

    __version__ = 1

    notification_id: Identifier(required=True)
    channel: String(required=True)
    reason: String(required=True, max_length=500)
    next_retry_at: DateTime(required=True)


@notify.event(part_of="NotificationEvent")
class NotificationClaimed:
    """The retry sweep picked up a queued notification for delivery."""

    __version__ = 1

    notification_id: Identifier(required=True)
    channel: String(required=True)
    retry_count: Integer(required=True)
    claimed_at: DateTime(required=True)


@notify.event(part_of="NotificationEvent")
class NotificationDelivered:
    """The provider confirmed delivery to the recipient's device or inbox."""

    __version__ = 1

    notification_id: Identifier(required=True)
    channel: String(required=True)
    delivered_at: DateTime(required=True)


@notify.event(part_of="NotificationEvent")
class NotificationEscalated:
    """A critical notification failed for good and needs a human to follow up."""

    __version__ = 1

    notification_id: Identifier(required=True)
    notification_type: String(required=True)
    channel: String(required=True)
    recipient_id: Identifier()
    recipient_email: String()
    recipient_phone: String()
    error_code: String()
    error_message: String(max_length=500)
    attempts: Integer(required=True)
    escalated_at: DateTime(required=True)


@notify.event(part_of="NotificationEvent")
class NotificationCancelled:
    """A pending or queued notification was withdrawn before delivery."""

    __version__ = 1

    notification_id: Identifier(required=True)
    channel: String(required=True)
    reason: String(required=True, max_length=500)
    cancelled_at: DateTime(required=True)
