"""Ready-made sends for the common booking and child-safety notifications.

Each helper renders its template and makes a single dispatcher call over
both email and SMS.
"""

from instacares_notify.dispatch.results import NotificationResult, UnifiedNotificationOptions
from instacares_notify.notification.notification import (
    NotificationChannel,
    NotificationPriority,
    NotificationType,
)
from instacares_notify.templates import resolve

BOTH_CHANNELS = [NotificationChannel.EMAIL.value, NotificationChannel.SMS.value]


def _options(notification_type, context, email, phone, user_id=None, name=None, **overrides):
    rendered = resolve(notification_type, context)
    options = UnifiedNotificationOptions(
        notification_type=notification_type.value,
        content=rendered.content,
        template_id=rendered.template_id,
        channels=list(BOTH_CHANNELS),
        user_id=user_id,
        email=email,
        phone=phone,
        name=name,
        subject=rendered.subject,
        html_content=rendered.html_content,
        sms_content=rendered.sms_content,
        priority=rendered.priority,
    )
    for key, value in overrides.items():
        setattr(options, key, value)
    return options


async def send_booking_confirmation(dispatcher, email, phone, booking: dict, user_id=None) -> NotificationResult:
    """Confirm a booking to the parent.

    `booking` carries id, caregiver_name, parent_name, date, time, duration
    and total_amount.
    """
    context = {**booking, "booking_id": booking.get("id")}
    options = _options(
        NotificationType.BOOKING_CONFIRMATION,
        context,
        email,
        phone,
        user_id=user_id,
        name=booking.get("parent_name"),
        context_type="booking",
        context_id=booking.get("id"),
    )
    return await dispatcher.send(options)


async def send_critical_pickup_reminder(dispatcher, email, phone, details: dict, user_id=None) -> NotificationResult:
    """Urgent reminder that a child is waiting to be picked up."""
    options = _options(
        NotificationType.PICKUP_REMINDER,
        details,
        email,
        phone,
        user_id=user_id,
        name=details.get("parent_name"),
        priority=NotificationPriority.CRITICAL.value,
        max_retries=5,
    )
    return await dispatcher.send(options)


async def send_emergency_alert(dispatcher, email, phone, details: dict, user_id=None) -> NotificationResult:
    options = _options(
        NotificationType.EMERGENCY_ALERT,
        details,
        email,
        phone,
        user_id=user_id,
        priority=NotificationPriority.CRITICAL.value,
        max_retries=10,
    )
    return await dispatcher.send(options)


async def send_dropoff_confirmation(dispatcher, email, phone, details: dict, user_id=None) -> NotificationResult:
    """Tell the parent their child was dropped off, with an SMS opt-out line."""
    options = _options(
        NotificationType.DROPOFF_CONFIRMATION,
        details,
        email,
        phone,
        user_id=user_id,
        priority=NotificationPriority.HIGH.value,
    )
    return await dispatcher.send(options)
