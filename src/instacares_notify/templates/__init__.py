"""Template registry — maps NotificationType to template classes.

Each template knows its template id and default priority, and renders the
email subject and body, the HTML body and a shorter SMS body from the
caller's context data. Rendering is pure: the same context always produces
the same content.
"""

from instacares_notify.notification.notification import NotificationType
from instacares_notify.templates.account import (
    AccountApprovedTemplate,
    SecurityAlertTemplate,
    VerificationCodeTemplate,
)
from instacares_notify.templates.base import RenderedContent
from instacares_notify.templates.booking import (
    BookingCancelledTemplate,
    BookingConfirmationTemplate,
    BookingReminderTemplate,
    BookingRequestTemplate,
    ReviewRequestTemplate,
)
from instacares_notify.templates.payment import PaymentFailedTemplate, PaymentReceivedTemplate
from instacares_notify.templates.platform import MarketingUpdateTemplate, SystemMaintenanceTemplate
from instacares_notify.templates.safety import (
    DropoffConfirmationTemplate,
    EmergencyAlertTemplate,
    PickupReminderTemplate,
)

TEMPLATE_REGISTRY: dict[str, type] = {
    NotificationType.BOOKING_REQUEST.value: BookingRequestTemplate,
    NotificationType.BOOKING_CONFIRMATION.value: BookingConfirmationTemplate,
    NotificationType.BOOKING_CANCELLED.value: BookingCancelledTemplate,
    NotificationType.BOOKING_REMINDER.value: BookingReminderTemplate,
    NotificationType.PICKUP_REMINDER.value: PickupReminderTemplate,
    NotificationType.DROPOFF_CONFIRMATION.value: DropoffConfirmationTemplate,
    NotificationType.PAYMENT_RECEIVED.value: PaymentReceivedTemplate,
    NotificationType.PAYMENT_FAILED.value: PaymentFailedTemplate,
    NotificationType.VERIFICATION_CODE.value: VerificationCodeTemplate,
    NotificationType.ACCOUNT_APPROVED.value: AccountApprovedTemplate,
    NotificationType.SECURITY_ALERT.value: SecurityAlertTemplate,
    NotificationType.EMERGENCY_ALERT.value: EmergencyAlertTemplate,
    NotificationType.REVIEW_REQUEST.value: ReviewRequestTemplate,
    NotificationType.SYSTEM_MAINTENANCE.value: SystemMaintenanceTemplate,
    NotificationType.MARKETING_UPDATE.value: MarketingUpdateTemplate,
}


class UnknownNotificationType(ValueError):
    pass


def get_template(notification_type: str):
    """Look up a template class by notification type string."""
    if isinstance(notification_type, NotificationType):
        notification_type = notification_type.value
    template_cls = TEMPLATE_REGISTRY.get(notification_type)
    if template_cls is None:
        raise UnknownNotificationType(f"No template registered for notification type: {notification_type}")
    return template_cls


def resolve(notification_type: str, context: dict | None = None) -> RenderedContent:
    """Render the content for a notification type from its context data."""
    return get_template(notification_type).render(context or {})


__all__ = ["TEMPLATE_REGISTRY", "RenderedContent", "UnknownNotificationType", "get_template", "resolve"]
