"""Payment templates."""

from instacares_notify.notification.notification import NotificationPriority, NotificationType
from instacares_notify.templates.base import RenderedContent, html_layout


class PaymentReceivedTemplate:
    notification_type = NotificationType.PAYMENT_RECEIVED.value
    template_id = "payment_received"
    default_priority = NotificationPriority.NORMAL.value

    @classmethod
    def render(cls, context: dict) -> RenderedContent:
        amount = context.get("amount", "0.00")
        booking_id = context.get("booking_id", "N/A")
        content = f"We received your payment of ${amount} for booking {booking_id}. Thank you!"
        return RenderedContent(
            template_id=cls.template_id,
            subject=f"Payment Received - ${amount}",
            content=content,
            html_content=html_layout("Payment Received", [content], {"Amount": f"${amount}", "Booking ID": booking_id}),
            sms_content=f"Instacares: Payment of ${amount} received for booking {booking_id}.",
            priority=cls.default_priority,
        )


class PaymentFailedTemplate:
    notification_type = NotificationType.PAYMENT_FAILED.value
    template_id = "payment_failed"
    default_priority = NotificationPriority.HIGH.value

    @classmethod
    def render(cls, context: dict) -> RenderedContent:
        amount = context.get("amount", "0.00")
        reason = context.get("reason", "Your card was declined")
        content = f"Your payment of ${amount} could not be processed: {reason}. Please update your payment method."
        return RenderedContent(
            template_id=cls.template_id,
            subject="Action Required: Payment Failed",
            content=content,
            html_content=html_layout("Payment Failed", [content]),
            sms_content=f"Instacares: Payment of ${amount} failed. Please update your payment method in your dashboard.",
            priority=cls.default_priority,
        )
