"""Account templates — verification codes, approvals and security alerts."""

from instacares_notify.notification.notification import NotificationPriority, NotificationType
from instacares_notify.templates.base import RenderedContent, html_layout


class VerificationCodeTemplate:
    notification_type = NotificationType.VERIFICATION_CODE.value
    template_id = "verification_code"
    default_priority = NotificationPriority.HIGH.value

    @classmethod
    def render(cls, context: dict) -> RenderedContent:
        code = context.get("code", "")
        content = f"Your Instacares verification code is: {code}. Valid for 10 minutes."
        return RenderedContent(
            template_id=cls.template_id,
            subject="Your Instacares verification code",
            content=content,
            html_content=html_layout("Verification Code", [content]),
            sms_content=content,
            priority=cls.default_priority,
        )


class AccountApprovedTemplate:
    notification_type = NotificationType.ACCOUNT_APPROVED.value
    template_id = "account_approved"
    default_priority = NotificationPriority.NORMAL.value

    @classmethod
    def render(cls, context: dict) -> RenderedContent:
        name = context.get("name", "there")
        content = f"Hi {name}, your Instacares account has been approved. You can now start accepting bookings."
        return RenderedContent(
            template_id=cls.template_id,
            subject="Your Instacares account is approved",
            content=content,
            html_content=html_layout("Account Approved", [content]),
            sms_content="Instacares: Your account has been approved. Welcome aboard!",
            priority=cls.default_priority,
        )


class SecurityAlertTemplate:
    notification_type = NotificationType.SECURITY_ALERT.value
    template_id = "security_alert"
    default_priority = NotificationPriority.HIGH.value

    @classmethod
    def render(cls, context: dict) -> RenderedContent:
        activity = context.get("activity", "A new sign-in")
        when = context.get("occurred_at", "recently")
        content = (
            f"{activity} was detected on your Instacares account {when}. "
            "If this wasn't you, reset your password immediately."
        )
        return RenderedContent(
            template_id=cls.template_id,
            subject="Security alert for your Instacares account",
            content=content,
            html_content=html_layout("Security Alert", [content]),
            sms_content=f"Instacares security alert: {activity} detected. Not you? Reset your password now.",
            priority=cls.default_priority,
        )
