"""Platform-wide templates — maintenance windows and marketing updates."""

from instacares_notify.notification.notification import NotificationPriority, NotificationType
from instacares_notify.templates.base import RenderedContent, html_layout


class SystemMaintenanceTemplate:
    notification_type = NotificationType.SYSTEM_MAINTENANCE.value
    template_id = "system_maintenance"
    default_priority = NotificationPriority.LOW.value

    @classmethod
    def render(cls, context: dict) -> RenderedContent:
        starts_at = context.get("starts_at", "soon")
        duration = context.get("duration", "a short while")
        content = f"Instacares will be down for scheduled maintenance starting {starts_at} for {duration}."
        return RenderedContent(
            template_id=cls.template_id,
            subject="Scheduled maintenance",
            content=content,
            html_content=html_layout("Scheduled Maintenance", [content]),
            sms_content=f"Instacares: {content}",
            priority=cls.default_priority,
        )


class MarketingUpdateTemplate:
    notification_type = NotificationType.MARKETING_UPDATE.value
    template_id = "marketing_update"
    default_priority = NotificationPriority.LOW.value

    @classmethod
    def render(cls, context: dict) -> RenderedContent:
        headline = context.get("headline", "What's new at Instacares")
        message = context.get("message", "")
        content = f"{headline}. {message}".strip()
        return RenderedContent(
            template_id=cls.template_id,
            subject=headline,
            content=content,
            html_content=html_layout(headline, [message] if message else []),
            sms_content=f"Instacares: {content} Reply STOP to opt out.",
            priority=cls.default_priority,
        )
