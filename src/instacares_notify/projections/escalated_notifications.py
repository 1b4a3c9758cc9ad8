"""EscalatedNotifications — critical notifications that failed for good and need a human."""

from protean.core.projector import on
from protean.fields import DateTime, Identifier, Integer, String
from protean.utils.globals import current_domain

from instacares_notify.domain import notify
from instacares_notify.notification.events import NotificationEscalated
from instacares_notify.notification.notification import NotificationEvent
from instacares_notify.utils.logging import get_logger

logger = get_logger(__name__)


@notify.projection
class EscalatedNotification:
    notification_id: Identifier(identifier=True, required=True)
    notification_type: String(required=True)
    channel: String(required=True)
    recipient_id: Identifier()
    recipient_email: String(max_length=254)
    recipient_phone: String(max_length=20)
    error_code: String(max_length=50)
    error_message: String(max_length=500)
    attempts: Integer(default=1)
    escalated_at: DateTime()


@notify.projector(projector_for=EscalatedNotification, aggregates=[NotificationEvent])
class EscalatedNotificationProjector:
    @on(NotificationEscalated)
    def on_notification_escalated(self, event):
        repo = current_domain.repository_for(EscalatedNotification)
        repo.add(
            EscalatedNotification(
                notification_id=event.notification_id,
                notification_type=event.notification_type,
                channel=event.channel,
                recipient_id=event.recipient_id,
                recipient_email=event.recipient_email,
                recipient_phone=event.recipient_phone,
                error_code=event.error_code,
                error_message=event.error_message,
                attempts=event.attempts,
                escalated_at=event.escalated_at,
            )
        )
        logger.info("Escalation recorded", notification_id=str(event.notification_id))
