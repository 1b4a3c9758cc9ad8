"""RecordDeliveryReceipt command + handler — apply provider delivery receipts.

Twilio posts message status callbacks and Resend posts email webhooks. Both
are reduced to a provider name, the provider message id and an event type,
then matched to the notification record by its provider id.

Receipt mapping:
    twilio  delivered              → DELIVERED
    twilio  failed | undelivered   → FAILED (terminal, no retry)
    resend  email.delivered        → DELIVERED
    resend  email.bounced | email.failed → FAILED (terminal, no retry)
Everything else (queued, sent, opened, clicked...) leaves the record as is.
"""

from datetime import UTC, datetime
from enum import Enum

from protean.fields import String
from protean.utils.globals import current_domain
from protean.utils.mixins import handle

from instacares_notify.domain import notify
from instacares_notify.notification.notification import NotificationEvent, NotificationStatus
from instacares_notify.utils.logging import get_logger

logger = get_logger(__name__)


class ReceiptProvider(Enum):
    TWILIO = "twilio"
    RESEND = "resend"


class ReceiptOutcome(Enum):
    DELIVERED = "DELIVERED"
    FAILED = "FAILED"


_RECEIPT_OUTCOMES = {
    ReceiptProvider.TWILIO.value: {
        "delivered": ReceiptOutcome.DELIVERED,
        "failed": ReceiptOutcome.FAILED,
        "undelivered": ReceiptOutcome.FAILED,
    },
    ReceiptProvider.RESEND.value: {
        "email.delivered": ReceiptOutcome.DELIVERED,
        "email.bounced": ReceiptOutcome.FAILED,
        "email.failed": ReceiptOutcome.FAILED,
    },
}


def receipt_outcome(provider: str, event_type: str) -> ReceiptOutcome | None:
    return _RECEIPT_OUTCOMES.get(provider, {}).get((event_type or "").lower())


@notify.command(part_of="NotificationEvent")
class RecordDeliveryReceipt:
    """A provider reported what happened to a message after it was accepted."""

    provider: String(required=True, choices=ReceiptProvider)
    provider_id: String(required=True, max_length=100)
    event_type: String(required=True, max_length=50)
    error_code: String(max_length=50)
    error_message: String(max_length=500)


@notify.command_handler(part_of=NotificationEvent)
class DeliveryReceiptHandler:
    @handle(RecordDeliveryReceipt)
    def record_receipt(self, command: RecordDeliveryReceipt):
        outcome = receipt_outcome(command.provider, command.event_type)
        if outcome is None:
            logger.debug(
                "Delivery receipt ignored",
                provider=command.provider,
                provider_id=command.provider_id,
                event_type=command.event_type,
            )
            return

        repo = current_domain.repository_for(NotificationEvent)
        matches = repo._dao.query.filter(provider_id=command.provider_id).all().items
        if not matches:
            logger.warning(
                "Delivery receipt for unknown message",
                provider=command.provider,
                provider_id=command.provider_id,
                event_type=command.event_type,
            )
            return

        notification = matches[0]
        if NotificationStatus(notification.status) != NotificationStatus.SENT:
            logger.info(
                "Delivery receipt for notification not awaiting confirmation",
                notification_id=str(notification.id),
                status=notification.status,
                event_type=command.event_type,
            )
            return

        now = datetime.now(UTC)
        if outcome == ReceiptOutcome.DELIVERED:
            notification.mark_delivered(delivered_at=now)
            logger.info("Notification delivered", notification_id=str(notification.id), channel=notification.channel)
        else:
            notification.mark_failed(
                command.error_message or f"Provider reported {command.event_type}",
                error_code=command.error_code,
                failed_at=now,
            )
            logger.warning(
                "Notification delivery failed after send",
                notification_id=str(notification.id),
                channel=notification.channel,
                error_code=command.error_code,
            )
            if notification.is_critical:
                notification.escalate(escalated_at=now)
                logger.critical(
                    "Critical notification failed permanently",
                    notification_id=str(notification.id),
                    notification_type=notification.notification_type,
                    channel=notification.channel,
                )

        repo.add(notification)
