"""CancelNotification command + handler — cancel a pending or queued notification."""

from protean.fields import Identifier, String
from protean.utils.globals import current_domain
from protean.utils.mixins import handle

from instacares_notify.domain import notify
from instacares_notify.notification.notification import NotificationEvent


@notify.command(part_of="NotificationEvent")
class CancelNotification:
    """Request to cancel a notification that has not been handed to a provider."""

    notification_id: Identifier(required=True)
    reason: String(required=True, max_length=500)


@notify.command_handler(part_of=NotificationEvent)
class CancelNotificationHandler:
    @handle(CancelNotification)
    def cancel_notification(self, command: CancelNotification):
        repo = current_domain.repository_for(NotificationEvent)
        notification = repo.get(command.notification_id)
        notification.cancel(command.reason)
        repo.add(notification)
