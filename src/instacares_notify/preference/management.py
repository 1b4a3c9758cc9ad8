"""UpdateNotificationPreferences command + handler — change a user's channel opt-ins."""

from protean.fields import Boolean, Identifier
from protean.utils.globals import current_domain
from protean.utils.mixins import handle

from instacares_notify.domain import notify
from instacares_notify.preference.preference import NotificationPreference


@notify.command(part_of="NotificationPreference")
class UpdateNotificationPreferences:
    """Update a user's notification channel preferences."""

    user_id: Identifier(required=True)
    email_enabled: Boolean()
    sms_enabled: Boolean()


@notify.command_handler(part_of=NotificationPreference)
class ManagePreferencesHandler:
    @handle(UpdateNotificationPreferences)
    def update_preferences(self, command: UpdateNotificationPreferences):
        repo = current_domain.repository_for(NotificationPreference)
        prefs = repo._dao.query.filter(user_id=str(command.user_id)).all().items
        preference = prefs[0] if prefs else NotificationPreference.create_default(user_id=str(command.user_id))
        preference.update_channels(
            email=command.email_enabled,
            sms=command.sms_enabled,
        )
        repo.add(preference)
