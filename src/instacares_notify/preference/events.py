"""Domain events for the NotificationPreference aggregate."""

from protean.fields import Boolean, DateTime, Identifier

from instacares_notify.domain import notify


@notify.event(part_of="NotificationPreference")
class PreferencesCreated:
    """Notification preferences were created for a user."""

    __version__ = 1

    preference_id: Identifier(required=True)
    user_id: Identifier(required=True)
    email_enabled: Boolean(required=True)
    sms_enabled: Boolean(required=True)
    created_at: DateTime(required=True)


@notify.event(part_of="NotificationPreference")
class ChannelsUpdated:
    """A user's notification channel preferences were changed."""

    __version__ = 1

    preference_id: Identifier(required=True)
    user_id: Identifier(required=True)
    email_enabled: Boolean(required=True)
    sms_enabled: Boolean(required=True)
    updated_at: DateTime(required=True)
