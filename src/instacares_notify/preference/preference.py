"""NotificationPreference aggregate — a user's channel opt-ins.

A user without a preference record receives every channel. The record is
created on the first update, with email and SMS both enabled by default.
"""

from datetime import UTC, datetime

from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Identifier

from instacares_notify.domain import notify
from instacares_notify.preference.events import ChannelsUpdated, PreferencesCreated


@notify.aggregate
class NotificationPreference:
    """Which channels a user wants to be notified on."""

    user_id: Identifier(required=True, unique=True)

    email_enabled: Boolean(default=True)
    sms_enabled: Boolean(default=True)

    created_at: DateTime()
    updated_at: DateTime()

    @classmethod
    def create_default(cls, user_id):
        """Create default preferences for a user: every channel enabled."""
        now = datetime.now(UTC)

        preference = cls(
            user_id=user_id,
            email_enabled=True,
            sms_enabled=True,
            created_at=now,
            updated_at=now,
        )

        preference.raise_(
            PreferencesCreated(
                preference_id=str(preference.id),
                user_id=str(user_id),
                email_enabled=True,
                sms_enabled=True,
                created_at=now,
            )
        )

        return preference

    def update_channels(self, email=None, sms=None):
        """Update channel preferences. Pass None to keep unchanged."""
        if email is None and sms is None:
            raise ValidationError({"channels": ["At least one channel preference must be provided"]})

        now = datetime.now(UTC)

        if email is not None:
            self.email_enabled = email
        if sms is not None:
            self.sms_enabled = sms
        self.updated_at = now

        self.raise_(
            ChannelsUpdated(
                preference_id=str(self.id),
                user_id=str(self.user_id),
                email_enabled=self.email_enabled,
                sms_enabled=self.sms_enabled,
                updated_at=now,
            )
        )
