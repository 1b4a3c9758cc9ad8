"""Preference lookup used by the dispatcher."""

from abc import ABC, abstractmethod
from dataclasses import dataclass

from protean.utils.globals import current_domain

from instacares_notify.domain import notify
from instacares_notify.preference.preference import NotificationPreference
from instacares_notify.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class ChannelPreferences:
    email: bool = True
    sms: bool = True

    def allows(self, channel: str) -> bool:
        if channel == "EMAIL":
            return self.email
        if channel == "SMS":
            return self.sms
        return False


ALL_CHANNELS_ENABLED = ChannelPreferences()


class PreferenceStore(ABC):
    @abstractmethod
    def get(self, user_id: str) -> ChannelPreferences:
        """Return the user's preferences, or all channels enabled when none can be read."""


class ProteanPreferenceStore(PreferenceStore):
    def __init__(self, domain=notify):
        self._domain = domain

    def get(self, user_id):
        try:
            with self._domain.domain_context():
                repo = current_domain.repository_for(NotificationPreference)
                prefs = repo._dao.query.filter(user_id=str(user_id)).all().items
        except Exception as exc:
            logger.warning("Could not load notification preferences", user_id=str(user_id), error=str(exc))
            return ALL_CHANNELS_ENABLED

        if not prefs:
            return ALL_CHANNELS_ENABLED
        return ChannelPreferences(email=bool(prefs[0].email_enabled), sms=bool(prefs[0].sms_enabled))
