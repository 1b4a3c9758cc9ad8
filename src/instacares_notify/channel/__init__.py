"""Channel adapter registry — provider adapters and the senders built on them.

Uses the fake adapters unless provider credentials are configured:
RESEND_API_KEY selects Resend for email, TWILIO_ACCOUNT_SID /
TWILIO_AUTH_TOKEN / TWILIO_PHONE_NUMBER select Twilio for SMS. The fakes
simulate successful delivery, which is the development mode.
"""

from instacares_notify.channel.senders import EmailSender, SMSSender
from instacares_notify.notification.notification import NotificationChannel
from instacares_notify.settings import NotifySettings
from instacares_notify.utils.logging import get_logger

logger = get_logger(__name__)

_channel_instances: dict[str, object] = {}


def get_channel(channel_type: str, settings: NotifySettings | None = None):
    """Return the configured provider adapter (singleton per channel type).

    Args:
        channel_type: One of NotificationChannel enum values ("EMAIL", "SMS")
    """
    if channel_type not in _channel_instances:
        settings = settings or NotifySettings.from_env()

        if channel_type == NotificationChannel.EMAIL.value:
            if settings.email_configured:
                from instacares_notify.channel.resend_email import ResendEmailAdapter

                _channel_instances[channel_type] = ResendEmailAdapter(
                    api_key=settings.resend_api_key,
                    timeout_seconds=settings.provider_timeout_seconds,
                )
            else:
                from instacares_notify.channel.fake_email import FakeEmailAdapter

                logger.warning("RESEND_API_KEY not set, emails will be simulated")
                _channel_instances[channel_type] = FakeEmailAdapter()
        elif channel_type == NotificationChannel.SMS.value:
            if settings.sms_configured:
                from instacares_notify.channel.twilio_sms import TwilioSMSAdapter

                _channel_instances[channel_type] = TwilioSMSAdapter(
                    account_sid=settings.twilio_account_sid,
                    auth_token=settings.twilio_auth_token,
                )
            else:
                from instacares_notify.channel.fake_sms import FakeSMSAdapter

                logger.warning("Twilio credentials not set, SMS will be simulated")
                _channel_instances[channel_type] = FakeSMSAdapter()
        else:
            raise ValueError(f"Unknown channel type: {channel_type}")

    return _channel_instances[channel_type]


def build_senders(settings: NotifySettings) -> dict[str, object]:
    """Return the email and SMS senders keyed by channel value."""
    return {
        NotificationChannel.EMAIL.value: EmailSender(get_channel(NotificationChannel.EMAIL.value, settings), settings),
        NotificationChannel.SMS.value: SMSSender(get_channel(NotificationChannel.SMS.value, settings), settings),
    }


def reset_channels():
    """Reset all channel singletons (useful for testing)."""
    _channel_instances.clear()
