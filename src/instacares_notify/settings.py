"""Runtime settings for the notification pipeline, read from the environment.

Provider credentials are optional: when they are missing the pipeline falls
back to the in-memory fake providers, which simulate successful delivery
(development mode).
"""

import os
from dataclasses import dataclass


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    return int(raw)


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    return float(raw)


@dataclass(frozen=True)
class NotifySettings:
    email_from: str = "Instacares <noreply@instacares.com>"
    email_reply_to: str | None = None
    resend_api_key: str | None = None

    twilio_account_sid: str | None = None
    twilio_auth_token: str | None = None
    twilio_phone_number: str | None = None
    twilio_webhook_url: str | None = None

    provider_timeout_seconds: float = 10.0

    sms_rate_limit_window_seconds: int = 3600
    sms_rate_limit_max: int = 50

    retry_sweep_batch_size: int = 10
    retry_sweep_interval_seconds: int = 60
    retention_days: int = 365

    cron_secret: str | None = None

    @classmethod
    def from_env(cls) -> "NotifySettings":
        return cls(
            email_from=os.getenv("EMAIL_FROM") or cls.email_from,
            email_reply_to=os.getenv("EMAIL_REPLY_TO") or None,
            resend_api_key=os.getenv("RESEND_API_KEY") or None,
            twilio_account_sid=os.getenv("TWILIO_ACCOUNT_SID") or None,
            twilio_auth_token=os.getenv("TWILIO_AUTH_TOKEN") or None,
            twilio_phone_number=os.getenv("TWILIO_PHONE_NUMBER") or None,
            twilio_webhook_url=os.getenv("TWILIO_WEBHOOK_URL") or None,
            provider_timeout_seconds=_float_env("PROVIDER_TIMEOUT_SECONDS", cls.provider_timeout_seconds),
            sms_rate_limit_window_seconds=_int_env(
                "SMS_RATE_LIMIT_WINDOW_SECONDS", cls.sms_rate_limit_window_seconds
            ),
            sms_rate_limit_max=_int_env("SMS_RATE_LIMIT_MAX", cls.sms_rate_limit_max),
            retry_sweep_batch_size=_int_env("RETRY_SWEEP_BATCH_SIZE", cls.retry_sweep_batch_size),
            retry_sweep_interval_seconds=_int_env(
                "RETRY_SWEEP_INTERVAL_SECONDS", cls.retry_sweep_interval_seconds
            ),
            retention_days=_int_env("NOTIFICATION_RETENTION_DAYS", cls.retention_days),
            cron_secret=os.getenv("CRON_SECRET") or None,
        )

    @property
    def email_configured(self) -> bool:
        return bool(self.resend_api_key)

    @property
    def sms_configured(self) -> bool:
        return bool(self.twilio_account_sid and self.twilio_auth_token and self.twilio_phone_number)

    @property
    def sms_status_callback(self) -> str | None:
        if not self.twilio_webhook_url:
            return None
        return f"{self.twilio_webhook_url.rstrip('/')}/notifications/webhooks/twilio"
