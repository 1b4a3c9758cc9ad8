"""Channel senders — deliver one notification record through one provider.

Senders are stateless: they read a NotificationEvent, call their provider
port under a timeout and return a ChannelResult. They never raise for
provider problems and never touch the event store.
"""

import asyncio
import re
from dataclasses import dataclass

from instacares_notify.channel.email_port import EmailPort
from instacares_notify.channel.errors import (
    ErrorCategory,
    translate_resend_status,
    translate_twilio_error,
)
from instacares_notify.channel.sms_port import SMSPort, SMSProviderError
from instacares_notify.settings import NotifySettings
from instacares_notify.utils.logging import get_logger

logger = get_logger(__name__)

SMS_MAX_LENGTH = 1600

_SPAM_PATTERNS = [
    re.compile(r"\$\$\$"),
    re.compile(r"FREE!"),
    re.compile(r"URGENT.*CLICK", re.IGNORECASE),
    re.compile(r"LIMITED.*TIME.*OFFER", re.IGNORECASE),
]


class InvalidPhoneNumber(ValueError):
    pass


class ContentPolicyViolation(ValueError):
    pass


@dataclass(frozen=True)
class ChannelResult:
    success: bool
    provider_id: str | None = None
    error: str | None = None
    category: ErrorCategory | None = None

    @property
    def retryable(self) -> bool:
        return not self.success and self.category is not None and self.category.is_retryable

    @classmethod
    def sent(cls, provider_id):
        return cls(success=True, provider_id=provider_id)

    @classmethod
    def failed(cls, category, error):
        return cls(success=False, error=error, category=category)


# ---------------------------------------------------------------------------
# SMS helpers
# ---------------------------------------------------------------------------
def normalize_phone(phone: str) -> str:
    """Return the phone number in E.164 form.

    10 digits are taken as North American and get a +1 prefix; 11 digits
    starting with 1 get a + prefix; anything else between 10 and 15 digits
    is treated as international.

    Raises:
        InvalidPhoneNumber: fewer than 10 or more than 15 digits.
    """
    digits = re.sub(r"\D", "", phone or "")
    if len(digits) < 10 or len(digits) > 15:
        raise InvalidPhoneNumber("Invalid phone number format")

    if len(digits) == 10:
        return f"+1{digits}"
    # 11 digits with a leading 1 already carry the country code
    return f"+{digits}"


def validate_sms_content(content: str, notification_type: str) -> None:
    """Reject SMS bodies that break carrier or compliance rules.

    Raises:
        ContentPolicyViolation: the body is too long, is a marketing message
            without STOP instructions, or looks like spam.
    """
    if len(content) > SMS_MAX_LENGTH:
        raise ContentPolicyViolation(f"SMS content exceeds maximum length of {SMS_MAX_LENGTH} characters")

    if "MARKETING" in (notification_type or "") and "stop" not in content.lower():
        raise ContentPolicyViolation("Marketing SMS must include STOP instructions")

    for pattern in _SPAM_PATTERNS:
        if pattern.search(content):
            raise ContentPolicyViolation("Content contains potentially spam-like patterns")


def default_subject(notification_type: str) -> str:
    return f"Instacares: {notification_type.replace('_', ' ')}"


# ---------------------------------------------------------------------------
# Senders
# ---------------------------------------------------------------------------
class EmailSender:
    def __init__(self, provider: EmailPort, settings: NotifySettings):
        self.provider = provider
        self._settings = settings

    async def send(self, event) -> ChannelResult:
        if not event.recipient_email:
            return ChannelResult.failed(ErrorCategory.MISSING_CONTACT, "Email address is required")

        try:
            response = await asyncio.wait_for(
                self.provider.send(
                    to=event.recipient_email,
                    from_=self._settings.email_from,
                    subject=event.subject or default_subject(event.notification_type),
                    html=event.html_content,
                    text=event.content,
                    reply_to=self._settings.email_reply_to,
                ),
                timeout=self._settings.provider_timeout_seconds,
            )
        except TimeoutError:
            logger.warning("Email provider timed out", notification_id=str(event.id))
            return ChannelResult.failed(ErrorCategory.TIMEOUT, "Email provider timed out")
        except Exception as exc:
            logger.error("Email provider call failed", notification_id=str(event.id), error=str(exc))
            return ChannelResult.failed(ErrorCategory.PROVIDER_ERROR, str(exc) or "Email delivery failed")

        if response.ok:
            logger.info("Email sent", notification_id=str(event.id), provider_id=response.id)
            return ChannelResult.sent(response.id)

        category, message = translate_resend_status(response.status_code, response.error)
        logger.warning(
            "Email rejected by provider",
            notification_id=str(event.id),
            category=category.value,
            error=message,
        )
        return ChannelResult.failed(category, message)


class SMSSender:
    def __init__(self, provider: SMSPort, settings: NotifySettings):
        self.provider = provider
        self._settings = settings

    def prepare(self, phone: str, content: str, notification_type: str) -> str:
        """Validate an outgoing SMS and return the normalized destination number.

        Raises:
            InvalidPhoneNumber
            ContentPolicyViolation
        """
        normalized = normalize_phone(phone)
        validate_sms_content(content, notification_type)
        return normalized

    async def send(self, event) -> ChannelResult:
        if not event.recipient_phone:
            return ChannelResult.failed(ErrorCategory.MISSING_CONTACT, "Phone number is required")

        try:
            to = self.prepare(event.recipient_phone, event.content, event.notification_type)
        except InvalidPhoneNumber as exc:
            return ChannelResult.failed(ErrorCategory.INVALID_NUMBER, str(exc))
        except ContentPolicyViolation as exc:
            return ChannelResult.failed(ErrorCategory.CONTENT_POLICY, str(exc))

        try:
            sid = await asyncio.wait_for(
                self.provider.create(
                    body=event.content,
                    from_=self._settings.twilio_phone_number,
                    to=to,
                    status_callback=self._settings.sms_status_callback,
                ),
                timeout=self._settings.provider_timeout_seconds,
            )
        except TimeoutError:
            logger.warning("SMS provider timed out", notification_id=str(event.id))
            return ChannelResult.failed(ErrorCategory.TIMEOUT, "SMS provider timed out")
        except SMSProviderError as exc:
            category, message = translate_twilio_error(exc.code, exc.message)
            logger.warning(
                "SMS rejected by provider",
                notification_id=str(event.id),
                code=exc.code,
                category=category.value,
                error=message,
            )
            return ChannelResult.failed(category, message)
        except Exception as exc:
            logger.error("SMS provider call failed", notification_id=str(event.id), error=str(exc))
            return ChannelResult.failed(ErrorCategory.PROVIDER_ERROR, str(exc) or "SMS delivery failed")

        logger.info("SMS sent", notification_id=str(event.id), provider_id=sid, priority=event.priority)
        return ChannelResult.sent(sid)
