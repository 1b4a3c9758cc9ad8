"""Twilio SMS adapter — wraps the synchronous Twilio SDK for use from asyncio."""

import asyncio

from twilio.base.exceptions import TwilioRestException
from twilio.rest import Client as TwilioClient

from instacares_notify.channel.sms_port import SMSPort, SMSProviderError
from instacares_notify.utils.logging import get_logger

logger = get_logger(__name__)


class TwilioSMSAdapter(SMSPort):
    def __init__(self, account_sid: str, auth_token: str, client: TwilioClient | None = None):
        self._client = client or TwilioClient(account_sid, auth_token)

    def _create(self, params: dict) -> str:
        try:
            message = self._client.messages.create(**params)
        except TwilioRestException as exc:
            raise SMSProviderError(exc.code, exc.msg) from exc
        return message.sid

    async def create(self, body, from_, to, status_callback=None):
        params = {"body": body, "from_": from_, "to": to}
        if status_callback:
            params["status_callback"] = status_callback

        sid = await asyncio.to_thread(self._create, params)
        logger.debug("Twilio message created", sid=sid)
        return sid
