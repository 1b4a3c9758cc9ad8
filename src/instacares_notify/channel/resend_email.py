"""Resend email adapter — submits emails to the Resend REST API with httpx."""

import httpx

from instacares_notify.channel.email_port import EmailPort, EmailProviderResponse
from instacares_notify.utils.logging import get_logger

logger = get_logger(__name__)

RESEND_BASE_URL = "https://api.resend.com"


class ResendEmailAdapter(EmailPort):
    def __init__(
        self,
        api_key: str,
        base_url: str = RESEND_BASE_URL,
        timeout_seconds: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._api_key = api_key
        self._base_url = base_url
        self._timeout = httpx.Timeout(timeout_seconds)
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self._base_url,
                headers={
                    "Authorization": f"Bearer {self._api_key}",
                    "Content-Type": "application/json",
                },
                timeout=self._timeout,
                transport=self._transport,
            )
        return self._client

    async def close(self):
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def send(self, to, from_, subject, html=None, text=None, reply_to=None):
        payload = {"from": from_, "to": [to], "subject": subject}
        if html:
            payload["html"] = html
        if text:
            payload["text"] = text
        if reply_to:
            payload["reply_to"] = reply_to

        try:
            response = await self._ensure_client().post("/emails", json=payload)
        except httpx.TimeoutException as exc:
            raise TimeoutError(f"Email provider timed out: {exc}") from exc
        except httpx.HTTPError as exc:
            logger.warning("Resend request failed", error=str(exc))
            return EmailProviderResponse(error=f"Email provider unreachable: {exc}")

        if response.is_success:
            return EmailProviderResponse(id=response.json().get("id"))

        try:
            message = response.json().get("message")
        except ValueError:
            message = response.text or None

        logger.warning(
            "Resend rejected email",
            status_code=response.status_code,
            error=message,
        )
        return EmailProviderResponse(
            error=message or f"Email provider returned HTTP {response.status_code}",
            status_code=response.status_code,
        )
