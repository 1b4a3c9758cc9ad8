"""Fake email adapter — records sent emails for development and testing."""

import asyncio
from uuid import uuid4

from instacares_notify.channel.email_port import EmailPort, EmailProviderResponse


class FakeEmailAdapter(EmailPort):
    """Email adapter that records messages in memory for test assertions."""

    def __init__(self):
        self.sent_emails: list[dict] = []
        self.call_count = 0
        self.should_succeed = True
        self.failure_reason = "Email delivery failed"
        self.status_code: int | None = 500
        self.delay_seconds = 0.0

    def configure(
        self,
        should_succeed: bool = True,
        failure_reason: str = "Email delivery failed",
        status_code: int | None = 500,
        delay_seconds: float = 0.0,
    ):
        """Configure the fake adapter behavior for testing."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason
        self.status_code = status_code
        self.delay_seconds = delay_seconds

    async def send(self, to, from_, subject, html=None, text=None, reply_to=None):
        self.call_count += 1
        if self.delay_seconds:
            await asyncio.sleep(self.delay_seconds)

        if not self.should_succeed:
            return EmailProviderResponse(error=self.failure_reason, status_code=self.status_code)

        message_id = f"email-{uuid4().hex[:12]}"
        self.sent_emails.append(
            {
                "message_id": message_id,
                "to": to,
                "from": from_,
                "subject": subject,
                "html": html,
                "text": text,
                "reply_to": reply_to,
            }
        )
        return EmailProviderResponse(id=message_id)

    def reset(self):
        """Clear sent emails (useful between tests)."""
        self.sent_emails.clear()
        self.call_count = 0
        self.should_succeed = True
        self.failure_reason = "Email delivery failed"
        self.status_code = 500
        self.delay_seconds = 0.0
