"""Fake SMS adapter — records sent messages for development and testing."""

import asyncio
from uuid import uuid4

from instacares_notify.channel.sms_port import SMSPort, SMSProviderError


class FakeSMSAdapter(SMSPort):
    """SMS adapter that records messages in memory for test assertions."""

    def __init__(self):
        self.sent_messages: list[dict] = []
        self.call_count = 0
        self.should_succeed = True
        self.failure_reason = "SMS delivery failed"
        self.error_code: int | None = None
        self.delay_seconds = 0.0

    def configure(
        self,
        should_succeed: bool = True,
        failure_reason: str = "SMS delivery failed",
        error_code: int | None = None,
        delay_seconds: float = 0.0,
    ):
        """Configure the fake adapter behavior for testing."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason
        self.error_code = error_code
        self.delay_seconds = delay_seconds

    async def create(self, body, from_, to, status_callback=None):
        self.call_count += 1
        if self.delay_seconds:
            await asyncio.sleep(self.delay_seconds)

        if not self.should_succeed:
            raise SMSProviderError(self.error_code, self.failure_reason)

        sid = f"SM{uuid4().hex}"
        self.sent_messages.append(
            {
                "sid": sid,
                "to": to,
                "from": from_,
                "body": body,
                "status_callback": status_callback,
            }
        )
        return sid

    def reset(self):
        """Clear sent messages (useful between tests)."""
        self.sent_messages.clear()
        self.call_count = 0
        self.should_succeed = True
        self.failure_reason = "SMS delivery failed"
        self.error_code = None
        self.delay_seconds = 0.0
