"""SMS provider port — abstract interface for SMS dispatch."""

from abc import ABC, abstractmethod


class SMSProviderError(Exception):
    """Raised by SMS adapters when the provider rejects a message."""

    def __init__(self, code: int | str | None, message: str):
        super().__init__(message)
        self.code = code
        self.message = message


class SMSPort(ABC):
    """Abstract interface for SMS provider adapters."""

    @abstractmethod
    async def create(
        self,
        body: str,
        from_: str | None,
        to: str,
        status_callback: str | None = None,
    ) -> str:
        """Submit one SMS and return the provider message id (sid).

        Raises:
            SMSProviderError: the provider rejected the message.
        """
        ...
