"""Email provider port — abstract interface for email dispatch."""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class EmailProviderResponse:
    """Outcome of one provider call: either a message id or an error."""

    id: str | None = None
    error: str | None = None
    status_code: int | None = None

    @property
    def ok(self) -> bool:
        return self.id is not None and self.error is None


class EmailPort(ABC):
    """Abstract interface for email provider adapters."""

    @abstractmethod
    async def send(
        self,
        to: str,
        from_: str,
        subject: str,
        html: str | None = None,
        text: str | None = None,
        reply_to: str | None = None,
    ) -> EmailProviderResponse:
        """Submit one email to the provider.

        Provider rejections are reported through `EmailProviderResponse.error`
        (with the HTTP status when there was one) instead of being raised.
        """
        ...
