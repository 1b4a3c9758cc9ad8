"""Request options, per-channel outcomes and the reducer that combines them."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from instacares_notify.notification.notification import (
    DEFAULT_MAX_RETRIES,
    NotificationChannel,
    NotificationPriority,
)


@dataclass
class UnifiedNotificationOptions:
    notification_type: str
    content: str
    template_id: str
    channels: list[str]
    user_id: str | None = None
    email: str | None = None
    phone: str | None = None
    name: str | None = None
    subject: str | None = None
    html_content: str | None = None
    sms_content: str | None = None
    priority: str = NotificationPriority.NORMAL.value
    context_type: str | None = None
    context_id: str | None = None
    scheduled_at: datetime | None = None
    max_retries: int = DEFAULT_MAX_RETRIES

    def body_for(self, channel: str) -> str:
        if channel == NotificationChannel.SMS.value and self.sms_content:
            return self.sms_content
        return self.content


class FailureKind(Enum):
    VALIDATION = "VALIDATION"
    RATE_LIMITED = "RATE_LIMITED"
    DELIVERY = "DELIVERY"


# ---------------------------------------------------------------------------
# Per-channel outcomes
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class Delivered:
    channel: str
    notification_id: str
    provider_id: str | None = None


@dataclass(frozen=True)
class Failed:
    channel: str
    error: str
    kind: FailureKind = FailureKind.DELIVERY
    notification_id: str | None = None
    retry_after_seconds: int | None = None
    retry_scheduled: bool = False


@dataclass(frozen=True)
class Skipped:
    channel: str
    reason: str


@dataclass(frozen=True)
class Deferred:
    channel: str
    notification_id: str
    scheduled_at: datetime


Outcome = Delivered | Failed | Skipped | Deferred


@dataclass
class NotificationResult:
    success: bool
    notification_ids: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    partial_success: bool = False
    scheduled_ids: list[str] = field(default_factory=list)
    skipped_channels: list[str] = field(default_factory=list)
    failures: list[Failed] = field(default_factory=list)

    @property
    def is_validation_failure(self) -> bool:
        return bool(self.failures) and all(f.kind == FailureKind.VALIDATION for f in self.failures)

    @property
    def is_rate_limited(self) -> bool:
        return bool(self.failures) and all(f.kind == FailureKind.RATE_LIMITED for f in self.failures)

    @property
    def retry_after_seconds(self) -> int | None:
        waits = [f.retry_after_seconds for f in self.failures if f.retry_after_seconds is not None]
        return max(waits) if waits else None

    @classmethod
    def rejected(cls, message: str) -> "NotificationResult":
        """A request that failed validation before any channel was tried."""
        return cls(
            success=False,
            errors=[message],
            failures=[Failed(channel="", error=message, kind=FailureKind.VALIDATION)],
        )


def aggregate_outcomes(outcomes: list) -> NotificationResult:
    """Reduce per-channel outcomes to one result. Pure: no I/O, no clock."""
    delivered = [o for o in outcomes if isinstance(o, Delivered)]
    deferred = [o for o in outcomes if isinstance(o, Deferred)]
    failed = [o for o in outcomes if isinstance(o, Failed)]
    skipped = [o for o in outcomes if isinstance(o, Skipped)]

    succeeded = bool(delivered or deferred)
    return NotificationResult(
        success=succeeded,
        notification_ids=[o.notification_id for o in delivered],
        errors=[f"{o.channel}: {o.error}" for o in failed],
        partial_success=succeeded and bool(failed),
        scheduled_ids=[o.notification_id for o in deferred],
        skipped_channels=[o.channel for o in skipped],
        failures=failed,
    )
