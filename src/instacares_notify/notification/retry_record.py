"""NotificationRetry — history row for one scheduled retry of a notification.

The retry scheduler writes one row per scheduled retry (QUEUED, carrying the
error of the attempt that failed). When the sweep executes the retry the row
is settled exactly once, to SENT or FAILED.
"""

from datetime import UTC, datetime
from enum import Enum

from protean.exceptions import ValidationError
from protean.fields import DateTime, Identifier, Integer, String

from instacares_notify.domain import notify


class RetryStatus(Enum):
    QUEUED = "QUEUED"
    SENT = "SENT"
    FAILED = "FAILED"


@notify.aggregate
class NotificationRetry:
    notification_id: Identifier(required=True)
    attempt_number: Integer(required=True, min_value=1)
    status: String(choices=RetryStatus, default=RetryStatus.QUEUED.value)
    error_message: String(max_length=500)
    provider_id: String(max_length=100)
    scheduled_for: DateTime(required=True)
    attempted_at: DateTime()
    created_at: DateTime()

    @classmethod
    def schedule(cls, notification_id, attempt_number, scheduled_for, error_message=None):
        return cls(
            notification_id=str(notification_id),
            attempt_number=attempt_number,
            status=RetryStatus.QUEUED.value,
            error_message=error_message[:500] if error_message else None,
            scheduled_for=scheduled_for,
            created_at=datetime.now(UTC),
        )

    def _assert_unsettled(self):
        if RetryStatus(self.status) != RetryStatus.QUEUED:
            raise ValidationError({"status": [f"Retry attempt {self.attempt_number} was already recorded"]})

    def record_success(self, provider_id=None, attempted_at=None):
        self._assert_unsettled()
        self.status = RetryStatus.SENT.value
        self.provider_id = provider_id
        self.attempted_at = attempted_at or datetime.now(UTC)

    def record_failure(self, error_message, attempted_at=None):
        self._assert_unsettled()
        self.status = RetryStatus.FAILED.value
        self.error_message = error_message[:500] if error_message else None
        self.attempted_at = attempted_at or datetime.now(UTC)
