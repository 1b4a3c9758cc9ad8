"""Retry scheduling and the retry sweep.

A failed delivery is scheduled for retry by the call that observed the
failure: the record moves FAILED → QUEUED with a fixed-step backoff and a
NotificationRetry row is written. Retries are only ever executed by the
sweep (`process_due`), which claims due records, delivers them again and
records the outcome on both the record and its retry row.

Backoff: 1st retry after 5 minutes, 2nd after 15, every later one after 60.
"""

import asyncio
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from protean.exceptions import ExpectedVersionError, ValidationError

from instacares_notify.channel.errors import ErrorCategory
from instacares_notify.channel.senders import ChannelResult, InvalidPhoneNumber, normalize_phone
from instacares_notify.notification.notification import (
    NotificationChannel,
    NotificationEvent,
    NotificationStatus,
)
from instacares_notify.notification.retry_record import NotificationRetry
from instacares_notify.notification.store import NotificationEventStore
from instacares_notify.utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_BATCH_SIZE = 10


def _utcnow() -> datetime:
    return datetime.now(UTC)


class RetryPolicy:
    BACKOFF = {
        1: timedelta(minutes=5),
        2: timedelta(minutes=15),
    }
    MAX_BACKOFF = timedelta(minutes=60)

    def backoff(self, retry_number: int) -> timedelta:
        return self.BACKOFF.get(retry_number, self.MAX_BACKOFF)

    def is_retryable(self, category: ErrorCategory | None) -> bool:
        return category is not None and category.is_retryable


@dataclass
class SweepReport:
    processed: int = 0
    sent: int = 0
    failed: int = 0
    rescheduled: int = 0
    requeued: int = 0
    skipped: bool = False


class RetryScheduler:
    def __init__(
        self,
        store: NotificationEventStore,
        senders: dict,
        rate_limiter=None,
        policy: RetryPolicy | None = None,
        batch_size: int = DEFAULT_BATCH_SIZE,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.store = store
        self.senders = senders
        self.rate_limiter = rate_limiter
        self.policy = policy or RetryPolicy()
        self.batch_size = batch_size
        self._clock = clock
        self._sweep_lock = asyncio.Lock()

    # -------------------------------------------------------------------
    # Recording outcomes
    # -------------------------------------------------------------------
    def record_outcome(self, event: NotificationEvent, result: ChannelResult) -> NotificationEvent:
        """Apply a sender result to a PENDING record and schedule a retry when due.

        Returns the record as persisted. If the record left PENDING while the
        provider call was in flight (it was cancelled) the result is logged
        and the record is returned unchanged.
        """
        current = self.store.get(event.id)
        if NotificationStatus(current.status) != NotificationStatus.PENDING:
            logger.warning(
                "Notification changed state during delivery, result discarded",
                notification_id=str(current.id),
                status=current.status,
                success=result.success,
            )
            return current

        now = self._clock()
        if result.success:
            current.mark_sent(provider_id=result.provider_id, sent_at=now)
            self.store.add(current)
            self._settle_retry_row(current, result, now)
            return current

        current.mark_failed(
            result.error or "Unknown delivery error",
            error_code=result.category.value if result.category else None,
            failed_at=now,
        )
        self.store.add(current)
        self._settle_retry_row(current, result, now)

        logger.warning(
            "Notification delivery failed",
            notification_id=str(current.id),
            channel=current.channel,
            attempt=current.attempt_count,
            category=current.error_code,
            error=current.error_message,
        )
        return self.schedule(current, result.category)

    def _settle_retry_row(self, event, result, now):
        retry = self.store.pending_retry(event.id)
        if retry is None:
            return
        if result.success:
            retry.record_success(provider_id=result.provider_id, attempted_at=now)
        else:
            retry.record_failure(result.error or "Unknown delivery error", attempted_at=now)
        self.store.add_retry(retry)

    # -------------------------------------------------------------------
    # Scheduling
    # -------------------------------------------------------------------
    def schedule(self, event: NotificationEvent, category: ErrorCategory | None) -> NotificationEvent:
        """Queue a FAILED record for its next attempt, or leave it terminally failed."""
        if not self.policy.is_retryable(category):
            logger.info(
                "Notification failure is permanent",
                notification_id=str(event.id),
                category=category.value if category else None,
            )
            return self.terminate(event)

        if not event.has_attempts_remaining:
            logger.info(
                "Notification retries exhausted",
                notification_id=str(event.id),
                attempts=event.attempt_count,
                max_retries=event.max_retries,
            )
            return self.terminate(event)

        now = self._clock()
        next_retry_at = now + self.policy.backoff(event.retry_count + 1)
        event.schedule_retry(next_retry_at, scheduled_at=now)
        self.store.add(event)
        self.store.add_retry(
            NotificationRetry.schedule(
                notification_id=event.id,
                attempt_number=event.retry_count,
                scheduled_for=next_retry_at,
                error_message=event.error_message,
            )
        )

        logger.info(
            "Notification retry scheduled",
            notification_id=str(event.id),
            channel=event.channel,
            retry_count=event.retry_count,
            next_retry_at=next_retry_at.isoformat(),
        )
        return event

    def terminate(self, event: NotificationEvent) -> NotificationEvent:
        """Leave the record FAILED; critical notifications are escalated."""
        if event.is_critical and not event.escalated:
            event.escalate(escalated_at=self._clock())
            self.store.add(event)
            logger.critical(
                "Critical notification failed permanently",
                notification_id=str(event.id),
                notification_type=event.notification_type,
                channel=event.channel,
                recipient_id=str(event.recipient_id) if event.recipient_id else None,
                error=event.error_message,
                attempts=event.attempt_count,
            )
        return event

    # -------------------------------------------------------------------
    # Sweep
    # -------------------------------------------------------------------
    async def process_due(self, as_of: datetime | None = None, limit: int | None = None) -> SweepReport:
        """Deliver every QUEUED record that is due. Only one sweep runs at a time."""
        if self._sweep_lock.locked():
            logger.info("Retry sweep already running, skipping")
            return SweepReport(skipped=True)

        async with self._sweep_lock:
            as_of = as_of or self._clock()
            report = SweepReport()
            due = self.store.due_for_delivery(as_of, limit or self.batch_size)

            for event in due:
                try:
                    await self._deliver_due(event, report)
                except Exception as exc:
                    logger.exception(
                        "Retry sweep failed to process notification",
                        notification_id=str(event.id),
                        error=str(exc),
                    )

            if report.processed or report.requeued:
                logger.info(
                    "Retry sweep finished",
                    processed=report.processed,
                    sent=report.sent,
                    failed=report.failed,
                    rescheduled=report.rescheduled,
                    requeued=report.requeued,
                )
            return report

    async def _deliver_due(self, event: NotificationEvent, report: SweepReport):
        try:
            event.claim(claimed_at=self._clock())
        except ValidationError:
            logger.info("Notification already claimed", notification_id=str(event.id), status=event.status)
            return
        try:
            self.store.add(event)
        except ExpectedVersionError:
            # Changed since the sweep loaded it, usually cancelled
            logger.info("Notification already claimed", notification_id=str(event.id), status=event.status)
            return

        if event.channel == NotificationChannel.SMS.value and self.rate_limiter is not None:
            if await self._requeue_if_rate_limited(event):
                report.requeued += 1
                return

        sender = self.senders[event.channel]
        result = await sender.send(event)
        updated = self.record_outcome(event, result)

        report.processed += 1
        if updated.status == NotificationStatus.SENT.value:
            report.sent += 1
        elif updated.status == NotificationStatus.QUEUED.value:
            report.rescheduled += 1
        elif updated.status == NotificationStatus.FAILED.value:
            report.failed += 1

    async def _requeue_if_rate_limited(self, event: NotificationEvent) -> bool:
        try:
            key = normalize_phone(event.recipient_phone)
        except InvalidPhoneNumber:
            # The sender reports the bad number as a permanent failure
            return False

        decision = await self.rate_limiter.check(key, event.priority)
        if decision.allowed:
            return False

        next_retry_at = self._clock() + timedelta(seconds=decision.retry_after_seconds or 1)
        event.requeue(next_retry_at, reason="Rate limit exceeded")
        self.store.add(event)
        logger.info(
            "Notification requeued by rate limit",
            notification_id=str(event.id),
            next_retry_at=next_retry_at.isoformat(),
        )
        return True
