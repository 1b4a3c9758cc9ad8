"""Application tests for RetryScheduler — backoff, retry rows, escalation and the sweep."""

import asyncio
from datetime import timedelta
from unittest.mock import patch

import pytest
from instacares_notify.channel.senders import ChannelResult
from instacares_notify.dispatch.results import UnifiedNotificationOptions
from instacares_notify.notification.notification import NotificationEvent, NotificationStatus
from instacares_notify.notification.retry_record import RetryStatus
from instacares_notify.notification.store import as_aware
from instacares_notify.projections.escalated_notifications import EscalatedNotification
from instacares_notify.ratelimit.limiter import RateLimiter
from protean import current_domain


def _options(**overrides):
    defaults = {
        "notification_type": "PICKUP_REMINDER",
        "content": "URGENT PICKUP REMINDER: Sam needs pickup at 17:30 from Oak School.",
        "template_id": "critical_pickup_reminder",
        "channels": ["EMAIL"],
        "email": "parent@example.com",
        "phone": "5551234567",
    }
    defaults.update(overrides)
    return UnifiedNotificationOptions(**defaults)


def _only_record():
    records = current_domain.repository_for(NotificationEvent)._dao.query.all().items
    assert len(records) == 1
    return records[0]


# ---------------------------------------------------------------
# Retry law
# ---------------------------------------------------------------
class TestTransientFailures:
    @pytest.mark.asyncio
    async def test_failed_send_is_queued_with_first_backoff(self, pipeline, clock, email_provider):
        email_provider.configure(should_succeed=False, failure_reason="Internal server error", status_code=500)

        result = await pipeline.dispatcher.send(_options())

        assert result.success is False
        assert result.failures[0].retry_scheduled is True
        record = _only_record()
        assert record.status == NotificationStatus.QUEUED.value
        assert record.retry_count == 1
        assert record.error_code == "PROVIDER_ERROR"
        assert as_aware(record.next_retry_at) == clock() + timedelta(minutes=5)

        retries = pipeline.store.retries_for(record.id)
        assert [(r.attempt_number, r.status) for r in retries] == [(1, RetryStatus.QUEUED.value)]
        assert retries[0].error_message == "Internal server error"

    @pytest.mark.asyncio
    async def test_retries_stop_at_max_retries_total_attempts(self, pipeline, clock, email_provider):
        email_provider.configure(should_succeed=False, status_code=503)

        await pipeline.dispatcher.send(_options())
        clock.advance(minutes=5)
        first_sweep = await pipeline.retry_scheduler.process_due()
        clock.advance(minutes=15)
        second_sweep = await pipeline.retry_scheduler.process_due()

        assert first_sweep.rescheduled == 1
        assert second_sweep.failed == 1
        assert email_provider.call_count == 3

        record = _only_record()
        assert record.status == NotificationStatus.FAILED.value
        assert record.retry_count == 2
        retries = pipeline.store.retries_for(record.id)
        assert [(r.attempt_number, r.status) for r in retries] == [
            (1, RetryStatus.FAILED.value),
            (2, RetryStatus.FAILED.value),
        ]

    @pytest.mark.asyncio
    async def test_backoff_follows_fixed_schedule(self, pipeline, clock, email_provider):
        email_provider.configure(should_succeed=False, status_code=500)

        await pipeline.dispatcher.send(_options(max_retries=5))
        delays = []
        for _ in range(4):
            record = _only_record()
            delay = as_aware(record.next_retry_at) - clock()
            delays.append(delay)
            clock.advance(seconds=delay.total_seconds())
            await pipeline.retry_scheduler.process_due()

        assert delays == [
            timedelta(minutes=5),
            timedelta(minutes=15),
            timedelta(minutes=60),
            timedelta(minutes=60),
        ]
        assert email_provider.call_count == 5
        assert _only_record().status == NotificationStatus.FAILED.value

    @pytest.mark.asyncio
    async def test_retry_can_succeed(self, pipeline, clock, email_provider):
        email_provider.configure(should_succeed=False, status_code=500)
        await pipeline.dispatcher.send(_options())

        email_provider.configure(should_succeed=True)
        clock.advance(minutes=5)
        report = await pipeline.retry_scheduler.process_due()

        assert report.sent == 1
        record = _only_record()
        assert record.status == NotificationStatus.SENT.value
        assert record.provider_id == email_provider.sent_emails[0]["message_id"]
        assert record.error_message is None

        retries = pipeline.store.retries_for(record.id)
        assert retries[0].status == RetryStatus.SENT.value
        assert retries[0].provider_id == record.provider_id

    @pytest.mark.asyncio
    async def test_retry_is_not_due_before_backoff(self, pipeline, clock, email_provider):
        email_provider.configure(should_succeed=False, status_code=500)
        await pipeline.dispatcher.send(_options())

        clock.advance(minutes=4)
        report = await pipeline.retry_scheduler.process_due()

        assert report.processed == 0
        assert email_provider.call_count == 1

    @pytest.mark.asyncio
    async def test_provider_rate_limit_is_retried(self, pipeline, sms_provider):
        sms_provider.configure(should_succeed=False, error_code=20429)
        await pipeline.dispatcher.send(_options(channels=["SMS"]))
        assert _only_record().status == NotificationStatus.QUEUED.value


class TestPermanentFailures:
    @pytest.mark.asyncio
    async def test_permanent_error_gets_one_attempt_and_no_retry_row(self, pipeline, clock, sms_provider):
        sms_provider.configure(should_succeed=False, error_code=21211)

        result = await pipeline.dispatcher.send(_options(channels=["SMS"], priority="HIGH"))

        assert result.failures[0].retry_scheduled is False
        record = _only_record()
        assert record.status == NotificationStatus.FAILED.value
        assert record.retry_count == 0
        assert pipeline.store.retries_for(record.id) == []

        clock.advance(hours=2)
        await pipeline.retry_scheduler.process_due()
        assert sms_provider.call_count == 1


# ---------------------------------------------------------------
# Escalation
# ---------------------------------------------------------------
class TestEscalation:
    @pytest.mark.asyncio
    async def test_exhausted_critical_notification_is_escalated(self, pipeline, clock, email_provider):
        email_provider.configure(should_succeed=False, failure_reason="Gateway timeout", status_code=504)

        await pipeline.dispatcher.send(_options(priority="CRITICAL", max_retries=2, user_id="parent-1"))
        clock.advance(minutes=5)
        await pipeline.retry_scheduler.process_due()

        record = _only_record()
        assert record.status == NotificationStatus.FAILED.value
        assert record.escalated is True

        escalation = current_domain.repository_for(EscalatedNotification).get(str(record.id))
        assert escalation.notification_type == "PICKUP_REMINDER"
        assert escalation.attempts == 2
        assert escalation.error_message == "Gateway timeout"
        assert str(escalation.recipient_id) == "parent-1"

    @pytest.mark.asyncio
    async def test_permanent_critical_failure_is_escalated_immediately(self, pipeline, sms_provider):
        sms_provider.configure(should_succeed=False, error_code=21614)

        await pipeline.dispatcher.send(_options(channels=["SMS"], priority="CRITICAL", max_retries=5))

        record = _only_record()
        assert record.escalated is True
        assert record.error_code == "UNSUPPORTED_NUMBER_TYPE"
        assert current_domain.repository_for(EscalatedNotification).get(str(record.id)).attempts == 1

    @pytest.mark.asyncio
    async def test_non_critical_failure_is_not_escalated(self, pipeline, sms_provider):
        sms_provider.configure(should_succeed=False, error_code=21211)

        await pipeline.dispatcher.send(_options(channels=["SMS"], priority="HIGH"))

        assert _only_record().escalated is False
        assert current_domain.repository_for(EscalatedNotification)._dao.query.all().items == []


# ---------------------------------------------------------------
# Sweep
# ---------------------------------------------------------------
class TestSweep:
    @pytest.mark.asyncio
    async def test_scheduled_send_delivered_when_due(self, pipeline, clock, email_provider):
        await pipeline.dispatcher.send(_options(scheduled_at=clock() + timedelta(hours=1)))

        clock.advance(minutes=30)
        early = await pipeline.retry_scheduler.process_due()
        clock.advance(minutes=31)
        due = await pipeline.retry_scheduler.process_due()

        assert early.processed == 0
        assert due.sent == 1
        record = _only_record()
        assert record.status == NotificationStatus.SENT.value
        assert record.retry_count == 0
        assert pipeline.store.retries_for(record.id) == []
        assert email_provider.call_count == 1

    @pytest.mark.asyncio
    async def test_sweep_is_single_flight(self, pipeline, clock, email_provider):
        await pipeline.dispatcher.send(_options(scheduled_at=clock() + timedelta(minutes=1)))
        email_provider.configure(delay_seconds=0.05)
        clock.advance(minutes=2)

        first, second = await asyncio.gather(
            pipeline.retry_scheduler.process_due(),
            pipeline.retry_scheduler.process_due(),
        )

        assert sorted([first.skipped, second.skipped]) == [False, True]
        assert first.processed + second.processed == 1
        assert email_provider.call_count == 1

    @pytest.mark.asyncio
    async def test_rate_limited_claim_is_requeued_without_using_an_attempt(
        self, pipeline, clock, monotonic, sms_provider
    ):
        limiter = RateLimiter(window_seconds=600, limit=1, clock=monotonic)
        pipeline.retry_scheduler.rate_limiter = limiter
        await pipeline.dispatcher.send(_options(channels=["SMS"], scheduled_at=clock() + timedelta(minutes=1)))
        await limiter.check("+15551234567")
        clock.advance(minutes=2)

        report = await pipeline.retry_scheduler.process_due()

        assert report.requeued == 1
        assert report.processed == 0
        assert sms_provider.call_count == 0
        record = _only_record()
        assert record.status == NotificationStatus.QUEUED.value
        assert record.retry_count == 0
        assert as_aware(record.next_retry_at) == clock() + timedelta(seconds=600)

    @pytest.mark.asyncio
    async def test_cancelled_notification_is_not_delivered(self, pipeline, clock, email_provider):
        await pipeline.dispatcher.send(_options(scheduled_at=clock() + timedelta(minutes=1)))
        record = _only_record()
        record.cancel("Booking cancelled")
        pipeline.store.add(record)

        clock.advance(minutes=2)
        report = await pipeline.retry_scheduler.process_due()

        assert report.processed == 0
        assert email_provider.call_count == 0

    @pytest.mark.asyncio
    async def test_cancel_after_sweep_loaded_record_is_not_an_error(
        self, pipeline, clock, email_provider, monkeypatch
    ):
        await pipeline.dispatcher.send(_options(scheduled_at=clock() + timedelta(minutes=1)))
        clock.advance(minutes=2)
        loaded = pipeline.store.due_for_delivery(clock(), 10)
        current = pipeline.store.get(loaded[0].id)
        current.cancel("Booking cancelled")
        pipeline.store.add(current)
        monkeypatch.setattr(pipeline.store, "due_for_delivery", lambda as_of, limit: loaded)

        with patch("instacares_notify.notification.retry.logger") as log:
            report = await pipeline.retry_scheduler.process_due()

        assert report.processed == 0
        assert email_provider.call_count == 0
        assert _only_record().status == NotificationStatus.CANCELLED.value
        log.exception.assert_not_called()
        assert log.info.call_args_list[0].args == ("Notification already claimed",)

    @pytest.mark.asyncio
    async def test_batch_size_limits_one_sweep(self, pipeline, clock, email_provider):
        for minutes in (3, 1, 2):
            await pipeline.dispatcher.send(_options(scheduled_at=clock() + timedelta(minutes=minutes)))
        pipeline.retry_scheduler.batch_size = 2
        clock.advance(minutes=5)

        report = await pipeline.retry_scheduler.process_due()

        assert report.processed == 2
        records = current_domain.repository_for(NotificationEvent)._dao.query.all().items
        still_queued = [r for r in records if r.status == NotificationStatus.QUEUED.value]
        assert len(still_queued) == 1
        assert as_aware(still_queued[0].scheduled_at) == clock() - timedelta(minutes=2)


# ---------------------------------------------------------------
# Outcome recording
# ---------------------------------------------------------------
class TestRecordOutcome:
    def test_result_for_cancelled_notification_is_discarded(self, pipeline):
        event = NotificationEvent.create(
            notification_type="BOOKING_REMINDER",
            channel="EMAIL",
            template_id="booking_reminder",
            content="Reminder: your booking is tomorrow.",
            recipient_email="parent@example.com",
        )
        pipeline.store.add(event)
        stored = pipeline.store.get(event.id)
        stored.cancel("Booking cancelled")
        pipeline.store.add(stored)

        recorded = pipeline.retry_scheduler.record_outcome(event, ChannelResult.sent("email-abc"))

        assert recorded.status == NotificationStatus.CANCELLED.value
        assert recorded.provider_id is None


# ---------------------------------------------------------------
# Maintenance
# ---------------------------------------------------------------
class TestMaintenance:
    @pytest.mark.asyncio
    async def test_run_maintenance_reports_sweep(self, pipeline, clock):
        await pipeline.dispatcher.send(_options(scheduled_at=clock() + timedelta(minutes=1)))
        clock.advance(minutes=2)

        summary = await pipeline.run_maintenance(as_of=clock())

        assert summary["processed"] == 1
        assert summary["sent"] == 1
        assert summary["skipped"] is False
        assert summary["purged"] == 0
