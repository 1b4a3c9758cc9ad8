"""Application tests for ProteanNotificationStore — queries, statistics and retention."""

from datetime import UTC, datetime, timedelta

import pytest
from instacares_notify.notification.notification import NotificationEvent, NotificationStatus
from instacares_notify.notification.retry_record import NotificationRetry
from instacares_notify.notification.store import ProteanNotificationStore, as_aware
from protean.exceptions import ObjectNotFoundError

NOW = datetime(2026, 3, 2, 9, 0, tzinfo=UTC)


@pytest.fixture
def store():
    return ProteanNotificationStore()


def _event(store, channel="EMAIL", status=NotificationStatus.SENT, created_at=NOW, **overrides):
    defaults = {
        "notification_type": "BOOKING_CONFIRMATION",
        "channel": channel,
        "template_id": "booking_confirmation",
        "content": "Your booking is confirmed.",
        "recipient_email": "parent@example.com",
        "recipient_phone": "+15551234567",
        "created_at": created_at,
    }
    defaults.update(overrides)
    event = NotificationEvent.create(**defaults)
    if status == NotificationStatus.SENT:
        event.mark_sent(f"prov-{event.id}")
    elif status == NotificationStatus.DELIVERED:
        event.mark_sent(f"prov-{event.id}")
        event.mark_delivered()
    elif status == NotificationStatus.FAILED:
        event.mark_failed("Invalid phone number", error_code="INVALID_NUMBER")
    elif status == NotificationStatus.CANCELLED:
        event.cancel("No longer needed")
    return store.add(event)


def _queued(store, next_retry_at):
    event = NotificationEvent.create(
        notification_type="BOOKING_REMINDER",
        channel="EMAIL",
        template_id="booking_reminder",
        content="Reminder",
        recipient_email="parent@example.com",
        scheduled_at=next_retry_at,
        created_at=NOW - timedelta(days=1),
    )
    return store.add(event)


class TestLookups:
    def test_get_round_trip(self, store):
        event = _event(store)
        assert store.get(event.id).id == event.id

    def test_get_unknown_raises(self, store):
        with pytest.raises(ObjectNotFoundError):
            store.get("missing")

    def test_find_by_provider_id(self, store):
        event = _event(store)
        assert store.find_by_provider_id(f"prov-{event.id}").id == event.id
        assert store.find_by_provider_id("nope") is None
        assert store.find_by_provider_id(None) is None


class TestDueForDelivery:
    def test_only_due_records_oldest_first(self, store):
        late = _queued(store, NOW + timedelta(minutes=10))
        early = _queued(store, NOW + timedelta(minutes=2))
        _queued(store, NOW + timedelta(hours=3))

        due = store.due_for_delivery(NOW + timedelta(minutes=30), limit=10)

        assert [e.id for e in due] == [early.id, late.id]

    def test_limit(self, store):
        for minutes in (1, 2, 3):
            _queued(store, NOW + timedelta(minutes=minutes))
        assert len(store.due_for_delivery(NOW + timedelta(hours=1), limit=2)) == 2

    def test_sent_records_are_never_due(self, store):
        _event(store)
        assert store.due_for_delivery(NOW + timedelta(days=1), limit=10) == []


class TestRetryRows:
    def test_pending_retry_is_the_unsettled_row(self, store):
        event = _event(store, status=NotificationStatus.FAILED)
        first = NotificationRetry.schedule(event.id, 1, NOW + timedelta(minutes=5), "Timeout")
        first.record_failure("Timeout again")
        store.add_retry(first)
        second = store.add_retry(NotificationRetry.schedule(event.id, 2, NOW + timedelta(minutes=20), "Timeout again"))

        assert store.pending_retry(event.id).id == second.id
        assert [r.attempt_number for r in store.retries_for(event.id)] == [1, 2]

    def test_no_pending_retry(self, store):
        event = _event(store)
        assert store.pending_retry(event.id) is None


class TestDeliveryStats:
    def test_counts_by_status_and_channel(self, store):
        _event(store, channel="EMAIL", status=NotificationStatus.SENT)
        _event(store, channel="EMAIL", status=NotificationStatus.DELIVERED)
        _event(store, channel="SMS", status=NotificationStatus.FAILED)
        _event(store, channel="SMS", status=NotificationStatus.SENT, created_at=NOW - timedelta(days=3))

        stats = store.delivery_stats(NOW - timedelta(days=1))

        assert stats["total"] == 3
        assert stats["by_status"] == {"SENT": 1, "DELIVERED": 1, "FAILED": 1}
        assert stats["by_channel"]["EMAIL"] == {"total": 2, "by_status": {"SENT": 1, "DELIVERED": 1}}
        assert stats["by_channel"]["SMS"] == {"total": 1, "by_status": {"FAILED": 1}}
        assert stats["escalated"] == 0

    def test_channel_filter(self, store):
        _event(store, channel="EMAIL")
        _event(store, channel="SMS")

        stats = store.delivery_stats(NOW - timedelta(hours=1), channel="SMS")

        assert stats["total"] == 1
        assert list(stats["by_channel"]) == ["SMS"]

    def test_retry_stats_groups_by_attempt(self, store):
        event = _event(store, status=NotificationStatus.FAILED)
        settled = NotificationRetry.schedule(event.id, 1, NOW, "Timeout")
        settled.record_failure("Timeout")
        store.add_retry(settled)
        store.add_retry(NotificationRetry.schedule(event.id, 2, NOW, "Timeout"))

        stats = store.retry_stats(datetime.now(UTC) - timedelta(hours=1))

        assert stats["total"] == 2
        assert stats["by_attempt"] == [
            {"attempt_number": 1, "status": "FAILED", "count": 1},
            {"attempt_number": 2, "status": "QUEUED", "count": 1},
        ]


class TestPurgeExpired:
    def test_purges_old_terminal_records_and_their_retries(self, store):
        old_failed = _event(store, status=NotificationStatus.FAILED, created_at=NOW - timedelta(days=400))
        store.add_retry(NotificationRetry.schedule(old_failed.id, 1, NOW - timedelta(days=400)))
        old_delivered = _event(store, status=NotificationStatus.DELIVERED, created_at=NOW - timedelta(days=400))
        recent = _event(store, status=NotificationStatus.DELIVERED, created_at=NOW - timedelta(days=10))

        purged = store.purge_expired(365, as_of=NOW)

        assert purged == 2
        for gone in (old_failed, old_delivered):
            with pytest.raises(ObjectNotFoundError):
                store.get(gone.id)
        assert store.retries_for(old_failed.id) == []
        assert store.get(recent.id).status == NotificationStatus.DELIVERED.value

    def test_keeps_old_records_still_in_flight(self, store):
        sent = _event(store, status=NotificationStatus.SENT, created_at=NOW - timedelta(days=400))

        assert store.purge_expired(365, as_of=NOW) == 0
        assert store.get(sent.id).status == NotificationStatus.SENT.value


def test_as_aware_treats_naive_as_utc():
    naive = datetime(2026, 3, 2, 9, 0)
    assert as_aware(naive) == NOW
    assert as_aware(NOW) is NOW
    assert as_aware(None) is None
