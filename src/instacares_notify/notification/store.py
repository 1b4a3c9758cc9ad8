"""Notification event store — persistence and queries over notification records.

`NotificationEventStore` is the interface the dispatcher and the retry
scheduler depend on. `ProteanNotificationStore` implements it over the
domain's repositories. Each operation runs synchronously inside its own
domain context with no suspension point, so a record is read, mutated and
written back by one owner at a time even when many coroutines share the
store.
"""

from abc import ABC, abstractmethod
from collections import Counter
from datetime import UTC, datetime, timedelta

from protean.utils.globals import current_domain

from instacares_notify.domain import notify
from instacares_notify.notification.notification import (
    TERMINAL_STATUSES,
    NotificationEvent,
    NotificationStatus,
)
from instacares_notify.notification.retry_record import NotificationRetry, RetryStatus
from instacares_notify.utils.logging import get_logger

logger = get_logger(__name__)

_PAGE_SIZE = 500


def as_aware(value: datetime | None) -> datetime | None:
    """Treat naive datetimes read back from storage as UTC."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=UTC)


def _fetch_all(query) -> list:
    items: list = []
    offset = 0
    while True:
        page = query.offset(offset).limit(_PAGE_SIZE).all().items
        items.extend(page)
        if len(page) < _PAGE_SIZE:
            return items
        offset += _PAGE_SIZE


class NotificationEventStore(ABC):
    """Persistence and query interface for notification records."""

    @abstractmethod
    def add(self, event: NotificationEvent) -> NotificationEvent: ...

    @abstractmethod
    def get(self, notification_id: str) -> NotificationEvent:
        """Return the record, raising `ObjectNotFoundError` when it does not exist."""

    @abstractmethod
    def find_by_provider_id(self, provider_id: str) -> NotificationEvent | None: ...

    @abstractmethod
    def due_for_delivery(self, as_of: datetime, limit: int) -> list[NotificationEvent]:
        """QUEUED records whose `next_retry_at` is at or before `as_of`, oldest first."""

    @abstractmethod
    def add_retry(self, retry: NotificationRetry) -> NotificationRetry: ...

    @abstractmethod
    def pending_retry(self, notification_id: str) -> NotificationRetry | None:
        """The retry row scheduled for the notification's next attempt, if any."""

    @abstractmethod
    def retries_for(self, notification_id: str) -> list[NotificationRetry]: ...

    @abstractmethod
    def delivery_stats(self, since: datetime, channel: str | None = None) -> dict: ...

    @abstractmethod
    def retry_stats(self, since: datetime) -> dict: ...

    @abstractmethod
    def purge_expired(self, retention_days: int, as_of: datetime | None = None) -> int: ...


class ProteanNotificationStore(NotificationEventStore):
    def __init__(self, domain=notify):
        self._domain = domain

    # -------------------------------------------------------------------
    # Notification records
    # -------------------------------------------------------------------
    def add(self, event):
        with self._domain.domain_context():
            current_domain.repository_for(NotificationEvent).add(event)
        return event

    def get(self, notification_id):
        with self._domain.domain_context():
            return current_domain.repository_for(NotificationEvent).get(str(notification_id))

    def find_by_provider_id(self, provider_id):
        if not provider_id:
            return None
        with self._domain.domain_context():
            repo = current_domain.repository_for(NotificationEvent)
            matches = repo._dao.query.filter(provider_id=provider_id).all().items
        return matches[0] if matches else None

    def due_for_delivery(self, as_of, limit):
        as_of = as_aware(as_of)
        with self._domain.domain_context():
            repo = current_domain.repository_for(NotificationEvent)
            queued = _fetch_all(repo._dao.query.filter(status=NotificationStatus.QUEUED.value))

        due = [n for n in queued if n.next_retry_at is not None and as_aware(n.next_retry_at) <= as_of]
        due.sort(key=lambda n: as_aware(n.next_retry_at))
        return due[:limit]

    # -------------------------------------------------------------------
    # Retry history
    # -------------------------------------------------------------------
    def add_retry(self, retry):
        with self._domain.domain_context():
            current_domain.repository_for(NotificationRetry).add(retry)
        return retry

    def pending_retry(self, notification_id):
        retries = [r for r in self.retries_for(notification_id) if r.status == RetryStatus.QUEUED.value]
        return retries[-1] if retries else None

    def retries_for(self, notification_id):
        with self._domain.domain_context():
            repo = current_domain.repository_for(NotificationRetry)
            retries = _fetch_all(repo._dao.query.filter(notification_id=str(notification_id)))
        return sorted(retries, key=lambda r: r.attempt_number)

    # -------------------------------------------------------------------
    # Statistics & maintenance
    # -------------------------------------------------------------------
    def delivery_stats(self, since, channel=None):
        since = as_aware(since)
        with self._domain.domain_context():
            repo = current_domain.repository_for(NotificationEvent)
            query = repo._dao.query
            if channel:
                query = query.filter(channel=channel)
            records = _fetch_all(query)

        recent = [n for n in records if n.created_at is not None and as_aware(n.created_at) >= since]
        by_status = Counter(n.status for n in recent)
        by_channel = Counter(n.channel for n in recent)
        by_channel_status = Counter((n.channel, n.status) for n in recent)

        return {
            "total": len(recent),
            "by_status": dict(by_status),
            "by_channel": {
                ch: {
                    "total": count,
                    "by_status": {st: c for (c_ch, st), c in by_channel_status.items() if c_ch == ch},
                }
                for ch, count in by_channel.items()
            },
            "escalated": sum(1 for n in recent if n.escalated),
        }

    def retry_stats(self, since):
        since = as_aware(since)
        with self._domain.domain_context():
            repo = current_domain.repository_for(NotificationRetry)
            retries = _fetch_all(repo._dao.query)

        recent = [r for r in retries if r.created_at is not None and as_aware(r.created_at) >= since]
        grouped = Counter((r.attempt_number, r.status) for r in recent)
        return {
            "total": len(recent),
            "by_attempt": [
                {"attempt_number": attempt, "status": status, "count": count}
                for (attempt, status), count in sorted(grouped.items())
            ],
        }

    def purge_expired(self, retention_days, as_of=None):
        cutoff = as_aware(as_of or datetime.now(UTC)) - timedelta(days=retention_days)
        purged = 0
        with self._domain.domain_context():
            repo = current_domain.repository_for(NotificationEvent)
            retry_repo = current_domain.repository_for(NotificationRetry)
            for status in TERMINAL_STATUSES:
                for record in _fetch_all(repo._dao.query.filter(status=status.value)):
                    if record.created_at is None or as_aware(record.created_at) >= cutoff:
                        continue
                    for retry in _fetch_all(retry_repo._dao.query.filter(notification_id=str(record.id))):
                        retry_repo._dao.delete(retry)
                    repo._dao.delete(record)
                    purged += 1

        if purged:
            logger.info("Expired notifications purged", purged=purged, retention_days=retention_days)
        return purged
