"""Composition root — wires stores, senders, rate limiter, scheduler and dispatcher."""

from dataclasses import dataclass

from instacares_notify.channel import build_senders
from instacares_notify.dispatch.dispatcher import UnifiedDispatcher
from instacares_notify.notification.retry import RetryScheduler
from instacares_notify.notification.store import NotificationEventStore, ProteanNotificationStore
from instacares_notify.preference.store import PreferenceStore, ProteanPreferenceStore
from instacares_notify.ratelimit.limiter import RateLimiter, RateLimitStore
from instacares_notify.settings import NotifySettings


@dataclass
class NotificationPipeline:
    settings: NotifySettings
    store: NotificationEventStore
    senders: dict
    rate_limiter: RateLimiter
    retry_scheduler: RetryScheduler
    dispatcher: UnifiedDispatcher

    async def run_maintenance(self, as_of=None) -> dict:
        """Run one retry sweep and purge records past retention."""
        report = await self.retry_scheduler.process_due(as_of=as_of)
        purged = self.store.purge_expired(self.settings.retention_days, as_of=as_of)
        return {
            "processed": report.processed,
            "sent": report.sent,
            "failed": report.failed,
            "rescheduled": report.rescheduled,
            "requeued": report.requeued,
            "skipped": report.skipped,
            "purged": purged,
        }


def build_pipeline(
    settings: NotifySettings | None = None,
    store: NotificationEventStore | None = None,
    senders: dict | None = None,
    rate_limit_store: RateLimitStore | None = None,
    preferences: PreferenceStore | None = None,
) -> NotificationPipeline:
    settings = settings or NotifySettings.from_env()
    store = store or ProteanNotificationStore()
    senders = senders or build_senders(settings)
    rate_limiter = RateLimiter(
        store=rate_limit_store,
        window_seconds=settings.sms_rate_limit_window_seconds,
        limit=settings.sms_rate_limit_max,
    )
    retry_scheduler = RetryScheduler(
        store=store,
        senders=senders,
        rate_limiter=rate_limiter,
        batch_size=settings.retry_sweep_batch_size,
    )
    dispatcher = UnifiedDispatcher(
        store=store,
        senders=senders,
        rate_limiter=rate_limiter,
        retry_scheduler=retry_scheduler,
        preferences=preferences or ProteanPreferenceStore(),
    )
    return NotificationPipeline(
        settings=settings,
        store=store,
        senders=senders,
        rate_limiter=rate_limiter,
        retry_scheduler=retry_scheduler,
        dispatcher=dispatcher,
    )
