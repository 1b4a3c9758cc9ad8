import os
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest
from protean.integrations.pytest import DomainFixture


def pytest_addoption(parser):
    parser.addoption(
        "--env",
        action="store",
        default="test",
        help="Config environment to run tests on",
    )


def pytest_sessionstart(session):
    """Pytest hook to run before collecting tests.

    PROTEAN_ENV must be set before the domain module is imported, since the
    domain reads its configuration overlay at construction time.
    """
    os.environ["PROTEAN_ENV"] = session.config.option.env


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their directory location."""
    for item in items:
        test_path = Path(item.fspath)

        if "/domain/" in str(test_path):
            item.add_marker(pytest.mark.domain)
        elif "/application/" in str(test_path):
            item.add_marker(pytest.mark.application)
        elif "/integration/" in str(test_path):
            item.add_marker(pytest.mark.integration)
            # Integration tests are often slower
            if not any(m.name == "fast" for m in item.iter_markers()):
                item.add_marker(pytest.mark.slow)


@pytest.fixture(scope="session")
def notify_bed():
    from instacares_notify.domain import notify

    bed = DomainFixture(notify)
    bed.setup()
    yield bed
    bed.teardown()


@pytest.fixture(autouse=True)
def _ctx(notify_bed):
    with notify_bed.domain_context():
        yield


@pytest.fixture(autouse=True)
def run_around_tests(_ctx):
    """Fixture to automatically cleanup infrastructure after every test"""
    yield

    from protean import current_domain

    from instacares_notify.channel import reset_channels

    # Clear all databases
    for _, provider in current_domain.providers.items():
        provider._data_reset()

    # Drain event stores
    current_domain.event_store.store._data_reset()

    reset_channels()


# ---------------------------------------------------------------------------
# Clocks
# ---------------------------------------------------------------------------
class FakeClock:
    """Wall clock that only moves when a test advances it."""

    def __init__(self, start=None):
        self.current = start or datetime(2026, 3, 2, 9, 0, tzinfo=UTC)

    def __call__(self):
        return self.current

    def advance(self, **kwargs):
        self.current = self.current + timedelta(**kwargs)
        return self.current


class FakeMonotonic:
    def __init__(self):
        self.current = 1000.0

    def __call__(self):
        return self.current

    def advance(self, seconds):
        self.current += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def monotonic():
    return FakeMonotonic()


# ---------------------------------------------------------------------------
# Providers and pipeline
# ---------------------------------------------------------------------------
@pytest.fixture
def settings():
    from instacares_notify.settings import NotifySettings

    return NotifySettings(
        twilio_phone_number="+15550001111",
        provider_timeout_seconds=1.0,
        sms_rate_limit_window_seconds=3600,
        sms_rate_limit_max=50,
    )


@pytest.fixture
def email_provider():
    from instacares_notify.channel.fake_email import FakeEmailAdapter

    return FakeEmailAdapter()


@pytest.fixture
def sms_provider():
    from instacares_notify.channel.fake_sms import FakeSMSAdapter

    return FakeSMSAdapter()


@pytest.fixture
def senders(settings, email_provider, sms_provider):
    from instacares_notify.channel.senders import EmailSender, SMSSender

    return {
        "EMAIL": EmailSender(email_provider, settings),
        "SMS": SMSSender(sms_provider, settings),
    }


@pytest.fixture
def pipeline(settings, senders, clock, monotonic):
    """A fully wired pipeline over fake providers and controllable clocks."""
    from instacares_notify.dispatch.dispatcher import UnifiedDispatcher
    from instacares_notify.dispatch.pipeline import NotificationPipeline
    from instacares_notify.notification.retry import RetryScheduler
    from instacares_notify.notification.store import ProteanNotificationStore
    from instacares_notify.preference.store import ProteanPreferenceStore
    from instacares_notify.ratelimit.limiter import RateLimiter

    store = ProteanNotificationStore()
    rate_limiter = RateLimiter(
        window_seconds=settings.sms_rate_limit_window_seconds,
        limit=settings.sms_rate_limit_max,
        clock=monotonic,
    )
    retry_scheduler = RetryScheduler(
        store=store,
        senders=senders,
        rate_limiter=rate_limiter,
        batch_size=settings.retry_sweep_batch_size,
        clock=clock,
    )
    dispatcher = UnifiedDispatcher(
        store=store,
        senders=senders,
        rate_limiter=rate_limiter,
        retry_scheduler=retry_scheduler,
        preferences=ProteanPreferenceStore(),
        clock=clock,
    )
    return NotificationPipeline(
        settings=settings,
        store=store,
        senders=senders,
        rate_limiter=rate_limiter,
        retry_scheduler=retry_scheduler,
        dispatcher=dispatcher,
    )


@pytest.fixture
def dispatcher(pipeline):
    return pipeline.dispatcher
