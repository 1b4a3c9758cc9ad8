"""InstaCares notifications domain — multi-channel delivery with retries.

Dispatches booking, payment, safety and account notifications to parents and
caregivers via Email and SMS. Every attempt is recorded as a NotificationEvent
so that failed sends can be retried by the sweep, confirmed by provider
receipts, and escalated to an operator when a critical alert cannot be
delivered.
"""

from protean.domain import Domain

from instacares_notify.utils.logging import configure_logging, get_logger

configure_logging()

logger = get_logger(__name__)

notify = Domain(name="instacares_notify")
