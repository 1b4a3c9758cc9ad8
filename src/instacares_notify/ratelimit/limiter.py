"""Per-recipient sliding-window rate limiter for outbound notifications.

Each recipient key keeps an ordered window of send timestamps. A check
prunes timestamps older than the window, compares the remainder against the
cap and, when allowed, records the new send, all under the key's lock, so
two concurrent requests can never both pass on the same stale window.
"""

import asyncio
import math
import time
from abc import ABC, abstractmethod
from collections import defaultdict, deque
from collections.abc import Callable
from dataclasses import dataclass

from instacares_notify.notification.notification import NotificationPriority
from instacares_notify.utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_WINDOW_SECONDS = 3600
DEFAULT_LIMIT = 50
CRITICAL_MULTIPLIER = 2


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    retry_after_seconds: int | None = None
    remaining: int | None = None


class RateLimitStore(ABC):
    """Holds the send windows. Replaceable by a shared-cache implementation."""

    @abstractmethod
    async def check_and_record(self, key: str, limit: int, window_seconds: float, now: float) -> RateLimitDecision:
        """Atomically prune, check and (when allowed) record a send for `key`."""

    @abstractmethod
    async def reset(self, key: str | None = None) -> None: ...


class InMemoryRateLimitStore(RateLimitStore):
    def __init__(self):
        self._windows: dict[str, deque[float]] = defaultdict(deque)
        self._locks: dict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    async def check_and_record(self, key, limit, window_seconds, now):
        async with self._locks[key]:
            window = self._windows[key]
            while window and window[0] <= now - window_seconds:
                window.popleft()

            if len(window) >= limit:
                retry_after = max(1, math.ceil(window[0] + window_seconds - now))
                return RateLimitDecision(allowed=False, retry_after_seconds=retry_after, remaining=0)

            window.append(now)
            return RateLimitDecision(allowed=True, remaining=limit - len(window))

    async def reset(self, key=None):
        if key is None:
            self._windows.clear()
        else:
            self._windows.pop(key, None)


class RateLimiter:
    def __init__(
        self,
        store: RateLimitStore | None = None,
        window_seconds: float = DEFAULT_WINDOW_SECONDS,
        limit: int = DEFAULT_LIMIT,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.store = store or InMemoryRateLimitStore()
        self.window_seconds = window_seconds
        self.limit = limit
        self._clock = clock

    def limit_for(self, priority: str) -> int:
        if priority == NotificationPriority.CRITICAL.value:
            return self.limit * CRITICAL_MULTIPLIER
        return self.limit

    async def check(self, recipient_key: str, priority: str = NotificationPriority.NORMAL.value) -> RateLimitDecision:
        """Check the recipient's window and count this send when it is allowed."""
        decision = await self.store.check_and_record(
            recipient_key,
            self.limit_for(priority),
            self.window_seconds,
            self._clock(),
        )
        if not decision.allowed:
            logger.warning(
                "Rate limit exceeded",
                recipient=recipient_key,
                priority=priority,
                retry_after_seconds=decision.retry_after_seconds,
            )
        return decision
