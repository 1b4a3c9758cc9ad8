"""Background worker for the notifications domain.

Runs the retry sweep on a fixed interval: every QUEUED notification that is
due (failed attempts waiting for their backoff, and scheduled sends) is
delivered, and finished notifications past retention are purged.

SMS rate-limit windows live in the rate limit store. The default store is
in-process, so a standalone worker keeps its own windows, separate from the
API process. Retries sent here then do not count against the API's cap.
Pass a shared RateLimitStore to `run`, or drive the sweep through the API's
maintenance endpoint, to keep one window per recipient.

Usage:
    python src/worker.py                 # Sweep every RETRY_SWEEP_INTERVAL_SECONDS
    python src/worker.py --once          # Run a single sweep and exit
"""

import argparse
import asyncio

from instacares_notify.dispatch.pipeline import build_pipeline
from instacares_notify.domain import notify
from instacares_notify.utils.logging import get_logger

logger = get_logger("worker")


async def sweep_forever(pipeline, interval_seconds):
    while True:
        try:
            summary = await pipeline.run_maintenance()
            logger.debug("Maintenance cycle complete", **summary)
        except Exception as exc:
            logger.exception("Maintenance cycle failed", error=str(exc))
        await asyncio.sleep(interval_seconds)


async def run(once=False, interval=None, rate_limit_store=None):
    notify.init()
    pipeline = build_pipeline(rate_limit_store=rate_limit_store)

    if once:
        summary = await pipeline.run_maintenance()
        logger.info("Maintenance run complete", **summary)
        return

    interval = interval or pipeline.settings.retry_sweep_interval_seconds
    logger.info("Retry worker started", interval_seconds=interval)
    await sweep_forever(pipeline, interval)


def main():
    parser = argparse.ArgumentParser(description="InstaCares notifications worker")
    parser.add_argument("--once", action="store_true", help="Run a single sweep and exit")
    parser.add_argument("--interval", type=int, help="Seconds between sweeps (default: from settings)")
    args = parser.parse_args()

    asyncio.run(run(once=args.once, interval=args.interval))


if __name__ == "__main__":
    main()
