"""
vanguardscraper.vgjobs.

Recurring scrape-and-persist jobs.

- run_with_retry: one job's extraction, retried with a fixed backoff.
- run_job: extraction plus persistence, reduced to a logged
    :class:`~vanguardscraper.vgmodels.JobSuccess` or
    :class:`~vanguardscraper.vgmodels.JobFailure`.
- Scheduler: process-lifetime loop firing a job at each cron trigger.

The whole chain runs on one asyncio task, so attempts never overlap and a
snapshot is fully written before the next trigger is considered. Cancelling
that task stops the loop wherever it is suspended.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from .vgcron import CronSchedule
from .vgerrors import ExtractionError, MaxRetriesError, StorageError
from .vgmodels import JobFailure, JobOutcome, JobSuccess
from .vgscraper import HoldingsScraper

if TYPE_CHECKING:
    from collections.abc import Iterator

    from .vgconfig import Config, Credentials, RetryConfig
    from .vgmodels import HoldingRecord
    from .vgstore import HoldingStore

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[Any]]


async def _retry_attempts(
    scraper: HoldingsScraper,
    credentials: Credentials,
    max_attempts: int,
    backoff_s: float,
    sleep: Sleep,
) -> tuple[list[HoldingRecord], int]:
    attempts = 0
    while True:
        attempts += 1
        try:
            return await scraper.run(credentials), attempts
        except ExtractionError as e:
            logger.error("job failed (attempt %s/%s): %s", attempts, max_attempts, e)
            if attempts >= max_attempts:
                raise MaxRetriesError(attempts, e) from e
            logger.info("retrying in %s seconds", backoff_s)
            await sleep(backoff_s)


async def run_with_retry(
    scraper: HoldingsScraper,
    credentials: Credentials,
    max_attempts: int = 3,
    backoff_s: float = 300.0,
    sleep: Sleep = asyncio.sleep,
) -> list[HoldingRecord]:
    """
    Run extraction attempts until one succeeds or ``max_attempts`` have failed.

    Every :class:`ExtractionError` is retried the same way after sleeping
    ``backoff_s`` seconds; a layout change and a slow render look alike
    here. Raises :class:`MaxRetriesError` once the attempts are used up.
    """
    records, _ = await _retry_attempts(scraper, credentials, max_attempts, backoff_s, sleep)
    return records


async def run_job(
    scraper: HoldingsScraper,
    store: HoldingStore,
    credentials: Credentials,
    retry: RetryConfig,
    sleep: Sleep = asyncio.sleep,
) -> JobOutcome:
    """Scrape with retries, then save the snapshot. Failures are returned, not raised."""
    try:
        records, attempts = await _retry_attempts(
            scraper, credentials, retry.max_attempts, retry.backoff_s, sleep,
        )
    except MaxRetriesError as e:
        return JobFailure(str(e), e.attempts)

    try:
        # Keep the event loop free for the read endpoint during the write
        count = await asyncio.to_thread(store.insert, records)
    except StorageError as e:
        logger.error("failed to save snapshot: %s", e)
        return JobFailure(str(e), attempts)
    return JobSuccess(count)


def utc_now() -> datetime:
    return datetime.now(tz=UTC)


class Scheduler:
    """
    Fire ``job`` at every instant yielded by ``schedule.upcoming``.

    ``schedule`` is anything with an ``upcoming(start)`` iterator of aware
    datetimes, typically a :class:`~vanguardscraper.vgcron.CronSchedule`.
    A failed job is logged and the loop moves on to the next instant; only
    cancellation (or the schedule running out) ends :meth:`run`.
    """

    def __init__(
        self,
        schedule: Any,
        job: Callable[[], Awaitable[JobOutcome]],
        now: Callable[[], datetime] = utc_now,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self.schedule = schedule
        self.job = job
        self.now = now
        self.sleep = sleep
        self.runs = 0

    def triggers(self) -> Iterator[datetime]:
        return iter(self.schedule.upcoming(self.now()))

    async def run(self) -> None:
        for fire_at in self.triggers():
            logger.info("next job scheduled for %s", fire_at.isoformat())
            delay = (fire_at - self.now()).total_seconds()
            await self.sleep(max(delay, 0.0))

            self.runs += 1
            try:
                outcome = await self.job()
            except Exception:  # noqa: BLE001 - the loop must survive any job bug
                logger.exception("job raised unexpectedly")
                continue
            if isinstance(outcome, JobSuccess):
                logger.info("%s", outcome)
            else:
                logger.error("%s", outcome)


def build_scheduler(
    cfg: Config,
    credentials: Credentials,
    store: HoldingStore,
    scraper: HoldingsScraper | None = None,
) -> Scheduler:
    """Wire the configured schedule, scraper, store and credentials together."""
    schedule = CronSchedule.parse(cfg.schedule)
    scraper = scraper or HoldingsScraper(cfg)

    async def job() -> JobOutcome:
        return await run_job(scraper, store, credentials, cfg.retry)

    return Scheduler(schedule, job)
