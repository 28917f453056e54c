"""Process-wide caches for the crawled study set and its statistics."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
import logging
import time
from typing import Generic, Optional, TypeVar

from ..config import Settings
from ..search.types import Study
from .crawl import BulkCrawler
from .stats import StatisticsSnapshot, compute_statistics

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RepositoryUnavailableError(RuntimeError):
    """No cached data exists and none could be fetched."""


@dataclass(frozen=True)
class CacheEntry(Generic[T]):
    value: T
    timestamp: float

    def is_fresh(self, now: float, ttl: float) -> bool:
        return now - self.timestamp < ttl


class RepositoryCache:
    """Stale-while-revalidate cache with a single-flight background refresh.

    Readers never wait on a refresh once any data is cached. Only a cold
    start (no entry yet) awaits the in-flight crawl, and concurrent cold
    callers share that one crawl.
    """

    def __init__(
        self,
        crawler: BulkCrawler,
        settings: Settings | None = None,
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.crawler = crawler
        self.settings = settings or Settings()
        self._clock = clock
        self._studies: Optional[CacheEntry[tuple[Study, ...]]] = None
        self._stats: Optional[CacheEntry[StatisticsSnapshot]] = None
        self._refresh_task: Optional[asyncio.Task[tuple[Study, ...]]] = None

    @property
    def is_refreshing(self) -> bool:
        return self._refresh_task is not None and not self._refresh_task.done()

    @property
    def studies_entry(self) -> Optional[CacheEntry[tuple[Study, ...]]]:
        return self._studies

    async def get_database(self) -> list[Study]:
        """Return the cached study set, refreshing it in the background when stale."""

        entry = self._studies
        if entry is not None and entry.is_fresh(self._clock(), self.settings.studies_ttl_s):
            logger.debug("Returning cached studies database with %d studies", len(entry.value))
            return list(entry.value)

        task = self.background_refresh()
        if entry is not None:
            logger.info("Returning stale studies while the refresh runs")
            return list(entry.value)
        try:
            return list(await asyncio.shield(task))
        except RepositoryUnavailableError:
            raise
        except Exception as exc:
            raise RepositoryUnavailableError(f"Initial crawl failed: {exc}") from exc

    def background_refresh(self) -> asyncio.Task[tuple[Study, ...]]:
        """Start a refresh unless one is already running; return the running task."""

        if self._refresh_task is not None and not self._refresh_task.done():
            return self._refresh_task
        logger.info("Starting background refresh of the studies database")
        task = asyncio.get_running_loop().create_task(self._refresh())
        task.add_done_callback(self._refresh_done)
        self._refresh_task = task
        return task

    async def _refresh(self) -> tuple[Study, ...]:
        studies = tuple(await self.crawler.crawl())
        if not studies:
            raise RepositoryUnavailableError("Crawl returned no usable studies")
        self._studies = CacheEntry(studies, self._clock())
        logger.info("Refresh completed: cached %d studies", len(studies))
        return studies

    def _refresh_done(self, task: asyncio.Task[tuple[Study, ...]]) -> None:
        if self._refresh_task is task:
            self._refresh_task = None
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Background refresh failed, keeping previous cache: %s", exc)

    async def get_statistics(self) -> StatisticsSnapshot:
        """Statistics with a 6 hour TTL, falling back to the last good snapshot."""

        entry = self._stats
        now = self._clock()
        if entry is not None and entry.is_fresh(now, self.settings.stats_ttl_s):
            return entry.value
        try:
            studies = await self.get_database()
            snapshot = compute_statistics(
                studies, current_year=datetime.fromtimestamp(now).year
            )
        except Exception as exc:
            if entry is not None:
                logger.warning("Using last known statistics snapshot: %s", exc)
                return entry.value
            raise RepositoryUnavailableError(
                "Cannot compute statistics and no cached snapshot is available"
            ) from exc
        self._stats = CacheEntry(snapshot, self._clock())
        return snapshot

    async def wait_for_refresh(self) -> None:
        """Block until an in-flight refresh settles; errors are already logged."""

        task = self._refresh_task
        if task is not None:
            await asyncio.wait({task})


__all__ = ["CacheEntry", "RepositoryCache", "RepositoryUnavailableError"]
