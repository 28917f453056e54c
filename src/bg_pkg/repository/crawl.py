"""Breadth crawl of the OSDR keyword search across many overlapping terms."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Iterator, Sequence
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime
import logging
from typing import Optional, Protocol

import httpx

from ..config import Settings
from ..search.osdr import OSDRAPIError
from ..search.types import Study, is_valid_year, passes_quality_gate

logger = logging.getLogger(__name__)

HIGH_YIELD_TERMS: tuple[str, ...] = (
    "microgravity",
    "spaceflight",
    "ISS",
    "space",
    "NASA",
    "astronaut",
    "human",
    "mouse",
    "plant",
    "bacteria",
    "cell",
    "tissue",
    "gene",
    "protein",
    "RNA",
    "DNA",
    "metabolism",
    "immune",
    "cardiovascular",
    "bone",
    "muscle",
    "radiation",
    "growth",
    "development",
)


class PageSource(Protocol):
    async def search_with_pagination(
        self, term: str, offset: int = 0, page_size: int = 100
    ) -> list[Study]: ...


@dataclass
class CrawlConfig:
    page_size: int = 50
    max_pages_per_term: int = 10
    max_concurrent: int = 3
    max_retries: int = 3
    target_count: int = 100
    pacing_s: float = 0.2
    backoff_base_s: float = 1.0

    @classmethod
    def from_settings(cls, settings: Settings) -> "CrawlConfig":
        return cls(
            page_size=settings.page_size,
            max_pages_per_term=settings.max_pages_per_term,
            max_concurrent=settings.max_concurrent,
            max_retries=settings.max_retries,
            target_count=settings.target_study_count,
            pacing_s=settings.pacing_s,
            backoff_base_s=settings.backoff_base_s,
        )


@dataclass
class CrawlStats:
    pages_fetched: int = 0
    pages_abandoned: int = 0
    fetched: int = 0
    unique: int = 0
    kept: int = 0

    def to_dict(self) -> dict[str, int]:
        return {
            "pages_fetched": self.pages_fetched,
            "pages_abandoned": self.pages_abandoned,
            "fetched": self.fetched,
            "unique": self.unique,
            "kept": self.kept,
        }


@dataclass
class _CrawlState:
    terms: Iterator[tuple[int, str]]
    seen: set[str] = field(default_factory=set)
    studies: list[Study] = field(default_factory=list)
    stats: CrawlStats = field(default_factory=CrawlStats)

    def add(self, page: Sequence[Study]) -> int:
        added = 0
        for study in page:
            if study.id in self.seen:
                continue
            self.seen.add(study.id)
            self.studies.append(study)
            added += 1
        self.stats.fetched += len(page)
        self.stats.unique = len(self.seen)
        return added


@contextmanager
def quiet_httpx() -> Iterator[None]:
    httpx_logger = logging.getLogger("httpx")
    previous_level = httpx_logger.level
    httpx_logger.setLevel(logging.WARNING)
    try:
        yield
    finally:
        httpx_logger.setLevel(previous_level)


class BulkCrawler:
    """Cooperative worker pool that pages through every crawl term."""

    def __init__(
        self,
        client: PageSource,
        config: CrawlConfig | None = None,
        *,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        current_year: Callable[[], int] = lambda: datetime.now().year,
    ) -> None:
        self.client = client
        self.config = config or CrawlConfig()
        self._sleep = sleep
        self._current_year = current_year
        self.last_stats = CrawlStats()

    async def crawl(self, terms: Sequence[str] = HIGH_YIELD_TERMS) -> list[Study]:
        """Collect up to the target number of unique studies, newest first."""

        state = _CrawlState(terms=iter(enumerate(terms)))
        workers = max(1, min(self.config.max_concurrent, len(terms)))
        logger.info(
            "Crawling %d terms with %d workers (target=%d)",
            len(terms),
            workers,
            self.config.target_count,
        )
        with quiet_httpx():
            await asyncio.gather(*(self._worker(state) for _ in range(workers)))

        year = self._current_year()
        kept = [
            study
            for study in state.studies
            if passes_quality_gate(study.title, study.abstract)
            and is_valid_year(study.year, current_year=year)
        ]
        kept.sort(key=lambda study: study.year or 0, reverse=True)
        state.stats.kept = len(kept)
        self.last_stats = state.stats
        logger.info("Crawl finished: %s", state.stats.to_dict())
        if len(kept) < self.config.target_count:
            logger.warning(
                "Only %d studies passed the gates, target was %d",
                len(kept),
                self.config.target_count,
            )
        return kept

    def _target_reached(self, state: _CrawlState) -> bool:
        return len(state.seen) >= self.config.target_count

    async def _worker(self, state: _CrawlState) -> None:
        while not self._target_reached(state):
            try:
                index, term = next(state.terms)
            except StopIteration:
                return
            logger.debug("[%d] Searching %r - have %d studies", index, term, len(state.seen))
            await self._crawl_term(state, index, term)

    async def _crawl_term(self, state: _CrawlState, index: int, term: str) -> None:
        for page in range(self.config.max_pages_per_term):
            if self._target_reached(state):
                return
            results = await self._fetch_page(index, term, page)
            if results is None:
                state.stats.pages_abandoned += 1
                continue
            state.stats.pages_fetched += 1
            if not results:
                logger.debug("[%d] No more results for %r on page %d", index, term, page)
                return
            added = state.add(results)
            logger.debug(
                "[%d] Page %d: %d new (%d fetched) - total %d",
                index,
                page,
                added,
                len(results),
                len(state.seen),
            )
            await self._sleep(self.config.pacing_s)

    async def _fetch_page(self, index: int, term: str, page: int) -> Optional[list[Study]]:
        offset = page * self.config.page_size
        for attempt in range(1, self.config.max_retries + 1):
            try:
                return await self.client.search_with_pagination(
                    term, offset, self.config.page_size
                )
            except (httpx.HTTPError, OSDRAPIError) as exc:
                logger.warning(
                    "[%d] Retry %d/%d for page %d of %r: %s",
                    index,
                    attempt,
                    self.config.max_retries,
                    page,
                    term,
                    exc,
                )
                if attempt < self.config.max_retries:
                    await self._sleep((2**attempt) * self.config.backoff_base_s)
        logger.error("[%d] Max retries exceeded for page %d of %r", index, page, term)
        return None


__all__ = ["BulkCrawler", "CrawlConfig", "CrawlStats", "HIGH_YIELD_TERMS", "PageSource"]
