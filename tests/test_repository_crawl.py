"""Tests for the bulk crawl worker pool."""

from __future__ import annotations

import asyncio
from typing import Any

import httpx

from bg_pkg.repository.crawl import BulkCrawler, CrawlConfig
from bg_pkg.search.types import Study

ABSTRACT = "Spaceflight study abstract long enough to pass the content quality gate."


def _study(study_id: str, year: int | None = 2022, title: str = "Spaceflight study title") -> Study:
    return Study(id=study_id, title=title, abstract=ABSTRACT, year=year)


class FakeSource:
    def __init__(self, pages: dict[str, list[Any]]) -> None:
        self.pages = pages
        self.calls: list[tuple[str, int]] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def search_with_pagination(
        self, term: str, offset: int = 0, page_size: int = 100
    ) -> list[Study]:
        self.calls.append((term, offset))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(0)
            term_pages = self.pages.get(term, [])
            index = offset // page_size
            if index >= len(term_pages):
                return []
            page = term_pages[index]
            if isinstance(page, Exception):
                raise page
            if callable(page):
                return page()
            return list(page)
        finally:
            self.in_flight -= 1


class RecordingSleep:
    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)
        await asyncio.sleep(0)


def _crawler(source: FakeSource, sleep: RecordingSleep, **config: Any) -> BulkCrawler:
    return BulkCrawler(
        source,
        CrawlConfig(**config),
        sleep=sleep,
        current_year=lambda: 2024,
    )


def test_crawl_terminates_when_later_pages_are_empty() -> None:
    source = FakeSource(
        {
            "alpha": [[_study("OSD-1", 2020), _study("OSD-2", 2023)]],
            "beta": [[_study("OSD-3", 2021), _study("OSD-1", 2020)]],
            "gamma": [[_study("OSD-4", 2019)]],
        }
    )
    sleep = RecordingSleep()

    studies = asyncio.run(
        _crawler(source, sleep, target_count=100).crawl(["alpha", "beta", "gamma"])
    )

    assert [study.id for study in studies] == ["OSD-2", "OSD-3", "OSD-1", "OSD-4"]
    assert sorted(source.calls) == [
        ("alpha", 0),
        ("alpha", 50),
        ("beta", 0),
        ("beta", 50),
        ("gamma", 0),
        ("gamma", 50),
    ]


def test_crawl_retries_with_exponential_backoff() -> None:
    request = httpx.Request("GET", "https://osdr.example/search")
    attempts = iter(
        [
            httpx.ConnectError("down", request=request),
            httpx.ConnectError("still down", request=request),
        ]
    )

    def flaky() -> list[Study]:
        error = next(attempts, None)
        if error is not None:
            raise error
        return [_study("OSD-7")]

    source = FakeSource({"alpha": [flaky]})
    sleep = RecordingSleep()
    crawler = _crawler(source, sleep, max_concurrent=1, max_pages_per_term=1)

    studies = asyncio.run(crawler.crawl(["alpha"]))

    assert [study.id for study in studies] == ["OSD-7"]
    assert sleep.delays == [2.0, 4.0, 0.2]
    assert crawler.last_stats.pages_fetched == 1


def test_crawl_abandons_page_after_max_retries_and_moves_on() -> None:
    request = httpx.Request("GET", "https://osdr.example/search")
    failure = httpx.ReadTimeout("timeout", request=request)
    source = FakeSource({"alpha": [failure, [_study("OSD-8")]]})
    sleep = RecordingSleep()
    crawler = _crawler(source, sleep, max_concurrent=1, max_pages_per_term=2)

    studies = asyncio.run(crawler.crawl(["alpha"]))

    assert [study.id for study in studies] == ["OSD-8"]
    assert source.calls == [("alpha", 0)] * 3 + [("alpha", 50)]
    assert sleep.delays == [2.0, 4.0, 0.2]
    assert crawler.last_stats.pages_abandoned == 1


def test_crawl_respects_concurrency_cap() -> None:
    terms = [f"term-{index}" for index in range(8)]
    source = FakeSource(
        {term: [[_study(f"OSD-{index}")]] for index, term in enumerate(terms)}
    )

    asyncio.run(_crawler(source, RecordingSleep(), max_concurrent=3).crawl(terms))

    assert 1 < source.max_in_flight <= 3
    assert len({term for term, _ in source.calls}) == 8


def test_crawl_stops_at_target() -> None:
    pages = [[_study(f"OSD-{page}-{item}") for item in range(3)] for page in range(10)]
    source = FakeSource({"alpha": pages, "beta": pages})
    crawler = _crawler(source, RecordingSleep(), max_concurrent=1, target_count=5)

    studies = asyncio.run(crawler.crawl(["alpha", "beta"]))

    assert len(studies) == 6
    assert source.calls == [("alpha", 0), ("alpha", 50)]


def test_crawl_applies_year_and_quality_gates() -> None:
    source = FakeSource(
        {
            "alpha": [
                [
                    _study("OSD-1", 2022),
                    _study("OSD-2", None),
                    _study("OSD-3", 2031),
                    _study("OSD-4", 2021, title="Short"),
                ]
            ]
        }
    )

    studies = asyncio.run(_crawler(source, RecordingSleep()).crawl(["alpha"]))

    assert [study.id for study in studies] == ["OSD-1"]
