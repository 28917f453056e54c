from __future__ import annotations

import asyncio
from typing import Any

from bg_pkg.curated.models import CuratedRecordCreate
from bg_pkg.curated.store import InMemoryCuratedStore
from bg_pkg.discovery.recommend import RecommendationAssembler, tags_overlap
from bg_pkg.discovery.request import SortOptions
from bg_pkg.search.types import Study


def _study(study_id: str, year: int | None = 2022) -> Study:
    return Study(
        id=study_id,
        title=f"Study {study_id}",
        abstract="Abstract text for a recommended study.",
        year=year,
    )


RECENT = [_study(f"OSD-R{i}") for i in range(10)]


class InterestClient:
    def __init__(
        self,
        by_interest: dict[str, list[Study]] | None = None,
        *,
        interest_error: Exception | None = None,
        recent_error: Exception | None = None,
    ) -> None:
        self.by_interest = by_interest or {}
        self.interest_error = interest_error
        self.recent_error = recent_error
        self.calls: list[tuple[str, Any]] = []

    async def get_by_interest_tag(self, interest: str, limit: int = 10) -> list[Study]:
        self.calls.append(("interest", (interest, limit)))
        if self.interest_error is not None:
            raise self.interest_error
        return list(self.by_interest.get(interest, []))[:limit]

    async def get_recent(self, limit: int = 15) -> list[Study]:
        self.calls.append(("recent", limit))
        if self.recent_error is not None:
            raise self.recent_error
        return RECENT[:limit]


def _recommend(assembler: RecommendationAssembler, interests: list[str], sort: SortOptions | None = None):
    return asyncio.run(assembler.recommend(interests, sort))


def test_remote_failure_returns_recent_studies() -> None:
    client = InterestClient(interest_error=RuntimeError("OSDR down"))
    assembler = RecommendationAssembler(client, InMemoryCuratedStore())

    result = _recommend(assembler, ["genetics"])

    assert result == RECENT[:10]
    assert client.calls == [("interest", ("genetics", 5)), ("recent", 10)]


def test_every_failure_yields_empty_list() -> None:
    client = InterestClient(
        interest_error=RuntimeError("OSDR down"), recent_error=RuntimeError("still down")
    )
    assembler = RecommendationAssembler(client, InMemoryCuratedStore())

    assert _recommend(assembler, ["genetics"]) == []


def test_no_interest_matches_falls_back_to_recent() -> None:
    client = InterestClient({})
    assembler = RecommendationAssembler(client, InMemoryCuratedStore())

    result = _recommend(assembler, ["astrobiology"])

    assert [study.id for study in result] == [study.id for study in RECENT]


def test_published_curated_records_with_overlapping_tags_are_appended() -> None:
    store = InMemoryCuratedStore()
    store.create(
        CuratedRecordCreate(
            title="Gene expression in orbit",
            description="Curated", tags=["Plant Genetics"], published=True,
        )
    )
    store.create(
        CuratedRecordCreate(
            title="Hidden draft", description="Curated", tags=["Genetics"], published=False,
        )
    )
    store.create(
        CuratedRecordCreate(
            title="Unrelated record", description="Curated", tags=["Radiation"], published=True,
        )
    )
    client = InterestClient({"genetics": [_study("OSD-1"), _study("OSD-2")]})

    result = _recommend(RecommendationAssembler(client, store), ["genetics"])

    assert [study.id for study in result[:2]] == ["OSD-1", "OSD-2"]
    assert [study.title for study in result[2:]] == ["Gene expression in orbit"]


def test_results_are_deduped_truncated_and_sorted() -> None:
    shared = [_study(f"OSD-{i}", year=2000 + i) for i in range(5)]
    by_interest = {
        "bone": shared,
        "muscle": shared,
        "plants": [_study(f"OSD-P{i}", year=2010 + i) for i in range(5)],
        "yeast": [_study(f"OSD-Y{i}", year=2015 + i) for i in range(5)],
        "immune": [_study(f"OSD-I{i}", year=2018) for i in range(5)],
        "radiation": [_study(f"OSD-X{i}", year=1990) for i in range(5)],
    }
    client = InterestClient(by_interest)

    result = _recommend(
        RecommendationAssembler(client, InMemoryCuratedStore()),
        list(by_interest),
        SortOptions(sort_by="date", sort_order="desc"),
    )

    ids = [study.id for study in result]
    assert len(ids) == 20
    assert len(set(ids)) == 20
    assert not any(study_id.startswith("OSD-X") for study_id in ids)
    years = [study.year for study in result]
    assert years == sorted(years, reverse=True)


def test_tags_overlap_matches_substrings_both_ways() -> None:
    assert tags_overlap(["Plant Genetics"], ["genetics"])
    assert tags_overlap(["Bone"], ["bone loss"])
    assert not tags_overlap(["Radiation"], ["genetics"])
    assert not tags_overlap([], ["genetics"])
