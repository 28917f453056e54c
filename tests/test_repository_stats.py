"""Tests for statistics and dashboard aggregation."""

from __future__ import annotations

from datetime import datetime, timezone

from bg_pkg.curated.models import CuratedRecord
from bg_pkg.repository.stats import (
    CATEGORIES,
    StatisticsSnapshot,
    build_dashboard_stats,
    compute_statistics,
)
from bg_pkg.search.types import Study


def _study(study_id: str, **kwargs) -> Study:
    defaults = {
        "title": "Generic spaceflight study",
        "abstract": "An abstract describing a generic spaceflight experiment in detail.",
    }
    defaults.update(kwargs)
    return Study(id=study_id, **defaults)


def test_compute_statistics_counts_categories_years_and_months() -> None:
    studies = [
        _study("OSD-1", year=2016, tags=["Plant Biology"], release_date="2016-03-01"),
        _study("OSD-2", year=2024, title="Radiation effects on mouse neurons", release_date="Mar 2024"),
        _study("OSD-3", year=2024, abstract="Human cardiovascular adaptation during long missions.", submission_date="2024/07/10"),
        _study("OSD-4", year=None),
    ]

    snapshot = compute_statistics(studies, current_year=2024)

    assert snapshot.total_studies == 4
    assert set(snapshot.category_stats) == set(CATEGORIES)
    assert snapshot.category_stats["Plant Biology"] == 1
    assert snapshot.category_stats["Radiation Biology"] == 1
    assert snapshot.category_stats["Human Health"] == 1
    assert list(snapshot.yearly_trends)[0] == "2016"
    assert list(snapshot.yearly_trends)[-1] == "2025"
    assert snapshot.yearly_trends["2016"] == 1
    assert snapshot.yearly_trends["2017"] == 0
    assert snapshot.yearly_trends["2024"] == 2
    assert snapshot.recent_studies_count == 2
    months = {item.month: item.studies for item in snapshot.monthly_data}
    assert months["Mar"] == 2
    assert months["Jul"] == 1
    assert months["Jan"] == 0
    assert snapshot.research_trends == snapshot.yearly_trends


def test_yearly_trends_always_cover_floor_to_ceiling() -> None:
    snapshot = compute_statistics([], current_year=2024)

    assert list(snapshot.yearly_trends) == [str(year) for year in range(2018, 2026)]
    assert all(count == 0 for count in snapshot.yearly_trends.values())


def test_snapshot_serializes_with_camel_case() -> None:
    data = compute_statistics([_study("OSD-1", year=2020)], current_year=2024).model_dump(
        by_alias=True
    )
    assert {"totalStudies", "categoryStats", "yearlyTrends", "recentStudiesCount", "monthlyData", "researchTrends"} <= set(data)


def _record(title: str, **kwargs) -> CuratedRecord:
    return CuratedRecord(title=title, description="Curated description text", **kwargs)


def test_dashboard_merges_published_curated_records() -> None:
    snapshot = StatisticsSnapshot(
        total_studies=50,
        category_stats={"Plant Biology": 10, "Genetics": 4},
        yearly_trends={"2023": 5, "2024": 7},
        recent_studies_count=7,
    )
    created = datetime(2024, 5, 1, tzinfo=timezone.utc)
    records = [
        _record("Published one", published=True, tags=["Genetics", "Yeast"], year="2024", institution="JPL", created_at=created),
        _record("Published two", published=True, tags=["Yeast"], year="2020", institution="JPL", created_at=datetime(2023, 1, 1, tzinfo=timezone.utc)),
        _record("Draft", published=False, tags=["Genetics"], year="2024"),
    ]

    stats = build_dashboard_stats(snapshot, records, now=datetime(2024, 6, 1))

    assert stats["totalPapers"] == 52
    assert stats["activeProjects"] == 2
    assert stats["recentStudies"] == 8
    assert stats["categoryStats"]["Genetics"] == 5
    assert stats["categoryStats"]["Yeast"] == 2
    assert stats["researchTrends"]["2024"] == 8
    assert stats["researchTrends"]["2020"] == 1
    assert stats["publicationStatus"] == {"published": 2, "unpublished": 1}
    assert stats["institutionStats"] == {"JPL": 2}
    assert stats["topResearchAreas"][0] == {"name": "Plant Biology", "value": 10}
    assert stats["adminResearchCount"] == 2
    assert stats["nasaResearchCount"] == 50
