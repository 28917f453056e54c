"""Aggregate counts over the cached study set and curated records."""

from __future__ import annotations

from collections import Counter
from datetime import datetime
import logging
from typing import Any, Sequence

import pandas as pd  # type: ignore[import-untyped]
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ..curated.models import CuratedRecord
from ..search.types import Study

logger = logging.getLogger(__name__)

CATEGORIES = (
    "Plant Biology",
    "Human Health",
    "Microbiology",
    "Rodent Research",
    "Cell Biology",
    "Radiation Biology",
    "Neuroscience",
    "Food Systems",
    "Technology Demo",
    "Genetics",
    "Tissue Biology",
    "Developmental Biology",
)
MONTHS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")
YEAR_FLOOR = 2018
YEAR_CEILING = 2025
TOP_RESEARCH_AREAS = 8
STUDIES_PER_PROJECT = 25


class MonthlyCount(BaseModel):
    month: str
    studies: int
    papers: int


class StatisticsSnapshot(BaseModel):
    total_studies: int = 0
    category_stats: dict[str, int] = Field(default_factory=dict)
    yearly_trends: dict[str, int] = Field(default_factory=dict)
    recent_studies_count: int = 0
    monthly_data: list[MonthlyCount] = Field(default_factory=list)
    research_trends: dict[str, int] = Field(default_factory=dict)

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


def _in_category(study: Study, category: str) -> bool:
    full = category.lower()
    key = full.split(" ")[0]
    return (
        any(key in tag.lower() or full in tag.lower() for tag in study.tags)
        or key in study.title.lower()
        or key in study.abstract.lower()
    )


def _study_frame(studies: Sequence[Study]) -> pd.DataFrame:
    rows = [
        {
            "id": study.id,
            "year": study.year,
            "date": (study.submission_date or study.release_date or "").lower(),
        }
        for study in studies
    ]
    return pd.DataFrame(rows, columns=["id", "year", "date"])


def _yearly_counts(frame: pd.DataFrame) -> dict[str, int]:
    years = pd.to_numeric(frame["year"], errors="coerce").dropna().astype(int)
    counts = years.value_counts()
    observed = years.tolist()
    first = min([*observed, YEAR_FLOOR])
    last = max([*observed, YEAR_CEILING])
    return {str(year): int(counts.get(year, 0)) for year in range(first, last + 1)}


def _monthly_counts(frame: pd.DataFrame) -> list[MonthlyCount]:
    dates = frame["date"].astype(str)
    monthly: list[MonthlyCount] = []
    for index, month in enumerate(MONTHS, start=1):
        number = f"{index:02d}"
        # Approximation by substring; no date parsing.
        mask = (
            dates.str.contains(month.lower(), regex=False)
            | dates.str.contains(f"-{number}-", regex=False)
            | dates.str.contains(f"/{number}/", regex=False)
            | dates.str.contains(f"{number}/", regex=False)
        )
        count = int(mask.sum())
        monthly.append(MonthlyCount(month=month, studies=count, papers=count))
    return monthly


def compute_statistics(
    studies: Sequence[Study], *, current_year: int | None = None
) -> StatisticsSnapshot:
    """Derive category, yearly and monthly counts from a study set."""

    year = current_year or datetime.now().year
    frame = _study_frame(studies)
    category_stats = {
        category: sum(1 for study in studies if _in_category(study, category))
        for category in CATEGORIES
    }
    yearly = _yearly_counts(frame)
    snapshot = StatisticsSnapshot(
        total_studies=len(studies),
        category_stats=category_stats,
        yearly_trends=yearly,
        recent_studies_count=yearly.get(str(year), 0),
        monthly_data=_monthly_counts(frame),
        research_trends=dict(yearly),
    )
    logger.info(
        "Computed statistics over %d studies (%d years)",
        snapshot.total_studies,
        len(yearly),
    )
    return snapshot


def build_dashboard_stats(
    snapshot: StatisticsSnapshot,
    records: Sequence[CuratedRecord],
    *,
    now: datetime | None = None,
) -> dict[str, Any]:
    """Combine repository statistics with curated records for the dashboard."""

    current = now or datetime.now()
    published = [record for record in records if record.published]

    category_stats = Counter(snapshot.category_stats)
    for record in published:
        category_stats.update(record.tags)

    yearly = Counter(snapshot.yearly_trends)
    for record in published:
        if record.year:
            yearly[record.year] += 1

    institution_stats = Counter(
        record.institution for record in published if record.institution
    )
    current_year_records = sum(
        1
        for record in published
        if record.year == str(current.year) or record.created_at.year == current.year
    )
    top_areas = sorted(category_stats.items(), key=lambda item: item[1], reverse=True)
    total = snapshot.total_studies + len(published)
    return {
        "totalPapers": total,
        "recentStudies": snapshot.recent_studies_count + current_year_records,
        "activeProjects": total // STUDIES_PER_PROJECT,
        "categoryStats": dict(category_stats),
        "monthlyData": [item.model_dump() for item in snapshot.monthly_data],
        "researchTrends": dict(yearly),
        "publicationStatus": {
            "published": len(published),
            "unpublished": len(records) - len(published),
        },
        "institutionStats": dict(institution_stats),
        "topResearchAreas": [
            {"name": name, "value": value}
            for name, value in top_areas[:TOP_RESEARCH_AREAS]
        ],
        "adminResearchCount": len(published),
        "nasaResearchCount": snapshot.total_studies,
    }


__all__ = [
    "CATEGORIES",
    "MonthlyCount",
    "StatisticsSnapshot",
    "build_dashboard_stats",
    "compute_statistics",
]
