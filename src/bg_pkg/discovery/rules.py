"""Narrowing predicates for the search filter pipeline."""

from __future__ import annotations

from collections.abc import Callable, Sequence
import logging

from ..curated.transform import custom_field_values
from ..search.types import Study
from .request import FilterSet

logger = logging.getLogger(__name__)

YEAR_BUCKETS: dict[str, tuple[int, int]] = {
    "2020-2024": (2020, 2024),
    "2015-2019": (2015, 2019),
    "2010-2014": (2010, 2014),
    "2005-2009": (2005, 2009),
    "2000-2004": (2000, 2004),
}

Predicate = Callable[[Study], bool]


def _contains(value: str | None, needle: str) -> bool:
    return value is not None and needle in value.lower()


def _any_contains(values: Sequence[str] | None, needle: str) -> bool:
    return any(needle in value.lower() for value in values or ())


def _in_custom_fields(study: Study, needle: str) -> bool:
    if not study.is_admin_created:
        return False
    return _any_contains(custom_field_values(study.custom_fields), needle)


def _year_between(study: Study, start: int, end: int) -> bool:
    return study.year is not None and start <= study.year <= end


def _facet_matcher(
    field: Callable[[Study], str | None] | None, *, tags: bool = True
) -> Callable[[Study, str], bool]:
    def matches(study: Study, needle: str) -> bool:
        return (
            (field is not None and _contains(field(study), needle))
            or (tags and _any_contains(study.tags, needle))
            or _contains(study.title, needle)
            or _contains(study.abstract, needle)
            or _in_custom_fields(study, needle)
        )

    return matches


# Mission matching skips tags; research area has no dedicated field.
_FACETS: tuple[tuple[str, Callable[[Study, str], bool]], ...] = (
    ("organism", _facet_matcher(lambda s: s.organism)),
    ("experiment_type", _facet_matcher(lambda s: s.assay_type)),
    ("research_area", _facet_matcher(None)),
    ("mission", _facet_matcher(lambda s: s.mission_name, tags=False)),
    ("tissue_type", _facet_matcher(lambda s: s.tissue_type)),
)


def matches_text(study: Study, needle: str) -> bool:
    """Free-text match over every searchable field of a study."""

    return (
        _contains(study.title, needle)
        or _contains(study.abstract, needle)
        or _any_contains(study.tags, needle)
        or _any_contains(study.authors, needle)
        or _contains(study.institution, needle)
        or (study.year is not None and needle in str(study.year))
        or _any_contains(study.nasa_osdr_links, needle)
        or _in_custom_fields(study, needle)
    )


def matches_osd_number(study: Study, number: str) -> bool:
    needle = number.strip().upper()
    return any(
        needle in value.upper()
        for value in (study.osd_study_number, study.id, study.title)
        if value
    )


def matches_publication_status(study: Study, status: str) -> bool:
    if status == "Published":
        return not study.is_admin_created or bool(study.published)
    if status == "Unpublished":
        return study.is_admin_created and not study.published
    return True


def build_predicates(query: str, filters: FilterSet) -> list[tuple[str, Predicate]]:
    """Return the active predicates in their fixed evaluation order."""

    predicates: list[tuple[str, Predicate]] = []

    bucket = YEAR_BUCKETS.get(filters.year_range)
    if bucket is not None:
        start, end = bucket
        predicates.append(("year_range", lambda s: _year_between(s, start, end)))

    date_range = filters.custom_date_range
    if date_range.start or date_range.end:
        first, last = date_range.start_year(), date_range.end_year()
        predicates.append(("custom_date_range", lambda s: _year_between(s, first, last)))

    for name, matcher in _FACETS:
        needles = [value.lower() for value in getattr(filters, name)]
        if needles:
            predicates.append(
                (name, lambda s, n=needles, m=matcher: any(m(s, needle) for needle in n))
            )

    text = query.strip().lower()
    if text:
        predicates.append(("query", lambda s: matches_text(s, text)))

    # Keywords are OR'd: one matching keyword is enough.
    keywords = [keyword.lower() for keyword in filters.keywords]
    if keywords:
        predicates.append(
            ("keywords", lambda s: any(matches_text(s, keyword) for keyword in keywords))
        )

    osd_number = filters.osd_study_number.strip()
    if osd_number:
        predicates.append(("osd_study_number", lambda s: matches_osd_number(s, osd_number)))

    status = filters.publication_status
    if status != "All Status":
        predicates.append(
            ("publication_status", lambda s: matches_publication_status(s, status))
        )
    return predicates


def apply_filters(
    studies: Sequence[Study], query: str, filters: FilterSet
) -> tuple[list[Study], dict[str, int]]:
    """Narrow a merged candidate list and report how many studies each filter dropped."""

    result = list(studies)
    counts: dict[str, int] = {}
    for name, predicate in build_predicates(query, filters):
        kept = [study for study in result if predicate(study)]
        counts[name] = len(result) - len(kept)
        result = kept
    logger.debug("Filters kept %d of %d candidates: %s", len(result), len(studies), counts)
    return result, counts


__all__ = [
    "YEAR_BUCKETS",
    "apply_filters",
    "build_predicates",
    "matches_osd_number",
    "matches_publication_status",
    "matches_text",
]
