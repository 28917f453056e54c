from __future__ import annotations

from datetime import datetime
import re
import unicodedata
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

MIN_TITLE_LENGTH = 10
MIN_ABSTRACT_LENGTH = 50
MIN_VALID_YEAR = 2000
UNKNOWN_AUTHOR = "Unknown Researcher"
MAX_AUTHORS = 4
PROVENANCE_TAGS = ("Space Biology", "NASA Research")
STUDY_URL_TEMPLATE = "https://osdr.nasa.gov/bio/repo/data/studies/{id}"


def clean_text(value: str | None) -> str:
    """Normalize whitespace and Unicode for textual metadata."""

    if not value:
        return ""
    normalized = unicodedata.normalize("NFC", value)
    collapsed = " ".join(normalized.split())
    return collapsed.strip()


YEAR_PATTERN = re.compile(r"\d{4}")


def extract_year(value: str | None) -> int | None:
    """Return the first 4-digit run of a date string, or None."""

    if not value:
        return None
    match = YEAR_PATTERN.search(str(value))
    return int(match.group()) if match else None


def is_valid_year(year: int | None, *, current_year: int | None = None) -> bool:
    """Accept years in [2000, current_year + 1]."""

    if year is None:
        return False
    ceiling = (current_year or datetime.now().year) + 1
    return MIN_VALID_YEAR <= year <= ceiling


def year_from_dates(*dates: str | None, current_year: int | None = None) -> int | None:
    """Pick the first date whose year passes the validity window."""

    for date in dates:
        year = extract_year(date)
        if is_valid_year(year, current_year=current_year):
            return year
    return None


def passes_quality_gate(title: str | None, abstract: str | None) -> bool:
    """Content gate applied to every remote record."""

    if not title or not abstract:
        return False
    return len(title) > MIN_TITLE_LENGTH and len(abstract) > MIN_ABSTRACT_LENGTH


def split_authors(value: Any) -> list[str]:
    """Turn a contact field into at most four author names."""

    if isinstance(value, list):
        names = [clean_text(str(item)) for item in value if item]
    elif isinstance(value, str):
        names = [clean_text(part) for part in value.split(",")]
    else:
        names = []
    names = [name for name in names if name]
    return names[:MAX_AUTHORS] or [UNKNOWN_AUTHOR]


def unique_tags(values: list[str | None]) -> list[str]:
    """Deduplicate tags while keeping their first-seen order."""

    seen: dict[str, None] = {}
    for value in values:
        text = clean_text(value) if isinstance(value, str) else ""
        if text:
            seen.setdefault(text, None)
    return list(seen)


class Study(BaseModel):
    """Canonical research record shared by remote and curated sources."""

    id: str
    title: str
    abstract: str
    authors: list[str] = Field(default_factory=lambda: [UNKNOWN_AUTHOR])
    year: int | None = None
    institution: str | None = None
    organism: str | None = None
    assay_type: str | None = None
    mission_name: str | None = None
    tissue_type: str | None = None
    data_type: str | None = None
    hardware: str | None = None
    submission_date: str | None = None
    release_date: str | None = None
    tags: list[str] = Field(default_factory=list)
    url: str = ""
    citations: int = 0
    is_admin_created: bool = False
    custom_fields: dict[str, Any] | None = None
    nasa_osdr_links: list[str] = Field(default_factory=list)
    osd_study_number: str | None = None
    published: bool | None = None

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )

    def to_json_dict(self) -> dict[str, Any]:
        """Serialize with camelCase keys for API consumers."""
        return self.model_dump(mode="json", by_alias=True)


__all__ = [
    "MIN_ABSTRACT_LENGTH",
    "MIN_TITLE_LENGTH",
    "PROVENANCE_TAGS",
    "STUDY_URL_TEMPLATE",
    "Study",
    "UNKNOWN_AUTHOR",
    "clean_text",
    "extract_year",
    "is_valid_year",
    "passes_quality_gate",
    "split_authors",
    "unique_tags",
    "year_from_dates",
]
