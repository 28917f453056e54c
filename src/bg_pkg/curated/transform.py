from __future__ import annotations

import re
from typing import Any, Mapping
from urllib.parse import quote

from ..search.types import Study, clean_text
from .models import CuratedRecord

ADMIN_ID_PREFIX = "admin-"
DEFAULT_CURATED_AUTHOR = "BioGalactic Admin"
DEFAULT_CURATED_INSTITUTION = "BioGalactic Research"
OSDR_SEARCH_URL = "https://osdr.nasa.gov/bio/repo/search?q={query}"

_LEADING_DIGITS = re.compile(r"^\s*(\d+)")


def admin_study_id(record_id: str) -> str:
    return f"{ADMIN_ID_PREFIX}{record_id}"


def record_id_from_study_id(study_id: str) -> str | None:
    """Strip the admin prefix, or None for remote ids."""
    if study_id.startswith(ADMIN_ID_PREFIX):
        return study_id[len(ADMIN_ID_PREFIX) :]
    return None


def _record_year(record: CuratedRecord) -> int:
    match = _LEADING_DIGITS.match(record.year or "")
    if match:
        return int(match.group(1))
    return record.created_at.year


def to_study(record: CuratedRecord) -> Study:
    """Project a curated record onto the shared Study view."""

    authors = [
        clean_text(name) for name in (record.authors or "").split(",") if clean_text(name)
    ]
    if record.nasa_osdr_links:
        url = record.nasa_osdr_links[0]
    else:
        url = OSDR_SEARCH_URL.format(query=quote(record.title, safe=""))
    return Study(
        id=admin_study_id(record.id),
        title=record.title,
        abstract=record.description,
        authors=authors or [DEFAULT_CURATED_AUTHOR],
        year=_record_year(record),
        institution=record.institution or DEFAULT_CURATED_INSTITUTION,
        tags=list(record.tags),
        url=url,
        is_admin_created=True,
        custom_fields=dict(record.custom_fields),
        nasa_osdr_links=list(record.nasa_osdr_links),
        osd_study_number=record.osd_study_number,
        published=record.published,
    )


def custom_field_values(custom_fields: Mapping[str, Any] | None) -> list[str]:
    """Flatten string and list-of-string values of a custom-field map."""

    if not isinstance(custom_fields, Mapping):
        return []
    values: list[str] = []
    for value in custom_fields.values():
        if isinstance(value, str):
            values.append(value)
        elif isinstance(value, list):
            values.extend(item for item in value if isinstance(item, str))
    return values


__all__ = [
    "ADMIN_ID_PREFIX",
    "admin_study_id",
    "custom_field_values",
    "record_id_from_study_id",
    "to_study",
]
