from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from datetime import datetime
import logging
import math
import random
import re
from typing import Any, Optional

import httpx

from .http_client import create_http_client
from .merge import dedupe_by_id
from .types import (
    PROVENANCE_TAGS,
    STUDY_URL_TEMPLATE,
    Study,
    clean_text,
    passes_quality_gate,
    split_authors,
    unique_tags,
    year_from_dates,
)
from ..config import Settings

logger = logging.getLogger(__name__)

DEFAULT_INSTITUTION = "NASA"
ORGANISM_FIELD = "organism"
ASSAY_FIELD = "Study Assay Technology Type"

# First non-empty alias wins.
FIELD_ALIASES: dict[str, tuple[str, ...]] = {
    "id": ("accession", "id.accession"),
    "title": ("title", "study_title", "study.title"),
    "abstract": ("description", "study_description", "study.description"),
    "organism": (
        "organism",
        "experiment_organism",
        "study.characteristics.organism",
    ),
    "assay_type": ("study_assay_technology_type", "Study Assay Technology Type"),
    "mission_name": ("flight_mission", "study.factor value.spaceflight"),
    "tissue_type": ("tissue", "study.characteristics.tissue"),
    "data_type": ("data_type", "file.data type"),
    "submission_date": ("submit_date", "study.submit date"),
    "release_date": ("public_release_date", "study.public release date"),
    "contact": ("study_contact_name", "study.contact.name", "authors"),
    "institution": ("study_contact_organization", "study.contact.organization"),
    "hardware": ("hardware", "study.hardware"),
}

INTEREST_TERMS: dict[str, list[str]] = {
    "plant-biology": ["plant", "arabidopsis", "lettuce", "tomato", "photosynthesis"],
    "human-health": ["human", "astronaut", "cardiovascular", "bone", "muscle"],
    "microgravity-effects": ["microgravity", "gravity", "weightlessness"],
    "radiation-studies": ["radiation", "cosmic", "DNA damage", "radioprotection"],
    "microbiology": ["microbe", "bacteria", "biofilm", "microbiome"],
    "genetics": ["gene", "genetic", "epigenetic", "transcriptome", "genome"],
}


class OSDRAPIError(RuntimeError):
    """Raised when the OSDR search endpoint answers with an error status."""


def pick_field(source: Mapping[str, Any], concept: str) -> Any:
    """Return the first non-empty value among the aliases of a concept."""

    for alias in FIELD_ALIASES[concept]:
        value = source.get(alias)
        if isinstance(value, str):
            if value.strip():
                return value.strip()
        elif value:
            return value
    return None


def _text_field(source: Mapping[str, Any], concept: str) -> Optional[str]:
    value = pick_field(source, concept)
    if value is None:
        return None
    if isinstance(value, list):
        value = ", ".join(str(item) for item in value if item)
    text = clean_text(str(value))
    return text or None


def normalize_record(
    source: Mapping[str, Any],
    fallback_id: str | None = None,
    *,
    current_year: int | None = None,
) -> Optional[Study]:
    """Map one heterogeneous OSDR record onto a Study, or None when it fails the gate."""

    title = _text_field(source, "title")
    abstract = _text_field(source, "abstract")
    if not title or not abstract or not passes_quality_gate(title, abstract):
        return None

    accession = _text_field(source, "id")
    if accession:
        study_id = accession
    elif fallback_id:
        study_id = f"OSD-{fallback_id}"
    else:
        return None

    organism = _text_field(source, "organism")
    assay_type = _text_field(source, "assay_type")
    mission = _text_field(source, "mission_name")
    tissue = _text_field(source, "tissue_type")
    submitted = _text_field(source, "submission_date")
    released = _text_field(source, "release_date")

    return Study(
        id=study_id,
        title=title,
        abstract=abstract,
        authors=split_authors(pick_field(source, "contact")),
        year=year_from_dates(released, submitted, current_year=current_year),
        institution=_text_field(source, "institution") or DEFAULT_INSTITUTION,
        organism=organism,
        assay_type=assay_type,
        mission_name=mission,
        tissue_type=tissue,
        data_type=_text_field(source, "data_type"),
        hardware=_text_field(source, "hardware"),
        submission_date=submitted,
        release_date=released,
        tags=unique_tags([organism, assay_type, mission, tissue, *PROVENANCE_TAGS]),
        url=STUDY_URL_TEMPLATE.format(id=study_id),
    )


def _iter_sources(payload: Any) -> Iterable[tuple[Mapping[str, Any], str | None]]:
    if isinstance(payload, Mapping):
        hits = payload.get("hits")
        if isinstance(hits, Mapping) and isinstance(hits.get("hits"), list):
            for hit in hits["hits"]:
                if not isinstance(hit, Mapping):
                    continue
                source = hit.get("_source")
                hit_id = hit.get("_id")
                yield (
                    source if isinstance(source, Mapping) else {},
                    str(hit_id) if hit_id is not None else None,
                )
            return
        data = payload.get("data")
        if isinstance(data, list):
            payload = data
        elif isinstance(data, Mapping):
            payload = [data]
        else:
            return
    if isinstance(payload, list):
        for item in payload:
            if isinstance(item, Mapping):
                yield item, None


def normalize_results(payload: Any, *, current_year: int | None = None) -> list[Study]:
    """Normalize every usable record in a search payload."""

    studies: list[Study] = []
    for source, hit_id in _iter_sources(payload):
        study = normalize_record(source, hit_id, current_year=current_year)
        if study is not None:
            studies.append(study)
    return studies


def _payload(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError as exc:
        raise OSDRAPIError(f"OSDR API returned invalid JSON: {exc}") from exc


def _matches_term(study: Study, term: str) -> bool:
    needle = term.lower()
    return (
        needle in study.title.lower()
        or needle in study.abstract.lower()
        or any(needle in tag.lower() for tag in study.tags)
    )


class OSDRClient:
    """Async client for the NASA OSDR search endpoints."""

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        client: httpx.AsyncClient | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self.settings = settings or Settings()
        self._http = client or create_http_client(self.settings)
        self._owns_client = client is None
        self._rng = rng or random.Random()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._http.aclose()

    async def __aenter__(self) -> "OSDRClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def search_by_term(self, term: str, limit: int = 20) -> list[Study]:
        """Keyword search with a client-side filtered listing as fallback."""

        response = await self._http.get(
            f"{self.settings.api_url}study/search",
            params={"term": term, "size": str(limit)},
        )
        if response.is_success:
            studies = normalize_results(_payload(response))
            if studies:
                return studies[:limit]
            logger.warning("No results from OSDR search for %r, using listing", term)
        else:
            logger.warning(
                "OSDR search returned %s for %r, using listing",
                response.status_code,
                term,
            )
        return await self._search_listing(term, limit)

    async def _search_listing(self, term: str, limit: int) -> list[Study]:
        response = await self._http.get(f"{self.settings.api_url}study")
        if not response.is_success:
            return []
        studies = normalize_results(_payload(response))
        if term and term.strip():
            studies = [study for study in studies if _matches_term(study, term.strip())]
        return studies[:limit]

    async def search_by_filters(
        self,
        organism: str | None = None,
        assay_type: str | None = None,
        limit: int = 20,
    ) -> list[Study]:
        """Facet search for one organism and/or one assay type."""

        params: list[tuple[str, str]] = [
            ("from", "0"),
            ("size", str(limit)),
            ("type", "cgene"),
        ]
        if organism:
            params.extend([("ffield", ORGANISM_FIELD), ("fvalue", organism)])
        if assay_type:
            params.extend([("ffield", ASSAY_FIELD), ("fvalue", assay_type)])
        response = await self._http.get(f"{self.settings.base_url}search", params=params)
        if not response.is_success:
            raise OSDRAPIError(f"OSDR API error: {response.status_code}")
        return normalize_results(_payload(response))

    async def search_with_pagination(
        self, term: str, offset: int = 0, page_size: int = 100
    ) -> list[Study]:
        """Fetch one page of keyword results; HTTP failures raise."""

        response = await self._http.get(
            f"{self.settings.base_url}search",
            params={
                "term": term,
                "from": str(offset),
                "size": str(page_size),
                "type": "cgene",
            },
        )
        response.raise_for_status()
        return normalize_results(_payload(response))

    async def get_by_interest_tag(self, interest: str, limit: int = 10) -> list[Study]:
        """Search one randomly chosen term from the interest's vocabulary."""

        terms = INTEREST_TERMS.get(interest, [interest])
        term = self._rng.choice(terms)
        return await self.search_by_term(term, limit)

    async def get_recent(self, limit: int = 15) -> list[Study]:
        """Merge a few freshness queries, newest first."""

        per_term = max(1, math.ceil(limit / 3))
        collected: list[Study] = []
        for term in self.recent_terms():
            try:
                collected.extend(await self.search_by_term(term, per_term))
            except (httpx.HTTPError, OSDRAPIError) as exc:
                logger.warning("Recent studies query %r failed: %s", term, exc)
        unique = dedupe_by_id(collected)
        unique.sort(key=lambda study: study.year or 0, reverse=True)
        return unique[:limit]

    @staticmethod
    def recent_terms() -> Sequence[str]:
        return ("ISS", str(datetime.now().year), "spaceflight")

    async def get_study(self, study_id: str) -> Optional[Study]:
        """Fetch metadata for a single accession such as OSD-48."""

        numeric = re.sub(r"\D", "", study_id)
        if not numeric:
            return None
        response = await self._http.get(f"{self.settings.base_url}osd/meta/{numeric}")
        if not response.is_success:
            return None
        payload = _payload(response)
        studies = normalize_results(payload)
        if studies:
            return studies[0]
        if isinstance(payload, Mapping):
            return normalize_record(payload, numeric)
        return None


__all__ = [
    "FIELD_ALIASES",
    "INTEREST_TERMS",
    "OSDRAPIError",
    "OSDRClient",
    "normalize_record",
    "normalize_results",
    "pick_field",
]
