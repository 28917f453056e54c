"""Filter dropdown options derived from published curated records."""

from __future__ import annotations

from typing import Any, Sequence

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ..curated.models import CuratedRecord
from ..curated.transform import custom_field_values

FACET_KEYWORDS: dict[str, tuple[str, ...]] = {
    "organisms": (
        "human", "arabidopsis", "mouse", "rat", "drosophila", "elegans", "coli",
        "yeast", "cell culture", "mammalian", "plant", "microbial", "organism",
    ),
    "missions": (
        "iss", "spacex", "artemis", "apollo", "shuttle", "skylab", "mir", "dragon",
        "crew", "mission", "spaceflight", "expedition",
    ),
    "research_areas": (
        "health", "biology", "microbiology", "radiation", "neuroscience", "bone",
        "food", "sleep", "cardiovascular", "culture", "genetics", "biotechnology",
        "medicine", "physiology",
    ),
    "experiment_types": (
        "rna-seq", "proteomics", "metabolomics", "imaging", "behavioral",
        "physiology", "transcriptomics", "genomics", "assay", "sequencing",
    ),
    "tissue_types": (
        "muscle", "bone", "blood", "tissue", "organ", "cell", "brain", "heart",
        "liver", "kidney",
    ),
}


class FacetOptions(BaseModel):
    organisms: list[str] = Field(default_factory=list)
    missions: list[str] = Field(default_factory=list)
    research_areas: list[str] = Field(default_factory=list)
    experiment_types: list[str] = Field(default_factory=list)
    tissue_types: list[str] = Field(default_factory=list)
    all_tags: list[str] = Field(default_factory=list)

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_json_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


def _matching(values: Sequence[str], keywords: Sequence[str]) -> list[str]:
    return [value for value in values if any(keyword in value.lower() for keyword in keywords)]


def build_facet_options(records: Sequence[CuratedRecord]) -> FacetOptions:
    """Bucket tags and custom-field values into facets by keyword containment.

    Callers pass published records only. Values keep first-seen order.
    """

    tags: dict[str, None] = {}
    extra: dict[str, None] = {}
    for record in records:
        for tag in record.tags:
            tags.setdefault(tag, None)
        for value in custom_field_values(record.custom_fields):
            if value.strip():
                extra.setdefault(value.strip(), None)

    searchable = list(dict.fromkeys([*tags, *extra]))
    facets = {name: _matching(searchable, keywords) for name, keywords in FACET_KEYWORDS.items()}
    return FacetOptions(all_tags=list(tags), **facets)


__all__ = ["FACET_KEYWORDS", "FacetOptions", "build_facet_options"]
