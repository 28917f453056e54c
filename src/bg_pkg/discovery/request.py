"""Search request models and boundary validation."""

from __future__ import annotations

import re
from typing import Any, Literal, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from ..search.types import Study

YearRange = Literal[
    "All Years", "2020-2024", "2015-2019", "2010-2014", "2005-2009", "2000-2004"
]
PublicationStatus = Literal["All Status", "Published", "Unpublished"]
SortKey = Literal["relevance", "date", "title", "author", "citations"]
SortOrder = Literal["asc", "desc"]

_DATE_PREFIX = re.compile(r"^(\d{1,4}(\D|$)|\d{8}$)")
_LEADING_DIGITS = re.compile(r"\d{1,4}")
_LIST_FIELDS = (
    "organism",
    "experiment_type",
    "mission",
    "tissue_type",
    "research_area",
    "keywords",
)


def _leading_year(text: str, default: int) -> int:
    match = _LEADING_DIGITS.match(text)
    return int(match.group()) if match else default


class _RequestModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="ignore"
    )


class DateRange(_RequestModel):
    start: str = ""
    end: str = ""

    @field_validator("start", "end", mode="before")
    @classmethod
    def _date_prefix(cls, value: Any) -> str:
        if value is None:
            return ""
        text = str(value).strip()
        if text and not _DATE_PREFIX.match(text):
            raise ValueError("date must start with a year, e.g. 2021-03-01")
        return text

    def start_year(self) -> int:
        return _leading_year(self.start, 0)

    def end_year(self) -> int:
        return _leading_year(self.end, 9999)


class FilterSet(_RequestModel):
    """Every facet is optional; missing and null collapse to 'no constraint'."""

    year_range: YearRange = "All Years"
    organism: list[str] = Field(default_factory=list)
    experiment_type: list[str] = Field(default_factory=list)
    mission: list[str] = Field(default_factory=list)
    tissue_type: list[str] = Field(default_factory=list)
    research_area: list[str] = Field(default_factory=list)
    publication_status: PublicationStatus = "All Status"
    custom_date_range: DateRange = Field(default_factory=DateRange)
    keywords: list[str] = Field(default_factory=list)
    osd_study_number: str = ""

    @field_validator(*_LIST_FIELDS, mode="before")
    @classmethod
    def _as_list(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, str):
            return [value] if value.strip() else []
        return value

    @field_validator(*_LIST_FIELDS)
    @classmethod
    def _drop_blank(cls, value: list[str]) -> list[str]:
        return [item.strip() for item in value if item and item.strip()]

    @field_validator("year_range", "publication_status", mode="before")
    @classmethod
    def _default_enum(cls, value: Any, info: Any) -> Any:
        if value is None or value == "":
            return "All Years" if info.field_name == "year_range" else "All Status"
        return value

    @field_validator("custom_date_range", mode="before")
    @classmethod
    def _default_range(cls, value: Any) -> Any:
        return {} if value is None else value

    @field_validator("osd_study_number", mode="before")
    @classmethod
    def _default_text(cls, value: Any) -> Any:
        return "" if value is None else value

    def has_facets(self) -> bool:
        return bool(self.organism or self.experiment_type or self.mission or self.tissue_type)

    def to_json_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class SortOptions(_RequestModel):
    sort_by: SortKey = "relevance"
    sort_order: SortOrder = "desc"
    secondary_sort: Optional[SortKey] = None


class SearchRequest(_RequestModel):
    query: str = ""
    filters: FilterSet = Field(default_factory=FilterSet)
    sort_options: Optional[SortOptions] = None
    interests: Optional[list[str]] = None

    @field_validator("query", mode="before")
    @classmethod
    def _default_query(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("filters", mode="before")
    @classmethod
    def _default_filters(cls, value: Any) -> Any:
        return {} if value is None else value


class RecommendationRequest(_RequestModel):
    interests: list[str] = Field(default_factory=list)
    sort_options: Optional[SortOptions] = None


class SearchResponse(_RequestModel):
    query: str = ""
    filters: FilterSet = Field(default_factory=FilterSet)
    results: list[Study] = Field(default_factory=list)
    total_count: int = 0

    def to_json_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class InvalidRequestError(ValueError):
    """A request payload failed validation; `field` names the first offender."""

    def __init__(self, message: str, field: str, errors: list[dict[str, Any]]) -> None:
        super().__init__(f"{field}: {message}")
        self.message = message
        self.field = field
        self.errors = errors

    def to_dict(self) -> dict[str, Any]:
        return {"message": self.message, "field": self.field, "errors": self.errors}


def invalid_request(exc: ValidationError, message: str) -> InvalidRequestError:
    """Translate a pydantic error into the structured 400 payload."""

    errors = [
        {
            "field": ".".join(str(part) for part in error["loc"]),
            "message": error["msg"],
        }
        for error in exc.errors()
    ]
    first = errors[0]["field"] if errors else ""
    return InvalidRequestError(message, first, errors)


def parse_search_request(payload: Mapping[str, Any] | None) -> SearchRequest:
    """Validate a raw search payload at the service boundary."""

    try:
        return SearchRequest.model_validate(dict(payload or {}))
    except ValidationError as exc:
        raise invalid_request(exc, "Invalid search parameters") from exc


def parse_recommendation_request(payload: Mapping[str, Any] | None) -> RecommendationRequest:
    try:
        return RecommendationRequest.model_validate(dict(payload or {}))
    except ValidationError as exc:
        raise invalid_request(exc, "Invalid recommendation parameters") from exc


__all__ = [
    "DateRange",
    "FilterSet",
    "InvalidRequestError",
    "RecommendationRequest",
    "SearchRequest",
    "SearchResponse",
    "SortOptions",
    "invalid_request",
    "parse_search_request",
    "parse_recommendation_request",
]
