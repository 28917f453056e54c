"""Search aggregation, filtering, ranking and recommendations."""

from __future__ import annotations

from .engine import SearchEngine
from .facets import FacetOptions, build_facet_options
from .recommend import RecommendationAssembler
from .request import (
    FilterSet,
    InvalidRequestError,
    SearchRequest,
    SearchResponse,
    SortOptions,
    parse_search_request,
    parse_recommendation_request,
)
from .rules import apply_filters
from .sorting import sort_studies

__all__ = [
    "FacetOptions",
    "FilterSet",
    "InvalidRequestError",
    "RecommendationAssembler",
    "SearchEngine",
    "SearchRequest",
    "SearchResponse",
    "SortOptions",
    "apply_filters",
    "build_facet_options",
    "parse_search_request",
    "parse_recommendation_request",
    "sort_studies",
]
