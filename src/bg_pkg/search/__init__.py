"""Search package public exports."""

from .types import Study, clean_text, extract_year
from .merge import MergeStats, dedupe_by_id, merge_candidates

__all__ = [
    "MergeStats",
    "Study",
    "clean_text",
    "dedupe_by_id",
    "extract_year",
    "merge_candidates",
]
