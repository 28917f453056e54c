"""Comparator family shared by search and recommendations."""

from __future__ import annotations

from functools import cmp_to_key
import unicodedata
from typing import Sequence

from ..search.types import Study
from .request import SortOptions


def _fold(text: str) -> str:
    return unicodedata.normalize("NFKD", text).casefold()


def compare_text(left: str, right: str) -> int:
    """Accent- and case-insensitive ordering, raw text as the tiebreak."""

    a, b = (_fold(left), left), (_fold(right), right)
    return (a > b) - (a < b)


def _first_author(study: Study) -> str:
    return study.authors[0] if study.authors else ""


def compare_by(key: str | None, left: Study, right: Study) -> int:
    if key == "date":
        return (left.year or 0) - (right.year or 0)
    if key == "title":
        return compare_text(left.title or "", right.title or "")
    if key == "author":
        return compare_text(_first_author(left), _first_author(right))
    if key == "citations":
        return left.citations - right.citations
    return 0


def sort_studies(studies: Sequence[Study], options: SortOptions | None) -> list[Study]:
    """Stable sort; the secondary key only breaks ties and always runs ascending."""

    if options is None:
        return list(studies)

    def compare(left: Study, right: Study) -> int:
        result = compare_by(options.sort_by, left, right)
        if options.sort_order == "desc":
            result = -result
        if result == 0 and options.secondary_sort:
            result = compare_by(options.secondary_sort, left, right)
        return result

    return sorted(studies, key=cmp_to_key(compare))


__all__ = ["compare_by", "compare_text", "sort_studies"]
