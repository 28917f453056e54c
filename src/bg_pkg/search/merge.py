from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from typing import Iterable, Sequence

from .types import Study

__all__ = ["MergeStats", "dedupe_by_id", "merge_candidates"]


@dataclass
class MergeStats:
    per_source: dict[str, int]
    dup_id: int
    final: int

    def to_dict(self) -> dict[str, object]:
        return {
            "per_source": self.per_source,
            "dup_id": self.dup_id,
            "final": self.final,
        }


def dedupe_by_id(studies: Iterable[Study]) -> list[Study]:
    """Keep the first study seen for each id."""

    seen: set[str] = set()
    unique: list[Study] = []
    for study in studies:
        if study.id in seen:
            continue
        seen.add(study.id)
        unique.append(study)
    return unique


def merge_candidates(
    remote: Sequence[Study],
    curated: Sequence[Study],
) -> tuple[list[Study], MergeStats]:
    """Concatenate remote then curated candidates and drop repeated ids."""

    combined = list(remote) + list(curated)
    per_source = Counter(
        "curated" if study.is_admin_created else "osdr" for study in combined
    )
    unique = dedupe_by_id(combined)
    stats = MergeStats(
        per_source=dict(per_source),
        dup_id=len(combined) - len(unique),
        final=len(unique),
    )
    return unique, stats
