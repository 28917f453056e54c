"""Interest-driven recommendations with best-effort fallbacks."""

from __future__ import annotations

import logging
from typing import Protocol, Sequence

from ..curated.store import CuratedStore
from ..curated.transform import to_study
from ..search.merge import dedupe_by_id
from ..search.types import Study
from .request import SortOptions
from .sorting import sort_studies

logger = logging.getLogger(__name__)

PER_INTEREST_LIMIT = 5
FALLBACK_LIMIT = 10
MAX_RECOMMENDATIONS = 20


class InterestSource(Protocol):
    async def get_by_interest_tag(self, interest: str, limit: int = 10) -> list[Study]: ...

    async def get_recent(self, limit: int = 15) -> list[Study]: ...


def tags_overlap(tags: Sequence[str], interests: Sequence[str]) -> bool:
    """Case-insensitive substring match in either direction."""

    lowered = [interest.lower() for interest in interests]
    for tag in tags:
        tag_lower = tag.lower()
        if any(tag_lower in interest or interest in tag_lower for interest in lowered):
            return True
    return False


class RecommendationAssembler:
    """Combine remote interest searches with matching published curated records."""

    def __init__(self, client: InterestSource, store: CuratedStore) -> None:
        self.client = client
        self.store = store

    async def recommend(
        self, interests: Sequence[str], sort_options: SortOptions | None = None
    ) -> list[Study]:
        try:
            return await self._assemble(interests, sort_options)
        except Exception as exc:
            logger.warning("Recommendation assembly failed, using recent studies: %s", exc)
        try:
            return await self.client.get_recent(FALLBACK_LIMIT)
        except Exception as exc:
            logger.error("Recent studies fallback failed: %s", exc)
            return []

    async def _assemble(
        self, interests: Sequence[str], sort_options: SortOptions | None
    ) -> list[Study]:
        remote: list[Study] = []
        for interest in interests:
            remote.extend(await self.client.get_by_interest_tag(interest, PER_INTEREST_LIMIT))
        if not remote:
            logger.info("No interest matches for %s, falling back to recent", list(interests))
            remote = await self.client.get_recent(FALLBACK_LIMIT)

        curated = [
            to_study(record)
            for record in self.store.get_all(published_only=True)
            if tags_overlap(record.tags, interests)
        ]
        combined = dedupe_by_id([*remote, *curated])[:MAX_RECOMMENDATIONS]
        return sort_studies(combined, sort_options)


__all__ = ["InterestSource", "RecommendationAssembler", "tags_overlap"]
