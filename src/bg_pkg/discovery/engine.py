"""General search pipeline: source, merge, filter, sort, log."""

from __future__ import annotations

import asyncio
import logging
import math
from typing import Protocol, Sequence

import httpx

from ..curated.history import SearchLog
from ..curated.store import CuratedStore
from ..curated.transform import to_study
from ..search.merge import dedupe_by_id, merge_candidates
from ..search.osdr import OSDRAPIError
from ..search.types import Study
from .recommend import InterestSource, RecommendationAssembler
from .request import FilterSet, SearchRequest, SearchResponse
from .rules import apply_filters
from .sorting import sort_studies

logger = logging.getLogger(__name__)

DEFAULT_REMOTE_LIMIT = 30
MAX_VALUES_PER_FACET = 2


class CandidateSource(InterestSource, Protocol):
    async def search_by_term(self, term: str, limit: int = 20) -> list[Study]: ...

    async def search_by_filters(
        self,
        organism: str | None = None,
        assay_type: str | None = None,
        limit: int = 20,
    ) -> list[Study]: ...


class SearchEngine:
    """Runs one search request against the remote repository and curated records."""

    def __init__(
        self,
        client: CandidateSource,
        store: CuratedStore,
        search_log: SearchLog | None = None,
        *,
        remote_limit: int = DEFAULT_REMOTE_LIMIT,
        recommender: RecommendationAssembler | None = None,
    ) -> None:
        self.client = client
        self.store = store
        self.search_log = search_log
        self.remote_limit = remote_limit
        self.recommender = recommender or RecommendationAssembler(client, store)
        self._pending: set[asyncio.Task[None]] = set()

    async def search(self, request: SearchRequest, *, user_id: str | None = None) -> SearchResponse:
        if request.interests:
            results = await self.recommender.recommend(request.interests, request.sort_options)
            return SearchResponse(
                query=request.query,
                filters=request.filters,
                results=results,
                total_count=len(results),
            )

        remote = await self.remote_candidates(request.query, request.filters)
        curated = [to_study(record) for record in self.store.get_all(published_only=False)]
        merged, merge_stats = merge_candidates(remote, curated)
        filtered, counts = apply_filters(merged, request.query, request.filters)
        results = sort_studies(filtered, request.sort_options)
        logger.info(
            "Search %r: merged=%s dropped=%s results=%d",
            request.query,
            merge_stats.to_dict(),
            counts,
            len(results),
        )
        self._log_search(user_id, request, results)
        return SearchResponse(
            query=request.query,
            filters=request.filters,
            results=results,
            total_count=len(results),
        )

    async def remote_candidates(self, query: str, filters: FilterSet) -> list[Study]:
        """Remote candidates for a request; upstream failures yield an empty list."""

        try:
            return await self._fetch_remote(query.strip(), filters)
        except (httpx.HTTPError, OSDRAPIError) as exc:
            logger.warning("OSDR unavailable, continuing with curated research only: %s", exc)
            return []

    async def _fetch_remote(self, query: str, filters: FilterSet) -> list[Study]:
        limit = self.remote_limit
        per_value = math.ceil(limit / 2)
        results: list[Study] = []
        if filters.has_facets():
            for organism in filters.organism[:MAX_VALUES_PER_FACET]:
                results.extend(await self.client.search_by_filters(organism=organism, limit=per_value))
            for assay in filters.experiment_type[:MAX_VALUES_PER_FACET]:
                results.extend(await self.client.search_by_filters(assay_type=assay, limit=per_value))
            terms = [
                *filters.mission[:MAX_VALUES_PER_FACET],
                *filters.tissue_type[:MAX_VALUES_PER_FACET],
            ]
            for term in terms:
                results.extend(await self.client.search_by_term(term, per_value))
        if not results:
            if query:
                results = await self.client.search_by_term(query, limit)
            else:
                results = await self.client.get_recent(limit)
        return dedupe_by_id(results)[:limit]

    def _log_search(
        self, user_id: str | None, request: SearchRequest, results: Sequence[Study]
    ) -> None:
        if self.search_log is None:
            return
        task = asyncio.get_running_loop().create_task(
            asyncio.to_thread(
                self.search_log.record,
                user_id,
                request.query,
                request.filters.to_json_dict(),
                list(results),
            )
        )
        self._pending.add(task)
        task.add_done_callback(self._log_done)

    def _log_done(self, task: asyncio.Task[None]) -> None:
        self._pending.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Failed to record search history: %s", exc, exc_info=exc)

    async def drain(self) -> None:
        """Wait for pending search-history writes."""

        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)


__all__ = ["CandidateSource", "SearchEngine"]
