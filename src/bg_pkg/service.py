"""Application root wiring the repository client, caches, stores and engines."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from datetime import datetime
import logging
import time
from typing import Any, Sequence

from pydantic import BaseModel, ValidationError

from .config import Settings
from .curated.history import JsonlSearchLog, SearchLog
from .curated.models import CuratedRecord, CuratedRecordCreate, CuratedRecordPatch
from .curated.store import CuratedStore, JsonCuratedStore
from .curated.transform import record_id_from_study_id, to_study
from .discovery.engine import SearchEngine
from .discovery.facets import FacetOptions, build_facet_options
from .discovery.recommend import RecommendationAssembler
from .discovery.request import (
    SearchRequest,
    SearchResponse,
    SortOptions,
    invalid_request,
    parse_search_request,
)
from .repository.cache import RepositoryCache, RepositoryUnavailableError
from .repository.crawl import BulkCrawler, CrawlConfig
from .repository.stats import StatisticsSnapshot, build_dashboard_stats
from .search.osdr import OSDRClient
from .search.types import Study

logger = logging.getLogger(__name__)


def _validated(model: type[BaseModel], payload: Any, message: str) -> Any:
    if isinstance(payload, model):
        return payload
    try:
        return model.model_validate(payload)
    except ValidationError as exc:
        raise invalid_request(exc, message) from exc


class DiscoveryService:
    """One instance per process; owns the caches and the shared HTTP client."""

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        client: OSDRClient | None = None,
        store: CuratedStore | None = None,
        search_log: SearchLog | None = None,
        crawler: BulkCrawler | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.settings = settings or Settings()
        self.client = client or OSDRClient(self.settings)
        self.store: CuratedStore = (
            store if store is not None else JsonCuratedStore(self.settings.curated_path)
        )
        self.search_log: SearchLog = (
            search_log
            if search_log is not None
            else JsonlSearchLog(self.settings.search_log_path)
        )
        self._clock = clock
        self.cache = RepositoryCache(
            crawler or BulkCrawler(self.client, CrawlConfig.from_settings(self.settings)),
            self.settings,
            clock=clock,
        )
        self.recommender = RecommendationAssembler(self.client, self.store)
        self.engine = SearchEngine(
            self.client,
            self.store,
            self.search_log,
            remote_limit=self.settings.search_limit,
            recommender=self.recommender,
        )

    async def __aenter__(self) -> "DiscoveryService":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self.engine.drain()
        await self.client.aclose()

    def start_background_refresh(self) -> None:
        self.cache.background_refresh()

    async def search(
        self,
        request: SearchRequest | Mapping[str, Any],
        *,
        user_id: str | None = None,
    ) -> SearchResponse:
        if not isinstance(request, SearchRequest):
            request = parse_search_request(request)
        return await self.engine.search(request, user_id=user_id)

    async def get_recommendations(
        self,
        interests: Sequence[str],
        sort_options: SortOptions | Mapping[str, Any] | None = None,
    ) -> list[Study]:
        options = None
        if sort_options is not None:
            options = _validated(SortOptions, sort_options, "Invalid sort options")
        return await self.recommender.recommend(list(interests), options)

    async def get_statistics(self) -> StatisticsSnapshot:
        return await self.cache.get_statistics()

    async def get_dashboard_stats(self) -> dict[str, Any]:
        try:
            snapshot = await self.cache.get_statistics()
        except RepositoryUnavailableError as exc:
            logger.warning("Dashboard using curated records only: %s", exc)
            snapshot = StatisticsSnapshot()
        return build_dashboard_stats(
            snapshot,
            self.store.get_all(published_only=False),
            now=datetime.fromtimestamp(self._clock()),
        )

    def get_filter_facet_options(self) -> FacetOptions:
        return build_facet_options(self.store.get_all(published_only=True))

    async def get_study(self, study_id: str) -> Study | None:
        """Resolve a curated `admin-` id locally, anything else against OSDR."""

        record_id = record_id_from_study_id(study_id)
        if record_id is not None:
            record = self.store.get(record_id)
            return to_study(record) if record is not None else None
        return await self.client.get_study(study_id)

    def list_curated(self, published_only: bool = False) -> list[CuratedRecord]:
        return self.store.get_all(published_only=published_only)

    def get_curated(self, record_id: str) -> CuratedRecord | None:
        return self.store.get(record_id)

    def create_curated(
        self,
        payload: CuratedRecordCreate | Mapping[str, Any],
        created_by: str | None = None,
    ) -> CuratedRecord:
        data = _validated(CuratedRecordCreate, payload, "Invalid research data")
        record = self.store.create(data, created_by=created_by)
        logger.info("Created curated record %s", record.id)
        return record

    def update_curated(
        self, record_id: str, patch: CuratedRecordPatch | Mapping[str, Any]
    ) -> CuratedRecord:
        data = _validated(CuratedRecordPatch, patch, "Invalid research data")
        return self.store.update(record_id, data)

    def delete_curated(self, record_id: str) -> None:
        self.store.delete(record_id)
        logger.info("Deleted curated record %s", record_id)


__all__ = ["DiscoveryService"]
