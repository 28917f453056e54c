"""HTTP surface for the discovery service."""

from __future__ import annotations

from contextlib import asynccontextmanager
import logging
from typing import Any, AsyncIterator, Optional

from fastapi import Body, FastAPI, Header, HTTPException, Request
from fastapi.responses import JSONResponse

from . import __version__
from .config import load_settings
from .discovery.request import InvalidRequestError, parse_recommendation_request
from .repository.cache import RepositoryUnavailableError
from .service import DiscoveryService

logger = logging.getLogger(__name__)


def create_app(
    service: DiscoveryService | None = None,
    *,
    refresh_on_startup: bool = True,
) -> FastAPI:
    """Build the app; a service is created from config.toml when none is given."""

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        svc = service or DiscoveryService(load_settings())
        app.state.service = svc
        if refresh_on_startup:
            logger.info("Warming the studies cache in the background")
            svc.start_background_refresh()
        yield
        await svc.aclose()

    app = FastAPI(title="BioGalactic API", version=__version__, lifespan=lifespan)
    if service is not None:
        app.state.service = service

    @app.exception_handler(InvalidRequestError)
    async def invalid_request(_: Request, exc: InvalidRequestError) -> JSONResponse:
        return JSONResponse(status_code=400, content=exc.to_dict())

    @app.exception_handler(RepositoryUnavailableError)
    async def unavailable(_: Request, exc: RepositoryUnavailableError) -> JSONResponse:
        logger.error("Repository unavailable: %s", exc)
        return JSONResponse(
            status_code=503,
            content={"message": "Research repository is temporarily unavailable"},
        )

    def _service(request: Request) -> DiscoveryService:
        return request.app.state.service

    @app.post("/api/search")
    async def search(
        request: Request,
        payload: Optional[dict[str, Any]] = Body(default=None),
        x_user_id: Optional[str] = Header(default=None),
    ) -> dict[str, Any]:
        response = await _service(request).search(payload, user_id=x_user_id)
        return response.to_json_dict()

    @app.post("/api/recommendations")
    async def recommendations(
        request: Request, payload: Optional[dict[str, Any]] = Body(default=None)
    ) -> dict[str, Any]:
        parsed = parse_recommendation_request(payload)
        results = await _service(request).get_recommendations(
            parsed.interests, parsed.sort_options
        )
        return {
            "results": [study.to_json_dict() for study in results],
            "totalCount": len(results),
        }

    @app.get("/api/statistics")
    async def statistics(request: Request) -> dict[str, Any]:
        snapshot = await _service(request).get_statistics()
        return snapshot.model_dump(mode="json", by_alias=True)

    @app.get("/api/dashboard/stats")
    async def dashboard_stats(request: Request) -> dict[str, Any]:
        return await _service(request).get_dashboard_stats()

    @app.get("/api/filter-options")
    async def filter_options(request: Request) -> dict[str, Any]:
        return _service(request).get_filter_facet_options().to_json_dict()

    @app.get("/api/research/{study_id}")
    async def research(request: Request, study_id: str) -> dict[str, Any]:
        study = await _service(request).get_study(study_id)
        if study is None:
            raise HTTPException(status_code=404, detail="Research not found")
        return study.to_json_dict()

    @app.get("/api/admin/research")
    async def list_curated(request: Request, published_only: bool = False) -> list[dict[str, Any]]:
        records = _service(request).list_curated(published_only=published_only)
        return [record.model_dump(mode="json", by_alias=True) for record in records]

    @app.post("/api/admin/research", status_code=201)
    async def create_curated(
        request: Request,
        payload: dict[str, Any] = Body(...),
        x_user_id: Optional[str] = Header(default=None),
    ) -> dict[str, Any]:
        record = _service(request).create_curated(payload, created_by=x_user_id)
        return record.model_dump(mode="json", by_alias=True)

    @app.get("/api/admin/research/{record_id}")
    async def show_curated(request: Request, record_id: str) -> dict[str, Any]:
        record = _service(request).get_curated(record_id)
        if record is None:
            raise HTTPException(status_code=404, detail="Research not found")
        return record.model_dump(mode="json", by_alias=True)

    @app.patch("/api/admin/research/{record_id}")
    async def update_curated(
        request: Request, record_id: str, payload: dict[str, Any] = Body(...)
    ) -> dict[str, Any]:
        try:
            record = _service(request).update_curated(record_id, payload)
        except KeyError:
            raise HTTPException(status_code=404, detail="Research not found") from None
        return record.model_dump(mode="json", by_alias=True)

    @app.delete("/api/admin/research/{record_id}", status_code=204)
    async def delete_curated(request: Request, record_id: str) -> None:
        _service(request).delete_curated(record_id)

    return app


__all__ = ["create_app"]
