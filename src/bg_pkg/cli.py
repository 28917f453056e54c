"""CLI entrypoints for BioGalactic."""

from __future__ import annotations

import asyncio
import json
import logging
import os
from pathlib import Path
from typing import Any, Awaitable, Callable, Optional, TypeVar

import typer
from dotenv import load_dotenv

from .config import load_settings
from .discovery.request import InvalidRequestError
from .repository.cache import RepositoryUnavailableError
from .schema import write_studies_parquet
from .search.types import Study
from .service import DiscoveryService

# Load environment variables from .env file
load_dotenv()

T = TypeVar("T")

app = typer.Typer(add_completion=False, no_args_is_help=True)
curated_app = typer.Typer(add_completion=False, no_args_is_help=True)
app.add_typer(curated_app, name="curated")


@app.callback()
def main(
    log_level: str = typer.Option(
        os.getenv("BG_LOG_LEVEL", "WARNING"),
        "--log-level",
        help="Logging level (DEBUG, INFO, WARNING, ERROR)",
    ),
) -> None:
    """BioGalactic research discovery commands."""

    logging.basicConfig(
        level=getattr(logging, log_level.upper(), logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def build_service() -> DiscoveryService:
    return DiscoveryService(load_settings())


def _run(action: Callable[[DiscoveryService], Awaitable[T]]) -> T:
    """Run one coroutine against a fresh service and map domain errors to exit codes."""

    async def runner() -> T:
        async with build_service() as service:
            return await action(service)

    try:
        return asyncio.run(runner())
    except InvalidRequestError as exc:
        typer.secho(f"Invalid request: {exc}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=2) from exc
    except RepositoryUnavailableError as exc:
        typer.secho(f"Repository unavailable: {exc}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1) from exc


def _echo_json(data: Any) -> None:
    typer.echo(json.dumps(data, indent=2, ensure_ascii=False))


def _echo_studies(studies: list[Study]) -> None:
    for study in studies:
        year = study.year if study.year is not None else "----"
        typer.echo(f"{study.id:<24} {year}  {study.title}")


def _sort_payload(
    sort_by: Optional[str], sort_order: Optional[str], secondary: Optional[str]
) -> Optional[dict[str, Any]]:
    if not sort_by:
        return None
    return {"sortBy": sort_by, "sortOrder": sort_order or "desc", "secondarySort": secondary}


@app.command(name="search")
def search(
    query: str = typer.Argument("", help="Free-text query"),
    organism: list[str] = typer.Option([], "--organism", help="Organism facet (repeatable)"),
    experiment_type: list[str] = typer.Option([], "--experiment-type"),
    mission: list[str] = typer.Option([], "--mission"),
    tissue_type: list[str] = typer.Option([], "--tissue-type"),
    research_area: list[str] = typer.Option([], "--research-area"),
    keyword: list[str] = typer.Option([], "--keyword", help="Additional keyword (repeatable)"),
    year_range: str = typer.Option("All Years", "--year-range", show_default=True),
    status: str = typer.Option("All Status", "--status", show_default=True),
    osd_number: str = typer.Option("", "--osd", help="OSD study number substring"),
    sort_by: Optional[str] = typer.Option(None, "--sort-by"),
    sort_order: Optional[str] = typer.Option(None, "--sort-order"),
    secondary_sort: Optional[str] = typer.Option(None, "--secondary-sort"),
    user: Optional[str] = typer.Option(None, "--user", help="User id stored with the search"),
    as_json: bool = typer.Option(False, "--json", help="Print the full JSON response"),
) -> None:
    """Search OSDR studies and curated research."""

    payload: dict[str, Any] = {
        "query": query,
        "filters": {
            "yearRange": year_range,
            "organism": organism,
            "experimentType": experiment_type,
            "mission": mission,
            "tissueType": tissue_type,
            "researchArea": research_area,
            "keywords": keyword,
            "publicationStatus": status,
            "osdStudyNumber": osd_number,
        },
        "sortOptions": _sort_payload(sort_by, sort_order, secondary_sort),
    }
    response = _run(lambda service: service.search(payload, user_id=user))
    if as_json:
        _echo_json(response.to_json_dict())
        return
    _echo_studies(response.results)
    typer.echo(f"Search OK | query='{response.query}' total={response.total_count}")


@app.command(name="recommend")
def recommend(
    interests: list[str] = typer.Argument(..., help="Interest keys, e.g. plant-biology"),
    sort_by: Optional[str] = typer.Option(None, "--sort-by"),
    sort_order: Optional[str] = typer.Option(None, "--sort-order"),
    as_json: bool = typer.Option(False, "--json"),
) -> None:
    """Recommend studies for a list of interests."""

    sort_options = _sort_payload(sort_by, sort_order, None)
    studies = _run(lambda service: service.get_recommendations(interests, sort_options))
    if as_json:
        _echo_json([study.to_json_dict() for study in studies])
        return
    _echo_studies(studies)
    typer.echo(f"Recommendations OK | total={len(studies)}")


@app.command(name="stats")
def stats() -> None:
    """Print repository statistics (crawls on a cold cache)."""

    snapshot = _run(lambda service: service.get_statistics())
    _echo_json(snapshot.model_dump(mode="json", by_alias=True))


@app.command(name="dashboard")
def dashboard() -> None:
    """Print dashboard statistics including curated research."""

    _echo_json(_run(lambda service: service.get_dashboard_stats()))


@app.command(name="facets")
def facets() -> None:
    """Print filter options derived from published curated research."""

    async def action(service: DiscoveryService) -> dict[str, Any]:
        return service.get_filter_facet_options().to_json_dict()

    _echo_json(_run(action))


@app.command(name="study")
def study(study_id: str = typer.Argument(..., help="OSD accession or admin-<id>")) -> None:
    """Show one study."""

    found = _run(lambda service: service.get_study(study_id))
    if found is None:
        typer.secho(f"Study {study_id} not found", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
    _echo_json(found.to_json_dict())


@app.command(name="crawl")
def crawl(
    out: Path = typer.Option(
        Path("data/cache/studies.parquet"),
        "--out",
        help="Parquet file for the crawled studies",
        show_default=True,
    ),
    target: Optional[int] = typer.Option(
        None, "--target", min=1, help="Unique study target (default from config)"
    ),
) -> None:
    """Run the bulk crawl once and save the result as Parquet."""

    async def action(service: DiscoveryService) -> tuple[list[Study], dict[str, int]]:
        crawler = service.cache.crawler
        if target is not None:
            crawler.config.target_count = target
        studies = await crawler.crawl()
        return studies, crawler.last_stats.to_dict()

    studies, crawl_stats = _run(action)
    if not studies:
        typer.secho("Crawl returned no usable studies", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
    write_studies_parquet(studies, out)
    typer.echo(
        "Crawl OK | "
        f"pages={crawl_stats['pages_fetched']} "
        f"abandoned={crawl_stats['pages_abandoned']} "
        f"unique={crawl_stats['unique']} "
        f"kept={crawl_stats['kept']} "
        f"path={out}"
    )


@app.command(name="serve")
def serve(
    host: str = typer.Option("127.0.0.1", "--host"),
    port: int = typer.Option(8000, "--port"),
) -> None:
    """Run the HTTP API with uvicorn."""

    import uvicorn

    from .api import create_app

    uvicorn.run(create_app(), host=host, port=port)


def _load_json_option(raw: Optional[str], name: str) -> Any:
    if raw is None:
        return None
    try:
        return json.loads(raw)
    except json.JSONDecodeError as exc:
        raise typer.BadParameter(f"{name} must be valid JSON", param_hint=name) from exc


def _curated(action: Callable[[DiscoveryService], T]) -> T:
    async def wrapped(service: DiscoveryService) -> T:
        return action(service)

    return _run(wrapped)


@curated_app.command(name="list")
def curated_list(
    published_only: bool = typer.Option(False, "--published-only"),
) -> None:
    """List curated research records."""

    records = _curated(lambda service: service.list_curated(published_only))
    for record in records:
        flag = "published" if record.published else "draft"
        typer.echo(f"{record.id}  [{flag}]  {record.title}")
    typer.echo(f"Curated OK | total={len(records)}")


@curated_app.command(name="show")
def curated_show(record_id: str) -> None:
    """Show one curated record."""

    record = _curated(lambda service: service.get_curated(record_id))
    if record is None:
        typer.secho(f"Record {record_id} not found", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
    _echo_json(record.model_dump(mode="json", by_alias=True))


@curated_app.command(name="add")
def curated_add(
    title: str = typer.Option(..., "--title"),
    description: str = typer.Option(..., "--description"),
    year: Optional[str] = typer.Option(None, "--year"),
    authors: Optional[str] = typer.Option(None, "--authors", help="Comma separated"),
    institution: Optional[str] = typer.Option(None, "--institution"),
    osd_number: Optional[str] = typer.Option(None, "--osd"),
    tag: list[str] = typer.Option([], "--tag"),
    link: list[str] = typer.Option([], "--link"),
    custom_fields: Optional[str] = typer.Option(None, "--custom-fields", help="JSON object"),
    published: bool = typer.Option(False, "--published"),
    created_by: Optional[str] = typer.Option(None, "--created-by"),
) -> None:
    """Create a curated research record."""

    payload: dict[str, Any] = {
        "title": title,
        "description": description,
        "year": year,
        "authors": authors,
        "institution": institution,
        "osdStudyNumber": osd_number,
        "tags": tag,
        "nasaOsdrLinks": link,
        "customFields": _load_json_option(custom_fields, "--custom-fields") or {},
        "published": published,
    }
    record = _curated(lambda service: service.create_curated(payload, created_by))
    typer.echo(f"Created admin-{record.id}")


@curated_app.command(name="update")
def curated_update(
    record_id: str,
    patch: str = typer.Option(..., "--patch", help="JSON object with the fields to change"),
) -> None:
    """Apply a partial update to a curated record."""

    changes = _load_json_option(patch, "--patch")
    try:
        record = _curated(lambda service: service.update_curated(record_id, changes))
    except KeyError:
        typer.secho(f"Record {record_id} not found", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1) from None
    typer.echo(f"Updated {record.id}")


@curated_app.command(name="delete")
def curated_delete(record_id: str) -> None:
    """Delete a curated record."""

    _curated(lambda service: service.delete_curated(record_id))
    typer.echo(f"Deleted {record_id}")


__all__ = ["app", "build_service"]
