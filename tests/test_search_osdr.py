"""Tests for the async OSDR client against a mocked transport."""

from __future__ import annotations

import asyncio
import random
from collections.abc import Callable
from typing import Any

import httpx
import pytest

from bg_pkg.config import Settings
from bg_pkg.search.osdr import INTEREST_TERMS, OSDRAPIError, OSDRClient

ABSTRACT = (
    "Arabidopsis seedlings were grown in microgravity aboard the ISS to study "
    "root growth and gravitropism responses."
)


def _hit(accession: str, title: str, *, year: str = "2022-01-01", abstract: str = ABSTRACT) -> dict[str, Any]:
    return {
        "accession": accession,
        "study_title": title,
        "study_description": abstract,
        "public_release_date": year,
    }


def _client(handler: Callable[[httpx.Request], httpx.Response], **kwargs: Any) -> OSDRClient:
    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return OSDRClient(Settings(), client=http, **kwargs)


def _run(coro: Any) -> Any:
    return asyncio.run(coro)


def test_search_by_term_returns_normalized_hits() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"data": [_hit("OSD-1", "Plant roots in orbit study")]})

    studies = _run(_client(handler).search_by_term("plant", limit=5))

    assert [study.id for study in studies] == ["OSD-1"]
    assert seen[0].url.path.endswith("/study/search")
    assert seen[0].url.params["term"] == "plant"
    assert seen[0].url.params["size"] == "5"


def test_search_by_term_falls_back_to_filtered_listing() -> None:
    listing = [
        _hit("OSD-1", "Plant roots in orbit study"),
        _hit("OSD-2", "Rodent bone loss in flight", abstract="x" * 80),
    ]

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/study/search"):
            return httpx.Response(500)
        return httpx.Response(200, json=listing)

    studies = _run(_client(handler).search_by_term("ROOTS", limit=5))

    assert [study.id for study in studies] == ["OSD-1"]


def test_search_by_term_empty_result_also_uses_listing() -> None:
    paths: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        paths.append(request.url.path)
        if request.url.path.endswith("/study/search"):
            return httpx.Response(200, json={"data": []})
        return httpx.Response(404)

    studies = _run(_client(handler).search_by_term("anything"))

    assert studies == []
    assert len(paths) == 2


def test_search_by_term_propagates_transport_errors() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("unreachable", request=request)

    with pytest.raises(httpx.ConnectError):
        _run(_client(handler).search_by_term("plant"))


def test_search_by_filters_sends_facet_pairs() -> None:
    captured: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        captured.append(request)
        return httpx.Response(200, json={"hits": {"hits": []}})

    _run(_client(handler).search_by_filters(organism="Mus musculus", limit=15))

    params = captured[0].url.params
    assert params.get_list("ffield") == ["organism"]
    assert params.get_list("fvalue") == ["Mus musculus"]
    assert params["size"] == "15"
    assert params["type"] == "cgene"


def test_search_by_filters_raises_on_error_status() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503)

    with pytest.raises(OSDRAPIError):
        _run(_client(handler).search_by_filters(assay_type="RNA-Seq"))


def test_search_with_pagination_raises_on_http_failure() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(502)

    with pytest.raises(httpx.HTTPStatusError):
        _run(_client(handler).search_with_pagination("space", 50, 50))


def test_search_with_pagination_passes_offset() -> None:
    captured: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        captured.append(request)
        return httpx.Response(200, json={"data": [_hit("OSD-9", "Paged result in the list")]})

    studies = _run(_client(handler).search_with_pagination("space", 100, 50))

    assert [study.id for study in studies] == ["OSD-9"]
    assert captured[0].url.params["from"] == "100"
    assert captured[0].url.params["size"] == "50"


def test_get_by_interest_tag_uses_injected_rng() -> None:
    terms: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        terms.append(request.url.params.get("term", ""))
        return httpx.Response(200, json={"data": [_hit("OSD-3", "Genome stability in orbit")]})

    client = _client(handler, rng=random.Random(7))
    _run(client.get_by_interest_tag("genetics", limit=5))

    expected = random.Random(7).choice(INTEREST_TERMS["genetics"])
    assert terms == [expected]


def test_get_recent_merges_dedupes_and_sorts() -> None:
    responses = {
        "ISS": [_hit("OSD-1", "Older station experiment", year="2019-05-01")],
        "spaceflight": [
            _hit("OSD-2", "Newest flight experiment", year="2023-05-01"),
            _hit("OSD-1", "Older station experiment", year="2019-05-01"),
        ],
    }

    def handler(request: httpx.Request) -> httpx.Response:
        term = request.url.params.get("term", "")
        if term in responses:
            return httpx.Response(200, json={"data": responses[term]})
        raise httpx.ReadTimeout("slow", request=request)

    studies = _run(_client(handler).get_recent(limit=10))

    assert [study.id for study in studies] == ["OSD-2", "OSD-1"]


def test_get_study_reads_metadata_endpoint() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path.endswith("/osd/meta/48")
        return httpx.Response(200, json={"data": [_hit("OSD-48", "Metadata for one study")]})

    study = _run(_client(handler).get_study("OSD-48"))

    assert study is not None
    assert study.id == "OSD-48"
