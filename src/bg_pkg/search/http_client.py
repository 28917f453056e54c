from __future__ import annotations

import os
from functools import lru_cache
from typing import Any

import httpx

from .. import __version__
from ..config import Settings

CONTACT_ENV = "BG_CONTACT_EMAIL"


@lru_cache(maxsize=None)
def osdr_user_agent() -> str:
    """User-Agent sent to OSDR, with an optional contact address."""

    contact = os.getenv(CONTACT_ENV, "").strip()
    agent = f"BioGalactic/{__version__}"
    return f"{agent} (+{contact})" if contact else agent


def create_http_client(
    settings: Settings | None = None, **kwargs: Any
) -> httpx.AsyncClient:
    """Shared `httpx.AsyncClient` for every OSDR call made by one process."""

    settings = settings or Settings()
    headers = {"Accept": "application/json", "User-Agent": osdr_user_agent()}
    headers.update(kwargs.pop("headers", None) or {})
    return httpx.AsyncClient(
        timeout=httpx.Timeout(settings.timeout_s, connect=settings.connect_timeout_s),
        limits=httpx.Limits(max_connections=max(settings.max_concurrent * 2, 10)),
        follow_redirects=True,
        headers=headers,
        **kwargs,
    )


__all__ = ["create_http_client", "osdr_user_agent"]
