"""Search history persistence (one JSON line per executed search)."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
import json
from pathlib import Path
from typing import Any, Protocol, Sequence

from ..search.types import Study


class SearchLog(Protocol):
    def record(
        self,
        user_id: str | None,
        query: str,
        filters: dict[str, Any],
        results: Sequence[Study],
    ) -> None: ...


def _entry(
    user_id: str | None,
    query: str,
    filters: dict[str, Any],
    results: Sequence[Study],
) -> dict[str, Any]:
    return {
        "timestamp": datetime.now(timezone.utc).isoformat(timespec="seconds"),
        "user_id": user_id,
        "query": query,
        "filters": filters,
        "results": [study.to_json_dict() for study in results],
    }


@dataclass
class InMemorySearchLog:
    entries: list[dict[str, Any]] = field(default_factory=list)

    def record(
        self,
        user_id: str | None,
        query: str,
        filters: dict[str, Any],
        results: Sequence[Study],
    ) -> None:
        self.entries.append(_entry(user_id, query, filters, results))


class JsonlSearchLog:
    def __init__(self, path: Path) -> None:
        self.path = path

    def record(
        self,
        user_id: str | None,
        query: str,
        filters: dict[str, Any],
        results: Sequence[Study],
    ) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        line = json.dumps(_entry(user_id, query, filters, results), ensure_ascii=False)
        with self.path.open("a", encoding="utf-8") as handle:
            handle.write(line + "\n")


__all__ = ["InMemorySearchLog", "JsonlSearchLog", "SearchLog"]
