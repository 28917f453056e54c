"""Persistence for curated research records."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Protocol

from pydantic import TypeAdapter

from .models import CuratedRecord, CuratedRecordCreate, CuratedRecordPatch

logger = logging.getLogger(__name__)

_RECORDS = TypeAdapter(list[CuratedRecord])


class CuratedStore(Protocol):
    def get_all(self, published_only: bool = False) -> list[CuratedRecord]: ...

    def get(self, record_id: str) -> CuratedRecord | None: ...

    def create(
        self, payload: CuratedRecordCreate, created_by: str | None = None
    ) -> CuratedRecord: ...

    def update(self, record_id: str, patch: CuratedRecordPatch) -> CuratedRecord: ...

    def delete(self, record_id: str) -> None: ...


class InMemoryCuratedStore:
    """Dict-backed store; insertion order is the listing order."""

    def __init__(self, records: list[CuratedRecord] | None = None) -> None:
        self._records: dict[str, CuratedRecord] = {
            record.id: record for record in records or []
        }

    def get_all(self, published_only: bool = False) -> list[CuratedRecord]:
        records = list(self._records.values())
        if published_only:
            return [record for record in records if record.published]
        return records

    def get(self, record_id: str) -> CuratedRecord | None:
        return self._records.get(record_id)

    def create(
        self, payload: CuratedRecordCreate, created_by: str | None = None
    ) -> CuratedRecord:
        record = CuratedRecord(**payload.model_dump(), created_by=created_by)
        self._records[record.id] = record
        self._persist()
        return record

    def update(self, record_id: str, patch: CuratedRecordPatch) -> CuratedRecord:
        current = self._records.get(record_id)
        if current is None:
            raise KeyError(record_id)
        updated = current.apply(patch)
        self._records[record_id] = updated
        self._persist()
        return updated

    def delete(self, record_id: str) -> None:
        if self._records.pop(record_id, None) is not None:
            self._persist()

    def _persist(self) -> None:
        return None


class JsonCuratedStore(InMemoryCuratedStore):
    """Keeps every record in one JSON document, rewritten on each change."""

    def __init__(self, path: Path) -> None:
        self.path = path
        records: list[CuratedRecord] = []
        if path.exists():
            records = _RECORDS.validate_json(path.read_bytes())
            logger.info("Loaded %d curated records from %s", len(records), path)
        super().__init__(records)

    def _persist(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = _RECORDS.dump_python(
            list(self._records.values()), mode="json", by_alias=True
        )
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp_path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
        tmp_path.replace(self.path)


__all__ = ["CuratedStore", "InMemoryCuratedStore", "JsonCuratedStore"]
