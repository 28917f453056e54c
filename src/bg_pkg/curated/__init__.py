"""Curated research records: models, storage and the Study projection."""

from __future__ import annotations

from .history import InMemorySearchLog, JsonlSearchLog, SearchLog
from .models import CuratedRecord, CuratedRecordCreate, CuratedRecordPatch
from .store import CuratedStore, InMemoryCuratedStore, JsonCuratedStore
from .transform import admin_study_id, record_id_from_study_id, to_study

__all__ = [
    "CuratedRecord",
    "CuratedRecordCreate",
    "CuratedRecordPatch",
    "CuratedStore",
    "InMemoryCuratedStore",
    "InMemorySearchLog",
    "JsonCuratedStore",
    "JsonlSearchLog",
    "SearchLog",
    "admin_study_id",
    "record_id_from_study_id",
    "to_study",
]
