"""Admin-authored research records and their create/patch payloads."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Union
import uuid

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

CustomFieldValue = Union[str, list[str]]


def _now() -> datetime:
    return datetime.now(timezone.utc)


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CuratedRecordCreate(_CamelModel):
    title: str = Field(min_length=1)
    description: str = Field(min_length=1)
    year: str | None = None
    authors: str | None = None
    institution: str | None = None
    osd_study_number: str | None = None
    tags: list[str] = Field(default_factory=list)
    nasa_osdr_links: list[str] = Field(default_factory=list)
    custom_fields: dict[str, CustomFieldValue] = Field(default_factory=dict)
    published: bool = False

    @field_validator("title", "description")
    @classmethod
    def _strip_required(cls, value: str) -> str:
        stripped = value.strip()
        if not stripped:
            raise ValueError("must not be blank")
        return stripped


class CuratedRecordPatch(_CamelModel):
    """Partial update; only fields present in the payload are applied."""

    title: str | None = Field(default=None, min_length=1)
    description: str | None = Field(default=None, min_length=1)
    year: str | None = None
    authors: str | None = None
    institution: str | None = None
    osd_study_number: str | None = None
    tags: list[str] | None = None
    nasa_osdr_links: list[str] | None = None
    custom_fields: dict[str, CustomFieldValue] | None = None
    published: bool | None = None

    @field_validator("title", "description")
    @classmethod
    def _reject_null(cls, value: str | None) -> str:
        if value is None or not value.strip():
            raise ValueError("must not be blank")
        return value.strip()

    @field_validator("tags", "nasa_osdr_links", "custom_fields", "published")
    @classmethod
    def _reject_explicit_null(cls, value: Any) -> Any:
        if value is None:
            raise ValueError("must not be null")
        return value

    def changes(self) -> dict[str, Any]:
        return self.model_dump(exclude_unset=True)


class CuratedRecord(CuratedRecordCreate):
    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    created_by: str | None = None
    created_at: datetime = Field(default_factory=_now)
    updated_at: datetime = Field(default_factory=_now)

    def apply(self, patch: CuratedRecordPatch, *, now: datetime | None = None) -> "CuratedRecord":
        """Return a copy with the patch's supplied fields and a fresh updated_at."""

        changes = patch.changes()
        changes["updated_at"] = now or _now()
        return CuratedRecord.model_validate({**self.model_dump(), **changes})


__all__ = ["CuratedRecord", "CuratedRecordCreate", "CuratedRecordPatch"]
