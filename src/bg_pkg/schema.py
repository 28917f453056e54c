"""Schema definitions for data storage."""

from __future__ import annotations

from pathlib import Path
from typing import Sequence

import pyarrow as pa
import pyarrow.parquet as pq

from .search.types import Study

# Schema for crawled studies
STUDY_SCHEMA = pa.schema(
    [
        ("id", pa.string()),
        ("title", pa.string()),
        ("abstract", pa.string()),
        ("authors", pa.list_(pa.string())),
        ("year", pa.int64()),
        ("institution", pa.string()),
        ("organism", pa.string()),
        ("assay_type", pa.string()),
        ("mission_name", pa.string()),
        ("tissue_type", pa.string()),
        ("data_type", pa.string()),
        ("hardware", pa.string()),
        ("submission_date", pa.string()),
        ("release_date", pa.string()),
        ("tags", pa.list_(pa.string())),
        ("url", pa.string()),
    ]
)


def studies_to_table(studies: Sequence[Study]) -> pa.Table:
    rows = [study.model_dump(include=set(STUDY_SCHEMA.names)) for study in studies]
    return pa.Table.from_pylist(rows, schema=STUDY_SCHEMA)


def write_studies_parquet(studies: Sequence[Study], path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    pq.write_table(studies_to_table(studies), path)
    return path


__all__ = ["STUDY_SCHEMA", "studies_to_table", "write_studies_parquet"]
