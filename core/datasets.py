"""Header-driven sample datasets and their CSV, JSON and SQL renderings."""

from __future__ import annotations

import csv
import io
import json
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping

MIN_ROWS = 1
MAX_ROWS = 50
DEFAULT_ROWS = 5
DEFAULT_HEADERS = ("Project Name", "Owner", "Due Date")

SQL_TABLE = "generated_data"
SCHEMA_SQL_TABLE = "public.generated_data"
FORMATS = ("csv", "json", "sql", "neon", "supabase")


@dataclass(slots=True)
class Dataset:
    columns: List[str]
    rows: List[Dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {"columns": list(self.columns), "rows": [dict(row) for row in self.rows]}


def normalise_headers(headers: Iterable[str]) -> List[str]:
    """Trim headers, dropping blanks and repeats while keeping first-seen order."""

    seen: List[str] = []
    for header in headers:
        value = header.strip()
        if value and value not in seen:
            seen.append(value)
    return seen


def generate_header_dataset(headers: Iterable[str], rows: int = DEFAULT_ROWS) -> Dataset:
    """Placeholder rows for ``headers``; the row count is clamped to 1..50."""

    columns = list(headers)
    count = max(MIN_ROWS, min(rows, MAX_ROWS))
    data = [
        {header: f"{header} value {(index + 1) * (column + 1)}" for column, header in enumerate(columns)}
        for index in range(count)
    ]
    return Dataset(columns=columns, rows=data)


def _cells(dataset: Dataset) -> List[Dict[str, str]]:
    return [
        {column: "" if row.get(column) is None else str(row.get(column)) for column in dataset.columns}
        for row in dataset.rows
    ]


def to_csv(dataset: Dataset) -> str:
    if not dataset.rows:
        return ""
    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=dataset.columns, lineterminator="\n")
    writer.writeheader()
    writer.writerows(_cells(dataset))
    return buffer.getvalue()[:-1]


def to_json(dataset: Dataset) -> str:
    if not dataset.rows:
        return ""
    return json.dumps(_cells(dataset), indent=2, ensure_ascii=False)


def _sql_literal(value: str) -> str:
    return "'" + value.replace("'", "''") + "'"


def to_sql(dataset: Dataset, table: str = SQL_TABLE) -> str:
    """Single multi-row ``INSERT`` statement; identifiers are double-quoted."""

    if not dataset.rows:
        return ""
    column_list = ", ".join(f'"{column}"' for column in dataset.columns)
    values = ",\n  ".join(
        "(" + ", ".join(_sql_literal(row[column]) for column in dataset.columns) + ")"
        for row in _cells(dataset)
    )
    return f"INSERT INTO {table} ({column_list})\nVALUES\n  {values};"


def render_formats(dataset: Dataset) -> Dict[str, str]:
    return {
        "csv": to_csv(dataset),
        "json": to_json(dataset),
        "sql": to_sql(dataset, SQL_TABLE),
        "neon": to_sql(dataset, SCHEMA_SQL_TABLE),
        "supabase": to_sql(dataset, SCHEMA_SQL_TABLE),
    }


def dataset_from_mapping(data: Mapping[str, Any]) -> Dataset:
    columns = [str(column) for column in data.get("columns") or []]
    rows = [dict(row) for row in data.get("rows") or [] if isinstance(row, Mapping)]
    return Dataset(columns=columns, rows=rows)


__all__ = [
    "DEFAULT_HEADERS",
    "DEFAULT_ROWS",
    "FORMATS",
    "Dataset",
    "normalise_headers",
    "generate_header_dataset",
    "to_csv",
    "to_json",
    "to_sql",
    "render_formats",
    "dataset_from_mapping",
]
