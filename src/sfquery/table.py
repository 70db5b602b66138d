"""Flatten heterogeneous query results into a column/row table with paging.

Query results are lists of mappings whose values are scalars, parent records
(``{"attributes": ..., "Name": ...}``) or child sub-results
(``{"totalSize": n, "records": [...]}``). Parent records are flattened one
level into ``Parent.Field`` columns; each sub-result becomes a single
``<Relationship> (Subquery)`` summary column.
"""

from __future__ import annotations

import json
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Sequence

ATTRIBUTES_KEY = "attributes"
SUBQUERY_SUFFIX = " (Subquery)"

PAGE_SIZES = (10, 25, 50, 100, 500)
DEFAULT_PAGE_SIZE = 50

Record = Mapping[str, Any]


class ValueKind(Enum):
    SCALAR = "scalar"
    NESTED = "nested"
    SUBQUERY = "subquery"


def classify_value(value: Any) -> ValueKind:
    if isinstance(value, list):
        return ValueKind.SUBQUERY
    if isinstance(value, Mapping):
        return ValueKind.SUBQUERY if "records" in value else ValueKind.NESTED
    return ValueKind.SCALAR


def is_subquery_column(column: str) -> bool:
    return column.endswith(SUBQUERY_SUFFIX)


def compute_columns(records: Sequence[Record]) -> List[str]:
    """Ordered display columns for a list of records.

    Columns appear in first-observed order. A raw sub-result key is never a
    column, and ``X`` is dropped whenever some ``X.<field>`` column exists.
    """
    columns: Dict[str, None] = {}
    subquery_keys: set[str] = set()

    for rec in records:
        for key, value in rec.items():
            if key == ATTRIBUTES_KEY:
                continue
            kind = classify_value(value)
            if kind is ValueKind.NESTED:
                for sub_key in value:
                    if sub_key != ATTRIBUTES_KEY:
                        columns.setdefault(f"{key}.{sub_key}", None)
            elif kind is ValueKind.SUBQUERY:
                columns.setdefault(key + SUBQUERY_SUFFIX, None)
                subquery_keys.add(key)
            else:
                columns.setdefault(key, None)

    cols = list(columns)
    return [
        c
        for c in cols
        if c not in subquery_keys and not any(o != c and o.startswith(c + ".") for o in cols)
    ]


def value_at(record: Record, column: str) -> Any:
    """Follow a dotted column path; None when any segment is missing."""
    if is_subquery_column(column):
        return None
    cur: Any = record
    for part in column.split("."):
        if not isinstance(cur, Mapping):
            return None
        cur = cur.get(part)
        if cur is None:
            return None
    return cur


def format_value(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (Mapping, list)):
        return json.dumps(value, separators=(",", ":"), ensure_ascii=False, default=str)
    return str(value)


def cell_text(record: Record, column: str) -> str:
    """Plain-text rendering of a cell. Subquery cells render as a record count."""
    if is_subquery_column(column):
        cell = subquery_cell(record, column)
        return f"{cell.total_size} records" if cell else ""
    return format_value(value_at(record, column))


@dataclass(frozen=True)
class SubqueryCell:
    relationship: str
    total_size: int
    records: List[Dict[str, Any]] = field(default_factory=list)


def subquery_cell(record: Record, column: str) -> Optional[SubqueryCell]:
    if not is_subquery_column(column):
        return None
    relationship = column[: -len(SUBQUERY_SUFFIX)]
    data = record.get(relationship)
    if isinstance(data, list):
        return SubqueryCell(relationship, len(data), list(data))
    if isinstance(data, Mapping) and data.get("records") is not None:
        records = list(data["records"])
        return SubqueryCell(relationship, int(data.get("totalSize", len(records))), records)
    return None


def render_rows(records: Sequence[Record], columns: Sequence[str]) -> List[List[str]]:
    return [[cell_text(r, c) for c in columns] for r in records]


# ----------------------------------------------------------------------
# Pagination
# ----------------------------------------------------------------------
def total_pages(count: int, page_size: int) -> int:
    return math.ceil(count / page_size) if count else 0


def clamp_page(page: int, count: int, page_size: int) -> int:
    return min(max(page, 1), max(total_pages(count, page_size), 1))


def paginate(records: Sequence[Record], page: int, page_size: int) -> List[Record]:
    """Contiguous slice for a 1-based page, clamped to the valid range."""
    if page_size <= 0:
        raise ValueError(f"page_size must be positive, got {page_size}")
    if not records:
        return []
    page = clamp_page(page, len(records), page_size)
    start = (page - 1) * page_size
    return list(records[start : start + page_size])


@dataclass
class PaginationState:
    records: List[Dict[str, Any]] = field(default_factory=list)
    page: int = 1
    page_size: int = DEFAULT_PAGE_SIZE

    def replace(self, records: List[Dict[str, Any]]) -> None:
        self.records = list(records)
        self.page = 1

    @property
    def count(self) -> int:
        return len(self.records)

    @property
    def total_pages(self) -> int:
        return total_pages(self.count, self.page_size)

    @property
    def page_records(self) -> List[Record]:
        return paginate(self.records, self.page, self.page_size)

    @property
    def columns(self) -> List[str]:
        return compute_columns(self.page_records)

    @property
    def start(self) -> int:
        return (self.page - 1) * self.page_size

    @property
    def end(self) -> int:
        return min(self.start + self.page_size, self.count)

    @property
    def has_prev(self) -> bool:
        return self.page > 1

    @property
    def has_next(self) -> bool:
        return self.end < self.count

    @property
    def showing(self) -> str:
        if not self.count:
            return "No results found."
        return (
            f"Showing {self.start + 1}-{self.end} of {self.count} "
            f"(Page {self.page} / {self.total_pages})"
        )

    def go_to(self, page: int) -> int:
        self.page = clamp_page(page, self.count, self.page_size)
        return self.page

    def next(self) -> int:
        return self.go_to(self.page + 1)

    def prev(self) -> int:
        return self.go_to(self.page - 1)

    def set_page_size(self, page_size: int) -> None:
        if page_size not in PAGE_SIZES:
            raise ValueError(f"Page size must be one of {PAGE_SIZES}, got {page_size}")
        self.page_size = page_size
        self.page = 1
