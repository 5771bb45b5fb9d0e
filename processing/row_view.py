"""
Row view helpers — search, sort and paginate merged rows for display.

Pure functions over lists of row dicts; nothing here mutates its input.
The Streamlit table uses them in this order: drop → search → sort → page.

Public API:
    SortKey, Page
    search_rows(rows, term, columns=None) → list[dict]
    sort_rows(rows, sort_keys) → list[dict]
    paginate(rows, page, page_size) → Page
    drop_rows_by_asin(rows, asin) → list[dict]
"""

import logging
import math
from dataclasses import dataclass, field
from functools import cmp_to_key
from typing import Any, Mapping, Sequence

from processing.merger import resolve_asin

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════════
# Data classes
# ═══════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class SortKey:
    column: str
    descending: bool = False


@dataclass
class Page:
    """One page of rows plus the numbers needed to draw a pager."""

    rows: list[dict[str, Any]] = field(default_factory=list)
    page: int = 1
    page_size: int = 50
    total_rows: int = 0
    total_pages: int = 1


# ═══════════════════════════════════════════════════════════════════════════
# Public API
# ═══════════════════════════════════════════════════════════════════════════

def search_rows(
    rows: Sequence[Mapping[str, Any]],
    term: str | None,
    columns: Sequence[str] | None = None,
) -> list[dict[str, Any]]:
    """
    Case-insensitive substring search over cell text.

    Args:
        rows: Rows to filter.
        term: Search text.  Blank → all rows are returned.
        columns: Restrict the search to these columns (default: all).
    """
    needle = (term or "").strip().casefold()
    if not needle:
        return [dict(row) for row in rows]

    matched = []
    for row in rows:
        values = row.values() if columns is None else (row.get(c) for c in columns)
        if any(needle in _text(value).casefold() for value in values):
            matched.append(dict(row))

    logger.debug(f"Search '{term}': {len(matched)}/{len(rows)} rows")
    return matched


def sort_rows(
    rows: Sequence[Mapping[str, Any]],
    sort_keys: Sequence[SortKey],
) -> list[dict[str, Any]]:
    """
    Stable multi-column sort.

    Two values compare numerically when both parse as numbers ("1,234"
    and "12%" included), otherwise as case-folded text.  Blank values go
    last in both directions.
    """
    result = [dict(row) for row in rows]
    if not sort_keys:
        return result

    def compare(a: Mapping[str, Any], b: Mapping[str, Any]) -> int:
        for key in sort_keys:
            left, right = a.get(key.column), b.get(key.column)
            left_blank, right_blank = _is_blank(left), _is_blank(right)
            if left_blank and right_blank:
                continue
            if left_blank:
                return 1
            if right_blank:
                return -1

            order = _compare_values(left, right)
            if order:
                return -order if key.descending else order
        return 0

    return sorted(result, key=cmp_to_key(compare))


def paginate(rows: Sequence[Mapping[str, Any]], page: int, page_size: int) -> Page:
    """
    Slice out one 1-based page.  Out-of-range page numbers are clamped.

    Raises:
        ValueError: page_size is not positive.
    """
    if page_size <= 0:
        raise ValueError(f"page_size must be positive, got {page_size}")

    total_rows = len(rows)
    total_pages = max(1, math.ceil(total_rows / page_size))
    page = min(max(1, page), total_pages)

    start = (page - 1) * page_size
    return Page(
        rows=[dict(row) for row in rows[start:start + page_size]],
        page=page,
        page_size=page_size,
        total_rows=total_rows,
        total_pages=total_pages,
    )


def drop_rows_by_asin(rows: Sequence[Mapping[str, Any]], asin: str) -> list[dict[str, Any]]:
    """Remove every row for *asin* from the working set."""
    target = str(asin).strip()
    kept = [dict(row) for row in rows if resolve_asin(row) != target]
    logger.info(f"Dropped {len(rows) - len(kept)} row(s) for ASIN {target}")
    return kept


# ═══════════════════════════════════════════════════════════════════════════
# Internal helpers
# ═══════════════════════════════════════════════════════════════════════════

def _compare_values(left: Any, right: Any) -> int:
    left_num, right_num = _as_number(left), _as_number(right)
    if left_num is not None and right_num is not None:
        a, b = left_num, right_num
    else:
        a, b = _text(left).casefold(), _text(right).casefold()
    return (a > b) - (a < b)


def _as_number(value: Any) -> float | None:
    """Numeric view of a cell: 12, 12.5, "1,234", "12%" → float; else None."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return None if math.isnan(value) else float(value)
    if not isinstance(value, str):
        return None

    text = value.strip().replace(",", "")
    if text.endswith("%"):
        text = text[:-1].strip()
    try:
        number = float(text)
    except ValueError:
        return None
    return None if math.isnan(number) else number


def _text(value: Any) -> str:
    return "" if value is None else str(value)


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    return isinstance(value, str) and value.strip() == ""
