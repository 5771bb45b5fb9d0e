"""
Merger — joins product, keyword and sales records on ASIN.

The product table drives the join: every product row produces exactly one
merged row, whether or not keyword or sales data exists for it.  When the
same column exists in more than one source, the product value wins over
the keyword value, which wins over the sales value.  Sales columns are
suffix-namespaced ("2025-01-父-U"), so collisions with them are rare.

Public API:
    resolve_asin(record) → str | None
    build_lookup(records) → dict[str, dict]
    merge_records(product_rows, keyword_lookup, sales_lookup) → list[dict]
"""

import logging
from typing import Any, Iterable, Mapping, Sequence

logger = logging.getLogger(__name__)

_ASIN_KEY = "ASIN"


# ═══════════════════════════════════════════════════════════════════════════
# Public API
# ═══════════════════════════════════════════════════════════════════════════

def resolve_asin(record: Mapping[str, Any]) -> str | None:
    """
    The record's ASIN as a string, or None if it has none.

    "ASIN" is checked first (exact case), then any key spelled "asin" in
    another case.  Blank values count as missing.
    """
    value = record.get(_ASIN_KEY)
    if _is_blank(value):
        value = None
        for key, candidate in record.items():
            if isinstance(key, str) and key.lower() == "asin" and not _is_blank(candidate):
                value = candidate
                break

    if value is None:
        return None
    return str(value).strip()


def build_lookup(records: Iterable[Mapping[str, Any]]) -> dict[str, dict[str, Any]]:
    """
    Index records by ASIN.  Rows without an ASIN are skipped; when an ASIN
    repeats, the last row wins.
    """
    lookup: dict[str, dict[str, Any]] = {}
    skipped = 0

    for record in records:
        asin = resolve_asin(record)
        if asin is None:
            skipped += 1
            continue
        lookup[asin] = dict(record)

    if skipped:
        logger.debug(f"Lookup build skipped {skipped} rows without an ASIN")
    return lookup


def merge_records(
    product_rows: Sequence[Mapping[str, Any]],
    keyword_lookup: Mapping[str, Mapping[str, Any]],
    sales_lookup: Mapping[str, Mapping[str, Any]],
) -> list[dict[str, Any]]:
    """
    Left-join keyword and sales records onto the product rows.

    Args:
        product_rows: Normalized product-table rows (drive the output).
        keyword_lookup: ASIN → normalized keyword row.
        sales_lookup: ASIN → sales accumulator record.

    Returns:
        One new dict per product row, in product order.  Product rows
        without an ASIN are passed through (copied) unchanged.
    """
    merged_rows: list[dict[str, Any]] = []
    keyword_hits = 0
    sales_hits = 0

    for product_row in product_rows:
        asin = resolve_asin(product_row)
        if asin is None:
            merged_rows.append(dict(product_row))
            continue

        keyword_row = keyword_lookup.get(asin, {})
        sales_row = sales_lookup.get(asin, {})
        keyword_hits += bool(keyword_row)
        sales_hits += bool(sales_row)

        # Product columns first; keyword then sales only fill keys not yet set
        merged = dict(product_row)
        for source in (keyword_row, sales_row):
            for key, value in source.items():
                merged.setdefault(key, value)
        merged_rows.append(merged)

    logger.info(
        f"Merge complete: {len(merged_rows)} rows, "
        f"{keyword_hits} with keyword data, {sales_hits} with sales data"
    )
    return merged_rows


# ═══════════════════════════════════════════════════════════════════════════
# Internal helpers
# ═══════════════════════════════════════════════════════════════════════════

def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and value.strip() == "")
