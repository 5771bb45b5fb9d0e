"""
Sales history reconciler — folds every sales export into one record per ASIN.

Each sales export has up to five history sheets (parent units, parent
revenue, sub-item units, sub-item revenue, sub-item price).  All of them
use bare month headers ("2025-01" or "2025-01($)"), so the same header
means different things on different sheets.  Each matched month column is
renamed to "{YYYY-MM}{suffix}" (e.g. "2025-01-子-U") and stored in the
accumulator for its ASIN.

Rules:
  - Only columns matching the sheet's month pattern are kept; everything
    else on the sheet is ignored.
  - Identity columns (ASIN, SKU, title, ...) are skipped; the product file
    is authoritative for them.
  - Files and sheets are processed serially.  When two files carry the
    same (ASIN, renamed key), the later one wins; values are not summed.
  - A missing sheet, or a sheet that cannot be decoded, contributes
    nothing and does not stop the merge.

Public API:
    reconcile_sales(sales_files, reader=read_sheet) → dict[str, dict]
"""

import logging
from typing import Any, Callable, Sequence

from config.sales_sheets import IDENTITY_COLUMNS, SALES_SHEET_RULES, SalesSheetRule
from processing.errors import DecodeError
from processing.file_classifier import file_name
from processing.key_normalizer import clean_header
from processing.merger import resolve_asin
from processing.sheet_reader import read_sheet

logger = logging.getLogger(__name__)

SheetReader = Callable[..., list[dict[str, Any]]]


def reconcile_sales(
    sales_files: Sequence[Any],
    reader: SheetReader = read_sheet,
    rules: Sequence[SalesSheetRule] = SALES_SHEET_RULES,
) -> dict[str, dict[str, Any]]:
    """
    Build the sales accumulator: ASIN → {"ASIN": asin, "2025-01-父-U": ..., ...}.

    Args:
        sales_files: Sales exports in upload order.
        reader: Sheet reader with the read_sheet(file, sheet_name) signature.
        rules: Sheet rules to apply to each file.

    Returns:
        Dict keyed by ASIN string.  Empty if there are no sales files.
    """
    accumulator: dict[str, dict[str, Any]] = {}

    for sales_file in sales_files:
        name = file_name(sales_file)
        for rule in rules:
            try:
                rows = reader(sales_file, rule.sheet_name)
            except DecodeError as exc:
                logger.warning(
                    f"Skipping sheet '{rule.sheet_name}' of '{name}': {exc}"
                )
                continue

            columns_renamed = _accumulate_sheet(rows, rule, accumulator)
            logger.debug(
                f"'{name}' / '{rule.sheet_name}': {len(rows)} rows, "
                f"{columns_renamed} month columns"
            )

    logger.info(
        f"Sales reconciliation complete: {len(accumulator)} ASINs from "
        f"{len(sales_files)} file(s)"
    )
    return accumulator


def _accumulate_sheet(
    rows: list[dict[str, Any]],
    rule: SalesSheetRule,
    accumulator: dict[str, dict[str, Any]],
) -> int:
    """
    Fold one sheet's rows into the accumulator (mutated in place).

    Returns:
        Number of distinct month columns that matched the rule.
    """
    renames: dict[str, str | None] = {}

    for row in rows:
        asin = resolve_asin(row)
        if asin is None:
            continue

        merged = accumulator.setdefault(asin, {"ASIN": asin})

        for raw_key, value in row.items():
            if raw_key not in renames:
                renames[raw_key] = _renamed_key(raw_key, rule)
            new_key = renames[raw_key]
            if new_key is not None:
                merged[new_key] = value

    return sum(1 for new_key in renames.values() if new_key is not None)


def _renamed_key(raw_key: str, rule: SalesSheetRule) -> str | None:
    """
    "2025-01($)" on the parent-revenue sheet → "2025-01-父-M".
    Returns None for identity and non-month columns.
    """
    header = clean_header(raw_key)
    if header in IDENTITY_COLUMNS:
        return None

    match = rule.pattern.match(header)
    if match is None:
        return None

    return f"{match.group(1)}{rule.suffix}"
