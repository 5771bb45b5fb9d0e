"""
Merge pipeline — turns one batch of uploaded exports into a merged dataset.

Stages (all synchronous, files read one after another):
  1. classify_files        — product / keywords / sales roles
  2. read_sheet            — product and keywords tables (first sheet)
  3. normalize_records     — canonical keys
  4. reconcile_sales       — one history record per ASIN
  5. build_lookup          — keyword and sales rows indexed by ASIN
  6. merge_records         — product-driven left join
  7. apply_derived_metrics — traffic ratio, listing-age bucket
  8. order_headers         — display/export column order

Errors reading the product or keywords file are fatal and propagate.
Sales sheets are optional and are skipped individually when unreadable.

Public API:
    MergeResult
    merge_files(files, reader=read_sheet, now=None) → MergeResult
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Sequence

from analysis.metrics import apply_derived_metrics
from processing.file_classifier import FileClassification, classify_files, file_name
from processing.header_orderer import collect_keys, order_headers
from processing.key_normalizer import normalize_records
from processing.merger import build_lookup, merge_records
from processing.sales_reconciler import SheetReader, reconcile_sales
from processing.sheet_reader import read_sheet

logger = logging.getLogger(__name__)


@dataclass
class MergeResult:
    """Merged rows plus everything the UI and exporter need to render them."""

    rows: list[dict[str, Any]]
    marketplace: str
    headers: list[str]
    classification: FileClassification
    sales_asin_count: int = 0
    keyword_row_count: int = 0


def merge_files(
    files: Sequence[Any],
    reader: SheetReader = read_sheet,
    now: datetime | None = None,
) -> MergeResult:
    """
    Run the full merge over one batch of uploads.

    Args:
        files: Uploaded exports in any order (paths or file-like objects).
        reader: Sheet reader, injectable for tests.
        now: Reference time for listing-age buckets (defaults to now).

    Returns:
        MergeResult with one row per product row, in product order.

    Raises:
        MissingRequiredFileError: product or keywords file not uploaded.
        DecodeError: product or keywords file is not a readable workbook.
        SheetNotFoundError: product or keywords workbook has no sheets.
    """
    classification = classify_files(files)

    product_name = file_name(classification.product)
    keywords_name = file_name(classification.keywords)

    product_rows = normalize_records(reader(classification.product))
    logger.info(f"Read {len(product_rows)} product rows from '{product_name}'")

    keyword_rows = normalize_records(reader(classification.keywords))
    logger.info(f"Read {len(keyword_rows)} keyword rows from '{keywords_name}'")

    sales_lookup = reconcile_sales(classification.sales_files, reader=reader)
    keyword_lookup = build_lookup(keyword_rows)

    merged = merge_records(product_rows, keyword_lookup, sales_lookup)
    rows = apply_derived_metrics(merged, now=now)
    headers = order_headers(collect_keys(rows))

    logger.info(
        f"Pipeline complete: {len(rows)} rows, {len(headers)} columns, "
        f"{len(sales_lookup)} sales ASINs, marketplace={classification.marketplace}"
    )

    return MergeResult(
        rows=rows,
        marketplace=classification.marketplace,
        headers=headers,
        classification=classification,
        sales_asin_count=len(sales_lookup),
        keyword_row_count=len(keyword_rows),
    )
