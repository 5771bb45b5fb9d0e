"""
Market dataset — the single-file analysis view.

Loads one product export (first sheet, raw headers kept) and precomputes
the chart tables shown on the market analysis page.  Empty cells are read
as None so the numeric rollups can tell "absent" from "zero".

Public API:
    MarketDataset
    load_market_dataset(file, reader=read_sheet) → MarketDataset
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable

import pandas as pd

from analysis.metrics import brand_share, monthly_sales_rollup, price_units_scatter
from processing.file_classifier import file_name
from processing.sheet_reader import read_sheet

logger = logging.getLogger(__name__)


@dataclass
class MarketDataset:
    rows: list[dict[str, Any]]
    total_rows: int
    monthly: pd.DataFrame       # Year / Month / Units
    brands: pd.DataFrame        # Brand / Units / Percentage (top 20)
    scatter: pd.DataFrame       # ASIN / Brand / Title / Price / Units


def load_market_dataset(
    file: Any,
    reader: Callable[..., list[dict[str, Any]]] = read_sheet,
) -> MarketDataset:
    """
    Parse one export for the market analysis charts.

    Raises:
        DecodeError: the file is not a readable workbook.
        SheetNotFoundError: the workbook has no sheets.
    """
    rows = reader(file, None, empty_value=None)

    monthly = monthly_sales_rollup(rows)
    brands = brand_share(rows)
    scatter = price_units_scatter(rows)

    logger.info(
        f"Market dataset '{file_name(file)}': {len(rows)} rows, "
        f"{monthly['Year'].nunique()} years of history, {len(brands)} brands"
    )

    return MarketDataset(
        rows=rows,
        total_rows=len(rows),
        monthly=monthly,
        brands=brands,
        scatter=scatter,
    )
