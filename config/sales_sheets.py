"""
Sales history sheet rules.

Each sales export carries up to five sheets of monthly history.  Only the
date-like columns of each sheet are kept; they are renamed to
"{YYYY-MM}{suffix}" so parent/sub-item and units/revenue/price history can
live side by side in one merged record.
"""

import re
from dataclasses import dataclass


@dataclass(frozen=True)
class SalesSheetRule:
    """How to harvest one sheet of a sales export."""

    sheet_name: str
    pattern: re.Pattern   # group 1 (if present) is the year-month part
    suffix: str


_MONTH_UNITS = re.compile(r"^(\d{4}-\d{2})$")
_MONTH_MONEY = re.compile(r"^(\d{4}-\d{2})\(\$\)$")

PARENT_UNITS_SUFFIX = "-父-U"
PARENT_REVENUE_SUFFIX = "-父-M"
CHILD_UNITS_SUFFIX = "-子-U"
CHILD_REVENUE_SUFFIX = "-子-M"
CHILD_PRICE_SUFFIX = "-子-P"

SALES_SHEET_RULES: list[SalesSheetRule] = [
    SalesSheetRule("产品历史月销量", _MONTH_UNITS, PARENT_UNITS_SUFFIX),
    SalesSheetRule("历史月销售额", _MONTH_MONEY, PARENT_REVENUE_SUFFIX),
    SalesSheetRule("子体历史月销量", _MONTH_UNITS, CHILD_UNITS_SUFFIX),
    SalesSheetRule("子体历史月销售额", _MONTH_MONEY, CHILD_REVENUE_SUFFIX),
    SalesSheetRule("历史月价格", _MONTH_MONEY, CHILD_PRICE_SUFFIX),
]

# The product file is authoritative for these; never copy them from sales.
IDENTITY_COLUMNS: set[str] = {"ASIN", "SKU", "商品标题", "图片", "URL", "所属类目"}

# Export groups historical columns by suffix in this order
EXPORT_SUFFIX_ORDER: list[str] = [rule.suffix for rule in SALES_SHEET_RULES]

# Any renamed historical column: "2025-01-子-U" → ("2025-01", "-子-U")
HISTORY_COLUMN_PATTERN: re.Pattern = re.compile(
    r"^(\d{4}-\d{2})(-[父子]-[UMP])$"
)

# Raw parent-level month column and sub-item units column
RAW_MONTH_PATTERN: re.Pattern = _MONTH_UNITS
CHILD_UNITS_PATTERN: re.Pattern = re.compile(r"^(\d{4}-\d{2})-子-U$")
