"""
Filename classification configuration.

Patterns used by processing/file_classifier.py to decide which uploaded
export plays which role.  Exports come straight from the seller tools, so
the names are stable:

    Product-US-20260206.xlsx            → product table
    product-US-sales-20260206-1.xlsx    → sales history (zero or more)
    关键词分析_B0XXXX~B0YYYY.xlsx        → keywords table
"""

import re

# ---------------------------------------------------------------------------
# Product file: "Product-<marketplace>-<digits>.xlsx", never a sales file.
# The letters group is the marketplace code.
# ---------------------------------------------------------------------------
PRODUCT_PATTERN: re.Pattern = re.compile(
    r"^Product-([a-z]{2,})-\d{4,}\.xlsx$", re.IGNORECASE
)
SALES_MARKER: str = "sales"

# ---------------------------------------------------------------------------
# Sales files: prefix + marker + extension (all case-insensitive)
# ---------------------------------------------------------------------------
SALES_PREFIX: str = "product-"
XLSX_SUFFIX: str = ".xlsx"

# ---------------------------------------------------------------------------
# Keywords file
# ---------------------------------------------------------------------------
KEYWORDS_PATTERN: re.Pattern = re.compile(r"^关键词分析_.*\.xlsx$", re.IGNORECASE)
KEYWORDS_PREFIX: str = "关键词分析_"
KEYWORDS_RANGE_MARKER: str = "~"

# Used when the marketplace cannot be read from the product filename
DEFAULT_MARKETPLACE: str = "US"

# Placeholder shown in diagnostics for a role with no file
MISSING_FILE_LABEL: str = "无"
