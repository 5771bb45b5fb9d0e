"""
File classifier — decides which uploaded export plays which role.

Users drop all their exports at once, in any order.  Roles are identified
purely by filename (see config/filename_config.py):
  - product table   (exactly one, required)
  - keywords table  (exactly one, required)
  - sales history   (zero or more, optional)

The marketplace code ("US", "UK", ...) is read from the product filename
and travels with the merge result so exported links point to the right site.

Public API:
    classify_files(files) → FileClassification
    file_name(file) → str
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Sequence

from config.filename_config import (
    DEFAULT_MARKETPLACE,
    KEYWORDS_PATTERN,
    KEYWORDS_PREFIX,
    KEYWORDS_RANGE_MARKER,
    MISSING_FILE_LABEL,
    PRODUCT_PATTERN,
    SALES_MARKER,
    SALES_PREFIX,
    XLSX_SUFFIX,
)
from processing.errors import MissingRequiredFileError

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════════
# Data class
# ═══════════════════════════════════════════════════════════════════════════

@dataclass
class FileClassification:
    """Role assignment for one batch of uploads."""

    product: Any                 # path or file-like object
    keywords: Any
    sales_files: list[Any] = field(default_factory=list)
    marketplace: str = DEFAULT_MARKETPLACE


# ═══════════════════════════════════════════════════════════════════════════
# Public API
# ═══════════════════════════════════════════════════════════════════════════

def classify_files(files: Sequence[Any]) -> FileClassification:
    """
    Assign the product, keywords and sales roles by filename.

    Each file is assigned at most one role.  The first product and first
    keywords match win; every sales match is kept in upload order.

    Args:
        files: Paths, path strings, or file-like objects with a ``.name``
               (e.g. Streamlit UploadedFile).

    Returns:
        FileClassification with the original file objects in each role.

    Raises:
        MissingRequiredFileError: product or keywords file not found.
    """
    product = None
    keywords = None
    sales_files: list[Any] = []

    for candidate in files:
        name = file_name(candidate)

        if product is None and _is_product_name(name):
            product = candidate
            logger.info(f"Product file: '{name}'")
            continue

        if _is_sales_name(name):
            sales_files.append(candidate)
            logger.info(f"Sales file: '{name}'")
            continue

        if keywords is None and _is_keywords_name(name):
            keywords = candidate
            logger.info(f"Keywords file: '{name}'")
            continue

        logger.debug(f"Ignoring unrecognised upload '{name}'")

    if product is None or keywords is None:
        product_name = file_name(product) if product is not None else None
        keywords_name = file_name(keywords) if keywords is not None else None
        message = (
            "缺少必要文件。\n"
            "需至少包含：\n"
            "1. 主产品表 (Product-*.xlsx)\n"
            "2. 关键词表 (关键词分析_*.xlsx)\n\n"
            "当前识别：\n"
            f"Product: {product_name or MISSING_FILE_LABEL}\n"
            f"Keywords: {keywords_name or MISSING_FILE_LABEL}\n"
            f"Sales Files: {len(sales_files)} 个"
        )
        logger.error(
            f"Missing required file(s): product={product_name}, "
            f"keywords={keywords_name}, sales={len(sales_files)}"
        )
        raise MissingRequiredFileError(
            message,
            product_name=product_name,
            keywords_name=keywords_name,
            sales_count=len(sales_files),
        )

    marketplace = extract_marketplace(file_name(product))

    logger.info(
        f"Classified uploads: marketplace={marketplace}, "
        f"{len(sales_files)} sales file(s)"
    )

    return FileClassification(
        product=product,
        keywords=keywords,
        sales_files=sales_files,
        marketplace=marketplace,
    )


def file_name(file: Any) -> str:
    """Base filename of a path, path string, or named file-like object."""
    if isinstance(file, (str, os.PathLike)):
        return Path(file).name
    return Path(str(getattr(file, "name", ""))).name


def extract_marketplace(product_name: str) -> str:
    """
    Marketplace code from a product filename.

    "Product-us-20260206.xlsx" → "US".  Falls back to DEFAULT_MARKETPLACE.
    """
    match = PRODUCT_PATTERN.match(product_name)
    if match is None:
        return DEFAULT_MARKETPLACE
    return match.group(1).upper()


# ═══════════════════════════════════════════════════════════════════════════
# Internal helpers
# ═══════════════════════════════════════════════════════════════════════════

def _is_product_name(name: str) -> bool:
    return (
        PRODUCT_PATTERN.match(name) is not None
        and SALES_MARKER not in name.lower()
    )


def _is_sales_name(name: str) -> bool:
    lowered = name.lower()
    return (
        lowered.startswith(SALES_PREFIX)
        and SALES_MARKER in lowered
        and lowered.endswith(XLSX_SUFFIX)
    )


def _is_keywords_name(name: str) -> bool:
    if KEYWORDS_PATTERN.match(name):
        return True
    return name.startswith(KEYWORDS_PREFIX) and KEYWORDS_RANGE_MARKER in name
