"""
Excel exporter — writes the merged search list as a formatted workbook.

One sheet, "Search List":
  - columns in display order, then the monthly history columns grouped by
    sheet kind (父-U, 父-M, 子-U, 子-M, 子-P) with the newest month first
  - 序号 filled with the row number; 主图 holds the embedded product image
  - ASIN / 品牌 / BuyBox卖家 / 自然排名 cells hyperlinked
  - empty values written as "-"
  - centred cells, frozen header row, auto-filter over the data

Images are fetched one at a time through a shared requests.Session (5 s
timeout) and shrunk with Pillow to fit 100×100.  A failed fetch leaves
the image URL as the cell text.

Public API:
    export_headers(headers) → list[str]
    export_to_excel(rows, headers, output, site="US", fetch_image=None)
    fetch_and_resize(url) → BytesIO | None
"""

import io
import logging
import re
from datetime import date, datetime
from pathlib import Path
from typing import Any, Callable, Mapping, Sequence

import openpyxl
import requests
from openpyxl.drawing.image import Image as XLImage
from openpyxl.styles import Alignment, Font, PatternFill
from openpyxl.utils import get_column_letter
from PIL import Image as PILImage

from config.filename_config import DEFAULT_MARKETPLACE
from config.header_rules import (
    ASIN_LINK_KEYS,
    BRAND_KEY,
    BRAND_LINK_KEY,
    IMAGE_HEADER,
    IMAGE_SOURCE_KEYS,
    NATURAL_RANK_LABEL,
    RANK_LINK_TEMPLATE,
    ROW_NUMBER_HEADER,
    SELLER_HEADER,
    SELLER_LINK_KEY,
)
from config.sales_sheets import EXPORT_SUFFIX_ORDER, HISTORY_COLUMN_PATTERN
from processing.merger import resolve_asin

logger = logging.getLogger(__name__)

ImageFetcher = Callable[[str], io.BytesIO | None]


# ═══════════════════════════════════════════════════════════════════════════
# Constants
# ═══════════════════════════════════════════════════════════════════════════

_SHEET_TITLE = "Search List"
_EMPTY_CELL = "-"

_HEADER_FILL = PatternFill(start_color="4472C4", end_color="4472C4", fill_type="solid")
_HEADER_FONT = Font(color="FFFFFF", bold=True, size=11)
_LINK_FONT = Font(color="FF000000", underline="single")
_CENTERED = Alignment(horizontal="center", vertical="center", wrap_text=True)

_MIN_COL_WIDTH = 8
_MAX_COL_WIDTH = 40
_IMAGE_COL_WIDTH = 15

_IMAGE_MAX_SIZE = (100, 100)
_IMAGE_ROW_HEIGHT = 80   # points; fits a 100 px image
_IMAGE_TIMEOUT = 5       # seconds

_CJK_PATTERN = re.compile(r"[一-龥]")

_IMAGE_SESSION = requests.Session()


# ═══════════════════════════════════════════════════════════════════════════
# Public API
# ═══════════════════════════════════════════════════════════════════════════

def export_headers(headers: Sequence[str]) -> list[str]:
    """
    Export column order: non-historical headers as displayed, then the
    suffixed history columns grouped by suffix, newest month first.
    """
    regular: list[str] = []
    history: list[tuple[int, str, str]] = []

    for header in dict.fromkeys(headers):
        match = HISTORY_COLUMN_PATTERN.match(header)
        if match is None:
            regular.append(header)
            continue
        year_month, suffix = match.groups()
        rank = EXPORT_SUFFIX_ORDER.index(suffix) if suffix in EXPORT_SUFFIX_ORDER else len(EXPORT_SUFFIX_ORDER)
        history.append((rank, year_month, header))

    # Newest first within a suffix group: sort by month descending, then
    # (stable) by suffix rank ascending
    history.sort(key=lambda item: item[1], reverse=True)
    history.sort(key=lambda item: item[0])
    return regular + [header for _, _, header in history]


def export_to_excel(
    rows: Sequence[Mapping[str, Any]],
    headers: Sequence[str],
    output: Any,
    site: str = DEFAULT_MARKETPLACE,
    fetch_image: ImageFetcher | None = None,
) -> Any:
    """
    Write *rows* to a formatted .xlsx workbook.

    Args:
        rows: Merged rows (not modified).
        headers: Display header order; history columns are regrouped.
        output: Path / path string, or a binary file object (BytesIO).
        site: Marketplace code used in the 自然排名 link.
        fetch_image: url → PNG/JPEG bytes buffer or None.  Defaults to an
                     HTTP fetch with Pillow resizing.

    Returns:
        *output* (the same path or buffer, for convenience).
    """
    fetch_image = fetch_image or fetch_and_resize
    columns = export_headers(headers)

    workbook = openpyxl.Workbook()
    worksheet = workbook.active
    worksheet.title = _SHEET_TITLE

    _write_header_row(worksheet, columns)

    embedded = 0
    for offset, row in enumerate(rows):
        excel_row = offset + 2  # header is row 1
        if _write_data_row(worksheet, excel_row, offset + 1, row, columns, site, fetch_image):
            embedded += 1

    _set_column_widths(worksheet, columns)

    if rows and columns:
        last_col_letter = get_column_letter(len(columns))
        worksheet.auto_filter.ref = f"A1:{last_col_letter}{len(rows) + 1}"
    worksheet.freeze_panes = "A2"

    if isinstance(output, (str, Path)):
        output = Path(output)
        output.parent.mkdir(parents=True, exist_ok=True)
        workbook.save(str(output))
    else:
        workbook.save(output)
    workbook.close()

    logger.info(
        f"Exported {len(rows)} rows × {len(columns)} columns "
        f"({embedded} images embedded)"
    )
    return output


def fetch_and_resize(url: str) -> io.BytesIO | None:
    """
    Download an image and shrink it to fit 100×100 as PNG.

    Returns:
        Buffer with the PNG bytes, or None if the download or decode fails.
    """
    if not url:
        return None
    try:
        response = _IMAGE_SESSION.get(url, timeout=_IMAGE_TIMEOUT)
        response.raise_for_status()
        image = PILImage.open(io.BytesIO(response.content)).convert("RGBA")
    except (requests.RequestException, OSError) as exc:
        logger.warning(f"Image fetch failed for '{url}': {exc}")
        return None

    image.thumbnail(_IMAGE_MAX_SIZE)
    buffer = io.BytesIO()
    image.save(buffer, format="PNG")
    buffer.seek(0)
    return buffer


# ═══════════════════════════════════════════════════════════════════════════
# Rows
# ═══════════════════════════════════════════════════════════════════════════

def _write_header_row(worksheet, columns: Sequence[str]) -> None:
    for col_idx, header in enumerate(columns, start=1):
        cell = worksheet.cell(row=1, column=col_idx, value=header)
        cell.fill = _HEADER_FILL
        cell.font = _HEADER_FONT
        cell.alignment = _CENTERED


def _write_data_row(
    worksheet,
    excel_row: int,
    row_number: int,
    row: Mapping[str, Any],
    columns: Sequence[str],
    site: str,
    fetch_image: ImageFetcher,
) -> bool:
    """
    Write one data row.

    Returns:
        True if an image was embedded in the 主图 cell.
    """
    embedded = False

    for col_idx, header in enumerate(columns, start=1):
        cell = worksheet.cell(row=excel_row, column=col_idx)
        cell.alignment = _CENTERED

        if header == ROW_NUMBER_HEADER:
            cell.value = row_number
            continue

        if header == IMAGE_HEADER:
            url = _first_present(row, IMAGE_SOURCE_KEYS)
            if url is None:
                cell.value = _EMPTY_CELL
                continue
            cell.value = str(url)
            worksheet.row_dimensions[excel_row].height = _IMAGE_ROW_HEIGHT
            buffer = fetch_image(str(url))
            if buffer is not None:
                picture = XLImage(buffer)
                worksheet.add_image(picture, f"{get_column_letter(col_idx)}{excel_row}")
                cell.value = None
                embedded = True
            continue

        value = row.get(header)
        cell.value = _cell_value(value)

        link = None if _is_blank(value) else _hyperlink_for(header, row, site)
        if link:
            cell.hyperlink = link
            cell.font = _LINK_FONT

    return embedded


def _hyperlink_for(header: str, row: Mapping[str, Any], site: str) -> str | None:
    """Target URL for a linkable column, or None."""
    if header.upper() == "ASIN":
        return _usable_link(_first_present(row, ASIN_LINK_KEYS))

    if header == BRAND_KEY or header.lower() == "brand":
        return _usable_link(row.get(BRAND_LINK_KEY))

    if header == SELLER_HEADER:
        return _usable_link(row.get(SELLER_LINK_KEY))

    if header == NATURAL_RANK_LABEL:
        asin = resolve_asin(row)
        if asin:
            return RANK_LINK_TEMPLATE.format(site=site, asin=asin)

    return None


def _usable_link(value: Any) -> str | None:
    if _is_blank(value) or str(value).strip() == "#":
        return None
    return str(value).strip()


def _first_present(row: Mapping[str, Any], keys: Sequence[str]) -> Any:
    for key in keys:
        value = row.get(key)
        if not _is_blank(value):
            return value
    return None


def _cell_value(value: Any) -> Any:
    """Excel-safe cell value; blanks become "-"."""
    if _is_blank(value):
        return _EMPTY_CELL
    if isinstance(value, (bool, int, float, datetime, date)):
        return value
    return str(value)


# ═══════════════════════════════════════════════════════════════════════════
# Layout
# ═══════════════════════════════════════════════════════════════════════════

def _set_column_widths(worksheet, columns: Sequence[str]) -> None:
    """
    Size columns from the header text: CJK characters count as 2 units,
    others as 1.2, plus padding, clamped to [8, 40].  主图 is fixed at 15.
    """
    for col_idx, header in enumerate(columns, start=1):
        col_letter = get_column_letter(col_idx)
        if header == IMAGE_HEADER:
            worksheet.column_dimensions[col_letter].width = _IMAGE_COL_WIDTH
            continue
        worksheet.column_dimensions[col_letter].width = _header_width(header)


def _header_width(header: str) -> float:
    cjk = len(_CJK_PATTERN.findall(header))
    other = len(header) - cjk
    estimated = cjk * 2 + other * 1.2 + 4
    return max(_MIN_COL_WIDTH, min(estimated, _MAX_COL_WIDTH))


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and value != value:  # NaN
        return True
    return isinstance(value, str) and value.strip() == ""
