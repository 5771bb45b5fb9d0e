"""
Sheet reader — loads one sheet of an .xlsx export into raw records.

Row 1 is the header row; every following non-blank row becomes one
RawRecord (dict of raw header → cell value, in column order).  This is the
only module that talks to openpyxl on the read side.

Empty-cell convention is chosen by the caller:
  - empty_value=""   → merge/display path (join and rendering treat blanks
                        as empty strings)
  - empty_value=None → chart/metrics path (distinguishes "absent" from
                        "empty string" for numeric aggregation)

Public API:
    read_sheet(file, sheet_name=None, empty_value="") → list[dict]
    list_sheet_names(file) → list[str]
"""

import logging
import os
import zipfile
from datetime import date, datetime
from typing import Any

import openpyxl
from openpyxl.utils.exceptions import InvalidFileException

from processing.errors import DecodeError, SheetNotFoundError
from processing.file_classifier import file_name

logger = logging.getLogger(__name__)

# Placeholder for blank header cells: "__EMPTY", "__EMPTY_1", ...
_EMPTY_HEADER = "__EMPTY"

# Everything openpyxl raises for bytes that are not a readable workbook
_DECODE_ERRORS = (InvalidFileException, zipfile.BadZipFile, KeyError, OSError, ValueError)


# ═══════════════════════════════════════════════════════════════════════════
# Public API
# ═══════════════════════════════════════════════════════════════════════════

def read_sheet(
    file: Any,
    sheet_name: str | None = None,
    empty_value: Any = "",
) -> list[dict[str, Any]]:
    """
    Read one sheet into a list of raw records.

    Args:
        file: Path, path string, or binary file-like object.
        sheet_name: Sheet to read.  None → first sheet.
        empty_value: Value used for empty cells ("" or None).

    Returns:
        One dict per non-blank data row.  An explicitly requested sheet
        that does not exist yields [] (sales exports may omit sheets).

    Raises:
        DecodeError: the file is not a readable workbook.
        SheetNotFoundError: no sheet name given and the workbook is empty.
    """
    name = file_name(file)
    workbook = _open_workbook(file, name)

    try:
        if sheet_name is None:
            if not workbook.sheetnames:
                message = f"Sheet not found: '{name}' contains no sheets"
                logger.error(message)
                raise SheetNotFoundError(message, file_name=name)
            target = workbook.sheetnames[0]
        elif sheet_name in workbook.sheetnames:
            target = sheet_name
        else:
            logger.info(f"Sheet '{sheet_name}' not present in '{name}'; skipping")
            return []

        worksheet = workbook[target]
        records = _rows_to_records(worksheet.iter_rows(values_only=True), empty_value)
    finally:
        workbook.close()

    logger.info(f"Read {len(records)} rows from '{name}' sheet '{target}'")
    return records


def list_sheet_names(file: Any) -> list[str]:
    """Sheet names of a workbook, in workbook order."""
    name = file_name(file)
    workbook = _open_workbook(file, name)
    try:
        return list(workbook.sheetnames)
    finally:
        workbook.close()


# ═══════════════════════════════════════════════════════════════════════════
# Internal helpers
# ═══════════════════════════════════════════════════════════════════════════

def _open_workbook(file: Any, name: str) -> openpyxl.Workbook:
    """
    Open a workbook read-only with cached formula values.

    File-like objects are rewound first so the same upload can be read
    once per sheet.
    """
    source = os.fspath(file) if isinstance(file, os.PathLike) else file
    if hasattr(source, "seek"):
        source.seek(0)

    try:
        return openpyxl.load_workbook(source, read_only=True, data_only=True)
    except _DECODE_ERRORS as exc:
        message = f"Cannot open file '{name}': {exc}"
        logger.error(message)
        raise DecodeError(message, file_name=name) from exc


def _rows_to_records(rows, empty_value: Any) -> list[dict[str, Any]]:
    """Turn an iterator of row tuples (header first) into records."""
    rows = iter(rows)
    header_row = next(rows, None)
    if header_row is None:
        return []

    headers = _build_headers(header_row)
    records: list[dict[str, Any]] = []

    for values in rows:
        values = list(values[: len(headers)])
        if all(_is_blank(v) for v in values):
            continue
        values.extend([None] * (len(headers) - len(values)))

        record = {
            header: (empty_value if value is None else value)
            for header, value in zip(headers, values)
        }
        records.append(record)

    return records


def _build_headers(header_row: tuple) -> list[str]:
    """
    Header names from row 1.

    Blank cells become "__EMPTY", "__EMPTY_1", ...; repeated names get
    "_1", "_2", ... so no column silently overwrites another.  A suffix
    already taken by a real header is skipped.
    """
    headers: list[str] = []
    used: set[str] = set()
    suffix_count: dict[str, int] = {}
    empty_count = 0

    for cell_value in header_row:
        if _is_blank(cell_value):
            header = _EMPTY_HEADER if empty_count == 0 else f"{_EMPTY_HEADER}_{empty_count}"
            empty_count += 1
        else:
            header = _header_text(cell_value)

        if header in used:
            base = header
            count = suffix_count.get(base, 0)
            while header in used:
                count += 1
                header = f"{base}_{count}"
            suffix_count[base] = count

        used.add(header)
        headers.append(header)

    # Drop trailing placeholder columns (formatting past the last header)
    while headers and headers[-1].startswith(_EMPTY_HEADER):
        headers.pop()

    return headers


def _header_text(value: Any) -> str:
    """
    Render a header cell as text.  Month headers typed into Excel as dates
    ("2025-01") come back as datetimes and are rendered back to "YYYY-MM".
    """
    if isinstance(value, (datetime, date)):
        if value.day == 1:
            return value.strftime("%Y-%m")
        return value.strftime("%Y-%m-%d")
    return str(value)


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and value.strip() == "")
