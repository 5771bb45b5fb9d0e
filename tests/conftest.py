"""
Shared pytest fixtures.

Workbooks are built on the fly with openpyxl so tests never depend on
checked-in binary fixtures.
"""

from pathlib import Path

import openpyxl
import pytest


def write_workbook(path: Path, sheets: dict[str, list[list]]) -> Path:
    """Write {sheet name: rows} to *path* (first row of each sheet = headers)."""
    workbook = openpyxl.Workbook()
    workbook.remove(workbook.active)
    for sheet_name, rows in sheets.items():
        worksheet = workbook.create_sheet(sheet_name)
        for row in rows:
            worksheet.append(row)
    workbook.save(str(path))
    workbook.close()
    return path


@pytest.fixture()
def make_workbook(tmp_path):
    """
    Factory fixture: make_workbook("Product-US-2026.xlsx", {"Sheet1": rows}).

    A plain list of rows is written to a single sheet named "Sheet1".
    """
    def _make(name: str, sheets) -> Path:
        if isinstance(sheets, list):
            sheets = {"Sheet1": sheets}
        return write_workbook(tmp_path / name, sheets)

    return _make
