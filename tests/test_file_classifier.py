"""
Tests for processing/file_classifier.py

Covers: role assignment by filename, marketplace extraction, the missing
file diagnostic, and name resolution for paths and upload objects.
"""

import io
from pathlib import Path

import pytest

from processing.errors import ListingMergeError, MissingRequiredFileError
from processing.file_classifier import (
    FileClassification,
    classify_files,
    extract_marketplace,
    file_name,
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _make_upload(name: str) -> io.BytesIO:
    """In-memory upload with a .name, like Streamlit's UploadedFile."""
    upload = io.BytesIO(b"")
    upload.name = name
    return upload


# ═══════════════════════════════════════════════════════════════════════════
# Role assignment
# ═══════════════════════════════════════════════════════════════════════════

class TestClassifyFiles:
    def test_full_batch(self):
        files = [
            "关键词分析_B0A~B0Z.xlsx",
            "product-US-sales-20260206-1.xlsx",
            "Product-US-20260206.xlsx",
            "product-US-sales-20260206-2.xlsx",
        ]
        result = classify_files(files)

        assert isinstance(result, FileClassification)
        assert result.product == "Product-US-20260206.xlsx"
        assert result.keywords == "关键词分析_B0A~B0Z.xlsx"
        assert result.sales_files == [
            "product-US-sales-20260206-1.xlsx",
            "product-US-sales-20260206-2.xlsx",
        ]
        assert result.marketplace == "US"

    def test_sales_optional(self):
        result = classify_files(["Product-UK-1234.xlsx", "关键词分析_x.xlsx"])
        assert result.sales_files == []
        assert result.marketplace == "UK"

    def test_sales_file_never_product(self):
        result = classify_files([
            "Product-US-sales-20260206.xlsx",
            "Product-US-20260206.xlsx",
            "关键词分析_x.xlsx",
        ])
        assert result.product == "Product-US-20260206.xlsx"
        assert result.sales_files == ["Product-US-sales-20260206.xlsx"]

    def test_no_file_in_two_roles(self):
        files = [
            "Product-US-20260206.xlsx",
            "product-us-sales-1.xlsx",
            "关键词分析_a~b.xlsx",
            "notes.xlsx",
        ]
        result = classify_files(files)
        assigned = [result.product, result.keywords, *result.sales_files]
        assert len(assigned) == len(set(assigned))

    def test_first_product_wins(self):
        result = classify_files([
            "Product-US-1111.xlsx",
            "Product-DE-2222.xlsx",
            "关键词分析_x.xlsx",
        ])
        assert result.product == "Product-US-1111.xlsx"

    def test_keywords_by_range_marker(self):
        result = classify_files(["Product-US-1234.xlsx", "关键词分析_B0A~B0Z.XLSX"])
        assert result.keywords == "关键词分析_B0A~B0Z.XLSX"

    def test_unrecognised_files_ignored(self):
        result = classify_files(["readme.xlsx", "Product-US-1234.xlsx", "关键词分析_x.xlsx"])
        assert result.sales_files == []

    def test_upload_objects_returned_as_is(self):
        product = _make_upload("Product-JP-20260101.xlsx")
        keywords = _make_upload("关键词分析_x.xlsx")
        result = classify_files([keywords, product])
        assert result.product is product
        assert result.keywords is keywords
        assert result.marketplace == "JP"


# ═══════════════════════════════════════════════════════════════════════════
# Missing required files
# ═══════════════════════════════════════════════════════════════════════════

class TestMissingFiles:
    def test_missing_keywords(self):
        with pytest.raises(MissingRequiredFileError) as exc_info:
            classify_files(["Product-US-20260206.xlsx", "product-US-sales-1.xlsx"])

        error = exc_info.value
        assert error.product_name == "Product-US-20260206.xlsx"
        assert error.keywords_name is None
        assert error.sales_count == 1
        assert "Keywords: 无" in str(error)
        assert "Product: Product-US-20260206.xlsx" in str(error)

    def test_missing_product(self):
        with pytest.raises(MissingRequiredFileError) as exc_info:
            classify_files(["关键词分析_x.xlsx"])
        assert exc_info.value.product_name is None
        assert "Product: 无" in str(exc_info.value)

    def test_empty_upload_list(self):
        with pytest.raises(ListingMergeError):
            classify_files([])


# ═══════════════════════════════════════════════════════════════════════════
# Helpers
# ═══════════════════════════════════════════════════════════════════════════

class TestFileName:
    def test_path(self, tmp_path):
        assert file_name(tmp_path / "Product-US-1234.xlsx") == "Product-US-1234.xlsx"

    def test_string_path(self):
        assert file_name("/tmp/uploads/关键词分析_x.xlsx") == "关键词分析_x.xlsx"

    def test_named_object(self):
        assert file_name(_make_upload("a.xlsx")) == "a.xlsx"

    def test_unnamed_object(self):
        assert file_name(io.BytesIO(b"")) == ""


class TestExtractMarketplace:
    def test_lowercase_code_uppercased(self):
        assert extract_marketplace("Product-de-20260206.xlsx") == "DE"

    def test_default(self):
        assert extract_marketplace("something.xlsx") == "US"

    def test_path_object_name(self):
        assert extract_marketplace(Path("Product-UK-9999.xlsx").name) == "UK"
