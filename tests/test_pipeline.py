"""
Tests for processing/pipeline.py

End-to-end merges over real .xlsx files generated in tmp_path.
"""

from datetime import datetime

import pytest

from processing.errors import DecodeError, MissingRequiredFileError
from processing.pipeline import MergeResult, merge_files

NOW = datetime(2026, 10, 19)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _make_batch(make_workbook, with_sales: bool = True) -> list:
    product = make_workbook("Product-US-20260206.xlsx", [
        ["ASIN", "价格（$）", "品牌", "月销量", "上架时间", "自然流量占比", "广告流量占比"],
        ["B000000001", 19.99, "Acme", 500, "2026-06-19", 0.65, 0.35],
        ["B000000002", 29.99, "Zeta", 300, "2024-01-01", None, None],
    ])
    keywords = make_workbook("关键词分析_B0A~B0Z.xlsx", [
        ["ASIN", "自然排名（页码-位置）", "品牌"],
        ["B000000001", "1-3", "KeywordBrand"],
    ])
    files = [keywords, product]
    if with_sales:
        files.append(make_workbook("product-US-sales-20260206-1.xlsx", {
            "产品历史月销量": [["ASIN", "2025-01", "2025-02"], ["B000000001", 100, 110]],
            "历史月价格": [["ASIN", "2025-01($)"], ["B000000002", 28.5]],
        }))
    return files


# ═══════════════════════════════════════════════════════════════════════════
# Full merge
# ═══════════════════════════════════════════════════════════════════════════

class TestMergeFiles:
    def test_result_shape(self, make_workbook):
        result = merge_files(_make_batch(make_workbook), now=NOW)

        assert isinstance(result, MergeResult)
        assert len(result.rows) == 2
        assert result.marketplace == "US"
        assert result.sales_asin_count == 2
        assert result.keyword_row_count == 1

    def test_rows_merged_and_normalized(self, make_workbook):
        result = merge_files(_make_batch(make_workbook), now=NOW)
        first, second = result.rows

        assert first["价格"] == 19.99
        assert first["父体销量"] == 500
        assert first["自然排名"] == "1-3"
        assert first["品牌"] == "Acme"
        assert first["2025-01-父-U"] == 100
        assert second["2025-01-子-P"] == 28.5
        assert "自然排名" not in second

    def test_derived_metrics_applied(self, make_workbook):
        result = merge_files(_make_batch(make_workbook), now=NOW)
        first, second = result.rows

        assert first["流量占比(自然:广告)"] == "65%:35%"
        assert first["上架时段"] == "6个月"
        assert second["上架时段"] == "1年+"
        assert "流量占比(自然:广告)" not in second

    def test_headers_ordered_and_unique(self, make_workbook):
        result = merge_files(_make_batch(make_workbook), now=NOW)

        assert result.headers[:4] == ["序号", "ASIN", "主图", "价格"]
        assert len(result.headers) == len(set(result.headers))
        assert "2025-02-父-U" in result.headers

    def test_without_sales_files(self, make_workbook):
        result = merge_files(_make_batch(make_workbook, with_sales=False), now=NOW)
        assert result.sales_asin_count == 0
        assert result.classification.sales_files == []
        assert not any(key.endswith("-父-U") for key in result.rows[0])


# ═══════════════════════════════════════════════════════════════════════════
# Fatal errors
# ═══════════════════════════════════════════════════════════════════════════

class TestMergeErrors:
    def test_missing_keywords_file(self, make_workbook):
        product = make_workbook("Product-US-20260206.xlsx", [["ASIN"], ["B1"]])
        with pytest.raises(MissingRequiredFileError):
            merge_files([product])

    def test_unreadable_product_file(self, make_workbook, tmp_path):
        keywords = make_workbook("关键词分析_x.xlsx", [["ASIN"], ["B1"]])
        product = tmp_path / "Product-US-20260206.xlsx"
        product.write_bytes(b"garbage")

        with pytest.raises(DecodeError) as exc_info:
            merge_files([product, keywords])
        assert exc_info.value.file_name == "Product-US-20260206.xlsx"

    def test_unreadable_sales_file_is_skipped(self, make_workbook, tmp_path):
        files = _make_batch(make_workbook, with_sales=False)
        broken = tmp_path / "product-US-sales-broken.xlsx"
        broken.write_bytes(b"garbage")

        result = merge_files([*files, broken], now=NOW)
        assert len(result.rows) == 2
        assert result.sales_asin_count == 0
