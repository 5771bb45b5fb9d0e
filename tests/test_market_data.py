"""
Tests for analysis/market_data.py

Reads a generated single-file export and checks the precomputed chart
tables.
"""

import math

import pytest

from analysis.market_data import MarketDataset, load_market_dataset
from processing.errors import DecodeError


class TestLoadMarketDataset:
    @pytest.fixture()
    def export_path(self, make_workbook):
        return make_workbook("Product-US-20260206.xlsx", [
            ["ASIN", "父ASIN", "品牌", "价格", "近30天销量", "2025-01", "2025-02"],
            ["C1", "P1", "Acme", 19.99, 300, 100, None],
            ["C2", "P1", "Acme", 21.99, 100, 100, None],
            ["C3", None, None, 9.99, 50, 40, 60],
        ])

    def test_rows_read_with_none_for_empty_cells(self, export_path):
        dataset = load_market_dataset(export_path)
        assert isinstance(dataset, MarketDataset)
        assert dataset.total_rows == 3
        assert dataset.rows[2]["品牌"] is None

    def test_monthly_parent_rollup(self, export_path):
        monthly = load_market_dataset(export_path).monthly
        january = monthly[monthly["Month"] == 1]["Units"].iloc[0]
        february = monthly[monthly["Month"] == 2]["Units"].iloc[0]
        march = monthly[monthly["Month"] == 3]["Units"].iloc[0]
        assert january == 140
        assert february == 60
        assert math.isnan(march)

    def test_brand_share(self, export_path):
        brands = load_market_dataset(export_path).brands
        assert list(brands["Brand"]) == ["Acme", "Unknown"]
        assert list(brands["Units"]) == [400, 50]

    def test_scatter(self, export_path):
        scatter = load_market_dataset(export_path).scatter
        assert len(scatter) == 3
        assert list(scatter["Price"]) == pytest.approx([19.99, 21.99, 9.99])

    def test_unreadable_file(self, tmp_path):
        path = tmp_path / "broken.xlsx"
        path.write_bytes(b"nope")
        with pytest.raises(DecodeError):
            load_market_dataset(path)
