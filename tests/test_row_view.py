"""
Tests for processing/row_view.py

Covers: search, numeric-aware multi-key sort with blanks last,
pagination clamping, and dropping a product by ASIN.
"""

import pytest

from processing.row_view import (
    Page,
    SortKey,
    drop_rows_by_asin,
    paginate,
    search_rows,
    sort_rows,
)

ROWS = [
    {"ASIN": "B1", "品牌": "Acme", "价格": "1,299", "评分": 4.5},
    {"ASIN": "B2", "品牌": "zeta", "价格": 99, "评分": ""},
    {"ASIN": "B3", "品牌": "Beta", "价格": "", "评分": 4.5},
    {"ASIN": "B4", "品牌": "acme", "价格": 250.5, "评分": 3.9},
]


def _asins(rows) -> list[str]:
    return [row["ASIN"] for row in rows]


# ═══════════════════════════════════════════════════════════════════════════
# Search
# ═══════════════════════════════════════════════════════════════════════════

class TestSearchRows:
    def test_case_insensitive_substring(self):
        assert _asins(search_rows(ROWS, "ACME")) == ["B1", "B4"]

    def test_numbers_searched_as_text(self):
        assert _asins(search_rows(ROWS, "250")) == ["B4"]

    @pytest.mark.parametrize("term", ["", "   ", None])
    def test_blank_term_returns_everything(self, term):
        assert _asins(search_rows(ROWS, term)) == ["B1", "B2", "B3", "B4"]

    def test_restricted_columns(self):
        assert search_rows(ROWS, "B1", columns=["品牌"]) == []
        assert _asins(search_rows(ROWS, "B1", columns=["ASIN"])) == ["B1"]

    def test_no_match(self):
        assert search_rows(ROWS, "nothing") == []


# ═══════════════════════════════════════════════════════════════════════════
# Sort
# ═══════════════════════════════════════════════════════════════════════════

class TestSortRows:
    def test_numeric_ascending_with_thousands_separator(self):
        assert _asins(sort_rows(ROWS, [SortKey("价格")])) == ["B2", "B4", "B1", "B3"]

    def test_numeric_descending_blank_still_last(self):
        assert _asins(sort_rows(ROWS, [SortKey("价格", descending=True)])) == ["B1", "B4", "B2", "B3"]

    def test_text_case_folded(self):
        assert _asins(sort_rows(ROWS, [SortKey("品牌")])) == ["B1", "B4", "B3", "B2"]

    def test_percent_values(self):
        rows = [{"ASIN": "a", "x": "12%"}, {"ASIN": "b", "x": "9%"}, {"ASIN": "c", "x": "100%"}]
        assert _asins(sort_rows(rows, [SortKey("x")])) == ["b", "a", "c"]

    def test_secondary_key(self):
        keys = [SortKey("评分", descending=True), SortKey("价格")]
        assert _asins(sort_rows(ROWS, keys)) == ["B1", "B3", "B4", "B2"]

    def test_stable_for_equal_values(self):
        rows = [{"ASIN": "a", "x": 1}, {"ASIN": "b", "x": 1}, {"ASIN": "c", "x": 0}]
        assert _asins(sort_rows(rows, [SortKey("x")])) == ["c", "a", "b"]

    def test_missing_column_sorts_last(self):
        rows = [{"ASIN": "a"}, {"ASIN": "b", "x": 5}]
        assert _asins(sort_rows(rows, [SortKey("x", descending=True)])) == ["b", "a"]

    def test_no_keys_keeps_order(self):
        assert _asins(sort_rows(ROWS, [])) == ["B1", "B2", "B3", "B4"]

    def test_input_not_modified(self):
        rows = [dict(row) for row in ROWS]
        sort_rows(rows, [SortKey("价格")])
        assert rows == ROWS


# ═══════════════════════════════════════════════════════════════════════════
# Paginate
# ═══════════════════════════════════════════════════════════════════════════

class TestPaginate:
    ROWS = [{"ASIN": f"B{i}"} for i in range(1, 8)]

    def test_first_page(self):
        page = paginate(self.ROWS, 1, 3)
        assert isinstance(page, Page)
        assert _asins(page.rows) == ["B1", "B2", "B3"]
        assert page.total_rows == 7
        assert page.total_pages == 3

    def test_last_partial_page(self):
        assert _asins(paginate(self.ROWS, 3, 3).rows) == ["B7"]

    def test_page_clamped_high(self):
        page = paginate(self.ROWS, 10, 3)
        assert page.page == 3
        assert _asins(page.rows) == ["B7"]

    def test_page_clamped_low(self):
        assert paginate(self.ROWS, 0, 3).page == 1

    def test_empty_input(self):
        page = paginate([], 2, 50)
        assert page.rows == []
        assert page.page == 1
        assert page.total_pages == 1
        assert page.total_rows == 0

    @pytest.mark.parametrize("page_size", [0, -1])
    def test_invalid_page_size(self, page_size):
        with pytest.raises(ValueError):
            paginate(self.ROWS, 1, page_size)


# ═══════════════════════════════════════════════════════════════════════════
# Drop
# ═══════════════════════════════════════════════════════════════════════════

class TestDropRowsByAsin:
    def test_removes_matching_rows(self):
        assert _asins(drop_rows_by_asin(ROWS, "B2")) == ["B1", "B3", "B4"]

    def test_asin_trimmed(self):
        assert _asins(drop_rows_by_asin(ROWS, " B3 ")) == ["B1", "B2", "B4"]

    def test_unknown_asin(self):
        assert len(drop_rows_by_asin(ROWS, "B9")) == 4
