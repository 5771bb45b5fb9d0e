"""
Streamlit entry point — Listing Merge Workbench UI.

Two pages, chosen in the sidebar:
  Search List
    1. Upload the product, keywords and (optional) sales exports
    2. Merge on ASIN (errors are shown, never swallowed)
    3. Search / sort / page through the merged rows, drop unwanted ASINs
    4. Download the formatted Excel with embedded images
  Market Analysis
    1. Upload one product export
    2. Monthly sales, brand share and price-vs-units charts

Contains NO business logic — only calls processing/analysis modules and
displays results.
"""

import io
import logging
from datetime import datetime

import pandas as pd
import streamlit as st

from analysis.market_data import load_market_dataset
from processing.errors import ListingMergeError, MissingRequiredFileError
from processing.header_orderer import find_near_misses, visible_headers
from processing.pipeline import merge_files
from processing.row_view import SortKey, drop_rows_by_asin, paginate, search_rows, sort_rows
from utils.excel_exporter import export_to_excel

logger = logging.getLogger(__name__)

PAGE_SIZE_OPTIONS = [20, 50, 100, 200]
DEFAULT_PAGE_SIZE = 50
NO_SORT_LABEL = "(none)"


# ═══════════════════════════════════════════════════════════════════════════
# Page configuration
# ═══════════════════════════════════════════════════════════════════════════

st.set_page_config(
    page_title="Listing Merge Workbench",
    page_icon="📊",
    layout="wide",
    initial_sidebar_state="expanded",
)


# ═══════════════════════════════════════════════════════════════════════════
# Session state initialisation
# ═══════════════════════════════════════════════════════════════════════════

def _init_session_state() -> None:
    """Ensure all required session state keys exist with sensible defaults."""
    defaults: dict = {
        "merge_result": None,
        "working_rows": [],
        "near_misses": {},
        "export_bytes": None,
        "page": 1,
    }
    for key, value in defaults.items():
        if key not in st.session_state:
            st.session_state[key] = value


_init_session_state()


# ═══════════════════════════════════════════════════════════════════════════
# Sidebar — Navigation
# ═══════════════════════════════════════════════════════════════════════════

st.sidebar.title("📊 Workbench")
page_choice = st.sidebar.radio("Page", ["Search List", "Market Analysis"])


# ═══════════════════════════════════════════════════════════════════════════
# Page: Search List
# ═══════════════════════════════════════════════════════════════════════════

def _render_search_list() -> None:
    st.title("📋 Search List Generator")
    st.caption(
        "Upload the product table (Product-US-*.xlsx), the keyword analysis "
        "(关键词分析_*.xlsx) and any sales exports to merge them on ASIN."
    )

    uploads = st.file_uploader(
        "Exports",
        type=["xlsx"],
        accept_multiple_files=True,
        help="Drop all files at once; roles are detected from the filenames.",
    )

    # Reset downstream state when the uploaded files change
    if uploads != st.session_state.get("_prev_uploads"):
        st.session_state["_prev_uploads"] = uploads
        st.session_state["merge_result"] = None
        st.session_state["working_rows"] = []
        st.session_state["export_bytes"] = None
        st.session_state["page"] = 1

    if not uploads:
        return

    if st.button("🔗 Merge Files", type="primary"):
        with st.spinner("Merging exports..."):
            try:
                result = merge_files(uploads)
            except MissingRequiredFileError as exc:
                st.error(str(exc))
                return
            except ListingMergeError as exc:
                logger.error(f"Merge failed: {exc}")
                st.error(f"合并失败: {exc}")
                return

        st.session_state["merge_result"] = result
        st.session_state["working_rows"] = result.rows
        st.session_state["near_misses"] = find_near_misses(result.headers)
        st.session_state["export_bytes"] = None
        st.session_state["page"] = 1

    result = st.session_state["merge_result"]
    if result is None:
        return

    rows = st.session_state["working_rows"]

    # ── Summary ───────────────────────────────────────────────────
    st.divider()
    metric_cols = st.columns(4)
    with metric_cols[0]:
        st.metric("Products", len(rows))
    with metric_cols[1]:
        st.metric("Columns", len(result.headers))
    with metric_cols[2]:
        st.metric("Sales ASINs", result.sales_asin_count)
    with metric_cols[3]:
        st.metric("Marketplace", result.marketplace)

    near_misses = st.session_state["near_misses"]
    if near_misses:
        with st.expander(f"⚠️ Unrecognised headers ({len(near_misses)})"):
            st.dataframe(
                pd.DataFrame(
                    [{"Header": k, "Looks like": v} for k, v in near_misses.items()]
                ),
                use_container_width=True,
                hide_index=True,
            )

    # ── Table controls ────────────────────────────────────────────
    st.divider()
    control_cols = st.columns([3, 2, 1, 1])
    with control_cols[0]:
        term = st.text_input("Search", placeholder="ASIN, brand, title...")
    with control_cols[1]:
        sort_column = st.selectbox("Sort by", [NO_SORT_LABEL] + result.headers)
    with control_cols[2]:
        descending = st.checkbox("Descending", value=True)
    with control_cols[3]:
        page_size = st.selectbox(
            "Rows / page",
            PAGE_SIZE_OPTIONS,
            index=PAGE_SIZE_OPTIONS.index(DEFAULT_PAGE_SIZE),
        )

    collapse_history = st.toggle("Hide monthly history columns", value=True)

    view = search_rows(rows, term)
    if sort_column != NO_SORT_LABEL:
        view = sort_rows(view, [SortKey(sort_column, descending)])

    page = paginate(view, st.session_state["page"], page_size)
    st.session_state["page"] = page.page

    headers = visible_headers(result.headers, collapse_history)
    page_df = pd.DataFrame(page.rows).reindex(columns=headers)
    st.dataframe(page_df, use_container_width=True, hide_index=True)

    pager_cols = st.columns([1, 2, 1])
    with pager_cols[0]:
        if st.button("◀ Previous", disabled=page.page <= 1):
            st.session_state["page"] = page.page - 1
            st.rerun()
    with pager_cols[1]:
        st.caption(
            f"Page {page.page} of {page.total_pages} — {page.total_rows} matching rows"
        )
    with pager_cols[2]:
        if st.button("Next ▶", disabled=page.page >= page.total_pages):
            st.session_state["page"] = page.page + 1
            st.rerun()

    with st.expander("🗑️ Remove a product"):
        asin_to_drop = st.text_input("ASIN to remove")
        if st.button("Remove") and asin_to_drop.strip():
            st.session_state["working_rows"] = drop_rows_by_asin(rows, asin_to_drop)
            st.session_state["export_bytes"] = None
            st.rerun()

    # ── Download ──────────────────────────────────────────────────
    st.divider()
    st.header("💾 Download")

    if st.button("🖼️ Build Excel (fetches images)"):
        with st.spinner("Generating formatted Excel file..."):
            buffer = io.BytesIO()
            export_to_excel(
                st.session_state["working_rows"],
                result.headers,
                buffer,
                site=result.marketplace,
            )
            st.session_state["export_bytes"] = buffer.getvalue()

    if st.session_state["export_bytes"] is not None:
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        st.download_button(
            label="📥 Download Search List",
            data=st.session_state["export_bytes"],
            file_name=f"search_list_{result.marketplace}_{timestamp}.xlsx",
            mime="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
            type="primary",
            use_container_width=True,
        )


# ═══════════════════════════════════════════════════════════════════════════
# Page: Market Analysis
# ═══════════════════════════════════════════════════════════════════════════

def _render_market_analysis() -> None:
    st.title("📈 Market Analysis")

    upload = st.file_uploader("Product export", type=["xlsx"], accept_multiple_files=False)
    if upload is None:
        return

    try:
        dataset = load_market_dataset(upload)
    except ListingMergeError as exc:
        logger.error(f"Market dataset load failed: {exc}")
        st.error(f"文件解析失败: {exc}")
        return

    st.metric("Products", dataset.total_rows)

    st.subheader("Monthly Sales")
    if dataset.monthly.empty:
        st.info("No monthly sales columns found.")
    else:
        monthly = dataset.monthly.pivot(index="Month", columns="Year", values="Units")
        st.bar_chart(monthly)

    st.subheader("Brand Share (Top 20, last 30 days)")
    if dataset.brands.empty:
        st.info("No brand data found.")
    else:
        st.bar_chart(dataset.brands.set_index("Brand")["Units"])
        st.dataframe(
            dataset.brands.style.format({"Units": "{:,.0f}", "Percentage": "{:.1f}%"}),
            use_container_width=True,
            hide_index=True,
        )

    st.subheader("Price vs Units")
    if dataset.scatter.empty:
        st.info("No rows with both price and recent sales.")
    else:
        st.scatter_chart(dataset.scatter, x="Price", y="Units", color="Brand")


if page_choice == "Search List":
    _render_search_list()
else:
    _render_market_analysis()
