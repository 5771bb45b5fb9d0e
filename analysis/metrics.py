"""
Derived metrics for merged listing records.

Per-record transforms (run after the merge, before header ordering):
  - traffic_ratio        → "流量占比(自然:广告)", e.g. "65%:35%"
  - listing_age_bucket   → "上架时段", e.g. "6个月"

Chart aggregations (pure functions over records, returning DataFrames):
  - monthly_sales_rollup → Year / Month / Units
  - brand_share          → Brand / Units / Percentage
  - price_units_scatter  → ASIN / Brand / Title / Price / Units

Edge cases are absorbed, never raised: missing or non-numeric shares and
unparseable dates simply leave the derived field out.
"""

import logging
import math
from datetime import date, datetime, timedelta
from typing import Any, Iterable, Mapping, Sequence

import pandas as pd

from config.header_rules import (
    AD_TRAFFIC_KEY,
    BRAND_KEY,
    LISTING_AGE_BUCKETS,
    LISTING_AGE_KEY,
    LISTING_AGE_OVERFLOW,
    LISTING_DATE_KEY,
    ORGANIC_TRAFFIC_KEY,
    PARENT_ASIN_KEY,
    PRICE_KEY,
    RECENT_SALES_KEY,
    TITLE_KEY,
    TRAFFIC_RATIO_KEY,
    UNKNOWN_BRAND,
)
from config.sales_sheets import CHILD_UNITS_PATTERN, RAW_MONTH_PATTERN

logger = logging.getLogger(__name__)

# Excel serial day 0 (accounts for the 1900 leap-year bug)
_EXCEL_EPOCH = datetime(1899, 12, 30)

# 9999-12-31, the last date Excel can store
_EXCEL_MAX_SERIAL = 2958465

# Numeric text below this is a year or a count, not a serial (1927-05-18)
_MIN_TEXT_SERIAL = 10000

ROLLUP_SUB_ITEM = "sub-item"
ROLLUP_PARENT = "parent"

_MONTHLY_COLUMNS = ["Year", "Month", "Units"]
_BRAND_COLUMNS = ["Brand", "Units", "Percentage"]


# ═══════════════════════════════════════════════════════════════════════════
# Per-record metrics
# ═══════════════════════════════════════════════════════════════════════════

def traffic_ratio(record: Mapping[str, Any]) -> str | None:
    """
    Organic vs advertising traffic share as "{organic}%:{ad}%".

    Values that already contain "%" are used as written; fractions are
    multiplied by 100 and rounded half-up to an integer.

    Returns:
        The ratio string, or None when either share is absent or not numeric.
    """
    organic = _percent_text(record.get(ORGANIC_TRAFFIC_KEY))
    advertising = _percent_text(record.get(AD_TRAFFIC_KEY))
    if organic is None or advertising is None:
        return None
    return f"{organic}%:{advertising}%"


def listing_age_bucket(value: Any, now: datetime | None = None) -> str | None:
    """
    Bucket a first-available date by whole months elapsed.

    Thresholds are inclusive: ≤3 → "3个月", ≤6 → "6个月", ≤9 → "9个月",
    ≤12 → "12个月", older → "1年+".

    Args:
        value: datetime/date, date string, or Excel serial number.
        now: Reference time (defaults to the current time).

    Returns:
        Bucket label, or None if the value is not a valid date.
    """
    listed = parse_listing_date(value)
    if listed is None:
        return None

    now = now or datetime.now()
    months = (now.year - listed.year) * 12 + (now.month - listed.month)
    if now.day < listed.day:
        months -= 1

    for threshold, label in LISTING_AGE_BUCKETS:
        if months <= threshold:
            return label
    return LISTING_AGE_OVERFLOW


def parse_listing_date(value: Any) -> datetime | None:
    """Parse a cell value as a calendar date; None if it is not one."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        return value.replace(tzinfo=None)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if isinstance(value, (int, float)):
        return _from_excel_serial(value)

    text = str(value).strip()
    if not text:
        return None
    try:
        number = float(text)
    except ValueError:
        number = None
    if number is not None:
        if not number >= _MIN_TEXT_SERIAL:
            logger.debug(f"Numeric listing date '{text}' is not a date serial")
            return None
        return _from_excel_serial(number)

    parsed = pd.to_datetime(text, errors="coerce")
    if pd.isna(parsed):
        logger.debug(f"Unparseable listing date '{text}'")
        return None
    return parsed.to_pydatetime().replace(tzinfo=None)


def apply_derived_metrics(
    records: Iterable[Mapping[str, Any]],
    now: datetime | None = None,
) -> list[dict[str, Any]]:
    """
    Return copies of *records* with the derived fields added where they
    can be computed.  Input records are not modified.
    """
    now = now or datetime.now()
    result: list[dict[str, Any]] = []
    ratios = 0
    ages = 0

    for record in records:
        enriched = dict(record)

        ratio = traffic_ratio(record)
        if ratio is not None:
            enriched[TRAFFIC_RATIO_KEY] = ratio
            ratios += 1

        if LISTING_DATE_KEY in record:
            bucket = listing_age_bucket(record[LISTING_DATE_KEY], now)
            if bucket is not None:
                enriched[LISTING_AGE_KEY] = bucket
                ages += 1

        result.append(enriched)

    logger.info(
        f"Derived metrics: {ratios} traffic ratios, {ages} listing-age buckets "
        f"over {len(result)} rows"
    )
    return result


# ═══════════════════════════════════════════════════════════════════════════
# Chart aggregations
# ═══════════════════════════════════════════════════════════════════════════

def detect_rollup_mode(columns: Iterable[str]) -> str:
    """
    "sub-item" if any "YYYY-MM-子-U" column exists, otherwise "parent".
    """
    for column in columns:
        if CHILD_UNITS_PATTERN.match(str(column)):
            return ROLLUP_SUB_ITEM
    return ROLLUP_PARENT


def monthly_sales_rollup(records: Sequence[Mapping[str, Any]]) -> pd.DataFrame:
    """
    Total units per calendar month, for the monthly sales chart.

    Source selection:
      - sub-item mode: "YYYY-MM-子-U" columns, every row summed (each row
        is a distinct child unit, so no de-duplication)
      - parent mode: raw "YYYY-MM" columns, each parent product counted
        once per month (父ASIN, falling back to ASIN; first non-null value
        wins)

    Returns:
        DataFrame with columns [Year, Month, Units]: 12 rows per year found,
        Units is NaN for months with no column in the data.
    """
    df = pd.DataFrame(list(records))
    if df.empty:
        return pd.DataFrame(columns=_MONTHLY_COLUMNS)

    mode = detect_rollup_mode(df.columns)
    pattern = CHILD_UNITS_PATTERN if mode == ROLLUP_SUB_ITEM else RAW_MONTH_PATTERN
    month_columns = {
        col: match.group(1)
        for col in df.columns
        if (match := pattern.match(str(col))) is not None
    }

    if not month_columns:
        return pd.DataFrame(columns=_MONTHLY_COLUMNS)

    parent_keys = _parent_keys(df) if mode == ROLLUP_PARENT else None

    totals: dict[str, float] = {}
    for col, year_month in month_columns.items():
        units = _to_numeric(df[col])
        if parent_keys is None:
            totals[year_month] = float(units.sum())
        else:
            per_parent = (
                pd.DataFrame({"parent": parent_keys, "units": units})
                .dropna(subset=["units"])
                .drop_duplicates(subset="parent", keep="first")
            )
            totals[year_month] = float(per_parent["units"].sum())

    years = sorted({year_month[:4] for year_month in totals})
    rows = []
    for year in years:
        for month in range(1, 13):
            year_month = f"{year}-{month:02d}"
            rows.append({
                "Year": year,
                "Month": month,
                "Units": totals.get(year_month, math.nan),
            })

    logger.info(
        f"Monthly rollup ({mode} mode): {len(month_columns)} month columns, "
        f"{len(years)} years"
    )
    return pd.DataFrame(rows, columns=_MONTHLY_COLUMNS)


def brand_share(records: Sequence[Mapping[str, Any]], top_n: int = 20) -> pd.DataFrame:
    """
    Recent 30-day units and market share per brand, top *top_n* brands.

    Returns:
        DataFrame with columns [Brand, Units, Percentage], sorted by Units
        descending.  Missing brands are grouped under "Unknown".
    """
    df = pd.DataFrame(list(records))
    if df.empty:
        return pd.DataFrame(columns=_BRAND_COLUMNS)

    brands = _brand_series(df)

    if RECENT_SALES_KEY in df.columns:
        units = _to_numeric(df[RECENT_SALES_KEY]).fillna(0)
    else:
        units = pd.Series([0.0] * len(df), index=df.index)

    grouped = (
        pd.DataFrame({"Brand": brands, "Units": units})
        .groupby("Brand", sort=False)["Units"]
        .sum()
        .reset_index()
    )

    total_units = grouped["Units"].sum()
    grouped["Percentage"] = (
        grouped["Units"] / total_units * 100 if total_units > 0 else 0.0
    )

    result = grouped.sort_values("Units", ascending=False, kind="mergesort").head(top_n)
    return result[_BRAND_COLUMNS].reset_index(drop=True)


def price_units_scatter(records: Sequence[Mapping[str, Any]]) -> pd.DataFrame:
    """
    Price vs recent units, one point per record that has both values.

    Returns:
        DataFrame with columns [ASIN, Brand, Title, Price, Units].
    """
    columns = ["ASIN", "Brand", "Title", "Price", "Units"]
    df = pd.DataFrame(list(records))
    if df.empty or PRICE_KEY not in df.columns or RECENT_SALES_KEY not in df.columns:
        return pd.DataFrame(columns=columns)

    points = pd.DataFrame({
        "ASIN": df["ASIN"] if "ASIN" in df.columns else None,
        "Brand": _brand_series(df),
        "Title": df[TITLE_KEY] if TITLE_KEY in df.columns else None,
        "Price": _to_numeric(df[PRICE_KEY]),
        "Units": _to_numeric(df[RECENT_SALES_KEY]),
    })
    return points.dropna(subset=["Price", "Units"]).reset_index(drop=True)[columns]


# ═══════════════════════════════════════════════════════════════════════════
# Internal helpers
# ═══════════════════════════════════════════════════════════════════════════

def _percent_text(value: Any) -> str | None:
    """Render one traffic share as percentage text without the "%" sign."""
    if _is_blank(value):
        return None

    if isinstance(value, str) and "%" in value:
        text = value.replace("%", "").strip()
        return text or None

    try:
        number = float(str(value).replace(",", ""))
    except ValueError:
        return None
    if math.isnan(number):
        return None
    return str(int(math.floor(number * 100 + 0.5)))


def _from_excel_serial(serial: float) -> datetime | None:
    if not 0 < serial <= _EXCEL_MAX_SERIAL:   # also false for NaN
        logger.debug(f"Listing date serial {serial} out of range")
        return None
    return _EXCEL_EPOCH + timedelta(days=serial)


def _parent_keys(df: pd.DataFrame) -> pd.Series:
    """父ASIN where present, otherwise ASIN (None if neither)."""
    parent = df[PARENT_ASIN_KEY] if PARENT_ASIN_KEY in df.columns else None
    asin = df["ASIN"] if "ASIN" in df.columns else None

    keys = []
    for idx in df.index:
        value = parent[idx] if parent is not None else None
        if _is_blank(value):
            value = asin[idx] if asin is not None else None
        keys.append(None if _is_blank(value) else str(value))
    return pd.Series(keys, index=df.index, dtype=object)


def _brand_series(df: pd.DataFrame) -> pd.Series:
    """品牌 column as text, blanks (or no column at all) → "Unknown"."""
    if BRAND_KEY not in df.columns:
        return pd.Series([UNKNOWN_BRAND] * len(df), index=df.index, dtype=object)
    return df[BRAND_KEY].map(lambda v: UNKNOWN_BRAND if _is_blank(v) else str(v))


def _to_numeric(series: pd.Series) -> pd.Series:
    """Coerce cells to numbers; "1,234" → 1234, blanks and text → NaN."""
    cleaned = series.map(lambda v: v.replace(",", "").strip() if isinstance(v, str) else v)
    return pd.to_numeric(cleaned, errors="coerce")


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    return isinstance(value, str) and value.strip() == ""
