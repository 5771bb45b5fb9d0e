"""
Header normalization and display-ordering rules.

Character maps and domain renames used by processing/key_normalizer.py,
and the priority groups used by processing/header_orderer.py to put the
most useful listing columns first.
"""

import re

# ---------------------------------------------------------------------------
# Characters removed before any other normalization step.
# Zero-width space/joiners and the BOM sneak into headers exported from
# Chinese-locale Excel and seller tools.
# ---------------------------------------------------------------------------
INVISIBLE_CHARS_PATTERN: re.Pattern = re.compile("[\u200b-\u200d\ufeff]")

# Full-width brackets → ASCII parentheses
BRACKET_MAP: dict[str, str] = {
    "（": "(",
    "【": "(",
    "［": "(",
    "）": ")",
    "】": ")",
    "］": ")",
}

# Full-width punctuation → half-width
PUNCTUATION_MAP: dict[str, str] = {
    "，": ",",
    "：": ":",
    "；": ";",
}

# Literal currency suffix stripped from headers: "价格($)" → "价格"
CURRENCY_SUFFIX: str = "($)"

# ---------------------------------------------------------------------------
# Placeholder headers produced for blank header cells.  Columns whose
# normalized name matches are dropped entirely.
# ---------------------------------------------------------------------------
PLACEHOLDER_PREFIX: str = "__EMPTY"
UNNAMED_MARKER: str = "unnamed"

# ---------------------------------------------------------------------------
# Domain overrides applied AFTER generic normalization.
# ---------------------------------------------------------------------------
# The natural-rank column arrives as e.g. "自然排名(页码-位置)"; shorten it.
NATURAL_RANK_LABEL: str = "自然排名"
NATURAL_RANK_PATTERN: re.Pattern = re.compile(r"^自然排名.*(页|位置)")

# "月销量" is parent-level sales in these exports; rename so it cannot be
# confused with the sub-item sales columns.
EXACT_RENAMES: dict[str, str] = {
    "月销量": "父体销量",
}

# Characters removed for loose (priority-group) matching
LOOSE_BRACKETS_PATTERN: re.Pattern = re.compile(r"[（【［(）】］)]")
LOOSE_CURRENCY_PATTERN: re.Pattern = re.compile(r"[$￥]")
WHITESPACE_PATTERN: re.Pattern = re.compile(r"\s+")

# ---------------------------------------------------------------------------
# Synthetic display columns (filled by the renderer/exporter, not the data)
# ---------------------------------------------------------------------------
ROW_NUMBER_HEADER: str = "序号"
IMAGE_HEADER: str = "主图"

# Raw keys that may hold the product image URL, in lookup order
IMAGE_SOURCE_KEYS: tuple[str, ...] = ("商品主图", "imageUrl", "image")

# Hyperlink sources for linkable columns
ASIN_LINK_KEYS: tuple[str, ...] = ("商品详情页链接", "url")
BRAND_LINK_KEY: str = "品牌链接"
SELLER_HEADER: str = "BuyBox卖家"
SELLER_LINK_KEY: str = "卖家首页"
RANK_LINK_TEMPLATE: str = (
    "https://www.xiyouzhaoci.com/detail/asin/look_up/{site}/{asin}"
)

# ---------------------------------------------------------------------------
# Priority groups: (group name, synonym variants, synthetic?)
# Declared order is display order.  Only ONE present header per group is
# shown; the other synonyms are dropped.
# ---------------------------------------------------------------------------
PRIORITY_GROUP_SPECS: list[tuple[str, tuple[str, ...], bool]] = [
    (ROW_NUMBER_HEADER, (ROW_NUMBER_HEADER,), True),
    ("ASIN", ("ASIN",), False),
    (IMAGE_HEADER, (IMAGE_HEADER,), True),
    ("价格", ("价格($)", "价格", "Price"), False),
    ("子体销量", ("子体销量", "子体历史月销量", "Sub-item Sales"), False),
    ("月销量", ("月销量", "父体销量", "月度销量", "近30天销量", "Monthly Sales"), False),
    ("评分数", ("评分数", "评论数", "Reviews"), False),
    ("评分", ("评分", "Rating"), False),
    ("上架时间", ("上架时间", "Date First Available"), False),
    ("品牌", ("品牌", "Brand"), False),
    ("FBA", ("FBA($)", "FBA费用($)", "FBA费用", "FBA Fee", "FBA"), False),
    ("SKU", ("SKU",), False),
]

# ---------------------------------------------------------------------------
# Derived-metric fields
# ---------------------------------------------------------------------------
ORGANIC_TRAFFIC_KEY: str = "自然流量占比"
AD_TRAFFIC_KEY: str = "广告流量占比"
TRAFFIC_RATIO_KEY: str = "流量占比(自然:广告)"

LISTING_DATE_KEY: str = "上架时间"
LISTING_AGE_KEY: str = "上架时段"

# (inclusive month threshold, bucket label); anything older → overflow
LISTING_AGE_BUCKETS: list[tuple[int, str]] = [
    (3, "3个月"),
    (6, "6个月"),
    (9, "9个月"),
    (12, "12个月"),
]
LISTING_AGE_OVERFLOW: str = "1年+"

# Chart inputs
BRAND_KEY: str = "品牌"
RECENT_SALES_KEY: str = "近30天销量"
PARENT_ASIN_KEY: str = "父ASIN"
UNKNOWN_BRAND: str = "Unknown"
PRICE_KEY: str = "价格"
TITLE_KEY: str = "商品标题"
