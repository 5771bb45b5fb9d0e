"""
Key normalizer — canonicalizes raw spreadsheet header strings.

The product, keyword and sales exports are produced by different tools and
disagree on punctuation: full-width brackets, stray zero-width characters,
"($)" currency suffixes.  Every header goes through normalize_key() so the
same logical column gets the same name in every file.

Public API:
    normalize_key(raw) → str
    clean_header(raw) → str
    is_placeholder_key(key) → bool
    normalize_record(record) → dict
    normalize_records(records) → list[dict]
    loose_key(key) → str
"""

import logging
from typing import Any, Iterable, Mapping

from config.header_rules import (
    BRACKET_MAP,
    CURRENCY_SUFFIX,
    EXACT_RENAMES,
    INVISIBLE_CHARS_PATTERN,
    LOOSE_BRACKETS_PATTERN,
    LOOSE_CURRENCY_PATTERN,
    NATURAL_RANK_LABEL,
    NATURAL_RANK_PATTERN,
    PLACEHOLDER_PREFIX,
    PUNCTUATION_MAP,
    UNNAMED_MARKER,
    WHITESPACE_PATTERN,
)

logger = logging.getLogger(__name__)

_CHAR_TABLE = str.maketrans({**BRACKET_MAP, **PUNCTUATION_MAP})


# ═══════════════════════════════════════════════════════════════════════════
# Public API
# ═══════════════════════════════════════════════════════════════════════════

def normalize_key(raw: Any) -> str:
    """
    Canonicalize one raw header.

    Steps:
      1. Trim, strip zero-width/BOM characters (empty → "")
      2. Full-width brackets and punctuation → half-width
      3. Strip the literal "($)" currency suffix, trim again
      4. Domain overrides (natural-rank label, "月销量" → "父体销量")

    Total and idempotent: normalize_key(normalize_key(x)) == normalize_key(x).

    Args:
        raw: Header value as read from row 1 (usually str; None allowed).

    Returns:
        The canonical header, or "" if nothing is left (caller drops it).
    """
    key = clean_header(raw)
    if not key:
        return ""

    # Removing one marker can join the halves of another: "(($)$)"
    while CURRENCY_SUFFIX in key:
        key = key.replace(CURRENCY_SUFFIX, "")
    key = key.strip()
    return _apply_domain_overrides(key)


def clean_header(raw: Any) -> str:
    """
    Generic cleanup only: trim, drop invisible characters, map full-width
    brackets/punctuation.  Keeps the "($)" marker, which the sales
    reconciler needs to tell revenue columns from unit columns.
    """
    if raw is None:
        return ""

    text = INVISIBLE_CHARS_PATTERN.sub("", str(raw).strip()).strip()
    if not text:
        return ""

    return text.translate(_CHAR_TABLE)


def is_placeholder_key(key: str) -> bool:
    """True for blank-header placeholders that must never reach the output."""
    return (
        not key
        or key.startswith(PLACEHOLDER_PREFIX)
        or UNNAMED_MARKER in key.lower()
    )


def normalize_record(record: Mapping[str, Any]) -> dict[str, Any]:
    """
    Return a new record keyed by canonical header names.

    Placeholder columns are dropped.  If two raw headers normalize to the
    same key, the later one wins.
    """
    normalized: dict[str, Any] = {}
    for raw_key, value in record.items():
        key = normalize_key(raw_key)
        if is_placeholder_key(key):
            continue
        normalized[key] = value
    return normalized


def normalize_records(records: Iterable[Mapping[str, Any]]) -> list[dict[str, Any]]:
    """normalize_record() over a sequence of rows."""
    result = [normalize_record(record) for record in records]
    logger.debug(f"Normalized keys for {len(result)} records")
    return result


def loose_key(key: str) -> str:
    """
    Loose form used only for priority-group matching: no whitespace,
    lowercase, no brackets, no currency symbols.

    "价格 ($)" → "价格",  "FBA Fee" → "fbafee"
    """
    text = WHITESPACE_PATTERN.sub("", str(key).strip()).lower()
    text = LOOSE_BRACKETS_PATTERN.sub("", text)
    return LOOSE_CURRENCY_PATTERN.sub("", text)


# ═══════════════════════════════════════════════════════════════════════════
# Internal helpers
# ═══════════════════════════════════════════════════════════════════════════

def _apply_domain_overrides(key: str) -> str:
    """Listing-specific renames that run after generic normalization."""
    if NATURAL_RANK_PATTERN.match(key):
        logger.debug(f"Natural-rank header '{key}' → '{NATURAL_RANK_LABEL}'")
        return NATURAL_RANK_LABEL

    renamed = EXACT_RENAMES.get(key)
    if renamed is not None:
        logger.debug(f"Domain rename '{key}' → '{renamed}'")
        return renamed

    return key
