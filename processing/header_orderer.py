"""
Header orderer — computes the display/export column order.

The merged dataset has a few hundred columns whose names vary between
exports ("价格($)" vs "价格" vs "Price").  A declarative list of priority
groups (config/header_rules.py) puts the important categories first, and
shows only ONE column per category even when the data carries several
synonyms of it.

Algorithm (one pass over PRIORITY_GROUPS, in declared order):
  1. Synthetic groups (序号, 主图) are always emitted; a present key with
     the same loose name is consumed so it does not appear twice.
  2. For other groups, the first variant (declared order) with a loose
     match wins; of the keys matching it, the first discovered is emitted.
  3. Every key matching any variant of the group leaves the pool.
  4. Keys left in the pool follow in discovery order.

Public API:
    PriorityGroup
    PRIORITY_GROUPS
    collect_keys(records) → list[str]
    order_headers(keys, groups=PRIORITY_GROUPS, include_synthetic=True) → list[str]
    visible_headers(headers, collapse_history) → list[str]
    find_near_misses(keys, threshold=85) → dict[str, str]
"""

import logging
from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Sequence

from thefuzz import fuzz, process

from config.header_rules import PRIORITY_GROUP_SPECS
from config.sales_sheets import HISTORY_COLUMN_PATTERN
from processing.key_normalizer import loose_key

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════════
# Data class
# ═══════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class PriorityGroup:
    """One logical column category and its synonym header names."""

    name: str
    variants: tuple[str, ...]
    synthetic: bool = False   # filled by the renderer, not by the data


PRIORITY_GROUPS: list[PriorityGroup] = [
    PriorityGroup(name, variants, synthetic)
    for name, variants, synthetic in PRIORITY_GROUP_SPECS
]


# ═══════════════════════════════════════════════════════════════════════════
# Public API
# ═══════════════════════════════════════════════════════════════════════════

def collect_keys(records: Iterable[Mapping[str, Any]]) -> list[str]:
    """Union of keys across all records, in first-discovery order."""
    keys: dict[str, None] = {}
    for record in records:
        for key in record:
            keys.setdefault(key, None)
    return list(keys)


def order_headers(
    keys: Iterable[str],
    groups: Sequence[PriorityGroup] = PRIORITY_GROUPS,
    include_synthetic: bool = True,
) -> list[str]:
    """
    Order the present keys for display and export.

    Args:
        keys: Keys present in the dataset, in discovery order (duplicates
              are ignored).
        groups: Priority groups in display order.
        include_synthetic: Emit synthetic columns (序号, 主图) even though
              no record carries them.  With False, the output contains
              only keys from the input.

    Returns:
        Ordered header list without duplicates.
    """
    pool: list[str] = list(dict.fromkeys(keys))
    ordered: list[str] = []

    for group in groups:
        if group.synthetic and include_synthetic:
            ordered.append(group.name)
            _remove_matching(pool, group.variants)
            continue

        chosen = _first_match(pool, group.variants)
        removed = _remove_matching(pool, group.variants)
        if chosen is not None:
            ordered.append(chosen)
            if len(removed) > 1:
                logger.debug(
                    f"Group '{group.name}': kept '{chosen}', "
                    f"dropped synonyms {[k for k in removed if k != chosen]}"
                )

    ordered.extend(pool)
    return ordered


def visible_headers(headers: Sequence[str], collapse_history: bool) -> list[str]:
    """
    Apply the user's collapse toggle: hide the suffixed monthly history
    columns ("2025-01-父-U", ...) when collapsed.
    """
    if not collapse_history:
        return list(headers)
    return [h for h in headers if not HISTORY_COLUMN_PATTERN.match(h)]


def find_near_misses(
    keys: Iterable[str],
    groups: Sequence[PriorityGroup] = PRIORITY_GROUPS,
    threshold: int = 85,
) -> dict[str, str]:
    """
    Keys that matched no priority group but look like one of its variants.

    Purely diagnostic: shown in the UI so unusual exports can be spotted.
    The ordering itself never uses fuzzy matching.

    Returns:
        key → group name, in discovery order.
    """
    candidates: dict[str, str] = {}
    for group in groups:
        if group.synthetic:
            continue
        for variant in group.variants:
            candidates.setdefault(loose_key(variant), group.name)

    near_misses: dict[str, str] = {}
    for key in dict.fromkeys(keys):
        query = loose_key(key)
        if not query or query in candidates or HISTORY_COLUMN_PATTERN.match(key):
            continue

        # Bracket and currency noise is already gone from both sides
        match = process.extractOne(
            query, candidates, scorer=fuzz.token_sort_ratio, score_cutoff=threshold
        )
        if match is None:
            continue

        group_name, score, variant = match
        near_misses[key] = group_name
        logger.info(
            f"Header '{key}' resembles '{variant}' of priority group "
            f"'{group_name}' (score={score}) but was not matched"
        )

    return near_misses


# ═══════════════════════════════════════════════════════════════════════════
# Internal helpers
# ═══════════════════════════════════════════════════════════════════════════

def _first_match(pool: list[str], variants: Sequence[str]) -> str | None:
    """First pool key matching the earliest variant that has any match."""
    for variant in variants:
        target = loose_key(variant)
        for key in pool:
            if loose_key(key) == target:
                return key
    return None


def _remove_matching(pool: list[str], variants: Sequence[str]) -> list[str]:
    """Remove (in place) and return every pool key matching any variant."""
    targets = {loose_key(v) for v in variants}
    removed = [key for key in pool if loose_key(key) in targets]
    if removed:
        pool[:] = [key for key in pool if loose_key(key) not in targets]
    return removed
