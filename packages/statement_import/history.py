"""History index plus the duplicate and category lookups built on it.

The index is derived once per import session from the store's history and is
read-only afterwards. Keys are :func:`statement_import.descriptions.description_key`
values; each stored record is indexed under its own description and, when it
differs, under its cleaned vendor name, so both import paths can match it.
"""

from __future__ import annotations

import datetime as dt
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from types import MappingProxyType

from .descriptions import clean_description, description_key
from .logging_setup import get_logger
from .models import HistoryRecord

logger = get_logger(__name__)

_CENT = Decimal("0.01")


def to_cents(amount: Decimal) -> int:
    """Absolute amount in whole cents (half-up)."""

    return int((abs(amount) / _CENT).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


@dataclass(frozen=True, slots=True)
class HistoryIndex:
    categories: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))
    entries: frozenset[tuple[dt.date, int, str]] = frozenset()

    def __len__(self) -> int:
        return len(self.entries)


def _keys_for(description: str) -> list[str]:
    keys = [description_key(description)]
    cleaned_key = description_key(clean_description(description))
    if cleaned_key and cleaned_key not in keys:
        keys.append(cleaned_key)
    return [k for k in keys if k]


def build_history_index(records: Iterable[HistoryRecord]) -> HistoryIndex:
    """Build the index from records in stored order.

    Later records win for category lookups, so each key maps to the category
    used most recently.
    """

    categories: dict[str, str] = {}
    entries: set[tuple[dt.date, int, str]] = set()
    count = 0
    for rec in records:
        count += 1
        cents = to_cents(rec.amount)
        for key in _keys_for(rec.description):
            entries.add((rec.date, cents, key))
            if rec.category:
                categories[key] = rec.category
    logger.debug("history index built from %d record(s), %d key(s)", count, len(categories))
    return HistoryIndex(categories=MappingProxyType(categories), entries=frozenset(entries))


def is_duplicate(
    index: HistoryIndex, date: dt.date | None, amount: Decimal, key: str
) -> bool:
    """True when history holds the same date and key with an amount within a cent."""

    if date is None or not key:
        return False
    cents = to_cents(amount)
    return any((date, c, key) in index.entries for c in (cents - 1, cents, cents + 1))


def suggest_category(index: HistoryIndex, key: str, current: str | None = None) -> str | None:
    """Fill a blank category from history; a non-blank ``current`` is kept as-is."""

    if current is not None and current.strip():
        return current
    if not key:
        return None
    return index.categories.get(key)


__all__ = [
    "HistoryIndex",
    "build_history_index",
    "is_duplicate",
    "suggest_category",
    "to_cents",
]
