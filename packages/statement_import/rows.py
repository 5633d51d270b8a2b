"""Delimited-path row normalizer: tokenized rows -> transaction candidates."""

from __future__ import annotations

import datetime as dt
from collections.abc import Iterable, Sequence
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from dateutil import parser as date_parser

from .descriptions import clean_description, description_key
from .errors import UnparsableDate
from .history import HistoryIndex, is_duplicate, suggest_category
from .logging_setup import get_logger
from .models import (
    AmountConvention,
    ColumnMapping,
    ColumnRole,
    EntryType,
    TransactionCandidate,
)

logger = get_logger(__name__)

_CENT = Decimal("0.01")
_ZERO = Decimal("0.00")
_CURRENCY_SYMBOLS = "$€£¥"


def parse_amount(raw: str | None) -> Decimal:
    """Parse a money string into a signed ``Decimal`` rounded to cents.

    Accepts currency symbols, thousands separators, a leading or trailing
    minus, and accounting parentheses in any combination (``"-($1,234.56)"``,
    ``"$(12.00)"``, ``"54.32-"``). Raises ``ValueError`` for anything else.
    """

    if raw is None:
        raise ValueError("amount is required")
    s = raw.strip()
    if not s:
        raise ValueError("amount is empty")
    negative = False

    # Strip sign, currency symbol and parentheses until stable so the markers
    # may appear in any order.
    while True:
        changed = False
        if s.startswith("+"):
            s = s[1:].lstrip()
            changed = True
        elif s.startswith("-"):
            negative = True
            s = s[1:].lstrip()
            changed = True
        elif s.endswith("-"):
            negative = True
            s = s[:-1].rstrip()
            changed = True
        if s[:1] and s[0] in _CURRENCY_SYMBOLS:
            s = s[1:].lstrip()
            changed = True
        if s.startswith("(") and s.endswith(")") and len(s) >= 2:
            negative = True
            s = s[1:-1].strip()
            changed = True
        if not changed:
            break

    s = s.replace(",", "").replace(" ", "")
    try:
        d = Decimal(s)
        if not d.is_finite():
            raise InvalidOperation(s)
        d = d.quantize(_CENT, rounding=ROUND_HALF_UP)
    except InvalidOperation as exc:
        raise ValueError(f"invalid amount: {raw!r}") from exc
    return -abs(d) if negative else d


def parse_date(raw: str | None) -> dt.date:
    """Generic calendar-date parsing (month-first for ambiguous numerics)."""

    s = (raw or "").strip()
    if not s:
        raise UnparsableDate(s)
    try:
        return date_parser.parse(s, dayfirst=False).date()
    except (ValueError, OverflowError) as exc:
        raise UnparsableDate(s) from exc


def _field(row: Sequence[str], index: int | None) -> str:
    if index is None or index >= len(row):
        return ""
    return row[index].strip()


# Cells banks use to mark the unused side of a debit/credit pair.
_EMPTY_MARKERS = frozenset({"-", "--", "\u2013", "\u2014", "+"})


def _optional_amount(raw: str) -> Decimal | None:
    if not raw or raw.replace(" ", "") in _EMPTY_MARKERS:
        return None
    return parse_amount(raw)


def resolve_amount(
    row: Sequence[str], mapping: ColumnMapping, convention: AmountConvention
) -> tuple[Decimal, EntryType]:
    """Return ``(magnitude, type)`` for one row; raises ``ValueError`` on bad numbers.

    A mapped AMOUNT column takes precedence over DEBIT/CREDIT.
    """

    if mapping.uses_amount_column():
        value = parse_amount(_field(row, mapping.index_of(ColumnRole.AMOUNT)))
        if convention is AmountConvention.NEGATIVE_IS_EXPENSE:
            expense = value < 0
        else:
            expense = value > 0
        return abs(value), (EntryType.EXPENSE if expense else EntryType.INCOME)

    # Each side is parsed on its own; a bad cell only matters when the other
    # side has nothing usable.
    error: ValueError | None = None
    credit = debit = None
    try:
        credit = _optional_amount(_field(row, mapping.index_of(ColumnRole.CREDIT)))
    except ValueError as exc:
        error = exc
    if credit is not None and credit > 0:
        return credit, EntryType.INCOME
    try:
        debit = _optional_amount(_field(row, mapping.index_of(ColumnRole.DEBIT)))
    except ValueError as exc:
        error = error or exc
    if debit is not None and (debit != 0 or error is None):
        return abs(debit), EntryType.EXPENSE
    if error is not None:
        raise error
    return _ZERO, EntryType.EXPENSE


def normalize_row(
    row: Sequence[str],
    *,
    position: int,
    mapping: ColumnMapping,
    convention: AmountConvention,
    history: HistoryIndex,
    source_tag: str,
) -> TransactionCandidate | None:
    """Normalize one data row; ``None`` means the row is dropped entirely."""

    problem: str | None = None
    date: dt.date | None
    try:
        date = parse_date(_field(row, mapping.index_of(ColumnRole.DATE)))
    except UnparsableDate as exc:
        date = None
        problem = "unparsable_date"
        logger.debug("row %d: %s", position, exc)

    try:
        amount, entry_type = resolve_amount(row, mapping, convention)
    except ValueError as exc:
        amount, entry_type = _ZERO, EntryType.EXPENSE
        problem = problem or "unparsable_amount"
        logger.debug("row %d: %s", position, exc)

    if date is None and amount == 0:
        return None

    description = _field(row, mapping.index_of(ColumnRole.DESCRIPTION))
    cleaned = clean_description(description)
    key = description_key(description)

    category = suggest_category(
        history, key, _field(row, mapping.index_of(ColumnRole.CATEGORY)) or None
    )
    if category is None:
        category = suggest_category(history, description_key(cleaned))

    # History is keyed by raw and cleaned descriptions, so a raw "NETFLIX.COM"
    # also matches an earlier statement row that cleaned down to that name.
    duplicate = is_duplicate(history, date, amount, key)
    return TransactionCandidate(
        position=position,
        date=date,
        raw_description=description,
        cleaned_description=cleaned,
        amount=amount,
        type=entry_type,
        category=category,
        included=not duplicate and amount > 0 and date is not None,
        duplicate=duplicate,
        source_tag=source_tag,
        problem=problem,
    )


def normalize_rows(
    rows: Iterable[Sequence[str]],
    mapping: ColumnMapping,
    convention: AmountConvention,
    history: HistoryIndex,
    *,
    source_tag: str = "csv",
) -> list[TransactionCandidate]:
    """Turn data rows (header excluded) into candidates, preserving row order.

    Raises :class:`statement_import.errors.InvalidMapping` before touching any
    row when the mapping lacks required roles. Blank rows are skipped and rows
    with an unparsable date and a zero amount are discarded.
    """

    mapping.validate()
    out: list[TransactionCandidate] = []
    dropped = 0
    for row in rows:
        if not any(cell.strip() for cell in row):
            continue
        candidate = normalize_row(
            row,
            position=len(out),
            mapping=mapping,
            convention=convention,
            history=history,
            source_tag=source_tag,
        )
        if candidate is None:
            dropped += 1
            continue
        out.append(candidate)

    logger.info(
        "normalized %d row(s): %d included, %d duplicate(s), %d dropped",
        len(out),
        sum(1 for c in out if c.included),
        sum(1 for c in out if c.duplicate),
        dropped,
    )
    return out


__all__ = [
    "normalize_row",
    "normalize_rows",
    "parse_amount",
    "parse_date",
    "resolve_amount",
]
