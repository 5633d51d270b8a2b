"""Statement text parser for the supported credit-union checking layout.

Input is the plain text already extracted from the statement document, as one
stream of page texts. Transaction lines look like::

    MM/DD  [-]amount  balance  description ... (up to the next line)

Amounts carry no currency symbol, which is what keeps the "Starting Balance
$61.50" and "Ending Balance ... $912.76" summary lines from matching. The
description of a line is everything between the end of its match and the
start of the next one, minus page headers and footers.

Only this one layout is recognized. A text that yields no transaction lines
raises :class:`NoTransactionsFound` instead of guessing at its structure.
"""

from __future__ import annotations

import datetime as dt
import re
from dataclasses import dataclass
from decimal import Decimal

from .descriptions import (
    clean_description,
    collapse_whitespace,
    description_key,
    match_transaction_type,
)
from .errors import NoTransactionsFound
from .history import HistoryIndex, is_duplicate, suggest_category
from .logging_setup import get_logger
from .models import (
    EntryType,
    StatementExtraction,
    TransactionCandidate,
    TransactionTypeTag,
)

logger = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class StatementLayout:
    """Markers and patterns describing one institution's statement text."""

    name: str
    section_start: str
    section_ends: tuple[str, ...]
    line_pattern: re.Pattern[str]
    artifacts: tuple[re.Pattern[str], ...]


SELCO_CHECKING = StatementLayout(
    name="selco_checking",
    section_start="ID : 10 LINK DIGITAL CHECKING",
    section_ends=("Ending Balance for LINK DIGITAL CHECKING", "Total Deposits:"),
    # Groups: month, day, signed amount, balance
    line_pattern=re.compile(
        r"(?<![\d/])(\d{1,2})/(\d{1,2})\s+(-?[\d,]+\.\d{2})\s+(-?[\d,]+\.\d{2})(?!\d)"
    ),
    artifacts=(
        re.compile(r"Member Number:\s*\d+", re.IGNORECASE),
        re.compile(r"Statement Date:\s*\S+\s+through\s+\S+", re.IGNORECASE),
        re.compile(r"Page:\s*\d+\s*of\s*\d+", re.IGNORECASE),
        re.compile(r"Member Since:\s*\d+", re.IGNORECASE),
        re.compile(r"PO Box \d+\s+\w+,\s*\w+\s+\d+", re.IGNORECASE),
        re.compile(r"selco\.org\s*/?\s*[\d-]*", re.IGNORECASE),
        re.compile(
            r"Trans\s+Eff\.\s*Date\s+Date\s+Transaction Description\s+Amount\s+Balance",
            re.IGNORECASE,
        ),
    ),
)

# Ordered month-name patterns; the first one present decides the period.
_MONTH_PATTERNS: tuple[tuple[re.Pattern[str], int], ...] = tuple(
    (re.compile(rf"\b(?:{names})\s+(\d{{4}})\b", re.IGNORECASE), number)
    for names, number in (
        ("January|Jan", 1),
        ("February|Feb", 2),
        ("March|Mar", 3),
        ("April|Apr", 4),
        ("May", 5),
        ("June|Jun", 6),
        ("July|Jul", 7),
        ("August|Aug", 8),
        ("September|Sept|Sep", 9),
        ("October|Oct", 10),
        ("November|Nov", 11),
        ("December|Dec", 12),
    )
)
_PERIOD_START_RE = re.compile(r"(\d{1,2})/\d{1,2}/(\d{4})\s+through", re.IGNORECASE)
_PERIOD_RE = re.compile(
    r"(\d{1,2})/(\d{1,2})/(\d{4})\s+through\s+(\d{1,2})/(\d{1,2})/(\d{4})", re.IGNORECASE
)
_BALANCE_LINE_RE = re.compile(r"Starting Balance|Ending Balance", re.IGNORECASE)


def extract_statement_month(text: str, *, today: dt.date | None = None) -> str:
    """Return the statement period as ``"YYYY-MM"``.

    Looks for a month name followed by a year, then for a
    ``MM/DD/YYYY through`` period, and finally falls back to ``today``.
    """

    for pattern, number in _MONTH_PATTERNS:
        m = pattern.search(text)
        if m:
            return f"{m.group(1)}-{number:02d}"
    m = _PERIOD_START_RE.search(text)
    if m:
        return f"{m.group(2)}-{int(m.group(1)):02d}"
    fallback = today or dt.date.today()
    logger.warning("no statement period found; assuming %04d-%02d", fallback.year, fallback.month)
    return f"{fallback.year:04d}-{fallback.month:02d}"


def _statement_period(text: str) -> tuple[dt.date, dt.date] | None:
    m = _PERIOD_RE.search(text)
    if not m:
        return None
    try:
        start = dt.date(int(m.group(3)), int(m.group(1)), int(m.group(2)))
        end = dt.date(int(m.group(6)), int(m.group(4)), int(m.group(5)))
    except ValueError:
        return None
    return start, end


def _line_year(month: int, default_year: int, period: tuple[dt.date, dt.date] | None) -> int:
    # A period spanning New Year puts December lines in the start year.
    if period is None or period[0].year == period[1].year:
        return default_year
    start, end = period
    return start.year if month >= start.month else end.year


def classify_transaction_type(raw_description: str | None) -> TransactionTypeTag:
    """Classify a statement line by its leading prefix; default OTHER."""

    if not raw_description:
        return TransactionTypeTag.OTHER
    matched = match_transaction_type(raw_description)
    return matched[0] if matched else TransactionTypeTag.OTHER


def strip_statement_artifacts(raw: str, layout: StatementLayout = SELCO_CHECKING) -> str:
    """Remove page headers/footers caught between two transaction lines."""

    s = raw
    for pattern in layout.artifacts:
        s = pattern.sub("", s)
    return collapse_whitespace(s)


def _section(text: str, layout: StatementLayout) -> str:
    start = text.find(layout.section_start)
    end = len(text)
    for marker in layout.section_ends:
        idx = text.find(marker)
        if idx >= 0:
            end = idx
            break
    if start >= 0 and start < end:
        return text[start:end]
    return text[:end]


def _to_decimal(raw: str) -> Decimal:
    return Decimal(raw.replace(",", ""))


def parse_statement_text(
    text: str,
    history: HistoryIndex,
    *,
    source_tag: str = "pdf",
    layout: StatementLayout = SELCO_CHECKING,
    today: dt.date | None = None,
) -> StatementExtraction:
    """Parse extracted statement text into a :class:`StatementExtraction`.

    Each recognized line becomes a candidate with a non-negative amount
    (INCOME when the statement amount is positive, EXPENSE otherwise), its
    transaction-type tag, the running balance, and duplicate/category
    resolved against ``history`` by cleaned description.
    """

    if not isinstance(text, str) or not text.strip():
        raise NoTransactionsFound("statement text is empty")

    month = extract_statement_month(text, today=today)
    default_year = int(month[:4])
    period = _statement_period(text)
    section = _section(text, layout)

    matches = list(layout.line_pattern.finditer(section))
    candidates: list[TransactionCandidate] = []
    for i, m in enumerate(matches):
        desc_end = matches[i + 1].start() if i + 1 < len(matches) else len(section)
        raw = strip_statement_artifacts(section[m.end() : desc_end], layout)

        if not candidates and _BALANCE_LINE_RE.search(raw):
            continue

        signed = _to_decimal(m.group(3))
        amount = abs(signed)
        line_month, line_day = int(m.group(1)), int(m.group(2))
        problem: str | None = None
        date: dt.date | None
        try:
            date = dt.date(_line_year(line_month, default_year, period), line_month, line_day)
        except ValueError:
            date = None
            problem = "unparsable_date"
            logger.debug("statement line %d has invalid date %s", i, m.group(0))
        if date is None and amount == 0:
            continue

        cleaned = clean_description(raw)
        key = description_key(cleaned)
        duplicate = is_duplicate(history, date, amount, key)
        candidates.append(
            TransactionCandidate(
                position=len(candidates),
                date=date,
                raw_description=raw,
                cleaned_description=cleaned,
                amount=amount,
                type=EntryType.INCOME if signed > 0 else EntryType.EXPENSE,
                category=suggest_category(history, key),
                included=not duplicate and amount > 0 and date is not None,
                duplicate=duplicate,
                source_tag=source_tag,
                transaction_type_tag=classify_transaction_type(raw),
                balance=_to_decimal(m.group(4)),
                problem=problem,
            )
        )

    if not candidates:
        raise NoTransactionsFound(
            f"no transaction lines recognized for layout {layout.name!r}; "
            "the document may be from an unsupported institution"
        )
    logger.info(
        "parsed %d statement line(s) for %s (%d duplicate(s))",
        len(candidates),
        month,
        sum(1 for c in candidates if c.duplicate),
    )
    return StatementExtraction(statement_month=month, candidates=tuple(candidates))


__all__ = [
    "SELCO_CHECKING",
    "StatementLayout",
    "classify_transaction_type",
    "extract_statement_month",
    "parse_statement_text",
    "strip_statement_artifacts",
]
