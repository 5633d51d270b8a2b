"""Description normalization shared by both import paths.

``clean_description`` reduces a raw institutional description to a readable
vendor name for display, history keys, and statement-path comparisons.
``description_key`` is the case/whitespace-insensitive key used for every
lookup against the history index.
"""

from __future__ import annotations

import re
import unicodedata

from .models import TransactionTypeTag

# Ordered statement-line prefixes -> transaction type. First match wins, so the
# longer "Recurring ..." and "... Credit Voucher" forms come before the shorter
# prefixes they contain.
TRANSACTION_TYPE_PREFIXES: tuple[tuple[str, TransactionTypeTag], ...] = (
    ("Recurring Withdrawal Debit Card", TransactionTypeTag.RECURRING),
    ("Withdrawal Debit Card", TransactionTypeTag.DEBIT),
    ("Deposit Transfer", TransactionTypeTag.TRANSFER_IN),
    ("Deposit by Check", TransactionTypeTag.CHECK_DEPOSIT),
    ("Withdrawal by Cash", TransactionTypeTag.CASH_WITHDRAWAL),
    ("Recurring Withdrawal Bill Payment", TransactionTypeTag.BILL_PAY),
    ("Withdrawal Adjustment Debit Card Credit Voucher", TransactionTypeTag.REFUND),
    ("Withdrawal Adjustment", TransactionTypeTag.REFUND),
)

_PREFIX_PATTERNS: tuple[tuple[re.Pattern[str], TransactionTypeTag], ...] = tuple(
    (re.compile(r"^" + re.escape(prefix) + r"\b\s*", re.IGNORECASE), tag)
    for prefix, tag in TRANSACTION_TYPE_PREFIXES
)

# (pattern, replacement) applied in order after the type prefix is removed.
_BOILERPLATE: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"^From\s+", re.IGNORECASE), ""),
    # Long reference numbers joined with " - "
    (re.compile(r"\s*-\s*\d{15,}\s*(?:-\s*)?"), " "),
    (re.compile(r"\s*-\s*\d{15,}"), ""),
    (re.compile(r"POS\s*#\d{6,}\s*", re.IGNORECASE), ""),
    (re.compile(r"Bill\s*Payment\s*#\d{6,}\s*", re.IGNORECASE), ""),
    (re.compile(r"#\d{6,}\b"), ""),
    # Phone numbers (xxx-xxx-xxxx, xxx.xxx.xxxx, xxx-xxxxxxx)
    (re.compile(r"\b\d{3}[-.]?\d{3}[-.]?\d{4}\b"), ""),
    (re.compile(r"\b\d{3}[-.]?\d{4,7}\b"), ""),
    # MM/DD fragments
    (re.compile(r"\b\d{1,2}/\d{1,2}\b"), ""),
    (re.compile(r"^NST\s+", re.IGNORECASE), ""),
    # Card processor markers, e.g. "SQ *BLUE BOTTLE", "AMZN MKTP US*2K3L91XY0"
    (re.compile(r"^(?:SQ|TST|PAYPAL|PP)\s?\*\s*", re.IGNORECASE), ""),
    (re.compile(r"\s*\*\s*(?=[A-Z]*\d)[A-Z0-9]{6,}\s*$"), ""),
    # Trailing state code (upper case only; "Co" in "Acme Co" is not Colorado)
    (re.compile(r"\s+(?:CA|OR|NY|PA|FL|WA|TX|CO|AZ|NV)\s*$"), ""),
    # Trailing street address, e.g. "3300 GATEWAY ST"
    (
        re.compile(
            r"\s+\d+\s+(?:[A-Z0-9]+\s+)+(?:ST|AVE|RD|BLVD|DR|LN|WAY)\s*$", re.IGNORECASE
        ),
        "",
    ),
    # Trailing numeric reference, e.g. "0000119"
    (re.compile(r"\s+\d{6,}\s*$"), ""),
)

_WS_RE = re.compile(r"\s+")


def collapse_whitespace(text: str) -> str:
    return _WS_RE.sub(" ", text).strip()


def match_transaction_type(raw: str) -> tuple[TransactionTypeTag, int] | None:
    """Return the first matching type prefix and its length in ``raw``."""

    s = raw.strip()
    for pattern, tag in _PREFIX_PATTERNS:
        m = pattern.match(s)
        if m:
            return tag, m.end()
    return None


def _clean_once(text: str) -> str:
    s = text.strip()
    matched = match_transaction_type(s)
    if matched is not None:
        s = s[matched[1] :]
    for pattern, repl in _BOILERPLATE:
        s = pattern.sub(repl, s)
    return collapse_whitespace(s).strip(" -")


def clean_description(raw: str | None) -> str:
    """Strip institutional boilerplate from ``raw``.

    Passes are repeated until the text stops changing, so the result is a
    fixed point: ``clean_description(clean_description(x)) ==
    clean_description(x)``. When a pass would strip everything, the last
    non-empty stage is returned instead of an empty name.
    """

    if not raw or not raw.strip():
        return ""
    current = collapse_whitespace(raw)
    # Every pass only deletes text, so this terminates.
    while True:
        cleaned = _clean_once(current)
        if not cleaned or cleaned == current:
            return current
        current = cleaned


def description_key(text: str | None) -> str:
    """Case-folded, NFKC-normalized, whitespace-collapsed comparison key."""

    if text is None:
        return ""
    s = unicodedata.normalize("NFKC", str(text))
    return collapse_whitespace(s).casefold()


__all__ = [
    "TRANSACTION_TYPE_PREFIXES",
    "clean_description",
    "collapse_whitespace",
    "description_key",
    "match_transaction_type",
]
