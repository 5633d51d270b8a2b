"""Delimited-text tokenizer.

Turns uploaded text into rows of trimmed string fields. Quoting follows the
usual CSV rules via the stdlib :mod:`csv` module: a separator inside a quoted
field is literal, and a doubled quote inside a quoted field is one literal
quote, so ``"Acme, Inc. ""Best"" Store"`` reads as ``Acme, Inc. "Best" Store``.
"""

from __future__ import annotations

import csv
from io import StringIO

from .errors import MalformedInput
from .logging_setup import get_logger
from .models import RawRow

logger = get_logger(__name__)

# Candidates for separator detection, in preference order on ties.
SEPARATORS: tuple[str, ...] = (",", ";", "\t", "|")


def normalize_newlines(text: str) -> str:
    return text.replace("\r\n", "\n").replace("\r", "\n")


def decode_upload(data: bytes) -> str:
    """Decode uploaded bytes as UTF-8 (BOM tolerated), falling back to cp1252."""

    if not data:
        raise MalformedInput("uploaded file is empty")
    try:
        return data.decode("utf-8-sig")
    except UnicodeDecodeError:
        logger.debug("upload is not valid UTF-8; decoding as cp1252")
    try:
        return data.decode("cp1252")
    except UnicodeDecodeError as exc:
        raise MalformedInput("uploaded file is not readable text") from exc


def detect_separator(text: str) -> str:
    """Guess the field separator from the first non-blank line.

    Counts unquoted occurrences of each candidate and returns the most frequent
    one; a comma is returned when nothing matches.
    """

    for line in normalize_newlines(text).split("\n"):
        if line.strip():
            header = line
            break
    else:
        return ","

    counts = {sep: 0 for sep in SEPARATORS}
    in_quotes = False
    for ch in header:
        if ch == '"':
            in_quotes = not in_quotes
        elif not in_quotes and ch in counts:
            counts[ch] += 1
    best = max(SEPARATORS, key=lambda sep: counts[sep])
    return best if counts[best] else ","


def tokenize_delimited(text: str, separator: str = ",") -> list[RawRow]:
    """Split ``text`` into rows of trimmed fields.

    Line endings are normalized and blank lines dropped. Raises
    :class:`MalformedInput` when the text cannot be read or when fewer than two
    rows remain (a header plus at least one data row is required).
    """

    if len(separator) != 1 or separator == '"':
        raise ValueError(f"separator must be a single non-quote character: {separator!r}")
    if not text or not text.strip():
        raise MalformedInput("no rows found in uploaded text")

    rows: list[RawRow] = []
    with StringIO(normalize_newlines(text)) as f:
        reader = csv.reader(f, delimiter=separator, quotechar='"', skipinitialspace=True)
        try:
            for raw in reader:
                fields = [cell.strip() for cell in raw]
                if not any(fields):
                    continue
                rows.append(fields)
        except csv.Error as exc:
            raise MalformedInput(f"failed to parse delimited text: {exc}") from exc

    if len(rows) < 2:
        raise MalformedInput(
            f"expected a header and at least one data row; found {len(rows)} row(s)"
        )
    logger.debug("tokenized %d data row(s) with separator %r", len(rows) - 1, separator)
    return rows


__all__ = ["SEPARATORS", "decode_upload", "detect_separator", "tokenize_delimited"]
