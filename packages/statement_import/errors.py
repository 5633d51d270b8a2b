"""Error taxonomy for the statement import pipeline.

Structural failures (``MalformedInput``, ``InvalidMapping``,
``ExtractionFailed``, ``NoTransactionsFound``) block session advancement until
the user re-uploads or remaps. Per-row failures (``UnparsableDate``,
``PersistenceFailure``) are recorded against a single row and never abort the
rest of the batch.
"""

from __future__ import annotations

from collections.abc import Iterable


class StatementImportError(Exception):
    """Base class for every error raised by ``statement_import``."""


class MalformedInput(StatementImportError):
    """The uploaded text is unreadable or too short to contain transactions."""


class InvalidMapping(StatementImportError):
    """The column mapping lacks one or more required roles."""

    def __init__(self, missing: Iterable[str]) -> None:
        self.missing: tuple[str, ...] = tuple(missing)
        super().__init__("column mapping is missing required roles: " + ", ".join(self.missing))


class UnparsableDate(StatementImportError):
    """A single row's date could not be read; only that row is affected."""

    def __init__(self, raw: str) -> None:
        self.raw = raw
        super().__init__(f"unparsable date: {raw!r}")


class ExtractionFailed(StatementImportError):
    """Text extraction from the uploaded statement document failed."""


class NoTransactionsFound(StatementImportError):
    """The statement text did not match the supported layout."""


class PersistenceFailure(StatementImportError):
    """Creating one transaction record in the store failed."""

    def __init__(self, position: int, reason: str) -> None:
        self.position = position
        self.reason = reason
        super().__init__(f"row {position}: {reason}")


class ImportStateError(StatementImportError):
    """An operation was invoked in a session state that does not allow it."""


__all__ = [
    "StatementImportError",
    "MalformedInput",
    "InvalidMapping",
    "UnparsableDate",
    "ExtractionFailed",
    "NoTransactionsFound",
    "PersistenceFailure",
    "ImportStateError",
]
