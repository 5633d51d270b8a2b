"""Import session: upload -> map/parse -> review -> commit.

:class:`ImportSession` is the only mutable object in the pipeline. It owns the
uploaded rows, the column mapping and the candidate list under review, and
delegates every parsing and classification step to the pure functions in
``tokenizer``, ``columns``, ``rows``, ``statements`` and ``history``.

States and transitions::

    IDLE --upload_delimited--> MAPPING --confirm_mapping--> REVIEW
    IDLE --upload_statement----------------------------->  REVIEW
    REVIEW --commit--> COMMITTING --> DONE
    back():   MAPPING -> IDLE, REVIEW -> MAPPING (delimited) or IDLE (statement)
    cancel(): any state -> IDLE, discarding candidates

A structural failure (unreadable upload, invalid mapping, extraction failure,
unrecognized statement) propagates to the caller and leaves the state as it
was. Per-row persistence failures are collected in the :class:`CommitReport`
and never roll back rows that were already written.
"""

from __future__ import annotations

import datetime as dt
from dataclasses import dataclass, replace
from enum import StrEnum

from .columns import infer_column_mapping
from .errors import ImportStateError, PersistenceFailure
from .extraction import PdfPlumberExtractor, TextExtractor
from .history import HistoryIndex, build_history_index
from .logging_setup import get_logger
from .models import (
    AmountConvention,
    ColumnMapping,
    ColumnRole,
    RawRow,
    TransactionCandidate,
)
from .persistence import TransactionStore, build_transaction_record
from .rows import normalize_rows
from .statements import parse_statement_text
from .tokenizer import decode_upload, detect_separator, tokenize_delimited

logger = get_logger(__name__)


class ImportState(StrEnum):
    IDLE = "idle"
    MAPPING = "mapping"
    REVIEW = "review"
    COMMITTING = "committing"
    DONE = "done"


class ImportSource(StrEnum):
    DELIMITED = "delimited"
    STATEMENT = "statement"


@dataclass(frozen=True, slots=True)
class RowOutcome:
    """Result of persisting one included candidate."""

    position: int
    record_id: str


@dataclass(frozen=True, slots=True)
class CommitReport:
    """What a commit did, row by row, in commit order."""

    committed: tuple[RowOutcome, ...]
    failures: tuple[PersistenceFailure, ...]
    cancelled: bool = False

    @property
    def committed_count(self) -> int:
        return len(self.committed)

    @property
    def failed_count(self) -> int:
        return len(self.failures)


class ImportSession:
    """Drive one import for one profile.

    Parameters
    ----------
    store:
        Persistence collaborator; read once per upload for history and once
        per included candidate on commit.
    profile_id:
        Owner of the imported transactions.
    extractor:
        Text extraction collaborator for statement uploads. Defaults to
        :class:`~statement_import.extraction.PdfPlumberExtractor`.
    convention:
        Initial sign rule for single-amount-column files.
    source_tag:
        Tag stored on every committed row; defaults to ``"csv"`` for
        delimited uploads and ``"pdf"`` for statements.
    today:
        Reference date for statements without a recognizable period.
    """

    def __init__(
        self,
        store: TransactionStore,
        profile_id: str,
        *,
        extractor: TextExtractor | None = None,
        convention: AmountConvention = AmountConvention.NEGATIVE_IS_EXPENSE,
        source_tag: str | None = None,
        today: dt.date | None = None,
    ) -> None:
        self._store = store
        self._profile_id = profile_id
        self._extractor = extractor
        self._default_convention = convention
        self._source_tag = source_tag
        self._today = today
        self._cancel_requested = False
        self._reset()

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------

    @property
    def state(self) -> ImportState:
        return self._state

    @property
    def source(self) -> ImportSource | None:
        return self._source

    @property
    def header(self) -> tuple[str, ...]:
        return tuple(self._header)

    @property
    def mapping(self) -> ColumnMapping:
        return self._mapping

    @property
    def convention(self) -> AmountConvention:
        return self._convention

    @property
    def candidates(self) -> tuple[TransactionCandidate, ...]:
        return tuple(self._candidates)

    @property
    def statement_month(self) -> str | None:
        return self._statement_month

    @property
    def history(self) -> HistoryIndex:
        return self._history

    @property
    def included_count(self) -> int:
        return sum(1 for c in self._candidates if c.included)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _reset(self) -> None:
        self._state = ImportState.IDLE
        self._source: ImportSource | None = None
        self._header: RawRow = []
        self._rows: list[RawRow] = []
        self._mapping = ColumnMapping()
        self._convention = self._default_convention
        self._candidates: list[TransactionCandidate] = []
        self._statement_month: str | None = None
        self._history = HistoryIndex()

    def _require(self, *states: ImportState, action: str) -> None:
        if self._state not in states:
            allowed = ", ".join(s.value for s in states)
            raise ImportStateError(
                f"cannot {action} while {self._state.value}; allowed in: {allowed}"
            )

    def _transition(self, new: ImportState) -> None:
        logger.info("import session %s -> %s", self._state.value, new.value)
        self._state = new

    async def _load_history(self) -> HistoryIndex:
        records = await self._store.list_history(self._profile_id)
        return build_history_index(records)

    def _candidate_at(self, position: int) -> TransactionCandidate:
        if not 0 <= position < len(self._candidates):
            raise IndexError(f"no candidate at position {position}")
        return self._candidates[position]

    # ------------------------------------------------------------------
    # Delimited path
    # ------------------------------------------------------------------

    async def upload_delimited(self, data: bytes | str, *, separator: str | None = None) -> None:
        """Tokenize an uploaded delimited file and infer its column roles.

        Raises ``MalformedInput`` (state unchanged) when the text cannot be
        read or holds fewer than a header and one data row.
        """

        self._require(ImportState.IDLE, action="upload a delimited file")
        text = decode_upload(data) if isinstance(data, bytes) else data
        sep = separator or detect_separator(text)
        rows = tokenize_delimited(text, sep)
        history = await self._load_history()

        self._source = ImportSource.DELIMITED
        self._header = rows[0]
        self._rows = rows[1:]
        self._mapping = infer_column_mapping(self._header)
        self._history = history
        logger.info(
            "delimited upload: %d data row(s), separator %r, mapping valid=%s",
            len(self._rows),
            sep,
            self._mapping.is_valid(),
        )
        self._transition(ImportState.MAPPING)

    def set_column_role(self, index: int, role: ColumnRole) -> None:
        self._require(ImportState.MAPPING, action="change a column role")
        if not 0 <= index < len(self._header):
            raise IndexError(f"no column at index {index}")
        self._mapping = self._mapping.with_role(index, role)

    def set_convention(self, convention: AmountConvention) -> None:
        self._require(ImportState.MAPPING, action="change the amount convention")
        self._convention = convention

    def confirm_mapping(self) -> None:
        """Normalize every data row and move to review.

        Raises ``InvalidMapping`` (state unchanged) when required roles are
        missing.
        """

        self._require(ImportState.MAPPING, action="confirm the mapping")
        candidates = normalize_rows(
            self._rows,
            self._mapping,
            self._convention,
            self._history,
            source_tag=self._source_tag or "csv",
        )
        self._candidates = candidates
        self._transition(ImportState.REVIEW)

    # ------------------------------------------------------------------
    # Statement path
    # ------------------------------------------------------------------

    async def upload_statement(self, data: bytes) -> None:
        """Extract and parse a statement document, then move to review.

        Raises ``ExtractionFailed`` or ``NoTransactionsFound`` with the state
        unchanged.
        """

        self._require(ImportState.IDLE, action="upload a statement")
        extractor = self._extractor or PdfPlumberExtractor()
        text = await extractor.extract(data)
        history = await self._load_history()
        extraction = parse_statement_text(
            text,
            history,
            source_tag=self._source_tag or "pdf",
            today=self._today,
        )

        self._source = ImportSource.STATEMENT
        self._history = history
        self._statement_month = extraction.statement_month
        self._candidates = list(extraction.candidates)
        self._transition(ImportState.REVIEW)

    # ------------------------------------------------------------------
    # Review edits
    # ------------------------------------------------------------------

    def set_included(self, position: int, included: bool) -> None:
        self._require(ImportState.REVIEW, action="change row selection")
        candidate = self._candidate_at(position)
        if included and candidate.date is None:
            raise ValueError(f"row {position} has no valid date and cannot be included")
        self._candidates[position] = replace(candidate, included=included)

    def set_category(self, position: int, category: str | None) -> None:
        """Set or clear a row's category; an explicit value is never replaced."""

        self._require(ImportState.REVIEW, action="change a category")
        candidate = self._candidate_at(position)
        value = category.strip() if category is not None else None
        self._candidates[position] = replace(candidate, category=value or None)

    def select_all(self) -> None:
        """Include every row that has a valid date (duplicates too)."""

        self._require(ImportState.REVIEW, action="select all rows")
        self._candidates = [
            replace(c, included=c.date is not None) for c in self._candidates
        ]

    def deselect_all(self) -> None:
        self._require(ImportState.REVIEW, action="deselect all rows")
        self._candidates = [replace(c, included=False) for c in self._candidates]

    # ------------------------------------------------------------------
    # Navigation
    # ------------------------------------------------------------------

    def back(self) -> None:
        """Return to the previous step; nothing is persisted."""

        self._require(ImportState.MAPPING, ImportState.REVIEW, action="go back")
        if self._state is ImportState.REVIEW and self._source is ImportSource.DELIMITED:
            self._candidates = []
            self._transition(ImportState.MAPPING)
            return
        self._transition(ImportState.IDLE)
        self._reset()

    def cancel(self) -> None:
        """Abandon the import.

        Before commit nothing has been written. During a commit the loop stops
        before the next row; rows already written stay in place.
        """

        if self._state is ImportState.COMMITTING:
            logger.info("cancel requested during commit")
            self._cancel_requested = True
            return
        if self._state is not ImportState.IDLE:
            self._transition(ImportState.IDLE)
        self._reset()

    # ------------------------------------------------------------------
    # Commit
    # ------------------------------------------------------------------

    async def commit(self) -> CommitReport:
        """Persist included candidates one at a time, in list order.

        Requires at least one included candidate. Each row's outcome is
        recorded individually; a failed row does not stop the batch.
        """

        self._require(ImportState.REVIEW, action="commit")
        selected = [c for c in self._candidates if c.included]
        if not selected:
            raise ImportStateError("cannot commit: no rows are included")

        self._cancel_requested = False
        self._transition(ImportState.COMMITTING)
        committed: list[RowOutcome] = []
        failures: list[PersistenceFailure] = []
        cancelled = False
        try:
            for candidate in selected:
                if self._cancel_requested:
                    cancelled = True
                    break
                try:
                    record = build_transaction_record(candidate, self._profile_id)
                    result = await self._store.create_transaction(record)
                except Exception as exc:
                    failures.append(PersistenceFailure(candidate.position, str(exc)))
                    logger.warning("row %d not persisted: %s", candidate.position, exc)
                    continue
                if result.ok:
                    committed.append(RowOutcome(candidate.position, result.record_id or ""))
                else:
                    reason = result.error or "store reported failure"
                    failures.append(PersistenceFailure(candidate.position, reason))
                    logger.warning("row %d not persisted: %s", candidate.position, reason)
        except BaseException:
            # Task cancellation or interpreter shutdown mid-row: rows already
            # written stay, the session goes back to IDLE.
            logger.warning(
                "commit interrupted after %d committed row(s); session reset",
                len(committed),
            )
            self._cancel_requested = False
            self._transition(ImportState.IDLE)
            self._reset()
            raise

        report = CommitReport(
            committed=tuple(committed), failures=tuple(failures), cancelled=cancelled
        )
        logger.info(
            "commit finished: %d committed, %d failed%s",
            report.committed_count,
            report.failed_count,
            " (cancelled)" if cancelled else "",
        )
        self._cancel_requested = False
        if cancelled:
            self._transition(ImportState.IDLE)
            self._reset()
        else:
            self._transition(ImportState.DONE)
        return report


__all__ = [
    "CommitReport",
    "ImportSession",
    "ImportSource",
    "ImportState",
    "RowOutcome",
]
