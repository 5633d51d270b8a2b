"""Data models for the statement import pipeline.

Parsing and classification produce frozen values (``TransactionCandidate``,
``StatementExtraction``, ``ColumnMapping``); the only mutable state lives in
:class:`statement_import.session.ImportSession`, which replaces candidates
wholesale when the user edits them.

Records crossing the persistence boundary (``HistoryRecord`` coming in,
``NewTransaction`` going out) are pydantic models so that whatever the store
returns is validated before it reaches the pure functions.
"""

from __future__ import annotations

import datetime as dt
from collections.abc import Mapping
from dataclasses import dataclass, field
from decimal import Decimal
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, field_validator

from .errors import InvalidMapping

# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class ColumnRole(StrEnum):
    SKIP = "skip"
    DATE = "date"
    DESCRIPTION = "description"
    AMOUNT = "amount"
    DEBIT = "debit"
    CREDIT = "credit"
    CATEGORY = "category"


class AmountConvention(StrEnum):
    """Sign rule used when a file carries a single signed amount column."""

    NEGATIVE_IS_EXPENSE = "negative_is_expense"
    POSITIVE_IS_EXPENSE = "positive_is_expense"


class EntryType(StrEnum):
    INCOME = "income"
    EXPENSE = "expense"


class TransactionTypeTag(StrEnum):
    """Statement-line classification (PDF path only)."""

    RECURRING = "recurring"
    DEBIT = "debit"
    TRANSFER_IN = "transfer_in"
    CHECK_DEPOSIT = "check_deposit"
    CASH_WITHDRAWAL = "cash_withdrawal"
    BILL_PAY = "bill_pay"
    REFUND = "refund"
    OTHER = "other"


type RawRow = list[str]
"""Ordered string fields from one input line."""


# ---------------------------------------------------------------------------
# Column mapping
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class ColumnMapping:
    """Column index -> role assignment for a delimited file.

    Valid iff DATE and DESCRIPTION are present along with either AMOUNT or at
    least one of DEBIT/CREDIT. AMOUNT wins when both styles are mapped. When
    several columns share a role, the lowest index is used.
    """

    roles: Mapping[int, ColumnRole] = field(default_factory=dict)

    def role_of(self, index: int) -> ColumnRole:
        return self.roles.get(index, ColumnRole.SKIP)

    def index_of(self, role: ColumnRole) -> int | None:
        matches = sorted(i for i, r in self.roles.items() if r == role)
        return matches[0] if matches else None

    def has(self, role: ColumnRole) -> bool:
        return self.index_of(role) is not None

    def uses_amount_column(self) -> bool:
        return self.has(ColumnRole.AMOUNT)

    def with_role(self, index: int, role: ColumnRole) -> ColumnMapping:
        if index < 0:
            raise ValueError(f"column index must be non-negative: {index}")
        updated = dict(self.roles)
        updated[index] = role
        return ColumnMapping(roles=updated)

    def missing_roles(self) -> list[str]:
        missing: list[str] = []
        if not self.has(ColumnRole.DATE):
            missing.append(ColumnRole.DATE.value)
        if not self.has(ColumnRole.DESCRIPTION):
            missing.append(ColumnRole.DESCRIPTION.value)
        if not (
            self.has(ColumnRole.AMOUNT)
            or self.has(ColumnRole.DEBIT)
            or self.has(ColumnRole.CREDIT)
        ):
            missing.append("amount or debit/credit")
        return missing

    def is_valid(self) -> bool:
        return not self.missing_roles()

    def validate(self) -> None:
        """Raise :class:`InvalidMapping` naming every missing role."""

        missing = self.missing_roles()
        if missing:
            raise InvalidMapping(missing)


# ---------------------------------------------------------------------------
# Candidates
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class TransactionCandidate:
    """An in-memory, not-yet-persisted transaction pending review.

    ``amount`` is always a non-negative magnitude quantized to cents; the sign
    is carried by ``type``. ``position`` is the candidate's index in the
    session's list and fixes the commit order. ``problem`` holds a short code
    for per-row issues (``"unparsable_date"``, ``"unparsable_amount"``).
    """

    position: int
    date: dt.date | None
    raw_description: str
    cleaned_description: str
    amount: Decimal
    type: EntryType
    category: str | None
    included: bool
    duplicate: bool
    source_tag: str
    transaction_type_tag: TransactionTypeTag | None = None
    balance: Decimal | None = None
    problem: str | None = None


@dataclass(frozen=True, slots=True)
class StatementExtraction:
    """Result of parsing one statement: its period and the ordered lines."""

    statement_month: str
    candidates: tuple[TransactionCandidate, ...]


# ---------------------------------------------------------------------------
# Persistence boundary DTOs
# ---------------------------------------------------------------------------


class HistoryRecord(BaseModel):
    """A previously stored transaction as returned by the store."""

    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True, frozen=True)

    date: dt.date
    amount: Decimal
    description: str
    category: str | None = None

    @field_validator("category")
    @classmethod
    def _blank_category_is_none(cls, v: str | None) -> str | None:
        if v is None or not v.strip():
            return None
        return v


class NewTransaction(BaseModel):
    """Record handed to the store for each committed candidate."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    profile_id: str
    date: dt.date
    amount: Decimal
    entry_type: EntryType
    description: str
    cleaned_description: str
    category: str | None = None
    transaction_type_tag: TransactionTypeTag | None = None
    source_tag: str
    fingerprint: str

    @field_validator("amount")
    @classmethod
    def _non_negative(cls, v: Decimal) -> Decimal:
        if v < 0:
            raise ValueError("amount must be a non-negative magnitude")
        return v


@dataclass(frozen=True, slots=True)
class CreateResult:
    """Outcome of one ``create_transaction`` call."""

    ok: bool
    record_id: str | None = None
    error: str | None = None


__all__ = [
    "ColumnRole",
    "AmountConvention",
    "EntryType",
    "TransactionTypeTag",
    "RawRow",
    "ColumnMapping",
    "TransactionCandidate",
    "StatementExtraction",
    "HistoryRecord",
    "NewTransaction",
    "CreateResult",
]
