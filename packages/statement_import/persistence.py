# ruff: noqa: I001
"""Persistence collaborator for statement imports.

The session talks to storage only through the :class:`TransactionStore`
protocol: one history read per session and one create call per committed
candidate. :class:`SqlAlchemyTransactionStore` is the default implementation
over the shared ``libs/db`` library (``ledger_transactions`` table).

Scope:
- Read prior transactions for a profile as validated ``HistoryRecord`` values.
- Insert one ``ledger_transactions`` row per committed candidate, reporting
  database errors as a failed ``CreateResult`` instead of raising.
"""

from __future__ import annotations

import hashlib
import json
from typing import Protocol

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from db.client import session_scope
from db.models.ledger import LedgerTransaction
from .logging_setup import get_logger
from .models import CreateResult, EntryType, HistoryRecord, NewTransaction, TransactionCandidate

logger = get_logger(__name__)


class TransactionStore(Protocol):
    async def list_history(self, profile_id: str) -> list[HistoryRecord]:
        """Prior transactions for ``profile_id`` in stored order."""
        ...

    async def create_transaction(self, record: NewTransaction) -> CreateResult:
        """Persist one record; failures are returned, not raised."""
        ...


def compute_fingerprint(
    *,
    profile_id: str,
    date: str,
    amount: str,
    entry_type: EntryType | str,
    description: str,
) -> str:
    """Compute a stable SHA-256 fingerprint over canonical fields.

    Fields used: profile (trimmed), date (YYYY-MM-DD), amount (2dp string),
    entry type, description (whitespace-collapsed).
    """

    payload = {
        "profile": profile_id.strip(),
        "date": date,
        "amount": amount,
        "type": str(entry_type),
        "description": " ".join(description.split()),
    }
    # Ensure deterministic JSON serialization
    data = json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False)
    return hashlib.sha256(data.encode("utf-8")).hexdigest()


def build_transaction_record(candidate: TransactionCandidate, profile_id: str) -> NewTransaction:
    """Turn a reviewed candidate into the record handed to the store.

    Raises ``ValueError`` when the candidate has no date; such candidates are
    never included by default and cannot be stored.
    """

    if candidate.date is None:
        raise ValueError("candidate has no date")
    amount = f"{candidate.amount:.2f}"
    return NewTransaction(
        profile_id=profile_id,
        date=candidate.date,
        amount=candidate.amount,
        entry_type=candidate.type,
        description=candidate.raw_description,
        cleaned_description=candidate.cleaned_description,
        category=candidate.category,
        transaction_type_tag=candidate.transaction_type_tag,
        source_tag=candidate.source_tag,
        fingerprint=compute_fingerprint(
            profile_id=profile_id,
            date=candidate.date.isoformat(),
            amount=amount,
            entry_type=candidate.type,
            description=candidate.raw_description,
        ),
    )


class SqlAlchemyTransactionStore:
    """``TransactionStore`` backed by the ``ledger_transactions`` table.

    Calls run synchronously inside the coroutine; each create uses its own
    short transaction so earlier rows stay committed when a later one fails.
    """

    def __init__(self, *, database_url: str | None = None) -> None:
        self._database_url = database_url

    async def list_history(self, profile_id: str) -> list[HistoryRecord]:
        stmt = (
            select(LedgerTransaction)
            .where(LedgerTransaction.profile_id == profile_id)
            .order_by(LedgerTransaction.date, LedgerTransaction.id)
        )
        with session_scope(database_url=self._database_url) as session:
            rows = session.execute(stmt).scalars().all()
            records = [
                HistoryRecord(
                    date=r.date,
                    amount=r.amount,
                    description=r.description,
                    category=r.category,
                )
                for r in rows
            ]
        logger.debug("loaded %d history record(s) for profile %s", len(records), profile_id)
        return records

    async def create_transaction(self, record: NewTransaction) -> CreateResult:
        try:
            with session_scope(database_url=self._database_url) as session:
                row = LedgerTransaction(
                    profile_id=record.profile_id,
                    date=record.date,
                    amount=record.amount,
                    entry_type=record.entry_type.value,
                    description=record.description,
                    cleaned_description=record.cleaned_description,
                    category=record.category,
                    transaction_type_tag=(
                        record.transaction_type_tag.value
                        if record.transaction_type_tag is not None
                        else None
                    ),
                    source_tag=record.source_tag,
                    fingerprint_sha256=record.fingerprint,
                )
                session.add(row)
                session.flush()
                record_id = str(row.id)
        except SQLAlchemyError as exc:
            logger.warning("insert into ledger_transactions failed: %s", exc)
            return CreateResult(ok=False, error=str(exc))
        return CreateResult(ok=True, record_id=record_id)


__all__ = [
    "SqlAlchemyTransactionStore",
    "TransactionStore",
    "build_transaction_record",
    "compute_fingerprint",
]
