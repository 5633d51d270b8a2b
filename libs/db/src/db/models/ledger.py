from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import (
    CHAR,
    BigInteger,
    CheckConstraint,
    Date,
    DateTime,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


# ---------------------------
# Core: ledger_transactions
# ---------------------------


class LedgerTransaction(Base):
    __tablename__ = "ledger_transactions"

    # SQLite only autoincrements INTEGER PRIMARY KEY (rowid) columns.
    id: Mapped[int] = mapped_column(
        BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True
    )
    profile_id: Mapped[str] = mapped_column(String, nullable=False)
    date: Mapped[date] = mapped_column(Date, nullable=False)
    # Non-negative magnitude; the sign lives in entry_type.
    amount: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False)
    entry_type: Mapped[str] = mapped_column(String, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    cleaned_description: Mapped[str] = mapped_column(Text, nullable=False)
    category: Mapped[str | None] = mapped_column(String, nullable=True)
    transaction_type_tag: Mapped[str | None] = mapped_column(String, nullable=True)
    source_tag: Mapped[str] = mapped_column(String, nullable=False)
    # Not unique: a reviewer may knowingly re-import a flagged duplicate.
    fingerprint_sha256: Mapped[str] = mapped_column(CHAR(64), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    __table_args__ = (
        CheckConstraint("amount >= 0", name="ck_ledger_tx_amount_non_negative"),
        CheckConstraint(
            "entry_type in ('income','expense')",
            name="ck_ledger_tx_entry_type",
        ),
        Index("ix_ledger_tx_profile_date", "profile_id", "date"),
        Index("ix_ledger_tx_fingerprint", "fingerprint_sha256"),
    )


__all__ = [
    "Base",
    "LedgerTransaction",
]
