"""Shared SQLAlchemy models registry for the workspace database.

Currently includes the ledger model written by ``statement_import``.
"""

from .ledger import Base, LedgerTransaction

__all__ = [
    "Base",
    "LedgerTransaction",
]
