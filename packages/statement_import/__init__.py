"""Public interface for the ``statement_import`` package.

This module exposes the import session, the pure pipeline functions and the
public models/types as the stable import surface. There is no runtime logic
here, only symbol re-exports.
"""

from .columns import infer_column_mapping, infer_column_role
from .descriptions import clean_description, description_key
from .errors import (
    ExtractionFailed,
    ImportStateError,
    InvalidMapping,
    MalformedInput,
    NoTransactionsFound,
    PersistenceFailure,
    StatementImportError,
    UnparsableDate,
)
from .extraction import PdfPlumberExtractor, TextExtractor
from .history import HistoryIndex, build_history_index, is_duplicate, suggest_category
from .models import (
    AmountConvention,
    ColumnMapping,
    ColumnRole,
    CreateResult,
    EntryType,
    HistoryRecord,
    NewTransaction,
    RawRow,
    StatementExtraction,
    TransactionCandidate,
    TransactionTypeTag,
)
from .persistence import SqlAlchemyTransactionStore, TransactionStore
from .rows import normalize_rows
from .session import CommitReport, ImportSession, ImportState
from .statements import classify_transaction_type, parse_statement_text
from .tokenizer import tokenize_delimited

__all__ = [
    # Session
    "ImportSession",
    "ImportState",
    "CommitReport",
    # Pipeline functions
    "tokenize_delimited",
    "infer_column_role",
    "infer_column_mapping",
    "normalize_rows",
    "parse_statement_text",
    "classify_transaction_type",
    "clean_description",
    "description_key",
    "build_history_index",
    "is_duplicate",
    "suggest_category",
    # Collaborators
    "TextExtractor",
    "PdfPlumberExtractor",
    "TransactionStore",
    "SqlAlchemyTransactionStore",
    # Models
    "AmountConvention",
    "ColumnMapping",
    "ColumnRole",
    "CreateResult",
    "EntryType",
    "HistoryIndex",
    "HistoryRecord",
    "NewTransaction",
    "RawRow",
    "StatementExtraction",
    "TransactionCandidate",
    "TransactionTypeTag",
    # Errors
    "StatementImportError",
    "MalformedInput",
    "InvalidMapping",
    "UnparsableDate",
    "ExtractionFailed",
    "NoTransactionsFound",
    "PersistenceFailure",
    "ImportStateError",
]
