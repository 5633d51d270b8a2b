"""Column-role inference for delimited uploads.

Each header is case-folded and tested against ``COLUMN_ROLE_KEYWORDS`` in
order; the first family with a keyword contained in the header decides the
role, and headers matching nothing are skipped. Families are ordered so that
compound headers resolve the way exports usually mean them: "Transaction
Date" is a date, "Debit Amount" a debit, "Category Name" a category.

A header that matches several families (e.g. "Credit Card Description")
takes the earliest family. That tie-break is inherited behavior and is kept
as-is; callers can override any inferred role before confirming the mapping.
"""

from __future__ import annotations

from collections.abc import Sequence

from .logging_setup import get_logger
from .models import ColumnMapping, ColumnRole

logger = get_logger(__name__)

COLUMN_ROLE_KEYWORDS: tuple[tuple[ColumnRole, tuple[str, ...]], ...] = (
    (ColumnRole.DATE, ("date", "posted", "posting")),
    (ColumnRole.DEBIT, ("debit", "withdrawal", "money out", "paid out", "outflow")),
    (ColumnRole.CREDIT, ("credit", "deposit", "money in", "paid in", "inflow")),
    (ColumnRole.AMOUNT, ("amount", "amt", "value", "total", "sum")),
    (ColumnRole.CATEGORY, ("category", "categories")),
    (
        ColumnRole.DESCRIPTION,
        (
            "description",
            "desc",
            "memo",
            "payee",
            "merchant",
            "name",
            "details",
            "narrative",
            "particulars",
            "transaction",
        ),
    ),
)


def infer_column_role(header: str) -> ColumnRole:
    folded = " ".join(header.split()).casefold()
    if not folded:
        return ColumnRole.SKIP
    for role, keywords in COLUMN_ROLE_KEYWORDS:
        if any(k in folded for k in keywords):
            return role
    return ColumnRole.SKIP


def infer_column_mapping(header_row: Sequence[str]) -> ColumnMapping:
    """Build the initial mapping for ``header_row``; SKIP columns are omitted."""

    roles: dict[int, ColumnRole] = {}
    for idx, header in enumerate(header_row):
        role = infer_column_role(header)
        if role is not ColumnRole.SKIP:
            roles[idx] = role
    mapping = ColumnMapping(roles=roles)
    logger.debug(
        "inferred column roles %s (valid=%s)",
        {header_row[i]: r.value for i, r in roles.items()},
        mapping.is_valid(),
    )
    return mapping


__all__ = ["COLUMN_ROLE_KEYWORDS", "infer_column_mapping", "infer_column_role"]
