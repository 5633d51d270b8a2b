# ruff: noqa: I001
"""Developer CLI for the ``statement_import`` package.

A Typer app for operators and debugging; the product review screen lives in
the host application. Environment variables are loaded from a local ``.env``
using ``python-dotenv`` (via :func:`statement_import.config.load_settings`)
before any command runs.

Commands
--------
- ``preview PATH``: run the pipeline and print one tab-separated line per
  candidate without writing anything.
- ``import PATH --profile ID``: run the full session against the SQLAlchemy
  store and commit the rows included by default.

``PATH`` is treated as a statement document when it ends in ``.pdf`` or starts
with the PDF magic bytes, and as delimited text otherwise.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Annotated

import typer
from typer.models import ArgumentInfo

from .config import ImportSettings, load_settings
from .errors import StatementImportError
from .logging_setup import configure_logging
from .models import AmountConvention, ColumnRole, CreateResult, HistoryRecord, NewTransaction
from .persistence import SqlAlchemyTransactionStore, TransactionStore
from .session import CommitReport, ImportSession


class _HistoryOnlyStore:
    """Store used by ``preview``: optional history, never writes."""

    def __init__(self, inner: TransactionStore | None) -> None:
        self._inner = inner

    async def list_history(self, profile_id: str) -> list[HistoryRecord]:
        if self._inner is None:
            return []
        return await self._inner.list_history(profile_id)

    async def create_transaction(self, record: NewTransaction) -> CreateResult:
        return CreateResult(ok=False, error="preview does not write")


def _is_statement(path: Path, data: bytes) -> bool:
    return path.suffix.lower() == ".pdf" or data.startswith(b"%PDF")


def _parse_column_overrides(values: list[str] | None) -> dict[int, ColumnRole]:
    overrides: dict[int, ColumnRole] = {}
    for raw in values or []:
        index, sep, role = raw.partition("=")
        if not sep or not index.strip().isdigit():
            raise typer.BadParameter(f"expected INDEX=ROLE, got {raw!r}", param_hint="--column")
        try:
            overrides[int(index)] = ColumnRole(role.strip().lower())
        except ValueError as exc:
            roles = ", ".join(r.value for r in ColumnRole)
            raise typer.BadParameter(
                f"unknown role {role!r}; expected one of: {roles}", param_hint="--column"
            ) from exc
    return overrides


async def _prepare(
    session: ImportSession,
    path: Path,
    *,
    separator: str | None,
    columns: dict[int, ColumnRole],
) -> None:
    data = path.read_bytes()
    if _is_statement(path, data):
        await session.upload_statement(data)
        return
    await session.upload_delimited(data, separator=separator)
    for index, role in columns.items():
        session.set_column_role(index, role)
    session.confirm_mapping()


def _format_candidate_lines(session: ImportSession) -> list[str]:
    lines: list[str] = []
    for c in session.candidates:
        flags = [
            name
            for name, on in (("included", c.included), ("duplicate", c.duplicate))
            if on
        ]
        if c.problem:
            flags.append(c.problem)
        lines.append(
            "\t".join(
                [
                    str(c.position),
                    c.date.isoformat() if c.date else "",
                    c.type.value,
                    f"{c.amount:.2f}",
                    c.cleaned_description,
                    c.category or "",
                    c.transaction_type_tag.value if c.transaction_type_tag else "",
                    ",".join(flags),
                ]
            )
        )
    return lines


def _settings(log_level: str | None) -> ImportSettings:
    settings = load_settings()
    try:
        configure_logging(log_level or settings.log_level)
    except ValueError as exc:
        raise typer.BadParameter(str(exc), param_hint="--log-level") from exc
    return settings


def _fail(exc: Exception) -> typer.Exit:
    typer.echo(f"Error: {exc}", err=True)
    return typer.Exit(code=1)


# ---- Typer-based console interface -------------------------------------------


app = typer.Typer(
    no_args_is_help=True,
    add_completion=False,
    help=(
        "Preview or import bank transactions from a delimited export or a "
        "credit-union statement PDF. Loads settings from a local .env first."
    ),
)

# Module-level argument object to satisfy ruff B008 (no calls in parameter
# defaults).
PATH_ARGUMENT: ArgumentInfo = typer.Argument(
    ...,
    help="Delimited export (.csv/.tsv/...) or statement PDF",
    dir_okay=False,
    file_okay=True,
    exists=True,
    readable=True,
)


@app.command("preview")
def preview_cmd(
    path: Annotated[Path, PATH_ARGUMENT],
    *,
    profile: str | None = typer.Option(
        None, help="Profile whose history is used for duplicate/category hints."
    ),
    separator: str | None = typer.Option(
        None, help="Field separator for delimited files (sniffed when omitted)."
    ),
    convention: AmountConvention | None = typer.Option(
        None, help="Sign rule for a single amount column."
    ),
    column: list[str] | None = typer.Option(
        None, help="Override a column role as INDEX=ROLE (repeatable)."
    ),
    database_url: str | None = typer.Option(
        None, help="Override STATEMENT_IMPORT_DATABASE_URL / DATABASE_URL."
    ),
    log_level: str | None = typer.Option(None, help="Logging level (default from env)."),
) -> None:
    """Print the candidates an import would produce, without committing."""

    settings = _settings(log_level)
    overrides = _parse_column_overrides(column)
    url = database_url or settings.database_url
    inner = SqlAlchemyTransactionStore(database_url=url) if profile and url else None
    session = ImportSession(
        _HistoryOnlyStore(inner),
        profile or "",
        convention=convention or settings.amount_convention,
        source_tag=settings.source_tag,
    )
    try:
        asyncio.run(
            _prepare(
                session,
                path,
                separator=separator or settings.default_separator,
                columns=overrides,
            )
        )
    except StatementImportError as exc:
        raise _fail(exc) from exc

    if session.statement_month:
        typer.echo(f"# statement month: {session.statement_month}")
    for line in _format_candidate_lines(session):
        typer.echo(line)
    typer.echo(
        f"# {len(session.candidates)} candidate(s), {session.included_count} included"
    )


@app.command("import")
def import_cmd(
    path: Annotated[Path, PATH_ARGUMENT],
    *,
    profile: str = typer.Option(..., help="Profile that owns the imported rows."),
    separator: str | None = typer.Option(
        None, help="Field separator for delimited files (sniffed when omitted)."
    ),
    convention: AmountConvention | None = typer.Option(
        None, help="Sign rule for a single amount column."
    ),
    column: list[str] | None = typer.Option(
        None, help="Override a column role as INDEX=ROLE (repeatable)."
    ),
    database_url: str | None = typer.Option(
        None, help="Override STATEMENT_IMPORT_DATABASE_URL / DATABASE_URL."
    ),
    log_level: str | None = typer.Option(None, help="Logging level (default from env)."),
) -> None:
    """Import a file and commit every row included by default."""

    settings = _settings(log_level)
    overrides = _parse_column_overrides(column)
    url = database_url or settings.database_url
    if not url:
        raise _fail(RuntimeError("no database URL configured"))
    session = ImportSession(
        SqlAlchemyTransactionStore(database_url=url),
        profile,
        convention=convention or settings.amount_convention,
        source_tag=settings.source_tag,
    )

    async def _run() -> CommitReport | None:
        await _prepare(
            session,
            path,
            separator=separator or settings.default_separator,
            columns=overrides,
        )
        if session.included_count == 0:
            return None
        return await session.commit()

    try:
        report = asyncio.run(_run())
    except StatementImportError as exc:
        raise _fail(exc) from exc

    if report is None:
        typer.echo("Nothing to import: no rows are included.")
        return
    for failure in report.failures:
        typer.echo(f"failed: {failure}", err=True)
    typer.echo(f"Imported {report.committed_count} row(s); {report.failed_count} failed.")
    if report.failed_count:
        raise typer.Exit(code=1)


if __name__ == "__main__":  # pragma: no cover - exercised via console script
    # Running as a module: `python -m statement_import.cli`
    app()
