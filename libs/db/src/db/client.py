"""Centralized SQLAlchemy engine/session helpers for the workspace.

Usage
-----
from db.client import get_engine, session_scope

with session_scope() as s:
    s.execute(...)

The URL comes from the explicit ``database_url`` argument, else
``STATEMENT_IMPORT_DATABASE_URL``, else ``DATABASE_URL``.
Set ``STATEMENT_IMPORT_DB_ECHO=1`` to log emitted SQL through SQLAlchemy.
"""

from __future__ import annotations

import os
from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

_URL_ENV_VARS = ("STATEMENT_IMPORT_DATABASE_URL", "DATABASE_URL")
_ECHO_ENV_VAR = "STATEMENT_IMPORT_DB_ECHO"

_ENGINE: Engine | None = None
_SESSION_MAKER: sessionmaker[Session] | None = None
_DB_URL: str | None = None


def _database_url(override: str | None = None) -> str:
    url = override
    for var in _URL_ENV_VARS:
        if url:
            break
        url = os.getenv(var)
    if not url:
        raise RuntimeError(
            "no database URL configured; set STATEMENT_IMPORT_DATABASE_URL or DATABASE_URL"
        )
    return url


def _echo_enabled() -> bool:
    return os.getenv(_ECHO_ENV_VAR, "").strip().lower() in {"1", "true", "yes", "on"}


def get_engine(*, database_url: str | None = None) -> Engine:
    """Return a shared SQLAlchemy engine, creating it on first use."""

    global _ENGINE, _SESSION_MAKER, _DB_URL
    url = _database_url(database_url)
    if _ENGINE is None:
        engine = create_engine(url, pool_pre_ping=True, echo=_echo_enabled())
        _SESSION_MAKER = sessionmaker(bind=engine, expire_on_commit=False, class_=Session)
        _ENGINE = engine
        _DB_URL = url
        return engine
    # Engine already initialized; guard against cross-environment misuse.
    if _DB_URL is not None and url != _DB_URL:
        raise RuntimeError(
            "get_engine() already initialized with a different database URL; "
            "call dispose_engine() first or avoid passing a different URL"
        )
    return _ENGINE


def get_session(*, database_url: str | None = None) -> Session:
    """Return a new SQLAlchemy session bound to the shared engine."""

    get_engine(database_url=database_url)
    assert _SESSION_MAKER is not None  # bound by get_engine
    return _SESSION_MAKER()


@contextmanager
def session_scope(*, database_url: str | None = None) -> Iterator[Session]:
    """Provide a transactional scope around a series of operations."""

    session = get_session(database_url=database_url)
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def dispose_engine() -> None:
    """Dispose the shared engine so the next call may target another URL."""

    global _ENGINE, _SESSION_MAKER, _DB_URL
    if _ENGINE is not None:
        _ENGINE.dispose()
    _ENGINE = None
    _SESSION_MAKER = None
    _DB_URL = None


__all__ = [
    "dispose_engine",
    "get_engine",
    "get_session",
    "session_scope",
]
