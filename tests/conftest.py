"""Pytest configuration for test isolation.

Puts the workspace source roots on ``sys.path`` so the suite runs from a
plain checkout, and resets process-wide state between tests: the shared
SQLAlchemy engine in ``db.client`` (each test bootstraps its own SQLite file),
the package log handler, and any database/logging variables a developer's
shell or ``.env`` may set.
"""

from __future__ import annotations

import sys
from collections.abc import Iterator
from pathlib import Path

import pytest

_ROOT = Path(__file__).resolve().parents[1]
sys.path[:0] = [
    p
    for p in [str(_ROOT / "packages"), str(_ROOT / "libs/db/src"), str(_ROOT)]
    if p not in sys.path
]

from db.client import dispose_engine  # noqa: E402
from statement_import.logging_setup import reset_logging  # noqa: E402


@pytest.fixture(autouse=True)
def _isolate_environment(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Iterator[None]:
    """Drop ambient configuration and run each test from its own directory.

    Running from ``tmp_path`` keeps ``load_settings()`` from picking up a
    developer's ``.env`` in the checkout.
    """

    for var in (
        "DATABASE_URL",
        "STATEMENT_IMPORT_DATABASE_URL",
        "STATEMENT_IMPORT_LOG_LEVEL",
        "STATEMENT_IMPORT_SEPARATOR",
        "STATEMENT_IMPORT_AMOUNT_CONVENTION",
        "STATEMENT_IMPORT_SOURCE_TAG",
        "STATEMENT_IMPORT_DB_ECHO",
    ):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.chdir(tmp_path)
    dispose_engine()
    yield
    dispose_engine()
    reset_logging()
