"""Runtime settings for hosts and the developer CLI.

``load_settings()`` reads a local ``.env`` (without overriding variables that
are already set) and then the process environment:

- ``STATEMENT_IMPORT_DATABASE_URL`` (falls back to ``DATABASE_URL``)
- ``STATEMENT_IMPORT_LOG_LEVEL``
- ``STATEMENT_IMPORT_SEPARATOR`` (empty means sniff from the header line)
- ``STATEMENT_IMPORT_AMOUNT_CONVENTION``
- ``STATEMENT_IMPORT_SOURCE_TAG``
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, field_validator

from .models import AmountConvention
from .tokenizer import SEPARATORS

_PREFIX = "STATEMENT_IMPORT_"


class ImportSettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    database_url: str | None = None
    log_level: str = "INFO"
    default_separator: str | None = None
    amount_convention: AmountConvention = AmountConvention.NEGATIVE_IS_EXPENSE
    source_tag: str | None = None

    @field_validator("default_separator", mode="before")
    @classmethod
    def _known_separator(cls, v: str | None) -> str | None:
        if v is None or v == "":
            return None
        # Allow the escaped form commonly written in .env files.
        if v == "\\t":
            v = "\t"
        if v not in SEPARATORS:
            raise ValueError(f"separator must be one of {SEPARATORS!r}")
        return v

    @field_validator("log_level")
    @classmethod
    def _upper_level(cls, v: str) -> str:
        return v.strip().upper()

    @field_validator("database_url", "source_tag")
    @classmethod
    def _blank_is_none(cls, v: str | None) -> str | None:
        return (v or "").strip() or None


def load_settings(
    env: Mapping[str, str] | None = None, *, dotenv_path: Path | None = None
) -> ImportSettings:
    """Build :class:`ImportSettings` from ``env`` (default: ``os.environ``).

    When ``env`` is omitted, ``.env`` in the current directory (or
    ``dotenv_path``) is loaded first with ``override=False``.
    """

    if env is None:
        load_dotenv(dotenv_path=dotenv_path or Path.cwd() / ".env", override=False)
        env = os.environ

    values: dict[str, str] = {}
    url = env.get(f"{_PREFIX}DATABASE_URL") or env.get("DATABASE_URL")
    if url:
        values["database_url"] = url
    for field_name, var in (
        ("log_level", "LOG_LEVEL"),
        ("default_separator", "SEPARATOR"),
        ("amount_convention", "AMOUNT_CONVENTION"),
        ("source_tag", "SOURCE_TAG"),
    ):
        raw = env.get(_PREFIX + var)
        if raw is not None:
            values[field_name] = raw
    return ImportSettings(**values)


__all__ = ["ImportSettings", "load_settings"]
