"""Text extraction from uploaded statement documents.

The session depends only on the :class:`TextExtractor` protocol. The default
implementation reads PDF bytes with ``pdfplumber`` and returns the page texts
joined by newlines, in content-stream order so that each transaction line's
date, amounts and description stay adjacent.
"""

from __future__ import annotations

import asyncio
import io
from typing import Protocol

import pdfplumber

from .errors import ExtractionFailed
from .logging_setup import get_logger

logger = get_logger(__name__)


class TextExtractor(Protocol):
    async def extract(self, data: bytes) -> str:
        """Return the document's plain text; raise ``ExtractionFailed`` on error."""
        ...


class PdfPlumberExtractor:
    """Extract statement text from PDF bytes with ``pdfplumber``.

    Parameters
    ----------
    password:
        Optional password for encrypted statements.
    use_text_flow:
        Keep characters in the order the PDF draws them rather than
        re-sorting them by position (``True`` by default).
    """

    def __init__(self, *, password: str | None = None, use_text_flow: bool = True) -> None:
        self._password = password
        self._use_text_flow = use_text_flow

    def _extract_sync(self, data: bytes) -> str:
        pages: list[str] = []
        with pdfplumber.open(io.BytesIO(data), password=self._password) as pdf:
            for page in pdf.pages:
                pages.append(page.extract_text(use_text_flow=self._use_text_flow) or "")
        return "\n".join(pages)

    async def extract(self, data: bytes) -> str:
        if not data:
            raise ExtractionFailed("statement document is empty")
        try:
            # pdfplumber is blocking; keep the event loop responsive.
            text = await asyncio.to_thread(self._extract_sync, data)
        except ExtractionFailed:
            raise
        except Exception as exc:
            raise ExtractionFailed(f"could not read statement document: {exc}") from exc
        logger.debug("extracted %d character(s) of statement text", len(text))
        return text


__all__ = ["PdfPlumberExtractor", "TextExtractor"]
