import asyncio

import pytest

import statement_import.extraction as extraction_mod
from statement_import.errors import ExtractionFailed
from statement_import.extraction import PdfPlumberExtractor


class _FakePage:
    def __init__(self, text: str | None) -> None:
        self._text = text
        self.kwargs: dict = {}

    def extract_text(self, **kwargs):
        self.kwargs = kwargs
        return self._text


class _FakePdf:
    def __init__(self, pages: list[_FakePage]) -> None:
        self.pages = pages

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False


def test_pages_are_joined_in_order(monkeypatch: pytest.MonkeyPatch):
    pages = [_FakePage("page one"), _FakePage(None), _FakePage("page three")]
    opened: list = []

    def _open(fp, password=None):
        opened.append((fp.read(), password))
        return _FakePdf(pages)

    monkeypatch.setattr(extraction_mod.pdfplumber, "open", _open)
    text = asyncio.run(PdfPlumberExtractor(password="s3cret").extract(b"%PDF-1.7"))

    assert text == "page one\n\npage three"
    assert opened == [(b"%PDF-1.7", "s3cret")]
    assert pages[0].kwargs == {"use_text_flow": True}


def test_empty_document_fails():
    with pytest.raises(ExtractionFailed):
        asyncio.run(PdfPlumberExtractor().extract(b""))


def test_unreadable_document_fails():
    with pytest.raises(ExtractionFailed):
        asyncio.run(PdfPlumberExtractor().extract(b"this is not a pdf"))
