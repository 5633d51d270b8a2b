import textwrap

import pytest

from statement_import.errors import MalformedInput
from statement_import.tokenizer import decode_upload, detect_separator, tokenize_delimited


def _dedent(s: str) -> str:
    return textwrap.dedent(s).lstrip("\n")


def test_row_count_is_non_blank_lines_minus_header():
    text = _dedent(
        """
        Date,Description,Amount

        01/02/2024,Coffee,-3.50
        01/03/2024,Rent,-1200.00

        01/04/2024,Paycheck,2500.00
        """
    )
    rows = tokenize_delimited(text)
    assert rows[0] == ["Date", "Description", "Amount"]
    assert len(rows) - 1 == 3


def test_quoted_field_keeps_separator_and_doubled_quotes():
    text = 'Date,Description,Amount\n01/02/2024,"Acme, Inc. ""Best"" Store",-9.99\n'
    rows = tokenize_delimited(text)
    assert rows[1] == ["01/02/2024", 'Acme, Inc. "Best" Store', "-9.99"]


def test_line_endings_are_normalized_and_fields_trimmed():
    text = "Date ; Memo ; Amount\r\n 01/02/2024 ;  Coffee  ; -3.50 \r01/03/2024;Tea;-2.00"
    rows = tokenize_delimited(text, ";")
    assert rows == [
        ["Date", "Memo", "Amount"],
        ["01/02/2024", "Coffee", "-3.50"],
        ["01/03/2024", "Tea", "-2.00"],
    ]


@pytest.mark.parametrize("text", ["", "   \n\n", "Date,Description,Amount\n\n"])
def test_fewer_than_two_rows_is_malformed(text):
    with pytest.raises(MalformedInput):
        tokenize_delimited(text)


def test_bad_separator_is_rejected():
    with pytest.raises(ValueError):
        tokenize_delimited("a,b\n1,2", "::")


@pytest.mark.parametrize(
    ("header", "expected"),
    [
        ("Date,Description,Amount", ","),
        ("Date;Description;Amount", ";"),
        ("Date\tDescription\tAmount", "\t"),
        ("Date|Description|Amount", "|"),
        ('"Date; posted",Description,Amount', ","),
        ("Nothing here", ","),
    ],
)
def test_detect_separator(header, expected):
    assert detect_separator(header + "\n1,2,3\n") == expected


def test_decode_upload_handles_bom_and_cp1252():
    assert decode_upload("\ufeffDate,Amount".encode()) == "Date,Amount"
    assert decode_upload("Caf\xe9".encode("cp1252")) == "Café"
    with pytest.raises(MalformedInput):
        decode_upload(b"")
