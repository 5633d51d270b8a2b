import pytest

from statement_import.descriptions import (
    TRANSACTION_TYPE_PREFIXES,
    clean_description,
    description_key,
    match_transaction_type,
)
from statement_import.models import TransactionTypeTag

CASES = [
    ("Withdrawal Debit Card NETFLIX.COM 866-579-7172 CA", "NETFLIX.COM"),
    ("Deposit Transfer From SAVINGS 000012345678", "SAVINGS"),
    ("POS #123456789 SQ *BLUE BOTTLE", "BLUE BOTTLE"),
    ("AMZN MKTP US*2K3L91XY0", "AMZN MKTP US"),
    ("SHELL OIL 3300 GATEWAY ST", "SHELL OIL"),
    ("Recurring Withdrawal Bill Payment #1234567 PGE", "PGE"),
    ("  Grocery    Store ", "Grocery Store"),
    ("Acme Co", "Acme Co"),
]


@pytest.mark.parametrize(("raw", "expected"), CASES)
def test_clean_description(raw, expected):
    assert clean_description(raw) == expected


@pytest.mark.parametrize("raw", [raw for raw, _ in CASES] + ["STARBUCKS #4521", "Coffee Shop"])
def test_clean_description_is_a_fixed_point(raw):
    once = clean_description(raw)
    assert clean_description(once) == once


def test_clean_description_never_empties_a_description():
    assert clean_description("#1234567") == "#1234567"
    assert clean_description("") == ""
    assert clean_description(None) == ""


def test_description_key_folds_case_width_and_whitespace():
    assert description_key("  Coffee\tSHOP ") == "coffee shop"
    assert description_key("ＳＴＡＲＢＵＣＫＳ") == "starbucks"
    assert description_key(None) == ""


@pytest.mark.parametrize(
    ("raw", "tag"),
    [
        ("Recurring Withdrawal Debit Card SPOTIFY", TransactionTypeTag.RECURRING),
        ("Withdrawal Debit Card SAFEWAY", TransactionTypeTag.DEBIT),
        ("withdrawal debit card safeway", TransactionTypeTag.DEBIT),
        ("Deposit Transfer From SAVINGS", TransactionTypeTag.TRANSFER_IN),
        ("Deposit by Check", TransactionTypeTag.CHECK_DEPOSIT),
        ("Withdrawal by Cash", TransactionTypeTag.CASH_WITHDRAWAL),
        ("Recurring Withdrawal Bill Payment #1234567", TransactionTypeTag.BILL_PAY),
        (
            "Withdrawal Adjustment Debit Card Credit Voucher AMAZON",
            TransactionTypeTag.REFUND,
        ),
        ("Withdrawal Adjustment FEE REVERSAL", TransactionTypeTag.REFUND),
    ],
)
def test_match_transaction_type(raw, tag):
    matched = match_transaction_type(raw)
    assert matched is not None
    assert matched[0] is tag


def test_unknown_prefix_does_not_match():
    assert match_transaction_type("Dividend Earned") is None
    # Prefixes must end on a word boundary
    assert match_transaction_type("Withdrawal by Cashier") is None


def test_longer_prefixes_are_listed_before_their_shorter_forms():
    prefixes = [p for p, _ in TRANSACTION_TYPE_PREFIXES]
    assert prefixes.index("Recurring Withdrawal Debit Card") < prefixes.index(
        "Withdrawal Debit Card"
    )
    assert prefixes.index("Withdrawal Adjustment Debit Card Credit Voucher") < prefixes.index(
        "Withdrawal Adjustment"
    )
