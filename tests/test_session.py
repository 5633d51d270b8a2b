import asyncio
from datetime import date
from decimal import Decimal

import pytest

from statement_import.errors import (
    ExtractionFailed,
    ImportStateError,
    InvalidMapping,
    MalformedInput,
    NoTransactionsFound,
)
from statement_import.models import (
    AmountConvention,
    ColumnRole,
    EntryType,
    HistoryRecord,
    TransactionTypeTag,
)
from statement_import.session import ImportSession, ImportSource, ImportState

from tests.helpers.stores import BlockingStore, MemoryStore, StaticExtractor

CSV = (
    "Date,Description,Amount\n"
    '01/15/2024,"Grocery Store",-54.32\n'
    "01/16/2024,Coffee Shop,-19.99\n"
    "01/17/2024,Paycheck,2500.00\n"
)

STATEMENT = (
    "January 2024\n"
    "ID : 10 LINK DIGITAL CHECKING\n"
    "01/02 -15.49 46.01 Withdrawal Debit Card NETFLIX.COM\n"
    "01/05 120.00 166.01 Deposit by Check 1021\n"
    "Ending Balance for LINK DIGITAL CHECKING $166.01\n"
)


def _session(store: MemoryStore | None = None, **kwargs) -> tuple[ImportSession, MemoryStore]:
    store = store or MemoryStore()
    return ImportSession(store, "profile-1", **kwargs), store


def test_delimited_flow_commits_included_rows_in_order():
    session, store = _session()
    assert session.state is ImportState.IDLE

    asyncio.run(session.upload_delimited(CSV.encode()))
    assert session.state is ImportState.MAPPING
    assert session.source is ImportSource.DELIMITED
    assert session.header == ("Date", "Description", "Amount")
    assert session.mapping.is_valid()

    session.confirm_mapping()
    assert session.state is ImportState.REVIEW
    assert [c.type for c in session.candidates] == [
        EntryType.EXPENSE,
        EntryType.EXPENSE,
        EntryType.INCOME,
    ]

    session.set_included(1, False)
    session.set_category(0, "Groceries")
    report = asyncio.run(session.commit())

    assert session.state is ImportState.DONE
    assert [o.position for o in report.committed] == [0, 2]
    assert report.failed_count == 0
    assert [r.description for r in store.created] == ["Grocery Store", "Paycheck"]
    assert store.created[0].category == "Groceries"
    assert store.created[0].amount == Decimal("54.32")
    assert store.created[0].source_tag == "csv"
    assert all(len(r.fingerprint) == 64 for r in store.created)


def test_history_marks_duplicates_and_fills_categories():
    history = [
        HistoryRecord(
            date=date(2024, 1, 16), amount=Decimal("19.99"), description="Coffee Shop",
            category="Coffee",
        )
    ]
    session, store = _session(MemoryStore(history))
    asyncio.run(session.upload_delimited(CSV))
    session.confirm_mapping()
    coffee = session.candidates[1]
    assert coffee.duplicate is True
    assert coffee.included is False
    assert coffee.category == "Coffee"
    assert store.history_reads == 1


def test_positive_is_expense_convention_and_role_override():
    text = "Date,Memo,Value,Notes\n01/15/2024,Refund,-10.00,misc\n01/16/2024,Lunch,12.00,food\n"
    session, _ = _session()
    asyncio.run(session.upload_delimited(text))
    session.set_column_role(3, ColumnRole.CATEGORY)
    session.set_convention(AmountConvention.POSITIVE_IS_EXPENSE)
    session.confirm_mapping()
    assert [(c.type, c.category) for c in session.candidates] == [
        (EntryType.INCOME, "misc"),
        (EntryType.EXPENSE, "food"),
    ]


def test_invalid_mapping_blocks_advancement():
    session, _ = _session()
    asyncio.run(session.upload_delimited("Date,Notes,Amount\n01/01/2024,x,1.00\n"))
    with pytest.raises(InvalidMapping):
        session.confirm_mapping()
    assert session.state is ImportState.MAPPING

    session.set_column_role(1, ColumnRole.DESCRIPTION)
    session.confirm_mapping()
    assert session.state is ImportState.REVIEW


def test_malformed_upload_leaves_session_idle():
    session, store = _session()
    with pytest.raises(MalformedInput):
        asyncio.run(session.upload_delimited(b"Date,Description,Amount\n"))
    assert session.state is ImportState.IDLE
    assert store.history_reads == 0


def test_statement_flow():
    extractor = StaticExtractor(STATEMENT)
    session, store = _session(extractor=extractor)
    asyncio.run(session.upload_statement(b"%PDF-1.7 fake"))
    assert session.state is ImportState.REVIEW
    assert session.source is ImportSource.STATEMENT
    assert session.statement_month == "2024-01"
    assert [c.transaction_type_tag for c in session.candidates] == [
        TransactionTypeTag.DEBIT,
        TransactionTypeTag.CHECK_DEPOSIT,
    ]

    report = asyncio.run(session.commit())
    assert report.committed_count == 2
    assert store.created[0].transaction_type_tag is TransactionTypeTag.DEBIT
    assert store.created[0].cleaned_description == "NETFLIX.COM"
    assert store.created[1].entry_type is EntryType.INCOME
    assert {r.source_tag for r in store.created} == {"pdf"}


@pytest.mark.parametrize(
    ("extractor", "error"),
    [
        (StaticExtractor(error="encrypted"), ExtractionFailed),
        (StaticExtractor("Another bank entirely"), NoTransactionsFound),
    ],
)
def test_statement_failures_leave_session_idle(extractor, error):
    session, _ = _session(extractor=extractor)
    with pytest.raises(error):
        asyncio.run(session.upload_statement(b"%PDF"))
    assert session.state is ImportState.IDLE
    assert session.candidates == ()


def test_commit_requires_an_included_row():
    session, store = _session()
    asyncio.run(session.upload_delimited(CSV))
    session.confirm_mapping()
    session.deselect_all()
    with pytest.raises(ImportStateError):
        asyncio.run(session.commit())
    assert session.state is ImportState.REVIEW

    session.select_all()
    assert session.included_count == 3
    asyncio.run(session.commit())
    assert len(store.created) == 3


def test_row_failures_are_isolated():
    store = MemoryStore(fail_calls={0}, raise_calls={1})
    session, _ = _session(store)
    asyncio.run(session.upload_delimited(CSV))
    session.confirm_mapping()
    report = asyncio.run(session.commit())

    assert session.state is ImportState.DONE
    assert [f.position for f in report.failures] == [0, 1]
    assert report.failures[0].reason == "constraint violated"
    assert "store unreachable" in report.failures[1].reason
    assert [o.position for o in report.committed] == [2]
    assert [r.description for r in store.created] == ["Paycheck"]


def test_cancel_during_commit_keeps_written_rows():
    session: ImportSession

    def _cancel_after_first(call: int) -> None:
        if call == 0:
            session.cancel()

    store = MemoryStore(on_create=_cancel_after_first)
    session, _ = _session(store)
    asyncio.run(session.upload_delimited(CSV))
    session.confirm_mapping()
    report = asyncio.run(session.commit())

    assert report.cancelled is True
    assert report.committed_count == 1
    assert len(store.created) == 1
    assert session.state is ImportState.IDLE
    assert session.candidates == ()


def test_cancelling_the_commit_task_resets_the_session():
    store = BlockingStore(block_call=1)
    session, _ = _session(store)
    asyncio.run(session.upload_delimited(CSV))
    session.confirm_mapping()

    async def _cancel_mid_commit() -> None:
        task = asyncio.create_task(session.commit())
        await store.entered.wait()
        assert session.state is ImportState.COMMITTING
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

    asyncio.run(_cancel_mid_commit())

    assert session.state is ImportState.IDLE
    assert session.candidates == ()
    assert [r.description for r in store.created] == ["Grocery Store"]

    asyncio.run(session.upload_delimited(CSV))
    assert session.state is ImportState.MAPPING


def test_cancel_and_back_have_no_persisted_effect():
    session, store = _session()
    asyncio.run(session.upload_delimited(CSV))
    session.confirm_mapping()
    session.back()
    assert session.state is ImportState.MAPPING
    assert session.candidates == ()
    session.back()
    assert session.state is ImportState.IDLE

    asyncio.run(session.upload_delimited(CSV))
    session.confirm_mapping()
    session.cancel()
    assert session.state is ImportState.IDLE
    assert store.created == []
    assert store.history_reads == 2


def test_statement_back_returns_to_idle():
    session, _ = _session(extractor=StaticExtractor(STATEMENT))
    asyncio.run(session.upload_statement(b"%PDF"))
    session.back()
    assert session.state is ImportState.IDLE
    assert session.statement_month is None


def test_illegal_transitions_raise():
    session, _ = _session()
    with pytest.raises(ImportStateError):
        session.confirm_mapping()
    with pytest.raises(ImportStateError):
        session.set_included(0, True)
    with pytest.raises(ImportStateError):
        session.back()
    with pytest.raises(ImportStateError):
        asyncio.run(session.commit())

    asyncio.run(session.upload_delimited(CSV))
    with pytest.raises(ImportStateError):
        asyncio.run(session.upload_delimited(CSV))
    with pytest.raises(ImportStateError):
        asyncio.run(session.upload_statement(b"%PDF"))
    with pytest.raises(IndexError):
        session.set_column_role(9, ColumnRole.DATE)


def test_review_edits():
    text = "Date,Description,Amount\nsoon,Mystery,-8.00\n01/02/2024,Tea,-2.00\n"
    session, _ = _session()
    asyncio.run(session.upload_delimited(text))
    session.confirm_mapping()
    with pytest.raises(ValueError):
        session.set_included(0, True)
    with pytest.raises(IndexError):
        session.set_category(5, "x")

    session.set_category(1, "  Drinks ")
    assert session.candidates[1].category == "Drinks"
    session.set_category(1, "")
    assert session.candidates[1].category is None

    session.select_all()
    assert [c.included for c in session.candidates] == [False, True]
