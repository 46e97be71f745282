"""
Tests for the JournalService posting engine.

Tests cover:
- Natural-sign balance updates for every account type
- Rejection of unknown accounts, same-account and non-positive amounts
- Period checks (no current year, closed year, date outside year)
- Entry numbering and uniqueness
- Atomic multi-line documents
- Reversals and administrative overrides
- Integrity report and ledger-changed notifications
"""

from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy import event

from general_ledger.errors import (
    UnknownAccount,
    SameAccount,
    InvalidAmount,
    PeriodClosed,
    DateOutOfPeriod,
    NoActiveYear,
    DuplicateEntryNumber,
    AlreadyReversed,
    ConfirmationRequired,
    Referenced,
    NotFound,
)
from general_ledger.events import on_ledger_changed, remove_listener
from general_ledger.models.account import Account
from general_ledger.models.audit_log import AuditLog
from general_ledger.models.enums import AccountType, EntryType, EntryKind
from general_ledger.models.journal_entry import JournalEntry
from general_ledger.schemas.journal import (
    JournalEntryCreate,
    JournalEntryUpdate,
    ReverseEntryRequest,
)
from general_ledger.services.journal_service import JournalService, natural_delta


def entry(debit, credit, amount, on=date(2024, 3, 15), **extra):
    return JournalEntryCreate(
        entry_date=on,
        description=f"Dr {debit} Cr {credit}",
        debit_account_code=debit,
        credit_account_code=credit,
        amount=Decimal(amount),
        **extra,
    )


def balance(db, code):
    return db.query(Account).filter(Account.code == code).one().balance


class TestNaturalDelta:

    @pytest.mark.parametrize("account_type, side, expected", [
        (AccountType.ASSET, EntryType.DEBIT, Decimal("10")),
        (AccountType.ASSET, EntryType.CREDIT, Decimal("-10")),
        (AccountType.EXPENSE, EntryType.DEBIT, Decimal("10")),
        (AccountType.LIABILITY, EntryType.CREDIT, Decimal("10")),
        (AccountType.LIABILITY, EntryType.DEBIT, Decimal("-10")),
        (AccountType.EQUITY, EntryType.CREDIT, Decimal("10")),
        (AccountType.REVENUE, EntryType.CREDIT, Decimal("10")),
        (AccountType.REVENUE, EntryType.DEBIT, Decimal("-10")),
    ])
    def test_sign_follows_account_nature(self, account_type, side, expected):
        assert natural_delta(account_type, side, Decimal("10")) == expected


class TestPost:

    def test_cash_sale_increases_both_accounts(self, db_session, chart, fiscal_year):
        posted = JournalService(db_session).post(entry("1.1.01", "4.1.01", "100.00"))

        assert posted.id is not None
        assert posted.fiscal_year_id == fiscal_year.id
        assert posted.entry_kind == EntryKind.STANDARD
        assert balance(db_session, "1.1.01") == Decimal("100.00")
        assert balance(db_session, "4.1.01") == Decimal("100.00")

    def test_paying_a_supplier_decreases_asset_and_liability(
        self, db_session, chart, fiscal_year
    ):
        service = JournalService(db_session)
        service.post(entry("5.1.01", "2.1.01", "400.00"))
        service.post(entry("1.1.02", "3.1.01", "1000.00"))

        service.post(entry("2.1.01", "1.1.02", "400.00"))

        assert balance(db_session, "2.1.01") == Decimal("0")
        assert balance(db_session, "1.1.02") == Decimal("600.00")
        assert balance(db_session, "5.1.01") == Decimal("400.00")

    def test_date_outside_year_leaves_balances_unchanged(
        self, db_session, chart, fiscal_year
    ):
        service = JournalService(db_session)

        with pytest.raises(DateOutOfPeriod) as exc_info:
            service.post(entry("1.1.01", "4.1.01", "100.00", on=date(2025, 1, 2)))

        assert exc_info.value.field == "entry_date"
        assert balance(db_session, "1.1.01") == Decimal("0")
        assert balance(db_session, "4.1.01") == Decimal("0")

    def test_unknown_debit_account_rejected(self, db_session, chart, fiscal_year):
        with pytest.raises(UnknownAccount) as exc_info:
            JournalService(db_session).post(entry("9.9.99", "4.1.01", "1.00"))
        assert exc_info.value.field == "debit_account_code"

    def test_unknown_credit_account_rejected(self, db_session, chart, fiscal_year):
        with pytest.raises(UnknownAccount) as exc_info:
            JournalService(db_session).post(entry("1.1.01", "9.9.99", "1.00"))
        assert exc_info.value.field == "credit_account_code"

    def test_same_account_rejected(self, db_session, chart, fiscal_year):
        with pytest.raises(SameAccount):
            JournalService(db_session).post(entry("1.1.01", "1.1.01", "5.00"))

    @pytest.mark.parametrize("amount", ["0", "-25.00"])
    def test_non_positive_amount_rejected(self, db_session, chart, fiscal_year, amount):
        with pytest.raises(InvalidAmount):
            JournalService(db_session).post(entry("1.1.01", "4.1.01", amount))

    def test_no_current_year_rejected(self, db_session, chart):
        with pytest.raises(NoActiveYear):
            JournalService(db_session).post(entry("1.1.01", "4.1.01", "1.00"))

    def test_explicit_fiscal_year_used(self, db_session, chart, fiscal_year, make_year):
        next_year = make_year(
            db_session, name="FY2025",
            start=date(2025, 1, 1), end=date(2025, 12, 31),
            make_current=False,
        )

        posted = JournalService(db_session).post(entry(
            "1.1.01", "4.1.01", "1.00",
            on=date(2025, 2, 1), fiscal_year_id=next_year.id,
        ))

        assert posted.fiscal_year_id == next_year.id

    def test_unknown_fiscal_year_rejected(self, db_session, chart, fiscal_year):
        with pytest.raises(NotFound):
            JournalService(db_session).post(
                entry("1.1.01", "4.1.01", "1.00", fiscal_year_id=999)
            )

    def test_closed_year_rejected(self, db_session, chart, fiscal_year):
        fiscal_year.is_closed = True
        db_session.flush()

        with pytest.raises(PeriodClosed):
            JournalService(db_session).post(entry("1.1.01", "4.1.01", "1.00"))
        assert balance(db_session, "1.1.01") == Decimal("0")

    def test_accounts_locked_together_in_code_order(
        self, db_session, chart, fiscal_year
    ):
        statements = []

        def capture(conn, cursor, statement, parameters, context, executemany):
            statements.append(statement)

        bind = db_session.get_bind()
        event.listen(bind, "before_cursor_execute", capture)
        try:
            JournalService(db_session).post(entry("5.1.01", "1.1.01", "10.00"))
        finally:
            event.remove(bind, "before_cursor_execute", capture)

        lock_queries = [
            s for s in statements if "FROM accounts" in s and " IN (" in s
        ]
        assert len(lock_queries) == 1
        assert "ORDER BY accounts.code" in lock_queries[0]


class TestEntryNumbers:

    def test_generated_numbers_are_sequential_per_day(
        self, db_session, chart, fiscal_year
    ):
        service = JournalService(db_session)
        first = service.post(entry("1.1.01", "4.1.01", "1.00"))
        second = service.post(entry("1.1.01", "4.1.01", "1.00"))
        other_day = service.post(entry("1.1.01", "4.1.01", "1.00", on=date(2024, 3, 16)))

        assert first.entry_number == "AS-20240315-0001"
        assert second.entry_number == "AS-20240315-0002"
        assert other_day.entry_number == "AS-20240316-0001"

    def test_generated_numbers_are_distinct(self, db_session, chart, fiscal_year):
        service = JournalService(db_session)
        numbers = {
            service.post(entry("1.1.01", "4.1.01", "1.00")).entry_number
            for _ in range(12)
        }
        assert len(numbers) == 12

    def test_explicit_number_kept(self, db_session, chart, fiscal_year):
        posted = JournalService(db_session).post(
            entry("1.1.01", "4.1.01", "1.00", entry_number="INV-1001")
        )
        assert posted.entry_number == "INV-1001"

    def test_explicit_duplicate_rejected(self, db_session, chart, fiscal_year):
        service = JournalService(db_session)
        service.post(entry("1.1.01", "4.1.01", "1.00", entry_number="INV-1001"))

        with pytest.raises(DuplicateEntryNumber):
            service.post(entry("1.1.02", "4.1.01", "2.00", entry_number="INV-1001"))
        assert balance(db_session, "1.1.02") == Decimal("0")

    def test_number_taken_between_generation_and_insert(
        self, db_session, committed_ledger, fiscal_year
    ):
        # A concurrent writer's row, not yet visible to the number query
        db_session.add(JournalEntry(
            entry_number="AS-20240315-0001",
            entry_date=date(2024, 3, 15),
            description="Concurrent posting",
            debit_account_code="1.1.02",
            credit_account_code="4.1.01",
            amount=Decimal("5.00"),
            fiscal_year_id=fiscal_year.id,
            entry_kind=EntryKind.STANDARD,
        ))

        with pytest.raises(DuplicateEntryNumber) as exc_info:
            JournalService(db_session).post(entry("1.1.01", "4.1.01", "1.00"))
        db_session.rollback()

        assert exc_info.value.field == "entry_number"
        assert db_session.query(JournalEntry).count() == 0
        assert balance(db_session, "1.1.01") == Decimal("0")
        assert balance(db_session, "4.1.01") == Decimal("0")


class TestPostBatch:

    def test_batch_posts_every_line(self, db_session, chart, fiscal_year):
        entries = JournalService(db_session).post_batch([
            entry("1.1.03", "4.1.01", "500.00"),
            entry("5.1.02", "1.1.02", "120.00"),
        ])

        assert len(entries) == 2
        assert balance(db_session, "1.1.03") == Decimal("500.00")
        assert balance(db_session, "1.1.02") == Decimal("-120.00")

    def test_failure_at_line_three_leaves_nothing_behind(
        self, session_factory, make_chart, make_year
    ):
        # Setup is committed so the failed document can be rolled back alone
        setup = session_factory()
        chart = make_chart(setup)
        make_year(setup, retained_earnings=chart["3.2.01"])
        setup.commit()
        setup.close()

        db = session_factory()
        try:
            with pytest.raises(UnknownAccount):
                JournalService(db).post_batch([
                    entry("1.1.01", "4.1.01", "10.00"),
                    entry("1.1.02", "4.1.01", "20.00"),
                    entry("1.1.03", "9.9.99", "30.00"),
                    entry("5.1.01", "1.1.01", "40.00"),
                    entry("5.1.02", "1.1.02", "50.00"),
                ])
            db.rollback()

            assert db.query(JournalEntry).count() == 0
            for code in ("1.1.01", "1.1.02", "1.1.03", "4.1.01"):
                assert balance(db, code) == Decimal("0")
        finally:
            db.close()


class TestReverse:

    def test_reversal_restores_balances(self, db_session, chart, fiscal_year):
        service = JournalService(db_session)
        original = service.post(entry("1.1.01", "4.1.01", "75.00"))

        reversal = service.reverse(original.id, ReverseEntryRequest(reason="Typo"))

        assert reversal.entry_kind == EntryKind.REVERSAL
        assert reversal.reverses_entry_id == original.id
        assert reversal.debit_account_code == "4.1.01"
        assert reversal.credit_account_code == "1.1.01"
        assert reversal.entry_date == original.entry_date
        assert balance(db_session, "1.1.01") == Decimal("0")
        assert balance(db_session, "4.1.01") == Decimal("0")

    def test_reversal_on_a_later_date(self, db_session, chart, fiscal_year):
        service = JournalService(db_session)
        original = service.post(entry("1.1.01", "4.1.01", "75.00"))

        reversal = service.reverse(original.id, ReverseEntryRequest(
            reason="Returned goods", reversal_date=date(2024, 4, 1),
        ))

        assert reversal.entry_date == date(2024, 4, 1)

    def test_second_reversal_rejected(self, db_session, chart, fiscal_year):
        service = JournalService(db_session)
        original = service.post(entry("1.1.01", "4.1.01", "75.00"))
        service.reverse(original.id, ReverseEntryRequest(reason="Typo"))

        with pytest.raises(AlreadyReversed):
            service.reverse(original.id, ReverseEntryRequest(reason="Again"))

    def test_reversing_a_reversal_rejected(self, db_session, chart, fiscal_year):
        service = JournalService(db_session)
        original = service.post(entry("1.1.01", "4.1.01", "75.00"))
        reversal = service.reverse(original.id, ReverseEntryRequest(reason="Typo"))

        with pytest.raises(AlreadyReversed):
            service.reverse(reversal.id, ReverseEntryRequest(reason="Undo undo"))


class TestAdministrativeOverrides:

    def test_edit_requires_confirmation(self, db_session, chart, fiscal_year):
        service = JournalService(db_session)
        posted = service.post(entry("1.1.01", "4.1.01", "10.00"))

        with pytest.raises(ConfirmationRequired):
            service.update_entry(posted.id, JournalEntryUpdate(
                entry_date=date(2024, 3, 20), description="Corrected",
            ))

    def test_edit_changes_only_date_and_description(
        self, db_session, chart, fiscal_year
    ):
        service = JournalService(db_session)
        posted = service.post(entry("1.1.01", "4.1.01", "10.00"))

        updated, warning = service.update_entry(posted.id, JournalEntryUpdate(
            entry_date=date(2024, 3, 20), description="Corrected", confirm=True,
        ))

        assert updated.entry_date == date(2024, 3, 20)
        assert updated.description == "Corrected"
        assert updated.amount == Decimal("10.00")
        assert "balances" in warning
        assert balance(db_session, "1.1.01") == Decimal("10.00")
        assert db_session.query(AuditLog).filter(
            AuditLog.event_type == "JOURNAL_ENTRY_EDITED"
        ).count() == 1

    def test_edit_outside_year_rejected(self, db_session, chart, fiscal_year):
        service = JournalService(db_session)
        posted = service.post(entry("1.1.01", "4.1.01", "10.00"))

        with pytest.raises(DateOutOfPeriod):
            service.update_entry(posted.id, JournalEntryUpdate(
                entry_date=date(2023, 12, 31), description="x", confirm=True,
            ))

    def test_edit_in_closed_year_rejected(self, db_session, chart, fiscal_year):
        service = JournalService(db_session)
        posted = service.post(entry("1.1.01", "4.1.01", "10.00"))
        fiscal_year.is_closed = True
        db_session.flush()

        with pytest.raises(PeriodClosed):
            service.update_entry(posted.id, JournalEntryUpdate(
                entry_date=date(2024, 3, 20), description="x", confirm=True,
            ))

    def test_delete_leaves_balances_and_warns(self, db_session, chart, fiscal_year):
        service = JournalService(db_session)
        posted = service.post(entry("1.1.01", "4.1.01", "10.00"))

        warning = service.delete_entry(posted.id, confirm=True)

        assert "without reversing" in warning
        assert db_session.query(JournalEntry).count() == 0
        assert balance(db_session, "1.1.01") == Decimal("10.00")
        assert service.check_integrity().is_balanced is False

    def test_delete_requires_confirmation(self, db_session, chart, fiscal_year):
        service = JournalService(db_session)
        posted = service.post(entry("1.1.01", "4.1.01", "10.00"))

        with pytest.raises(ConfirmationRequired):
            service.delete_entry(posted.id)

    def test_delete_of_reversed_entry_rejected(self, db_session, chart, fiscal_year):
        service = JournalService(db_session)
        posted = service.post(entry("1.1.01", "4.1.01", "10.00"))
        service.reverse(posted.id, ReverseEntryRequest(reason="Typo"))

        with pytest.raises(Referenced):
            service.delete_entry(posted.id, confirm=True)


class TestQueries:

    def test_list_entries_newest_first(self, db_session, chart, fiscal_year):
        service = JournalService(db_session)
        service.post(entry("1.1.01", "4.1.01", "1.00", on=date(2024, 2, 1)))
        service.post(entry("1.1.01", "4.1.01", "2.00", on=date(2024, 5, 1)))
        service.post(entry("1.1.01", "4.1.01", "3.00", on=date(2024, 5, 1)))

        listed = service.list_entries()

        assert [e.amount for e in listed] == [
            Decimal("3.00"), Decimal("2.00"), Decimal("1.00"),
        ]

    def test_list_entries_scoped_to_fiscal_year(
        self, db_session, chart, fiscal_year, make_year
    ):
        next_year = make_year(
            db_session, name="FY2025",
            start=date(2025, 1, 1), end=date(2025, 12, 31),
            make_current=False,
        )
        service = JournalService(db_session)
        service.post(entry("1.1.01", "4.1.01", "1.00"))
        service.post(entry(
            "1.1.01", "4.1.01", "2.00",
            on=date(2025, 1, 5), fiscal_year_id=next_year.id,
        ))

        assert len(service.list_entries()) == 1
        assert len(service.list_entries(next_year.id)) == 1

    def test_get_missing_entry_raises_not_found(self, db_session):
        with pytest.raises(NotFound):
            JournalService(db_session).get_entry(404)


class TestIntegrity:

    def test_clean_ledger_is_balanced(self, db_session, chart, fiscal_year):
        service = JournalService(db_session)
        service.post(entry("1.1.01", "4.1.01", "100.00"))
        service.post(entry("5.1.01", "1.1.01", "30.00"))

        report = service.check_integrity()

        assert report.is_balanced is True
        assert report.total_debits == report.total_credits == Decimal("130.00")
        assert report.mismatches == []

    def test_tampered_balance_is_reported(self, db_session, chart, fiscal_year):
        service = JournalService(db_session)
        service.post(entry("1.1.01", "4.1.01", "100.00"))
        chart["1.1.01"].balance = Decimal("999.00")
        db_session.flush()

        report = service.check_integrity()

        assert report.is_balanced is False
        assert [m.account_code for m in report.mismatches] == ["1.1.01"]
        assert report.mismatches[0].expected_balance == Decimal("100.00")

    def test_recompute_includes_opening_balance(self, db_session, chart, fiscal_year):
        chart["1.1.02"].opening_balance = Decimal("50.00")
        chart["1.1.02"].balance = Decimal("50.00")
        service = JournalService(db_session)
        service.post(entry("1.1.02", "4.1.01", "25.00"))

        assert service.recompute_balance("1.1.02") == Decimal("75.00")


class TestLedgerChangedNotifications:

    def test_listener_fires_after_commit_only(self, db_session, chart, fiscal_year):
        calls = []
        listener = on_ledger_changed(lambda: calls.append(1))
        try:
            JournalService(db_session).post(entry("1.1.01", "4.1.01", "5.00"))
            assert calls == []
            db_session.commit()
            assert calls == [1]
        finally:
            remove_listener(listener)

    def test_rolled_back_posting_notifies_nobody(self, db_session, chart, fiscal_year):
        calls = []
        listener = on_ledger_changed(lambda: calls.append(1))
        try:
            JournalService(db_session).post(entry("1.1.01", "4.1.01", "5.00"))
            db_session.rollback()
            db_session.commit()
            assert calls == []
        finally:
            remove_listener(listener)
