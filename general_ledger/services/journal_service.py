"""
Journal service: the posting engine at the core of the ledger.

This service enforces the fundamental rules:
1. Every entry debits one account and credits a different one
   for the same positive amount
2. Both accounts exist
3. The entry date lies inside an open fiscal year
4. The entry row and both balance changes are written in the
   same transaction

Sales, purchases, expenses and the year-end close all post
through post() or post_batch(). Nothing else changes a balance.

The service takes a database session as a constructor argument
and only ever flushes. The caller owns the transaction: it
commits once the whole business document has posted, or rolls
back if anything raised.
"""

import json
import logging
from datetime import date
from decimal import Decimal

from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from general_ledger.config import get_settings
from general_ledger.errors import (
    NotFound,
    SameAccount,
    InvalidAmount,
    DuplicateEntryNumber,
    AlreadyReversed,
    PeriodClosed,
    DateOutOfPeriod,
    Referenced,
    ConfirmationRequired,
)
from general_ledger.events import mark_ledger_changed
from general_ledger.models.account import Account
from general_ledger.models.audit_log import AuditLog
from general_ledger.models.enums import AccountType, EntryType, EntryKind
from general_ledger.models.journal_entry import JournalEntry
from general_ledger.schemas.journal import (
    JournalEntryCreate,
    JournalEntryUpdate,
    ReverseEntryRequest,
    BalanceMismatch,
    IntegrityReport,
)
from general_ledger.services.chart_of_accounts_service import ChartOfAccountsService
from general_ledger.services.fiscal_year_service import FiscalYearService

logger = logging.getLogger(__name__)

ZERO = Decimal("0")

EDIT_WARNING = (
    "Only the date and description were changed. Account balances "
    "are unaffected; post a reversal to undo an entry's amount."
)
DELETE_WARNING = (
    "The entry was removed without reversing its effect on account "
    "balances. Stored balances no longer match the entry log until "
    "a correcting entry is posted."
)


def natural_delta(
    account_type: AccountType, side: EntryType, amount: Decimal
) -> Decimal:
    """
    Signed change to an account's balance for one leg of an entry.

    ASSET and EXPENSE accounts grow with debits. LIABILITY, EQUITY
    and REVENUE accounts grow with credits. A leg on the account's
    natural side adds the amount, a leg on the other side subtracts it.
    """
    if side == EntryType.DEBIT:
        return amount if account_type.is_debit_natural else -amount
    return amount if account_type.is_credit_natural else -amount


class JournalService:
    """
    All journal postings pass through this service.

    settings_id binds the service to one company accounting
    settings row, which supplies the default fiscal year for
    postings that do not name one.
    """

    def __init__(self, db: Session, settings_id: int | None = None):
        self.db = db
        self.accounts = ChartOfAccountsService(db)
        self.fiscal_years = FiscalYearService(db, settings_id)

    # --- Entry numbers ---

    def generate_entry_number(self, entry_date: date) -> str:
        """
        Next entry number for a posting date, e.g. AS-20240131-0003.

        Numbers are sequential within the day. Two concurrent
        transactions can compute the same number; the unique
        constraint rejects the second one with DuplicateEntryNumber
        and the caller retries with a fresh number.
        """
        prefix = f"{get_settings().ENTRY_NUMBER_PREFIX}-{entry_date:%Y%m%d}-"
        numbers = self.db.execute(
            select(JournalEntry.entry_number).where(
                JournalEntry.entry_number.like(f"{prefix}%")
            )
        ).scalars().all()

        last = 0
        for number in numbers:
            suffix = number[len(prefix):]
            if suffix.isdigit():
                last = max(last, int(suffix))
        return f"{prefix}{last + 1:04d}"

    def _entry_number_taken(self, entry_number: str) -> bool:
        return self.db.execute(
            select(JournalEntry.id)
            .where(JournalEntry.entry_number == entry_number)
            .limit(1)
        ).first() is not None

    # --- Posting ---

    def post(
        self,
        request: JournalEntryCreate,
        entry_kind: EntryKind = EntryKind.STANDARD,
        reverses_entry_id: int | None = None,
    ) -> JournalEntry:
        """
        Post a single balanced entry.

        This is the most critical method in the system. In order:
        - an entry number is generated when none is given
        - the fiscal year is resolved and must be open and contain
          the entry date
        - both accounts must exist, differ, and the amount must be
          positive
        - the entry row is inserted and both balances change by the
          natural-sign rule

        If any check fails, an error is raised and the caller must
        roll back. Nothing is committed here.
        """
        entry_number = (request.entry_number or "").strip()
        if not entry_number:
            entry_number = self.generate_entry_number(request.entry_date)
        elif self._entry_number_taken(entry_number):
            raise DuplicateEntryNumber(
                f"Entry number {entry_number} is already in use",
                field="entry_number",
            )

        fiscal_year = self.fiscal_years.resolve_for_posting(
            request.entry_date, request.fiscal_year_id
        )

        locked = self.accounts.lock_accounts_for_posting({
            "debit_account_code": request.debit_account_code,
            "credit_account_code": request.credit_account_code,
        })
        debit_account = locked["debit_account_code"]
        credit_account = locked["credit_account_code"]
        if debit_account.code == credit_account.code:
            raise SameAccount(
                "Debit and credit accounts must be different",
                field="credit_account_code",
            )
        if request.amount <= 0:
            raise InvalidAmount(
                f"Amount must be positive, got {request.amount}",
                field="amount",
            )

        entry = JournalEntry(
            entry_number=entry_number,
            entry_date=request.entry_date,
            description=request.description,
            debit_account_code=debit_account.code,
            credit_account_code=credit_account.code,
            amount=request.amount,
            fiscal_year_id=fiscal_year.id,
            entry_kind=entry_kind,
            reverses_entry_id=reverses_entry_id,
        )
        self.db.add(entry)
        try:
            self.db.flush()
        except IntegrityError as e:
            if "entry_number" in str(e.orig):
                raise DuplicateEntryNumber(
                    f"Entry number {entry_number} was taken concurrently; "
                    f"retry the posting",
                    field="entry_number",
                ) from e
            raise

        self.accounts.apply_balance_delta(
            debit_account.code,
            natural_delta(debit_account.account_type, EntryType.DEBIT, request.amount),
        )
        self.accounts.apply_balance_delta(
            credit_account.code,
            natural_delta(credit_account.account_type, EntryType.CREDIT, request.amount),
        )
        self.db.flush()
        mark_ledger_changed(self.db)

        logger.info(
            "Posted %s %s: Dr %s Cr %s %s",
            entry_kind.value, entry.entry_number,
            entry.debit_account_code, entry.credit_account_code, entry.amount,
        )
        return entry

    def post_batch(self, requests: list[JournalEntryCreate]) -> list[JournalEntry]:
        """
        Post every entry of one business document.

        All entries go through the caller's transaction. If entry N
        fails, entries 1..N-1 are flushed but uncommitted, and the
        caller's rollback discards them with everything else.
        """
        entries = []
        for position, request in enumerate(requests, start=1):
            try:
                entries.append(self.post(request))
            except Exception:
                logger.warning(
                    "Document posting failed at line %d of %d",
                    position, len(requests),
                )
                raise
        return entries

    def reverse(self, entry_id: int, request: ReverseEntryRequest) -> JournalEntry:
        """
        Undo an entry by posting its mirror image.

        The original entry is left untouched. The reversal swaps debit
        and credit, uses the same amount, and points back at the
        original. An entry can be reversed once.
        """
        original = self.get_entry(entry_id)
        if original.entry_kind == EntryKind.REVERSAL:
            raise AlreadyReversed(
                f"Entry {original.entry_number} is itself a reversal and "
                f"cannot be reversed"
            )

        already =self.db.execute(
            select(JournalEntry.entry_number)
            .where(JournalEntry.reverses_entry_id == original.id)
            .limit(1)
        ).scalar_one_or_none()
        if already:
            raise AlreadyReversed(
                f"Entry {original.entry_number} was already reversed by {already}"
            )

        if request.reversal_date is None:
            reversal_date = original.entry_date
            fiscal_year_id = original.fiscal_year_id
        else:
            reversal_date = request.reversal_date
            fiscal_year_id = None

        return self.post(
            JournalEntryCreate(
                entry_date=reversal_date,
                description=(
                    f"Reversal of {original.entry_number}: {request.reason}"
                )[:255],
                debit_account_code=original.credit_account_code,
                credit_account_code=original.debit_account_code,
                amount=original.amount,
                fiscal_year_id=fiscal_year_id,
            ),
            entry_kind=EntryKind.REVERSAL,
            reverses_entry_id=original.id,
        )

    # --- Administrative overrides ---

    def _editable_entry(self, entry_id: int, confirm: bool, action: str) -> JournalEntry:
        if not confirm:
            raise ConfirmationRequired(
                f"{action} a posted entry does not change account balances; "
                f"confirm to proceed",
                field="confirm",
            )
        entry = self.get_entry(entry_id)
        if entry.fiscal_year.is_closed:
            raise PeriodClosed(
                f"Entry {entry.entry_number} belongs to closed fiscal year "
                f"{entry.fiscal_year.name}"
            )
        return entry

    def update_entry(
        self, entry_id: int, request: JournalEntryUpdate
    ) -> tuple[JournalEntry, str]:
        """
        Change the date and description of a posted entry.

        Accounts and amount can never change here. Returns the entry
        together with a warning for the caller to show.
        """
        entry = self._editable_entry(entry_id, request.confirm, "Editing")
        if not entry.fiscal_year.contains(request.entry_date):
            raise DateOutOfPeriod(
                f"Entry date {request.entry_date} is outside fiscal year "
                f"{entry.fiscal_year.name}",
                field="entry_date",
            )

        before = {"entry_date": str(entry.entry_date), "description": entry.description}
        entry.entry_date = request.entry_date
        entry.description = request.description
        self._audit("JOURNAL_ENTRY_EDITED", {
            "entry_number": entry.entry_number,
            "before": before,
            "after": {
                "entry_date": str(request.entry_date),
                "description": request.description,
            },
        })
        self.db.flush()
        logger.warning("Administrative edit of entry %s", entry.entry_number)
        return entry, EDIT_WARNING

    def delete_entry(self, entry_id: int, confirm: bool = False) -> str:
        """
        Remove a posted entry without touching balances.

        This is an administrative override and leaves stored balances
        out of step with the entry log. reverse() is the correct way
        to undo a posting. Returns the warning for the caller to show.
        """
        entry = self._editable_entry(entry_id, confirm, "Deleting")

        reversed_by = self.db.execute(
            select(JournalEntry.entry_number)
            .where(JournalEntry.reverses_entry_id == entry.id)
            .limit(1)
        ).scalar_one_or_none()
        if reversed_by:
            raise Referenced(
                f"Entry {entry.entry_number} is referenced by reversal "
                f"{reversed_by}"
            )

        self._audit("JOURNAL_ENTRY_DELETED", {
            "entry_number": entry.entry_number,
            "entry_date": str(entry.entry_date),
            "debit_account_code": entry.debit_account_code,
            "credit_account_code": entry.credit_account_code,
            "amount": str(entry.amount),
            "balances_reversed": False,
        })
        self.db.delete(entry)
        self.db.flush()
        mark_ledger_changed(self.db)
        logger.warning(
            "Administrative delete of entry %s; balances not reversed",
            entry.entry_number,
        )
        return DELETE_WARNING

    # --- Queries ---

    def get_entry(self, entry_id: int) -> JournalEntry:
        """Get a journal entry by ID."""
        entry = self.db.get(JournalEntry, entry_id)
        if not entry:
            raise NotFound(f"Journal entry {entry_id} not found")
        return entry

    def list_entries(self, fiscal_year_id: int | None = None) -> list[JournalEntry]:
        """
        Return a fiscal year's entries, newest first.

        Without fiscal_year_id the current fiscal year is used. With
        no current year either, every entry is returned.
        """
        query = select(JournalEntry)
        if fiscal_year_id is None:
            active = self.fiscal_years.get_active_year()
            if active:
                fiscal_year_id = active.id
            else:
                logger.warning(
                    "No fiscal year given and none is current; listing all entries"
                )
        if fiscal_year_id is not None:
            query = query.where(JournalEntry.fiscal_year_id == fiscal_year_id)

        entries = self.db.execute(
            query.order_by(
                JournalEntry.entry_date.desc(),
                JournalEntry.entry_number.desc(),
            )
        ).scalars().all()
        return list(entries)

    # --- Integrity ---

    def _leg_totals(self, code_column) -> dict[str, Decimal]:
        rows = self.db.execute(
            select(code_column, func.coalesce(func.sum(JournalEntry.amount), 0))
            .group_by(code_column)
        ).all()
        return {code: Decimal(str(total)) for code, total in rows}

    def expected_balances(self) -> dict[str, Decimal]:
        """
        Recompute every account balance from the entry log.

        expected = opening balance + Σ natural-sign contribution of
        each entry leg naming the account.
        """
        debits = self._leg_totals(JournalEntry.debit_account_code)
        credits = self._leg_totals(JournalEntry.credit_account_code)

        accounts = self.db.execute(select(Account)).scalars().all()
        expected = {}
        for account in accounts:
            expected[account.code] = (
                Decimal(account.opening_balance or 0)
                + natural_delta(
                    account.account_type,
                    EntryType.DEBIT,
                    debits.get(account.code, ZERO),
                )
                + natural_delta(
                    account.account_type,
                    EntryType.CREDIT,
                    credits.get(account.code, ZERO),
                )
            )
        return expected

    def recompute_balance(self, code: str) -> Decimal:
        """Balance of one account rebuilt from its opening balance and entries."""
        account = self.accounts.get_account_by_code(code)
        debits = self.db.execute(
            select(func.coalesce(func.sum(JournalEntry.amount), 0))
            .where(JournalEntry.debit_account_code == account.code)
        ).scalar_one()
        credits = self.db.execute(
            select(func.coalesce(func.sum(JournalEntry.amount), 0))
            .where(JournalEntry.credit_account_code == account.code)
        ).scalar_one()
        return (
            Decimal(account.opening_balance or 0)
            + natural_delta(account.account_type, EntryType.DEBIT, Decimal(str(debits)))
            + natural_delta(account.account_type, EntryType.CREDIT, Decimal(str(credits)))
        )

    def check_integrity(self) -> IntegrityReport:
        """
        Compare stored balances with balances rebuilt from the entry log.

        Also reports total debits and credits across all entries;
        with two-leg entries these are equal unless rows were
        tampered with outside the engine.
        """
        debit_total = sum(
            self._leg_totals(JournalEntry.debit_account_code).values(), ZERO
        )
        credit_total = sum(
            self._leg_totals(JournalEntry.credit_account_code).values(), ZERO
        )

        stored = {
            code: Decimal(balance or 0)
            for code, balance in self.db.execute(
                select(Account.code, Account.balance)
            ).all()
        }
        mismatches = [
            BalanceMismatch(
                account_code=code,
                stored_balance=stored[code],
                expected_balance=expected,
            )
            for code, expected in sorted(self.expected_balances().items())
            if stored[code] != expected
        ]

        difference = debit_total - credit_total
        if mismatches:
            logger.warning(
                "Ledger integrity check found %d balance mismatches",
                len(mismatches),
            )
        return IntegrityReport(
            is_balanced=difference == ZERO and not mismatches,
            total_debits=debit_total,
            total_credits=credit_total,
            difference=difference,
            mismatches=mismatches,
        )

    def _audit(self, event_type: str, details: dict) -> None:
        self.db.add(AuditLog(event_type=event_type, details=json.dumps(details)))
