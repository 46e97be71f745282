"""
Fiscal year service: accounting periods and the year-end close.

This service enforces:
1. A fiscal year ends strictly after it starts
2. A closed year is never modified, deleted or posted into
3. Every posting date lies inside its fiscal year
4. The year-end close posts balanced closing entries through the
   same posting engine as every other business event, and marks
   the year closed in the same transaction

The service is bound to one company accounting settings row by
id. That row names the current fiscal year (the default target
for postings) and the retained earnings account used at close.
"""

import json
import logging
from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import select, or_
from sqlalchemy.orm import Session

from general_ledger.config import get_settings
from general_ledger.errors import (
    NotFound,
    ValidationFailed,
    InvalidRange,
    DuplicateName,
    AlreadyClosed,
    IsCurrentYear,
    HasEntries,
    PeriodClosed,
    DateOutOfPeriod,
    NoActiveYear,
    NoRetainedEarningsAccountConfigured,
)
from general_ledger.models.account import Account
from general_ledger.models.audit_log import AuditLog
from general_ledger.models.company_settings import CompanyAccountingSettings
from general_ledger.models.enums import AccountType, EntryKind
from general_ledger.models.fiscal_year import FiscalYear
from general_ledger.models.journal_entry import JournalEntry
from general_ledger.schemas.fiscal_year import (
    FiscalYearCreate,
    FiscalYearUpdate,
    FiscalYearResponse,
    FiscalYearCloseResponse,
    AccountingSettingsUpdate,
)
from general_ledger.schemas.journal import JournalEntryCreate, JournalEntryResponse

logger = logging.getLogger(__name__)


class FiscalYearService:

    def __init__(self, db: Session, settings_id: int | None = None):
        self.db = db
        if settings_id is None:
            settings_id = get_settings().COMPANY_SETTINGS_ID
        self.settings_id = settings_id

    # --- Company accounting settings ---

    def _load_accounting_settings(self) -> CompanyAccountingSettings | None:
        return self.db.get(CompanyAccountingSettings, self.settings_id)

    def get_accounting_settings(self) -> CompanyAccountingSettings:
        """
        Return the bound settings row.

        Before the first update there is no stored row; an empty,
        unsaved one is returned instead, so reading never writes.
        """
        settings_row = self._load_accounting_settings()
        if settings_row is None:
            return CompanyAccountingSettings(id=self.settings_id)
        return settings_row

    def update_accounting_settings(
        self, request: AccountingSettingsUpdate
    ) -> CompanyAccountingSettings:
        """
        Point the company at a current fiscal year and a retained
        earnings account.

        The current year must be open. The retained earnings account
        must be an EQUITY account.
        """
        if request.current_fiscal_year_id is not None:
            year = self.db.get(FiscalYear, request.current_fiscal_year_id)
            if not year:
                raise NotFound(
                    f"Fiscal year {request.current_fiscal_year_id} not found",
                    field="current_fiscal_year_id",
                )
            if year.is_closed:
                raise AlreadyClosed(
                    f"Fiscal year {year.name} is closed and cannot be "
                    f"made current",
                    field="current_fiscal_year_id",
                )

        if request.retained_earnings_account_id is not None:
            account = self.db.get(Account, request.retained_earnings_account_id)
            if not account:
                raise NotFound(
                    f"Account {request.retained_earnings_account_id} not found",
                    field="retained_earnings_account_id",
                )
            if account.account_type != AccountType.EQUITY:
                raise ValidationFailed(
                    f"Retained earnings account {account.code} must be an "
                    f"EQUITY account",
                    field="retained_earnings_account_id",
                )

        settings_row = self._load_accounting_settings()
        if settings_row is None:
            settings_row = CompanyAccountingSettings(id=self.settings_id)
            self.db.add(settings_row)
        settings_row.current_fiscal_year_id = request.current_fiscal_year_id
        settings_row.retained_earnings_account_id = (
            request.retained_earnings_account_id
        )
        self._audit("ACCOUNTING_SETTINGS_UPDATED", {
            "settings_id": self.settings_id,
            "current_fiscal_year_id": request.current_fiscal_year_id,
            "retained_earnings_account_id": request.retained_earnings_account_id,
        })
        self.db.flush()
        return settings_row

    # --- Fiscal year CRUD ---

    def get(self, fiscal_year_id: int) -> FiscalYear:
        """Get a fiscal year by ID."""
        year = self.db.get(FiscalYear, fiscal_year_id)
        if not year:
            raise NotFound(f"Fiscal year {fiscal_year_id} not found")
        return year

    def list_years(self) -> list[FiscalYear]:
        """Return all fiscal years, most recent first."""
        years = self.db.execute(
            select(FiscalYear).order_by(FiscalYear.start_date.desc())
        ).scalars().all()
        return list(years)

    @staticmethod
    def _check_range(start_date: date, end_date: date) -> None:
        if end_date <= start_date:
            raise InvalidRange(
                f"End date {end_date} must be after start date {start_date}",
                field="end_date",
            )

    def _name_taken(self, name: str, exclude_id: int | None = None) -> bool:
        query = select(FiscalYear.id).where(FiscalYear.name == name)
        if exclude_id is not None:
            query = query.where(FiscalYear.id != exclude_id)
        return self.db.execute(query.limit(1)).first() is not None

    def create(self, request: FiscalYearCreate) -> FiscalYear:
        """Create a new, open fiscal year."""
        self._check_range(request.start_date, request.end_date)
        if self._name_taken(request.name):
            raise DuplicateName(
                f"A fiscal year named '{request.name}' already exists",
                field="name",
            )

        year = FiscalYear(
            name=request.name,
            start_date=request.start_date,
            end_date=request.end_date,
        )
        self.db.add(year)
        self.db.flush()
        logger.info(
            "Created fiscal year %s (%s - %s)",
            year.name, year.start_date, year.end_date,
        )
        return year

    def update(self, fiscal_year_id: int, request: FiscalYearUpdate) -> FiscalYear:
        """
        Rename or re-date an open fiscal year.

        The new range must still contain every entry already posted
        to the year.
        """
        year = self.get(fiscal_year_id)
        if year.is_closed:
            raise AlreadyClosed(f"Fiscal year {year.name} is closed")
        self._check_range(request.start_date, request.end_date)
        if self._name_taken(request.name, exclude_id=year.id):
            raise DuplicateName(
                f"A fiscal year named '{request.name}' already exists",
                field="name",
            )

        stranded = self.db.execute(
            select(JournalEntry.entry_number).where(
                JournalEntry.fiscal_year_id == year.id,
                or_(
                    JournalEntry.entry_date < request.start_date,
                    JournalEntry.entry_date > request.end_date,
                ),
            ).limit(1)
        ).scalar_one_or_none()
        if stranded:
            raise InvalidRange(
                f"Entry {stranded} would fall outside the new date range",
                field="start_date",
            )

        year.name = request.name
        year.start_date = request.start_date
        year.end_date = request.end_date
        self.db.flush()
        return year

    def delete(self, fiscal_year_id: int) -> None:
        """Delete an open fiscal year that is not current and has no entries."""
        year = self.get(fiscal_year_id)
        if year.is_closed:
            raise AlreadyClosed(f"Fiscal year {year.name} is closed")

        settings_row = self._load_accounting_settings()
        if settings_row and settings_row.current_fiscal_year_id == year.id:
            raise IsCurrentYear(
                f"Fiscal year {year.name} is the current fiscal year"
            )

        has_entries = self.db.execute(
            select(JournalEntry.id)
            .where(JournalEntry.fiscal_year_id == year.id)
            .limit(1)
        ).first()
        if has_entries:
            raise HasEntries(
                f"Fiscal year {year.name} has journal entries"
            )

        self.db.delete(year)
        self.db.flush()
        logger.info("Deleted fiscal year %s", year.name)

    # --- Period resolution ---

    def get_active_year(self, for_update: bool = False) -> FiscalYear | None:
        """Return the settings' current fiscal year, if one is configured."""
        settings_row = self._load_accounting_settings()
        if not settings_row or settings_row.current_fiscal_year_id is None:
            return None
        query = select(FiscalYear).where(
            FiscalYear.id == settings_row.current_fiscal_year_id
        )
        if for_update:
            query = query.with_for_update()
        return self.db.execute(query).scalar_one_or_none()

    def resolve_for_posting(
        self, entry_date: date, fiscal_year_id: int | None = None
    ) -> FiscalYear:
        """
        Find the fiscal year a posting belongs to and check it accepts it.

        Without fiscal_year_id the current fiscal year is used. The
        year row is share-locked so a concurrent close waits for this
        posting's transaction to finish.
        """
        if fiscal_year_id is None:
            settings_row = self._load_accounting_settings()
            if not settings_row or settings_row.current_fiscal_year_id is None:
                raise NoActiveYear(
                    "No current fiscal year is configured to receive postings"
                )
            fiscal_year_id = settings_row.current_fiscal_year_id

        year = self.db.execute(
            select(FiscalYear)
            .where(FiscalYear.id == fiscal_year_id)
            .with_for_update(read=True)
        ).scalar_one_or_none()
        if not year:
            raise NotFound(
                f"Fiscal year {fiscal_year_id} not found",
                field="fiscal_year_id",
            )
        if year.is_closed:
            raise PeriodClosed(
                f"Fiscal year {year.name} is closed; no postings are accepted"
            )
        if not year.contains(entry_date):
            raise DateOutOfPeriod(
                f"Entry date {entry_date} is outside fiscal year {year.name} "
                f"({year.start_date} - {year.end_date})",
                field="entry_date",
            )
        return year

    # --- Year-end close ---

    def _retained_earnings_account(self) -> Account:
        settings_row = self._load_accounting_settings()
        account = None
        if settings_row and settings_row.retained_earnings_account_id is not None:
            account = self.db.get(
                Account, settings_row.retained_earnings_account_id
            )
        if not account or account.account_type != AccountType.EQUITY:
            raise NoRetainedEarningsAccountConfigured(
                "No EQUITY retained earnings account is configured"
            )
        return account

    def close(self, acting_user_id: int) -> FiscalYearCloseResponse:
        """
        Close the current fiscal year.

        Accounting:
            For each revenue account with period activity
                DEBIT  Revenue            CREDIT Retained Earnings
            For each expense account with period activity
                DEBIT  Retained Earnings  CREDIT Expense

        After the closing entries the period's revenue and expense
        activity nets to zero and retained earnings has absorbed the
        net income. The closing entries and the closed flag are
        flushed together; the caller commits or rolls back the lot.
        """
        from general_ledger.services.journal_service import JournalService
        from general_ledger.services.statement_service import StatementService

        year = self.get_active_year(for_update=True)
        if not year:
            raise NoActiveYear("No current fiscal year is configured")
        if year.is_closed:
            raise AlreadyClosed(f"Fiscal year {year.name} is already closed")

        retained = self._retained_earnings_account()

        statement = StatementService(self.db, self.settings_id).income_statement(
            year.id
        )
        journal = JournalService(self.db, self.settings_id)

        closing_entries = []
        for line in statement.revenues:
            if line.amount == 0:
                continue
            debit, credit = line.account_code, retained.code
            if line.amount < 0:
                debit, credit = credit, debit
            closing_entries.append(journal.post(
                JournalEntryCreate(
                    entry_date=year.end_date,
                    description=(
                        f"Year-end close {year.name}: revenue "
                        f"{line.account_name}"
                    ),
                    debit_account_code=debit,
                    credit_account_code=credit,
                    amount=abs(line.amount),
                    fiscal_year_id=year.id,
                ),
                entry_kind=EntryKind.CLOSING,
            ))

        for line in statement.expenses:
            if line.amount == 0:
                continue
            debit, credit = retained.code, line.account_code
            if line.amount < 0:
                debit, credit = credit, debit
            closing_entries.append(journal.post(
                JournalEntryCreate(
                    entry_date=year.end_date,
                    description=(
                        f"Year-end close {year.name}: expense "
                        f"{line.account_name}"
                    ),
                    debit_account_code=debit,
                    credit_account_code=credit,
                    amount=abs(line.amount),
                    fiscal_year_id=year.id,
                ),
                entry_kind=EntryKind.CLOSING,
            ))

        year.is_closed = True
        year.closed_at = datetime.utcnow()
        year.closed_by_user_id = acting_user_id
        self._audit("FISCAL_YEAR_CLOSED", {
            "fiscal_year_id": year.id,
            "fiscal_year": year.name,
            "closed_by_user_id": acting_user_id,
            "net_income": str(statement.net_income),
            "closing_entries": [e.entry_number for e in closing_entries],
        })
        self.db.flush()

        logger.info(
            "Closed fiscal year %s: net income %s moved to %s (%d entries)",
            year.name, statement.net_income, retained.code, len(closing_entries),
        )

        return FiscalYearCloseResponse(
            fiscal_year=FiscalYearResponse.model_validate(year),
            retained_earnings_account_code=retained.code,
            total_revenues=statement.total_revenues,
            total_expenses=statement.total_expenses,
            net_income=statement.net_income,
            closing_entries=[
                JournalEntryResponse.model_validate(e) for e in closing_entries
            ],
            message=(
                f"Fiscal year {year.name} closed. Net income of "
                f"{statement.net_income.quantize(Decimal('0.01'))} was "
                f"transferred to {retained.name}."
            ),
        )

    def _audit(self, event_type: str, details: dict) -> None:
        self.db.add(AuditLog(event_type=event_type, details=json.dumps(details)))
