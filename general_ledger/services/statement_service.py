"""
Financial statement service.

Read-only. Nothing here writes to the database.

The income statement is built from the journal entries of one
fiscal year. The balance sheet is built from stored account
balances rolled up through the chart hierarchy. Year-end closing
entries are left out of period activity, so a closed year still
reports the revenue and expenses it actually earned.
"""

import logging
from collections import defaultdict
from decimal import Decimal

from sqlalchemy import select, func
from sqlalchemy.orm import Session

from general_ledger.errors import NoActiveYear
from general_ledger.models.account import Account
from general_ledger.models.enums import AccountType, EntryKind
from general_ledger.models.fiscal_year import FiscalYear
from general_ledger.models.journal_entry import JournalEntry
from general_ledger.schemas.statements import (
    StatementLine,
    IncomeStatement,
    BalanceSheet,
    RevenueExpenseSummary,
    MonthlyRevenueExpense,
)
from general_ledger.services.chart_of_accounts_service import ChartOfAccountsService
from general_ledger.services.fiscal_year_service import FiscalYearService

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


class StatementService:

    def __init__(self, db: Session, settings_id: int | None = None):
        self.db = db
        self.accounts = ChartOfAccountsService(db)
        self.fiscal_years = FiscalYearService(db, settings_id)

    def _resolve_year(self, fiscal_year_id: int | None) -> FiscalYear:
        if fiscal_year_id is not None:
            return self.fiscal_years.get(fiscal_year_id)
        year = self.fiscal_years.get_active_year()
        if not year:
            raise NoActiveYear(
                "No fiscal year given and no current fiscal year is configured"
            )
        return year

    def _side_totals(self, fiscal_year_id: int, code_column) -> dict[str, Decimal]:
        rows = self.db.execute(
            select(code_column, func.coalesce(func.sum(JournalEntry.amount), 0))
            .where(
                JournalEntry.fiscal_year_id == fiscal_year_id,
                JournalEntry.entry_kind != EntryKind.CLOSING,
            )
            .group_by(code_column)
        ).all()
        return {code: Decimal(str(total)) for code, total in rows}

    def _period_activity(
        self, fiscal_year_id: int, account_type: AccountType
    ) -> list[StatementLine]:
        """
        Net activity per account of one type within a fiscal year.

        Revenue is credits minus debits; expense is debits minus
        credits. A reversal therefore cancels the entry it reverses.
        Accounts without activity are left out.
        """
        debits = self._side_totals(fiscal_year_id, JournalEntry.debit_account_code)
        credits = self._side_totals(fiscal_year_id, JournalEntry.credit_account_code)

        accounts = self.db.execute(
            select(Account)
            .where(Account.account_type == account_type)
            .order_by(Account.code)
        ).scalars().all()

        lines = []
        for account in accounts:
            if account.code not in debits and account.code not in credits:
                continue
            debit = debits.get(account.code, ZERO)
            credit = credits.get(account.code, ZERO)
            amount = debit - credit if account_type.is_debit_natural else credit - debit
            lines.append(StatementLine(
                account_id=account.id,
                account_code=account.code,
                account_name=account.name,
                account_type=account.account_type,
                amount=amount,
            ))
        return lines

    def income_statement(self, fiscal_year_id: int | None = None) -> IncomeStatement:
        year = self._resolve_year(fiscal_year_id)
        revenues = self._period_activity(year.id, AccountType.REVENUE)
        expenses = self._period_activity(year.id, AccountType.EXPENSE)

        total_revenues = sum((line.amount for line in revenues), ZERO)
        total_expenses = sum((line.amount for line in expenses), ZERO)

        return IncomeStatement(
            fiscal_year_id=year.id,
            period_start=year.start_date,
            period_end=year.end_date,
            revenues=revenues,
            expenses=expenses,
            total_revenues=total_revenues,
            total_expenses=total_expenses,
            net_income=total_revenues - total_expenses,
        )

    def balance_sheet(self, fiscal_year_id: int | None = None) -> BalanceSheet:
        """
        Assets, liabilities and equity as of the fiscal year's end date.

        Each section lists the root accounts of its type with their
        rolled-up balances. While the year is open its net income has
        not yet been closed into retained earnings, so it is added to
        total equity here. The addition is presentation only; nothing
        is posted.
        """
        year = self._resolve_year(fiscal_year_id)
        chart = self.accounts.list_accounts()
        by_id = {account.id: account for account in chart}

        sections: dict[AccountType, list] = defaultdict(list)
        for account in chart:
            if account.parent_id is None or account.parent_id not in by_id:
                sections[account.account_type].append(account)

        def total(account_type):
            return sum(
                (a.rolled_up_balance for a in sections[account_type]), ZERO
            )

        total_assets = total(AccountType.ASSET)
        total_liabilities = total(AccountType.LIABILITY)
        total_equity = total(AccountType.EQUITY)

        net_income = ZERO
        if not year.is_closed:
            net_income = self.income_statement(year.id).net_income
            total_equity += net_income

        total_liabilities_and_equity = total_liabilities + total_equity
        is_balanced = total_assets == total_liabilities_and_equity
        if not is_balanced:
            logger.warning(
                "Balance sheet for %s does not balance: assets %s, "
                "liabilities and equity %s",
                year.name, total_assets, total_liabilities_and_equity,
            )

        return BalanceSheet(
            fiscal_year_id=year.id,
            report_date=year.end_date,
            assets=sections[AccountType.ASSET],
            liabilities=sections[AccountType.LIABILITY],
            equity=sections[AccountType.EQUITY],
            total_assets=total_assets,
            total_liabilities=total_liabilities,
            total_equity=total_equity,
            net_income_included=net_income,
            total_liabilities_and_equity=total_liabilities_and_equity,
            is_balanced=is_balanced,
        )

    def revenue_expense_summary(
        self, fiscal_year_id: int | None = None
    ) -> RevenueExpenseSummary:
        """Dashboard totals; all zero when no fiscal year resolves."""
        try:
            statement = self.income_statement(fiscal_year_id)
        except NoActiveYear:
            logger.info("No current fiscal year; returning an empty summary")
            return RevenueExpenseSummary(
                total_revenue=ZERO, total_expenses=ZERO, net_profit=ZERO
            )
        return RevenueExpenseSummary(
            total_revenue=statement.total_revenues,
            total_expenses=statement.total_expenses,
            net_profit=statement.net_income,
        )

    def monthly_revenue_vs_expense(
        self, months: int = 6, fiscal_year_id: int | None = None
    ) -> list[MonthlyRevenueExpense]:
        """
        Revenue and expenses per calendar month of a fiscal year.

        Returns the last `months` months that have activity, oldest
        first. Empty when no fiscal year resolves.
        """
        try:
            year = self._resolve_year(fiscal_year_id)
        except NoActiveYear:
            return []

        types = dict(
            self.db.execute(select(Account.code, Account.account_type)).all()
        )
        entries = self.db.execute(
            select(
                JournalEntry.entry_date,
                JournalEntry.debit_account_code,
                JournalEntry.credit_account_code,
                JournalEntry.amount,
            ).where(
                JournalEntry.fiscal_year_id == year.id,
                JournalEntry.entry_kind != EntryKind.CLOSING,
            )
        ).all()

        revenue: dict[str, Decimal] = defaultdict(Decimal)
        expenses: dict[str, Decimal] = defaultdict(Decimal)
        for entry_date, debit_code, credit_code, amount in entries:
            month = f"{entry_date:%Y-%m}"
            amount = Decimal(str(amount))
            # Credits raise revenue, debits raise expenses
            for code, sign in ((debit_code, -1), (credit_code, 1)):
                account_type = types.get(code)
                if account_type == AccountType.REVENUE:
                    revenue[month] += sign * amount
                elif account_type == AccountType.EXPENSE:
                    expenses[month] -= sign * amount

        if months <= 0:
            return []
        active = sorted(set(revenue) | set(expenses))[-months:]
        return [
            MonthlyRevenueExpense(
                month=month, revenue=revenue[month], expenses=expenses[month]
            )
            for month in active
        ]
