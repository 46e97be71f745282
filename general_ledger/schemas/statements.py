"""
Pydantic schemas for financial statements.

Statements carry numbers only; layout is left to the client.
"""

from datetime import date
from decimal import Decimal

from pydantic import BaseModel

from general_ledger.models.enums import AccountType
from general_ledger.schemas.account import AccountWithRollup


class StatementLine(BaseModel):
    """One account's activity for the period."""
    account_id: int
    account_code: str
    account_name: str
    account_type: AccountType
    amount: Decimal


class IncomeStatement(BaseModel):
    fiscal_year_id: int
    period_start: date
    period_end: date
    revenues: list[StatementLine]
    expenses: list[StatementLine]
    total_revenues: Decimal
    total_expenses: Decimal
    net_income: Decimal


class BalanceSheet(BaseModel):
    """
    Root accounts of each balance-sheet type with rolled-up balances.

    While the fiscal year is open, net_income_included holds the
    period's unclosed profit, which is counted in total_equity.
    """
    fiscal_year_id: int
    report_date: date
    assets: list[AccountWithRollup]
    liabilities: list[AccountWithRollup]
    equity: list[AccountWithRollup]
    total_assets: Decimal
    total_liabilities: Decimal
    total_equity: Decimal
    net_income_included: Decimal
    total_liabilities_and_equity: Decimal
    is_balanced: bool


class RevenueExpenseSummary(BaseModel):
    total_revenue: Decimal
    total_expenses: Decimal
    net_profit: Decimal


class MonthlyRevenueExpense(BaseModel):
    month: str  # YYYY-MM
    revenue: Decimal
    expenses: Decimal
