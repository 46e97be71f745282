"""
Financial statement endpoints.

Read-only. Without fiscal_year_id the current fiscal year is used.
"""

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from general_ledger.errors import LedgerError
from general_ledger.models.base import get_db
from general_ledger.services.statement_service import StatementService
from general_ledger.schemas.statements import (
    IncomeStatement,
    BalanceSheet,
    RevenueExpenseSummary,
    MonthlyRevenueExpense,
)

router = APIRouter(prefix="/statements", tags=["Statements"])


@router.get("/income-statement", response_model=IncomeStatement)
def income_statement(
    fiscal_year_id: int | None = None,
    db: Session = Depends(get_db),
):
    try:
        return StatementService(db).income_statement(fiscal_year_id)
    except LedgerError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())


@router.get("/balance-sheet", response_model=BalanceSheet)
def balance_sheet(
    fiscal_year_id: int | None = None,
    db: Session = Depends(get_db),
):
    """
    Assets, liabilities and equity at the fiscal year's end.

    For an open year, the unclosed net income is included in equity.
    """
    try:
        return StatementService(db).balance_sheet(fiscal_year_id)
    except LedgerError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())


@router.get("/summary", response_model=RevenueExpenseSummary)
def revenue_expense_summary(
    fiscal_year_id: int | None = None,
    db: Session = Depends(get_db),
):
    try:
        return StatementService(db).revenue_expense_summary(fiscal_year_id)
    except LedgerError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())


@router.get("/monthly", response_model=list[MonthlyRevenueExpense])
def monthly_revenue_vs_expense(
    months: int = Query(default=6, ge=1, le=24),
    fiscal_year_id: int | None = None,
    db: Session = Depends(get_db),
):
    """Revenue and expenses for the last months with activity, oldest first."""
    try:
        return StatementService(db).monthly_revenue_vs_expense(
            months, fiscal_year_id
        )
    except LedgerError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())
