"""
Chart of accounts API endpoints.

Thin HTTP layer over ChartOfAccountsService. Balances are
read-only here; they change only through journal postings.
"""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from general_ledger.errors import LedgerError
from general_ledger.models.base import get_db
from general_ledger.services.chart_of_accounts_service import ChartOfAccountsService
from general_ledger.schemas.account import (
    AccountCreate,
    AccountUpdate,
    AccountResponse,
    AccountWithRollup,
)
from general_ledger.schemas.common import ActionResult

router = APIRouter(prefix="/accounts", tags=["Accounts"])


@router.get("", response_model=list[AccountWithRollup])
def list_accounts(db: Session = Depends(get_db)):
    """List the whole chart ordered by code, with rolled-up balances."""
    return ChartOfAccountsService(db).list_accounts()


@router.post("", response_model=AccountResponse, status_code=201)
def create_account(
    request: AccountCreate,
    db: Session = Depends(get_db),
):
    """
    Add an account to the chart.

    The opening balance is recorded separately from the running
    balance so integrity checks can rebuild it from the entries.
    """
    service = ChartOfAccountsService(db)
    try:
        account = service.create_account(request)
        db.commit()
        return account
    except LedgerError as e:
        db.rollback()
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())


@router.get("/{account_id}", response_model=AccountResponse)
def get_account(
    account_id: int,
    db: Session = Depends(get_db),
):
    service = ChartOfAccountsService(db)
    try:
        return service.get_account(account_id)
    except LedgerError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())


@router.put("/{account_id}", response_model=AccountResponse)
def update_account(
    account_id: int,
    request: AccountUpdate,
    db: Session = Depends(get_db),
):
    """Change code, name, type or parent. A code change follows into the journal."""
    service = ChartOfAccountsService(db)
    try:
        account = service.update_account(account_id, request)
        db.commit()
        return account
    except LedgerError as e:
        db.rollback()
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())


@router.delete("/{account_id}", response_model=ActionResult)
def delete_account(
    account_id: int,
    db: Session = Depends(get_db),
):
    service = ChartOfAccountsService(db)
    try:
        service.delete_account(account_id)
        db.commit()
    except LedgerError as e:
        db.rollback()
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())
    return ActionResult(success=True, message=f"Account {account_id} deleted")
