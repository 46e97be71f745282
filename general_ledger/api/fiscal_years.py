"""
Fiscal year API endpoints.
"""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from general_ledger.api.dependencies import get_acting_user_id
from general_ledger.errors import LedgerError
from general_ledger.models.base import get_db
from general_ledger.services.fiscal_year_service import FiscalYearService
from general_ledger.schemas.common import ActionResult
from general_ledger.schemas.fiscal_year import (
    FiscalYearCreate,
    FiscalYearUpdate,
    FiscalYearResponse,
    FiscalYearCloseResponse,
)

router = APIRouter(prefix="/fiscal-years", tags=["Fiscal Years"])


@router.get("", response_model=list[FiscalYearResponse])
def list_fiscal_years(db: Session = Depends(get_db)):
    return FiscalYearService(db).list_years()


@router.post("", response_model=FiscalYearResponse, status_code=201)
def create_fiscal_year(
    request: FiscalYearCreate,
    db: Session = Depends(get_db),
):
    service = FiscalYearService(db)
    try:
        year = service.create(request)
        db.commit()
        return year
    except LedgerError as e:
        db.rollback()
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())


@router.post("/close", response_model=FiscalYearCloseResponse)
def close_fiscal_year(
    db: Session = Depends(get_db),
    acting_user_id: int = Depends(get_acting_user_id),
):
    """
    Close the current fiscal year.

    Posts closing entries moving revenue and expense activity into
    retained earnings, then marks the year closed. All of it
    commits together or not at all.
    """
    service = FiscalYearService(db)
    try:
        result = service.close(acting_user_id)
        db.commit()
        return result
    except LedgerError as e:
        db.rollback()
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())


@router.get("/{fiscal_year_id}", response_model=FiscalYearResponse)
def get_fiscal_year(
    fiscal_year_id: int,
    db: Session = Depends(get_db),
):
    service = FiscalYearService(db)
    try:
        return service.get(fiscal_year_id)
    except LedgerError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())


@router.put("/{fiscal_year_id}", response_model=FiscalYearResponse)
def update_fiscal_year(
    fiscal_year_id: int,
    request: FiscalYearUpdate,
    db: Session = Depends(get_db),
):
    service = FiscalYearService(db)
    try:
        year = service.update(fiscal_year_id, request)
        db.commit()
        return year
    except LedgerError as e:
        db.rollback()
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())


@router.delete("/{fiscal_year_id}", response_model=ActionResult)
def delete_fiscal_year(
    fiscal_year_id: int,
    db: Session = Depends(get_db),
):
    service = FiscalYearService(db)
    try:
        service.delete(fiscal_year_id)
        db.commit()
    except LedgerError as e:
        db.rollback()
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())
    return ActionResult(
        success=True, message=f"Fiscal year {fiscal_year_id} deleted"
    )
