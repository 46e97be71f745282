"""
Company accounting settings endpoints.
"""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from general_ledger.errors import LedgerError
from general_ledger.models.base import get_db
from general_ledger.services.fiscal_year_service import FiscalYearService
from general_ledger.schemas.fiscal_year import (
    AccountingSettingsUpdate,
    AccountingSettingsResponse,
)

router = APIRouter(prefix="/settings/accounting", tags=["Settings"])


@router.get("", response_model=AccountingSettingsResponse)
def get_accounting_settings(db: Session = Depends(get_db)):
    """Current fiscal year and retained earnings account."""
    return FiscalYearService(db).get_accounting_settings()


@router.put("", response_model=AccountingSettingsResponse)
def update_accounting_settings(
    request: AccountingSettingsUpdate,
    db: Session = Depends(get_db),
):
    service = FiscalYearService(db)
    try:
        settings_row = service.update_accounting_settings(request)
        db.commit()
        return settings_row
    except LedgerError as e:
        db.rollback()
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())
