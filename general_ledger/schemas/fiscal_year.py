"""
Pydantic schemas for fiscal years and company accounting settings.
"""

from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from general_ledger.schemas.journal import JournalEntryResponse


# --- Fiscal Year Schemas ---

class FiscalYearCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    start_date: date
    end_date: date


class FiscalYearUpdate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    start_date: date
    end_date: date


class FiscalYearResponse(BaseModel):
    id: int
    name: str
    start_date: date
    end_date: date
    is_closed: bool
    closed_at: datetime | None
    closed_by_user_id: int | None
    created_at: datetime

    model_config = {"from_attributes": True}


class FiscalYearCloseResponse(BaseModel):
    """Outcome of closing the active fiscal year."""
    fiscal_year: FiscalYearResponse
    retained_earnings_account_code: str
    total_revenues: Decimal
    total_expenses: Decimal
    net_income: Decimal
    closing_entries: list[JournalEntryResponse]
    message: str


# --- Settings Schemas ---

class AccountingSettingsUpdate(BaseModel):
    current_fiscal_year_id: int | None = None
    retained_earnings_account_id: int | None = None


class AccountingSettingsResponse(BaseModel):
    id: int
    current_fiscal_year_id: int | None
    retained_earnings_account_id: int | None

    model_config = {"from_attributes": True}
