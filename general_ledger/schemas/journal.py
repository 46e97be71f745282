"""
Pydantic schemas for journal posting.

These define the posting contract used both by the HTTP layer
and by business modules (sales, purchases, expenses) that post
through JournalService directly.

Amount sign and same-account checks live in the posting engine,
not here, so that every caller gets the same typed ledger error
whether it comes through HTTP or not.
"""

from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from general_ledger.models.enums import EntryKind


# --- Request Schemas ---

class JournalEntryCreate(BaseModel):
    """A single two-leg posting."""
    entry_date: date
    description: str = Field(min_length=1, max_length=255)
    debit_account_code: str = Field(min_length=1, max_length=20)
    credit_account_code: str = Field(min_length=1, max_length=20)
    amount: Decimal = Field(decimal_places=4)
    # Left empty, a number is generated from entry_date
    entry_number: str | None = Field(default=None, max_length=40)
    # Left empty, the company's current fiscal year is used
    fiscal_year_id: int | None = None


class JournalBatchCreate(BaseModel):
    """
    All postings of one business document.

    Posted in a single transaction: either every entry is
    recorded or none is.
    """
    entries: list[JournalEntryCreate] = Field(min_length=1)


class JournalEntryUpdate(BaseModel):
    """
    Administrative correction of an entry's non-financial fields.

    confirm must be true: the edit does not change any balance
    and the caller has to acknowledge that.
    """
    entry_date: date
    description: str = Field(min_length=1, max_length=255)
    confirm: bool = False


class ReverseEntryRequest(BaseModel):
    reason: str = Field(min_length=1, max_length=200)
    # Defaults to the original entry's date and fiscal year
    reversal_date: date | None = None


# --- Response Schemas ---

class JournalEntryResponse(BaseModel):
    id: int
    entry_number: str
    entry_date: date
    description: str
    debit_account_code: str
    credit_account_code: str
    amount: Decimal
    fiscal_year_id: int
    entry_kind: EntryKind
    reverses_entry_id: int | None
    created_at: datetime

    model_config = {"from_attributes": True}


class JournalEntryUpdateResponse(BaseModel):
    entry: JournalEntryResponse
    warning: str


class BalanceMismatch(BaseModel):
    account_code: str
    stored_balance: Decimal
    expected_balance: Decimal


class IntegrityReport(BaseModel):
    """Result of recomputing every balance from the entry log."""
    is_balanced: bool
    total_debits: Decimal
    total_credits: Decimal
    difference: Decimal
    mismatches: list[BalanceMismatch]
