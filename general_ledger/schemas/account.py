"""
Pydantic schemas for chart of accounts operations.
"""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from general_ledger.models.enums import AccountType


# --- Request Schemas ---

class AccountCreate(BaseModel):
    """Request to add an account to the chart of accounts."""
    code: str = Field(min_length=1, max_length=20)
    name: str = Field(min_length=1, max_length=100)
    account_type: AccountType
    opening_balance: Decimal = Field(default=Decimal("0"), decimal_places=4)
    parent_id: int | None = None


class AccountUpdate(BaseModel):
    """
    Request to change an account's descriptive fields.

    There is no balance field: balances only move
    through journal postings.
    """
    code: str = Field(min_length=1, max_length=20)
    name: str = Field(min_length=1, max_length=100)
    account_type: AccountType
    parent_id: int | None = None


# --- Response Schemas ---

class AccountResponse(BaseModel):
    id: int
    code: str
    name: str
    account_type: AccountType
    opening_balance: Decimal
    balance: Decimal
    parent_id: int | None
    created_at: datetime

    model_config = {"from_attributes": True}


class AccountWithRollup(AccountResponse):
    """Account plus its own balance and every descendant's."""
    rolled_up_balance: Decimal
