"""
Shared enumerations for database models.

Using Python enums mapped to database enums ensures that
only valid values can be stored. An invalid account_type
or entry_kind is caught at the database level, not just
in Python validation.
"""

import enum


class AccountType(str, enum.Enum):
    """The five fundamental accounting categories."""
    ASSET = "ASSET"
    LIABILITY = "LIABILITY"
    EQUITY = "EQUITY"
    REVENUE = "REVENUE"
    EXPENSE = "EXPENSE"

    @property
    def is_debit_natural(self) -> bool:
        """Assets and expenses increase on the debit side."""
        return self in DEBIT_NATURAL_TYPES

    @property
    def is_credit_natural(self) -> bool:
        return self in CREDIT_NATURAL_TYPES


DEBIT_NATURAL_TYPES = frozenset({AccountType.ASSET, AccountType.EXPENSE})
CREDIT_NATURAL_TYPES = frozenset({
    AccountType.LIABILITY,
    AccountType.EQUITY,
    AccountType.REVENUE,
})


class EntryType(str, enum.Enum):
    """Side of a journal entry an account sits on."""
    DEBIT = "DEBIT"
    CREDIT = "CREDIT"


class EntryKind(str, enum.Enum):
    """Why a journal entry exists."""
    STANDARD = "STANDARD"
    CLOSING = "CLOSING"
    REVERSAL = "REVERSAL"
