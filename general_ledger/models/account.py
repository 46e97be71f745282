"""
Account model (chart of accounts).

Every account the business posts against (cash, receivables,
sales revenue, retained earnings, ...) is a row here. Accounts
form a tree through parent_id; a parent's rolled-up balance is
computed on read and never stored.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    String, DateTime, Numeric, ForeignKey,
    Enum as SAEnum,
)
from sqlalchemy.orm import Mapped, mapped_column

from general_ledger.models.base import Base
from general_ledger.models.enums import AccountType


class Account(Base):
    """
    A single account in the chart of accounts.

    balance is the account's own balance in its natural sign.
    It is changed only by the journal posting engine, and always
    equals opening_balance plus the natural-sign contributions of
    every journal entry that names this account's code.
    """

    __tablename__ = "accounts"

    id: Mapped[int] = mapped_column(primary_key=True)
    code: Mapped[str] = mapped_column(
        String(20), unique=True, nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    account_type: Mapped[AccountType] = mapped_column(
        SAEnum(AccountType, name="account_type_enum"),
        nullable=False,
    )
    opening_balance: Mapped[Decimal] = mapped_column(
        Numeric(19, 4), nullable=False, default=Decimal("0")
    )
    balance: Mapped[Decimal] = mapped_column(
        Numeric(19, 4), nullable=False, default=Decimal("0")
    )
    parent_id: Mapped[int | None] = mapped_column(
        ForeignKey("accounts.id", name="fk_accounts_parent"),
        nullable=True,
        index=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    def __repr__(self) -> str:
        return f"<Account {self.code} ({self.account_type.value})>"
