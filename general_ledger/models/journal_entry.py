"""
Journal entry model.

Each entry is one balanced two-leg posting: the same amount is
debited to one account and credited to another. The row is
inserted in the same transaction that applies both balance
changes, so the entry log and the stored balances are always
committed together.
"""

from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import (
    String, Date, DateTime, Numeric, ForeignKey,
    Enum as SAEnum, CheckConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from general_ledger.models.base import Base
from general_ledger.models.enums import EntryKind


class JournalEntry(Base):
    """
    A posted journal entry.

    Accounts and amount are never edited after posting. Undoing
    an entry means posting a REVERSAL entry that points back at it.
    """

    __tablename__ = "journal_entries"
    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_journal_entries_amount_positive"),
        CheckConstraint(
            "debit_account_code <> credit_account_code",
            name="ck_journal_entries_distinct_accounts",
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    entry_number: Mapped[str] = mapped_column(
        String(40), unique=True, nullable=False, index=True
    )
    entry_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    description: Mapped[str] = mapped_column(String(255), nullable=False)
    debit_account_code: Mapped[str] = mapped_column(
        ForeignKey("accounts.code", onupdate="CASCADE"),
        nullable=False,
        index=True,
    )
    credit_account_code: Mapped[str] = mapped_column(
        ForeignKey("accounts.code", onupdate="CASCADE"),
        nullable=False,
        index=True,
    )
    amount: Mapped[Decimal] = mapped_column(
        Numeric(19, 4), nullable=False
    )
    fiscal_year_id: Mapped[int] = mapped_column(
        ForeignKey("fiscal_years.id"), nullable=False, index=True
    )
    entry_kind: Mapped[EntryKind] = mapped_column(
        SAEnum(EntryKind, name="entry_kind_enum"),
        nullable=False,
        default=EntryKind.STANDARD,
    )
    reverses_entry_id: Mapped[int | None] = mapped_column(
        ForeignKey("journal_entries.id"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )

    fiscal_year: Mapped["FiscalYear"] = relationship()
    reverses_entry: Mapped["JournalEntry | None"] = relationship(
        remote_side=[id]
    )

    def __repr__(self) -> str:
        return (
            f"<JournalEntry {self.entry_number} "
            f"Dr {self.debit_account_code} Cr {self.credit_account_code} "
            f"{self.amount}>"
        )
