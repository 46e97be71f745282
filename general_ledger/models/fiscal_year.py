"""
Fiscal year model.

A fiscal year bounds which dates accept postings. It is created
open and transitions to closed exactly once, through the close
procedure. A closed year is never modified again.
"""

from datetime import date, datetime

from sqlalchemy import (
    String, Boolean, Date, DateTime, Integer, CheckConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from general_ledger.models.base import Base


class FiscalYear(Base):
    __tablename__ = "fiscal_years"
    __table_args__ = (
        CheckConstraint(
            "end_date > start_date", name="ck_fiscal_years_date_range"
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    is_closed: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )
    closed_at: Mapped[datetime | None] = mapped_column(
        DateTime, nullable=True, default=None
    )
    # Supplied by the session provider; users live outside the ledger
    closed_by_user_id: Mapped[int | None] = mapped_column(
        Integer, nullable=True, default=None
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )

    def contains(self, entry_date: date) -> bool:
        """Check whether a date falls inside [start_date, end_date]."""
        return self.start_date <= entry_date <= self.end_date

    def __repr__(self) -> str:
        state = "closed" if self.is_closed else "open"
        return f"<FiscalYear {self.name} ({state})>"
