"""
Company accounting settings.

Holds the two pointers the ledger needs from the company setup:
which fiscal year receives postings that do not name one, and
which equity account absorbs net income at year close. Services
are bound to one settings row by id instead of reading a global.
"""

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship

from general_ledger.models.base import Base


class CompanyAccountingSettings(Base):
    __tablename__ = "company_accounting_settings"

    id: Mapped[int] = mapped_column(primary_key=True)
    current_fiscal_year_id: Mapped[int | None] = mapped_column(
        ForeignKey("fiscal_years.id"), nullable=True
    )
    retained_earnings_account_id: Mapped[int | None] = mapped_column(
        ForeignKey("accounts.id"), nullable=True
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    current_fiscal_year: Mapped["FiscalYear | None"] = relationship()
    retained_earnings_account: Mapped["Account | None"] = relationship()

    def __repr__(self) -> str:
        return (
            f"<CompanyAccountingSettings {self.id} "
            f"year={self.current_fiscal_year_id} "
            f"retained={self.retained_earnings_account_id}>"
        )
