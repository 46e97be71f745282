"""
Audit log model.

Records ledger events that change history or bypass the normal
posting path: fiscal-year closes, administrative edits and
deletions of posted entries, account code changes and accounting
settings changes.
"""

from datetime import datetime

from sqlalchemy import String, DateTime, Text
from sqlalchemy.orm import Mapped, mapped_column

from general_ledger.models.base import Base


class AuditLog(Base):
    """
    Immutable record of a ledger event.

    Audit records are append-only. You never update or
    delete one.
    """

    __tablename__ = "audit_log"

    id: Mapped[int] = mapped_column(primary_key=True)
    event_type: Mapped[str] = mapped_column(String(100), nullable=False)
    details: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, nullable=False
    )

    def __repr__(self) -> str:
        return f"<AuditLog {self.event_type}>"
