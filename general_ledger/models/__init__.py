"""
Database models package.

All models must be imported here so that Alembic can discover
them through Base.metadata when generating migrations.
"""

from general_ledger.models.base import Base
from general_ledger.models.enums import (
    AccountType,
    EntryType,
    EntryKind,
)
from general_ledger.models.audit_log import AuditLog
from general_ledger.models.account import Account
from general_ledger.models.fiscal_year import FiscalYear
from general_ledger.models.journal_entry import JournalEntry
from general_ledger.models.company_settings import CompanyAccountingSettings

__all__ = [
    "Base",
    "AccountType",
    "EntryType",
    "EntryKind",
    "AuditLog",
    "Account",
    "FiscalYear",
    "JournalEntry",
    "CompanyAccountingSettings",
]
