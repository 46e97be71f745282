"""Ledger services."""

from general_ledger.services.chart_of_accounts_service import ChartOfAccountsService
from general_ledger.services.fiscal_year_service import FiscalYearService
from general_ledger.services.journal_service import JournalService
from general_ledger.services.statement_service import StatementService

__all__ = [
    "ChartOfAccountsService",
    "FiscalYearService",
    "JournalService",
    "StatementService",
]
