"""
Shared test fixtures.

Sets up an isolated SQLite database so tests never touch the
real database. Tables are created before each test and dropped
after it, so no test data persists.
"""

from datetime import date
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from general_ledger.main import app
from general_ledger.models.base import Base, get_db
from general_ledger.models.enums import AccountType
from general_ledger.schemas.account import AccountCreate
from general_ledger.schemas.fiscal_year import (
    FiscalYearCreate,
    AccountingSettingsUpdate,
)
from general_ledger.services.chart_of_accounts_service import ChartOfAccountsService
from general_ledger.services.fiscal_year_service import FiscalYearService


# SQLite: no external database needed to run the suite
TEST_DATABASE_URL = "sqlite:///./test.db"

engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
)

TestSessionLocal = sessionmaker(
    bind=engine,
    autocommit=False,
    autoflush=False,
)


@pytest.fixture(autouse=True)
def setup_database():
    """Create all tables before each test, drop them after."""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def session_factory():
    """The sessionmaker itself, for tests that open their own sessions."""
    return TestSessionLocal


@pytest.fixture
def db_session():
    """Provide a database session for direct service testing."""
    session = TestSessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture
def client(db_session):
    """
    Provide a test client with the test database.

    The get_db dependency is overridden so the FastAPI app uses
    the test session instead of the real database.
    """
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


# --- Ledger setup helpers ---

CHART = [
    # code, name, type, parent code
    ("1", "Assets", AccountType.ASSET, None),
    ("1.1", "Current Assets", AccountType.ASSET, "1"),
    ("1.1.01", "Cash", AccountType.ASSET, "1.1"),
    ("1.1.02", "Bank", AccountType.ASSET, "1.1"),
    ("1.1.03", "Accounts Receivable", AccountType.ASSET, "1.1"),
    ("2", "Liabilities", AccountType.LIABILITY, None),
    ("2.1.01", "Accounts Payable", AccountType.LIABILITY, "2"),
    ("3", "Equity", AccountType.EQUITY, None),
    ("3.1.01", "Owner Capital", AccountType.EQUITY, "3"),
    ("3.2.01", "Retained Earnings", AccountType.EQUITY, "3"),
    ("4", "Revenue", AccountType.REVENUE, None),
    ("4.1.01", "Sales", AccountType.REVENUE, "4"),
    ("4.1.02", "Service Revenue", AccountType.REVENUE, "4"),
    ("5", "Expenses", AccountType.EXPENSE, None),
    ("5.1.01", "Rent", AccountType.EXPENSE, "5"),
    ("5.1.02", "Salaries", AccountType.EXPENSE, "5"),
]


def build_chart(db):
    """Create the sample chart of accounts; returns {code: Account}."""
    service = ChartOfAccountsService(db)
    accounts = {}
    for code, name, account_type, parent_code in CHART:
        accounts[code] = service.create_account(AccountCreate(
            code=code,
            name=name,
            account_type=account_type,
            opening_balance=Decimal("0"),
            parent_id=accounts[parent_code].id if parent_code else None,
        ))
    return accounts


def open_year(db, name="FY2024", start=date(2024, 1, 1), end=date(2024, 12, 31),
              retained_earnings=None, make_current=True):
    """Create a fiscal year and optionally make it the current one."""
    service = FiscalYearService(db)
    year = service.create(FiscalYearCreate(
        name=name, start_date=start, end_date=end,
    ))
    if make_current:
        service.update_accounting_settings(AccountingSettingsUpdate(
            current_fiscal_year_id=year.id,
            retained_earnings_account_id=(
                retained_earnings.id if retained_earnings else None
            ),
        ))
    return year


@pytest.fixture
def chart(db_session):
    return build_chart(db_session)


@pytest.fixture
def fiscal_year(db_session, chart):
    """FY2024, current, with 3.2.01 as retained earnings."""
    return open_year(db_session, retained_earnings=chart["3.2.01"])


@pytest.fixture
def make_chart():
    return build_chart


@pytest.fixture
def make_year():
    return open_year


@pytest.fixture
def committed_ledger(db_session, chart, fiscal_year):
    """Sample chart and current year, committed for API tests."""
    db_session.commit()
    return chart
