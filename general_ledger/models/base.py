"""
Database engine, session management, and base model.

Every model inherits from Base. Every request gets a session
from get_db(). The request owns the transaction: services only
flush, the caller decides when to commit or roll back.
"""

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, DeclarativeBase

from general_ledger.config import get_settings

settings = get_settings()

# --- Engine ---
# pool_pre_ping=True tests connections before handing them out,
# so a restarted database does not fail the first posting.
engine = create_engine(
    settings.DATABASE_URL,
    pool_pre_ping=True,
)

# --- Session Factory ---
# autocommit=False: a journal posting, a multi-line document or a
# fiscal-year close is committed by the caller as one unit.
# autoflush=False: SQL is only sent on an explicit flush.
SessionLocal = sessionmaker(
    bind=engine,
    autocommit=False,
    autoflush=False,
)


class Base(DeclarativeBase):
    pass


# --- Dependency for FastAPI ---
def get_db():
    """
    Provide a database session for a single request.

    The session is always closed when the request finishes,
    even if an error occurs. Anything not committed by then
    is rolled back.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
