"""
General Ledger FastAPI application.

This is the entry point for the application.
Logging is configured and all routers are registered here.
"""

import logging

from fastapi import FastAPI

from general_ledger.config import get_settings
from general_ledger.api.health import router as health_router
from general_ledger.api.accounts import router as accounts_router
from general_ledger.api.journal import router as journal_router
from general_ledger.api.fiscal_years import router as fiscal_years_router
from general_ledger.api.settings import router as settings_router
from general_ledger.api.statements import router as statements_router

settings = get_settings()

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Double-entry general ledger with fiscal years and statements",
)

# Register routers
app.include_router(health_router)
app.include_router(accounts_router)
app.include_router(journal_router)
app.include_router(fiscal_years_router)
app.include_router(settings_router)
app.include_router(statements_router)

logger.info(
    "%s %s configured (%s)",
    settings.APP_NAME, settings.APP_VERSION, settings.ENVIRONMENT,
)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "general_ledger.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
    )
