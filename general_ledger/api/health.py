"""
Health check endpoint.

Used by load balancers and monitoring to verify the ledger
service is up and can reach its database.
"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from general_ledger.config import get_settings
from general_ledger.models.base import get_db

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])


@router.get("/health")
def health_check(db: Session = Depends(get_db)):
    """Report application status and database connectivity."""
    try:
        db.execute(text("SELECT 1"))
        db_status = "healthy"
    except SQLAlchemyError:
        logger.exception("Database health check failed")
        db_status = "unhealthy"

    return {
        "status": "healthy" if db_status == "healthy" else "degraded",
        "service": "general-ledger",
        "version": get_settings().APP_VERSION,
        "database": db_status,
    }
