"""
Application configuration.

All configuration is loaded from environment variables.
Never hardcode secrets or connection strings in code.
"""

import os
from functools import lru_cache

from dotenv import load_dotenv

# Load .env file into environment variables
load_dotenv()


class Settings:
    """Application settings loaded from environment variables."""

    # Application
    APP_NAME: str = "General Ledger"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = os.getenv("DEBUG", "false").lower() == "true"
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()

    # Server
    HOST: str = os.getenv("HOST", "0.0.0.0")
    PORT: int = int(os.getenv("PORT", "8000"))

    # Database
    DATABASE_URL: str = os.getenv(
        "DATABASE_URL",
        "postgresql://localhost:5432/general_ledger"
    )

    # Ledger
    # Auto-generated entry numbers look like AS-20240131-0001
    ENTRY_NUMBER_PREFIX: str = os.getenv("ENTRY_NUMBER_PREFIX", "AS")
    # Which company_accounting_settings row the services bind to
    COMPANY_SETTINGS_ID: int = int(os.getenv("COMPANY_SETTINGS_ID", "1"))

    # Environment
    ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")


@lru_cache()
def get_settings() -> Settings:
    """
    Return cached settings instance.

    The Settings object is created once and reused for all
    subsequent calls.
    """
    return Settings()
