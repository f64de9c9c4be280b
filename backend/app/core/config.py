"""Application configuration.

Environment variables override all defaults. A `backend/.env` file is loaded
for local development; real environment variables always win.
"""

import os
from pathlib import Path
from typing import List

from dotenv import load_dotenv

_BACKEND_DIR = Path(__file__).resolve().parents[2]
load_dotenv(dotenv_path=_BACKEND_DIR / ".env", override=False)


def _split_csv(value: str) -> List[str]:
    return [part.strip() for part in value.split(",") if part.strip()]


class Settings:
    # Database Configuration
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./pharmacy.db")

    ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")
    DEBUG: bool = ENVIRONMENT == "development"
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()

    # CORS: the mobile client is not bound to a browser origin
    CORS_ORIGINS: List[str] = _split_csv(os.getenv("CORS_ORIGINS", "*"))

    # Billing
    INVOICE_PREFIX: str = os.getenv("INVOICE_PREFIX", "INV")
    DEFAULT_GST_RATE: int = int(os.getenv("DEFAULT_GST_RATE", "5"))
    DEFAULT_HSN_CODE: str = os.getenv("DEFAULT_HSN_CODE", "3004")
    ALLOWED_GST_RATES: List[int] = [0, 5, 12, 18]

    # Printed on the invoice PDF
    PHARMACY_NAME: str = os.getenv("PHARMACY_NAME", "Pharmacy")
    PHARMACY_ADDRESS: str = os.getenv("PHARMACY_ADDRESS", "")
    PHARMACY_GSTIN: str = os.getenv("PHARMACY_GSTIN", "")

    # Medicine master search page size
    SEARCH_LIMIT: int = int(os.getenv("SEARCH_LIMIT", "10"))


settings = Settings()
