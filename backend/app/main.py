"""
Pharmacy POS Backend: stock, billing and invoice history for the counter app.

ARCHITECTURE:
- Mobile client: inventory lookup, cart, invoice preview/commit, PDF share
- FastAPI Backend: GST totals, stock rules, invoice numbering, persistence
- SQL database (SQLite by default): source of truth for stock and invoices

BILLING MODEL:
- Selling prices are GST-inclusive; tax is backed out per line
- Invoice commit = validate -> save invoice -> reduce stock, with compensation
- Invoices are never edited after creation
"""
import logging
import sys
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api.routes import invoices, medicines, stats, stock
from app.core.config import settings
from app.core.exceptions import BillingError
from app.db.init_db import init_db

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[logging.StreamHandler(sys.stdout)],
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Startup: create database tables.
    """
    logger.info("Initializing database...")
    init_db()
    logger.info("Database initialized (%s)", settings.ENVIRONMENT)
    yield
    logger.info("Shutting down")


app = FastAPI(
    title="Pharmacy POS API",
    description="Stock, GST billing and invoice history for a pharmacy counter.",
    version="0.1.0",
    lifespan=lifespan,
)

# The mobile client is not browser-origin bound; origins come from CORS_ORIGINS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials="*" not in settings.CORS_ORIGINS,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
    max_age=600,
)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Every error body is {"detail": str}, schema errors included, as a 400."""
    first = exc.errors()[0] if exc.errors() else {}
    field = ".".join(str(part) for part in first.get("loc", ())[1:])
    message = first.get("msg", "Invalid request")
    detail = f"{field}: {message}" if field else message
    logger.info(f"Bad request on {request.method} {request.url.path}: {detail}")
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"detail": detail})


@app.exception_handler(BillingError)
async def billing_exception_handler(request: Request, exc: BillingError):
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled error on {request.method} {request.url.path}", exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"},
    )


app.include_router(stock.router, prefix="/api/stock", tags=["stock"])
app.include_router(medicines.router, prefix="/api/medicines", tags=["medicines"])
app.include_router(invoices.router, prefix="/api/invoices", tags=["invoices"])
app.include_router(stats.router, prefix="/api/stats", tags=["stats"])


@app.get("/health")
def health():
    return {"status": "ok"}
