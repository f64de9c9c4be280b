"""
Error types for the billing and stock services, and the HTTP errors they map to.

Services raise BillingError subclasses and never touch HTTP. Routes (and the
application-level handler in main.py) turn them into HTTPException through the
BusinessError factories. Every error reaches the client as {"detail": str}.
"""
from fastapi import HTTPException, status
import logging

logger = logging.getLogger(__name__)


class BillingError(Exception):
    """Base for domain errors carrying a client-safe message."""

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class BadRequestError(BillingError):
    status_code = status.HTTP_400_BAD_REQUEST


class InvoiceValidationError(BadRequestError):
    """Malformed cart, bad payment mode, unknown variant or short stock.

    Raised before any write happens.
    """


class InsufficientStockError(BadRequestError):
    """A conditional stock decrement found less stock than requested."""


class NotFoundError(BillingError):
    status_code = status.HTTP_404_NOT_FOUND


class StockCommitError(BillingError):
    """
    Stock reduction failed after the invoice was persisted.

    By the time this reaches a caller the compensation (stock restore and
    invoice delete) has already been attempted.
    """

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


class BusinessError:
    """Factories for HTTP errors with safe messages."""

    @staticmethod
    def from_billing_error(error: BillingError) -> HTTPException:
        """Map a service-layer error onto its HTTP status."""
        if error.status_code >= 500:
            logger.error(f"Billing failure: {error.detail}")
        else:
            logger.info(f"Rejected request: {error.detail}")
        return HTTPException(status_code=error.status_code, detail=error.detail)

    @staticmethod
    def server_error(original_error: Exception = None, detail: str = None) -> HTTPException:
        """
        Generic 500 - logs the actual error internally, hides it from the client.
        """
        if original_error:
            logger.error(
                f"Internal server error: {type(original_error).__name__}: {str(original_error)}",
                exc_info=original_error,
            )
        else:
            logger.error("Internal server error occurred")

        return HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=detail or "An internal error occurred. Please try again later.",
        )
