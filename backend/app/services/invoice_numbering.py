"""
Invoice numbers: INV-YYYYMMDD-NNNN, sequential per calendar day.

The sequence lives in one invoice_counters row per day and is advanced with a
single UPDATE ... SET last_value = last_value + 1, so two requests can never
read the same value. The unique index on invoices.invoice_number stays as the
backstop. The counter is advanced inside the caller's transaction, so the
number is only burned if the invoice insert commits with it.
"""
import logging
from datetime import date, datetime, time, timedelta
from typing import Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.models.invoice import Invoice
from app.models.invoice_counter import InvoiceCounter

logger = logging.getLogger(__name__)

# Retries when another request creates the day's counter row first
_MAX_SEED_ATTEMPTS = 3


def format_invoice_number(day: date, sequence: int, prefix: Optional[str] = None) -> str:
    return f"{prefix or settings.INVOICE_PREFIX}-{day:%Y%m%d}-{sequence:04d}"


def parse_sequence(invoice_number: str, day: date, prefix: Optional[str] = None) -> Optional[int]:
    """Sequence part of a number issued for `day`, or None for foreign numbers."""
    head = f"{prefix or settings.INVOICE_PREFIX}-{day:%Y%m%d}-"
    if not invoice_number or not invoice_number.startswith(head):
        return None
    tail = invoice_number[len(head):]
    return int(tail) if tail.isdigit() else None


def day_bounds(day: date):
    """[start, end) of a calendar day as naive datetimes."""
    start = datetime.combine(day, time.min)
    return start, start + timedelta(days=1)


def count_invoices_on(db: Session, day: date) -> int:
    start, end = day_bounds(day)
    return (
        db.query(func.count(Invoice.id))
        .filter(Invoice.invoice_date >= start, Invoice.invoice_date < end)
        .scalar()
        or 0
    )


def _increment(db: Session, day: date) -> Optional[int]:
    updated = (
        db.query(InvoiceCounter)
        .filter(InvoiceCounter.day == day)
        .update({InvoiceCounter.last_value: InvoiceCounter.last_value + 1}, synchronize_session=False)
    )
    if not updated:
        return None
    return db.query(InvoiceCounter.last_value).filter(InvoiceCounter.day == day).scalar()


def next_sequence(db: Session, day: date) -> int:
    """
    Advance and return the day's sequence. Does not commit.

    A day without a counter row is seeded from the invoices already dated that
    day, so databases filled before the counter existed keep counting on.
    """
    for attempt in range(_MAX_SEED_ATTEMPTS):
        value = _increment(db, day)
        if value is not None:
            return value

        seeded = count_invoices_on(db, day) + 1
        db.add(InvoiceCounter(day=day, last_value=seeded))
        try:
            db.flush()
            return seeded
        except IntegrityError:
            # Another request seeded this day between our UPDATE and INSERT
            db.rollback()
            logger.info("Invoice counter for %s created concurrently, retrying (attempt %d)", day, attempt + 1)

    raise RuntimeError(f"Could not allocate an invoice number for {day}")


def assign_invoice_number(db: Session, invoice: Invoice) -> str:
    """Give `invoice` a number unless the caller already set one."""
    if not invoice.invoice_number:
        day = invoice.invoice_date.date()
        invoice.invoice_number = format_invoice_number(day, next_sequence(db, day))
    return invoice.invoice_number


def release_invoice_number(db: Session, invoice_number: str, invoice_date: datetime) -> bool:
    """
    Hand back the number of an invoice that is being deleted by a rollback.

    Only the newest number of the day can be returned; if a later invoice has
    already been numbered the counter is left alone and the gap stays.
    Does not commit.
    """
    day = invoice_date.date()
    sequence = parse_sequence(invoice_number, day)
    if sequence is None:
        return False
    released = (
        db.query(InvoiceCounter)
        .filter(InvoiceCounter.day == day, InvoiceCounter.last_value == sequence)
        .update({InvoiceCounter.last_value: InvoiceCounter.last_value - 1}, synchronize_session=False)
    )
    return bool(released)
