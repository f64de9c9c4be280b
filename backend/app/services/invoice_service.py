"""
Invoice preview, creation and lookup.

Creating an invoice is a short saga, one commit per step:

1. compute totals with stock validation (no writes on failure)
2. insert the invoice and its numbered items
3. decrement stock line by line with conditional updates
4. raise low-stock alerts (best effort)

If step 3 fails the lines already decremented are put back and the invoice is
deleted. Both compensations are best effort: failures are logged, not retried.
"""
import logging
from datetime import date, datetime, timedelta
from typing import Any, List, Optional, Tuple

from sqlalchemy.orm import Session, selectinload

from app.core.audit import AuditLog
from app.core.exceptions import (
    BillingError,
    InsufficientStockError,
    InvoiceValidationError,
    NotFoundError,
    StockCommitError,
)
from app.models.invoice import Invoice, InvoiceItem, PAYMENT_MODES
from app.models.medicine_variant import MedicineVariant
from app.services.inventory_service import check_low_stock, decrement_stock, increment_stock
from app.services.invoice_numbering import assign_invoice_number, release_invoice_number
from app.services.tax_calculator import CartLine, InvoiceTotals, build_invoice_totals, check_discount

logger = logging.getLogger(__name__)

SORT_DATE_ASC = "dateAsc"
SORT_DATE_DESC = "dateDesc"


def _clean_name(name: Optional[str]) -> Optional[str]:
    name = " ".join((name or "").split())
    return name or None


def _require_items(lines: List[CartLine]) -> None:
    if not lines:
        raise InvoiceValidationError("items array is required")


def preview_invoice(db: Session, lines: List[CartLine], discount_amount: Any = 0) -> InvoiceTotals:
    """Totals for a cart without stock checks or persistence."""
    _require_items(lines)
    return build_invoice_totals(db, lines, discount_amount, validate_stock=False)


def _build_invoice(
    totals: InvoiceTotals,
    payment_mode: str,
    customer_name: Optional[str],
    doctor_name: Optional[str],
    invoice_date: datetime,
) -> Invoice:
    items = [
        InvoiceItem(
            position=position,
            medicine_variant_id=line.variant.variant_id,
            brand_name=line.variant.brand_name,
            dosage=line.variant.dosage,
            batch_number=line.variant.batch_number,
            expiry_date=line.variant.expiry_date,
            hsn_code=line.hsn_code,
            selling_price=line.variant.selling_price,
            quantity=line.quantity,
            line_total=line.line_total,
            discount_amount=line.discount_amount,
            taxable_value=line.taxable_value,
            gst_rate=line.gst_rate,
            cgst_amount=line.cgst_amount,
            sgst_amount=line.sgst_amount,
        )
        for position, line in enumerate(totals.items, start=1)
    ]
    return Invoice(
        invoice_date=invoice_date,
        customer_name=_clean_name(customer_name),
        doctor_name=_clean_name(doctor_name),
        sub_total=totals.sub_total,
        discount_amount=totals.discount_amount,
        taxable_amount=totals.taxable_amount,
        cgst=totals.cgst_total,
        sgst=totals.sgst_total,
        total_amount=totals.total_amount,
        payment_mode=payment_mode,
        items=items,
    )


def _persist(db: Session, invoice: Invoice) -> Invoice:
    # Number first: allocating it may roll the session back on a counter race
    try:
        assign_invoice_number(db, invoice)
        db.add(invoice)
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(invoice)
    return invoice


def _failure_reason(exc: Exception, variant_id: int) -> str:
    if isinstance(exc, NotFoundError):
        return f"Medicine variant {variant_id} not found during stock reduction"
    if isinstance(exc, InsufficientStockError):
        return f"{exc.detail} (stock changed while the invoice was being saved)"
    if isinstance(exc, BillingError):
        return exc.detail
    return "Failed to reduce stock"


def _compensate(
    db: Session,
    invoice_id: int,
    invoice_number: str,
    invoice_date: datetime,
    decremented: List[Tuple[int, int]],
    reason: str,
) -> None:
    """Undo a half-applied sale: restore stock already taken, then drop the invoice."""
    restored = {}
    for variant_id, quantity in reversed(decremented):
        try:
            if increment_stock(db, variant_id, quantity):
                restored[variant_id] = quantity
            else:
                logger.error("Rollback: variant %s vanished, could not restore %s units", variant_id, quantity)
        except Exception:
            logger.exception("Rollback: could not restore %s units to variant %s", quantity, variant_id)

    deleted = False
    try:
        invoice = db.get(Invoice, invoice_id)
        if invoice is not None:
            db.delete(invoice)
            release_invoice_number(db, invoice_number, invoice_date)
            db.commit()
        deleted = True
    except Exception:
        db.rollback()
        logger.exception("Rollback: could not delete invoice %s after stock error", invoice_number)

    AuditLog.log_invoice_rolled_back(invoice_id, invoice_number, reason, restored, deleted=deleted)


def create_invoice(
    db: Session,
    lines: List[CartLine],
    payment_mode: Optional[str],
    customer_name: Optional[str] = None,
    doctor_name: Optional[str] = None,
    discount_amount: Any = 0,
    invoice_date: Optional[datetime] = None,
) -> Invoice:
    """
    Sell a cart: validate, persist the invoice, then take the stock.

    Args:
        lines: cart lines in bill order
        payment_mode: one of Cash, Card, UPI
        invoice_date: defaults to now (local wall clock)

    Raises:
        InvoiceValidationError: nothing was written
        StockCommitError: stock reduction failed; compensation has run
    """
    _require_items(lines)
    if not payment_mode or payment_mode not in PAYMENT_MODES:
        raise InvoiceValidationError("paymentMode must be Cash, Card, or UPI")

    totals = build_invoice_totals(db, lines, discount_amount, validate_stock=True)
    check_discount(totals)

    invoice = _persist(
        db,
        _build_invoice(totals, payment_mode, customer_name, doctor_name, invoice_date or datetime.now()),
    )
    invoice_id, invoice_number, saved_date = invoice.id, invoice.invoice_number, invoice.invoice_date
    logger.info("Invoice %s saved, reducing stock for %d item(s)", invoice_number, len(totals.items))

    decremented: List[Tuple[int, int]] = []
    sold: List[MedicineVariant] = []
    for line in totals.items:
        variant_id = line.variant.variant_id
        try:
            variant = decrement_stock(db, variant_id, line.quantity)
        except Exception as exc:
            reason = _failure_reason(exc, variant_id)
            logger.error("createInvoice stock reduction error for %s: %s", invoice_number, exc)
            _compensate(db, invoice_id, invoice_number, saved_date, decremented, reason)
            raise StockCommitError(reason) from exc
        decremented.append((variant_id, line.quantity))
        sold.append(variant)

    for variant in sold:
        check_low_stock(db, variant)

    invoice = get_invoice(db, invoice_id)
    AuditLog.log_invoice_created(
        invoice.id, invoice.invoice_number, invoice.total_amount, invoice.payment_mode, len(invoice.items)
    )
    return invoice


def list_invoices(
    db: Session,
    sort: str = SORT_DATE_DESC,
    from_date: Optional[date] = None,
    to_date: Optional[date] = None,
    customer_name: Optional[str] = None,
    invoice_number: Optional[str] = None,
) -> List[Invoice]:
    """Invoices filtered by whole-day date range and name/number substrings."""
    q = db.query(Invoice)
    if from_date:
        q = q.filter(Invoice.invoice_date >= datetime.combine(from_date, datetime.min.time()))
    if to_date:
        q = q.filter(Invoice.invoice_date < datetime.combine(to_date + timedelta(days=1), datetime.min.time()))

    customer_name = (customer_name or "").strip()
    if customer_name:
        q = q.filter(Invoice.customer_name.ilike(f"%{customer_name}%"))
    invoice_number = (invoice_number or "").strip()
    if invoice_number:
        q = q.filter(Invoice.invoice_number.ilike(f"%{invoice_number}%"))

    if sort == SORT_DATE_ASC:
        q = q.order_by(Invoice.invoice_date.asc(), Invoice.id.asc())
    else:
        q = q.order_by(Invoice.invoice_date.desc(), Invoice.id.desc())
    return q.all()


def get_invoice(db: Session, invoice_id: int) -> Invoice:
    invoice = (
        db.query(Invoice)
        .options(selectinload(Invoice.items))
        .filter(Invoice.id == invoice_id)
        .first()
    )
    if not invoice:
        raise NotFoundError("Invoice not found")
    return invoice
