"""Invoices: preview, create, history and PDF for the billing screens."""
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from app.api.deps import get_db
from app.core.exceptions import BillingError, BusinessError
from app.schemas.invoice import (
    InvoiceCreate,
    InvoicePreviewRequest,
    InvoicePreviewResponse,
    InvoiceResponse,
    InvoiceSummary,
)
from app.services import invoice_service
from app.services.pdf_service import render_invoice_pdf

router = APIRouter()


@router.post("/preview", response_model=InvoicePreviewResponse)
def preview_invoice(data: InvoicePreviewRequest, db: Session = Depends(get_db)):
    """Same totals as create, without the stock check and without saving."""
    try:
        totals = invoice_service.preview_invoice(db, data.cart_lines(), data.discount_amount)
    except BillingError as e:
        raise BusinessError.from_billing_error(e)
    return InvoicePreviewResponse.from_totals(totals)


@router.get("", response_model=List[InvoiceSummary])
def list_invoices(
    sort: str = Query(invoice_service.SORT_DATE_DESC, description="dateDesc or dateAsc"),
    from_date: Optional[date] = Query(None, alias="fromDate"),
    to_date: Optional[date] = Query(None, alias="toDate"),
    customer_name: Optional[str] = Query(None, alias="customerName"),
    invoice_number: Optional[str] = Query(None, alias="invoiceNumber"),
    db: Session = Depends(get_db),
):
    """Invoice history, newest first unless sort=dateAsc."""
    return invoice_service.list_invoices(
        db,
        sort=sort,
        from_date=from_date,
        to_date=to_date,
        customer_name=customer_name,
        invoice_number=invoice_number,
    )


@router.get("/{invoice_id}", response_model=InvoiceResponse)
def get_invoice(invoice_id: int, db: Session = Depends(get_db)):
    try:
        return invoice_service.get_invoice(db, invoice_id)
    except BillingError as e:
        raise BusinessError.from_billing_error(e)


@router.get("/{invoice_id}/pdf")
def download_invoice_pdf(invoice_id: int, db: Session = Depends(get_db)):
    """Printable tax invoice."""
    try:
        invoice = invoice_service.get_invoice(db, invoice_id)
    except BillingError as e:
        raise BusinessError.from_billing_error(e)
    buffer = render_invoice_pdf(invoice)
    return StreamingResponse(
        buffer,
        media_type="application/pdf",
        headers={"Content-Disposition": f"inline; filename={invoice.invoice_number}.pdf"},
    )


@router.post("", response_model=InvoiceResponse, status_code=status.HTTP_201_CREATED)
def create_invoice(data: InvoiceCreate, db: Session = Depends(get_db)):
    """
    Sell a cart. Stock is checked, the invoice saved, then stock reduced.

    400: bad cart, payment mode, unknown variant or short stock (nothing saved)
    500: stock reduction failed after saving (invoice removed again)
    """
    try:
        return invoice_service.create_invoice(
            db,
            data.cart_lines(),
            payment_mode=data.payment_mode,
            customer_name=data.customer_name,
            doctor_name=data.doctor_name,
            discount_amount=data.discount_amount,
        )
    except BillingError as e:
        raise BusinessError.from_billing_error(e)
    except Exception as e:
        raise BusinessError.server_error(e, detail="Failed to create invoice")
