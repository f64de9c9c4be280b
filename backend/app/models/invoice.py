from sqlalchemy import Column, Integer, String, ForeignKey, Numeric, DateTime, Date
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.db.base import Base

PAYMENT_MODES = ("Cash", "Card", "UPI")


class Invoice(Base):
    """
    A completed sale. Written once by invoice_service.create_invoice and never
    updated; only deleted when the commit has to be compensated.
    """
    __tablename__ = "invoices"

    id = Column(Integer, primary_key=True, index=True)
    invoice_number = Column(String(32), unique=True, nullable=False, index=True)
    invoice_date = Column(DateTime, nullable=False, index=True)  # pharmacy wall-clock time
    customer_name = Column(String(255), nullable=True)
    doctor_name = Column(String(255), nullable=True)
    sub_total = Column(Numeric(12, 2), nullable=False)  # tax-inclusive, before discount
    discount_amount = Column(Numeric(12, 2), nullable=False, default=0)
    taxable_amount = Column(Numeric(12, 2), nullable=False)
    cgst = Column(Numeric(12, 2), nullable=False)
    sgst = Column(Numeric(12, 2), nullable=False)
    total_amount = Column(Numeric(12, 2), nullable=False)  # sub_total - discount
    payment_mode = Column(String(16), nullable=False)  # Cash | Card | UPI
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    items = relationship(
        "InvoiceItem",
        back_populates="invoice",
        cascade="all, delete-orphan",
        order_by="InvoiceItem.position",
    )


class InvoiceItem(Base):
    """
    Snapshot of a stock variant at sale time plus its tax breakdown.

    medicine_variant_id is deliberately not a foreign key: the variant may be
    depleted or deleted later without touching the invoice.
    """
    __tablename__ = "invoice_items"

    id = Column(Integer, primary_key=True, index=True)
    invoice_id = Column(Integer, ForeignKey("invoices.id", ondelete="CASCADE"), nullable=False, index=True)
    position = Column(Integer, nullable=False)
    medicine_variant_id = Column(Integer, nullable=False)
    brand_name = Column(String(255), nullable=False)
    dosage = Column(String(64), nullable=False)
    batch_number = Column(String(64), nullable=False)
    expiry_date = Column(Date, nullable=False)
    hsn_code = Column(String(16), nullable=False, default="3004")
    selling_price = Column(Numeric(10, 2), nullable=False)
    quantity = Column(Integer, nullable=False)
    line_total = Column(Numeric(12, 2), nullable=False)
    discount_amount = Column(Numeric(12, 2), nullable=False, default=0)
    taxable_value = Column(Numeric(12, 2), nullable=False)
    gst_rate = Column(Integer, nullable=False)
    cgst_amount = Column(Numeric(12, 2), nullable=False)
    sgst_amount = Column(Numeric(12, 2), nullable=False)

    invoice = relationship("Invoice", back_populates="items")
