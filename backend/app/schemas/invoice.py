from datetime import date, datetime
from typing import Any, List, Optional

from app.schemas.common import CamelModel, Money
from app.services.tax_calculator import CartLine, InvoiceTotals


class CartItem(CamelModel):
    # Presence and positivity are checked by the tax calculator so the
    # client gets its message instead of a schema error.
    medicine_variant_id: Optional[int] = None
    quantity: Optional[int] = None

    def to_line(self) -> CartLine:
        return CartLine(medicine_variant_id=self.medicine_variant_id, quantity=self.quantity)


class InvoicePreviewRequest(CamelModel):
    items: Optional[List[CartItem]] = None
    discount_amount: Any = 0  # coerced to a non-negative amount, junk becomes 0

    def cart_lines(self) -> List[CartLine]:
        return [item.to_line() for item in self.items or []]


class InvoiceCreate(InvoicePreviewRequest):
    customer_name: Optional[str] = None
    doctor_name: Optional[str] = None
    payment_mode: Optional[str] = None  # Cash | Card | UPI


class InvoiceItemResponse(CamelModel):
    medicine_variant_id: int
    brand_name: str
    hsn_code: str
    dosage: str
    batch_number: str
    expiry_date: date
    selling_price: Money
    quantity: int
    line_total: Money
    discount_amount: Money
    taxable_value: Money
    gst_rate: int
    cgst_amount: Money
    sgst_amount: Money


class InvoiceResponse(CamelModel):
    id: int
    invoice_number: str
    invoice_date: datetime
    customer_name: Optional[str] = None
    doctor_name: Optional[str] = None
    items: List[InvoiceItemResponse] = []
    sub_total: Money
    discount_amount: Money
    taxable_amount: Money
    cgst: Money
    sgst: Money
    total_amount: Money
    payment_mode: str
    created_at: Optional[datetime] = None


class InvoiceSummary(CamelModel):
    id: int
    invoice_number: str
    invoice_date: datetime
    customer_name: Optional[str] = None
    total_amount: Money
    payment_mode: str


class PreviewItem(CamelModel):
    medicine_variant_id: int
    brand_name: str
    dosage: str
    hsn_code: str
    quantity: int
    selling_price: Money
    line_total: Money
    discount_amount: Money
    taxable_value: Money
    gst_rate: int
    cgst_amount: Money
    sgst_amount: Money


class InvoicePreviewResponse(CamelModel):
    sub_total: Money
    discount_amount: Money
    taxable_amount: Money
    cgst: Money
    sgst: Money
    total_amount: Money
    items: List[PreviewItem] = []

    @classmethod
    def from_totals(cls, totals: InvoiceTotals) -> "InvoicePreviewResponse":
        return cls(
            sub_total=totals.sub_total,
            discount_amount=totals.discount_amount,
            taxable_amount=totals.taxable_amount,
            cgst=totals.cgst_total,
            sgst=totals.sgst_total,
            total_amount=totals.total_amount,
            items=[
                PreviewItem(
                    medicine_variant_id=it.variant.variant_id,
                    brand_name=it.variant.brand_name,
                    dosage=it.variant.dosage,
                    hsn_code=it.hsn_code,
                    quantity=it.quantity,
                    selling_price=it.variant.selling_price,
                    line_total=it.line_total,
                    discount_amount=it.discount_amount,
                    taxable_value=it.taxable_value,
                    gst_rate=it.gst_rate,
                    cgst_amount=it.cgst_amount,
                    sgst_amount=it.sgst_amount,
                )
                for it in totals.items
            ],
        )
