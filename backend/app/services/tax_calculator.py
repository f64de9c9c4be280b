"""
Invoice totals: discount apportionment and GST reverse calculation.

Selling prices are GST-inclusive, so the taxable base is backed out of each
line after its share of the bill discount is removed:

    line_total    = round2(selling_price * quantity)
    line_discount = round2(line_total / sub_total * discount)
    net           = line_total - line_discount
    taxable_value = round2(net / (1 + gst_rate / 100))
    total_tax     = round2(net - taxable_value)
    cgst = sgst   = round2(total_tax / 2)

Every step is rounded on its own (half-up, to the paisa) and the aggregates
are sums of already-rounded line values. cgst + sgst may differ from
total_tax by one paisa; that residue is kept, not corrected.

The grand total is always round2(sub_total - discount). The tax fields are a
decomposition of that amount, never added back on top of it.
"""
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy.orm import Session, joinedload

from app.core.config import settings
from app.core.exceptions import InvoiceValidationError
from app.models.medicine_variant import MedicineVariant

TWO_PLACES = Decimal("0.01")
ZERO = Decimal("0")
HUNDRED = Decimal("100")


def round2(value) -> Decimal:
    """Round half-up to two decimal places (2.465 -> 2.47)."""
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def coerce_discount(value: Any) -> Decimal:
    """Bill discount as a non-negative amount. Anything unusable becomes 0."""
    if value is None or isinstance(value, bool):
        return ZERO
    try:
        amount = Decimal(str(value).strip() or "0")
    except (InvalidOperation, ValueError):
        return ZERO
    if not amount.is_finite() or amount < 0:
        return ZERO
    return round2(amount)


@dataclass(frozen=True)
class CartLine:
    medicine_variant_id: Optional[int]
    quantity: Optional[int]


@dataclass(frozen=True)
class VariantSnapshot:
    """The parts of a stock variant that billing needs, read at one instant."""

    variant_id: int
    brand_name: str
    dosage: str
    batch_number: str
    expiry_date: date
    selling_price: Decimal
    available_quantity: int
    gst_rate: int
    hsn_code: str

    @classmethod
    def from_model(cls, variant: MedicineVariant) -> "VariantSnapshot":
        medicine = variant.medicine
        gst_rate = medicine.gst_rate if medicine is not None and medicine.gst_rate is not None else None
        hsn_code = medicine.hsn_code if medicine is not None else None
        return cls(
            variant_id=variant.id,
            brand_name=variant.brand_name,
            dosage=variant.dosage,
            batch_number=variant.batch_number,
            expiry_date=variant.expiry_date,
            selling_price=Decimal(str(variant.selling_price)),
            available_quantity=variant.quantity,
            gst_rate=settings.DEFAULT_GST_RATE if gst_rate is None else int(gst_rate),
            hsn_code=hsn_code or settings.DEFAULT_HSN_CODE,
        )


@dataclass
class LineBreakdown:
    variant: VariantSnapshot
    quantity: int
    line_total: Decimal
    discount_amount: Decimal = ZERO
    taxable_value: Decimal = ZERO
    cgst_amount: Decimal = ZERO
    sgst_amount: Decimal = ZERO

    @property
    def gst_rate(self) -> int:
        return self.variant.gst_rate

    @property
    def hsn_code(self) -> str:
        return self.variant.hsn_code


@dataclass
class InvoiceTotals:
    items: List[LineBreakdown] = field(default_factory=list)
    sub_total: Decimal = ZERO
    discount_amount: Decimal = ZERO
    taxable_amount: Decimal = ZERO
    cgst_total: Decimal = ZERO
    sgst_total: Decimal = ZERO
    total_amount: Decimal = ZERO


def _check_line(line: CartLine) -> None:
    if not line.medicine_variant_id or not line.quantity or line.quantity <= 0:
        raise InvoiceValidationError("Each item must have medicineVariantId and quantity > 0")


def check_stock(line: CartLine, variant: VariantSnapshot) -> None:
    """Reject a line asking for more than the variant currently holds."""
    if variant.available_quantity < line.quantity:
        raise InvoiceValidationError(
            f"Insufficient stock for {variant.brand_name} {variant.dosage}. "
            f"Available: {variant.available_quantity}, Requested: {line.quantity}"
        )


def _apportion(item: LineBreakdown, sub_total: Decimal, discount: Decimal) -> None:
    item.discount_amount = round2(item.line_total / sub_total * discount) if sub_total > 0 else ZERO
    net = item.line_total - item.discount_amount
    item.taxable_value = round2(net / (1 + Decimal(item.gst_rate) / HUNDRED))
    total_tax = round2(net - item.taxable_value)
    item.cgst_amount = round2(total_tax / 2)
    item.sgst_amount = round2(total_tax / 2)


def compute_totals(
    lines: Iterable[CartLine],
    variants: Dict[int, VariantSnapshot],
    discount: Any = 0,
    validate_stock: bool = False,
) -> InvoiceTotals:
    """
    Pure totals computation over already-resolved variants.

    Args:
        lines: cart lines in bill order
        variants: variant id -> snapshot, must cover every line
        discount: flat bill discount, coerced with coerce_discount
        validate_stock: reject lines asking for more than available

    Raises:
        InvoiceValidationError: bad line, unknown variant or short stock
    """
    parsed_discount = coerce_discount(discount)
    totals = InvoiceTotals(discount_amount=parsed_discount)

    for line in lines:
        _check_line(line)
        variant = variants.get(line.medicine_variant_id)
        if variant is None:
            raise InvoiceValidationError(f"Medicine variant {line.medicine_variant_id} not found")
        if validate_stock:
            check_stock(line, variant)

        line_total = round2(variant.selling_price * line.quantity)
        totals.sub_total += line_total
        totals.items.append(LineBreakdown(variant=variant, quantity=line.quantity, line_total=line_total))

    for item in totals.items:
        _apportion(item, totals.sub_total, parsed_discount)

    totals.taxable_amount = round2(sum((it.taxable_value for it in totals.items), ZERO))
    totals.cgst_total = round2(sum((it.cgst_amount for it in totals.items), ZERO))
    totals.sgst_total = round2(sum((it.sgst_amount for it in totals.items), ZERO))
    totals.total_amount = round2(totals.sub_total - parsed_discount)
    return totals


def check_discount(totals: InvoiceTotals) -> None:
    """Reject a bill discount larger than the bill. Sales only; previews keep the raw arithmetic."""
    if totals.discount_amount > totals.sub_total:
        raise InvoiceValidationError(
            f"discountAmount ({totals.discount_amount}) cannot exceed subTotal ({totals.sub_total})"
        )


def resolve_variants(db: Session, lines: List[CartLine]) -> Dict[int, VariantSnapshot]:
    """
    Load every referenced variant (with its medicine) in one query.

    Raises InvoiceValidationError when a reference is repeated or when fewer
    variants come back than were asked for.
    """
    variant_ids = [line.medicine_variant_id for line in lines if line.medicine_variant_id]
    seen = set()
    for variant_id in variant_ids:
        if variant_id in seen:
            raise InvoiceValidationError(f"Medicine variant {variant_id} appears more than once in items")
        seen.add(variant_id)

    if not variant_ids:
        return {}

    rows = (
        db.query(MedicineVariant)
        .options(joinedload(MedicineVariant.medicine))
        .filter(MedicineVariant.id.in_(variant_ids))
        .all()
    )
    if len(rows) != len(variant_ids):
        raise InvoiceValidationError("One or more medicine variants not found")
    return {row.id: VariantSnapshot.from_model(row) for row in rows}


def build_invoice_totals(
    db: Session,
    lines: List[CartLine],
    discount: Any = 0,
    validate_stock: bool = True,
) -> InvoiceTotals:
    """Resolve the cart against current stock and compute its totals."""
    for line in lines:
        _check_line(line)
    variants = resolve_variants(db, lines)
    return compute_totals(lines, variants, discount, validate_stock=validate_stock)
