"""Stock reads and writes. Used by the stock routes and by invoice commits."""
import logging
from datetime import date
from decimal import Decimal
from typing import List, Optional, Tuple

from sqlalchemy.orm import Session

from app.core.audit import AuditLog
from app.core.config import settings
from app.core.exceptions import BadRequestError, InsufficientStockError, NotFoundError
from app.models.low_stock_notification import LowStockNotification
from app.models.medicine import Medicine
from app.models.medicine_master import MedicineMaster
from app.models.medicine_variant import MedicineVariant, VARIANT_FORMS
from app.schemas.stock import MedicineCreate, VariantCreate

logger = logging.getLogger(__name__)


def get_variant(db: Session, variant_id: int) -> MedicineVariant:
    variant = db.get(MedicineVariant, variant_id)
    if variant is None:
        raise NotFoundError("Variant not found")
    return variant


def check_low_stock(db: Session, variant: MedicineVariant) -> Optional[LowStockNotification]:
    """
    Record a restock alert when the variant is at or below its threshold.

    Never raises: a failed alert must not undo the stock change that caused it.
    """
    if variant is None or not variant.is_low_stock:
        return None
    try:
        notification = LowStockNotification(
            medicine_variant_id=variant.id,
            quantity=variant.quantity,
            min_threshold=variant.min_threshold,
        )
        db.add(notification)
        db.commit()
        AuditLog.log_low_stock(variant.id, notification.quantity, notification.min_threshold)
        return notification
    except Exception:
        db.rollback()
        logger.exception("Low stock notification error for variant %s", variant.id)
        return None


def decrement_stock(db: Session, variant_id: int, quantity: int) -> MedicineVariant:
    """
    Take `quantity` out of stock in one conditional UPDATE and commit.

    The WHERE clause only matches while enough stock remains, so concurrent
    sales can never drive the quantity below zero.

    Raises:
        NotFoundError: the variant does not exist
        InsufficientStockError: the variant holds less than `quantity`
    """
    try:
        updated = (
            db.query(MedicineVariant)
            .filter(MedicineVariant.id == variant_id, MedicineVariant.quantity >= quantity)
            .update({MedicineVariant.quantity: MedicineVariant.quantity - quantity}, synchronize_session=False)
        )
        db.commit()
    except Exception:
        db.rollback()
        raise

    variant = db.get(MedicineVariant, variant_id)
    if variant is None:
        raise NotFoundError(f"Medicine variant {variant_id} not found")
    if not updated:
        raise InsufficientStockError(
            f"Insufficient stock for {variant.brand_name} {variant.dosage}. "
            f"Available: {variant.quantity}, Requested: {quantity}"
        )
    AuditLog.log_stock_change("sale", variant_id, quantity, changes={"remaining": variant.quantity})
    return variant


def increment_stock(db: Session, variant_id: int, quantity: int) -> bool:
    """Put `quantity` back. Returns False if the variant no longer exists."""
    try:
        updated = (
            db.query(MedicineVariant)
            .filter(MedicineVariant.id == variant_id)
            .update({MedicineVariant.quantity: MedicineVariant.quantity + quantity}, synchronize_session=False)
        )
        db.commit()
    except Exception:
        db.rollback()
        raise
    if updated:
        AuditLog.log_stock_change("restore", variant_id, quantity)
    return bool(updated)


def set_quantity(db: Session, variant_id: int, quantity: int) -> MedicineVariant:
    """Overwrite the stock count (manual stock take). Last write wins."""
    if quantity < 0:
        raise BadRequestError("quantity must be a number >= 0")
    variant = get_variant(db, variant_id)
    variant.quantity = quantity
    db.commit()
    db.refresh(variant)
    AuditLog.log_stock_change("set", variant.id, quantity)
    check_low_stock(db, variant)
    return variant


def reduce_stock_on_sale(db: Session, variant_id: int, quantity: int) -> MedicineVariant:
    """Sell from a single variant outside of an invoice."""
    if quantity <= 0:
        raise BadRequestError("quantity must be a positive number")
    get_variant(db, variant_id)
    try:
        variant = decrement_stock(db, variant_id, quantity)
    except InsufficientStockError:
        raise InsufficientStockError("Insufficient stock for this sale") from None
    except NotFoundError:
        raise NotFoundError("Variant not found") from None
    check_low_stock(db, variant)
    return variant


def add_or_get_medicine(db: Session, data: MedicineCreate) -> Medicine:
    """Create a generic medicine unless one with this exact name exists."""
    name = (data.name or "").strip()
    if not name:
        raise BadRequestError("Medicine name is required")
    if data.gst_rate is not None and data.gst_rate not in settings.ALLOWED_GST_RATES:
        allowed = ", ".join(str(rate) for rate in settings.ALLOWED_GST_RATES)
        raise BadRequestError(f"gstRate must be one of {allowed}")

    medicine = db.query(Medicine).filter(Medicine.name == name).first()
    if medicine:
        return medicine

    medicine = Medicine(
        name=name,
        category=(data.category or "").strip() or None,
        hsn_code=(data.hsn_code or "").strip() or settings.DEFAULT_HSN_CODE,
        gst_rate=settings.DEFAULT_GST_RATE if data.gst_rate is None else data.gst_rate,
    )
    db.add(medicine)
    db.commit()
    db.refresh(medicine)
    return medicine


def _find_batch(db: Session, medicine_id: int, batch_number: str, expiry: date) -> Optional[MedicineVariant]:
    return (
        db.query(MedicineVariant)
        .filter(
            MedicineVariant.medicine_id == medicine_id,
            MedicineVariant.batch_number == batch_number,
            MedicineVariant.expiry_date == expiry,
        )
        .first()
    )


def _check_price_cap(selling_price: Decimal, mrp: Decimal) -> None:
    if selling_price > mrp:
        raise BadRequestError(f"Selling price ({selling_price}) cannot be greater than MRP ({mrp})")


def add_variant(db: Session, medicine_id: int, data: VariantCreate) -> Tuple[MedicineVariant, bool]:
    """
    Receive stock for a medicine.

    A batch is identified by medicine + batch number + expiry day. Receiving
    an existing batch adds to its quantity and refreshes any prices given;
    otherwise a new variant is created.

    Returns:
        (variant, updated) where updated is True when an existing batch was merged
    """
    medicine = db.get(Medicine, medicine_id)
    if medicine is None:
        raise NotFoundError("Medicine not found")

    batch_number = (data.batch_number or "").strip()
    if not batch_number or data.expiry_date is None:
        raise BadRequestError("batchNumber and expiryDate are required")

    variant = _find_batch(db, medicine.id, batch_number, data.expiry_date)
    if variant:
        if data.quantity is not None and data.quantity > 0:
            variant.quantity += data.quantity
        if data.purchase_price is not None and data.purchase_price >= 0:
            variant.purchase_price = data.purchase_price
        if data.mrp is not None and data.mrp >= 0:
            variant.mrp = data.mrp
        if data.selling_price is not None and data.selling_price >= 0:
            variant.selling_price = data.selling_price
        if data.min_threshold is not None:
            variant.min_threshold = max(0, data.min_threshold)

        try:
            _check_price_cap(Decimal(str(variant.selling_price)), Decimal(str(variant.mrp)))
        except BadRequestError:
            db.rollback()
            raise
        db.commit()
        db.refresh(variant)
        AuditLog.log_stock_change("restock", variant.id, data.quantity or 0, changes={"batch": batch_number})
        check_low_stock(db, variant)
        return variant, True

    if not all((value or "").strip() for value in (data.brand_name, data.dosage, data.form, data.packing)):
        raise BadRequestError("brandName, dosage, form, packing are required for new stock")
    if data.form not in VARIANT_FORMS:
        raise BadRequestError(f"form must be one of {', '.join(VARIANT_FORMS)}")

    numbers = (data.purchase_price, data.mrp, data.selling_price, data.quantity)
    if any(value is None or value < 0 for value in numbers):
        raise BadRequestError("purchasePrice, mrp, sellingPrice, and quantity must be numbers >= 0")
    _check_price_cap(data.selling_price, data.mrp)

    variant = MedicineVariant(
        medicine_id=medicine.id,
        brand_name=data.brand_name.strip(),
        dosage=data.dosage.strip(),
        form=data.form,
        packing=data.packing.strip(),
        batch_number=batch_number,
        expiry_date=data.expiry_date,
        purchase_price=data.purchase_price,
        mrp=data.mrp,
        selling_price=data.selling_price,
        quantity=data.quantity,
        min_threshold=max(0, data.min_threshold or 0),
    )
    db.add(variant)
    db.commit()
    db.refresh(variant)
    AuditLog.log_stock_change("restock", variant.id, variant.quantity, changes={"batch": batch_number, "new": True})
    check_low_stock(db, variant)
    return variant, False


def list_medicines_with_variants(db: Session) -> List[Tuple[Medicine, List[MedicineVariant]]]:
    medicines = db.query(Medicine).order_by(Medicine.name).all()
    variants = db.query(MedicineVariant).order_by(MedicineVariant.expiry_date).all()

    by_medicine = {}
    for variant in variants:
        by_medicine.setdefault(variant.medicine_id, []).append(variant)
    return [(medicine, by_medicine.get(medicine.id, [])) for medicine in medicines]


def list_low_stock_variants(db: Session) -> List[MedicineVariant]:
    return (
        db.query(MedicineVariant)
        .filter(MedicineVariant.quantity <= MedicineVariant.min_threshold)
        .order_by(MedicineVariant.quantity.asc(), MedicineVariant.id.asc())
        .all()
    )


def search_medicine_master(db: Session, q: Optional[str], limit: Optional[int] = None) -> List[MedicineMaster]:
    """Case-insensitive partial match on brand name. Empty query -> []."""
    term = (q or "").strip()
    if not term:
        return []
    return (
        db.query(MedicineMaster)
        .filter(MedicineMaster.brand_name.ilike(f"%{term}%"))
        .order_by(MedicineMaster.brand_name)
        .limit(limit or settings.SEARCH_LIMIT)
        .all()
    )
