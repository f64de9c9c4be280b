"""Dashboard counters."""
from datetime import date

from fastapi import APIRouter, Depends
from sqlalchemy import func
from sqlalchemy.orm import Session

from app.api.deps import get_db
from app.models.medicine import Medicine
from app.models.medicine_variant import MedicineVariant
from app.schemas.stock import StatsResponse
from app.services.invoice_numbering import count_invoices_on

router = APIRouter()


@router.get("", response_model=StatsResponse)
def get_stats(db: Session = Depends(get_db)):
    """Total medicines, invoices dated today, variants at or below threshold."""
    total_medicines = db.query(func.count(Medicine.id)).scalar() or 0
    low_stock_count = db.query(func.count(MedicineVariant.id)).filter(
        MedicineVariant.quantity <= MedicineVariant.min_threshold
    ).scalar() or 0
    return StatsResponse(
        total_medicines=total_medicines,
        invoices_today=count_invoices_on(db, date.today()),
        low_stock_count=low_stock_count,
    )
