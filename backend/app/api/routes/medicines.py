"""Medicine master search and low-stock list for the mobile client."""
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.api.deps import get_db
from app.schemas.stock import LowStockVariant, MedicineMasterResult
from app.services import inventory_service

router = APIRouter()


@router.get("/search", response_model=List[MedicineMasterResult])
def search_medicines(q: Optional[str] = Query(None), db: Session = Depends(get_db)):
    """Autocomplete by brand name. Empty query returns an empty list."""
    return inventory_service.search_medicine_master(db, q)


@router.get("/low-stock", response_model=List[LowStockVariant])
def get_low_stock_medicines(db: Session = Depends(get_db)):
    return inventory_service.list_low_stock_variants(db)
