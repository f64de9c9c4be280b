from datetime import date, datetime
from typing import List, Optional

from pydantic import field_validator

from app.schemas.common import CamelModel, Money


class MedicineCreate(CamelModel):
    name: Optional[str] = None
    category: Optional[str] = None
    hsn_code: Optional[str] = None
    gst_rate: Optional[int] = None


class MedicineResponse(CamelModel):
    id: int
    name: str
    category: Optional[str] = None
    hsn_code: Optional[str] = None
    gst_rate: Optional[int] = None
    created_at: Optional[datetime] = None


class VariantCreate(CamelModel):
    """Receive stock. Only batch number and expiry are needed to top up an existing batch."""
    brand_name: Optional[str] = None
    dosage: Optional[str] = None
    form: Optional[str] = None
    packing: Optional[str] = None
    batch_number: Optional[str] = None
    expiry_date: Optional[date] = None
    purchase_price: Optional[Money] = None
    mrp: Optional[Money] = None
    selling_price: Optional[Money] = None
    quantity: Optional[int] = None
    min_threshold: Optional[int] = None

    @field_validator("expiry_date", mode="before")
    @classmethod
    def expiry_calendar_day(cls, v):
        # Clients send full timestamps; only the calendar day identifies a batch
        if isinstance(v, str) and len(v) > 10:
            return datetime.fromisoformat(v.replace("Z", "+00:00")).date()
        if isinstance(v, datetime):
            return v.date()
        return v


class VariantResponse(CamelModel):
    id: int
    medicine_id: int
    brand_name: str
    dosage: str
    form: str
    packing: str
    batch_number: str
    expiry_date: date
    purchase_price: Money
    mrp: Money
    selling_price: Money
    quantity: int
    min_threshold: int


class VariantUpsertResponse(CamelModel):
    updated: bool
    created: bool
    variant: VariantResponse


class MedicineWithVariants(CamelModel):
    medicine: MedicineResponse
    variants: List[VariantResponse] = []


class QuantityUpdate(CamelModel):
    quantity: int


class LowStockVariant(CamelModel):
    id: int
    brand_name: str
    dosage: str
    form: str
    packing: str
    quantity: int
    min_threshold: int


class MedicineMasterResult(CamelModel):
    id: int
    brand_name: str
    dosage: Optional[str] = None
    form: Optional[str] = None
    packing: Optional[str] = None


class StatsResponse(CamelModel):
    total_medicines: int
    invoices_today: int
    low_stock_count: int
