"""Stock: medicines, their batches (variants) and quantity changes."""
from typing import List

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from app.api.deps import get_db
from app.core.exceptions import BillingError, BusinessError
from app.schemas.stock import (
    MedicineCreate,
    MedicineResponse,
    MedicineWithVariants,
    QuantityUpdate,
    VariantCreate,
    VariantResponse,
    VariantUpsertResponse,
)
from app.services import inventory_service

router = APIRouter()


@router.post("/medicines", response_model=MedicineResponse, status_code=status.HTTP_201_CREATED)
def add_or_get_medicine(data: MedicineCreate, db: Session = Depends(get_db)):
    """Create a generic medicine, or return the one with the same name."""
    try:
        return inventory_service.add_or_get_medicine(db, data)
    except BillingError as e:
        raise BusinessError.from_billing_error(e)


@router.post("/medicines/{medicine_id}/variants", response_model=VariantUpsertResponse)
def add_medicine_variant(
    medicine_id: int,
    data: VariantCreate,
    response: Response,
    db: Session = Depends(get_db),
):
    """Receive stock. 201 for a new batch, 200 when an existing batch was topped up."""
    try:
        variant, updated = inventory_service.add_variant(db, medicine_id, data)
    except BillingError as e:
        raise BusinessError.from_billing_error(e)
    response.status_code = status.HTTP_200_OK if updated else status.HTTP_201_CREATED
    return VariantUpsertResponse(
        updated=updated,
        created=not updated,
        variant=VariantResponse.model_validate(variant),
    )


@router.get("/medicines-with-variants", response_model=List[MedicineWithVariants])
def get_medicines_with_variants(db: Session = Depends(get_db)):
    return [
        MedicineWithVariants(
            medicine=MedicineResponse.model_validate(medicine),
            variants=[VariantResponse.model_validate(v) for v in variants],
        )
        for medicine, variants in inventory_service.list_medicines_with_variants(db)
    ]


@router.patch("/variants/{variant_id}/quantity", response_model=VariantResponse)
def update_stock_quantity(variant_id: int, data: QuantityUpdate, db: Session = Depends(get_db)):
    """Set the absolute quantity (stock take)."""
    try:
        return inventory_service.set_quantity(db, variant_id, data.quantity)
    except BillingError as e:
        raise BusinessError.from_billing_error(e)


@router.post("/variants/{variant_id}/reduce", response_model=VariantResponse)
def reduce_stock_on_sale(variant_id: int, data: QuantityUpdate, db: Session = Depends(get_db)):
    """Reduce quantity for a counter sale made outside an invoice."""
    try:
        return inventory_service.reduce_stock_on_sale(db, variant_id, data.quantity)
    except BillingError as e:
        raise BusinessError.from_billing_error(e)
