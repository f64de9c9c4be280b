from sqlalchemy import Column, Integer, String, ForeignKey, Numeric, Date, DateTime
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.db.base import Base

VARIANT_FORMS = ("Tablet", "Capsule", "Syrup", "Injection", "Other")


class MedicineVariant(Base):
    """
    A concrete stock batch of a medicine.

    selling_price is tax-inclusive and never above mrp. quantity never goes
    below zero: sales decrement it with a conditional UPDATE (see
    inventory_service.decrement_stock).
    """
    __tablename__ = "medicine_variants"

    id = Column(Integer, primary_key=True, index=True)
    medicine_id = Column(Integer, ForeignKey("medicines.id", ondelete="CASCADE"), nullable=False, index=True)
    brand_name = Column(String(255), nullable=False)
    dosage = Column(String(64), nullable=False)
    form = Column(String(32), nullable=False, default="Tablet")
    packing = Column(String(64), nullable=False)  # e.g. Strip, Bottle, Box
    batch_number = Column(String(64), nullable=False)
    expiry_date = Column(Date, nullable=False)
    purchase_price = Column(Numeric(10, 2), nullable=False)
    mrp = Column(Numeric(10, 2), nullable=False)
    selling_price = Column(Numeric(10, 2), nullable=False)
    quantity = Column(Integer, nullable=False, default=0)
    min_threshold = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    medicine = relationship("Medicine", backref="variants")

    @property
    def is_low_stock(self) -> bool:
        return self.quantity <= self.min_threshold
