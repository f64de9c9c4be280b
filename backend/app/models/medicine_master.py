from sqlalchemy import Column, Integer, String, UniqueConstraint
from app.db.base import Base


class MedicineMaster(Base):
    """Read-mostly product catalogue used for search/autocomplete."""
    __tablename__ = "medicine_master"
    __table_args__ = (
        UniqueConstraint("brand_name", "dosage", "form", name="uq_medicine_master_brand_dosage_form"),
    )

    id = Column(Integer, primary_key=True, index=True)
    brand_name = Column(String(255), nullable=False, index=True)
    dosage = Column(String(64), nullable=True)
    form = Column(String(64), nullable=True)
    packing = Column(String(64), nullable=True)
    category = Column(String(128), nullable=True)
