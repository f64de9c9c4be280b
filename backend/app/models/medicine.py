from sqlalchemy import Column, Integer, String, DateTime
from sqlalchemy.sql import func
from app.db.base import Base


class Medicine(Base):
    """
    Generic medicine (salt/composition level).

    Carries the tax classification for all of its stock variants.
    """
    __tablename__ = "medicines"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False, index=True)
    category = Column(String(128), nullable=True)
    hsn_code = Column(String(16), nullable=True, default="3004")
    gst_rate = Column(Integer, nullable=True, default=5)  # percent: 0, 5, 12 or 18
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
