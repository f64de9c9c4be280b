from sqlalchemy import Column, Integer, DateTime
from sqlalchemy.sql import func
from app.db.base import Base


class LowStockNotification(Base):
    """Restock alert raised when a variant drops to or below its threshold."""
    __tablename__ = "low_stock_notifications"

    id = Column(Integer, primary_key=True, index=True)
    medicine_variant_id = Column(Integer, nullable=False, index=True)
    quantity = Column(Integer, nullable=False)
    min_threshold = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
