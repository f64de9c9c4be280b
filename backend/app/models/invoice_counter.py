from sqlalchemy import Column, Integer, Date
from app.db.base import Base


class InvoiceCounter(Base):
    """Last invoice sequence number issued per calendar day."""
    __tablename__ = "invoice_counters"

    id = Column(Integer, primary_key=True, index=True)
    day = Column(Date, unique=True, nullable=False)
    last_value = Column(Integer, nullable=False, default=0)

    def __repr__(self):
        return f"<InvoiceCounter day={self.day} last_value={self.last_value}>"
