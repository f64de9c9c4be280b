from app.models.medicine import Medicine
from app.models.medicine_variant import MedicineVariant
from app.models.medicine_master import MedicineMaster
from app.models.invoice import Invoice, InvoiceItem
from app.models.invoice_counter import InvoiceCounter
from app.models.low_stock_notification import LowStockNotification

__all__ = [
    "Medicine",
    "MedicineVariant",
    "MedicineMaster",
    "Invoice",
    "InvoiceItem",
    "InvoiceCounter",
    "LowStockNotification",
]
