"""
Audit logging for stock and billing events.

Every sale, rollback and stock movement is written as one JSON line to the
"audit" logger so it can be shipped separately from application logs.
"""
import logging
import json
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Optional, Dict

# Separate logger for audit events (can be shipped to centralized logging)
audit_logger = logging.getLogger("audit")


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _emit(entry: Dict[str, Any], level: int = logging.INFO) -> None:
    audit_logger.log(level, json.dumps(entry, default=str))


class AuditLog:
    """Central audit logging for billing and inventory events."""

    @staticmethod
    def log_invoice_created(
        invoice_id: int,
        invoice_number: str,
        total_amount: Decimal,
        payment_mode: str,
        item_count: int,
    ):
        """
        Usage:
            AuditLog.log_invoice_created(12, "INV-20250205-0001", Decimal("230.00"), "Cash", 2)
        """
        _emit({
            "timestamp": _now(),
            "event_type": "invoice.created",
            "invoice_id": invoice_id,
            "invoice_number": invoice_number,
            "total_amount": total_amount,
            "payment_mode": payment_mode,
            "item_count": item_count,
        })

    @staticmethod
    def log_invoice_rolled_back(
        invoice_id: int,
        invoice_number: str,
        reason: str,
        restored_variants: Optional[Dict[int, int]] = None,
        deleted: bool = True,
    ):
        """
        A commit failed after the invoice was written.

        `restored_variants` maps variant id -> quantity put back. `deleted`
        is False when the compensating delete itself failed, which leaves an
        orphan invoice that needs manual review.
        """
        _emit({
            "timestamp": _now(),
            "event_severity": "WARNING",
            "event_type": "invoice.rolled_back",
            "invoice_id": invoice_id,
            "invoice_number": invoice_number,
            "reason": reason,
            "restored_variants": restored_variants or {},
            "deleted": deleted,
        }, logging.WARNING)

    @staticmethod
    def log_stock_change(
        action: str,  # "sale", "set", "restock", "restore"
        variant_id: int,
        quantity: int,
        changes: Optional[Dict[str, Any]] = None,
    ):
        """
        Usage:
            AuditLog.log_stock_change("sale", 7, 2, changes={"invoice": "INV-20250205-0001"})
            AuditLog.log_stock_change("set", 7, 40)
        """
        log_entry = {
            "timestamp": _now(),
            "event_type": f"stock.{action}",
            "variant_id": variant_id,
            "quantity": quantity,
        }

        if changes:
            log_entry["changes"] = changes

        _emit(log_entry)

    @staticmethod
    def log_low_stock(variant_id: int, quantity: int, min_threshold: int):
        _emit({
            "timestamp": _now(),
            "event_type": "stock.low",
            "variant_id": variant_id,
            "quantity": quantity,
            "min_threshold": min_threshold,
        }, logging.WARNING)
