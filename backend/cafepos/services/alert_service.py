# Overview: Stateless inventory alerts for low stock and upcoming expiry.

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta

from ..time_utils import utcnow

ALERT_OUT_OF_STOCK = "OUT_OF_STOCK"
ALERT_LOW_STOCK = "LOW_STOCK"
ALERT_EXPIRING = "EXPIRING"

SEVERITY_CRITICAL = "CRITICAL"
SEVERITY_HIGH = "HIGH"
SEVERITY_MEDIUM = "MEDIUM"
SEVERITY_LOW = "LOW"

_SEVERITY_RANK = {SEVERITY_CRITICAL: 0, SEVERITY_HIGH: 1, SEVERITY_MEDIUM: 2, SEVERITY_LOW: 3}


@dataclass(frozen=True)
class InventoryAlert:
    inventory_item_id: int
    product_id: int
    product_name: str | None
    alert_type: str
    severity: str
    message: str

    def to_dict(self) -> dict:
        return {
            "inventory_item_id": self.inventory_item_id,
            "product_id": self.product_id,
            "product_name": self.product_name,
            "type": self.alert_type,
            "severity": self.severity,
            "message": self.message,
        }


def stock_severity(quantity: int, minimum_quantity: int) -> tuple[str, str]:
    """(type, severity) for an item at or below its minimum."""
    if quantity == 0:
        return ALERT_OUT_OF_STOCK, SEVERITY_CRITICAL
    pct = quantity * 100.0 / minimum_quantity
    if pct <= 25:
        return ALERT_LOW_STOCK, SEVERITY_HIGH
    if pct <= 50:
        return ALERT_LOW_STOCK, SEVERITY_MEDIUM
    return ALERT_LOW_STOCK, SEVERITY_LOW


def expiry_severity(days_left: int) -> str:
    if days_left <= 2:
        return SEVERITY_CRITICAL
    if days_left <= 4:
        return SEVERITY_HIGH
    return SEVERITY_MEDIUM


def _name(item) -> str | None:
    return item.product.name if item.product else None


class InventoryAlertService:
    def __init__(self, inventory_repo, *, expiry_days: int = 7):
        self.inventory = inventory_repo
        self.expiry_days = expiry_days

    def low_stock_alerts(self) -> list[InventoryAlert]:
        alerts = []
        for item in self.inventory.list_low_stock():
            alert_type, severity = stock_severity(item.quantity, item.minimum_quantity)
            name = _name(item) or "Product"
            if alert_type == ALERT_OUT_OF_STOCK:
                message = f"{name} is out of stock"
            else:
                message = (
                    f"Low stock of {name}: {item.quantity} {item.unit} "
                    f"(minimum {item.minimum_quantity} {item.unit})"
                )
            alerts.append(
                InventoryAlert(
                    inventory_item_id=item.id,
                    product_id=item.product_id,
                    product_name=_name(item),
                    alert_type=alert_type,
                    severity=severity,
                    message=message,
                )
            )
        return alerts

    def expiry_alerts(self, days: int | None = None, today: date | None = None) -> list[InventoryAlert]:
        """Items expiring between today and today + days, inclusive."""
        days = self.expiry_days if days is None else days
        today = today or utcnow().date()
        alerts = []
        for item in self.inventory.list_expiring(today + timedelta(days=days)):
            days_left = (item.expiry_date - today).days
            if days_left < 0:
                continue
            plural = "" if days_left == 1 else "s"
            alerts.append(
                InventoryAlert(
                    inventory_item_id=item.id,
                    product_id=item.product_id,
                    product_name=_name(item),
                    alert_type=ALERT_EXPIRING,
                    severity=expiry_severity(days_left),
                    message=f"{_name(item) or 'Product'} expires in {days_left} day{plural} ({item.quantity} {item.unit})",
                )
            )
        return alerts

    def check_alerts(self, days: int | None = None, today: date | None = None) -> list[InventoryAlert]:
        """All current alerts, most severe first."""
        alerts = self.low_stock_alerts() + self.expiry_alerts(days=days, today=today)
        return sorted(alerts, key=lambda a: (_SEVERITY_RANK[a.severity], a.inventory_item_id))
