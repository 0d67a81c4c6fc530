# Overview: Service-layer operations for stock; encapsulates quantity changes and their audit trail.

from __future__ import annotations

from dataclasses import dataclass

from flask import current_app

from ..errors import (
    EngineError,
    InsufficientStock,
    InvalidQuantity,
    InventoryItemExists,
    InventoryItemNotFound,
    ProductNotFound,
)
from ..models import InventoryItem, StockMovement
from ..time_utils import utcnow
from .concurrency import run_with_retry
"""
Stock Ledger Invariants (authoritative)

- InventoryItem.quantity is the source of truth; it is never negative.
- Every change appends exactly one StockMovement in the SAME transaction as
  the quantity write. If either fails, both are rolled back.
- IN adds, OUT subtracts (rejecting negative results), ADJUST sets the
  absolute value and records |after - before| as the magnitude.
- The read-compute-write is guarded by a row lock (where supported) and by
  InventoryItem.version_id; a concurrent writer gets StaleDataError and the
  whole operation is retried against fresh rows.
- Movements are append-only (no updates/deletes).
"""

MOVEMENT_IN = "IN"
MOVEMENT_OUT = "OUT"
MOVEMENT_ADJUST = "ADJUST"
MOVEMENT_TYPES = (MOVEMENT_IN, MOVEMENT_OUT, MOVEMENT_ADJUST)


@dataclass(frozen=True)
class StockAdjustment:
    item: InventoryItem
    movement: StockMovement

    def to_dict(self) -> dict:
        return {"item": self.item.to_dict(), "movement": self.movement.to_dict()}


def _validate_quantity(quantity, kind: str) -> int:
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        raise InvalidQuantity("Quantity must be an integer", quantity=quantity)
    if quantity < 0:
        raise InvalidQuantity("Quantity cannot be negative", quantity=quantity)
    if kind in (MOVEMENT_IN, MOVEMENT_OUT) and quantity == 0:
        raise InvalidQuantity(f"{kind} quantity must be positive", quantity=quantity)
    return quantity


class StockLedger:
    """Owns item quantities and the append-only movement log."""

    def __init__(self, session, inventory_repo, catalog_repo):
        self.session = session
        self.inventory = inventory_repo
        self.catalog = catalog_repo

    def _adjust_locked(
        self,
        *,
        item_id: int,
        quantity: int,
        kind: str,
        reason: str | None,
        order_id: int | None,
    ) -> StockAdjustment:
        item = self.inventory.get_item(item_id, lock=True)
        if item is None:
            raise InventoryItemNotFound(item_id)

        before = item.quantity
        if kind == MOVEMENT_IN:
            after = before + quantity
            magnitude = quantity
        elif kind == MOVEMENT_OUT:
            after = before - quantity
            if after < 0:
                product = item.product
                raise InsufficientStock(
                    item.product_id,
                    product.name if product else None,
                    available=before,
                    requested=quantity,
                )
            magnitude = quantity
        else:
            after = quantity
            magnitude = abs(after - before)

        item.quantity = after
        movement = self.inventory.append_movement(
            StockMovement(
                inventory_item_id=item.id,
                movement_type=kind,
                quantity=magnitude,
                quantity_before=before,
                quantity_after=after,
                reason=reason or "Inventory adjustment",
                order_id=order_id,
                occurred_at=utcnow(),
            )
        )
        return StockAdjustment(item=item, movement=movement)

    def adjust(
        self,
        item_id: int,
        quantity: int,
        kind: str,
        reason: str | None = None,
        *,
        order_id: int | None = None,
        commit: bool = True,
    ) -> StockAdjustment:
        """
        Apply one IN/OUT/ADJUST change and record its movement.

        commit=False joins the caller's transaction (used by order delivery);
        the caller then owns retry and rollback.
        """
        if kind not in MOVEMENT_TYPES:
            raise InvalidQuantity(f"Unknown movement type {kind!r}", quantity=quantity)
        quantity = _validate_quantity(quantity, kind)

        if not commit:
            return self._adjust_locked(
                item_id=item_id, quantity=quantity, kind=kind, reason=reason, order_id=order_id,
            )

        def _op():
            try:
                result = self._adjust_locked(
                    item_id=item_id, quantity=quantity, kind=kind, reason=reason, order_id=order_id,
                )
            except EngineError:
                self.session.rollback()
                raise
            self.session.commit()
            return result

        result = run_with_retry(_op, session=self.session)
        current_app.logger.info(
            "Stock %s item=%s qty=%s -> %s (%s)",
            kind, item_id, quantity, result.item.quantity, result.movement.reason,
        )
        return result

    def receive(self, item_id: int, quantity: int, reason: str | None = None) -> StockAdjustment:
        """Stock entry from a supplier delivery."""
        return self.adjust(item_id, quantity, MOVEMENT_IN, reason or "Stock received")

    def create_item(
        self,
        *,
        product_id: int,
        quantity: int = 0,
        minimum_quantity: int = 0,
        unit: str = "unidades",
        location: str | None = None,
        expiry_date=None,
    ) -> InventoryItem:
        """Create the stock record for a product and log its opening balance."""
        _validate_quantity(quantity, MOVEMENT_ADJUST)
        if isinstance(minimum_quantity, bool) or not isinstance(minimum_quantity, int) or minimum_quantity < 0:
            raise InvalidQuantity("Minimum quantity cannot be negative", quantity=minimum_quantity)

        try:
            if self.catalog.get_product(product_id) is None:
                raise ProductNotFound(product_id)
            if self.inventory.get_item_by_product(product_id) is not None:
                raise InventoryItemExists(product_id)

            item = self.inventory.add_item(
                InventoryItem(
                    product_id=product_id,
                    quantity=quantity,
                    minimum_quantity=minimum_quantity,
                    unit=unit,
                    location=location,
                    expiry_date=expiry_date,
                )
            )
            self.inventory.append_movement(
                StockMovement(
                    inventory_item_id=item.id,
                    movement_type=MOVEMENT_IN,
                    quantity=quantity,
                    quantity_before=0,
                    quantity_after=quantity,
                    reason="Initial stock",
                    occurred_at=utcnow(),
                )
            )
        except EngineError:
            self.session.rollback()
            raise

        self.session.commit()
        return item

    def get_item(self, item_id: int) -> InventoryItem:
        item = self.inventory.get_item(item_id)
        if item is None:
            raise InventoryItemNotFound(item_id)
        return item

    def list_items(self) -> list[InventoryItem]:
        return self.inventory.list_items()

    def list_low_stock(self) -> list[InventoryItem]:
        return self.inventory.list_low_stock()

    def list_movements(self, item_id: int, limit: int = 200) -> list[StockMovement]:
        self.get_item(item_id)
        return self.inventory.list_movements(item_id, limit=limit)
