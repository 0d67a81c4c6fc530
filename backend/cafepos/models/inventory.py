from __future__ import annotations

from ..extensions import db
from cafepos.time_utils import to_utc_z, utcnow


class InventoryItem(db.Model):
    """
    Stock record for a product (1:1).

    Unlike a ledger-derived design, the current quantity is stored here and
    updated in the same transaction that appends its StockMovement. The
    movement log is the audit trail, not the source of truth.

    INVARIANTS:
    - quantity >= 0 at all times
    - quantity <= minimum_quantity means "low stock"
    - version_id guards the read-compute-write of every adjustment
    """
    __tablename__ = "inventory_items"
    __table_args__ = (
        db.UniqueConstraint("product_id", name="uq_inventory_items_product"),
        db.CheckConstraint("quantity >= 0", name="ck_inventory_items_quantity_nonneg"),
        db.CheckConstraint("minimum_quantity >= 0", name="ck_inventory_items_minimum_nonneg"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    quantity = db.Column(db.Integer, nullable=False, default=0)
    minimum_quantity = db.Column(db.Integer, nullable=False, default=0)

    unit = db.Column(db.String(32), nullable=False, default="unidades")  # kg, litros, unidades, ...
    location = db.Column(db.String(128), nullable=True)
    expiry_date = db.Column(db.Date, nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=db.func.now(),
        onupdate=utcnow,
    )

    product = db.relationship("Product", backref=db.backref("inventory_item", uselist=False, lazy=True))
    __mapper_args__ = {"version_id_col": version_id}

    @property
    def is_low_stock(self) -> bool:
        return self.quantity <= self.minimum_quantity

    def __repr__(self) -> str:
        return f"<InventoryItem id={self.id} product_id={self.product_id} quantity={self.quantity}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "product_name": self.product.name if self.product else None,
            "quantity": self.quantity,
            "minimum_quantity": self.minimum_quantity,
            "unit": self.unit,
            "location": self.location,
            "expiry_date": self.expiry_date.isoformat() if self.expiry_date else None,
            "is_low_stock": self.is_low_stock,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class StockMovement(db.Model):
    """
    Append-only audit record of one quantity change.

    quantity is the magnitude (>= 0). For ADJUST it is |after - before|.
    Rows are never updated or deleted.
    """
    __tablename__ = "stock_movements"
    __table_args__ = (
        db.Index("ix_stock_movements_item_occurred", "inventory_item_id", "occurred_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    inventory_item_id = db.Column(db.Integer, db.ForeignKey("inventory_items.id"), nullable=False, index=True)

    movement_type = db.Column(db.String(16), nullable=False, index=True)  # IN, OUT, ADJUST
    quantity = db.Column(db.Integer, nullable=False)

    quantity_before = db.Column(db.Integer, nullable=False)
    quantity_after = db.Column(db.Integer, nullable=False)

    reason = db.Column(db.String(255), nullable=True)

    # Set when the movement was caused by an order delivery
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=True, index=True)

    occurred_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=db.func.now(),
        index=True,
    )

    inventory_item = db.relationship("InventoryItem", backref=db.backref("movements", lazy="dynamic"))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "inventory_item_id": self.inventory_item_id,
            "movement_type": self.movement_type,
            "quantity": self.quantity,
            "quantity_before": self.quantity_before,
            "quantity_after": self.quantity_after,
            "reason": self.reason,
            "order_id": self.order_id,
            "occurred_at": to_utc_z(self.occurred_at),
        }
