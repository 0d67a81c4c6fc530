from __future__ import annotations

from ..extensions import db
from cafepos.time_utils import to_utc_z, utcnow


class Order(db.Model):
    """
    Customer order document.

    Lifecycle: PENDING -> IN_PREPARATION -> READY -> DELIVERED, or CANCELLED
    from any non-terminal state. Orders are never deleted.

    Pricing (all cents):
    - gross_subtotal_cents: sum of line totals, before discount
    - discount_cents: clamped discount amount
    - subtotal_cents: gross_subtotal_cents - discount_cents
    - tax_cents: subtotal_cents * tax_rate_bps / 10000 (half-up)
    - total_cents: subtotal_cents + tax_cents
    The tax rate is stored with the order so totals stay derivable from inputs.
    """
    __tablename__ = "orders"
    __table_args__ = (
        db.UniqueConstraint("number", name="uq_orders_number"),
        db.Index("ix_orders_status_created", "status", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    # Human-readable number (e.g., "PED-000123")
    number = db.Column(db.String(64), nullable=False)

    status = db.Column(db.String(16), nullable=False, default="PENDING", index=True)

    gross_subtotal_cents = db.Column(db.Integer, nullable=False)
    discount_cents = db.Column(db.Integer, nullable=False, default=0)
    subtotal_cents = db.Column(db.Integer, nullable=False)
    tax_rate_bps = db.Column(db.Integer, nullable=False)
    tax_cents = db.Column(db.Integer, nullable=False)
    total_cents = db.Column(db.Integer, nullable=False)

    payment_method = db.Column(db.String(16), nullable=True)  # CASH, CARD, TRANSFER

    # External references (identity/table management live outside the engine)
    customer_id = db.Column(db.String(64), nullable=True, index=True)
    customer_name = db.Column(db.String(255), nullable=True)
    table_id = db.Column(db.String(64), nullable=True, index=True)

    discount_id = db.Column(db.Integer, db.ForeignKey("discounts.id"), nullable=True, index=True)
    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=db.func.now(),
        onupdate=utcnow,
    )
    delivered_at = db.Column(db.DateTime(timezone=True), nullable=True)
    cancelled_at = db.Column(db.DateTime(timezone=True), nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    lines = db.relationship(
        "OrderLine",
        backref="order",
        lazy="selectin",
        order_by="OrderLine.id",
        cascade="all, delete-orphan",
    )
    discount = db.relationship("Discount")
    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Order id={self.id} number={self.number!r} status={self.status}>"

    def to_dict(self, include_lines: bool = True) -> dict:
        data = {
            "id": self.id,
            "number": self.number,
            "status": self.status,
            "gross_subtotal_cents": self.gross_subtotal_cents,
            "discount_cents": self.discount_cents,
            "subtotal_cents": self.subtotal_cents,
            "tax_rate_bps": self.tax_rate_bps,
            "tax_cents": self.tax_cents,
            "total_cents": self.total_cents,
            "payment_method": self.payment_method,
            "customer_id": self.customer_id,
            "customer_name": self.customer_name,
            "table_id": self.table_id,
            "discount_id": self.discount_id,
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
            "delivered_at": to_utc_z(self.delivered_at),
            "cancelled_at": to_utc_z(self.cancelled_at),
            "version_id": self.version_id,
        }
        if include_lines:
            data["lines"] = [line.to_dict() for line in self.lines]
        return data


class OrderLine(db.Model):
    """Line item; name and unit price are snapshots taken at order creation."""
    __tablename__ = "order_lines"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_order_lines_quantity_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    product_name = db.Column(db.String(255), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    line_total_cents = db.Column(db.Integer, nullable=False)

    notes = db.Column(db.String(255), nullable=True)

    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_id": self.order_id,
            "product_id": self.product_id,
            "product_name": self.product_name,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "line_total_cents": self.line_total_cents,
            "notes": self.notes,
        }


class OrderSequence(db.Model):
    """
    Atomic order number sequence per prefix.

    Numbers are handed out with a single UPDATE ... SET next_number = next_number + 1.
    """
    __tablename__ = "order_sequences"
    __table_args__ = (
        db.UniqueConstraint("prefix", name="uq_order_sequences_prefix"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    prefix = db.Column(db.String(16), nullable=False)
    next_number = db.Column(db.Integer, nullable=False, default=1)
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=db.func.now(),
        onupdate=utcnow,
    )
