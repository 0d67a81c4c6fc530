# Overview: SQLAlchemy-backed storage collaborators consumed by the engine services.

"""
Repository layer.

Services never build queries themselves; they go through these narrow
classes so that the storage backend can be swapped. Every repository shares
the session it was constructed with, which makes one service call one
transaction. Repositories flush but never commit: committing is the service's
decision.
"""

from __future__ import annotations

from datetime import datetime

from .models import Discount, InventoryItem, Order, OrderLine, Product, StockMovement
from .services.concurrency import lock_for_update
from .services.sequence_service import format_order_number, next_sequence_number


class CatalogRepository:
    def __init__(self, session):
        self.session = session

    def get_product(self, product_id: int) -> Product | None:
        return self.session.get(Product, product_id)

    def list_products(self, available_only: bool = False) -> list[Product]:
        q = self.session.query(Product)
        if available_only:
            q = q.filter(Product.is_available.is_(True))
        return q.order_by(Product.name.asc(), Product.id.asc()).all()

    def add(self, row):
        self.session.add(row)
        self.session.flush()
        return row

    def delete(self, row) -> None:
        self.session.delete(row)
        self.session.flush()

    def product_is_referenced(self, product_id: int) -> bool:
        in_orders = self.session.query(OrderLine.id).filter_by(product_id=product_id).first()
        in_stock = self.session.query(InventoryItem.id).filter_by(product_id=product_id).first()
        return in_orders is not None or in_stock is not None

    def get_discount(self, discount_id: int, lock: bool = False) -> Discount | None:
        q = self.session.query(Discount).filter_by(id=discount_id)
        if lock:
            q = lock_for_update(q)
        return q.first()

    def list_discounts(self, active_only: bool = False) -> list[Discount]:
        q = self.session.query(Discount)
        if active_only:
            q = q.filter(Discount.is_active.is_(True))
        return q.order_by(Discount.created_at.desc(), Discount.id.desc()).all()

    def increment_discount_usage(self, discount: Discount) -> Discount:
        discount.usage_count = (discount.usage_count or 0) + 1
        self.session.flush()
        return discount

    def discount_is_referenced(self, discount_id: int) -> bool:
        return self.session.query(Order.id).filter_by(discount_id=discount_id).first() is not None


class InventoryRepository:
    def __init__(self, session):
        self.session = session

    def get_item(self, item_id: int, lock: bool = False) -> InventoryItem | None:
        q = self.session.query(InventoryItem).filter_by(id=item_id)
        if lock:
            q = lock_for_update(q)
        return q.first()

    def get_item_by_product(self, product_id: int, lock: bool = False) -> InventoryItem | None:
        q = self.session.query(InventoryItem).filter_by(product_id=product_id)
        if lock:
            q = lock_for_update(q)
        return q.first()

    def list_items(self) -> list[InventoryItem]:
        return self.session.query(InventoryItem).order_by(InventoryItem.id.asc()).all()

    def list_low_stock(self) -> list[InventoryItem]:
        return (
            self.session.query(InventoryItem)
            .filter(InventoryItem.quantity <= InventoryItem.minimum_quantity)
            .order_by(InventoryItem.quantity.asc(), InventoryItem.id.asc())
            .all()
        )

    def list_expiring(self, until) -> list[InventoryItem]:
        return (
            self.session.query(InventoryItem)
            .filter(InventoryItem.expiry_date.isnot(None), InventoryItem.expiry_date <= until)
            .order_by(InventoryItem.expiry_date.asc(), InventoryItem.id.asc())
            .all()
        )

    def add_item(self, item: InventoryItem) -> InventoryItem:
        self.session.add(item)
        self.session.flush()
        return item

    def append_movement(self, movement: StockMovement) -> StockMovement:
        self.session.add(movement)
        self.session.flush()
        return movement

    def list_movements(self, item_id: int, limit: int = 200) -> list[StockMovement]:
        return (
            self.session.query(StockMovement)
            .filter_by(inventory_item_id=item_id)
            .order_by(StockMovement.occurred_at.desc(), StockMovement.id.desc())
            .limit(limit)
            .all()
        )


class OrderRepository:
    def __init__(self, session, *, number_prefix: str = "PED"):
        self.session = session
        self.number_prefix = number_prefix

    def next_order_number(self) -> str:
        number = next_sequence_number(self.session, prefix=self.number_prefix)
        return format_order_number(self.number_prefix, number)

    def get(self, order_id: int, lock: bool = False) -> Order | None:
        q = self.session.query(Order).filter_by(id=order_id)
        if lock:
            q = lock_for_update(q)
        return q.first()

    def save(self, order: Order) -> Order:
        self.session.add(order)
        self.session.flush()
        return order

    def update(self, order: Order, **fields) -> Order:
        for key, value in fields.items():
            setattr(order, key, value)
        self.session.flush()
        return order

    def list_orders(
        self,
        *,
        status: str | None = None,
        customer_id: str | None = None,
        table_id: str | None = None,
        limit: int = 200,
    ) -> list[Order]:
        q = self.session.query(Order)
        if status:
            q = q.filter(Order.status == status)
        if customer_id:
            q = q.filter(Order.customer_id == customer_id)
        if table_id:
            q = q.filter(Order.table_id == table_id)
        return q.order_by(Order.created_at.desc(), Order.id.desc()).limit(limit).all()

    def list_delivered(self, start: datetime | None = None, end: datetime | None = None) -> list[Order]:
        """Delivered orders whose order date (created_at) lies in [start, end]."""
        q = self.session.query(Order).filter(Order.status == "DELIVERED")
        if start is not None:
            q = q.filter(Order.created_at >= start)
        if end is not None:
            q = q.filter(Order.created_at <= end)
        return q.order_by(Order.created_at.asc(), Order.id.asc()).all()

    def delivered_lines(
        self,
        *,
        start: datetime | None = None,
        end: datetime | None = None,
        product_id: int | None = None,
    ) -> list:
        """
        Rows of (created_at, product_id, quantity, line_total_cents) for lines
        of delivered orders dated in [start, end].
        """
        q = (
            self.session.query(
                Order.created_at,
                OrderLine.product_id,
                OrderLine.quantity,
                OrderLine.line_total_cents,
            )
            .join(OrderLine, OrderLine.order_id == Order.id)
            .filter(Order.status == "DELIVERED")
        )
        if product_id is not None:
            q = q.filter(OrderLine.product_id == product_id)
        if start is not None:
            q = q.filter(Order.created_at >= start)
        if end is not None:
            q = q.filter(Order.created_at <= end)
        return q.order_by(Order.created_at.asc(), OrderLine.id.asc()).all()
