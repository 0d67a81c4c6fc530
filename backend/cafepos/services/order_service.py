# Overview: Order lifecycle; validates, prices and numbers orders and consumes stock on delivery.

from __future__ import annotations

from collections import OrderedDict

from flask import current_app

from ..errors import (
    DiscountNotFound,
    EmptyOrder,
    EngineError,
    InsufficientStock,
    InvalidQuantity,
    InvalidTransition,
    OrderNotFound,
    ProductNotFound,
    ProductUnavailable,
)
from ..models import Order, OrderLine
from ..time_utils import utcnow
from .concurrency import run_with_retry
from .discount_service import check_eligibility
from .pricing import price_totals
from .stock_ledger import MOVEMENT_OUT

"""
Order lifecycle rules

- PENDING -> IN_PREPARATION -> READY -> DELIVERED; CANCELLED from any
  non-terminal state. No skipping, no going back.
- Creating an order never touches stock. Availability is checked against the
  current quantity, so two orders may both promise the last unit; the
  shortfall surfaces when the second one is delivered.
- Stock is consumed exactly once, on the transition into DELIVERED: one OUT
  movement per line, tagged "Order <number>", committed together with the
  status change. If any line cannot be covered, nothing is deducted.
- Products without an inventory item are not stock-tracked and are skipped.
"""

STATUS_PENDING = "PENDING"
STATUS_IN_PREPARATION = "IN_PREPARATION"
STATUS_READY = "READY"
STATUS_DELIVERED = "DELIVERED"
STATUS_CANCELLED = "CANCELLED"

ORDER_STATUSES = (
    STATUS_PENDING,
    STATUS_IN_PREPARATION,
    STATUS_READY,
    STATUS_DELIVERED,
    STATUS_CANCELLED,
)

TRANSITIONS = {
    STATUS_PENDING: {STATUS_IN_PREPARATION, STATUS_CANCELLED},
    STATUS_IN_PREPARATION: {STATUS_READY, STATUS_CANCELLED},
    STATUS_READY: {STATUS_DELIVERED, STATUS_CANCELLED},
    STATUS_DELIVERED: set(),
    STATUS_CANCELLED: set(),
}

PAYMENT_METHODS = ("CASH", "CARD", "TRANSFER")


def can_transition(current: str, target: str) -> bool:
    return target in TRANSITIONS.get(current, set())


def _line_quantity(raw) -> int:
    if isinstance(raw, bool) or not isinstance(raw, int):
        raise InvalidQuantity("Line quantity must be an integer", quantity=raw)
    if raw <= 0:
        raise InvalidQuantity("Line quantity must be positive", quantity=raw)
    return raw


class OrderFulfillmentEngine:
    """Creates orders and walks them through their lifecycle."""

    def __init__(
        self,
        session,
        catalog_repo,
        inventory_repo,
        order_repo,
        ledger,
        discounts,
        *,
        tax_rate_bps: int,
    ):
        self.session = session
        self.catalog = catalog_repo
        self.inventory = inventory_repo
        self.orders = order_repo
        self.ledger = ledger
        self.discounts = discounts
        self.tax_rate_bps = tax_rate_bps

    # -- creation ---------------------------------------------------------

    def _resolve_lines(self, lines) -> list[OrderLine]:
        """Validate requested lines and snapshot name and price from the catalog."""
        if not lines:
            raise EmptyOrder()

        resolved = []
        requested_by_product: OrderedDict[int, int] = OrderedDict()
        for raw in lines:
            product_id = raw.get("product_id")
            quantity = _line_quantity(raw.get("quantity"))

            product = None
            if isinstance(product_id, int) and not isinstance(product_id, bool):
                product = self.catalog.get_product(product_id)
            if product is None:
                raise ProductNotFound(product_id)
            if not product.is_available:
                raise ProductUnavailable(product.id, product.name)

            requested_by_product[product.id] = requested_by_product.get(product.id, 0) + quantity
            resolved.append(
                OrderLine(
                    product_id=product.id,
                    product_name=product.name,
                    quantity=quantity,
                    unit_price_cents=product.price_cents,
                    line_total_cents=product.price_cents * quantity,
                    notes=raw.get("notes"),
                )
            )

        # Two lines for the same product count against one stock figure.
        for product_id, requested in requested_by_product.items():
            item = self.inventory.get_item_by_product(product_id)
            if item is not None and item.quantity < requested:
                raise InsufficientStock(
                    product_id,
                    item.product.name if item.product else None,
                    available=item.quantity,
                    requested=requested,
                )
        return resolved

    def create_order(
        self,
        lines,
        *,
        discount_id: int | None = None,
        payment_method: str | None = None,
        customer_id: str | None = None,
        customer_name: str | None = None,
        table_id: str | None = None,
        notes: str | None = None,
    ) -> Order:
        """
        Validate, price and persist a new PENDING order.

        lines: iterable of {"product_id": int, "quantity": int, "notes"?: str}.
        Every rule is checked before the first write; the order, its lines,
        its number and the discount usage commit together. A concurrent
        discount update triggers a retry.
        """
        lines = list(lines or ())

        def _op():
            try:
                order_lines = self._resolve_lines(lines)
                gross = sum(line.line_total_cents for line in order_lines)
                item_count = sum(line.quantity for line in order_lines)

                if discount_id is not None:
                    discount = self.catalog.get_discount(discount_id)
                    if discount is None:
                        raise DiscountNotFound(discount_id)
                    check_eligibility(discount, item_count=item_count)

                number = self.orders.next_order_number()

                discount_cents = 0
                if discount_id is not None:
                    applied = self.discounts.apply(
                        discount_id, gross, item_count=item_count, commit=False,
                    )
                    discount_cents = applied.discount_cents

                totals = price_totals(gross, discount_cents, self.tax_rate_bps)
                now = utcnow()
                order = Order(
                    number=number,
                    status=STATUS_PENDING,
                    gross_subtotal_cents=totals.gross_subtotal_cents,
                    discount_cents=totals.discount_cents,
                    subtotal_cents=totals.subtotal_cents,
                    tax_rate_bps=self.tax_rate_bps,
                    tax_cents=totals.tax_cents,
                    total_cents=totals.total_cents,
                    payment_method=payment_method,
                    customer_id=customer_id,
                    customer_name=customer_name,
                    table_id=table_id,
                    discount_id=discount_id,
                    notes=notes,
                    created_at=now,
                    updated_at=now,
                )
                order.lines = order_lines
                self.orders.save(order)
            except EngineError:
                self.session.rollback()
                raise
            self.session.commit()
            return order

        order = run_with_retry(_op, session=self.session)
        current_app.logger.info(
            "Order %s created: %d lines, total=%d cents", order.number, len(order.lines), order.total_cents,
        )
        return order

    # -- lifecycle --------------------------------------------------------

    def _consume_stock(self, order: Order) -> None:
        """Deduct every line's quantity, or raise before deducting anything."""
        needed: OrderedDict[int, int] = OrderedDict()
        for line in order.lines:
            needed[line.product_id] = needed.get(line.product_id, 0) + line.quantity

        items = {}
        for product_id, requested in needed.items():
            item = self.inventory.get_item_by_product(product_id, lock=True)
            if item is None:
                current_app.logger.debug(
                    "Order %s: product %s is not stock-tracked", order.number, product_id,
                )
                continue
            if item.quantity < requested:
                raise InsufficientStock(
                    product_id,
                    item.product.name if item.product else None,
                    available=item.quantity,
                    requested=requested,
                )
            items[product_id] = item

        reason = f"Order {order.number}"
        for line in order.lines:
            item = items.get(line.product_id)
            if item is None:
                continue
            self.ledger.adjust(
                item.id, line.quantity, MOVEMENT_OUT, reason, order_id=order.id, commit=False,
            )

    def advance_state(self, order_id: int, target: str) -> Order:
        """
        Move an order to ``target``.

        Landing on DELIVERED consumes stock in the same transaction; a
        concurrent writer on the order or an item triggers a retry.
        """
        def _op():
            try:
                order = self.orders.get(order_id, lock=True)
                if order is None:
                    raise OrderNotFound(order_id)
                current = order.status
                if target not in ORDER_STATUSES or not can_transition(current, target):
                    raise InvalidTransition(current, target)

                now = utcnow()
                fields = {"status": target, "updated_at": now}
                if target == STATUS_DELIVERED:
                    self._consume_stock(order)
                    fields["delivered_at"] = now
                elif target == STATUS_CANCELLED:
                    fields["cancelled_at"] = now
                self.orders.update(order, **fields)
            except EngineError:
                self.session.rollback()
                raise
            self.session.commit()
            return order, current

        order, previous = run_with_retry(_op, session=self.session)
        current_app.logger.info("Order %s: %s -> %s", order.number, previous, order.status)
        return order

    def cancel_order(self, order_id: int) -> Order:
        return self.advance_state(order_id, STATUS_CANCELLED)

    # -- reads ------------------------------------------------------------

    def get_order(self, order_id: int) -> Order:
        order = self.orders.get(order_id)
        if order is None:
            raise OrderNotFound(order_id)
        return order

    def list_orders(self, *, status=None, customer_id=None, table_id=None, limit: int = 200) -> list[Order]:
        return self.orders.list_orders(
            status=status, customer_id=customer_id, table_id=table_id, limit=limit,
        )
