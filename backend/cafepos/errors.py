# Overview: Typed, recoverable engine errors shared by services and routes.

"""
Error taxonomy for the fulfillment engine.

Every error carries a stable ``code`` and a ``details`` dict so callers can
react without parsing messages. Routes turn them into JSON bodies using
``http_status``. None of them indicate a crashed process: they are returned
before any mutation is committed.
"""

from __future__ import annotations


class EngineError(Exception):
    """Base class for business-rule failures."""
    code = "ENGINE_ERROR"
    http_status = 400

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}

    def to_dict(self) -> dict:
        return {"error": str(self), "code": self.code, "details": self.details}


class ProductNotFound(EngineError):
    code = "PRODUCT_NOT_FOUND"
    http_status = 404

    def __init__(self, product_id):
        super().__init__(f"Product {product_id} not found", {"product_id": product_id})
        self.product_id = product_id


class ProductUnavailable(EngineError):
    code = "PRODUCT_UNAVAILABLE"
    http_status = 409

    def __init__(self, product_id, product_name: str):
        super().__init__(
            f"Product {product_name} is not available",
            {"product_id": product_id, "product_name": product_name},
        )
        self.product_id = product_id


class InsufficientStock(EngineError):
    code = "INSUFFICIENT_STOCK"
    http_status = 409

    def __init__(self, product_id, product_name: str | None, available: int, requested: int):
        label = product_name or f"product {product_id}"
        super().__init__(
            f"Insufficient stock for {label}. Available: {available}",
            {
                "product_id": product_id,
                "product_name": product_name,
                "available": available,
                "requested": requested,
            },
        )
        self.product_id = product_id
        self.available = available
        self.requested = requested


class EmptyOrder(EngineError):
    code = "EMPTY_ORDER"

    def __init__(self):
        super().__init__("Order must have at least one line")


class InvalidTransition(EngineError):
    code = "INVALID_TRANSITION"
    http_status = 409

    def __init__(self, current: str, requested: str):
        super().__init__(
            f"Cannot move order from {current} to {requested}",
            {"current": current, "requested": requested},
        )
        self.current = current
        self.requested = requested


class OrderNotFound(EngineError):
    code = "ORDER_NOT_FOUND"
    http_status = 404

    def __init__(self, order_id):
        super().__init__(f"Order {order_id} not found", {"order_id": order_id})


class DiscountNotFound(EngineError):
    code = "DISCOUNT_NOT_FOUND"
    http_status = 404

    def __init__(self, discount_id):
        super().__init__(f"Discount {discount_id} not found", {"discount_id": discount_id})


class DiscountInactive(EngineError):
    code = "DISCOUNT_INACTIVE"

    def __init__(self, discount_id):
        super().__init__(f"Discount {discount_id} is not active", {"discount_id": discount_id})


class DiscountExpired(EngineError):
    code = "DISCOUNT_EXPIRED"

    def __init__(self, discount_id, ends_at: str | None):
        super().__init__(
            f"Discount {discount_id} expired",
            {"discount_id": discount_id, "ends_at": ends_at},
        )


class DiscountNotYetStarted(EngineError):
    code = "DISCOUNT_NOT_YET_STARTED"

    def __init__(self, discount_id, starts_at: str | None):
        super().__init__(
            f"Discount {discount_id} has not started yet",
            {"discount_id": discount_id, "starts_at": starts_at},
        )


class DiscountNotApplicable(EngineError):
    code = "DISCOUNT_NOT_APPLICABLE"

    def __init__(self, discount_id, min_item_count: int, item_count: int):
        super().__init__(
            f"Discount {discount_id} requires at least {min_item_count} items",
            {"discount_id": discount_id, "min_item_count": min_item_count, "item_count": item_count},
        )


class InventoryItemNotFound(EngineError):
    code = "INVENTORY_ITEM_NOT_FOUND"
    http_status = 404

    def __init__(self, item_id):
        super().__init__(f"Inventory item {item_id} not found", {"inventory_item_id": item_id})


class InvalidQuantity(EngineError):
    code = "INVALID_QUANTITY"

    def __init__(self, message: str = "Quantity must be a non-negative integer", quantity=None):
        super().__init__(message, {"quantity": quantity})


class InventoryItemExists(EngineError):
    code = "INVENTORY_ITEM_EXISTS"
    http_status = 409

    def __init__(self, product_id):
        super().__init__(
            f"Product {product_id} already has an inventory item",
            {"product_id": product_id},
        )
