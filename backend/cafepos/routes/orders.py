# Overview: Flask API routes for orders; parses input and returns JSON responses.

"""
Order routes.

Lifecycle: PENDING -> IN_PREPARATION -> READY -> DELIVERED, or CANCELLED from
any non-terminal state. Stock is only consumed when an order is delivered.
"""
from flask import Blueprint, request
from ..context import get_engine
from ..errors import EngineError
from ..services.order_service import ORDER_STATUSES, PAYMENT_METHODS

orders_bp = Blueprint("orders", __name__, url_prefix="/api/orders")

_OPTIONAL_TEXT = ("customer_id", "customer_name", "table_id", "notes")


def _parse_lines(raw) -> list[dict]:
    if not isinstance(raw, list):
        raise ValueError("lines must be a list")
    lines = []
    for entry in raw:
        if not isinstance(entry, dict):
            raise ValueError("each line must be an object")
        product_id = entry.get("product_id")
        if isinstance(product_id, bool) or not isinstance(product_id, int):
            raise ValueError("product_id must be an integer")
        lines.append(
            {
                "product_id": product_id,
                "quantity": entry.get("quantity"),
                "notes": entry.get("notes"),
            }
        )
    return lines


@orders_bp.post("/")
def create_order_route():
    """
    Body:
    - lines: [{"product_id": int, "quantity": int, "notes"?: str}]
    - discount_id: int (optional)
    - payment_method: CASH | CARD | TRANSFER (optional)
    - customer_id, customer_name, table_id, notes (optional)
    """
    payload = request.get_json(silent=True) or {}

    try:
        lines = _parse_lines(payload.get("lines", []))
    except ValueError as e:
        return {"error": str(e)}, 400

    payment_method = payload.get("payment_method")
    if payment_method is not None and payment_method not in PAYMENT_METHODS:
        return {"error": "payment_method must be CASH, CARD or TRANSFER"}, 400

    discount_id = payload.get("discount_id")
    if discount_id is not None and (isinstance(discount_id, bool) or not isinstance(discount_id, int)):
        return {"error": "discount_id must be an integer"}, 400

    extras = {}
    for key in _OPTIONAL_TEXT:
        value = payload.get(key)
        extras[key] = str(value).strip() if value is not None else None

    try:
        order = get_engine().orders.create_order(
            lines,
            discount_id=discount_id,
            payment_method=payment_method,
            **extras,
        )
    except EngineError as e:
        return e.to_dict(), e.http_status

    return order.to_dict(), 201


@orders_bp.get("/")
def list_orders_route():
    """
    Query params: status, customer_id, table_id, limit (default 200, max 1000)
    """
    status = request.args.get("status")
    if status and status not in ORDER_STATUSES:
        return {"error": f"status must be one of {', '.join(ORDER_STATUSES)}"}, 400
    limit = request.args.get("limit", default=200, type=int)

    orders = get_engine().orders.list_orders(
        status=status,
        customer_id=request.args.get("customer_id"),
        table_id=request.args.get("table_id"),
        limit=max(1, min(limit, 1000)),
    )
    return {"items": [o.to_dict(include_lines=False) for o in orders], "count": len(orders)}


@orders_bp.get("/<int:order_id>")
def get_order_route(order_id: int):
    try:
        order = get_engine().orders.get_order(order_id)
    except EngineError as e:
        return e.to_dict(), e.http_status
    return order.to_dict()


@orders_bp.post("/<int:order_id>/status")
def advance_status_route(order_id: int):
    """Body: {"status": "IN_PREPARATION" | "READY" | "DELIVERED" | "CANCELLED"}"""
    payload = request.get_json(silent=True) or {}
    target = payload.get("status")
    if target not in ORDER_STATUSES:
        return {"error": f"status must be one of {', '.join(ORDER_STATUSES)}"}, 400

    try:
        order = get_engine().orders.advance_state(order_id, target)
    except EngineError as e:
        return e.to_dict(), e.http_status

    return order.to_dict()


@orders_bp.post("/<int:order_id>/cancel")
def cancel_route(order_id: int):
    try:
        order = get_engine().orders.cancel_order(order_id)
    except EngineError as e:
        return e.to_dict(), e.http_status

    return order.to_dict()
