# Overview: Flask API routes for inventory operations; parses input and returns JSON responses.

"""
Inventory routes.

Quantities only change through the stock ledger: every adjustment writes a
movement row in the same transaction.
"""
from flask import Blueprint, request
from ..context import get_engine
from ..errors import EngineError
from ..models import InventoryItem
from ..services.stock_ledger import MOVEMENT_TYPES
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_rules_inventory_item,
    parse_positive_int,
    ValidationError,
)
from ..time_utils import parse_iso_date

ITEM_POLICY = ModelValidationPolicy(
    writable_fields={"product_id", "quantity", "minimum_quantity", "unit", "location", "expiry_date"},
    required_on_create={"product_id"},
)

inventory_bp = Blueprint("inventory", __name__, url_prefix="/api/inventory")


@inventory_bp.get("/")
def list_items():
    items = get_engine().ledger.list_items()
    return {"items": [i.to_dict() for i in items], "count": len(items)}


@inventory_bp.post("/")
def create_item_route():
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=InventoryItem, payload=payload, policy=ITEM_POLICY, partial=False)
        enforce_rules_inventory_item(patch)
    except ValidationError as e:
        return {"error": str(e)}, 400

    try:
        item = get_engine().ledger.create_item(**patch)
    except EngineError as e:
        return e.to_dict(), e.http_status

    return item.to_dict(), 201


@inventory_bp.get("/low-stock")
def low_stock():
    items = get_engine().ledger.list_low_stock()
    return {"items": [i.to_dict() for i in items], "count": len(items)}


@inventory_bp.get("/alerts")
def alerts():
    """
    Query params:
    - days: expiry horizon in days (default EXPIRY_ALERT_DAYS)
    - today: YYYY-MM-DD override for the reference date
    """
    try:
        days = parse_positive_int(request.args.get("days"), "days", get_engine().alerts.expiry_days)
        today = parse_iso_date(request.args.get("today"))
    except ValidationError as e:
        return {"error": str(e)}, 400
    except ValueError:
        return {"error": "today must be an ISO-8601 date"}, 400

    found = get_engine().alerts.check_alerts(days=days, today=today)
    return {"items": [a.to_dict() for a in found], "count": len(found)}


@inventory_bp.get("/<int:item_id>")
def get_item_route(item_id: int):
    try:
        item = get_engine().ledger.get_item(item_id)
    except EngineError as e:
        return e.to_dict(), e.http_status
    return item.to_dict()


@inventory_bp.post("/<int:item_id>/adjust")
def adjust_route(item_id: int):
    """
    Body:
    - quantity: int
    - type: IN | OUT | ADJUST (ADJUST sets the absolute quantity)
    - reason: str (optional)
    """
    payload = request.get_json(silent=True) or {}
    kind = str(payload.get("type", "")).upper()
    if kind not in MOVEMENT_TYPES:
        return {"error": "type must be IN, OUT or ADJUST"}, 400

    try:
        result = get_engine().ledger.adjust(
            item_id,
            payload.get("quantity"),
            kind,
            payload.get("reason"),
        )
    except EngineError as e:
        return e.to_dict(), e.http_status

    return result.to_dict()


@inventory_bp.get("/<int:item_id>/movements")
def movements_route(item_id: int):
    limit = request.args.get("limit", default=200, type=int)
    try:
        movements = get_engine().ledger.list_movements(item_id, limit=max(1, min(limit, 1000)))
    except EngineError as e:
        return e.to_dict(), e.http_status
    return {"items": [m.to_dict() for m in movements], "count": len(movements)}
