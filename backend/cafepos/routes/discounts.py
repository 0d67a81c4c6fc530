# Overview: Flask API routes for discounts; parses input and returns JSON responses.

"""
Discount routes.

PERCENTAGE values are basis points (1000 = 10%); FIXED_AMOUNT values are cents.
A PERCENTAGE discount may instead be sent as {"percent": 10} (up to two
decimals), which is stored as basis points.
"""
from flask import Blueprint, request
from ..context import get_engine
from ..errors import EngineError
from ..models import Discount
from ..services.discount_service import DISCOUNT_PERCENTAGE
from ..validation import MAX_PERCENTAGE_BPS, ModelValidationPolicy, validate_payload, ValidationError

DISCOUNT_POLICY = ModelValidationPolicy(
    writable_fields={
        "name", "description", "discount_type", "value", "is_active",
        "starts_at", "ends_at", "min_item_count",
    },
    required_on_create={"name", "discount_type", "value"},
)

discounts_bp = Blueprint("discounts", __name__, url_prefix="/api/discounts")


def _percent_to_value(payload: dict, current_type: str | None = None) -> dict:
    """Rewrite a {"percent": p} payload into basis points under "value"."""
    if "percent" not in payload:
        return payload
    if "value" in payload:
        raise ValidationError("Send either value (basis points) or percent, not both")
    if payload.get("discount_type", current_type) != DISCOUNT_PERCENTAGE:
        raise ValidationError("percent only applies to PERCENTAGE discounts")

    percent = payload["percent"]
    if isinstance(percent, bool) or not isinstance(percent, (int, float)):
        raise ValidationError("percent must be a number")
    bps = round(percent * 100)
    if abs(percent * 100 - bps) > 1e-6:
        raise ValidationError("percent allows at most two decimals")
    if not 0 < bps <= MAX_PERCENTAGE_BPS:
        raise ValidationError("percent must be greater than 0 and at most 100")

    rewritten = {k: v for k, v in payload.items() if k != "percent"}
    rewritten["value"] = bps
    return rewritten


@discounts_bp.get("/")
def list_discounts():
    active_only = request.args.get("active", "false").lower() == "true"
    discounts = get_engine().catalog.list_discounts(active_only=active_only)
    return {"items": [d.to_dict() for d in discounts], "count": len(discounts)}


@discounts_bp.get("/applicable")
def applicable_discounts():
    """Discounts an order with ?item_count=N could use right now."""
    item_count = request.args.get("item_count", default=0, type=int)
    discounts = get_engine().discounts.list_applicable(item_count)
    return {"items": [d.to_dict() for d in discounts], "count": len(discounts)}


@discounts_bp.get("/<int:discount_id>")
def get_discount_route(discount_id: int):
    try:
        discount = get_engine().catalog.get_discount(discount_id)
    except EngineError as e:
        return e.to_dict(), e.http_status
    return discount.to_dict()


@discounts_bp.post("/")
def create_discount_route():
    payload = request.get_json(silent=True) or {}

    try:
        payload = _percent_to_value(payload)
        patch = validate_payload(model=Discount, payload=payload, policy=DISCOUNT_POLICY, partial=False)
        created = get_engine().catalog.create_discount(patch)
    except ValidationError as e:
        return {"error": str(e)}, 400

    return created.to_dict(), 201


@discounts_bp.patch("/<int:discount_id>")
def update_discount_route(discount_id: int):
    payload = request.get_json(silent=True) or {}

    try:
        if "percent" in payload:
            current = get_engine().catalog.get_discount(discount_id)
            payload = _percent_to_value(payload, current.discount_type)
        patch = validate_payload(model=Discount, payload=payload, policy=DISCOUNT_POLICY, partial=True)
        updated = get_engine().catalog.update_discount(discount_id, patch)
    except ValidationError as e:
        return {"error": str(e)}, 400
    except EngineError as e:
        return e.to_dict(), e.http_status

    return updated.to_dict()


@discounts_bp.delete("/<int:discount_id>")
def delete_discount_route(discount_id: int):
    try:
        outcome = get_engine().catalog.remove_discount(discount_id)
    except EngineError as e:
        return e.to_dict(), e.http_status

    return {"ok": True, "outcome": outcome}
