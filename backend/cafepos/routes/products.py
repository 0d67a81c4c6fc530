# Overview: Flask API routes for products operations; parses input and returns JSON responses.

# backend/cafepos/routes/products.py
"""
Product catalog routes.

DELETE erases a product nothing references yet; a product that appears on
orders or has a stock record is marked unavailable instead.
"""
from flask import Blueprint, request
from ..context import get_engine
from ..errors import EngineError
from ..models import Product
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    ValidationError,
)

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields={"name", "description", "category", "price_cents", "cost_cents", "is_available"},
    required_on_create={"name", "price_cents"},
)

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("/")
def list_products():
    """
    Query params:
    - available: "true" to list only products that can be ordered
    """
    available_only = request.args.get("available", "false").lower() == "true"
    products = get_engine().catalog.list_products(available_only=available_only)
    return {"items": [p.to_dict() for p in products], "count": len(products)}


@products_bp.get("/<int:product_id>")
def get_product_route(product_id: int):
    try:
        product = get_engine().catalog.get_product(product_id)
    except EngineError as e:
        return e.to_dict(), e.http_status
    return product.to_dict()


@products_bp.post("/")
def create_product_route():
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=False)
        created = get_engine().catalog.create_product(patch)
    except ValidationError as e:
        return {"error": str(e)}, 400

    return created.to_dict(), 201


@products_bp.patch("/<int:product_id>")
def update_product_route(product_id: int):
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=True)
        updated = get_engine().catalog.update_product(product_id, patch)
    except ValidationError as e:
        return {"error": str(e)}, 400
    except EngineError as e:
        return e.to_dict(), e.http_status

    return updated.to_dict()


@products_bp.delete("/<int:product_id>")
def delete_product_route(product_id: int):
    try:
        outcome = get_engine().catalog.remove_product(product_id)
    except EngineError as e:
        return e.to_dict(), e.http_status

    return {"ok": True, "outcome": outcome}
