# Overview: Flask API routes for analytics; parses input and returns JSON responses.

"""
Analytics Routes

Demand forecast, (s, Q) reorder points and ABC classification. All of them
are read-only and computed from delivered-order history on each request.
"""

from flask import Blueprint, request

from ..context import get_engine
from ..errors import EngineError
from ..time_utils import parse_iso_datetime
from ..validation import ValidationError, parse_positive_int, parse_service_level


analytics_bp = Blueprint("analytics", __name__, url_prefix="/api/analytics")


def _parse_datetime_arg(name: str):
    try:
        return parse_iso_datetime(request.args.get(name))
    except ValueError:
        raise ValidationError(f"{name} must be an ISO-8601 datetime")


def _parse_id_arg(name: str) -> int | None:
    raw = request.args.get(name)
    if raw is None or raw == "":
        return None
    return parse_positive_int(raw, name, None)


@analytics_bp.get("/forecast")
def forecast_route():
    """
    Query params:
    - product_id: int (omit to forecast every product)
    - window_days: int (default FORECAST_WINDOW_DAYS)
    - as_of: ISO datetime (default now)
    """
    engine = get_engine()

    try:
        product_id = _parse_id_arg("product_id")
        window_days = parse_positive_int(
            request.args.get("window_days"), "window_days", engine.forecaster.window_days,
        )
        as_of = _parse_datetime_arg("as_of")
        if product_id is None:
            forecasts = engine.forecaster.forecast_all(window_days=window_days, as_of=as_of)
            return {"items": [f.to_dict() for f in forecasts], "count": len(forecasts)}
        forecast = engine.forecaster.forecast_demand(product_id, window_days=window_days, as_of=as_of)
        result = forecast.to_dict()
        result["recommended_minimum_stock"] = engine.forecaster.minimum_stock_for(forecast)
        return result
    except ValidationError as e:
        return {"error": str(e)}, 400
    except EngineError as e:
        return e.to_dict(), e.http_status


@analytics_bp.get("/reorder-point")
def reorder_point_route():
    """
    Query params:
    - inventory_item_id: int (required)
    - service_level: float in (0, 1) (default DEFAULT_SERVICE_LEVEL)
    """
    engine = get_engine()

    try:
        item_id = _parse_id_arg("inventory_item_id")
        if item_id is None:
            raise ValidationError("inventory_item_id is required")
        service_level = parse_service_level(
            request.args.get("service_level"), engine.reorder.default_service_level,
        )
        point = engine.reorder.compute_reorder_point(
            item_id, service_level=service_level, as_of=_parse_datetime_arg("as_of"),
        )
    except ValidationError as e:
        return {"error": str(e)}, 400
    except EngineError as e:
        return e.to_dict(), e.http_status

    return point.to_dict()


@analytics_bp.get("/reorder-points")
def reorder_points_route():
    engine = get_engine()
    try:
        service_level = parse_service_level(
            request.args.get("service_level"), engine.reorder.default_service_level,
        )
        points = engine.reorder.compute_all(service_level=service_level, as_of=_parse_datetime_arg("as_of"))
    except ValidationError as e:
        return {"error": str(e)}, 400

    return {"items": [p.to_dict() for p in points], "count": len(points)}


@analytics_bp.get("/abc")
def abc_route():
    """
    Query params:
    - start, end: ISO datetimes bounding the order date (both optional)
    - tier: A | B | C to filter the classification
    """
    engine = get_engine()
    tier = request.args.get("tier")

    try:
        start = _parse_datetime_arg("start")
        end = _parse_datetime_arg("end")
        if tier:
            items = engine.abc.classify_products(start, end, tier=tier.upper())
            return {"items": [c.to_dict() for c in items], "count": len(items)}
        return engine.abc.report(start, end)
    except ValidationError as e:
        return {"error": str(e)}, 400
