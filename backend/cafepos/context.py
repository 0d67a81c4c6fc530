# Overview: Builds the engine's services from app config and exposes them to routes and CLI.

"""
Engine wiring.

All services are constructed once per app from explicit collaborators and
stored on ``app.extensions["cafepos"]``. Nothing reaches for a global
registry: routes and CLI commands call ``get_engine()``, tests can build an
EngineContext around any session they like.

Services hold ``db.session``, which Flask-SQLAlchemy scopes to the current
app context, so one context object is safe to share between requests.
"""

from __future__ import annotations

from dataclasses import dataclass

from flask import current_app

from .extensions import db
from .repositories import CatalogRepository, InventoryRepository, OrderRepository
from .services.abc_service import ABCClassifier
from .services.alert_service import InventoryAlertService
from .services.catalog_service import CatalogService
from .services.discount_service import DiscountEvaluator
from .services.forecasting import DemandForecaster
from .services.order_service import OrderFulfillmentEngine
from .services.reorder_service import ReorderPointCalculator
from .services.stock_ledger import StockLedger

EXTENSION_KEY = "cafepos"


@dataclass
class EngineContext:
    catalog: CatalogService
    ledger: StockLedger
    discounts: DiscountEvaluator
    orders: OrderFulfillmentEngine
    forecaster: DemandForecaster
    reorder: ReorderPointCalculator
    abc: ABCClassifier
    alerts: InventoryAlertService


def build_engine(config, session=None) -> EngineContext:
    """Assemble every service around one session from a config mapping."""
    session = session or db.session

    catalog_repo = CatalogRepository(session)
    inventory_repo = InventoryRepository(session)
    order_repo = OrderRepository(session, number_prefix=config["ORDER_NUMBER_PREFIX"])

    ledger = StockLedger(session, inventory_repo, catalog_repo)
    discounts = DiscountEvaluator(session, catalog_repo)

    return EngineContext(
        catalog=CatalogService(session, catalog_repo),
        ledger=ledger,
        discounts=discounts,
        orders=OrderFulfillmentEngine(
            session,
            catalog_repo,
            inventory_repo,
            order_repo,
            ledger,
            discounts,
            tax_rate_bps=config["TAX_RATE_BPS"],
        ),
        forecaster=DemandForecaster(
            catalog_repo,
            order_repo,
            window_days=config["FORECAST_WINDOW_DAYS"],
            lead_time_days=config["DEFAULT_LEAD_TIME_DAYS"],
        ),
        reorder=ReorderPointCalculator(
            inventory_repo,
            order_repo,
            window_days=config["REORDER_WINDOW_DAYS"],
            lead_time_days=config["DEFAULT_LEAD_TIME_DAYS"],
            default_service_level=config["DEFAULT_SERVICE_LEVEL"],
            cost_factor=config["REORDER_COST_FACTOR"],
        ),
        abc=ABCClassifier(catalog_repo, order_repo),
        alerts=InventoryAlertService(inventory_repo, expiry_days=config["EXPIRY_ALERT_DAYS"]),
    )


def get_engine() -> EngineContext:
    return current_app.extensions[EXTENSION_KEY]
