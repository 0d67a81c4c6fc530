"""
Pytest fixtures for cafepos backend tests.

Provides the app (in-memory SQLite), a per-test table wipe, the engine
context, and factories for catalog rows, stock and delivered-order history.
"""

from datetime import datetime

import pytest
from cafepos import create_app
from cafepos.config import TestConfig
from cafepos.context import get_engine
from cafepos.extensions import db
from cafepos.models import Discount, InventoryItem, Order, OrderLine, Product
from cafepos.services.pricing import price_totals

# Fixed reference instant for analytics tests
AS_OF = datetime(2026, 3, 31, 23, 0, 0)


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app(TestConfig)

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def engine(db_session):
    return get_engine()


@pytest.fixture(scope='function')
def make_product(db_session):
    def _make(name="Cafe americano", price_cents=2500, is_available=True, category="BEBIDA"):
        product = Product(name=name, price_cents=price_cents, is_available=is_available, category=category)
        db_session.add(product)
        db_session.commit()
        return product
    return _make


@pytest.fixture(scope='function')
def make_item(db_session):
    def _make(product, quantity=10, minimum_quantity=2, unit="unidades", expiry_date=None):
        item = InventoryItem(
            product_id=product.id,
            quantity=quantity,
            minimum_quantity=minimum_quantity,
            unit=unit,
            expiry_date=expiry_date,
        )
        db_session.add(item)
        db_session.commit()
        return item
    return _make


@pytest.fixture(scope='function')
def make_discount(db_session):
    def _make(discount_type="PERCENTAGE", value=1000, **fields):
        discount = Discount(
            name=fields.pop("name", "Promo"),
            discount_type=discount_type,
            value=value,
            is_active=fields.pop("is_active", True),
            usage_count=0,
            **fields,
        )
        db_session.add(discount)
        db_session.commit()
        return discount
    return _make


@pytest.fixture(scope='function')
def make_delivered_order(db_session):
    """
    Insert a DELIVERED order dated ``created_at`` without touching stock.

    lines: list of (product, quantity).
    """
    counter = {"n": 0}

    def _make(lines, created_at):
        counter["n"] += 1
        order_lines = [
            OrderLine(
                product_id=product.id,
                product_name=product.name,
                quantity=qty,
                unit_price_cents=product.price_cents,
                line_total_cents=product.price_cents * qty,
            )
            for product, qty in lines
        ]
        gross = sum(line.line_total_cents for line in order_lines)
        totals = price_totals(gross, 0, 1600)
        order = Order(
            number=f"HIST-{counter['n']:06d}",
            status="DELIVERED",
            gross_subtotal_cents=totals.gross_subtotal_cents,
            discount_cents=0,
            subtotal_cents=totals.subtotal_cents,
            tax_rate_bps=1600,
            tax_cents=totals.tax_cents,
            total_cents=totals.total_cents,
            created_at=created_at,
            updated_at=created_at,
            delivered_at=created_at,
        )
        order.lines = order_lines
        db_session.add(order)
        db_session.commit()
        return order
    return _make
