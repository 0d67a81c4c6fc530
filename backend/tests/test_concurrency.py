"""Retry on optimistic-lock conflicts and order number allocation."""

import pytest
from sqlalchemy import create_engine
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from cafepos import create_app
from cafepos.config import TestConfig
from cafepos.context import get_engine
from cafepos.errors import InsufficientStock
from cafepos.extensions import db
from cafepos.models import InventoryItem, Order, OrderSequence, Product, StockMovement
from cafepos.services.concurrency import run_with_retry
from cafepos.services.sequence_service import format_order_number, next_sequence_number


def test_retries_then_succeeds(db_session):
    calls = []

    def flaky():
        calls.append(1)
        if len(calls) < 3:
            raise StaleDataError("version mismatch")
        return "ok"

    assert run_with_retry(flaky, session=db_session, backoff_base=0) == "ok"
    assert len(calls) == 3


def test_gives_up_after_attempts(db_session):
    def always_locked():
        raise OperationalError("UPDATE inventory_items", {}, Exception("database is locked"))

    with pytest.raises(OperationalError):
        run_with_retry(always_locked, session=db_session, attempts=2, backoff_base=0)


def test_domain_errors_are_not_retried(db_session):
    calls = []

    def fails():
        calls.append(1)
        raise ValueError("bad input")

    with pytest.raises(ValueError):
        run_with_retry(fails, session=db_session, backoff_base=0)
    assert len(calls) == 1


def test_stale_version_is_detected(app, db_session, make_product, make_item):
    item = make_item(make_product(), quantity=5)
    assert item.version_id == 1

    # Simulate a concurrent writer bumping the row behind the session's back
    db_session.execute(
        InventoryItem.__table__.update()
        .where(InventoryItem.__table__.c.id == item.id)
        .values(quantity=4, version_id=InventoryItem.__table__.c.version_id + 1)
    )
    item.quantity = 3
    with pytest.raises(StaleDataError):
        db_session.flush()
    db_session.rollback()


def test_sequence_numbers(db_session):
    assert next_sequence_number(db_session, prefix="PED") == 1
    assert next_sequence_number(db_session, prefix="PED") == 2
    assert next_sequence_number(db_session, prefix="TKT") == 1
    db_session.commit()

    assert db_session.query(OrderSequence).filter_by(prefix="PED").one().next_number == 3
    assert format_order_number("PED", 42) == "PED-000042"


def test_concurrent_deduction_of_last_unit(tmp_path, monkeypatch):
    """
    A second connection takes the last unit between the delivery's read and
    its write: the version check forces a retry, which then sees no stock.
    """
    url = f"sqlite:///{tmp_path / 'race.sqlite3'}"
    race_app = create_app(TestConfig, SQLALCHEMY_DATABASE_URI=url)
    other = create_engine(url)

    with race_app.app_context():
        db.create_all()
        try:
            engine = get_engine()
            product = Product(name="Croissant", price_cents=3000)
            db.session.add(product)
            db.session.flush()
            item = InventoryItem(product_id=product.id, quantity=1, minimum_quantity=0, unit="pieza")
            db.session.add(item)
            db.session.commit()
            item_id = item.id

            order = engine.orders.create_order([{"product_id": product.id, "quantity": 1}])
            engine.orders.advance_state(order.id, "IN_PREPARATION")
            engine.orders.advance_state(order.id, "READY")

            reads = []
            inventory_repo = engine.orders.inventory
            original_read = inventory_repo.get_item_by_product
            original_append = inventory_repo.append_movement

            def counting_read(product_id, lock=False):
                reads.append(product_id)
                return original_read(product_id, lock=lock)

            def append_after_rival(movement):
                if len(reads) == 1:
                    table = InventoryItem.__table__
                    with other.begin() as conn:
                        conn.execute(
                            table.update()
                            .where(table.c.id == item_id)
                            .values(quantity=0, version_id=table.c.version_id + 1)
                        )
                return original_append(movement)

            monkeypatch.setattr(inventory_repo, "get_item_by_product", counting_read)
            monkeypatch.setattr(inventory_repo, "append_movement", append_after_rival)

            with pytest.raises(InsufficientStock):
                engine.orders.advance_state(order.id, "DELIVERED")

            assert len(reads) == 2
            assert db.session.get(InventoryItem, item_id).quantity == 0
            assert db.session.query(StockMovement).count() == 0
            assert db.session.get(Order, order.id).status == "READY"
        finally:
            db.session.remove()
            db.drop_all()
            db.engine.dispose()
            other.dispose()
