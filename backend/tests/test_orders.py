"""Order creation, pricing and lifecycle."""

import pytest
from sqlalchemy.orm.exc import StaleDataError

from cafepos.errors import (
    DiscountInactive,
    EmptyOrder,
    InsufficientStock,
    InvalidQuantity,
    InvalidTransition,
    OrderNotFound,
    ProductNotFound,
    ProductUnavailable,
)
from cafepos.models import Discount, InventoryItem, Order, StockMovement


def _to_ready(engine, order_id):
    engine.orders.advance_state(order_id, "IN_PREPARATION")
    return engine.orders.advance_state(order_id, "READY")


def test_pricing_example_with_discount(engine, db_session, make_product, make_item, make_discount):
    latte = make_product(name="Latte", price_cents=2500)
    sandwich = make_product(name="Sandwich", price_cents=3500)
    make_item(latte, quantity=10)
    make_item(sandwich, quantity=10)
    discount = make_discount("PERCENTAGE", 1000)

    order = engine.orders.create_order(
        [{"product_id": latte.id, "quantity": 2}, {"product_id": sandwich.id, "quantity": 1}],
        discount_id=discount.id,
        payment_method="CASH",
        table_id="M-4",
    )

    assert order.gross_subtotal_cents == 8500
    assert order.discount_cents == 850
    assert order.subtotal_cents == 7650
    assert order.tax_cents == 1224
    assert order.total_cents == 8874
    assert order.status == "PENDING"
    assert order.discount_id == discount.id
    assert db_session.get(Discount, discount.id).usage_count == 1


def test_total_is_derivable_from_inputs(engine, make_product):
    product = make_product(price_cents=1999)
    order = engine.orders.create_order([{"product_id": product.id, "quantity": 3}])

    assert order.gross_subtotal_cents == 5997
    assert order.tax_cents == (order.subtotal_cents * order.tax_rate_bps + 5000) // 10000
    assert order.total_cents == order.subtotal_cents + order.tax_cents


def test_numbers_are_sequential(engine, make_product):
    product = make_product()
    first = engine.orders.create_order([{"product_id": product.id, "quantity": 1}])
    second = engine.orders.create_order([{"product_id": product.id, "quantity": 1}])

    assert first.number == "PED-000001"
    assert second.number == "PED-000002"


def test_creation_does_not_touch_stock(engine, db_session, make_product, make_item):
    product = make_product()
    item = make_item(product, quantity=5)

    engine.orders.create_order([{"product_id": product.id, "quantity": 5}])

    assert db_session.get(InventoryItem, item.id).quantity == 5
    assert db_session.query(StockMovement).count() == 0


def test_lines_snapshot_price(engine, db_session, make_product):
    product = make_product(name="Te chai", price_cents=3000)
    order = engine.orders.create_order([{"product_id": product.id, "quantity": 2}])

    engine.catalog.update_product(product.id, {"price_cents": 4000, "name": "Te chai grande"})

    reloaded = engine.orders.get_order(order.id)
    assert reloaded.lines[0].unit_price_cents == 3000
    assert reloaded.lines[0].product_name == "Te chai"
    assert reloaded.total_cents == order.total_cents


def test_empty_order(engine):
    with pytest.raises(EmptyOrder):
        engine.orders.create_order([])


@pytest.mark.parametrize("quantity", [0, -1, 1.5, "2", None])
def test_bad_line_quantity(engine, make_product, quantity):
    product = make_product()
    with pytest.raises(InvalidQuantity):
        engine.orders.create_order([{"product_id": product.id, "quantity": quantity}])


def test_unknown_and_unavailable_products(engine, make_product):
    hidden = make_product(name="Temporada", is_available=False)

    with pytest.raises(ProductNotFound):
        engine.orders.create_order([{"product_id": 9999, "quantity": 1}])
    with pytest.raises(ProductUnavailable):
        engine.orders.create_order([{"product_id": hidden.id, "quantity": 1}])


def test_stock_check_aggregates_lines_of_same_product(engine, db_session, make_product, make_item):
    product = make_product(name="Muffin")
    make_item(product, quantity=3)

    with pytest.raises(InsufficientStock) as exc:
        engine.orders.create_order(
            [{"product_id": product.id, "quantity": 2}, {"product_id": product.id, "quantity": 2}]
        )

    assert exc.value.available == 3
    assert exc.value.requested == 4
    assert db_session.query(Order).count() == 0


def test_failed_order_consumes_no_number_or_discount_use(engine, db_session, make_product, make_discount):
    product = make_product()
    inactive = make_discount(is_active=False)

    with pytest.raises(DiscountInactive):
        engine.orders.create_order([{"product_id": product.id, "quantity": 1}], discount_id=inactive.id)

    assert db_session.query(Order).count() == 0
    order = engine.orders.create_order([{"product_id": product.id, "quantity": 1}])
    assert order.number == "PED-000001"


def test_untracked_product_can_be_ordered_and_delivered(engine, make_product):
    product = make_product(name="Agua del dia")
    order = engine.orders.create_order([{"product_id": product.id, "quantity": 50}])

    _to_ready(engine, order.id)
    delivered = engine.orders.advance_state(order.id, "DELIVERED")

    assert delivered.status == "DELIVERED"


def test_forward_path(engine, make_product, make_item):
    product = make_product()
    make_item(product, quantity=5)
    order = engine.orders.create_order([{"product_id": product.id, "quantity": 1}])

    assert engine.orders.advance_state(order.id, "IN_PREPARATION").status == "IN_PREPARATION"
    assert engine.orders.advance_state(order.id, "READY").status == "READY"
    delivered = engine.orders.advance_state(order.id, "DELIVERED")
    assert delivered.status == "DELIVERED"
    assert delivered.delivered_at is not None


@pytest.mark.parametrize("target", ["READY", "DELIVERED", "PENDING", "SERVED"])
def test_invalid_transitions_from_pending(engine, make_product, target):
    product = make_product()
    order = engine.orders.create_order([{"product_id": product.id, "quantity": 1}])

    with pytest.raises(InvalidTransition) as exc:
        engine.orders.advance_state(order.id, target)
    assert exc.value.current == "PENDING"
    assert engine.orders.get_order(order.id).status == "PENDING"


def test_no_moving_backwards(engine, make_product):
    product = make_product()
    order = engine.orders.create_order([{"product_id": product.id, "quantity": 1}])
    _to_ready(engine, order.id)

    with pytest.raises(InvalidTransition):
        engine.orders.advance_state(order.id, "IN_PREPARATION")


def test_delivery_deducts_stock_once(engine, db_session, make_product, make_item):
    latte = make_product(name="Latte", price_cents=2500)
    bagel = make_product(name="Bagel", price_cents=1800)
    latte_item = make_item(latte, quantity=10)
    bagel_item = make_item(bagel, quantity=4)
    order = engine.orders.create_order(
        [{"product_id": latte.id, "quantity": 2}, {"product_id": bagel.id, "quantity": 1}]
    )
    _to_ready(engine, order.id)

    engine.orders.advance_state(order.id, "DELIVERED")

    assert db_session.get(InventoryItem, latte_item.id).quantity == 8
    assert db_session.get(InventoryItem, bagel_item.id).quantity == 3
    movements = db_session.query(StockMovement).filter_by(order_id=order.id).all()
    assert len(movements) == 2
    assert {m.reason for m in movements} == {f"Order {order.number}"}
    assert all(m.movement_type == "OUT" for m in movements)

    with pytest.raises(InvalidTransition):
        engine.orders.advance_state(order.id, "DELIVERED")
    assert db_session.get(InventoryItem, latte_item.id).quantity == 8
    assert db_session.query(StockMovement).filter_by(order_id=order.id).count() == 2


def test_partial_delivery_rolls_back(engine, db_session, make_product, make_item):
    latte = make_product(name="Latte")
    bagel = make_product(name="Bagel")
    latte_item = make_item(latte, quantity=10)
    bagel_item = make_item(bagel, quantity=2)
    order = engine.orders.create_order(
        [{"product_id": latte.id, "quantity": 3}, {"product_id": bagel.id, "quantity": 2}]
    )
    _to_ready(engine, order.id)
    engine.ledger.adjust(bagel_item.id, 1, "ADJUST", "Spoiled")

    with pytest.raises(InsufficientStock) as exc:
        engine.orders.advance_state(order.id, "DELIVERED")

    assert exc.value.product_id == bagel.id
    assert db_session.get(InventoryItem, latte_item.id).quantity == 10
    assert db_session.get(InventoryItem, bagel_item.id).quantity == 1
    assert db_session.query(StockMovement).filter_by(order_id=order.id).count() == 0
    assert engine.orders.get_order(order.id).status == "READY"


def test_last_unit_is_over_promised_and_caught_at_delivery(engine, db_session, make_product, make_item):
    product = make_product(name="Cheesecake")
    item = make_item(product, quantity=1)

    first = engine.orders.create_order([{"product_id": product.id, "quantity": 1}])
    second = engine.orders.create_order([{"product_id": product.id, "quantity": 1}])
    _to_ready(engine, first.id)
    _to_ready(engine, second.id)

    engine.orders.advance_state(first.id, "DELIVERED")
    with pytest.raises(InsufficientStock):
        engine.orders.advance_state(second.id, "DELIVERED")

    assert db_session.get(InventoryItem, item.id).quantity == 0
    assert engine.orders.get_order(second.id).status == "READY"


@pytest.mark.parametrize("steps", [[], ["IN_PREPARATION"], ["IN_PREPARATION", "READY"]])
def test_cancel_from_any_open_state_leaves_stock(engine, db_session, make_product, make_item, steps):
    product = make_product()
    item = make_item(product, quantity=5)
    order = engine.orders.create_order([{"product_id": product.id, "quantity": 2}])
    for step in steps:
        engine.orders.advance_state(order.id, step)

    cancelled = engine.orders.cancel_order(order.id)

    assert cancelled.status == "CANCELLED"
    assert cancelled.cancelled_at is not None
    assert db_session.get(InventoryItem, item.id).quantity == 5
    assert db_session.query(StockMovement).count() == 0


def test_terminal_states_are_final(engine, make_product):
    product = make_product()
    order = engine.orders.create_order([{"product_id": product.id, "quantity": 1}])
    engine.orders.cancel_order(order.id)

    with pytest.raises(InvalidTransition):
        engine.orders.advance_state(order.id, "IN_PREPARATION")
    with pytest.raises(InvalidTransition):
        engine.orders.cancel_order(order.id)


def test_unknown_order(engine):
    with pytest.raises(OrderNotFound):
        engine.orders.advance_state(404, "READY")
    with pytest.raises(OrderNotFound):
        engine.orders.get_order(404)


def test_list_orders_filters(engine, make_product):
    product = make_product()
    a = engine.orders.create_order([{"product_id": product.id, "quantity": 1}], table_id="M-1")
    b = engine.orders.create_order([{"product_id": product.id, "quantity": 1}], table_id="M-2")
    engine.orders.cancel_order(b.id)

    assert [o.id for o in engine.orders.list_orders(table_id="M-1")] == [a.id]
    assert [o.id for o in engine.orders.list_orders(status="CANCELLED")] == [b.id]


def test_create_order_retries_on_concurrent_discount_update(
    engine, db_session, monkeypatch, make_product, make_discount,
):
    product = make_product(price_cents=1000)
    discount = make_discount("PERCENTAGE", 1000)
    catalog_repo = engine.discounts.catalog
    original = catalog_repo.increment_discount_usage
    calls = []

    def conflicting(row):
        calls.append(row.id)
        if len(calls) == 1:
            raise StaleDataError("discount row changed underneath")
        return original(row)

    monkeypatch.setattr(catalog_repo, "increment_discount_usage", conflicting)

    order = engine.orders.create_order([{"product_id": product.id, "quantity": 2}], discount_id=discount.id)

    assert len(calls) == 2
    assert order.number == "PED-000001"
    assert order.discount_cents == 200
    assert db_session.query(Order).count() == 1
    assert db_session.get(Discount, discount.id).usage_count == 1


def test_create_order_accepts_a_generator_of_lines(engine, make_product):
    product = make_product()
    lines = ({"product_id": product.id, "quantity": q} for q in (1, 2))
    order = engine.orders.create_order(lines)
    assert [line.quantity for line in order.lines] == [1, 2]


@pytest.mark.parametrize("product_id", [[1, 2], {"id": 1}, "1", True])
def test_malformed_product_id_is_not_found(engine, make_product, product_id):
    make_product()
    with pytest.raises(ProductNotFound):
        engine.orders.create_order([{"product_id": product_id, "quantity": 1}])
