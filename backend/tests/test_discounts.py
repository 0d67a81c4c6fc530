"""Discount eligibility and pricing."""

from datetime import timedelta

import pytest

from cafepos.errors import (
    DiscountExpired,
    DiscountInactive,
    DiscountNotApplicable,
    DiscountNotFound,
    DiscountNotYetStarted,
    InvalidQuantity,
)
from cafepos.models import Discount
from cafepos.time_utils import utcnow


def test_percentage_discount(engine, make_discount):
    discount = make_discount("PERCENTAGE", 1000)

    result = engine.discounts.apply(discount.id, 8500)

    assert result.discount_cents == 850
    assert result.subtotal_after_cents == 7650


def test_percentage_rounds_half_up(engine, make_discount):
    discount = make_discount("PERCENTAGE", 1250)
    # 12.5% of 1004 = 125.5
    assert engine.discounts.apply(discount.id, 1004).discount_cents == 126


def test_fixed_amount_is_clamped_to_subtotal(engine, make_discount):
    discount = make_discount("FIXED_AMOUNT", 5000)

    result = engine.discounts.apply(discount.id, 3000)

    assert result.discount_cents == 3000
    assert result.subtotal_after_cents == 0


def test_usage_counter_increments(engine, db_session, make_discount):
    discount = make_discount("FIXED_AMOUNT", 100)

    engine.discounts.apply(discount.id, 1000)
    engine.discounts.apply(discount.id, 1000)

    assert db_session.get(Discount, discount.id).usage_count == 2


def test_inactive(engine, make_discount):
    discount = make_discount(is_active=False)
    with pytest.raises(DiscountInactive):
        engine.discounts.apply(discount.id, 1000)


def test_window(engine, make_discount):
    now = utcnow()
    future = make_discount(starts_at=now + timedelta(days=1))
    past = make_discount(ends_at=now - timedelta(days=1))

    with pytest.raises(DiscountNotYetStarted):
        engine.discounts.apply(future.id, 1000)
    with pytest.raises(DiscountExpired):
        engine.discounts.apply(past.id, 1000)


def test_min_item_count(engine, db_session, make_discount):
    discount = make_discount(min_item_count=3)

    with pytest.raises(DiscountNotApplicable) as exc:
        engine.discounts.apply(discount.id, 1000, item_count=2)
    assert exc.value.details["min_item_count"] == 3
    assert db_session.get(Discount, discount.id).usage_count == 0

    assert engine.discounts.apply(discount.id, 1000, item_count=3).discount_cents == 100


def test_unknown_discount(engine):
    with pytest.raises(DiscountNotFound):
        engine.discounts.apply(42, 1000)


def test_negative_subtotal_rejected(engine, make_discount):
    discount = make_discount()
    with pytest.raises(InvalidQuantity):
        engine.discounts.apply(discount.id, -1)


def test_list_applicable(engine, make_discount):
    open_promo = make_discount(name="Always")
    make_discount(name="Big orders", min_item_count=5)
    make_discount(name="Off", is_active=False)

    names = [d.name for d in engine.discounts.list_applicable(item_count=2)]
    assert names == [open_promo.name]
