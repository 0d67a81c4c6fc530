"""Catalog maintenance: products and discounts."""

import pytest

from cafepos.errors import DiscountNotFound, ProductNotFound
from cafepos.models import Discount, Product
from cafepos.validation import ValidationError


def test_create_and_update_product(engine):
    product = engine.catalog.create_product({"name": "Mocha", "price_cents": 4200, "category": "BEBIDA"})
    assert product.id is not None
    assert product.is_available is True

    updated = engine.catalog.update_product(product.id, {"price_cents": 4500})
    assert updated.price_cents == 4500


@pytest.mark.parametrize("price", [-1, 1_000_000_000])
def test_price_bounds(engine, price):
    with pytest.raises(ValidationError):
        engine.catalog.create_product({"name": "Bad", "price_cents": price})


def test_unreferenced_product_is_erased(engine, db_session, make_product):
    product = make_product()
    assert engine.catalog.remove_product(product.id) == "erased"
    assert db_session.get(Product, product.id) is None


def test_referenced_product_is_deactivated(engine, db_session, make_product):
    product = make_product()
    engine.orders.create_order([{"product_id": product.id, "quantity": 1}])

    assert engine.catalog.remove_product(product.id) == "deactivated"
    assert db_session.get(Product, product.id).is_available is False


def test_product_with_stock_record_is_deactivated(engine, make_product, make_item):
    product = make_product()
    make_item(product)
    assert engine.catalog.remove_product(product.id) == "deactivated"


def test_remove_unknown(engine):
    with pytest.raises(ProductNotFound):
        engine.catalog.remove_product(5)
    with pytest.raises(DiscountNotFound):
        engine.catalog.remove_discount(5)


def test_discount_rules(engine):
    with pytest.raises(ValidationError):
        engine.catalog.create_discount({"name": "Too much", "discount_type": "PERCENTAGE", "value": 10001})
    with pytest.raises(ValidationError):
        engine.catalog.create_discount({"name": "Zero", "discount_type": "FIXED_AMOUNT", "value": 0})
    with pytest.raises(ValidationError):
        engine.catalog.create_discount({"name": "Odd", "discount_type": "BOGO", "value": 1})

    discount = engine.catalog.create_discount({"name": "Half", "discount_type": "PERCENTAGE", "value": 5000})
    assert discount.usage_count == 0


def test_discount_update_checks_against_stored_values(engine):
    discount = engine.catalog.create_discount({"name": "Fixed", "discount_type": "FIXED_AMOUNT", "value": 20000})

    # 20000 basis points would be 200%
    with pytest.raises(ValidationError):
        engine.catalog.update_discount(discount.id, {"discount_type": "PERCENTAGE"})

    updated = engine.catalog.update_discount(discount.id, {"discount_type": "PERCENTAGE", "value": 1500})
    assert updated.value == 1500


def test_discount_removal(engine, db_session, make_product, make_discount):
    product = make_product()
    used = make_discount(name="Used")
    unused = make_discount(name="Unused")
    engine.orders.create_order([{"product_id": product.id, "quantity": 1}], discount_id=used.id)

    assert engine.catalog.remove_discount(used.id) == "deactivated"
    assert db_session.get(Discount, used.id).is_active is False
    assert engine.catalog.remove_discount(unused.id) == "erased"
    assert db_session.get(Discount, unused.id) is None
