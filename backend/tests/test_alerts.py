"""Inventory alerts."""

from datetime import date

import pytest

from cafepos.services.alert_service import expiry_severity, stock_severity

TODAY = date(2026, 3, 10)


@pytest.mark.parametrize(
    "quantity,minimum,expected",
    [
        (0, 10, ("OUT_OF_STOCK", "CRITICAL")),
        (0, 0, ("OUT_OF_STOCK", "CRITICAL")),
        (2, 10, ("LOW_STOCK", "HIGH")),
        (5, 10, ("LOW_STOCK", "MEDIUM")),
        (8, 10, ("LOW_STOCK", "LOW")),
        (10, 10, ("LOW_STOCK", "LOW")),
    ],
)
def test_stock_severity(quantity, minimum, expected):
    assert stock_severity(quantity, minimum) == expected


@pytest.mark.parametrize("days_left,expected", [(0, "CRITICAL"), (2, "CRITICAL"), (3, "HIGH"), (4, "HIGH"), (5, "MEDIUM")])
def test_expiry_severity(days_left, expected):
    assert expiry_severity(days_left) == expected


def test_check_alerts(engine, make_product, make_item):
    empty = make_item(make_product(name="Leche"), quantity=0, minimum_quantity=5)
    low = make_item(make_product(name="Pan"), quantity=2, minimum_quantity=10)
    make_item(make_product(name="Cafe"), quantity=50, minimum_quantity=5)
    expiring = make_item(make_product(name="Yogur"), quantity=20, minimum_quantity=5, expiry_date=date(2026, 3, 13))
    make_item(make_product(name="Queso"), quantity=20, minimum_quantity=5, expiry_date=date(2026, 3, 30))
    make_item(make_product(name="Crema"), quantity=20, minimum_quantity=5, expiry_date=date(2026, 3, 1))

    alerts = engine.alerts.check_alerts(days=7, today=TODAY)

    assert [(a.inventory_item_id, a.alert_type, a.severity) for a in alerts] == [
        (empty.id, "OUT_OF_STOCK", "CRITICAL"),
        (low.id, "LOW_STOCK", "HIGH"),
        (expiring.id, "EXPIRING", "HIGH"),
    ]
    assert "3 days" in alerts[-1].message
    assert alerts[0].product_name == "Leche"


def test_no_alerts(engine, make_product, make_item):
    make_item(make_product(), quantity=50, minimum_quantity=5)
    assert engine.alerts.check_alerts(today=TODAY) == []
