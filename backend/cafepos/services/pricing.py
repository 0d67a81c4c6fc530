# Overview: Integer-cent pricing arithmetic shared by discounts and orders.

from __future__ import annotations

from typing import NamedTuple


class OrderTotals(NamedTuple):
    gross_subtotal_cents: int
    discount_cents: int
    subtotal_cents: int
    tax_cents: int
    total_cents: int


def apply_rate_bps(amount_cents: int, rate_bps: int) -> int:
    """amount * rate / 10000 with nearest-cent rounding (half-up)."""
    return (amount_cents * rate_bps + 5000) // 10000


def price_totals(gross_subtotal_cents: int, discount_cents: int, tax_rate_bps: int) -> OrderTotals:
    """
    Derive every order amount from its three inputs.

    total = (gross - discount) * (1 + rate), tax rounded once, half-up.
    """
    subtotal = gross_subtotal_cents - discount_cents
    tax = apply_rate_bps(subtotal, tax_rate_bps)
    return OrderTotals(
        gross_subtotal_cents=gross_subtotal_cents,
        discount_cents=discount_cents,
        subtotal_cents=subtotal,
        tax_cents=tax,
        total_cents=subtotal + tax,
    )
