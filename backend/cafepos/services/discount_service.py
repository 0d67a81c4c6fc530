# Overview: Service-layer operations for discounts; validates eligibility and prices a discount.

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from ..errors import (
    DiscountExpired,
    DiscountInactive,
    DiscountNotApplicable,
    DiscountNotFound,
    DiscountNotYetStarted,
    EngineError,
    InvalidQuantity,
)
from ..models import Discount
from ..time_utils import to_utc_z, utcnow
from .pricing import apply_rate_bps

DISCOUNT_PERCENTAGE = "PERCENTAGE"
DISCOUNT_FIXED_AMOUNT = "FIXED_AMOUNT"
DISCOUNT_TYPES = (DISCOUNT_PERCENTAGE, DISCOUNT_FIXED_AMOUNT)


@dataclass(frozen=True)
class DiscountResult:
    discount_id: int
    discount_cents: int
    subtotal_after_cents: int

    def to_dict(self) -> dict:
        return {
            "discount_id": self.discount_id,
            "discount_cents": self.discount_cents,
            "subtotal_after_cents": self.subtotal_after_cents,
        }


def check_eligibility(discount: Discount, *, item_count: int | None = None, at: datetime | None = None) -> None:
    """Raise the first failing eligibility rule, or return None."""
    at = at or utcnow()
    if not discount.is_active:
        raise DiscountInactive(discount.id)
    if discount.starts_at is not None and at < discount.starts_at:
        raise DiscountNotYetStarted(discount.id, to_utc_z(discount.starts_at))
    if discount.ends_at is not None and at > discount.ends_at:
        raise DiscountExpired(discount.id, to_utc_z(discount.ends_at))
    if discount.min_item_count and item_count is not None and item_count < discount.min_item_count:
        raise DiscountNotApplicable(discount.id, discount.min_item_count, item_count)


def compute_discount_cents(discount: Discount, subtotal_cents: int) -> int:
    """Raw discount clamped so the subtotal never goes negative."""
    if discount.discount_type == DISCOUNT_PERCENTAGE:
        raw = apply_rate_bps(subtotal_cents, discount.value)
    else:
        raw = discount.value
    return max(0, min(raw, subtotal_cents))


class DiscountEvaluator:
    def __init__(self, session, catalog_repo):
        self.session = session
        self.catalog = catalog_repo

    def apply(
        self,
        discount_id: int,
        subtotal_cents: int,
        *,
        item_count: int | None = None,
        at: datetime | None = None,
        commit: bool = True,
    ) -> DiscountResult:
        """
        Validate a discount against an order and price it.

        Increments the usage counter. With commit=False the increment joins
        the caller's transaction, so an order that fails later does not
        count as a use.
        """
        if isinstance(subtotal_cents, bool) or not isinstance(subtotal_cents, int) or subtotal_cents < 0:
            raise InvalidQuantity("Subtotal cannot be negative", quantity=subtotal_cents)

        try:
            discount = self.catalog.get_discount(discount_id, lock=True)
            if discount is None:
                raise DiscountNotFound(discount_id)
            check_eligibility(discount, item_count=item_count, at=at)

            amount = compute_discount_cents(discount, subtotal_cents)
            self.catalog.increment_discount_usage(discount)
        except EngineError:
            if commit:
                self.session.rollback()
            raise

        if commit:
            self.session.commit()

        return DiscountResult(
            discount_id=discount.id,
            discount_cents=amount,
            subtotal_after_cents=subtotal_cents - amount,
        )

    def list_applicable(self, item_count: int, at: datetime | None = None) -> list[Discount]:
        """Active discounts an order with item_count items could use right now."""
        applicable = []
        for discount in self.catalog.list_discounts(active_only=True):
            try:
                check_eligibility(discount, item_count=item_count, at=at)
            except EngineError:
                continue
            applicable.append(discount)
        return applicable
