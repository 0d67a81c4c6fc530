# Overview: ABC (Pareto) classification of products by delivered revenue.

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from ..time_utils import normalize_datetime, to_utc_z
from ..validation import ValidationError

TIERS = ("A", "B", "C")
TIER_A_LIMIT = 80.0
TIER_B_LIMIT = 95.0


@dataclass(frozen=True)
class ABCClassification:
    product_id: int
    product_name: str | None
    tier: str
    revenue_cents: int
    units_sold: int
    cumulative_pct: float

    def to_dict(self) -> dict:
        return {
            "product_id": self.product_id,
            "product_name": self.product_name,
            "tier": self.tier,
            "revenue_cents": self.revenue_cents,
            "units_sold": self.units_sold,
            "cumulative_pct": round(self.cumulative_pct, 4),
        }


def tier_for(cumulative_pct: float) -> str:
    if cumulative_pct <= TIER_A_LIMIT:
        return "A"
    if cumulative_pct <= TIER_B_LIMIT:
        return "B"
    return "C"


def classify_totals(totals: dict[int, tuple[int, int]], names: dict[int, str] | None = None) -> list[ABCClassification]:
    """
    totals: product_id -> (revenue_cents, units_sold).

    Products without revenue are left out. Highest revenue first, product id
    breaking ties.
    """
    names = names or {}
    ranked = sorted(
        ((pid, revenue, units) for pid, (revenue, units) in totals.items() if revenue > 0),
        key=lambda row: (-row[1], row[0]),
    )
    grand_total = sum(revenue for _, revenue, _ in ranked)
    if grand_total <= 0:
        return []

    result = []
    cumulative = 0
    for product_id, revenue, units in ranked:
        cumulative += revenue
        pct = cumulative * 100.0 / grand_total
        result.append(
            ABCClassification(
                product_id=product_id,
                product_name=names.get(product_id),
                tier=tier_for(pct),
                revenue_cents=revenue,
                units_sold=units,
                cumulative_pct=pct,
            )
        )
    return result


class ABCClassifier:
    def __init__(self, catalog_repo, order_repo):
        self.catalog = catalog_repo
        self.orders = order_repo

    def classify_products(
        self,
        start: datetime | None = None,
        end: datetime | None = None,
        tier: str | None = None,
    ) -> list[ABCClassification]:
        """Rank delivered-order revenue in [start, end] and assign A/B/C tiers."""
        if tier is not None and tier not in TIERS:
            raise ValidationError("tier must be A, B or C")
        start = normalize_datetime(start)
        end = normalize_datetime(end)
        if start is not None and end is not None and start > end:
            raise ValidationError("start must be before end")

        totals: dict[int, tuple[int, int]] = {}
        names: dict[int, str] = {}
        for order in self.orders.list_delivered(start, end):
            for line in order.lines:
                revenue, units = totals.get(line.product_id, (0, 0))
                totals[line.product_id] = (revenue + line.line_total_cents, units + line.quantity)
                names.setdefault(line.product_id, line.product_name)

        for product_id in totals:
            product = self.catalog.get_product(product_id)
            if product is not None:
                names[product_id] = product.name

        classifications = classify_totals(totals, names)
        if tier is not None:
            classifications = [c for c in classifications if c.tier == tier]
        return classifications

    def report(self, start: datetime | None = None, end: datetime | None = None) -> dict:
        classifications = self.classify_products(start, end)
        summary = {}
        for tier in TIERS:
            members = [c for c in classifications if c.tier == tier]
            summary[tier] = {
                "count": len(members),
                "revenue_cents": sum(c.revenue_cents for c in members),
            }
        return {
            "start": to_utc_z(normalize_datetime(start)),
            "end": to_utc_z(normalize_datetime(end)),
            "total": len(classifications),
            "total_revenue_cents": sum(c.revenue_cents for c in classifications),
            "tiers": summary,
            "classifications": [c.to_dict() for c in classifications],
        }
