# Overview: (s, Q) continuous-review reorder policy per inventory item.

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timedelta

from flask import current_app

from ..errors import InventoryItemNotFound
from ..time_utils import normalize_datetime, to_utc_z, utcnow
from ..validation import ValidationError
from .forecasting import daily_demand_series, population_stats

# One-sided standard normal quantiles for common service levels.
Z_SCORES = {
    0.80: 0.842,
    0.85: 1.036,
    0.90: 1.282,
    0.95: 1.645,
    0.99: 2.326,
}

DEFAULT_MEAN_DEMAND = 1.0
DEFAULT_STD_DEMAND = 0.5
MIN_STATISTIC = 0.1


def z_for_service_level(service_level: float) -> float:
    """
    z for the first tabulated level >= service_level.

    Levels above the highest tabulated one use its z.
    """
    if not 0 < service_level < 1:
        raise ValidationError("service_level must be between 0 and 1 (exclusive)")
    for level in sorted(Z_SCORES):
        if level >= service_level:
            return Z_SCORES[level]
    return Z_SCORES[max(Z_SCORES)]


def compute_reorder_values(
    mean_demand: float,
    std_demand: float,
    lead_time_days: int,
    service_level: float,
    cost_factor: float = 10.0,
) -> tuple[int, int]:
    """
    s = ceil(mean * L + z * std * sqrt(L))
    Q = ceil(sqrt(2 * mean * L * cost_factor))
    """
    z = z_for_service_level(service_level)
    reorder_point = math.ceil(mean_demand * lead_time_days + z * std_demand * math.sqrt(lead_time_days))
    reorder_quantity = math.ceil(math.sqrt(2 * mean_demand * lead_time_days * cost_factor))
    return reorder_point, reorder_quantity


@dataclass(frozen=True)
class ReorderPoint:
    inventory_item_id: int
    product_id: int
    reorder_point: int
    reorder_quantity: int
    service_level: float
    lead_time_days: int
    mean_demand: float
    std_demand: float
    computed_at: datetime

    def to_dict(self) -> dict:
        return {
            "inventory_item_id": self.inventory_item_id,
            "product_id": self.product_id,
            "reorder_point": self.reorder_point,
            "reorder_quantity": self.reorder_quantity,
            "service_level": self.service_level,
            "lead_time_days": self.lead_time_days,
            "mean_demand": self.mean_demand,
            "std_demand": self.std_demand,
            "computed_at": to_utc_z(self.computed_at),
        }


class ReorderPointCalculator:
    def __init__(
        self,
        inventory_repo,
        order_repo,
        *,
        window_days: int = 90,
        lead_time_days: int = 7,
        default_service_level: float = 0.95,
        cost_factor: float = 10.0,
    ):
        self.inventory = inventory_repo
        self.orders = order_repo
        self.window_days = window_days
        self.lead_time_days = lead_time_days
        self.default_service_level = default_service_level
        self.cost_factor = cost_factor

    def demand_statistics(self, product_id: int, as_of: datetime | None = None) -> tuple[float, float]:
        """Mean and std of observed daily demand; a conservative default without history."""
        end = normalize_datetime(as_of) or utcnow()
        start = end - timedelta(days=self.window_days)
        series = daily_demand_series(
            self.orders.delivered_lines(start=start, end=end, product_id=product_id)
        )
        if not series:
            return DEFAULT_MEAN_DEMAND, DEFAULT_STD_DEMAND
        mean, stdev = population_stats(series)
        return max(MIN_STATISTIC, mean), max(MIN_STATISTIC, stdev)

    def compute_reorder_point(
        self,
        item_id: int,
        service_level: float | None = None,
        as_of: datetime | None = None,
    ) -> ReorderPoint:
        if service_level is None:
            service_level = self.default_service_level
        z_for_service_level(service_level)

        item = self.inventory.get_item(item_id)
        if item is None:
            raise InventoryItemNotFound(item_id)

        mean, stdev = self.demand_statistics(item.product_id, as_of)
        s, q = compute_reorder_values(mean, stdev, self.lead_time_days, service_level, self.cost_factor)
        current_app.logger.debug("Reorder item=%s mean=%.2f std=%.2f s=%d Q=%d", item_id, mean, stdev, s, q)
        return ReorderPoint(
            inventory_item_id=item.id,
            product_id=item.product_id,
            reorder_point=s,
            reorder_quantity=q,
            service_level=service_level,
            lead_time_days=self.lead_time_days,
            mean_demand=mean,
            std_demand=stdev,
            computed_at=utcnow(),
        )

    def compute_all(self, service_level: float | None = None, as_of: datetime | None = None) -> list[ReorderPoint]:
        return [
            self.compute_reorder_point(item.id, service_level=service_level, as_of=as_of)
            for item in self.inventory.list_items()
        ]
