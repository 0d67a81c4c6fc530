# Overview: Demand forecasting from delivered-order history (double exponential smoothing).

from __future__ import annotations

import math
from collections import defaultdict
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import Iterable

from flask import current_app

from ..errors import ProductNotFound
from ..time_utils import normalize_datetime, to_utc_z, utcnow
from ..validation import ValidationError

METHOD_EXPONENTIAL_SMOOTHING = "EXPONENTIAL_SMOOTHING"

ALPHA = 0.3
BETA = 0.1
SEED_OBSERVATIONS = 7
SAFETY_FACTOR = 1.5


@dataclass(frozen=True)
class DemandForecast:
    product_id: int
    forecast: int
    confidence: float
    method: str
    window_days: int
    observations: int
    computed_at: datetime

    def to_dict(self) -> dict:
        return {
            "product_id": self.product_id,
            "forecast": self.forecast,
            "confidence": self.confidence,
            "method": self.method,
            "window_days": self.window_days,
            "observations": self.observations,
            "computed_at": to_utc_z(self.computed_at),
        }


def round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def _utc_day(value: datetime) -> date:
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc)
    return value.date()


def daily_demand_series(rows: Iterable) -> list[int]:
    """
    Units per UTC calendar day, oldest first.

    rows: (created_at, quantity) pairs or rows exposing those attributes.
    Days without sales do not appear in the result.
    """
    per_day: dict[date, int] = defaultdict(int)
    for row in rows:
        created_at, quantity = (row.created_at, row.quantity) if hasattr(row, "created_at") else row
        per_day[_utc_day(created_at)] += int(quantity)
    return [per_day[day] for day in sorted(per_day)]


def population_stats(series: list) -> tuple[float, float]:
    """Mean and population standard deviation; (0, 0) for an empty series."""
    if not series:
        return 0.0, 0.0
    mean = sum(series) / len(series)
    variance = sum((x - mean) ** 2 for x in series) / len(series)
    return mean, math.sqrt(variance)


def double_exponential_smoothing(series: list, alpha: float = ALPHA, beta: float = BETA) -> tuple[float, float]:
    """
    Holt's linear smoothing.

    Level is seeded with the mean of the first SEED_OBSERVATIONS points and
    trend with zero; updates run from the second observation on.
    """
    if not series:
        return 0.0, 0.0
    seed = series[:SEED_OBSERVATIONS]
    level = sum(seed) / len(seed)
    trend = 0.0
    for value in series[1:]:
        previous = level
        level = alpha * value + (1 - alpha) * (level + trend)
        trend = beta * (level - previous) + (1 - beta) * trend
    return level, trend


def confidence_from_series(series: list) -> float:
    """1 - coefficient of variation, clamped to [0, 1]."""
    mean, stdev = population_stats(series)
    if mean <= 0:
        return 0.0
    return max(0.0, min(1.0, 1 - stdev / mean))


def forecast_from_series(series: list) -> tuple[int, float]:
    if not series:
        return 0, 0.0
    level, trend = double_exponential_smoothing(series)
    return max(0, round_half_up(level + trend)), confidence_from_series(series)


class DemandForecaster:
    def __init__(self, catalog_repo, order_repo, *, window_days: int = 30, lead_time_days: int = 7):
        self.catalog = catalog_repo
        self.orders = order_repo
        self.window_days = window_days
        self.lead_time_days = lead_time_days

    def history(self, product_id: int, window_days: int, as_of: datetime | None = None) -> list[int]:
        end = normalize_datetime(as_of) or utcnow()
        start = end - timedelta(days=window_days)
        rows = self.orders.delivered_lines(start=start, end=end, product_id=product_id)
        return daily_demand_series(rows)

    def forecast_demand(
        self,
        product_id: int,
        window_days: int | None = None,
        as_of: datetime | None = None,
    ) -> DemandForecast:
        """Next-day demand for a product from its recent delivered orders."""
        if self.catalog.get_product(product_id) is None:
            raise ProductNotFound(product_id)
        if window_days is None:
            window_days = self.window_days
        if window_days <= 0:
            raise ValidationError("window_days must be > 0")

        series = self.history(product_id, window_days, as_of)
        forecast, confidence = forecast_from_series(series)
        current_app.logger.debug(
            "Forecast product=%s days=%d forecast=%d confidence=%.3f",
            product_id, len(series), forecast, confidence,
        )
        return DemandForecast(
            product_id=product_id,
            forecast=forecast,
            confidence=confidence,
            method=METHOD_EXPONENTIAL_SMOOTHING,
            window_days=window_days,
            observations=len(series),
            computed_at=utcnow(),
        )

    def predict_demand(
        self,
        product_id: int,
        days: int = 7,
        window_days: int | None = None,
        as_of: datetime | None = None,
    ) -> int:
        """Total demand expected over the next ``days`` days."""
        forecast = self.forecast_demand(product_id, window_days=window_days, as_of=as_of)
        return max(0, round_half_up(forecast.forecast * days))

    def minimum_stock_for(self, forecast: DemandForecast) -> int:
        """Lead-time demand of an existing forecast plus the safety margin."""
        return math.ceil(forecast.forecast * self.lead_time_days * SAFETY_FACTOR)

    def recommend_minimum_stock(
        self,
        product_id: int,
        window_days: int | None = None,
        as_of: datetime | None = None,
    ) -> int:
        return self.minimum_stock_for(self.forecast_demand(product_id, window_days=window_days, as_of=as_of))

    def forecast_all(self, window_days: int | None = None, as_of: datetime | None = None) -> list[DemandForecast]:
        return [
            self.forecast_demand(product.id, window_days=window_days, as_of=as_of)
            for product in self.catalog.list_products()
        ]
