# backend/cafepos/config.py
from __future__ import annotations
import os


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/cafepos.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///cafepos.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Pricing: 16% IVA, stored in basis points
    TAX_RATE_BPS = int(os.environ.get("TAX_RATE_BPS", "1600"))
    ORDER_NUMBER_PREFIX = os.environ.get("ORDER_NUMBER_PREFIX", "PED")

    # Replenishment analytics
    FORECAST_WINDOW_DAYS = int(os.environ.get("FORECAST_WINDOW_DAYS", "30"))
    REORDER_WINDOW_DAYS = int(os.environ.get("REORDER_WINDOW_DAYS", "90"))
    DEFAULT_SERVICE_LEVEL = float(os.environ.get("DEFAULT_SERVICE_LEVEL", "0.95"))
    DEFAULT_LEAD_TIME_DAYS = int(os.environ.get("DEFAULT_LEAD_TIME_DAYS", "7"))
    # Stand-in for ordering cost / holding cost until real cost inputs exist
    REORDER_COST_FACTOR = float(os.environ.get("REORDER_COST_FACTOR", "10"))

    EXPIRY_ALERT_DAYS = int(os.environ.get("EXPIRY_ALERT_DAYS", "7"))


class TestConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    LOG_LEVEL = "WARNING"
