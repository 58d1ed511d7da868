# backend/g24pos/config.py
from __future__ import annotations
import os


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    return int(raw) if raw not in (None, "") else default


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/g24pos.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///g24pos.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Alert thresholds
    EXPIRY_WARNING_DAYS = _env_int("EXPIRY_WARNING_DAYS", 7)
    EXPIRY_URGENT_DAYS = _env_int("EXPIRY_URGENT_DAYS", 3)

    # One loyalty point per LOYALTY_POINT_UNIT of order total
    LOYALTY_POINT_UNIT = _env_int("LOYALTY_POINT_UNIT", 1000)

    # Reordering and forecasting
    AUTO_REORDER_MIN_QUANTITY = _env_int("AUTO_REORDER_MIN_QUANTITY", 50)
    FORECAST_WINDOW_DAYS = _env_int("FORECAST_WINDOW_DAYS", 30)

    # Retention for the append-only logs (used by `flask maintenance prune`)
    ALERT_RETENTION_DAYS = _env_int("ALERT_RETENTION_DAYS", 90)
    MOVEMENT_RETENTION_DAYS = _env_int("MOVEMENT_RETENTION_DAYS", 365)

    # Pause between items of a bulk operation, in seconds
    BULK_OPERATION_DELAY_SECONDS = float(os.environ.get("BULK_OPERATION_DELAY_SECONDS", "0"))

    DEFAULT_STORE_SETTINGS = {
        "store_name": os.environ.get("STORE_NAME", "G24Mart - Convenience Store"),
        "address": os.environ.get("STORE_ADDRESS", "123 ABC Street, District 1, Ho Chi Minh City"),
        "phone": os.environ.get("STORE_PHONE", "0123456789"),
        "email": os.environ.get("STORE_EMAIL", "contact@g24mart.vn"),
        "tax_number": os.environ.get("STORE_TAX_NUMBER", "0123456789"),
        "currency": os.environ.get("STORE_CURRENCY", "VND"),
        "tax_rate": float(os.environ.get("STORE_TAX_RATE", "10")),
        "enable_tax": os.environ.get("STORE_ENABLE_TAX", "true").lower() == "true",
    }

    SEED_DEMO_DATA = os.environ.get("SEED_DEMO_DATA", "true").lower() == "true"
