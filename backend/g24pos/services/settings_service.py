# Overview: Store profile settings (single row, defaults from config).

from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..models import StoreSettings


def default_store_settings() -> dict:
    return dict(current_app.config["DEFAULT_STORE_SETTINGS"])


def get_store_settings() -> StoreSettings:
    """Return the settings row, creating it from defaults on first access."""
    settings = db.session.query(StoreSettings).order_by(StoreSettings.id.asc()).first()
    if settings is None:
        settings = StoreSettings(**default_store_settings())
        db.session.add(settings)
        db.session.commit()
    return settings


def update_store_settings(*, patch: dict) -> StoreSettings:
    settings = get_store_settings()
    for k, v in patch.items():
        if k in StoreSettings.SERIALIZED_FIELDS:
            setattr(settings, k, v)
    db.session.commit()
    return settings


def reset_store_settings(values: dict | None = None) -> StoreSettings:
    """
    Replace all settings with defaults overlaid by values (flush only).

    Used by data import/clear, which own the surrounding transaction.
    """
    db.session.query(StoreSettings).delete(synchronize_session=False)
    merged = default_store_settings()
    for k, v in (values or {}).items():
        if k in StoreSettings.SERIALIZED_FIELDS:
            merged[k] = v
    settings = StoreSettings(**merged)
    db.session.add(settings)
    db.session.flush()
    return settings
