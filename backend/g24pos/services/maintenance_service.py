# Overview: Retention cleanup for the append-only alert and movement logs.

from __future__ import annotations

from flask import current_app

from .alert_service import prune_alerts
from .inventory_service import prune_stock_movements


def prune_history(*, alert_days: int | None = None, movement_days: int | None = None) -> dict:
    """
    Delete read alerts and stock movements older than their retention windows.

    Unread alerts are preserved. Product stock is unaffected.
    """
    alert_days = alert_days if alert_days is not None else current_app.config["ALERT_RETENTION_DAYS"]
    movement_days = movement_days if movement_days is not None else current_app.config["MOVEMENT_RETENTION_DAYS"]
    if alert_days < 0 or movement_days < 0:
        raise ValueError("retention days must be >= 0")

    result = {
        "alerts_deleted": prune_alerts(retention_days=alert_days),
        "movements_deleted": prune_stock_movements(retention_days=movement_days),
    }
    current_app.logger.info(
        "Pruned %s alert(s) and %s movement(s)", result["alerts_deleted"], result["movements_deleted"]
    )
    return result
