# Overview: Flask API routes for whole-store data export, import, reset and stats.

from flask import Blueprint, Response, current_app, request
from ..services.data_service import (
    DataImportError,
    clear_all_data,
    export_data,
    get_system_stats,
    import_data,
)
from g24pos.time_utils import today

data_bp = Blueprint("data", __name__, url_prefix="/api/data")


@data_bp.get("/export")
def export_route():
    """Download the full store as a JSON attachment."""
    filename = f"g24pos-backup-{today().isoformat()}.json"
    return Response(
        export_data(),
        mimetype="application/json",
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )


@data_bp.post("/import")
def import_route():
    """
    Replace all store data with an export blob.

    The body is the raw export JSON (any content type).
    """
    text = request.get_data(as_text=True)

    try:
        counts = import_data(text)
    except DataImportError as e:
        return {"error": str(e)}, 400
    except Exception:
        current_app.logger.exception("Failed to import data")
        return {"error": "Failed to import data"}, 500

    return {"ok": True, "imported": counts}, 200


@data_bp.post("/clear")
def clear_route():
    payload = request.get_json(silent=True) or {}
    if payload.get("confirm") is not True:
        return {"error": "Pass {\"confirm\": true} to clear all data"}, 400

    clear_all_data()
    return {"ok": True}, 200


@data_bp.get("/stats")
def stats_route():
    return get_system_stats()
