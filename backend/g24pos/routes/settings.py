from __future__ import annotations

from flask import Blueprint, jsonify, request

from ..models import StoreSettings
from ..services import settings_service
from ..validation import (
    ModelValidationPolicy,
    ValidationError,
    enforce_rules_store_settings,
    validate_payload,
)


settings_bp = Blueprint("settings", __name__, url_prefix="/api/settings")

SETTINGS_POLICY = ModelValidationPolicy(
    writable_fields=set(StoreSettings.SERIALIZED_FIELDS),
)


@settings_bp.get("")
def get_settings():
    settings = settings_service.get_store_settings()
    return jsonify(settings.to_admin_dict())


@settings_bp.put("")
def update_settings():
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=StoreSettings, payload=payload, policy=SETTINGS_POLICY, partial=True)
        enforce_rules_store_settings(patch)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    settings = settings_service.update_store_settings(patch=patch)
    return jsonify(settings.to_admin_dict())
