# Overview: Flask API routes for inventory analytics; read-only projections.

from flask import Blueprint, request
from ..services.analytics_service import (
    AnalyticsError,
    get_category_breakdown,
    get_inventory_analytics,
    get_monthly_trends,
    get_slow_moving_products,
    get_supplier_performance,
    get_top_selling_products,
)

analytics_bp = Blueprint("analytics", __name__, url_prefix="/api/analytics")


@analytics_bp.get("/inventory")
def inventory_analytics_route():
    return get_inventory_analytics()


@analytics_bp.get("/top-selling")
def top_selling_route():
    limit = request.args.get("limit", default=10, type=int)
    return {"items": get_top_selling_products(limit=limit)}


@analytics_bp.get("/slow-moving")
def slow_moving_route():
    limit = request.args.get("limit", default=10, type=int)
    return {"items": get_slow_moving_products(limit=limit)}


@analytics_bp.get("/categories")
def categories_route():
    return {"items": get_category_breakdown()}


@analytics_bp.get("/suppliers")
def suppliers_route():
    return {"items": get_supplier_performance()}


@analytics_bp.get("/monthly-trends")
def monthly_trends_route():
    months = request.args.get("months", default=12, type=int)
    try:
        return {"items": get_monthly_trends(months=months)}
    except AnalyticsError as e:
        return {"error": str(e)}, 400
