# Overview: Pytest coverage for the stock movement ledger, product filters and forecasts.

from datetime import datetime, timedelta

import pytest

from g24pos.models import InventoryAlert, Product, StockMovement
from g24pos.services.inventory_service import (
    InventoryError,
    ProductNotFoundError,
    add_stock_movement,
    get_inventory_forecasts,
    get_products,
    get_stock_movements,
    prune_stock_movements,
)
from g24pos.time_utils import today, utcnow

from conftest import make_product


class TestStockMovements:
    def test_out_stamps_last_sold_date(self, db_session, noodles):
        ts = datetime(2025, 1, 10, 8, 30, 0)
        add_stock_movement(product_id=noodles.id, type="OUT", quantity=3, reason="Sale", timestamp=ts)

        p = db_session.get(Product, noodles.id)
        assert p.stock == 47
        assert p.last_sold_date == ts

    def test_in_stamps_last_restock_date(self, db_session, noodles):
        ts = datetime(2025, 1, 11, 9, 0, 0)
        add_stock_movement(product_id=noodles.id, type="IN", quantity=10, reason="Delivery", timestamp=ts)

        p = db_session.get(Product, noodles.id)
        assert p.stock == 60
        assert p.last_restock_date == ts

    def test_iso_timestamp_string_accepted(self, db_session, noodles):
        add_stock_movement(
            product_id=noodles.id, type="OUT", quantity=1, reason="Sale", timestamp="2025-01-10T08:30:00Z"
        )
        assert db_session.get(Product, noodles.id).last_sold_date == datetime(2025, 1, 10, 8, 30)

    @pytest.mark.parametrize("movement_type", ["ADJUSTMENT", "EXPIRED", "DAMAGED"])
    def test_signed_types_add_quantity_as_is(self, db_session, noodles, movement_type):
        add_stock_movement(product_id=noodles.id, type=movement_type, quantity=-4, reason="Count")
        assert db_session.get(Product, noodles.id).stock == 46

    def test_transfer_changes_location_only(self, db_session, noodles):
        loc = {"zone": "B", "aisle": "02", "shelf": "C", "position": "1"}
        add_stock_movement(product_id=noodles.id, type="TRANSFER", quantity=50, reason="Move", location=loc)

        p = db_session.get(Product, noodles.id)
        assert p.stock == 50
        assert p.location == loc

    def test_negative_result_rejected_and_not_recorded(self, db_session, noodles):
        with pytest.raises(InventoryError):
            add_stock_movement(product_id=noodles.id, type="OUT", quantity=51, reason="Sale")

        assert db_session.get(Product, noodles.id).stock == 50
        assert db_session.query(StockMovement).filter_by(type="OUT").count() == 0

    def test_negative_quantity_for_in_rejected(self, db_session, noodles):
        with pytest.raises(InventoryError):
            add_stock_movement(product_id=noodles.id, type="IN", quantity=-1, reason="Oops")

    def test_unknown_type_rejected(self, db_session, noodles):
        with pytest.raises(InventoryError):
            add_stock_movement(product_id=noodles.id, type="GIFT", quantity=1, reason="?")

    def test_unknown_product(self, db_session):
        with pytest.raises(ProductNotFoundError):
            add_stock_movement(product_id=404, type="IN", quantity=1, reason="?")

    def test_listing_is_newest_first_and_filterable(self, db_session, noodles, cola):
        add_stock_movement(product_id=noodles.id, type="OUT", quantity=1, reason="Sale",
                           timestamp=utcnow() + timedelta(minutes=1))
        add_stock_movement(product_id=cola.id, type="OUT", quantity=2, reason="Sale",
                           timestamp=utcnow() + timedelta(minutes=2))

        movements = get_stock_movements()
        assert [m.product_id for m in movements[:2]] == [cola.id, noodles.id]

        only_noodles = get_stock_movements(product_id=noodles.id, type="OUT")
        assert len(only_noodles) == 1
        assert get_stock_movements(limit=1)[0].product_id == cola.id

    def test_prune_keeps_stock(self, db_session, noodles):
        add_stock_movement(product_id=noodles.id, type="OUT", quantity=5, reason="Old sale",
                           timestamp=utcnow() - timedelta(days=400))

        deleted = prune_stock_movements(retention_days=365)

        assert deleted == 1
        assert db_session.get(Product, noodles.id).stock == 45


class TestThresholdScenarios:
    def test_low_stock_medium_above_half(self, db_session):
        p = make_product(barcode="L1", stock=6, min_stock=10)
        alerts = db_session.query(InventoryAlert).filter_by(product_id=p.id).all()
        assert [(a.type, a.priority) for a in alerts] == [("LOW_STOCK", "MEDIUM")]

    def test_low_stock_high_at_half(self, db_session):
        p = make_product(barcode="L2", stock=5, min_stock=10)
        alerts = db_session.query(InventoryAlert).filter_by(product_id=p.id).all()
        assert [(a.type, a.priority) for a in alerts] == [("LOW_STOCK", "HIGH")]

    def test_selling_out_adds_out_of_stock(self, db_session):
        p = make_product(barcode="L3", stock=5, min_stock=10)
        add_stock_movement(product_id=p.id, type="OUT", quantity=5, reason="Sale")

        assert db_session.get(Product, p.id).stock == 0
        alerts = db_session.query(InventoryAlert).filter_by(product_id=p.id, is_read=False).all()
        types = sorted(a.type for a in alerts)
        assert types == ["LOW_STOCK", "OUT_OF_STOCK"]
        oos = next(a for a in alerts if a.type == "OUT_OF_STOCK")
        assert oos.priority == "CRITICAL"

    def test_overstock(self, db_session, noodles):
        add_stock_movement(product_id=noodles.id, type="IN", quantity=60, reason="Big delivery")
        alert = db_session.query(InventoryAlert).filter_by(product_id=noodles.id, type="OVERSTOCK").one()
        assert alert.priority == "LOW"


class TestProductFilters:
    def test_filters(self, db_session, noodles, cola):
        low = make_product(barcode="F1", name="Sữa tươi", stock=1, min_stock=5, category="Sữa",
                           supplier="Vinamilk", tags=["dairy", "fresh"])
        expiring = make_product(barcode="F2", name="Bánh bao", expiry_date=today() + timedelta(days=2))

        assert [p.id for p in get_products(category="Nước Giải Khát")] == [cola.id]
        assert [p.id for p in get_products(supplier="Vinamilk")] == [low.id]
        assert [p.id for p in get_products(low_stock=True)] == [low.id]
        assert [p.id for p in get_products(expiring=True)] == [expiring.id]
        assert [p.id for p in get_products(search="DAIRY")] == [low.id]
        assert [p.id for p in get_products(search="coca")] == [cola.id]
        assert [p.id for p in get_products(search="8934563")] == [noodles.id]

    def test_location_substring(self, db_session, noodles, cola):
        noodles.location = {"zone": "A", "aisle": "01", "shelf": "B", "position": "2"}
        db_session.commit()

        assert [p.id for p in get_products(location="A-01")] == [noodles.id]
        assert get_products(location="Z-") == []

    def test_is_active(self, db_session, noodles, cola):
        cola.is_active = False
        db_session.commit()
        assert [p.id for p in get_products(is_active=True)] == [noodles.id]
        assert [p.id for p in get_products(is_active=False)] == [cola.id]


class TestForecasts:
    def test_forecast_from_recent_sales(self, db_session, noodles):
        # 30 units over the 30-day window -> 1 unit/day
        add_stock_movement(product_id=noodles.id, type="OUT", quantity=30, reason="Sales",
                           timestamp=utcnow() - timedelta(days=3))
        add_stock_movement(product_id=noodles.id, type="OUT", quantity=10, reason="Old",
                           timestamp=utcnow() - timedelta(days=45))

        forecast = next(f for f in get_inventory_forecasts(days=7) if f["product_id"] == noodles.id)

        assert forecast["average_daily_demand"] == 1.0
        assert forecast["predicted_demand"] == 7
        assert forecast["recommended_reorder_point"] == 10
        assert forecast["recommended_order_quantity"] == 50
        assert forecast["current_stock"] == 10
        assert forecast["days_of_cover"] == 10.0

    def test_no_sales_means_no_demand(self, db_session, cola):
        forecast = get_inventory_forecasts()[0]
        assert forecast["average_daily_demand"] == 0
        assert forecast["predicted_demand"] == 0
        assert forecast["days_of_cover"] is None
