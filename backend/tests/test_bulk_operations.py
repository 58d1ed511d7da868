# Overview: Pytest coverage for bulk product updates and their progress records.

import pytest

from g24pos import create_app
from g24pos.extensions import db
from g24pos.models import BulkOperation, Product, StockMovement
from g24pos.services import bulk_service
from g24pos.services.products_service import add_product
from g24pos.services.bulk_service import (
    BulkOperationError,
    BulkOperationNotFoundError,
    bulk_update_products,
    get_bulk_operation,
    list_bulk_operations,
)


class TestBulkUpdate:
    def test_all_items_succeed(self, db_session, noodles, cola):
        op = bulk_update_products(
            product_ids=[noodles.id, cola.id],
            updates={"category": "Đồ uống"},
            type="CATEGORY_CHANGE",
        )

        assert op.status == "COMPLETED"
        assert op.total_items == 2
        assert op.processed_items == 2
        assert op.failed_items == 0
        assert op.errors == []
        assert op.completed_at is not None
        assert {p.category for p in db_session.query(Product).all()} == {"Đồ uống"}

    def test_one_invalid_id_fails_the_operation(self, db_session, noodles, cola):
        op = bulk_update_products(
            product_ids=[noodles.id, 999, cola.id],
            updates={"price": 15000},
        )

        assert op.status == "FAILED"
        assert op.total_items == 3
        assert op.failed_items == 1
        assert op.processed_items == 2
        assert op.errors == ["999: Product not found"]

        # successful items stay applied
        assert db_session.get(Product, noodles.id).price == 15000
        assert db_session.get(Product, cola.id).price == 15000

    def test_stock_adjustment_posts_movements(self, db_session, noodles, cola):
        op = bulk_update_products(
            product_ids=[noodles.id, cola.id],
            updates={"quantity": -5, "reason": "Kiểm kê"},
            type="STOCK_ADJUSTMENT",
        )

        assert op.status == "COMPLETED"
        assert db_session.get(Product, noodles.id).stock == 45
        assert db_session.get(Product, cola.id).stock == 25
        reasons = {m.reason for m in db_session.query(StockMovement).filter_by(type="ADJUSTMENT")}
        assert reasons == {"Kiểm kê"}

    def test_stock_adjustment_below_zero_fails_that_item(self, db_session, noodles, cola):
        op = bulk_update_products(
            product_ids=[noodles.id, cola.id],
            updates={"quantity": -40},
            type="STOCK_ADJUSTMENT",
        )

        assert op.status == "FAILED"
        assert op.processed_items == 1
        assert op.errors[0].startswith(f"{cola.id}: ")
        assert db_session.get(Product, noodles.id).stock == 10
        assert db_session.get(Product, cola.id).stock == 30

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"product_ids": [], "updates": {"price": 1}},
            {"product_ids": [1], "updates": {}},
            {"product_ids": [1], "updates": {"price": 1}, "type": "RENAME"},
            {"product_ids": [1], "updates": {"price": "abc"}},
            {"product_ids": [1], "updates": {"stock": 5}},
            {"product_ids": [1], "updates": {"quantity": "3"}, "type": "STOCK_ADJUSTMENT"},
        ],
    )
    def test_invalid_requests_create_nothing(self, db_session, kwargs):
        with pytest.raises(BulkOperationError):
            bulk_update_products(**kwargs)
        assert db_session.query(BulkOperation).count() == 0

    def test_async_returns_processing_record(self, db_session, noodles, monkeypatch):
        started = []
        monkeypatch.setattr(bulk_service, "_run_in_background", lambda app, op_id: started.append(op_id))

        op = bulk_update_products(product_ids=[noodles.id], updates={"supplier": "Masan"}, run_async=True)

        assert op.status == "PROCESSING"
        assert started == [op.id]

        bulk_service._process(op.id)
        assert get_bulk_operation(op.id).status == "COMPLETED"
        assert db_session.get(Product, noodles.id).supplier == "Masan"


class TestBackgroundRun:
    """The deferred run on a real worker thread, against a file database both threads can share."""

    @pytest.fixture
    def file_app(self, tmp_path):
        app = create_app({
            'TESTING': True,
            'SQLALCHEMY_DATABASE_URI': f"sqlite:///{tmp_path / 'bulk.sqlite3'}",
            'SEED_DEMO_DATA': False,
        })
        with app.app_context():
            db.create_all()
            yield app
            db.session.remove()
            db.drop_all()
            db.engine.dispose()

    @pytest.fixture
    def threads(self, monkeypatch):
        started = []
        spawn = bulk_service._run_in_background

        def tracking(app, op_id):
            thread = spawn(app, op_id)
            started.append(thread)
            return thread

        monkeypatch.setattr(bulk_service, "_run_in_background", tracking)
        return started

    def _product(self):
        return add_product(patch={"name": "Bánh mì", "barcode": "B-001", "price": 15000, "stock": 10})

    def test_worker_finishes_with_counts(self, file_app, threads):
        p = self._product()

        op = bulk_update_products(product_ids=[p.id, 999], updates={"price": 9000}, run_async=True)
        op_id = op.id
        assert len(threads) == 1
        threads[0].join(timeout=10)
        assert not threads[0].is_alive()

        db.session.expire_all()
        done = get_bulk_operation(op_id)
        assert done.status == "FAILED"
        assert done.processed_items == 1
        assert done.failed_items == 1
        assert done.errors == ["999: Product not found"]
        assert done.completed_at is not None
        assert db.session.get(Product, p.id).price == 9000

    def test_worker_completes_clean_run(self, file_app, threads):
        p = self._product()

        op = bulk_update_products(product_ids=[p.id], updates={"brand": "G24"}, run_async=True)
        op_id = op.id
        threads[0].join(timeout=10)

        db.session.expire_all()
        assert get_bulk_operation(op_id).status == "COMPLETED"
        assert db.session.get(Product, p.id).brand == "G24"

    def test_worker_crash_marks_operation_failed(self, file_app, threads, monkeypatch):
        p = self._product()

        def explode(op_id):
            raise RuntimeError("worker lost")

        monkeypatch.setattr(bulk_service, "_process", explode)

        op = bulk_update_products(product_ids=[p.id], updates={"brand": "G24"}, run_async=True)
        op_id = op.id
        threads[0].join(timeout=10)

        db.session.expire_all()
        crashed = get_bulk_operation(op_id)
        assert crashed.status == "FAILED"
        assert crashed.completed_at is not None
        assert db.session.get(Product, p.id).brand is None


class TestLookup:
    def test_get_missing(self, db_session):
        with pytest.raises(BulkOperationNotFoundError):
            get_bulk_operation(42)

    def test_list_newest_first(self, db_session, noodles):
        first = bulk_update_products(product_ids=[noodles.id], updates={"brand": "A"})
        second = bulk_update_products(product_ids=[noodles.id], updates={"brand": "B"})
        assert [op.id for op in list_bulk_operations()][:2] == [second.id, first.id]

    def test_to_dict(self, db_session, noodles):
        op = bulk_update_products(product_ids=[noodles.id], updates={"brand": "A"})
        data = op.to_dict()
        assert data["status"] == "COMPLETED"
        assert data["completed_at"].endswith("Z")
