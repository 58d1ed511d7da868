# Overview: Pytest coverage for purchase order numbering, lifecycle, receiving and reorders.

import re

import pytest

from g24pos.models import Product, PurchaseOrder, StockMovement
from g24pos.services.purchase_order_service import (
    PurchaseOrderError,
    PurchaseOrderNotFoundError,
    can_transition,
    create_purchase_order,
    generate_auto_reorders,
    list_purchase_orders,
    set_purchase_order_status,
    suggest_reorders,
)
from g24pos.services.products_service import delete_product

from conftest import make_product

PO_NUMBER = re.compile(r"^PO\d{8}\d{3}$")


def _po_for(product, quantity=24, unit_cost=6000):
    return create_purchase_order(
        supplier_id="ACECOOK",
        supplier_name="Công ty ACECOOK",
        items=[{"product_id": product.id, "quantity_ordered": quantity, "unit_cost": unit_cost}],
    )


def _advance(po_id, *statuses, **kwargs):
    po = None
    for status in statuses:
        po = set_purchase_order_status(po_id=po_id, status=status, **kwargs)
    return po


class TestCreate:
    def test_draft_with_number_and_total(self, db_session, noodles):
        po = _po_for(noodles)

        assert PO_NUMBER.match(po.order_number)
        assert po.status == "DRAFT"
        assert po.total_amount == 144000
        line = po.lines[0]
        assert line.product_name == "Mì tôm Hảo Hảo"
        assert line.barcode == noodles.barcode
        assert line.total_cost == 144000

    def test_numbers_are_sequential(self, db_session, noodles):
        first = _po_for(noodles)
        second = _po_for(noodles)
        assert int(second.order_number[-3:]) == int(first.order_number[-3:]) + 1

    @pytest.mark.parametrize(
        "item",
        [
            {"product_name": "X", "quantity_ordered": 0},
            {"product_name": "X", "quantity_ordered": 2, "unit_cost": -1},
            {"product_id": 9999, "quantity_ordered": 1},
            {"quantity_ordered": 1},
        ],
    )
    def test_invalid_lines(self, db_session, item):
        with pytest.raises(PurchaseOrderError):
            create_purchase_order(supplier_id="S", supplier_name="S", items=[item])
        assert db_session.query(PurchaseOrder).count() == 0

    def test_requires_items(self, db_session):
        with pytest.raises(PurchaseOrderError):
            create_purchase_order(supplier_id="S", supplier_name="S", items=[])

    def test_invalid_expected_date(self, db_session, noodles):
        with pytest.raises(PurchaseOrderError):
            create_purchase_order(
                supplier_id="S",
                supplier_name="S",
                items=[{"product_id": noodles.id, "quantity_ordered": 1}],
                expected_date="next tuesday",
            )


class TestLifecycle:
    @pytest.mark.parametrize(
        "src,dst,allowed",
        [
            ("DRAFT", "PENDING", True),
            ("PENDING", "APPROVED", True),
            ("APPROVED", "ORDERED", True),
            ("ORDERED", "RECEIVED", True),
            ("DRAFT", "ORDERED", False),
            ("DRAFT", "RECEIVED", False),
            ("PENDING", "DRAFT", False),
            ("APPROVED", "CANCELLED", True),
            ("RECEIVED", "CANCELLED", False),
            ("CANCELLED", "DRAFT", False),
            ("ORDERED", "ORDERED", True),
        ],
    )
    def test_can_transition(self, src, dst, allowed):
        assert can_transition(src, dst) is allowed

    def test_unknown_status(self):
        with pytest.raises(PurchaseOrderError):
            can_transition("DRAFT", "SHIPPED")

    def test_skip_rejected(self, db_session, noodles):
        po = _po_for(noodles)
        with pytest.raises(PurchaseOrderError):
            set_purchase_order_status(po_id=po.id, status="ORDERED")
        assert db_session.get(PurchaseOrder, po.id).status == "DRAFT"

    def test_missing_po(self, db_session):
        with pytest.raises(PurchaseOrderNotFoundError):
            set_purchase_order_status(po_id=321, status="PENDING")

    def test_received_posts_in_movements(self, db_session, noodles):
        po = _po_for(noodles, quantity=24)
        po = _advance(po.id, "PENDING", "APPROVED", "ORDERED", "RECEIVED")

        assert po.status == "RECEIVED"
        assert po.received_date is not None
        assert po.lines[0].quantity_received == 24
        assert db_session.get(Product, noodles.id).stock == 74

        movement = db_session.query(StockMovement).filter_by(reference=po.order_number).one()
        assert movement.type == "IN"
        assert movement.quantity == 24
        assert movement.cost == 6000
        assert movement.reason == "Purchase order received"

    def test_partial_receipt(self, db_session, noodles):
        po = _po_for(noodles, quantity=24)
        _advance(po.id, "PENDING", "APPROVED", "ORDERED")
        po = set_purchase_order_status(
            po_id=po.id, status="RECEIVED", received_quantities={noodles.id: 20}
        )
        assert po.lines[0].quantity_received == 20
        assert db_session.get(Product, noodles.id).stock == 70

    def test_receiving_twice_is_noop(self, db_session, noodles):
        po = _po_for(noodles, quantity=10)
        _advance(po.id, "PENDING", "APPROVED", "ORDERED", "RECEIVED")
        set_purchase_order_status(po_id=po.id, status="RECEIVED")
        assert db_session.get(Product, noodles.id).stock == 60

    def test_deleted_product_is_skipped_on_receipt(self, db_session, noodles):
        po = _po_for(noodles)
        _advance(po.id, "PENDING", "APPROVED", "ORDERED")
        delete_product(product_id=noodles.id)

        po = set_purchase_order_status(po_id=po.id, status="RECEIVED")
        assert po.status == "RECEIVED"
        assert db_session.query(StockMovement).count() == 0

    def test_cancelled_is_terminal(self, db_session, noodles):
        po = _po_for(noodles)
        set_purchase_order_status(po_id=po.id, status="CANCELLED")
        with pytest.raises(PurchaseOrderError):
            set_purchase_order_status(po_id=po.id, status="PENDING")

    def test_list_by_status(self, db_session, noodles):
        draft = _po_for(noodles)
        pending = _advance(_po_for(noodles).id, "PENDING")
        assert [po.id for po in list_purchase_orders(status="DRAFT")] == [draft.id]
        assert [po.id for po in list_purchase_orders(status="PENDING")] == [pending.id]
        with pytest.raises(PurchaseOrderError):
            list_purchase_orders(status="nope")


class TestReorders:
    def test_auto_reorders_group_by_supplier(self, db_session, noodles):
        a1 = make_product(barcode="A1", name="A one", stock=3, min_stock=10, supplier="Alpha", cost_price=1000)
        a2 = make_product(barcode="A2", name="A two", stock=1, min_stock=40, supplier="Alpha", cost_price=500)
        b1 = make_product(barcode="B1", name="B one", stock=0, min_stock=5, supplier="Beta", cost_price=2000)

        orders = generate_auto_reorders()

        assert len(orders) == 2
        by_supplier = {po.supplier_name: po for po in orders}
        assert set(by_supplier) == {"Alpha", "Beta"}
        assert all(po.status == "DRAFT" for po in orders)
        assert by_supplier["Alpha"].supplier_id == "Alpha"

        alpha = {line.product_id: line.quantity_ordered for line in by_supplier["Alpha"].lines}
        assert alpha == {a1.id: 50, a2.id: 80}
        assert by_supplier["Alpha"].total_amount == 50 * 1000 + 80 * 500
        assert [line.product_id for line in by_supplier["Beta"].lines] == [b1.id]

        # reorders are drafts only; stock is untouched
        assert db_session.get(Product, a1.id).stock == 3

    def test_no_low_stock_means_no_orders(self, db_session, noodles, cola):
        assert generate_auto_reorders() == []

    def test_suggestions_are_not_saved(self, db_session):
        p = make_product(barcode="S1", stock=4, min_stock=10, max_stock=100, cost_price=1000)
        q = make_product(barcode="S2", stock=9, min_stock=10, cost_price=1000)

        suggestions = suggest_reorders()

        by_product = {s["items"][0]["product_id"]: s for s in suggestions}
        assert by_product[p.id]["items"][0]["quantity_ordered"] == 96
        assert by_product[q.id]["items"][0]["quantity_ordered"] == 50
        assert by_product[p.id]["status"] == "PENDING"
        assert by_product[p.id]["total_amount"] == 96000
        assert db_session.query(PurchaseOrder).count() == 0

    def test_suggestion_limit(self, db_session):
        for i in range(4):
            make_product(barcode=f"L{i}", stock=1, min_stock=5)
        assert len(suggest_reorders(limit=2)) == 2
