# Overview: Pytest coverage for checkout; numbering, totals, stock and customer side effects.

"""
Orders Service Tests

Covers:
- DH<YYYYMMDD><seq> numbering from the persisted sequence
- Totals computed from current prices and store tax settings
- One OUT movement per line; stock decrements
- Customer stats accrue when the phone matches
- A failed order leaves no trace
"""

import re
from datetime import date

import pytest

from g24pos.models import Customer, Order, Product, StockMovement
from g24pos.services.orders_service import (
    OrderError,
    OrderNotFoundError,
    add_order,
    compute_tax,
    get_orders_by_date_range,
    list_orders,
    update_order,
)
from g24pos.services.products_service import delete_product
from g24pos.services.settings_service import update_store_settings

ORDER_NUMBER = re.compile(r"^DH\d{8}\d{3}$")


class TestCheckout:
    def test_two_line_order(self, db_session, noodles, cola):
        order = add_order(
            items=[
                {"product_id": noodles.id, "quantity": 2},
                {"product_id": cola.id, "quantity": 1},
            ],
            payment_method="cash",
            cashier="Thu ngân 1",
        )

        assert ORDER_NUMBER.match(order.order_number)
        assert order.status == "completed"
        assert order.subtotal == 28000
        assert order.tax == 2800
        assert order.total == 30800
        assert [(line.name, line.quantity, line.total) for line in order.lines] == [
            ("Mì tôm Hảo Hảo", 2, 16000),
            ("Coca Cola 330ml", 1, 12000),
        ]

        assert db_session.get(Product, noodles.id).stock == 48
        assert db_session.get(Product, cola.id).stock == 29

        outs = db_session.query(StockMovement).filter_by(type="OUT").all()
        assert len(outs) == 2
        assert {m.reference for m in outs} == {order.order_number}
        assert all(m.reason == "Sale" for m in outs)

    def test_numbers_increment_within_a_day(self, db_session, noodles):
        first = add_order(items=[{"product_id": noodles.id, "quantity": 1}], order_date="2025-01-10")
        second = add_order(items=[{"product_id": noodles.id, "quantity": 1}], order_date="2025-01-10")
        next_day = add_order(items=[{"product_id": noodles.id, "quantity": 1}], order_date="2025-01-11")

        assert first.order_number == "DH20250110001"
        assert second.order_number == "DH20250110002"
        assert next_day.order_number == "DH20250111001"

    def test_legacy_id_key_accepted(self, db_session, noodles):
        order = add_order(items=[{"id": str(noodles.id), "quantity": 1}])
        assert order.lines[0].product_id == noodles.id

    def test_discount_is_capped_at_total(self, db_session, noodles):
        order = add_order(items=[{"product_id": noodles.id, "quantity": 1}], discount=1_000_000)
        assert order.discount == 8800
        assert order.total == 0

    def test_tax_disabled(self, db_session, noodles):
        update_store_settings(patch={"enable_tax": False})
        order = add_order(items=[{"product_id": noodles.id, "quantity": 3}])
        assert order.tax == 0
        assert order.total == 24000


class TestCustomerStats:
    def test_matching_phone_accrues_stats(self, db_session, noodles, customer):
        order = add_order(
            items=[{"product_id": noodles.id, "quantity": 5}],
            customer_phone=customer.phone,
            order_date="2025-01-10",
        )

        c = db_session.get(Customer, customer.id)
        assert order.total == 44000
        assert order.customer_id == c.id
        assert order.customer_name == "Nguyễn Văn An"
        assert c.total_spent == 44000
        assert c.visit_count == 1
        assert c.loyalty_points == 44
        assert c.last_visit == date(2025, 1, 10)

    def test_unknown_phone_is_walk_in(self, db_session, noodles, customer):
        order = add_order(items=[{"product_id": noodles.id, "quantity": 1}], customer_phone="0999999999")
        assert order.customer_id is None
        assert db_session.get(Customer, customer.id).visit_count == 0


class TestRejectedOrders:
    def test_insufficient_stock_writes_nothing(self, db_session, noodles, cola, customer):
        with pytest.raises(OrderError) as exc:
            add_order(
                items=[
                    {"product_id": cola.id, "quantity": 1},
                    {"product_id": noodles.id, "quantity": 30},
                    {"product_id": noodles.id, "quantity": 30},
                ],
                customer_phone=customer.phone,
            )

        assert exc.value.details["items"] == [
            {"product_id": noodles.id, "requested_quantity": 60, "on_hand": 50}
        ]
        assert db_session.query(Order).count() == 0
        assert db_session.query(StockMovement).filter_by(type="OUT").count() == 0
        assert db_session.get(Product, cola.id).stock == 30
        assert db_session.get(Customer, customer.id).total_spent == 0

    def test_rejected_order_does_not_consume_number(self, db_session, noodles):
        with pytest.raises(OrderError):
            add_order(items=[{"product_id": noodles.id, "quantity": 999}], order_date="2025-01-10")
        order = add_order(items=[{"product_id": noodles.id, "quantity": 1}], order_date="2025-01-10")
        assert order.order_number == "DH20250110001"

    @pytest.mark.parametrize(
        "items",
        [
            [],
            "not-a-list",
            [{"product_id": 1}],
            [{"product_id": 1, "quantity": 0}],
            [{"product_id": 1, "quantity": 1.5}],
            [{"quantity": 1}],
        ],
    )
    def test_invalid_items(self, db_session, items):
        with pytest.raises(OrderError):
            add_order(items=items)

    def test_unknown_product(self, db_session):
        with pytest.raises(OrderError) as exc:
            add_order(items=[{"product_id": 4040, "quantity": 1}])
        assert exc.value.details == {"product_ids": [4040]}

    def test_invalid_payment_method(self, db_session, noodles):
        with pytest.raises(OrderError):
            add_order(items=[{"product_id": noodles.id, "quantity": 1}], payment_method="bitcoin")


class TestHistory:
    def test_lines_survive_product_deletion(self, db_session, noodles):
        order = add_order(items=[{"product_id": noodles.id, "quantity": 1}])
        delete_product(product_id=noodles.id)

        reloaded = db_session.get(Order, order.id)
        assert reloaded.lines[0].name == "Mì tôm Hảo Hảo"
        assert reloaded.lines[0].price == 8000

    def test_date_range_is_inclusive(self, db_session, noodles):
        for day in ("2025-01-09", "2025-01-10", "2025-01-11", "2025-01-12"):
            add_order(items=[{"product_id": noodles.id, "quantity": 1}], order_date=day)

        orders = get_orders_by_date_range("2025-01-10", "2025-01-11")
        assert [o.order_date.isoformat() for o in orders] == ["2025-01-10", "2025-01-11"]

    def test_update_status_leaves_stock(self, db_session, noodles):
        order = add_order(items=[{"product_id": noodles.id, "quantity": 2}])
        update_order(order_id=order.id, patch={"status": "refunded", "total": 1})

        reloaded = db_session.get(Order, order.id)
        assert reloaded.status == "refunded"
        assert reloaded.total == 17600
        assert db_session.get(Product, noodles.id).stock == 48
        assert [o.id for o in list_orders(status="refunded")] == [order.id]

    def test_update_rejects_unknown_status(self, db_session, noodles):
        order = add_order(items=[{"product_id": noodles.id, "quantity": 1}])
        with pytest.raises(OrderError):
            update_order(order_id=order.id, patch={"status": "lost"})

    def test_update_missing_order(self, db_session):
        with pytest.raises(OrderNotFoundError):
            update_order(order_id=777, patch={"cashier": "x"})


@pytest.mark.parametrize(
    "subtotal,rate,enabled,expected",
    [
        (28000, 10, True, 2800),
        (12345, 10, True, 1235),
        (12345, 8.5, True, 1049),
        (12345, 10, False, 0),
        (12345, 0, True, 0),
    ],
)
def test_compute_tax(subtotal, rate, enabled, expected):
    assert compute_tax(subtotal, tax_rate=rate, enable_tax=enabled) == expected
