# Overview: Pytest coverage for cashier shifts, the cash drawer and shift sales totals.

"""
Shift Service Tests

Covers:
- One open shift at a time; closed shifts reject further drawer activity
- Drawer balance follows SALE/PAYIN (in) and REFUND/PAYOUT (out)
- Variance = counted closing balance - expected balance
- Orders posted during a shift count toward its totals; cash orders enter the drawer
"""

import pytest

from g24pos.models import CashDrawerEvent, Shift
from g24pos.services.orders_service import OrderError, add_order
from g24pos.services.shift_service import (
    ShiftError,
    ShiftNotFoundError,
    add_cash_transaction,
    end_shift,
    get_cash_drawer,
    get_current_shift,
    get_shift,
    list_shifts,
    open_cash_drawer,
    start_shift,
)


@pytest.fixture
def shift(db_session):
    return start_shift(cashier="Trần Thị Bình", opening_balance=500000)


def _events(session, shift_id):
    return [
        (e.event_type, e.amount, e.balance_after)
        for e in session.query(CashDrawerEvent).filter_by(shift_id=shift_id).order_by(CashDrawerEvent.id)
    ]


class TestShiftLifecycle:
    def test_start_opens_drawer(self, db_session, shift):
        assert shift.status == "OPEN"
        assert shift.expected_balance == 500000
        assert get_current_shift().id == shift.id
        assert _events(db_session, shift.id) == [("SHIFT_OPEN", 500000, 500000)]

    def test_only_one_open_shift(self, db_session, shift):
        with pytest.raises(ShiftError):
            start_shift(cashier="Lê Văn Cường", opening_balance=0)
        assert db_session.query(Shift).count() == 1

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"cashier": "", "opening_balance": 0},
            {"cashier": "A", "opening_balance": -1},
            {"cashier": "A", "opening_balance": "100"},
            {"cashier": "A", "opening_balance": True},
        ],
    )
    def test_start_rejects_bad_input(self, db_session, kwargs):
        with pytest.raises(ShiftError):
            start_shift(**kwargs)
        assert get_current_shift() is None

    def test_end_computes_variance(self, db_session, shift):
        add_cash_transaction(type="SALE", amount=120000)
        add_cash_transaction(type="PAYOUT", amount=20000, reference="Ice delivery")

        closed = end_shift(closing_balance=590000, notes="Short 10k")

        assert closed.status == "CLOSED"
        assert closed.ended_at is not None
        assert closed.expected_balance == 600000
        assert closed.closing_balance == 590000
        assert closed.variance == -10000
        assert get_current_shift() is None
        assert _events(db_session, shift.id)[-1] == ("SHIFT_CLOSE", 590000, 590000)

    def test_end_without_open_shift(self, db_session):
        with pytest.raises(ShiftError):
            end_shift(closing_balance=0)

    def test_closed_shift_takes_no_more_cash(self, db_session, shift):
        end_shift(closing_balance=500000)

        with pytest.raises(ShiftError):
            add_cash_transaction(type="PAYIN", amount=1000)
        with pytest.raises(ShiftError):
            end_shift(closing_balance=500000)
        assert db_session.get(Shift, shift.id).closing_balance == 500000


class TestCashDrawer:
    def test_balance_follows_transaction_direction(self, db_session, shift):
        add_cash_transaction(type="sale", amount=50000, reference="DH20250110001")
        add_cash_transaction(type="payin", amount=10000)
        add_cash_transaction(type="refund", amount=5000)
        add_cash_transaction(type="payout", amount=15000)

        drawer = get_cash_drawer()
        assert drawer["is_open"] is True
        assert drawer["opening_balance"] == 500000
        assert drawer["current_balance"] == 540000
        # newest first
        assert [t["type"] for t in drawer["transactions"]] == ["PAYOUT", "REFUND", "PAYIN", "SALE", "SHIFT_OPEN"]
        assert drawer["transactions"][3]["reference"] == "DH20250110001"

    def test_cannot_pay_out_more_than_drawer_holds(self, db_session, shift):
        with pytest.raises(ShiftError):
            add_cash_transaction(type="PAYOUT", amount=500001)
        assert get_current_shift().expected_balance == 500000
        assert len(_events(db_session, shift.id)) == 1

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"type": "TIP", "amount": 100},
            {"type": "SALE", "amount": 0},
            {"type": "SALE", "amount": -5},
            {"type": None, "amount": 5},
        ],
    )
    def test_rejects_bad_transactions(self, db_session, shift, kwargs):
        with pytest.raises(ShiftError):
            add_cash_transaction(**kwargs)

    def test_requires_open_shift(self, db_session):
        with pytest.raises(ShiftError):
            add_cash_transaction(type="SALE", amount=1000)
        with pytest.raises(ShiftError):
            open_cash_drawer(reason="Make change")

    def test_no_sale_open_is_logged(self, db_session, shift):
        event = open_cash_drawer(reason="Make change")

        assert event.event_type == "NO_SALE"
        assert event.reason == "Make change"
        assert event.balance_after == 500000
        with pytest.raises(ShiftError):
            open_cash_drawer(reason="  ")

    def test_drawer_state_without_shifts(self, db_session):
        assert get_cash_drawer() == {
            "is_open": False,
            "shift_id": None,
            "opening_balance": 0,
            "current_balance": 0,
            "transactions": [],
        }

    def test_drawer_after_close_reports_count(self, db_session, shift):
        end_shift(closing_balance=480000)

        drawer = get_cash_drawer()
        assert drawer["is_open"] is False
        assert drawer["shift_id"] == shift.id
        assert drawer["current_balance"] == 480000


class TestOrdersDuringShift:
    def test_cash_order_enters_drawer(self, db_session, shift, noodles):
        order = add_order(items=[{"product_id": noodles.id, "quantity": 2}], payment_method="cash")

        current = get_current_shift()
        assert order.total == 17600
        assert current.total_sales == 17600
        assert current.total_transactions == 1
        assert current.expected_balance == 517600
        assert _events(db_session, shift.id)[-1] == ("SALE", 17600, 517600)

    def test_card_order_counts_but_leaves_drawer(self, db_session, shift, noodles):
        add_order(items=[{"product_id": noodles.id, "quantity": 1}], payment_method="card")

        current = get_current_shift()
        assert current.total_sales == 8800
        assert current.total_transactions == 1
        assert current.expected_balance == 500000

    def test_rejected_order_leaves_shift_untouched(self, db_session, shift, noodles):
        with pytest.raises(OrderError):
            add_order(items=[{"product_id": noodles.id, "quantity": 999}])

        current = get_current_shift()
        assert (current.total_sales, current.total_transactions, current.expected_balance) == (0, 0, 500000)

    def test_order_without_shift(self, db_session, noodles):
        add_order(items=[{"product_id": noodles.id, "quantity": 1}])
        assert db_session.query(Shift).count() == 0


class TestLookup:
    def test_list_newest_first(self, db_session):
        first = start_shift(cashier="A", opening_balance=0)
        end_shift(closing_balance=0)
        second = start_shift(cashier="B", opening_balance=0)

        assert [s.id for s in list_shifts()] == [second.id, first.id]
        assert [s.id for s in list_shifts(status="CLOSED")] == [first.id]

    def test_get_missing(self, db_session):
        with pytest.raises(ShiftNotFoundError):
            get_shift(404)
