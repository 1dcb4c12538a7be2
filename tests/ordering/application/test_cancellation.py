"""Application tests for order cancellation and receipt confirmation."""

from datetime import UTC, datetime, timedelta

import pytest
from ordering.catalogue.product import Product
from ordering.exceptions import AlreadyCompletedError, DeadlinePassedError, InvalidStateError
from ordering.order.cancellation import CancelOrder
from ordering.order.order import Order, OrderStatus
from ordering.order.receipt import ConfirmReceipt
from protean import current_domain


def _stock(product_id):
    return current_domain.repository_for(Product).get(product_id).stock


def _order(order_id):
    return current_domain.repository_for(Order).get(order_id)


def _cancel(order_id, as_of=None, reason="Ordered by mistake"):
    current_domain.process(
        CancelOrder(order_id=order_id, customer_id="cust-001", reason=reason, as_of=as_of),
        asynchronous=False,
    )


class TestCancelOrderCommand:
    def test_cancel_returns_stock(self, checked_out_order, latte, cookie):
        assert _stock(latte) == 8

        _cancel(checked_out_order)

        assert _order(checked_out_order).status == OrderStatus.CANCELLED.value
        assert _stock(latte) == 10
        assert _stock(cookie) == 5

    def test_cancel_after_window_keeps_stock_debited(self, checked_out_order, latte):
        deadline = _order(checked_out_order).cancellation_deadline
        if deadline.tzinfo is None:
            deadline = deadline.replace(tzinfo=UTC)

        with pytest.raises(DeadlinePassedError):
            _cancel(checked_out_order, as_of=deadline + timedelta(minutes=1))

        assert _order(checked_out_order).status == OrderStatus.TO_RECEIVE.value
        assert _stock(latte) == 8

    def test_cancel_unpaid_order_rejected(self, place_order, latte):
        order_id = place_order()
        with pytest.raises(InvalidStateError):
            _cancel(order_id)
        assert _stock(latte) == 10

    def test_cancel_twice_credits_once(self, checked_out_order, latte):
        _cancel(checked_out_order)
        with pytest.raises(InvalidStateError):
            _cancel(checked_out_order)
        assert _stock(latte) == 10


class TestConfirmReceiptCommand:
    def test_confirm_receipt_completes(self, checked_out_order):
        current_domain.process(
            ConfirmReceipt(order_id=checked_out_order, customer_id="cust-001"),
            asynchronous=False,
        )
        assert _order(checked_out_order).status == OrderStatus.COMPLETED.value

    def test_unpaid_order_commits_sale_on_confirmation(self, place_order, latte):
        order_id = place_order()
        current_domain.process(ConfirmReceipt(order_id=order_id, customer_id="cust-001"), asynchronous=False)

        assert _order(order_id).status == OrderStatus.COMPLETED.value
        assert _stock(latte) == 8

    def test_paid_order_is_not_debited_again(self, checked_out_order, latte):
        current_domain.process(
            ConfirmReceipt(order_id=checked_out_order, customer_id="cust-001"),
            asynchronous=False,
        )
        assert _stock(latte) == 8

    def test_confirming_twice(self, checked_out_order):
        command = ConfirmReceipt(order_id=checked_out_order, customer_id="cust-001")
        current_domain.process(command, asynchronous=False)
        with pytest.raises(AlreadyCompletedError):
            current_domain.process(command, asynchronous=False)

    def test_confirming_cancelled_order(self, checked_out_order):
        _cancel(checked_out_order, as_of=datetime.now(UTC))
        with pytest.raises(InvalidStateError):
            current_domain.process(
                ConfirmReceipt(order_id=checked_out_order, customer_id="cust-001"),
                asynchronous=False,
            )
