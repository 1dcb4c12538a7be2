"""Application tests for version-checked writes, racing commands and the retry helper."""

import pytest
from ordering.catalogue import ledger
from ordering.catalogue.product import Product
from ordering.delivery.assignment import AcceptTask
from ordering.delivery.rider import Rider
from ordering.exceptions import ConflictError, InsufficientStockError
from ordering.order.checkout import check_out
from ordering.order.order import Order, OrderStatus
from ordering.utils.concurrency import run_with_retry
from protean import current_domain
from protean.exceptions import ExpectedVersionError


class TestStaleWrites:
    def test_stale_product_copy_is_rejected(self, latte):
        repo = current_domain.repository_for(Product)
        first = repo.get(latte)
        second = repo.get(latte)

        first.debit(3, "ord-001")
        repo.add(first)

        second.debit(3, "ord-002")
        with pytest.raises(ExpectedVersionError):
            repo.add(second)

        assert repo.get(latte).stock == 7

    def test_fresh_copy_after_conflict_succeeds(self, latte):
        repo = current_domain.repository_for(Product)
        stale = repo.get(latte)

        fresh = repo.get(latte)
        fresh.debit(1, "ord-001")
        repo.add(fresh)

        stale.debit(1, "ord-002")
        with pytest.raises(ExpectedVersionError):
            repo.add(stale)

        reloaded = repo.get(latte)
        reloaded.debit(1, "ord-002")
        repo.add(reloaded)
        assert repo.get(latte).stock == 8


class TestRunWithRetry:
    def test_returns_first_success(self):
        assert run_with_retry(lambda: "done") == "done"

    def test_retries_stale_writes(self):
        attempts = []

        def flaky():
            attempts.append(1)
            if len(attempts) < 3:
                raise ExpectedVersionError("stale")
            return "done"

        assert run_with_retry(flaky, attempts=3, backoff_base=0) == "done"
        assert len(attempts) == 3

    def test_gives_up_after_attempts(self):
        def always_stale():
            raise ExpectedVersionError("stale")

        with pytest.raises(ExpectedVersionError):
            run_with_retry(always_stale, attempts=2, backoff_base=0)

    def test_other_errors_are_not_retried(self):
        attempts = []

        def broken():
            attempts.append(1)
            raise ValueError("boom")

        with pytest.raises(ValueError):
            run_with_retry(broken, backoff_base=0)
        assert len(attempts) == 1


class TestRacingAccepts:
    def test_rider_holding_stale_order_loses(self, monkeypatch, checked_out_order, register_rider):
        register_rider("rider-001", "Rico")
        register_rider("rider-002", "Bea")
        order_repo = current_domain.repository_for(Order)
        stale = order_repo.get(checked_out_order)

        current_domain.process(AcceptTask(order_id=checked_out_order, rider_id="rider-001"), asynchronous=False)

        with monkeypatch.context() as patch:
            patch.setattr(type(order_repo), "get", lambda self, identifier: stale)
            with pytest.raises((ExpectedVersionError, ConflictError)):
                current_domain.process(
                    AcceptTask(order_id=checked_out_order, rider_id="rider-002"), asynchronous=False
                )

        riders = current_domain.repository_for(Rider)
        assert current_domain.repository_for(Order).get(checked_out_order).assigned_rider_id == "rider-001"
        assert str(riders.get("rider-001").active_order_id) == checked_out_order
        assert riders.get("rider-002").active_order_id is None


class TestRacingCheckouts:
    def test_last_units_are_not_oversold(self, monkeypatch, place_order, cookie):
        first = place_order(items=[{"product_id": cookie, "quantity": 3}])
        second = place_order(items=[{"product_id": cookie, "quantity": 3}])

        # The second checkout reads stock before the first one commits
        stale = current_domain.repository_for(Product).get(cookie)
        real_product = ledger._product
        reads = []

        def product_read_before_first_commit(product_id):
            reads.append(product_id)
            return stale if len(reads) == 1 else real_product(product_id)

        check_out(first, "cust-001")
        monkeypatch.setattr(ledger, "_product", product_read_before_first_commit)

        with pytest.raises(InsufficientStockError):
            check_out(second, "cust-001")

        orders = current_domain.repository_for(Order)
        assert orders.get(first).status == OrderStatus.TO_RECEIVE.value
        assert orders.get(second).status == OrderStatus.TO_PAY.value
        assert current_domain.repository_for(Product).get(cookie).stock == 2
        assert len(reads) == 2
