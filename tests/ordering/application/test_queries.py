"""Read-side tests: order visibility, customer pagination, task lists and rider stats."""

import pytest
from ordering.delivery.assignment import AcceptTask
from ordering.delivery.queries import get_order, list_available, list_customer_orders, list_tasks, my_tasks, rider_stats
from ordering.exceptions import UnauthorizedError
from ordering.order.checkout import check_out
from ordering.settings import reset_settings
from protean import current_domain
from protean.exceptions import ObjectNotFoundError


def _accept(order_id, rider_id="rider-001"):
    current_domain.process(AcceptTask(order_id=order_id, rider_id=rider_id), asynchronous=False)


def _ids(orders):
    return {str(order.id) for order in orders}


def _task_ids(tasks):
    return {str(order.id) for order, _ in tasks}


class TestOrderVisibility:
    def test_owner_sees_order(self, place_order):
        order_id = place_order()
        assert str(get_order(order_id, "cust-001", "customer").id) == order_id

    def test_admin_sees_any_order(self, place_order):
        order_id = place_order()
        assert str(get_order(order_id, "admin-001", "admin").id) == order_id

    def test_other_customer_is_rejected(self, place_order):
        order_id = place_order()
        with pytest.raises(UnauthorizedError):
            get_order(order_id, "cust-999", "customer")

    def test_assigned_rider_sees_order(self, checked_out_order, register_rider):
        register_rider()
        _accept(checked_out_order)
        assert str(get_order(checked_out_order, "rider-001", "delivery").id) == checked_out_order

    def test_unassigned_rider_is_rejected(self, checked_out_order):
        with pytest.raises(UnauthorizedError):
            get_order(checked_out_order, "rider-001", "delivery")

    def test_unknown_order(self):
        with pytest.raises(ObjectNotFoundError):
            get_order("does-not-exist", "cust-001", "customer")


class TestCustomerOrderList:
    def test_pagination_metadata(self, place_order, latte):
        for _ in range(3):
            place_order(customer_id="cust-pages", items=[{"product_id": latte, "quantity": 1}])

        first = list_customer_orders("cust-pages", page=1, limit=2)
        assert len(first["orders"]) == 2
        assert first["pagination"] == {
            "current_page": 1,
            "total_pages": 2,
            "total": 3,
            "has_next_page": True,
            "has_prev_page": False,
        }

        second = list_customer_orders("cust-pages", page=2, limit=2)
        assert len(second["orders"]) == 1
        assert second["pagination"]["has_next_page"] is False
        assert second["pagination"]["has_prev_page"] is True
        assert _ids(first["orders"]).isdisjoint(_ids(second["orders"]))

    def test_newest_first(self, place_order, latte):
        older = place_order(customer_id="cust-sorted", items=[{"product_id": latte, "quantity": 1}])
        newer = place_order(customer_id="cust-sorted", items=[{"product_id": latte, "quantity": 1}])

        orders = list_customer_orders("cust-sorted")["orders"]
        assert [str(order.id) for order in orders] == [newer, older]

    def test_status_filter(self, place_order, latte):
        paid = place_order(customer_id="cust-filter", items=[{"product_id": latte, "quantity": 1}])
        place_order(customer_id="cust-filter", items=[{"product_id": latte, "quantity": 1}])
        check_out(paid, "cust-filter")

        result = list_customer_orders("cust-filter", status="to_receive")
        assert _ids(result["orders"]) == {paid}
        assert result["pagination"]["total"] == 1

    def test_customer_without_orders(self):
        result = list_customer_orders("cust-nobody")
        assert result["orders"] == []
        assert result["pagination"]["total_pages"] == 0
        assert result["pagination"]["has_next_page"] is False

    def test_only_own_orders(self, place_order, latte):
        place_order(customer_id="cust-a", items=[{"product_id": latte, "quantity": 1}])
        assert list_customer_orders("cust-b")["pagination"]["total"] == 0


class TestTaskLists:
    def test_available_excludes_unpaid_and_assigned(self, place_order, checked_out_order, register_rider, latte):
        unpaid = place_order(items=[{"product_id": latte, "quantity": 1}])
        waiting = place_order(items=[{"product_id": latte, "quantity": 1}])
        check_out(waiting, "cust-001")
        register_rider()
        _accept(checked_out_order)

        available = _task_ids(list_available())
        assert waiting in available
        assert checked_out_order not in available
        assert unpaid not in available

    def test_my_tasks(self, checked_out_order, register_rider):
        register_rider()
        _accept(checked_out_order)
        assert _task_ids(my_tasks("rider-001")) == {checked_out_order}
        assert my_tasks("rider-002") == []

    def test_tasks_carry_delivery_fee(self, checked_out_order, register_rider):
        assert [fee for _, fee in list_available()] == [50.0]
        register_rider()
        _accept(checked_out_order)
        assert [fee for _, fee in my_tasks("rider-001")] == [50.0]

    def test_delivery_fee_follows_settings(self, monkeypatch, checked_out_order):
        monkeypatch.setenv("BREWDROP_DELIVERY_FEE", "65")
        reset_settings()
        assert [fee for _, fee in list_available()] == [65.0]

    def test_admin_filters(self, place_order, checked_out_order, register_rider, latte):
        unpaid = place_order(items=[{"product_id": latte, "quantity": 1}])
        register_rider()
        _accept(checked_out_order)

        assert unpaid in _ids(list_tasks(status="to_pay"))
        assert checked_out_order not in _ids(list_tasks(status="to_pay"))
        assert _ids(list_tasks(assigned=True)) >= {checked_out_order}
        assert checked_out_order not in _ids(list_tasks(assigned=False))
        assert unpaid in _ids(list_tasks(assigned=False))


class TestRiderStats:
    def test_idle_rider(self, register_rider):
        register_rider()
        stats = rider_stats("rider-001")
        assert stats["name"] == "Rico"
        assert stats["lifetime_earnings"] == 0.0
        assert stats["total_deliveries"] == 0
        assert stats["active_order"] is None

    def test_active_order_included(self, checked_out_order, register_rider):
        register_rider()
        _accept(checked_out_order)
        assert str(rider_stats("rider-001")["active_order"].id) == checked_out_order

    def test_unregistered_rider(self):
        with pytest.raises(ObjectNotFoundError):
            rider_stats("ghost")
