"""Repository for the Order aggregate with the read queries the API needs."""

from ordering.domain import ordering
from ordering.order.order import DELIVERY_ELIGIBLE_STATES, Order

# Upper bound for unpaginated listings
MAX_RESULTS = 1000


def _newest_first(orders):
    return sorted(orders, key=lambda order: order.created_at, reverse=True)


@ordering.repository(part_of=Order)
class OrderRepository:
    def find_by_customer(self, customer_id, status=None, page=1, limit=10):
        """One page of a customer's orders, newest first, plus the total count."""
        criteria = {"customer_id": str(customer_id)}
        if status:
            criteria["status"] = status
        results = (
            self._dao.query.filter(**criteria)
            .order_by("-created_at")
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return results.items, results.total

    def find_available(self):
        """Orders a rider may accept: eligible status and no rider yet."""
        orders = []
        for state in DELIVERY_ELIGIBLE_STATES:
            orders.extend(self._dao.query.filter(status=state.value).limit(MAX_RESULTS).all().items)
        return _newest_first(order for order in orders if not order.assigned_rider_id)

    def find_by_rider(self, rider_id):
        orders = self._dao.query.filter(assigned_rider_id=str(rider_id)).limit(MAX_RESULTS).all().items
        return _newest_first(orders)

    def find_tasks(self, status=None, assigned=None):
        """Admin view over all orders, optionally by status and by whether a rider is set."""
        query = self._dao.query
        if status:
            query = query.filter(status=status)
        orders = query.limit(MAX_RESULTS).all().items
        if assigned is not None:
            orders = [order for order in orders if bool(order.assigned_rider_id) == assigned]
        return _newest_first(orders)
