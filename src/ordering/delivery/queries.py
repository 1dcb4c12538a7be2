"""Read side of the ordering context: order visibility, task lists and rider stats."""

import math

from protean.utils.globals import current_domain

from ordering.delivery.rider import rider_profile
from ordering.exceptions import UnauthorizedError
from ordering.order.order import Order
from ordering.settings import get_settings

ADMIN = "admin"


def get_order(order_id, user_id, role):
    """An order is visible to its customer, its assigned rider and any admin."""
    order = current_domain.repository_for(Order).get(order_id)
    if role == ADMIN:
        return order
    if str(order.customer_id) == str(user_id):
        return order
    if order.assigned_rider_id and str(order.assigned_rider_id) == str(user_id):
        return order
    raise UnauthorizedError({"order": ["Unauthorized access"]})


def list_customer_orders(customer_id, status=None, page=1, limit=10):
    page = max(int(page), 1)
    limit = max(int(limit), 1)
    orders, total = current_domain.repository_for(Order).find_by_customer(customer_id, status, page, limit)
    total_pages = math.ceil(total / limit) if total else 0
    return {
        "orders": orders,
        "pagination": {
            "current_page": page,
            "total_pages": total_pages,
            "total": total,
            "has_next_page": page < total_pages,
            "has_prev_page": page > 1,
        },
    }


def delivery_fee():
    """Flat fee a rider earns per validated delivery."""
    return float(get_settings().delivery_fee)


def _with_fee(orders):
    fee = delivery_fee()
    return [(order, fee) for order in orders]


def list_available():
    """Unassigned paid orders, each paired with the delivery fee on offer."""
    return _with_fee(current_domain.repository_for(Order).find_available())


def my_tasks(rider_id):
    return _with_fee(current_domain.repository_for(Order).find_by_rider(rider_id))


def list_tasks(status=None, assigned=None):
    return current_domain.repository_for(Order).find_tasks(status=status, assigned=assigned)


def rider_stats(rider_id):
    rider = rider_profile(rider_id)
    active_order = None
    if rider.active_order_id:
        active_order = current_domain.repository_for(Order).get(str(rider.active_order_id))
    return {
        "rider_id": str(rider.rider_id),
        "name": rider.name,
        "lifetime_earnings": rider.lifetime_earnings,
        "total_deliveries": rider.total_deliveries,
        "active_order": active_order,
    }
