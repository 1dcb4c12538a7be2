"""Task acceptance: a rider self-assigns an available order.

Both the order (assigned_rider_id) and the rider (active_order_id) are
written with version checks in one unit of work. When two riders race for
the same order, or one rider races for two orders, exactly one commit
succeeds; the loser gets ExpectedVersionError, surfaced as a conflict.
Acceptance is never retried.
"""

import structlog
from protean import handle
from protean.fields import Identifier
from protean.utils.globals import current_domain

from ordering.delivery.rider import Rider, rider_profile
from ordering.domain import ordering
from ordering.order.order import Order

logger = structlog.get_logger(__name__)


@ordering.command(part_of="Order")
class AcceptTask:
    order_id = Identifier(required=True)
    rider_id = Identifier(required=True)


@ordering.command_handler(part_of=Order)
class AcceptTaskHandler:
    @handle(AcceptTask)
    def accept_task(self, command):
        rider = rider_profile(command.rider_id)
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)

        rider.take(order.id)
        order.assign_rider(command.rider_id)

        repo.add(order)
        current_domain.repository_for(Rider).add(rider)
        logger.info("Task accepted", order_id=str(order.id), rider_id=str(command.rider_id))
        return str(order.id)
