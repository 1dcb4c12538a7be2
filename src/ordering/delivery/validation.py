"""Admin validation gate: the only path that pays riders.

Each leg is validated separately. When the second leg is validated the
order completes and the assigned rider is credited the delivery fee, once.
Repeating a validation, or validating a completed order, changes nothing.
"""

import structlog
from protean import handle
from protean.fields import Identifier
from protean.utils.globals import current_domain

from ordering.delivery.rider import Rider
from ordering.domain import ordering
from ordering.order.order import Order, ValidationOutcome
from ordering.settings import get_settings

logger = structlog.get_logger(__name__)


@ordering.command(part_of="Order")
class ValidatePickup:
    order_id = Identifier(required=True)
    admin_id = Identifier(required=True)


@ordering.command(part_of="Order")
class ValidateDelivery:
    order_id = Identifier(required=True)
    admin_id = Identifier(required=True)


@ordering.command_handler(part_of=Order)
class ValidationGateHandler:
    @handle(ValidatePickup)
    def validate_pickup(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        return self._apply(repo, order, "pickup", order.validate_pickup(command.admin_id))

    @handle(ValidateDelivery)
    def validate_delivery(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        return self._apply(repo, order, "delivery", order.validate_delivery(command.admin_id))

    def _apply(self, repo, order, leg, outcome):
        if outcome == ValidationOutcome.UNCHANGED:
            logger.warning("Validation had no effect", order_id=str(order.id), leg=leg, status=order.status)
            return outcome.value

        if outcome == ValidationOutcome.COMPLETED and order.assigned_rider_id:
            rider_repo = current_domain.repository_for(Rider)
            rider = rider_repo.get(str(order.assigned_rider_id))
            rider.credit_delivery(order.id, get_settings().delivery_fee)
            rider_repo.add(rider)
            logger.info(
                "Rider credited",
                order_id=str(order.id),
                rider_id=str(rider.rider_id),
                lifetime_earnings=rider.lifetime_earnings,
            )

        repo.add(order)
        logger.info("Proof validated", order_id=str(order.id), leg=leg, outcome=outcome.value)
        return outcome.value
