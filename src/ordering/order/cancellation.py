"""Order cancellation: command and handler.

Cancelling returns the order's quantities to stock in the same unit of work.
"""

from datetime import UTC, datetime

import structlog
from protean import handle
from protean.fields import DateTime, Identifier, String
from protean.utils.globals import current_domain

from ordering.catalogue.ledger import credit_order
from ordering.domain import ordering
from ordering.order.order import Order

logger = structlog.get_logger(__name__)


@ordering.command(part_of="Order")
class CancelOrder:
    order_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    reason = String(required=True, max_length=500)
    as_of = DateTime()  # defaults to now


@ordering.command_handler(part_of=Order)
class CancelOrderHandler:
    @handle(CancelOrder)
    def cancel_order(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.cancel(
            actor_id=command.customer_id,
            reason=command.reason,
            now=command.as_of or datetime.now(UTC),
        )
        credit_order(order)
        repo.add(order)
        logger.info("Order cancelled", order_id=str(order.id), reason=order.cancellation_reason)
