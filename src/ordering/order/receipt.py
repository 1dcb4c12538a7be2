"""Receipt confirmation: the customer marks the order received.

This bypasses the proof validation gate. An order still awaiting payment
commits its sale here, so stock is debited in the same unit of work. The
rider (if any) is freed for the next task without an earnings credit;
earnings are posted only by the admin validation gate.
"""

import structlog
from protean import handle
from protean.fields import Identifier
from protean.utils.globals import current_domain

from ordering.catalogue.ledger import debit_order
from ordering.delivery.rider import Rider
from ordering.domain import ordering
from ordering.order.order import Order, OrderStatus

logger = structlog.get_logger(__name__)


@ordering.command(part_of="Order")
class ConfirmReceipt:
    order_id = Identifier(required=True)
    customer_id = Identifier(required=True)


@ordering.command_handler(part_of=Order)
class ConfirmReceiptHandler:
    @handle(ConfirmReceipt)
    def confirm_receipt(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        unpaid = order.status == OrderStatus.TO_PAY.value

        order.confirm_receipt(command.customer_id)
        if unpaid:
            debit_order(order)

        if order.assigned_rider_id:
            rider_repo = current_domain.repository_for(Rider)
            rider = rider_repo.get(str(order.assigned_rider_id))
            rider.release(order.id)
            rider_repo.add(rider)

        repo.add(order)
        logger.info("Receipt confirmed", order_id=str(order.id), customer_id=str(command.customer_id))
