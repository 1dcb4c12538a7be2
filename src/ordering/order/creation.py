"""Order creation: commands and handler.

CreateOrder leaves the order awaiting payment (stock untouched).
CreatePaidOrder is used when the customer paid up front: the payment
reference is looked up at the gateway and must be a completed payment for
the order total. The order then starts in TO_RECEIVE and stock is debited in
the same unit of work.
"""

import json

import structlog
from protean import handle
from protean.fields import Float, Identifier, String, Text
from protean.utils.globals import current_domain

from ordering.catalogue.ledger import debit_order, snapshot_lines
from ordering.domain import ordering
from ordering.exceptions import UpstreamFailureError
from ordering.order.order import Order
from ordering.order.pricing import amount_matches, to_minor_units
from ordering.payments import get_gateway

logger = structlog.get_logger(__name__)


@ordering.command(part_of="Order")
class CreateOrder:
    customer_id = Identifier(required=True)
    items = Text(required=True)  # JSON: list of {product_id, quantity, image?}
    payment_method = String(required=True, max_length=20)
    shipping_address = Text(required=True)
    latitude = Float()
    longitude = Float()


@ordering.command(part_of="Order")
class CreatePaidOrder:
    customer_id = Identifier(required=True)
    items = Text(required=True)  # JSON: list of {product_id, quantity, image?}
    payment_method = String(required=True, max_length=20)
    payment_reference = String(required=True, max_length=255)
    shipping_address = Text(required=True)
    latitude = Float()
    longitude = Float()


def _lines(raw):
    return json.loads(raw) if isinstance(raw, str) else raw


def verify_payment(order, payment_reference):
    """Confirm at the gateway that ``payment_reference`` paid ``order`` in full."""
    payment = get_gateway().get_payment(payment_reference)
    if not payment.paid:
        raise UpstreamFailureError(
            {"payment_reference": [payment.failure_reason or "Payment is not completed"]},
            details={"payment_reference": payment_reference, "status": payment.status},
        )
    if payment.amount is None or not amount_matches(
        order.pricing.total_amount, payment.amount, reference=payment_reference
    ):
        raise UpstreamFailureError(
            {"payment_reference": ["Payment amount does not match the order total"]},
            details={
                "payment_reference": payment_reference,
                "expected": to_minor_units(order.pricing.total_amount),
                "reported": payment.amount,
            },
        )


@ordering.command_handler(part_of=Order)
class CreateOrderHandler:
    @handle(CreateOrder)
    def create_order(self, command):
        items_data = snapshot_lines(_lines(command.items))
        order = Order.create(
            customer_id=command.customer_id,
            items_data=items_data,
            payment_method=command.payment_method,
            shipping_address=command.shipping_address,
            latitude=command.latitude,
            longitude=command.longitude,
        )
        current_domain.repository_for(Order).add(order)
        logger.info(
            "Order created",
            order_id=str(order.id),
            customer_id=str(command.customer_id),
            total_amount=order.pricing.total_amount,
        )
        return str(order.id)

    @handle(CreatePaidOrder)
    def create_paid_order(self, command):
        items_data = snapshot_lines(_lines(command.items))
        order = Order.create_paid(
            customer_id=command.customer_id,
            items_data=items_data,
            payment_method=command.payment_method,
            payment_reference=command.payment_reference,
            shipping_address=command.shipping_address,
            latitude=command.latitude,
            longitude=command.longitude,
        )
        verify_payment(order, command.payment_reference)
        debit_order(order)
        current_domain.repository_for(Order).add(order)
        logger.info(
            "Paid order created",
            order_id=str(order.id),
            payment_reference=command.payment_reference,
        )
        return str(order.id)
