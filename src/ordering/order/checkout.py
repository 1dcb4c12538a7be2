"""Order checkout: payment source creation, gateway charge and the checkout command.

Checkout moves an order from TO_PAY to TO_RECEIVE. The CheckoutOrder handler
re-checks stock, debits it and opens the cancellation window in one unit of
work, so either all of that commits or none of it does.

For gateway payment methods the customer first authorises a payment source.
A gateway-method order cannot be checked out without one. ``check_out``
verifies and charges that source before the command runs; the command
itself never talks to the gateway, which keeps it safe to re-run after a
stale write.
"""

from datetime import UTC, datetime

import structlog
from protean import handle
from protean.exceptions import ValidationError
from protean.fields import DateTime, Identifier, String
from protean.utils.globals import current_domain

from ordering.catalogue.ledger import debit_order, ensure_stock
from ordering.domain import ordering
from ordering.exceptions import UpstreamFailureError
from ordering.order.order import Order, PaymentMethod
from ordering.order.pricing import amount_matches, to_minor_units
from ordering.payments import get_gateway
from ordering.utils.concurrency import run_with_retry

logger = structlog.get_logger(__name__)


@ordering.command(part_of="Order")
class CheckoutOrder:
    order_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    payment_reference = String(max_length=255)
    as_of = DateTime()  # defaults to now


@ordering.command_handler(part_of=Order)
class CheckoutOrderHandler:
    @handle(CheckoutOrder)
    def checkout_order(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.check_checkout_allowed(command.customer_id)

        products = ensure_stock(order)
        debit_order(order, products)
        order.check_out(
            command.customer_id,
            payment_reference=command.payment_reference,
            now=command.as_of or datetime.now(UTC),
        )
        repo.add(order)
        logger.info(
            "Order checked out",
            order_id=str(order.id),
            items=len(order.items),
            payment_reference=order.payment_reference,
        )
        return str(order.id)


def create_payment_source(order_id, customer_id, source_type, redirect_url):
    """Create a gateway source for the order's total, in minor units."""
    order = current_domain.repository_for(Order).get(order_id)
    order.check_checkout_allowed(customer_id)

    source = get_gateway().create_source(
        amount=to_minor_units(order.pricing.total_amount),
        currency=order.pricing.currency,
        source_type=source_type,
        redirect_url=redirect_url,
    )
    logger.info("Payment source created", order_id=str(order.id), source_id=source.source_id)
    return source


def _charge_source(order, source_id):
    gateway = get_gateway()
    source = gateway.get_source(source_id)
    if source.status != "chargeable":
        raise UpstreamFailureError(
            {"payment": [f"Payment source is not chargeable (status: {source.status})"]},
            details={"source_id": source_id, "status": source.status},
        )
    if not amount_matches(order.pricing.total_amount, source.amount, reference=source_id):
        raise UpstreamFailureError(
            {"payment": ["Payment amount does not match the order total"]},
            details={
                "source_id": source_id,
                "expected": to_minor_units(order.pricing.total_amount),
                "reported": source.amount,
            },
        )

    result = gateway.create_payment(
        source_id=source_id,
        amount=source.amount,
        currency=order.pricing.currency,
        description=f"Order {order.id}",
    )
    if not result.paid:
        raise UpstreamFailureError(
            {"payment": [result.failure_reason or "Payment was not completed"]},
            details={"source_id": source_id, "status": result.status},
        )
    return result.payment_id


def check_out(order_id, customer_id, source_id=None, payment_reference=None, as_of=None):
    """Check an order out, charging ``source_id`` first for gateway payment methods.

    Preconditions (ownership, status and stock) are verified before any money
    moves. The command is retried on stale writes. If it still fails after a
    successful charge, the charge is logged for manual reconciliation.
    """
    order = current_domain.repository_for(Order).get(order_id)
    order.check_checkout_allowed(customer_id)

    charged = False
    if order.payment_method != PaymentMethod.COD.value:
        if not source_id:
            raise ValidationError(
                {"source_id": [f"A payment source is required for {order.payment_method} orders"]}
            )
        ensure_stock(order)
        payment_reference = _charge_source(order, source_id)
        charged = True

    command = CheckoutOrder(
        order_id=order_id,
        customer_id=customer_id,
        payment_reference=payment_reference,
        as_of=as_of,
    )
    try:
        return run_with_retry(lambda: current_domain.process(command, asynchronous=False))
    except Exception:
        if charged:
            logger.error(
                "Payment captured but order checkout failed; manual reconciliation required",
                order_id=str(order_id),
                payment_reference=payment_reference,
            )
        raise
