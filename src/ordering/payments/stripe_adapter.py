"""Stripe payment gateway adapter.

Uses the stripe-python SDK. A payment source maps onto a PaymentIntent
created with manual capture: the customer confirms it client-side with the
returned ``client_secret``, which leaves the intent in ``requires_capture``
(our "chargeable"), and create_payment captures it. The intent id doubles
as the payment reference.

SDK errors are raised as UpstreamFailureError carrying the Stripe error body.
"""

import stripe
import structlog

from ordering.exceptions import UpstreamFailureError
from ordering.payments.port import PaymentGateway, PaymentResult, PaymentSource

logger = structlog.get_logger(__name__)

# PaymentIntent status -> source status understood by checkout
_SOURCE_STATUS = {
    "requires_payment_method": "pending",
    "requires_confirmation": "pending",
    "requires_action": "pending",
    "processing": "pending",
    "requires_capture": "chargeable",
    "succeeded": "consumed",
    "canceled": "cancelled",
}


class StripeGateway(PaymentGateway):
    """Production Stripe gateway adapter."""

    def __init__(self, api_key: str) -> None:
        self.api_key = api_key

    def _call(self, operation: str, func, *args, **params):
        try:
            return func(*args, api_key=self.api_key, **params)
        except stripe.StripeError as exc:
            logger.warning(
                "Stripe request rejected",
                operation=operation,
                status_code=exc.http_status,
                code=exc.code,
            )
            raise UpstreamFailureError(
                {"payment": [exc.user_message or "Payment gateway rejected the request"]},
                details=exc.json_body or str(exc),
            ) from exc

    @staticmethod
    def _source(intent) -> PaymentSource:
        return PaymentSource(
            source_id=intent["id"],
            status=_SOURCE_STATUS.get(intent["status"], intent["status"]),
            amount=int(intent["amount"]),
            currency=intent["currency"].upper(),
            source_type=(intent.get("payment_method_types") or [None])[0],
            client_secret=intent.get("client_secret"),
        )

    @staticmethod
    def _payment(intent) -> PaymentResult:
        if intent["status"] == "succeeded":
            return PaymentResult(
                payment_id=intent["id"],
                status="paid",
                amount=intent.get("amount_received") or intent["amount"],
            )
        error = intent.get("last_payment_error") or {}
        return PaymentResult(
            payment_id=intent["id"],
            status="failed" if intent["status"] == "canceled" else intent["status"],
            failure_reason=error.get("message"),
        )

    def create_source(
        self,
        amount: int,
        currency: str,
        source_type: str,
        redirect_url: str,
    ) -> PaymentSource:
        intent = self._call(
            "create_source",
            stripe.PaymentIntent.create,
            amount=amount,
            currency=currency.lower(),
            payment_method_types=[source_type],
            capture_method="manual",
            metadata={"return_url": redirect_url},
        )
        return self._source(intent)

    def get_source(self, source_id: str) -> PaymentSource:
        return self._source(self._call("get_source", stripe.PaymentIntent.retrieve, source_id))

    def create_payment(
        self,
        source_id: str,
        amount: int,
        currency: str,
        description: str,
    ) -> PaymentResult:
        self._call("describe_payment", stripe.PaymentIntent.modify, source_id, description=description)
        intent = self._call(
            "create_payment",
            stripe.PaymentIntent.capture,
            source_id,
            amount_to_capture=amount,
        )
        return self._payment(intent)

    def get_payment(self, payment_id: str) -> PaymentResult:
        return self._payment(self._call("get_payment", stripe.PaymentIntent.retrieve, payment_id))
