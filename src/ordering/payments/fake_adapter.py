"""Configurable fake payment gateway for development and testing.

Simulates the gateway without external calls. Sources are remembered in
memory and become chargeable immediately unless configured otherwise, so
checkout can be exercised end to end.
"""

from uuid import uuid4

from ordering.payments.port import PaymentGateway, PaymentResult, PaymentSource


class FakeGateway(PaymentGateway):
    """Configurable fake payment gateway."""

    def __init__(self) -> None:
        self.should_succeed: bool = True
        self.source_status: str = "chargeable"
        self.failure_reason: str = "Payment failed"
        self.sources: dict[str, PaymentSource] = {}
        self.payments: dict[str, PaymentResult] = {}
        self.calls: list[dict] = []

    def configure(
        self,
        should_succeed: bool = True,
        source_status: str = "chargeable",
        failure_reason: str = "Payment failed",
    ) -> None:
        """Configure gateway behavior at runtime."""
        self.should_succeed = should_succeed
        self.source_status = source_status
        self.failure_reason = failure_reason

    def add_source(self, amount: int, currency: str = "PHP", status: str | None = None) -> PaymentSource:
        """Register a source directly, as if the customer authorised it elsewhere."""
        source = PaymentSource(
            source_id=f"src_fake_{uuid4().hex[:12]}",
            status=status or self.source_status,
            amount=amount,
            currency=currency,
            source_type="gcash",
        )
        self.sources[source.source_id] = source
        return source

    def add_payment(self, amount: int, status: str = "paid") -> PaymentResult:
        """Register a completed payment, as if the customer paid before ordering."""
        payment = PaymentResult(payment_id=f"pay_fake_{uuid4().hex[:12]}", status=status, amount=amount)
        self.payments[payment.payment_id] = payment
        return payment

    def create_source(
        self,
        amount: int,
        currency: str,
        source_type: str,
        redirect_url: str,
    ) -> PaymentSource:
        self.calls.append(
            {
                "method": "create_source",
                "amount": amount,
                "currency": currency,
                "source_type": source_type,
                "redirect_url": redirect_url,
            }
        )
        source = PaymentSource(
            source_id=f"src_fake_{uuid4().hex[:12]}",
            status=self.source_status,
            amount=amount,
            currency=currency,
            source_type=source_type,
            checkout_url=f"https://fake-gateway.test/checkout?redirect={redirect_url}",
        )
        self.sources[source.source_id] = source
        return source

    def get_source(self, source_id: str) -> PaymentSource:
        self.calls.append({"method": "get_source", "source_id": source_id})
        source = self.sources.get(source_id)
        if source is None:
            return PaymentSource(source_id=source_id, status="missing", amount=0, currency="PHP")
        return source

    def create_payment(
        self,
        source_id: str,
        amount: int,
        currency: str,
        description: str,
    ) -> PaymentResult:
        self.calls.append(
            {
                "method": "create_payment",
                "source_id": source_id,
                "amount": amount,
                "currency": currency,
                "description": description,
            }
        )
        if self.should_succeed:
            payment = PaymentResult(
                payment_id=f"pay_fake_{uuid4().hex[:12]}",
                status="paid",
                amount=amount,
            )
            self.payments[payment.payment_id] = payment
            return payment
        return PaymentResult(
            payment_id=None,
            status="failed",
            failure_reason=self.failure_reason,
        )

    def get_payment(self, payment_id: str) -> PaymentResult:
        self.calls.append({"method": "get_payment", "payment_id": payment_id})
        payment = self.payments.get(payment_id)
        if payment is None:
            return PaymentResult(payment_id=payment_id, status="missing", failure_reason="Unknown payment")
        return payment
