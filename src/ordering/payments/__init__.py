"""Payment gateway factory.

Provides get_gateway() / set_gateway() to swap implementations:
- FakeGateway for development and testing (PAYMENT_GATEWAY=fake, default)
- PayMongoGateway for production (PAYMENT_GATEWAY=paymongo)
- StripeGateway for production (PAYMENT_GATEWAY=stripe)
"""

import os

from ordering.payments.fake_adapter import FakeGateway
from ordering.payments.port import PaymentGateway

_current_gateway: PaymentGateway | None = None


def get_gateway() -> PaymentGateway:
    """Return the current payment gateway, building it from the environment on first use."""
    global _current_gateway
    if _current_gateway is None:
        adapter = os.environ.get("PAYMENT_GATEWAY", "fake")
        if adapter == "fake":
            _current_gateway = FakeGateway()
        elif adapter == "paymongo":
            from ordering.payments.paymongo_adapter import DEFAULT_API_URL, PayMongoGateway

            _current_gateway = PayMongoGateway(
                secret_key=os.environ["PAYMONGO_SECRET_KEY"],
                api_url=os.environ.get("PAYMONGO_API_URL", DEFAULT_API_URL),
            )
        elif adapter == "stripe":
            from ordering.payments.stripe_adapter import StripeGateway

            _current_gateway = StripeGateway(api_key=os.environ["STRIPE_SECRET_KEY"])
        else:
            raise ValueError(f"Unknown payment gateway: {adapter}")
    return _current_gateway


def set_gateway(gateway: PaymentGateway) -> None:
    """Override the active payment gateway (useful for tests)."""
    global _current_gateway
    _current_gateway = gateway


def reset_gateway() -> None:
    """Reset to default gateway."""
    global _current_gateway
    _current_gateway = None
