"""Payment gateway port (abstract interface).

Defines the contract every gateway adapter implements so that checkout can
switch between FakeGateway (dev/test), PayMongoGateway and StripeGateway
without changing domain or application code.

Amounts cross this boundary in integer minor units (centavos for PHP).
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class PaymentSource:
    """A chargeable source (e.g. a GCash authorisation) created at the gateway."""

    source_id: str
    status: str
    amount: int
    currency: str
    source_type: str | None = None
    checkout_url: str | None = None
    client_secret: str | None = None


@dataclass(frozen=True)
class PaymentResult:
    """Result of charging a source."""

    payment_id: str | None
    status: str
    amount: int | None = None
    failure_reason: str | None = None

    @property
    def paid(self) -> bool:
        return self.status == "paid"


class PaymentGateway(ABC):
    """Abstract payment gateway interface."""

    @abstractmethod
    def create_source(
        self,
        amount: int,
        currency: str,
        source_type: str,
        redirect_url: str,
    ) -> PaymentSource:
        """Create a payment source the customer authorises out of band."""
        ...

    @abstractmethod
    def get_source(self, source_id: str) -> PaymentSource:
        """Fetch the current state of a source."""
        ...

    @abstractmethod
    def create_payment(
        self,
        source_id: str,
        amount: int,
        currency: str,
        description: str,
    ) -> PaymentResult:
        """Charge an authorised source."""
        ...

    @abstractmethod
    def get_payment(self, payment_id: str) -> PaymentResult:
        """Look up a payment by the reference the gateway issued for it."""
        ...
