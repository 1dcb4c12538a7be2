"""Rider aggregate: earnings ledger and the single active delivery slot.

A rider carries at most one order at a time. Taking a task and releasing it
are version-checked writes on this aggregate, so two concurrent accepts by
the same rider cannot both succeed.
"""

from datetime import UTC, datetime

from protean.exceptions import ObjectNotFoundError
from protean.fields import DateTime, Float, Identifier, Integer, String
from protean.utils.globals import current_domain

from ordering.delivery.events import RiderEarningsCredited, RiderRegistered
from ordering.domain import ordering
from ordering.exceptions import ConflictError
from ordering.order.pricing import to_decimal


@ordering.aggregate
class Rider:
    rider_id = Identifier(identifier=True, required=True)
    name = String(required=True, max_length=100)
    lifetime_earnings = Float(default=0.0, min_value=0.0)
    total_deliveries = Integer(default=0, min_value=0)
    active_order_id = Identifier()
    registered_at = DateTime()
    updated_at = DateTime()

    @classmethod
    def register(cls, rider_id, name):
        now = datetime.now(UTC)
        rider = cls(
            rider_id=rider_id,
            name=name,
            lifetime_earnings=0.0,
            total_deliveries=0,
            registered_at=now,
            updated_at=now,
        )
        rider.raise_(RiderRegistered(rider_id=str(rider_id), name=name, registered_at=now))
        return rider

    def take(self, order_id):
        """Occupy the active slot with ``order_id``."""
        if self.active_order_id and str(self.active_order_id) != str(order_id):
            raise ConflictError({"rider": ["You already have an active delivery"]})
        self.active_order_id = order_id
        self.updated_at = datetime.now(UTC)

    def release(self, order_id):
        """Free the active slot if it still holds ``order_id``."""
        if self.active_order_id and str(self.active_order_id) == str(order_id):
            self.active_order_id = None
            self.updated_at = datetime.now(UTC)

    def credit_delivery(self, order_id, amount):
        """Post one completed delivery: earnings plus a delivery count."""
        now = datetime.now(UTC)
        self.lifetime_earnings = float(to_decimal(self.lifetime_earnings) + to_decimal(amount))
        self.total_deliveries = (self.total_deliveries or 0) + 1
        self.updated_at = now
        self.release(order_id)
        self.raise_(
            RiderEarningsCredited(
                rider_id=str(self.rider_id),
                order_id=str(order_id),
                amount=float(to_decimal(amount)),
                lifetime_earnings=self.lifetime_earnings,
                total_deliveries=self.total_deliveries,
                credited_at=now,
            )
        )


def rider_profile(rider_id):
    """Load the rider's profile, or fail with ObjectNotFoundError."""
    try:
        return current_domain.repository_for(Rider).get(str(rider_id))
    except ObjectNotFoundError as exc:
        raise ObjectNotFoundError({"rider": ["Rider profile not found"]}) from exc
