"""Rider domain events."""

from protean.fields import DateTime, Float, Identifier, Integer, String

from ordering.domain import ordering


@ordering.event(part_of="Rider")
class RiderRegistered:
    """A delivery user registered a rider profile."""

    __version__ = 1

    rider_id = Identifier(required=True)
    name = String(required=True)
    registered_at = DateTime(required=True)


@ordering.event(part_of="Rider")
class RiderEarningsCredited:
    """A completed delivery was credited to the rider."""

    __version__ = 1

    rider_id = Identifier(required=True)
    order_id = Identifier(required=True)
    amount = Float(required=True)
    lifetime_earnings = Float(required=True)
    total_deliveries = Integer(required=True)
    credited_at = DateTime(required=True)
