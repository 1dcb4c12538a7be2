"""Order domain events: immutable facts about order lifecycle changes.

All events are past tense and versioned. Delivery milestones (rider assignment,
proofs, admin validation) are raised by the same Order aggregate because the
delivery sub-record lives inside it.
"""

from protean.fields import Boolean, DateTime, Float, Identifier, Integer, String, Text

from ordering.domain import ordering


@ordering.event(part_of="Order")
class OrderPlaced:
    """An order was created from checkout data."""

    __version__ = 1

    order_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    status = String(required=True)
    items = Text(required=True)  # JSON: list of item snapshots
    item_count = Integer(required=True)
    items_subtotal = Float(required=True)
    vat = Float(required=True)
    shipping_fee = Float(required=True)
    total_amount = Float(required=True)
    payment_method = String(required=True)
    payment_reference = String()
    placed_at = DateTime(required=True)


@ordering.event(part_of="Order")
class OrderCheckedOut:
    """Payment was confirmed and stock left inventory."""

    __version__ = 1

    order_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    payment_reference = String()
    cancellation_deadline = DateTime(required=True)
    estimated_delivery = DateTime(required=True)
    checked_out_at = DateTime(required=True)


@ordering.event(part_of="Order")
class OrderCancelled:
    """The customer cancelled within the cancellation window."""

    __version__ = 1

    order_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    reason = String(required=True)
    cancelled_at = DateTime(required=True)


@ordering.event(part_of="Order")
class RiderAssigned:
    """A rider self-assigned the order."""

    __version__ = 1

    order_id = Identifier(required=True)
    rider_id = Identifier(required=True)
    assigned_at = DateTime(required=True)


@ordering.event(part_of="Order")
class PickupProofRecorded:
    """The rider uploaded proof of pickup."""

    __version__ = 1

    order_id = Identifier(required=True)
    rider_id = Identifier(required=True)
    proof_url = String(required=True)
    recorded_at = DateTime(required=True)


@ordering.event(part_of="Order")
class DeliveryProofRecorded:
    """The rider uploaded proof of delivery."""

    __version__ = 1

    order_id = Identifier(required=True)
    rider_id = Identifier(required=True)
    proof_url = String(required=True)
    recorded_at = DateTime(required=True)


@ordering.event(part_of="Order")
class PickupValidated:
    """An admin accepted the pickup proof."""

    __version__ = 1

    order_id = Identifier(required=True)
    admin_id = Identifier(required=True)
    validated_at = DateTime(required=True)


@ordering.event(part_of="Order")
class DeliveryValidated:
    """An admin accepted the delivery proof."""

    __version__ = 1

    order_id = Identifier(required=True)
    admin_id = Identifier(required=True)
    validated_at = DateTime(required=True)


@ordering.event(part_of="Order")
class OrderCompleted:
    """The order reached its terminal completed state."""

    __version__ = 1

    order_id = Identifier(required=True)
    completed_by = Identifier(required=True)
    rider_id = Identifier()
    via_admin_validation = Boolean(required=True)
    completed_at = DateTime(required=True)
