"""Order aggregate, the core of the ordering domain.

An Order is a frozen snapshot of what the customer bought (line items and
prices captured at creation) plus the fulfilment state that moves it from
payment to doorstep. Every transition appends one entry to an append-only
status history.

State Machine:
    TO_PAY → TO_RECEIVE → IN_TRANSIT → COMPLETED
    TO_RECEIVE → CANCELLED (within the cancellation window)
    {TO_PAY, TO_RECEIVE, IN_TRANSIT} → COMPLETED (customer confirms receipt)

Delivery milestones (proofs, admin validation) are recorded in the history
without changing status. Completion through the admin gate fires once, when
both the pickup and the delivery proof have been validated.
"""

import json
from datetime import UTC, datetime, timedelta
from enum import Enum

from protean import invariant
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.fields import (
    Boolean,
    DateTime,
    Float,
    HasMany,
    Identifier,
    Integer,
    String,
    Text,
    ValueObject,
)
from protean.utils.reflection import declared_fields

from ordering.domain import ordering
from ordering.exceptions import (
    AlreadyCompletedError,
    ConflictError,
    DeadlinePassedError,
    InvalidStateError,
    UnauthorizedError,
)
from ordering.order.events import (
    DeliveryProofRecorded,
    DeliveryValidated,
    OrderCancelled,
    OrderCheckedOut,
    OrderCompleted,
    OrderPlaced,
    PickupProofRecorded,
    PickupValidated,
    RiderAssigned,
)
from ordering.order.pricing import price_lines, to_decimal
from ordering.settings import get_settings


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class OrderStatus(Enum):
    TO_PAY = "to_pay"
    TO_RECEIVE = "to_receive"
    IN_TRANSIT = "in_transit"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class PaymentMethod(Enum):
    COD = "COD"
    PAYMONGO = "Paymongo"
    STRIPE = "Stripe"


class ValidationOutcome(Enum):
    UNCHANGED = "unchanged"
    VALIDATED = "validated"
    COMPLETED = "completed"


class Milestone(Enum):
    PICKUP_COMPLETED = "pickup_completed"
    DELIVERY_COMPLETED = "delivery_completed"
    PICKUP_VALIDATED = "pickup_validated"
    DELIVERY_VALIDATED = "delivery_validated"


_TERMINAL_STATES = {OrderStatus.COMPLETED, OrderStatus.CANCELLED}

# State machine transition map
_VALID_TRANSITIONS = {
    OrderStatus.TO_PAY: {OrderStatus.TO_RECEIVE, OrderStatus.COMPLETED},
    OrderStatus.TO_RECEIVE: {
        OrderStatus.IN_TRANSIT,
        OrderStatus.CANCELLED,
        OrderStatus.COMPLETED,
    },
    OrderStatus.IN_TRANSIT: {OrderStatus.COMPLETED},
    OrderStatus.COMPLETED: set(),  # Terminal
    OrderStatus.CANCELLED: set(),  # Terminal
}

# Source states each operation may start from
_OPERATION_SOURCES = {
    "checkout": {OrderStatus.TO_PAY},
    "cancel": {OrderStatus.TO_RECEIVE},
    "assign_rider": {OrderStatus.TO_RECEIVE},
    "record_proof": {OrderStatus.IN_TRANSIT},
    "validate": {OrderStatus.IN_TRANSIT},
}

# Orders in these states with no rider are offered to riders
DELIVERY_ELIGIBLE_STATES = {OrderStatus.TO_RECEIVE}


def _as_utc(value):
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
@ordering.value_object(part_of="Order")
class OrderPricing:
    """Financial summary of an order, computed once at creation and frozen.

    Later price changes on the product never reach an existing order.
    """

    items_subtotal = Float(required=True, min_value=0.0)
    vat = Float(required=True, min_value=0.0)
    shipping_fee = Float(required=True, min_value=0.0)
    total_amount = Float(required=True, min_value=0.0)
    currency = String(max_length=3, default="PHP")

    @invariant.post
    def total_is_sum_of_components(self):
        expected = to_decimal(self.items_subtotal) + to_decimal(self.vat) + to_decimal(self.shipping_fee)
        if to_decimal(self.total_amount) != expected:
            raise ValidationError({"total_amount": ["Total must equal items subtotal + VAT + shipping fee"]})


@ordering.value_object(part_of="Order")
class DeliveryInfo:
    """Delivery leg details: drop-off coordinates, proofs and milestone timestamps."""

    latitude = Float(default=0.0)
    longitude = Float(default=0.0)
    estimated_delivery = DateTime()
    assigned_at = DateTime()
    pickup_proof_url = String(max_length=500)
    pickup_completed_at = DateTime()
    pickup_validated = Boolean(default=False)
    pickup_validated_at = DateTime()
    delivery_proof_url = String(max_length=500)
    delivered_at = DateTime()
    delivery_validated = Boolean(default=False)
    delivery_validated_at = DateTime()

    def replace(self, **changes):
        """Return a copy with ``changes`` applied (value objects are never mutated)."""
        values = {name: getattr(self, name) for name in declared_fields(self)}
        values.update(changes)
        return self.__class__(**values)


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@ordering.entity(part_of="Order")
class OrderItem:
    """A purchased line, snapshotting product name and price at order time."""

    line_number = Integer(required=True, min_value=1)
    product_id = Identifier(required=True)
    name = String(required=True, max_length=100)
    image = String(max_length=500)
    unit_price = Float(required=True, min_value=0.0)
    quantity = Integer(required=True, min_value=1)
    line_subtotal = Float(required=True, min_value=0.0)


@ordering.entity(part_of="Order")
class StatusEntry:
    """One audit trail entry. Entries are appended, never edited or removed."""

    sequence = Integer(required=True, min_value=1)
    status = String(required=True, max_length=50)
    actor_id = Identifier(required=True)
    recorded_at = DateTime(required=True)


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@ordering.aggregate
class Order:
    customer_id = Identifier(required=True)
    items = HasMany(OrderItem)
    pricing = ValueObject(OrderPricing)
    payment_method = String(required=True, choices=PaymentMethod)
    payment_reference = String(max_length=255)
    shipping_address = Text(required=True)
    status = String(choices=OrderStatus, default=OrderStatus.TO_PAY.value)
    assigned_rider_id = Identifier()
    delivery = ValueObject(DeliveryInfo)
    cancellation_deadline = DateTime()
    can_cancel = Boolean(default=False)
    cancellation_reason = String(max_length=500)
    cancelled_at = DateTime()
    status_history = HasMany(StatusEntry)
    created_at = DateTime()
    updated_at = DateTime()

    # -------------------------------------------------------------------
    # Factory methods
    # -------------------------------------------------------------------
    @classmethod
    def create(
        cls,
        customer_id,
        items_data,
        payment_method,
        shipping_address,
        latitude=None,
        longitude=None,
        payment_reference=None,
    ):
        """Create an order awaiting payment. Stock is not touched.

        Args:
            customer_id: The customer placing the order.
            items_data: Snapshots with product_id, name, image, unit_price,
                        quantity and line_subtotal (see catalogue.ledger).
            payment_method: One of PaymentMethod values.
            shipping_address: Free-text delivery address.
        """
        return cls._place(
            OrderStatus.TO_PAY,
            customer_id,
            items_data,
            payment_method,
            shipping_address,
            latitude,
            longitude,
            payment_reference,
        )

    @classmethod
    def create_paid(
        cls,
        customer_id,
        items_data,
        payment_method,
        payment_reference,
        shipping_address,
        latitude=None,
        longitude=None,
        now=None,
    ):
        """Create an order whose payment the gateway already confirmed.

        The order starts in TO_RECEIVE with its cancellation window open. The
        caller debits stock in the same unit of work.
        """
        now = now or datetime.now(UTC)
        settings = get_settings()
        order = cls._place(
            OrderStatus.TO_RECEIVE,
            customer_id,
            items_data,
            payment_method,
            shipping_address,
            latitude,
            longitude,
            payment_reference,
            now=now,
        )
        order._open_cancellation_window(now, timedelta(days=settings.paid_order_delivery_days))
        return order

    @classmethod
    def _place(
        cls,
        status,
        customer_id,
        items_data,
        payment_method,
        shipping_address,
        latitude,
        longitude,
        payment_reference,
        now=None,
    ):
        if not items_data:
            raise ValidationError({"items": ["At least one item is required"]})
        if not shipping_address or not str(shipping_address).strip():
            raise ValidationError({"shipping_address": ["Valid shipping address is required"]})

        now = now or datetime.now(UTC)
        breakdown = price_lines(items_data)
        order = cls(
            customer_id=customer_id,
            payment_method=payment_method,
            payment_reference=payment_reference,
            shipping_address=str(shipping_address).strip(),
            status=status.value,
            pricing=OrderPricing(currency=get_settings().currency, **breakdown.as_floats()),
            delivery=DeliveryInfo(latitude=latitude or 0.0, longitude=longitude or 0.0),
            can_cancel=False,
            created_at=now,
            updated_at=now,
        )
        for line_number, item in enumerate(items_data, start=1):
            order.add_items(OrderItem(line_number=line_number, **item))
        order._record(status.value, customer_id, now)

        order.raise_(
            OrderPlaced(
                order_id=str(order.id),
                customer_id=str(customer_id),
                status=status.value,
                items=json.dumps(items_data),
                item_count=len(items_data),
                items_subtotal=order.pricing.items_subtotal,
                vat=order.pricing.vat,
                shipping_fee=order.pricing.shipping_fee,
                total_amount=order.pricing.total_amount,
                payment_method=payment_method,
                payment_reference=payment_reference,
                placed_at=now,
            )
        )
        return order

    # -------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------
    def _record(self, status, actor_id, at):
        """Append one audit entry."""
        self.add_status_history(
            StatusEntry(
                sequence=len(self.status_history or []) + 1,
                status=status,
                actor_id=str(actor_id),
                recorded_at=at,
            )
        )

    def history(self):
        """Audit trail in the order it was written."""
        return sorted(self.status_history or [], key=lambda entry: entry.sequence)

    def ordered_items(self):
        return sorted(self.items or [], key=lambda item: item.line_number)

    def _assert_operation_allowed(self, operation):
        current = OrderStatus(self.status)
        if current not in _OPERATION_SOURCES[operation]:
            raise InvalidStateError(
                {"status": [f"Cannot {operation.replace('_', ' ')} an order in {current.value} state"]}
            )

    def _transition(self, target, actor_id, at):
        current = OrderStatus(self.status)
        if target not in _VALID_TRANSITIONS.get(current, set()):
            raise InvalidStateError({"status": [f"Cannot transition from {current.value} to {target.value}"]})
        self.status = target.value
        self.updated_at = at
        self._record(target.value, actor_id, at)

    def _assert_owner(self, actor_id):
        if str(self.customer_id) != str(actor_id):
            raise UnauthorizedError({"order": ["Unauthorized access"]})

    def _assert_assigned_to(self, rider_id):
        if not self.assigned_rider_id or str(self.assigned_rider_id) != str(rider_id):
            raise ObjectNotFoundError({"order": ["Task not found"]})

    def _open_cancellation_window(self, now, delivery_offset):
        settings = get_settings()
        self.cancellation_deadline = now + timedelta(minutes=settings.cancellation_window_minutes)
        self.can_cancel = True
        self.delivery = self.delivery.replace(estimated_delivery=now + delivery_offset)

    def is_terminal(self):
        return OrderStatus(self.status) in _TERMINAL_STATES

    def is_delivery_eligible(self):
        return OrderStatus(self.status) in DELIVERY_ELIGIBLE_STATES and not self.assigned_rider_id

    def cancellation_open(self, now=None):
        """Whether the customer may still cancel. Expiry is evaluated lazily here."""
        now = now or datetime.now(UTC)
        if not self.can_cancel or self.cancellation_deadline is None:
            return False
        return now <= _as_utc(self.cancellation_deadline)

    # -------------------------------------------------------------------
    # Payment confirmation
    # -------------------------------------------------------------------
    def check_checkout_allowed(self, actor_id):
        """Raise unless ``actor_id`` may check this order out now."""
        self._assert_owner(actor_id)
        self._assert_operation_allowed("checkout")

    def check_out(self, actor_id, payment_reference=None, now=None):
        """Confirm payment: open the cancellation window and await delivery.

        The caller must have debited stock in the same unit of work.
        """
        self.check_checkout_allowed(actor_id)

        now = now or datetime.now(UTC)
        settings = get_settings()
        if payment_reference:
            self.payment_reference = payment_reference
        self._open_cancellation_window(now, timedelta(days=settings.checkout_delivery_days))
        self._transition(OrderStatus.TO_RECEIVE, actor_id, now)
        self.raise_(
            OrderCheckedOut(
                order_id=str(self.id),
                customer_id=str(self.customer_id),
                payment_reference=self.payment_reference,
                cancellation_deadline=self.cancellation_deadline,
                estimated_delivery=self.delivery.estimated_delivery,
                checked_out_at=now,
            )
        )

    # -------------------------------------------------------------------
    # Cancellation
    # -------------------------------------------------------------------
    def cancel(self, actor_id, reason, now=None):
        """Cancel within the window. The caller credits stock back."""
        if not reason or not reason.strip():
            raise ValidationError({"cancellation_reason": ["Cancellation reason is required"]})
        self._assert_owner(actor_id)
        self._assert_operation_allowed("cancel")

        now = now or datetime.now(UTC)
        if not self.cancellation_open(now):
            raise DeadlinePassedError({"cancellation_deadline": ["Cancellation deadline has passed"]})

        self.can_cancel = False
        self.cancellation_reason = reason.strip()
        self.cancelled_at = now
        self._transition(OrderStatus.CANCELLED, actor_id, now)
        self.raise_(
            OrderCancelled(
                order_id=str(self.id),
                customer_id=str(self.customer_id),
                reason=self.cancellation_reason,
                cancelled_at=now,
            )
        )

    # -------------------------------------------------------------------
    # Completion
    # -------------------------------------------------------------------
    def confirm_receipt(self, actor_id, now=None):
        """Customer shortcut to COMPLETED, bypassing the proof gate."""
        self._assert_owner(actor_id)
        current = OrderStatus(self.status)
        if current == OrderStatus.COMPLETED:
            raise AlreadyCompletedError({"status": ["Order already completed"]})
        if current == OrderStatus.CANCELLED:
            raise InvalidStateError({"status": ["Cannot confirm receipt of a cancelled order"]})

        self._complete(actor_id, via_admin_validation=False, now=now or datetime.now(UTC))

    def _complete(self, actor_id, via_admin_validation, now):
        self.can_cancel = False
        self._transition(OrderStatus.COMPLETED, actor_id, now)
        self.raise_(
            OrderCompleted(
                order_id=str(self.id),
                completed_by=str(actor_id),
                rider_id=str(self.assigned_rider_id) if self.assigned_rider_id else None,
                via_admin_validation=via_admin_validation,
                completed_at=now,
            )
        )

    # -------------------------------------------------------------------
    # Delivery assignment
    # -------------------------------------------------------------------
    def assign_rider(self, rider_id, now=None):
        """Hand the order to ``rider_id``. Only an unassigned order can be taken."""
        if self.assigned_rider_id:
            raise ConflictError({"order": ["Task no longer available or already assigned"]})
        self._assert_operation_allowed("assign_rider")

        now = now or datetime.now(UTC)
        self.assigned_rider_id = rider_id
        self.can_cancel = False
        self.delivery = self.delivery.replace(assigned_at=now)
        self._transition(OrderStatus.IN_TRANSIT, rider_id, now)
        self.raise_(
            RiderAssigned(
                order_id=str(self.id),
                rider_id=str(rider_id),
                assigned_at=now,
            )
        )

    # -------------------------------------------------------------------
    # Proof capture
    # -------------------------------------------------------------------
    def check_proof_allowed(self, rider_id, leg):
        """Raise unless ``rider_id`` may submit proof for ``leg`` right now."""
        self._assert_assigned_to(rider_id)
        self._assert_operation_allowed("record_proof")
        validated = self.delivery.pickup_validated if leg == "pickup" else self.delivery.delivery_validated
        if validated:
            raise InvalidStateError({"status": [f"The {leg} proof has already been validated"]})

    def record_pickup_proof(self, rider_id, proof_url, now=None):
        self.check_proof_allowed(rider_id, "pickup")
        now = now or datetime.now(UTC)
        self.delivery = self.delivery.replace(pickup_proof_url=proof_url, pickup_completed_at=now)
        self.updated_at = now
        self._record(Milestone.PICKUP_COMPLETED.value, rider_id, now)
        self.raise_(
            PickupProofRecorded(
                order_id=str(self.id),
                rider_id=str(rider_id),
                proof_url=proof_url,
                recorded_at=now,
            )
        )

    def record_delivery_proof(self, rider_id, proof_url, now=None):
        self.check_proof_allowed(rider_id, "delivery")
        now = now or datetime.now(UTC)
        self.delivery = self.delivery.replace(delivery_proof_url=proof_url, delivered_at=now)
        self.updated_at = now
        self._record(Milestone.DELIVERY_COMPLETED.value, rider_id, now)
        self.raise_(
            DeliveryProofRecorded(
                order_id=str(self.id),
                rider_id=str(rider_id),
                proof_url=proof_url,
                recorded_at=now,
            )
        )

    # -------------------------------------------------------------------
    # Admin validation gate
    # -------------------------------------------------------------------
    def validate_pickup(self, admin_id, now=None):
        """Accept the pickup proof and complete the order once both legs are validated."""
        if self._validation_is_noop("pickup"):
            return ValidationOutcome.UNCHANGED
        if not self.delivery.pickup_proof_url:
            raise InvalidStateError({"pickup_proof_url": ["Pickup proof has not been submitted"]})

        now = now or datetime.now(UTC)
        self.delivery = self.delivery.replace(pickup_validated=True, pickup_validated_at=now)
        self.updated_at = now
        self._record(Milestone.PICKUP_VALIDATED.value, admin_id, now)
        self.raise_(PickupValidated(order_id=str(self.id), admin_id=str(admin_id), validated_at=now))
        return self._complete_if_validated(admin_id, now)

    def validate_delivery(self, admin_id, now=None):
        """Accept the delivery proof and complete the order once both legs are validated."""
        if self._validation_is_noop("delivery"):
            return ValidationOutcome.UNCHANGED
        if not self.delivery.delivery_proof_url:
            raise InvalidStateError({"delivery_proof_url": ["Delivery proof has not been submitted"]})

        now = now or datetime.now(UTC)
        self.delivery = self.delivery.replace(delivery_validated=True, delivery_validated_at=now)
        self.updated_at = now
        self._record(Milestone.DELIVERY_VALIDATED.value, admin_id, now)
        self.raise_(DeliveryValidated(order_id=str(self.id), admin_id=str(admin_id), validated_at=now))
        return self._complete_if_validated(admin_id, now)

    def _validation_is_noop(self, leg):
        """Repeated validation, or validation of a completed order, changes nothing."""
        if OrderStatus(self.status) == OrderStatus.COMPLETED:
            return True
        self._assert_operation_allowed("validate")
        return self.delivery.pickup_validated if leg == "pickup" else self.delivery.delivery_validated

    def _complete_if_validated(self, admin_id, now):
        if not (self.delivery.pickup_validated and self.delivery.delivery_validated):
            return ValidationOutcome.VALIDATED
        self._complete(admin_id, via_admin_validation=True, now=now)
        return ValidationOutcome.COMPLETED
