"""Proof capture: riders photograph the pickup and the drop-off.

``submit_proof`` checks the request and uploads the photo before any state
changes. A failed upload leaves the order untouched. The Record* commands
then store the URL and append the milestone to the order history.
A proof can be replaced until an admin validates it.
"""

import structlog
from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from ordering.domain import ordering
from ordering.media import get_image_store
from ordering.order.order import Order
from ordering.settings import get_settings

logger = structlog.get_logger(__name__)

PICKUP = "pickup"
DELIVERY = "delivery"

_FOLDERS = {
    PICKUP: "brewdrop/pickups",
    DELIVERY: "brewdrop/deliveries",
}


@ordering.command(part_of="Order")
class RecordPickupProof:
    order_id = Identifier(required=True)
    rider_id = Identifier(required=True)
    proof_url = String(required=True, max_length=500)


@ordering.command(part_of="Order")
class RecordDeliveryProof:
    order_id = Identifier(required=True)
    rider_id = Identifier(required=True)
    proof_url = String(required=True, max_length=500)


@ordering.command_handler(part_of=Order)
class RecordProofHandler:
    @handle(RecordPickupProof)
    def record_pickup_proof(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.record_pickup_proof(command.rider_id, command.proof_url)
        repo.add(order)
        logger.info("Pickup proof recorded", order_id=str(order.id), rider_id=str(command.rider_id))

    @handle(RecordDeliveryProof)
    def record_delivery_proof(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.record_delivery_proof(command.rider_id, command.proof_url)
        repo.add(order)
        logger.info("Delivery proof recorded", order_id=str(order.id), rider_id=str(command.rider_id))


def check_image(data, mime_type):
    """Reject empty, non-image or oversized uploads."""
    if not data:
        raise ValidationError({"file": ["No image uploaded"]})
    if not mime_type or not mime_type.startswith("image/"):
        raise ValidationError({"file": ["Only image files are allowed"]})
    limit = get_settings().max_proof_bytes
    if len(data) > limit:
        raise ValidationError({"file": [f"Image exceeds the {limit} byte limit"]})


def submit_proof(order_id, rider_id, leg, data, mime_type):
    """Upload a proof photo for ``leg`` and record it on the order. Returns the URL."""
    order = current_domain.repository_for(Order).get(order_id)
    order.check_proof_allowed(rider_id, leg)
    check_image(data, mime_type)

    url = get_image_store().upload(
        data,
        mime_type=mime_type,
        folder=_FOLDERS[leg],
        public_id=f"{order.id}-{leg}",
    )

    command_cls = RecordPickupProof if leg == PICKUP else RecordDeliveryProof
    current_domain.process(
        command_cls(order_id=order_id, rider_id=rider_id, proof_url=url),
        asynchronous=False,
    )
    return url
