"""Rider registration: command and handler."""

import structlog
from protean import handle
from protean.exceptions import ObjectNotFoundError
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from ordering.delivery.rider import Rider
from ordering.domain import ordering
from ordering.exceptions import ConflictError

logger = structlog.get_logger(__name__)


@ordering.command(part_of="Rider")
class RegisterRider:
    rider_id = Identifier(required=True)
    name = String(required=True, max_length=100)


@ordering.command_handler(part_of=Rider)
class RegisterRiderHandler:
    @handle(RegisterRider)
    def register_rider(self, command):
        repo = current_domain.repository_for(Rider)
        try:
            repo.get(command.rider_id)
        except ObjectNotFoundError:
            rider = Rider.register(rider_id=command.rider_id, name=command.name)
            repo.add(rider)
            logger.info("Rider registered", rider_id=str(command.rider_id))
            return str(rider.rider_id)
        raise ConflictError({"rider": ["Rider profile already exists"]})
