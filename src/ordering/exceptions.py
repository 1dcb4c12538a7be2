"""Error taxonomy for the ordering context.

Every error is a Protean ``ValidationError`` so handlers and aggregates raise
them the same way they raise field errors, with a ``{"field": [messages]}``
payload. ``status_code`` is the HTTP status the API renders them with.
Missing orders, products and riders use Protean's ``ObjectNotFoundError``.
"""

from protean.exceptions import ValidationError


class OrderingError(ValidationError):
    status_code = 400


class InvalidStateError(OrderingError):
    """The operation is not legal from the order's current status."""

    status_code = 409


class InsufficientStockError(OrderingError):
    """A line asks for more units than the product has on hand."""

    def __init__(self, product_id, product_name, available, requested):
        self.product_id = str(product_id)
        self.product_name = product_name
        self.available = available
        self.requested = requested
        super().__init__(
            {"items": [f"Insufficient stock for {product_name}. Available: {available}, Requested: {requested}"]}
        )


class DeadlinePassedError(OrderingError):
    """The cancellation window has closed."""


class ConflictError(OrderingError):
    """A concurrent writer won the race for the same record."""

    status_code = 409


class UnauthorizedError(OrderingError):
    """The actor does not own the resource or lacks the required role."""

    status_code = 403


class UpstreamFailureError(OrderingError):
    """The payment gateway or image store failed."""

    status_code = 502

    def __init__(self, messages, details=None):
        self.details = details
        super().__init__(messages)


class AlreadyCompletedError(OrderingError):
    """The order has already reached completion."""
