"""Catalogue events: facts about products and their stock levels."""

from protean.fields import DateTime, Float, Identifier, Integer, String

from ordering.domain import ordering


@ordering.event(part_of="Product")
class ProductRegistered:
    """A product was registered with its opening stock."""

    __version__ = 1

    product_id = Identifier(required=True)
    name = String(required=True)
    price = Float(required=True)
    stock = Integer(required=True)
    registered_at = DateTime(required=True)


@ordering.event(part_of="Product")
class ProductRestocked:
    """Units were added to a product's stock."""

    __version__ = 1

    product_id = Identifier(required=True)
    quantity = Integer(required=True)
    new_stock = Integer(required=True)
    restocked_at = DateTime(required=True)


@ordering.event(part_of="Product")
class ProductDeactivated:
    """A product was withdrawn from sale."""

    __version__ = 1

    product_id = Identifier(required=True)
    deactivated_at = DateTime(required=True)


@ordering.event(part_of="Product")
class StockDebited:
    """Units left inventory for an order."""

    __version__ = 1

    product_id = Identifier(required=True)
    order_id = Identifier(required=True)
    quantity = Integer(required=True)
    previous_stock = Integer(required=True)
    new_stock = Integer(required=True)
    debited_at = DateTime(required=True)


@ordering.event(part_of="Product")
class StockCredited:
    """Units returned to inventory from a cancelled order."""

    __version__ = 1

    product_id = Identifier(required=True)
    order_id = Identifier(required=True)
    quantity = Integer(required=True)
    previous_stock = Integer(required=True)
    new_stock = Integer(required=True)
    credited_at = DateTime(required=True)
