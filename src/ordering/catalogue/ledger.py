"""Stock ledger: validates order lines against products and moves stock for orders.

These helpers run inside the calling command handler's unit of work. Each
product write is version-checked, so a concurrent checkout that touched the
same product makes the whole unit of work fail with ExpectedVersionError and
nothing is committed. Callers re-run the command (see utils.concurrency).
"""

from collections import Counter

import structlog
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.utils.globals import current_domain

from ordering.catalogue.product import PLACEHOLDER_IMAGE, Product
from ordering.order.pricing import line_subtotal

logger = structlog.get_logger(__name__)


def _product(product_id):
    try:
        return current_domain.repository_for(Product).get(str(product_id))
    except ObjectNotFoundError as exc:
        raise ObjectNotFoundError({"product_id": [f"Product not found: {product_id}"]}) from exc


def snapshot_lines(lines):
    """Validate requested lines and capture name/price/image at this moment.

    ``lines`` are dicts with ``product_id``, ``quantity`` and an optional
    ``image``. Returns item dicts ready for Order.create(). Stock is checked
    per product across all lines but not touched.
    """
    if not lines:
        raise ValidationError({"items": ["At least one item is required"]})

    requested = Counter()
    snapshots = []
    products = {}
    for line in lines:
        quantity = int(line["quantity"])
        if quantity < 1:
            raise ValidationError({"quantity": ["Quantity must be at least 1"]})

        product_id = str(line["product_id"])
        product = products.get(product_id) or _product(product_id)
        products[product_id] = product
        requested[product_id] += quantity
        product.ensure_available(requested[product_id])

        snapshots.append(
            {
                "product_id": product_id,
                "name": product.name,
                "image": line.get("image") or product.image or PLACEHOLDER_IMAGE,
                "unit_price": product.price,
                "quantity": quantity,
                "line_subtotal": float(line_subtotal(product.price, quantity)),
            }
        )
    return snapshots


def _quantities(order):
    quantities = Counter()
    for item in order.items:
        quantities[str(item.product_id)] += item.quantity
    return quantities


def ensure_stock(order):
    """Re-check live stock for every line of ``order`` without mutating anything."""
    products = {}
    for product_id, quantity in _quantities(order).items():
        product = _product(product_id)
        product.ensure_available(quantity)
        products[product_id] = product
    return products


def debit_order(order, products=None):
    """Take the order's quantities out of stock, one conditional write per product."""
    products = products or ensure_stock(order)
    repo = current_domain.repository_for(Product)
    for product_id, quantity in _quantities(order).items():
        product = products[product_id]
        product.debit(quantity, order.id)
        repo.add(product)
    logger.info("Stock debited", order_id=str(order.id), products=len(products))


def credit_order(order):
    """Return the order's quantities to stock."""
    repo = current_domain.repository_for(Product)
    quantities = _quantities(order)
    for product_id, quantity in quantities.items():
        product = _product(product_id)
        product.credit(quantity, order.id)
        repo.add(product)
    logger.info("Stock credited", order_id=str(order.id), products=len(quantities))
