"""Product aggregate: the stock ledger orders draw from.

Product details beyond what an order snapshots (name, price, image) belong to
the storefront. What this aggregate guards is the stock count: it only moves
through debit() and credit(), it never goes negative, and every write is
version-checked by the repository so two concurrent checkouts of the same
product cannot both spend the same units.
"""

from datetime import UTC, datetime

from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Float, Integer, String

from ordering.catalogue.events import (
    ProductDeactivated,
    ProductRegistered,
    ProductRestocked,
    StockCredited,
    StockDebited,
)
from ordering.domain import ordering
from ordering.exceptions import InsufficientStockError

PLACEHOLDER_IMAGE = "https://via.placeholder.com/120?text=No+Image"


@ordering.aggregate
class Product:
    name = String(required=True, max_length=100)
    price = Float(required=True, min_value=0.0)
    stock = Integer(default=0, min_value=0)
    is_active = Boolean(default=True)
    image = String(max_length=500)
    created_at = DateTime()
    updated_at = DateTime()

    @classmethod
    def register(cls, name, price, stock=0, image=None):
        now = datetime.now(UTC)
        product = cls(
            name=name,
            price=price,
            stock=stock,
            image=image,
            is_active=True,
            created_at=now,
            updated_at=now,
        )
        product.raise_(
            ProductRegistered(
                product_id=str(product.id),
                name=name,
                price=price,
                stock=stock,
                registered_at=now,
            )
        )
        return product

    def ensure_available(self, quantity):
        """Raise InsufficientStockError unless ``quantity`` units can be sold now."""
        if not self.is_active or self.stock < quantity:
            raise InsufficientStockError(
                product_id=self.id,
                product_name=self.name,
                available=self.stock if self.is_active else 0,
                requested=quantity,
            )

    def debit(self, quantity, order_id):
        """Remove units sold to ``order_id``."""
        if quantity <= 0:
            raise ValidationError({"quantity": ["Quantity must be positive"]})
        self.ensure_available(quantity)

        now = datetime.now(UTC)
        previous = self.stock
        self.stock = previous - quantity
        self.updated_at = now
        self.raise_(
            StockDebited(
                product_id=str(self.id),
                order_id=str(order_id),
                quantity=quantity,
                previous_stock=previous,
                new_stock=self.stock,
                debited_at=now,
            )
        )

    def credit(self, quantity, order_id):
        """Return units from a cancelled order to stock."""
        if quantity <= 0:
            raise ValidationError({"quantity": ["Quantity must be positive"]})

        now = datetime.now(UTC)
        previous = self.stock
        self.stock = previous + quantity
        self.updated_at = now
        self.raise_(
            StockCredited(
                product_id=str(self.id),
                order_id=str(order_id),
                quantity=quantity,
                previous_stock=previous,
                new_stock=self.stock,
                credited_at=now,
            )
        )

    def restock(self, quantity):
        if quantity <= 0:
            raise ValidationError({"quantity": ["Quantity must be positive"]})

        now = datetime.now(UTC)
        self.stock = self.stock + quantity
        self.updated_at = now
        self.raise_(
            ProductRestocked(
                product_id=str(self.id),
                quantity=quantity,
                new_stock=self.stock,
                restocked_at=now,
            )
        )

    def deactivate(self):
        if not self.is_active:
            return
        now = datetime.now(UTC)
        self.is_active = False
        self.updated_at = now
        self.raise_(ProductDeactivated(product_id=str(self.id), deactivated_at=now))
