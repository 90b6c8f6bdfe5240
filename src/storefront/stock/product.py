"""Product aggregate (CQRS) — the stock-relevant view of a catalogue product.

Only what ordering needs is kept here: display name and image for the
order snapshot, list and discount price for the cart, the valid sizes,
and the stock count that checkout reserves against.

Stock is the only state shared across customers. It must only be changed
through the StockLedger, which serializes the check-then-decrement
sequence per product.
"""

import json
from datetime import UTC, datetime

from protean.exceptions import ValidationError
from protean.fields import DateTime, Float, Integer, String, Text

from storefront.domain import storefront
from storefront.exceptions import InsufficientStockError
from storefront.stock.events import (
    ProductDetailsChanged,
    ProductRegistered,
    StockDecremented,
    StockDepleted,
    StockIncremented,
)


@storefront.aggregate
class Product:
    name = String(required=True, max_length=255)
    image = String(max_length=500)
    price = Float(required=True, min_value=0.0)
    discount_price = Float(min_value=0.0)
    stock = Integer(default=0, min_value=0)
    sizes = Text(required=True)  # JSON array of valid size labels
    created_at = DateTime()
    updated_at = DateTime()

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def register(cls, name, price, sizes, stock=0, discount_price=None, image=None):
        if not sizes:
            raise ValidationError({"sizes": ["At least one size is required"]})

        now = datetime.now(UTC)
        encoded_sizes = json.dumps([str(size) for size in sizes])
        product = cls(
            name=name,
            image=image,
            price=price,
            discount_price=discount_price,
            stock=stock,
            sizes=encoded_sizes,
            created_at=now,
            updated_at=now,
        )
        product.raise_(
            ProductRegistered(
                product_id=str(product.id),
                name=name,
                price=price,
                discount_price=discount_price,
                stock=stock,
                sizes=encoded_sizes,
                registered_at=now,
            )
        )
        return product

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    def size_options(self):
        return json.loads(self.sizes) if self.sizes else []

    def accepts_size(self, size):
        return str(size) in self.size_options()

    def effective_price(self):
        """Price a customer pays today: the discount price when one is set."""
        return self.discount_price if self.discount_price else self.price

    def primary_image(self):
        return self.image or ""

    # -------------------------------------------------------------------
    # Catalogue changes
    # -------------------------------------------------------------------
    def change_details(self, name=None, price=None, discount_price=None):
        if name is not None:
            self.name = name
        if price is not None:
            self.price = price
        if discount_price is not None:
            # Zero clears the discount
            self.discount_price = discount_price or None

        now = datetime.now(UTC)
        self.updated_at = now

        self.raise_(
            ProductDetailsChanged(
                product_id=str(self.id),
                name=self.name,
                price=self.price,
                discount_price=self.discount_price,
                changed_at=now,
            )
        )

    # -------------------------------------------------------------------
    # Stock movements
    # -------------------------------------------------------------------
    def decrement_stock(self, quantity):
        """Take units out of stock, failing instead of going below zero."""
        if quantity <= 0:
            raise ValidationError({"quantity": ["Quantity must be positive"]})

        previous = self.stock or 0
        if previous < quantity:
            raise InsufficientStockError(self.id, requested=quantity, available=previous, product_name=self.name)

        self.stock = previous - quantity
        now = datetime.now(UTC)
        self.updated_at = now

        self.raise_(
            StockDecremented(
                product_id=str(self.id),
                quantity=quantity,
                previous_stock=previous,
                new_stock=self.stock,
                decremented_at=now,
            )
        )
        if self.stock == 0:
            self.raise_(StockDepleted(product_id=str(self.id), depleted_at=now))

    def increment_stock(self, quantity):
        """Return units to stock."""
        if quantity <= 0:
            raise ValidationError({"quantity": ["Quantity must be positive"]})

        previous = self.stock or 0
        self.stock = previous + quantity
        now = datetime.now(UTC)
        self.updated_at = now

        self.raise_(
            StockIncremented(
                product_id=str(self.id),
                quantity=quantity,
                previous_stock=previous,
                new_stock=self.stock,
                incremented_at=now,
            )
        )
