"""Shopping Cart aggregate (CQRS) — one active cart per customer.

The cart is a standard CQRS aggregate (not event sourced). It is opened
lazily the first time a customer touches it, holds line items with the
unit price captured when each item was added, and is emptied (never
deleted) when the customer clears it or checks it out.

Totals are derived: every mutation recomputes ``total_price`` and
``total_items`` from the current items before the cart is persisted.
"""

import json
from datetime import UTC, datetime

from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.fields import DateTime, Float, HasMany, Identifier, Integer, String, Text

from storefront.cart.events import CartCleared, CartItemAdded, CartItemRemoved, CartQuantityUpdated
from storefront.domain import storefront


def normalize_customization(customization):
    """Return the canonical JSON text for a customization payload.

    The payload is opaque: it is only compared for equality and echoed back
    for display. Key order is preserved, so ``{"a": 1, "b": 2}`` and
    ``{"b": 2, "a": 1}`` are different customizations. A missing payload and
    an empty one are the same (None).
    """
    if customization is None or customization == "":
        return None
    if isinstance(customization, str):
        try:
            customization = json.loads(customization)
        except json.JSONDecodeError as exc:
            raise ValidationError({"customization": ["Customization must be valid JSON"]}) from exc
    if not isinstance(customization, dict):
        raise ValidationError({"customization": ["Customization must be a key/value object"]})
    if not customization:
        return None
    return json.dumps(customization)


@storefront.entity(part_of="ShoppingCart")
class CartItem:
    product_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)
    size = String(required=True, max_length=50)
    customization = Text()  # Opaque JSON, order preserving
    unit_price = Float(required=True, min_value=0.0)  # Captured at add time
    added_at = DateTime()

    def matches(self, product_id, size, customization):
        return (
            str(self.product_id) == str(product_id)
            and self.size == str(size)
            and (self.customization or None) == customization
        )

    def line_total(self):
        return self.unit_price * self.quantity


@storefront.aggregate
class ShoppingCart:
    customer_id = Identifier(required=True)
    items = HasMany(CartItem)
    total_price = Float(default=0.0)
    total_items = Integer(default=0)
    created_at = DateTime()
    updated_at = DateTime()

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def create(cls, customer_id):
        now = datetime.now(UTC)
        return cls(
            customer_id=customer_id,
            total_price=0.0,
            total_items=0,
            created_at=now,
            updated_at=now,
        )

    # -------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------
    def _recalculate_totals(self):
        self.total_items = sum(item.quantity for item in self.items)
        self.total_price = round(sum(item.line_total() for item in self.items), 2)

    def find_item(self, item_id):
        """Return the line item with ``item_id`` or raise ObjectNotFoundError."""
        item = next((i for i in self.items if str(i.id) == str(item_id)), None)
        if item is None:
            raise ObjectNotFoundError({"item_id": ["Item not found in cart"]})
        return item

    def is_empty(self):
        return not self.items

    # -------------------------------------------------------------------
    # Item management
    # -------------------------------------------------------------------
    def add_item(self, product_id, size, quantity, unit_price, customization=None):
        """Add an item to the cart, or increase the quantity of the same
        (product, size, customization) line if it is already there."""
        if not size:
            raise ValidationError({"size": ["Size is required"]})
        if quantity is None or quantity < 1:
            raise ValidationError({"quantity": ["Quantity must be at least 1"]})

        customization = normalize_customization(customization)
        existing = next((i for i in self.items if i.matches(product_id, size, customization)), None)

        now = datetime.now(UTC)

        if existing:
            existing.quantity += quantity
            item_id = str(existing.id)
            captured_price = existing.unit_price
        else:
            item = CartItem(
                product_id=product_id,
                quantity=quantity,
                size=str(size),
                customization=customization,
                unit_price=unit_price,
                added_at=now,
            )
            self.add_items(item)
            item_id = str(item.id)
            captured_price = unit_price

        self._recalculate_totals()
        self.updated_at = now

        self.raise_(
            CartItemAdded(
                cart_id=str(self.id),
                item_id=item_id,
                product_id=str(product_id),
                size=str(size),
                customization=customization,
                quantity=quantity,
                unit_price=captured_price,
                new_total_price=self.total_price,
            )
        )
        return item_id

    def update_item_quantity(self, item_id, new_quantity):
        """Replace the quantity of an existing cart item."""
        if new_quantity is None or new_quantity < 1:
            raise ValidationError({"quantity": ["Quantity must be at least 1"]})

        item = self.find_item(item_id)
        previous_quantity = item.quantity
        item.quantity = new_quantity

        self._recalculate_totals()
        self.updated_at = datetime.now(UTC)

        self.raise_(
            CartQuantityUpdated(
                cart_id=str(self.id),
                item_id=str(item_id),
                previous_quantity=previous_quantity,
                new_quantity=new_quantity,
                new_total_price=self.total_price,
            )
        )

    def remove_item(self, item_id):
        """Remove an item from the cart. The last removal leaves an empty cart."""
        item = self.find_item(item_id)
        self.remove_items(item)

        self._recalculate_totals()
        self.updated_at = datetime.now(UTC)

        self.raise_(
            CartItemRemoved(
                cart_id=str(self.id),
                item_id=str(item_id),
                new_total_price=self.total_price,
            )
        )

    def clear(self):
        """Remove every item. Clearing an empty cart is a no-op."""
        removed = list(self.items)
        for item in removed:
            self.remove_items(item)

        self._recalculate_totals()
        now = datetime.now(UTC)
        self.updated_at = now

        if removed:
            self.raise_(
                CartCleared(
                    cart_id=str(self.id),
                    items_removed_count=len(removed),
                    cleared_at=now,
                )
            )

    # -------------------------------------------------------------------
    # Checkout support
    # -------------------------------------------------------------------
    def snapshot_items(self):
        """Plain copies of the line items, detached from the aggregate."""
        return [
            {
                "product_id": str(item.product_id),
                "quantity": item.quantity,
                "size": item.size,
                "customization": item.customization,
                "unit_price": item.unit_price,
            }
            for item in self.items
        ]

