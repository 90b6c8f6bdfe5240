"""Order aggregate (CQRS) — an immutable snapshot of a checked-out cart.

Items, prices and the shipping address are copied from the cart and the
product records at checkout and never re-read, so later catalogue changes
do not alter an order.

Status is the single source of truth for where an order is in its
lifecycle. ``is_paid`` and ``is_delivered`` are derived from the recorded
timestamps instead of being independently settable flags.

State Machine:
    CREATED → PROCESSING (paid) → SHIPPED → DELIVERED
    PROCESSING → DELIVERED (paid orders may be confirmed delivered directly)
    CANCELLED (from CREATED or PROCESSING)
"""

import json
from datetime import UTC, datetime
from enum import Enum

from protean import atomic_change, invariant
from protean.exceptions import ValidationError
from protean.fields import DateTime, Float, HasMany, Identifier, Integer, String, Text, ValueObject

from storefront.domain import storefront
from storefront.exceptions import InvalidStateTransitionError
from storefront.order.events import OrderCancelled, OrderCreated, OrderDelivered, OrderPaid, OrderShipped


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class OrderStatus(Enum):
    CREATED = "Created"
    PROCESSING = "Processing"
    SHIPPED = "Shipped"
    DELIVERED = "Delivered"
    CANCELLED = "Cancelled"


class PaymentMethodType(Enum):
    CREDIT_CARD = "credit_card"
    DEBIT_CARD = "debit_card"
    PIX = "pix"
    BOLETO = "boleto"


# State machine transition map
_VALID_TRANSITIONS = {
    OrderStatus.CREATED: {OrderStatus.PROCESSING, OrderStatus.CANCELLED},
    OrderStatus.PROCESSING: {
        OrderStatus.SHIPPED,
        OrderStatus.DELIVERED,  # Delivery confirmed without a separate shipment
        OrderStatus.CANCELLED,
    },
    OrderStatus.SHIPPED: {OrderStatus.DELIVERED},
    OrderStatus.DELIVERED: set(),  # Terminal
    OrderStatus.CANCELLED: set(),  # Terminal
}

_ACTIONS = {
    OrderStatus.PROCESSING: "pay",
    OrderStatus.SHIPPED: "ship",
    OrderStatus.DELIVERED: "deliver",
    OrderStatus.CANCELLED: "cancel",
}


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
@storefront.value_object(part_of="Order")
class ShippingAddress:
    """Where the order ships to, captured at checkout.

    Immutable once recorded: later changes to the customer's address book
    do not move an order that was already placed.
    """

    label = String(max_length=100)
    recipient = String(required=True, max_length=255)
    street = String(required=True, max_length=255)
    complement = String(max_length=255)
    neighborhood = String(max_length=100)
    city = String(required=True, max_length=100)
    state = String(required=True, max_length=100)
    postal_code = String(required=True, max_length=20)
    country = String(max_length=100, default="BR")


@storefront.value_object(part_of="Order")
class PaymentMethod:
    """How the customer chose to pay. ``details`` is the provider-specific
    JSON payload (card brand, last digits, pix key) and is never interpreted."""

    type = String(required=True, choices=PaymentMethodType)
    details = Text()

    @classmethod
    def from_checkout(cls, payment_method):
        """Build from the checkout payload ``{"type": ..., "details": {...}}``."""
        if not isinstance(payment_method, dict) or not payment_method.get("type"):
            raise ValidationError({"payment_method": ["Payment method type is required"]})

        details = payment_method.get("details")
        if details and not isinstance(details, str):
            details = json.dumps(details)
        return cls(type=payment_method["type"], details=details or None)

    def as_payload(self):
        return {"type": self.type, "details": json.loads(self.details) if self.details else None}


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@storefront.entity(part_of="Order")
class OrderItem:
    """A frozen copy of one cart line: product, name, size, customization,
    image and unit price as they were at checkout."""

    product_id = Identifier(required=True)
    name = String(required=True, max_length=255)
    quantity = Integer(required=True, min_value=1)
    size = String(required=True, max_length=50)
    customization = Text()
    image = String(max_length=500)
    unit_price = Float(required=True, min_value=0.0)


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@storefront.aggregate
class Order:
    customer_id = Identifier(required=True)
    status = String(choices=OrderStatus, default=OrderStatus.CREATED.value)
    items = HasMany(OrderItem)
    shipping_address = ValueObject(ShippingAddress)
    payment_method = ValueObject(PaymentMethod, required=True)
    items_price = Float(default=0.0)
    shipping_price = Float(default=0.0)
    tax_price = Float(default=0.0)
    total_price = Float(default=0.0)
    paid_at = DateTime()
    payment_result = Text()  # JSON: payment provider payload
    delivered_at = DateTime()
    tracking_number = String(max_length=255)
    cancellation_reason = String(max_length=500)
    cancelled_by = String(max_length=50)
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def total_price_must_add_up(self):
        expected = (self.items_price or 0.0) + (self.shipping_price or 0.0) + (self.tax_price or 0.0)
        if abs((self.total_price or 0.0) - expected) > 0.005:
            raise ValidationError({"total_price": ["Total price must equal items, shipping and tax prices"]})

    @invariant.post
    def delivered_order_must_be_paid(self):
        if self.status == OrderStatus.DELIVERED.value and self.paid_at is None:
            raise ValidationError({"status": ["An order cannot be delivered before it is paid"]})

    @invariant.post
    def shipped_order_must_have_tracking_number(self):
        if self.status == OrderStatus.SHIPPED.value and not self.tracking_number:
            raise ValidationError({"tracking_number": ["A shipped order must have a tracking number"]})

    # -------------------------------------------------------------------
    # Factory method
    # -------------------------------------------------------------------
    @classmethod
    def create(cls, customer_id, items_data, shipping_address, payment_method, pricing):
        """Create a new order from checkout data.

        Args:
            customer_id: The customer placing the order.
            items_data: List of dicts with product_id, name, quantity, size,
                        customization, image, unit_price.
            shipping_address: Dict of ShippingAddress fields.
            payment_method: Dict with the payment method type and optional details.
            pricing: Dict with items_price, shipping_price, tax_price, total_price.
        """
        if not items_data:
            raise ValidationError({"items": ["An order must have at least one item"]})

        now = datetime.now(UTC)
        order = cls(
            customer_id=customer_id,
            status=OrderStatus.CREATED.value,
            shipping_address=ShippingAddress(**shipping_address),
            payment_method=PaymentMethod.from_checkout(payment_method),
            items_price=pricing.get("items_price", 0.0),
            shipping_price=pricing.get("shipping_price", 0.0),
            tax_price=pricing.get("tax_price", 0.0),
            total_price=pricing.get("total_price", 0.0),
            created_at=now,
            updated_at=now,
        )
        for item_data in items_data:
            order.add_items(
                OrderItem(
                    product_id=item_data["product_id"],
                    name=item_data["name"],
                    quantity=item_data["quantity"],
                    size=item_data["size"],
                    customization=item_data.get("customization"),
                    image=item_data.get("image"),
                    unit_price=item_data["unit_price"],
                )
            )

        order.raise_(
            OrderCreated(
                order_id=str(order.id),
                customer_id=str(customer_id),
                items=json.dumps(items_data),
                payment_method=json.dumps(order.payment_method.as_payload()),
                items_price=order.items_price,
                shipping_price=order.shipping_price,
                tax_price=order.tax_price,
                total_price=order.total_price,
                created_at=now,
            )
        )
        return order

    # -------------------------------------------------------------------
    # Derived state
    # -------------------------------------------------------------------
    @property
    def is_paid(self):
        return self.paid_at is not None

    @property
    def is_delivered(self):
        return self.delivered_at is not None

    def stock_lines(self):
        """(product_id, quantity) pairs to return to stock on cancellation."""
        return [(str(item.product_id), item.quantity) for item in self.items]

    # -------------------------------------------------------------------
    # State transition helpers
    # -------------------------------------------------------------------
    def _assert_can_transition(self, target_status):
        """Validate that the current state allows transition to target."""
        current = OrderStatus(self.status)
        if target_status not in _VALID_TRANSITIONS.get(current, set()):
            raise InvalidStateTransitionError(current.value, _ACTIONS[target_status])

    def _assert_paid(self, target_status):
        if not self.is_paid:
            raise InvalidStateTransitionError(
                self.status,
                _ACTIONS[target_status],
                reason=f"Cannot {_ACTIONS[target_status]} an order that has not been paid",
            )

    # -------------------------------------------------------------------
    # Order lifecycle transitions
    # -------------------------------------------------------------------
    def pay(self, payment_result):
        """Record payment confirmation. Moves the order to processing."""
        self._assert_can_transition(OrderStatus.PROCESSING)
        if isinstance(payment_result, str):
            try:
                payment_result = json.loads(payment_result)
            except json.JSONDecodeError as exc:
                raise ValidationError({"payment_result": ["Payment result must be valid JSON"]}) from exc
        # An empty payload is not a confirmation
        if not payment_result:
            raise ValidationError({"payment_result": ["Payment result is required"]})

        encoded = json.dumps(payment_result)
        now = datetime.now(UTC)

        with atomic_change(self):
            self.status = OrderStatus.PROCESSING.value
            self.paid_at = now
            self.payment_result = encoded
            self.updated_at = now

        self.raise_(
            OrderPaid(
                order_id=str(self.id),
                payment_result=encoded,
                paid_at=now,
            )
        )

    def ship(self, tracking_number):
        """Record the carrier handoff."""
        self._assert_paid(OrderStatus.SHIPPED)
        self._assert_can_transition(OrderStatus.SHIPPED)
        if not tracking_number:
            raise ValidationError({"tracking_number": ["Tracking number is required"]})

        now = datetime.now(UTC)
        with atomic_change(self):
            self.status = OrderStatus.SHIPPED.value
            self.tracking_number = tracking_number
            self.updated_at = now

        self.raise_(
            OrderShipped(
                order_id=str(self.id),
                tracking_number=tracking_number,
                shipped_at=now,
            )
        )

    def deliver(self, tracking_number=None):
        """Record delivery confirmation."""
        self._assert_paid(OrderStatus.DELIVERED)
        self._assert_can_transition(OrderStatus.DELIVERED)

        now = datetime.now(UTC)
        with atomic_change(self):
            self.status = OrderStatus.DELIVERED.value
            self.delivered_at = now
            if tracking_number:
                self.tracking_number = tracking_number
            self.updated_at = now

        self.raise_(
            OrderDelivered(
                order_id=str(self.id),
                tracking_number=self.tracking_number,
                delivered_at=now,
            )
        )

    def cancel(self, cancelled_by, reason=None):
        """Cancel the order. Returning its items to stock is the caller's job."""
        current = OrderStatus(self.status)
        if OrderStatus.CANCELLED not in _VALID_TRANSITIONS.get(current, set()):
            raise InvalidStateTransitionError(
                current.value,
                "cancel",
                reason=f"Cannot cancel an order in {current.value} state. "
                f"Orders that were shipped or delivered cannot be cancelled",
            )

        now = datetime.now(UTC)
        with atomic_change(self):
            self.status = OrderStatus.CANCELLED.value
            self.cancellation_reason = reason
            self.cancelled_by = cancelled_by
            self.updated_at = now

        self.raise_(
            OrderCancelled(
                order_id=str(self.id),
                previous_status=current.value,
                reason=reason,
                cancelled_by=cancelled_by,
                cancelled_at=now,
            )
        )
