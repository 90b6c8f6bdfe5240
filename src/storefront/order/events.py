"""Domain events for the Order aggregate."""

from protean.fields import DateTime, Float, Identifier, String, Text

from storefront.domain import storefront


@storefront.event(part_of="Order")
class OrderCreated:
    """A cart was checked out into a new order."""

    __version__ = 1

    order_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    items = Text(required=True)  # JSON: frozen item snapshot
    payment_method = Text(required=True)  # JSON: type and details
    items_price = Float(required=True)
    shipping_price = Float(required=True)
    tax_price = Float(required=True)
    total_price = Float(required=True)
    created_at = DateTime(required=True)


@storefront.event(part_of="Order")
class OrderPaid:
    """Payment was confirmed; the order moves to processing."""

    __version__ = 1

    order_id = Identifier(required=True)
    payment_result = Text(required=True)  # JSON: payment provider payload
    paid_at = DateTime(required=True)


@storefront.event(part_of="Order")
class OrderShipped:
    """The order was handed to the carrier."""

    __version__ = 1

    order_id = Identifier(required=True)
    tracking_number = String(required=True)
    shipped_at = DateTime(required=True)


@storefront.event(part_of="Order")
class OrderDelivered:
    """Delivery of the order was confirmed."""

    __version__ = 1

    order_id = Identifier(required=True)
    tracking_number = String()
    delivered_at = DateTime(required=True)


@storefront.event(part_of="Order")
class OrderCancelled:
    """The order was cancelled; its items go back to stock."""

    __version__ = 1

    order_id = Identifier(required=True)
    previous_status = String(required=True)
    reason = String()
    cancelled_by = String(required=True)
    cancelled_at = DateTime(required=True)
