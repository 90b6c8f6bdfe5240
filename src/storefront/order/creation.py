"""Order creation — command and handler.

Orders are only created by the checkout workflow, after stock for every
item has been reserved. Use CheckoutWorkflow.place_order instead of
processing CreateOrder directly.
"""

import json

from protean import handle
from protean.fields import Float, Identifier, Text
from protean.utils.globals import current_domain

from storefront.domain import storefront
from storefront.order.order import Order


@storefront.command(part_of="Order")
class CreateOrder:
    customer_id = Identifier(required=True)
    items = Text(required=True)  # JSON: list of frozen item dicts
    shipping_address = Text(required=True)  # JSON: address dict
    payment_method = Text(required=True)  # JSON: {"type": ..., "details": {...}}
    items_price = Float(required=True)
    shipping_price = Float(default=0.0)
    tax_price = Float(default=0.0)
    total_price = Float(required=True)


@storefront.command_handler(part_of=Order)
class CreateOrderHandler:
    @handle(CreateOrder)
    def create_order(self, command):
        items_data = json.loads(command.items) if isinstance(command.items, str) else command.items
        shipping_address = (
            json.loads(command.shipping_address)
            if isinstance(command.shipping_address, str)
            else command.shipping_address
        )
        payment_method = (
            json.loads(command.payment_method)
            if isinstance(command.payment_method, str)
            else command.payment_method
        )

        pricing = {
            "items_price": command.items_price,
            "shipping_price": command.shipping_price or 0.0,
            "tax_price": command.tax_price or 0.0,
            "total_price": command.total_price,
        }

        order = Order.create(
            customer_id=command.customer_id,
            items_data=items_data,
            shipping_address=shipping_address,
            payment_method=payment_method,
            pricing=pricing,
        )
        current_domain.repository_for(Order).add(order)
        return str(order.id)
