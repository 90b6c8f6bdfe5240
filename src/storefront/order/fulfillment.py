"""Order fulfillment — shipment and delivery commands and handler.

Both operations are reserved for admins.
"""

from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from storefront.domain import storefront
from storefront.order.access import Role, ensure_admin
from storefront.order.order import Order


@storefront.command(part_of="Order")
class ShipOrder:
    order_id = Identifier(required=True)
    actor_role = String(choices=Role, default=Role.CUSTOMER.value)
    tracking_number = String(max_length=255)


@storefront.command(part_of="Order")
class DeliverOrder:
    order_id = Identifier(required=True)
    actor_role = String(choices=Role, default=Role.CUSTOMER.value)
    tracking_number = String(max_length=255)  # Optional


@storefront.command_handler(part_of=Order)
class OrderFulfillmentHandler:
    @handle(ShipOrder)
    def ship_order(self, command):
        ensure_admin(command.actor_role)
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.ship(tracking_number=command.tracking_number)
        repo.add(order)

    @handle(DeliverOrder)
    def deliver_order(self, command):
        ensure_admin(command.actor_role)
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.deliver(tracking_number=command.tracking_number)
        repo.add(order)
