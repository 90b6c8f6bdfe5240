"""Order payment — command and handler.

There is no payment gateway here: the caller confirms payment and hands
over the provider's result payload, which is stored as-is.
"""

from protean import handle
from protean.fields import Identifier, String, Text
from protean.utils.globals import current_domain

from storefront.domain import storefront
from storefront.order.access import Role, ensure_owner_or_admin
from storefront.order.order import Order


@storefront.command(part_of="Order")
class PayOrder:
    order_id = Identifier(required=True)
    actor_id = Identifier(required=True)
    actor_role = String(choices=Role, default=Role.CUSTOMER.value)
    payment_result = Text()  # JSON: provider payload (id, status, update_time, email)


@storefront.command_handler(part_of=Order)
class PayOrderHandler:
    @handle(PayOrder)
    def pay_order(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        ensure_owner_or_admin(order, command.actor_id, command.actor_role)
        order.pay(payment_result=command.payment_result)
        repo.add(order)
