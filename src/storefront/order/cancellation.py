"""Order cancellation — command, handler and restocking.

Cancelling is two steps. The CancelOrder command moves the order to
Cancelled in its own unit of work and hands back the lines to restock.
``cancel_order`` then returns those units through the StockLedger, so that
increments are serialized with concurrent checkouts of the same products.
"""

import structlog
from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from storefront.domain import storefront
from storefront.exceptions import StorageError
from storefront.order.access import Role, ensure_owner_or_admin
from storefront.order.order import Order
from storefront.stock.ledger import get_stock_ledger

logger = structlog.get_logger(__name__)


@storefront.command(part_of="Order")
class CancelOrder:
    order_id = Identifier(required=True)
    actor_id = Identifier()
    actor_role = String(choices=Role, default=Role.CUSTOMER.value)
    reason = String(max_length=500)


@storefront.command_handler(part_of=Order)
class CancelOrderHandler:
    @handle(CancelOrder)
    def cancel_order(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        ensure_owner_or_admin(order, command.actor_id, command.actor_role)

        cancelled_by = "Customer" if command.actor_role == Role.CUSTOMER.value else command.actor_role.capitalize()
        order.cancel(cancelled_by=cancelled_by, reason=command.reason)
        repo.add(order)
        return order.stock_lines()


def cancel_order(order_id, actor_id, actor_role, reason=None, ledger=None):
    """Cancel an order and return every item's quantity to stock."""
    ledger = ledger or get_stock_ledger()
    stock_lines = current_domain.process(
        CancelOrder(order_id=order_id, actor_id=actor_id, actor_role=actor_role, reason=reason),
        asynchronous=False,
    )

    for product_id, quantity in stock_lines:
        try:
            ledger.increment(product_id, quantity)
        except Exception as exc:
            logger.exception(
                "Restock after cancellation failed",
                order_id=str(order_id),
                product_id=product_id,
                quantity=quantity,
            )
            raise StorageError("Order was cancelled but its stock could not be fully restored") from exc

    logger.info("Order cancelled", order_id=str(order_id), restocked_lines=len(stock_lines))
    return order_id
