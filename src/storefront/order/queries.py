"""Read access to orders, guarded by ownership."""

from protean.utils.globals import current_domain

from storefront.order.access import ensure_owner_or_admin
from storefront.order.order import Order


def find_order(order_id, actor_id, actor_role):
    """Return the order if the caller owns it or is an admin."""
    order = current_domain.repository_for(Order).get(order_id)
    ensure_owner_or_admin(order, actor_id, actor_role)
    return order


def list_orders(customer_id):
    """The customer's own orders, newest first."""
    repo = current_domain.repository_for(Order)
    records = repo._dao.query.filter(customer_id=str(customer_id)).order_by("-created_at").all().items
    return [repo.get(record.id) for record in records]
