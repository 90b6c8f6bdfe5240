"""Cart lookup by customer."""

from protean.utils.globals import current_domain

from storefront.cart.cart import ShoppingCart


def find_cart(customer_id):
    """Return the customer's cart, or None if they never opened one."""
    repo = current_domain.repository_for(ShoppingCart)
    records = repo._dao.query.filter(customer_id=str(customer_id)).all().items
    if not records:
        return None
    # Reload through the repository so that items are attached
    return repo.get(records[0].id)
