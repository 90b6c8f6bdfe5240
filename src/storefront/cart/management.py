"""Cart management — commands and handler.

Handles lazy cart opening and clearing. Carts are never deleted.
"""

from protean import handle
from protean.exceptions import ObjectNotFoundError
from protean.fields import Identifier
from protean.utils.globals import current_domain

from storefront.cart.cart import ShoppingCart
from storefront.cart.queries import find_cart
from storefront.domain import storefront


@storefront.command(part_of="ShoppingCart")
class OpenCart:
    """Return the customer's cart, creating an empty one on first access."""

    customer_id = Identifier(required=True)


@storefront.command(part_of="ShoppingCart")
class ClearCart:
    """Remove every item from the customer's cart."""

    customer_id = Identifier(required=True)


@storefront.command_handler(part_of=ShoppingCart)
class ManageCartHandler:
    @handle(OpenCart)
    def open_cart(self, command):
        repo = current_domain.repository_for(ShoppingCart)
        cart = find_cart(command.customer_id)
        if cart is None:
            cart = ShoppingCart.create(customer_id=command.customer_id)
            repo.add(cart)
        return str(cart.id)

    @handle(ClearCart)
    def clear_cart(self, command):
        repo = current_domain.repository_for(ShoppingCart)
        cart = find_cart(command.customer_id)
        if cart is None:
            raise ObjectNotFoundError({"cart": ["Cart not found"]})
        cart.clear()
        repo.add(cart)
