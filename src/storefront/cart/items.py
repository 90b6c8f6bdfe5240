"""Cart item management — commands and handler.

Product checks (existence, size, stock) happen here, against the current
Product record, before the cart aggregate is touched. The cart itself only
knows the unit price it was given when the item was added.
"""

from protean import handle
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.fields import Identifier, Integer, String, Text
from protean.utils.globals import current_domain

from storefront.cart.cart import ShoppingCart
from storefront.cart.queries import find_cart
from storefront.domain import storefront
from storefront.exceptions import InsufficientStockError
from storefront.stock.product import Product


@storefront.command(part_of="ShoppingCart")
class AddToCart:
    customer_id = Identifier(required=True)
    product_id = Identifier(required=True)
    size = String(max_length=50)
    quantity = Integer(default=1, min_value=1)
    customization = Text()  # JSON: opaque key/value selections


@storefront.command(part_of="ShoppingCart")
class UpdateCartQuantity:
    customer_id = Identifier(required=True)
    item_id = Identifier(required=True)
    new_quantity = Integer(required=True, min_value=1)


@storefront.command(part_of="ShoppingCart")
class RemoveFromCart:
    customer_id = Identifier(required=True)
    item_id = Identifier(required=True)


def _ensure_in_stock(product, quantity):
    available = product.stock or 0
    if available < quantity:
        raise InsufficientStockError(product.id, requested=quantity, available=available, product_name=product.name)


def _customer_cart(customer_id):
    cart = find_cart(customer_id)
    if cart is None:
        raise ObjectNotFoundError({"cart": ["Cart not found"]})
    return cart


@storefront.command_handler(part_of=ShoppingCart)
class ManageCartItemsHandler:
    @handle(AddToCart)
    def add_to_cart(self, command):
        if not command.size:
            raise ValidationError({"size": ["Size is required"]})

        quantity = command.quantity or 1
        product = current_domain.repository_for(Product).get(command.product_id)
        if not product.accepts_size(command.size):
            raise ValidationError({"size": [f"Size {command.size} is not available for this product"]})
        _ensure_in_stock(product, quantity)

        repo = current_domain.repository_for(ShoppingCart)
        cart = find_cart(command.customer_id) or ShoppingCart.create(customer_id=command.customer_id)
        item_id = cart.add_item(
            product_id=command.product_id,
            size=command.size,
            quantity=quantity,
            unit_price=product.effective_price(),
            customization=command.customization,
        )
        repo.add(cart)
        return item_id

    @handle(UpdateCartQuantity)
    def update_cart_quantity(self, command):
        cart = _customer_cart(command.customer_id)
        item = cart.find_item(command.item_id)

        product = current_domain.repository_for(Product).get(item.product_id)
        _ensure_in_stock(product, command.new_quantity)

        cart.update_item_quantity(
            item_id=command.item_id,
            new_quantity=command.new_quantity,
        )
        current_domain.repository_for(ShoppingCart).add(cart)

    @handle(RemoveFromCart)
    def remove_from_cart(self, command):
        cart = _customer_cart(command.customer_id)
        cart.remove_item(item_id=command.item_id)
        current_domain.repository_for(ShoppingCart).add(cart)
