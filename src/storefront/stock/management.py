"""Product management — commands and handler.

Products are owned by the catalogue; these commands give it a way to make
a product purchasable here and to keep its name and pricing current.
"""

import json

from protean import handle
from protean.fields import Float, Identifier, Integer, String, Text
from protean.utils.globals import current_domain

from storefront.domain import storefront
from storefront.stock.product import Product


@storefront.command(part_of="Product")
class RegisterProduct:
    """Make a catalogue product purchasable with an initial stock count."""

    name = String(required=True, max_length=255)
    price = Float(required=True, min_value=0.0)
    discount_price = Float(min_value=0.0)
    stock = Integer(default=0, min_value=0)
    sizes = Text(required=True)  # JSON: list of size labels
    image = String(max_length=500)


@storefront.command(part_of="Product")
class ChangeProductDetails:
    """Update a product's display name or pricing."""

    product_id = Identifier(required=True)
    name = String(max_length=255)
    price = Float(min_value=0.0)
    discount_price = Float(min_value=0.0)


@storefront.command_handler(part_of=Product)
class ManageProductHandler:
    @handle(RegisterProduct)
    def register_product(self, command):
        sizes = json.loads(command.sizes) if isinstance(command.sizes, str) else command.sizes
        product = Product.register(
            name=command.name,
            price=command.price,
            sizes=sizes,
            stock=command.stock or 0,
            discount_price=command.discount_price,
            image=command.image,
        )
        current_domain.repository_for(Product).add(product)
        return str(product.id)

    @handle(ChangeProductDetails)
    def change_product_details(self, command):
        repo = current_domain.repository_for(Product)
        product = repo.get(command.product_id)
        product.change_details(
            name=command.name,
            price=command.price,
            discount_price=command.discount_price,
        )
        repo.add(product)
