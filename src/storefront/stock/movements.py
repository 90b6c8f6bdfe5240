"""Stock movements — commands and handler.

These commands are dispatched by the StockLedger, which holds the
product's lock while the handler checks and persists the new count.
Do not process them directly from other handlers.
"""

from protean import handle
from protean.fields import Identifier, Integer
from protean.utils.globals import current_domain

from storefront.domain import storefront
from storefront.stock.product import Product


@storefront.command(part_of="Product")
class DecrementStock:
    product_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)


@storefront.command(part_of="Product")
class IncrementStock:
    product_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)


@storefront.command_handler(part_of=Product)
class StockMovementHandler:
    @handle(DecrementStock)
    def decrement_stock(self, command):
        repo = current_domain.repository_for(Product)
        product = repo.get(command.product_id)
        product.decrement_stock(command.quantity)
        repo.add(product)
        return product.stock

    @handle(IncrementStock)
    def increment_stock(self, command):
        repo = current_domain.repository_for(Product)
        product = repo.get(command.product_id)
        product.increment_stock(command.quantity)
        repo.add(product)
        return product.stock
