"""Domain events for the Product aggregate (stock view)."""

from protean.fields import DateTime, Float, Identifier, Integer, String, Text

from storefront.domain import storefront


@storefront.event(part_of="Product")
class ProductRegistered:
    """A product became purchasable with an initial stock count."""

    __version__ = 1

    product_id = Identifier(required=True)
    name = String(required=True)
    price = Float(required=True)
    discount_price = Float()
    stock = Integer(required=True)
    sizes = Text(required=True)  # JSON array
    registered_at = DateTime(required=True)


@storefront.event(part_of="Product")
class ProductDetailsChanged:
    """Name or pricing of a product changed in the catalogue."""

    __version__ = 1

    product_id = Identifier(required=True)
    name = String(required=True)
    price = Float(required=True)
    discount_price = Float()
    changed_at = DateTime(required=True)


@storefront.event(part_of="Product")
class StockDecremented:
    """Units were taken out of stock for an order."""

    __version__ = 1

    product_id = Identifier(required=True)
    quantity = Integer(required=True)
    previous_stock = Integer(required=True)
    new_stock = Integer(required=True)
    decremented_at = DateTime(required=True)


@storefront.event(part_of="Product")
class StockIncremented:
    """Units were returned to stock (cancellation or compensation)."""

    __version__ = 1

    product_id = Identifier(required=True)
    quantity = Integer(required=True)
    previous_stock = Integer(required=True)
    new_stock = Integer(required=True)
    incremented_at = DateTime(required=True)


@storefront.event(part_of="Product")
class StockDepleted:
    """The last unit of a product was taken."""

    __version__ = 1

    product_id = Identifier(required=True)
    depleted_at = DateTime(required=True)
