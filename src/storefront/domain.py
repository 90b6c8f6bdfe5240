"""Storefront bounded context — Shopping Cart, Stock Ledger and Orders.

Handles the per-customer shopping cart, the stock view of catalogue
products, the checkout flow that converts carts into orders while
reserving stock, and the order lifecycle state machine.
"""

from protean.domain import Domain

from storefront.utils.logging import configure_logging, get_logger

configure_logging()

storefront = Domain(name="storefront")

logger = get_logger(__name__)
