"""Checkout Workflow — converts a customer's cart into an order.

The storage underneath offers no multi-aggregate transactions, so the
workflow is a small saga. Each step commits on its own and every step
after the first mutation has a compensation:

    1. Validate shipping address and payment method
    2. Load the cart               → EmptyCartError if there is nothing to buy
    3. Check stock for every line  → InsufficientStockError, nothing mutated
    4. Reserve stock (conditional decrement per product)
                                   ↺ re-increment what was already taken
    5. Create the order with a frozen copy of each line
                                   ↺ re-increment all reserved stock
    6. Empty the cart loaded in 2  ↺ cancel the order, re-increment stock
    7. Return the order id

Stock is taken before the order is written, so a refused decrement never
leaves an order behind, and the cart is only emptied once the order exists.
Steps 2-6 run under the customer's cart lock: a concurrent checkout of the
same cart waits, then finds it empty.
"""

import json

import structlog
from protean.exceptions import ValidationError
from protean.utils.globals import current_domain

from storefront.cart.cart import ShoppingCart
from storefront.cart.locks import cart_lock
from storefront.cart.queries import find_cart
from storefront.exceptions import EmptyCartError, InsufficientStockError, StorageError
from storefront.order.access import Role
from storefront.order.cancellation import CancelOrder
from storefront.order.creation import CreateOrder
from storefront.order.order import PaymentMethod, ShippingAddress
from storefront.stock.ledger import StockLedger, get_stock_ledger

logger = structlog.get_logger(__name__)


class CheckoutWorkflow:
    def __init__(self, ledger: StockLedger | None = None) -> None:
        self.ledger = ledger or get_stock_ledger()

    def place_order(
        self,
        customer_id,
        shipping_address: dict,
        payment_method: dict,
        shipping_price: float = 0.0,
        tax_price: float = 0.0,
    ) -> str:
        """Check out the customer's cart and return the new order's id."""
        self._validate_checkout_data(shipping_address, payment_method, shipping_price, tax_price)

        with cart_lock(customer_id):
            return self._convert_cart(customer_id, shipping_address, payment_method, shipping_price, tax_price)

    def _convert_cart(self, customer_id, shipping_address, payment_method, shipping_price, tax_price):
        cart = find_cart(customer_id)
        if cart is None or cart.is_empty():
            raise EmptyCartError(customer_id)

        lines = cart.snapshot_items()
        products = {line["product_id"]: self.ledger.find_product(line["product_id"]) for line in lines}
        requested = self._requested_per_product(lines)

        # Verify everything before any mutation
        for product_id, quantity in requested.items():
            product = products[product_id]
            if (product.stock or 0) < quantity:
                raise InsufficientStockError(
                    product_id, requested=quantity, available=product.stock or 0, product_name=product.name
                )

        logger.info("Checkout started", customer_id=str(customer_id), cart_id=str(cart.id), lines=len(lines))

        reserved = self._reserve_stock(requested)

        items_price = cart.total_price or 0.0
        pricing = {
            "items_price": items_price,
            "shipping_price": shipping_price or 0.0,
            "tax_price": tax_price or 0.0,
            "total_price": round(items_price + (shipping_price or 0.0) + (tax_price or 0.0), 2),
        }
        order_items = [
            {
                "product_id": line["product_id"],
                "name": products[line["product_id"]].name,
                "quantity": line["quantity"],
                "size": line["size"],
                "customization": line["customization"],
                "image": products[line["product_id"]].primary_image(),
                "unit_price": line["unit_price"],
            }
            for line in lines
        ]

        try:
            order_id = current_domain.process(
                CreateOrder(
                    customer_id=str(customer_id),
                    items=json.dumps(order_items),
                    shipping_address=json.dumps(shipping_address),
                    payment_method=json.dumps(payment_method),
                    **pricing,
                ),
                asynchronous=False,
            )
        except Exception as exc:
            self._release_stock(reserved)
            if isinstance(exc, ValidationError):
                raise
            logger.exception("Order creation failed during checkout", customer_id=str(customer_id))
            raise StorageError("The order could not be created") from exc

        # Empty the cart that was converted, not a fresh read of it
        try:
            cart.clear()
            current_domain.repository_for(ShoppingCart).add(cart)
        except Exception as exc:
            logger.exception("Cart could not be emptied after checkout", order_id=order_id)
            self._void_order(order_id)
            self._release_stock(reserved)
            raise StorageError("The order could not be completed") from exc

        logger.info(
            "Order placed",
            order_id=order_id,
            customer_id=str(customer_id),
            total_price=pricing["total_price"],
        )
        return order_id

    # -------------------------------------------------------------------
    # Steps
    # -------------------------------------------------------------------
    @staticmethod
    def _validate_checkout_data(shipping_address, payment_method, shipping_price, tax_price):
        if not shipping_address:
            raise ValidationError({"shipping_address": ["Shipping address is required"]})
        if not payment_method:
            raise ValidationError({"payment_method": ["Payment method is required"]})
        if (shipping_price or 0.0) < 0 or (tax_price or 0.0) < 0:
            raise ValidationError({"pricing": ["Shipping and tax prices cannot be negative"]})

        # Raise ValidationError on missing or malformed fields
        ShippingAddress(**shipping_address)
        PaymentMethod.from_checkout(payment_method)

    @staticmethod
    def _requested_per_product(lines):
        """Total quantity per product; the same product can sit on several
        lines with different sizes or customizations."""
        requested = {}
        for line in lines:
            requested[line["product_id"]] = requested.get(line["product_id"], 0) + line["quantity"]
        return requested

    def _reserve_stock(self, requested):
        reserved = []
        for product_id, quantity in requested.items():
            try:
                self.ledger.conditional_decrement(product_id, quantity)
            except InsufficientStockError:
                # Stock moved between the check and the decrement
                self._release_stock(reserved)
                raise
            except Exception as exc:
                logger.exception("Stock reservation failed", product_id=product_id)
                self._release_stock(reserved)
                raise StorageError("Stock could not be reserved") from exc
            reserved.append((product_id, quantity))
        return reserved

    # -------------------------------------------------------------------
    # Compensations
    # -------------------------------------------------------------------
    def _release_stock(self, reserved):
        for product_id, quantity in reserved:
            try:
                self.ledger.increment(product_id, quantity)
            except Exception:
                # Keep releasing the remaining lines; this one needs manual repair
                logger.exception(
                    "Compensation failed: stock not restored",
                    product_id=product_id,
                    quantity=quantity,
                )
            else:
                logger.warning("Compensation: stock restored", product_id=product_id, quantity=quantity)

    @staticmethod
    def _void_order(order_id):
        try:
            current_domain.process(
                CancelOrder(
                    order_id=order_id,
                    actor_role=Role.SYSTEM.value,
                    reason="Checkout could not be completed",
                ),
                asynchronous=False,
            )
        except Exception:
            logger.exception("Compensation failed: order not cancelled", order_id=order_id)


def place_order(customer_id, shipping_address, payment_method, shipping_price=0.0, tax_price=0.0):
    """Check out ``customer_id``'s cart with the process-wide stock ledger."""
    return CheckoutWorkflow().place_order(
        customer_id,
        shipping_address=shipping_address,
        payment_method=payment_method,
        shipping_price=shipping_price,
        tax_price=tax_price,
    )

