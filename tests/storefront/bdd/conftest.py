"""Shared BDD fixtures and step definitions for the Storefront."""

import pytest
from protean import current_domain
from pytest_bdd import given, parsers, then
from storefront.cart.queries import find_cart
from storefront.cart.items import AddToCart
from storefront.checkout.workflow import place_order
from storefront.order.fulfillment import ShipOrder
from storefront.order.order import Order
from storefront.order.payment import PayOrder
from storefront.stock.ledger import get_stock_ledger
from storefront.stock.product import Product


# ---------------------------------------------------------------------------
# Scalar fixtures
# ---------------------------------------------------------------------------
@pytest.fixture()
def customer_id():
    return "cust-001"


@pytest.fixture()
def shop():
    """Scenario state: product ids by name, the placed order and any captured error."""
    return {"products": {}, "order_id": None, "error": None}


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(parsers.cfparse('a product "{name}" priced {price:f} with stock {stock:d}'))
def _(shop, make_product, name, price, stock):
    shop["products"][name] = make_product(name=name, price=price, stock=stock, sizes=("P", "M", "G", "40"))


@given(parsers.cfparse('the customer has {qty:d} "{name}" in size "{size}" in the cart'))
def _(shop, customer_id, qty, name, size):
    current_domain.process(
        AddToCart(customer_id=customer_id, product_id=shop["products"][name], size=size, quantity=qty),
        asynchronous=False,
    )


@given(parsers.cfparse('{qty:d} "{name}" was sold to someone else'))
def _(shop, qty, name):
    get_stock_ledger().conditional_decrement(shop["products"][name], qty)


@given("the customer checked out")
def _(shop, customer_id, shipping_address):
    shop["order_id"] = place_order(customer_id, shipping_address, {"type": "credit_card"})


@given("the order was paid and shipped")
def _(shop, customer_id):
    current_domain.process(
        PayOrder(order_id=shop["order_id"], actor_id=customer_id, payment_result='{"id": "PAY-001"}'),
        asynchronous=False,
    )
    current_domain.process(
        ShipOrder(order_id=shop["order_id"], actor_role="admin", tracking_number="TRACK-001"),
        asynchronous=False,
    )


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse('the stock of "{name}" is {stock:d}'))
def _(shop, name, stock):
    assert current_domain.repository_for(Product).get(shop["products"][name]).stock == stock


@then(parsers.cfparse('the order status is "{status}"'))
def _(shop, status):
    assert current_domain.repository_for(Order).get(shop["order_id"]).status == status


@then("the cart is empty")
def _(customer_id):
    assert find_cart(customer_id).is_empty()
