"""Application tests for the order lifecycle — payment, fulfillment, cancellation and access."""

import json

import pytest
from protean import current_domain
from protean.exceptions import ObjectNotFoundError, ValidationError
from storefront.cart.items import AddToCart
from storefront.checkout.workflow import place_order
from storefront.exceptions import AuthorizationError, InvalidStateTransitionError, StorageError
from storefront.order.cancellation import cancel_order
from storefront.order.fulfillment import DeliverOrder, ShipOrder
from storefront.order.order import Order, OrderStatus
from storefront.order.payment import PayOrder
from storefront.order.queries import find_order, list_orders
from storefront.stock.ledger import StockLedger
from storefront.stock.product import Product

_PAYMENT = json.dumps({"id": "PAY-001", "status": "COMPLETED", "email": "ana@example.com"})
_CARD = {"type": "credit_card"}


@pytest.fixture()
def placed_order(make_product, shipping_address):
    """A fresh order for cust-001: 2 tees and 1 cap, stock 5 each beforehand."""
    tee = make_product(name="Tee", price=20.0, stock=5)
    cap = make_product(name="Cap", price=15.0, stock=5)
    for product_id, quantity in ((tee, 2), (cap, 1)):
        current_domain.process(
            AddToCart(customer_id="cust-001", product_id=product_id, size="M", quantity=quantity),
            asynchronous=False,
        )
    order_id = place_order("cust-001", shipping_address, _CARD, shipping_price=5.0)
    return {"order_id": order_id, "tee": tee, "cap": cap}


def _order(order_id):
    return current_domain.repository_for(Order).get(order_id)


def _stock(product_id):
    return current_domain.repository_for(Product).get(product_id).stock


def _pay(order_id, actor_id="cust-001", actor_role="user", payment_result=_PAYMENT):
    current_domain.process(
        PayOrder(order_id=order_id, actor_id=actor_id, actor_role=actor_role, payment_result=payment_result),
        asynchronous=False,
    )


def _ship(order_id, actor_role="admin", tracking_number="TRACK-001"):
    current_domain.process(
        ShipOrder(order_id=order_id, actor_role=actor_role, tracking_number=tracking_number),
        asynchronous=False,
    )


def _deliver(order_id, actor_role="admin"):
    current_domain.process(DeliverOrder(order_id=order_id, actor_role=actor_role), asynchronous=False)


class TestPayOrder:
    def test_owner_pays(self, placed_order):
        _pay(placed_order["order_id"])
        order = _order(placed_order["order_id"])
        assert order.status == OrderStatus.PROCESSING.value
        assert order.is_paid
        assert json.loads(order.payment_result)["id"] == "PAY-001"

    def test_admin_pays_on_behalf_of_customer(self, placed_order):
        _pay(placed_order["order_id"], actor_id="admin-001", actor_role="admin")
        assert _order(placed_order["order_id"]).is_paid

    def test_other_customer_cannot_pay(self, placed_order):
        with pytest.raises(AuthorizationError):
            _pay(placed_order["order_id"], actor_id="cust-002")
        assert not _order(placed_order["order_id"]).is_paid

    def test_payment_result_required(self, placed_order):
        with pytest.raises(ValidationError):
            _pay(placed_order["order_id"], payment_result=None)

    def test_empty_payment_result_rejected(self, placed_order):
        with pytest.raises(ValidationError) as exc:
            _pay(placed_order["order_id"], payment_result="{}")
        assert "payment_result" in exc.value.messages
        assert not _order(placed_order["order_id"]).is_paid

    def test_paying_twice_fails(self, placed_order):
        _pay(placed_order["order_id"])
        with pytest.raises(InvalidStateTransitionError):
            _pay(placed_order["order_id"])

    def test_unknown_order_not_found(self):
        with pytest.raises(ObjectNotFoundError):
            _pay("no-such-order")


class TestFulfillment:
    def test_admin_ships_paid_order(self, placed_order):
        _pay(placed_order["order_id"])
        _ship(placed_order["order_id"])
        order = _order(placed_order["order_id"])
        assert order.status == OrderStatus.SHIPPED.value
        assert order.tracking_number == "TRACK-001"

    def test_customer_cannot_ship(self, placed_order):
        _pay(placed_order["order_id"])
        with pytest.raises(AuthorizationError):
            _ship(placed_order["order_id"], actor_role="user")

    def test_shipping_unpaid_order_fails(self, placed_order):
        with pytest.raises(InvalidStateTransitionError):
            _ship(placed_order["order_id"])
        assert _order(placed_order["order_id"]).status == OrderStatus.CREATED.value

    def test_full_lifecycle(self, placed_order):
        _pay(placed_order["order_id"])
        _ship(placed_order["order_id"])
        _deliver(placed_order["order_id"])
        order = _order(placed_order["order_id"])
        assert order.status == OrderStatus.DELIVERED.value
        assert order.is_paid
        assert order.is_delivered

    def test_customer_cannot_deliver(self, placed_order):
        _pay(placed_order["order_id"])
        with pytest.raises(AuthorizationError):
            _deliver(placed_order["order_id"], actor_role="user")


class TestCancelOrder:
    def test_cancel_created_order_restocks(self, placed_order):
        assert _stock(placed_order["tee"]) == 3
        assert _stock(placed_order["cap"]) == 4

        cancel_order(placed_order["order_id"], "cust-001", "user", reason="Changed my mind")

        order = _order(placed_order["order_id"])
        assert order.status == OrderStatus.CANCELLED.value
        assert order.cancelled_by == "Customer"
        assert order.cancellation_reason == "Changed my mind"
        assert _stock(placed_order["tee"]) == 5
        assert _stock(placed_order["cap"]) == 5

    def test_admin_cancels_paid_order(self, placed_order):
        _pay(placed_order["order_id"])
        cancel_order(placed_order["order_id"], "admin-001", "admin")
        order = _order(placed_order["order_id"])
        assert order.status == OrderStatus.CANCELLED.value
        assert order.cancelled_by == "Admin"
        assert _stock(placed_order["tee"]) == 5

    def test_cancel_shipped_order_fails(self, placed_order):
        _pay(placed_order["order_id"])
        _ship(placed_order["order_id"])

        with pytest.raises(InvalidStateTransitionError):
            cancel_order(placed_order["order_id"], "cust-001", "user")

        assert _order(placed_order["order_id"]).status == OrderStatus.SHIPPED.value
        assert _stock(placed_order["tee"]) == 3

    def test_other_customer_cannot_cancel(self, placed_order):
        with pytest.raises(AuthorizationError):
            cancel_order(placed_order["order_id"], "cust-002", "user")
        assert _stock(placed_order["tee"]) == 3

    def test_cancelling_twice_does_not_restock_twice(self, placed_order):
        cancel_order(placed_order["order_id"], "cust-001", "user")
        with pytest.raises(InvalidStateTransitionError):
            cancel_order(placed_order["order_id"], "cust-001", "user")
        assert _stock(placed_order["tee"]) == 5

    def test_restock_failure_surfaces_as_storage_error(self, placed_order):
        class _BrokenLedger(StockLedger):
            def increment(self, product_id, amount):
                raise ConnectionError("database went away")

        with pytest.raises(StorageError):
            cancel_order(placed_order["order_id"], "cust-001", "user", ledger=_BrokenLedger())

        assert _order(placed_order["order_id"]).status == OrderStatus.CANCELLED.value


class TestQueries:
    def test_owner_reads_order(self, placed_order):
        order = find_order(placed_order["order_id"], "cust-001", "user")
        assert str(order.id) == placed_order["order_id"]

    def test_admin_reads_any_order(self, placed_order):
        assert find_order(placed_order["order_id"], "admin-001", "admin") is not None

    def test_other_customer_cannot_read(self, placed_order):
        with pytest.raises(AuthorizationError):
            find_order(placed_order["order_id"], "cust-002", "user")

    def test_list_orders_newest_first(self, placed_order, make_product, shipping_address):
        product_id = make_product(name="Sock", price=5.0)
        current_domain.process(
            AddToCart(customer_id="cust-001", product_id=product_id, size="M", quantity=1),
            asynchronous=False,
        )
        second = place_order("cust-001", shipping_address, _CARD)

        orders = list_orders("cust-001")
        assert [str(o.id) for o in orders] == [second, placed_order["order_id"]]
        assert list_orders("cust-002") == []
