"""Application tests for cart commands — lazy creation, product checks and persistence."""

import json

import pytest
from protean import current_domain
from protean.exceptions import ObjectNotFoundError, ValidationError
from storefront.cart.cart import ShoppingCart
from storefront.cart.queries import find_cart
from storefront.cart.items import AddToCart, RemoveFromCart, UpdateCartQuantity
from storefront.cart.management import ClearCart, OpenCart
from storefront.exceptions import InsufficientStockError
from storefront.stock.management import ChangeProductDetails


def _add(customer_id, product_id, size="M", quantity=1, customization=None):
    return current_domain.process(
        AddToCart(
            customer_id=customer_id,
            product_id=product_id,
            size=size,
            quantity=quantity,
            customization=json.dumps(customization) if customization is not None else None,
        ),
        asynchronous=False,
    )


class TestOpenCart:
    def test_open_creates_empty_cart(self):
        cart_id = current_domain.process(OpenCart(customer_id="cust-001"), asynchronous=False)
        cart = current_domain.repository_for(ShoppingCart).get(cart_id)
        assert cart.is_empty()
        assert str(cart.customer_id) == "cust-001"

    def test_open_is_idempotent(self):
        first = current_domain.process(OpenCart(customer_id="cust-001"), asynchronous=False)
        second = current_domain.process(OpenCart(customer_id="cust-001"), asynchronous=False)
        assert first == second

    def test_each_customer_has_own_cart(self):
        first = current_domain.process(OpenCart(customer_id="cust-001"), asynchronous=False)
        second = current_domain.process(OpenCart(customer_id="cust-002"), asynchronous=False)
        assert first != second


class TestAddToCart:
    def test_first_add_creates_cart(self, make_product):
        product_id = make_product(price=50.0)
        assert find_cart("cust-001") is None

        item_id = _add("cust-001", product_id, quantity=2)

        cart = find_cart("cust-001")
        assert str(cart.items[0].id) == item_id
        assert cart.total_items == 2
        assert cart.total_price == 100.0

    def test_captures_discount_price(self, make_product):
        product_id = make_product(price=50.0, discount_price=40.0)
        _add("cust-001", product_id)
        assert find_cart("cust-001").items[0].unit_price == 40.0

    def test_duplicate_add_merges(self, make_product):
        product_id = make_product()
        _add("cust-001", product_id, quantity=1, customization={"name": "ANA"})
        _add("cust-001", product_id, quantity=2, customization={"name": "ANA"})
        cart = find_cart("cust-001")
        assert len(cart.items) == 1
        assert cart.items[0].quantity == 3

    def test_unknown_product_not_found(self):
        with pytest.raises(ObjectNotFoundError):
            _add("cust-001", "no-such-product")
        assert find_cart("cust-001") is None

    def test_missing_size_rejected(self, make_product):
        product_id = make_product()
        with pytest.raises(ValidationError) as exc:
            _add("cust-001", product_id, size=None)
        assert "size" in exc.value.messages

    def test_size_not_offered_rejected(self, make_product):
        product_id = make_product(sizes=("P", "M"))
        with pytest.raises(ValidationError) as exc:
            _add("cust-001", product_id, size="GG")
        assert "not available" in str(exc.value.messages)

    def test_quantity_above_stock_rejected(self, make_product):
        product_id = make_product(stock=2)
        with pytest.raises(InsufficientStockError) as exc:
            _add("cust-001", product_id, quantity=3)
        assert exc.value.available == 2
        assert exc.value.requested == 3

    def test_quantity_below_one_rejected(self, make_product):
        product_id = make_product()
        with pytest.raises(ValidationError):
            _add("cust-001", product_id, quantity=0)

    def test_price_change_does_not_affect_existing_lines(self, make_product):
        product_id = make_product(price=50.0)
        _add("cust-001", product_id)
        current_domain.process(ChangeProductDetails(product_id=product_id, price=80.0), asynchronous=False)

        cart = find_cart("cust-001")
        assert cart.items[0].unit_price == 50.0
        assert cart.total_price == 50.0


class TestUpdateCartQuantity:
    def test_update_persists_new_totals(self, make_product):
        product_id = make_product(price=10.0)
        item_id = _add("cust-001", product_id, quantity=1)

        current_domain.process(
            UpdateCartQuantity(customer_id="cust-001", item_id=item_id, new_quantity=4),
            asynchronous=False,
        )

        cart = find_cart("cust-001")
        assert cart.items[0].quantity == 4
        assert cart.total_price == 40.0

    def test_update_beyond_stock_rejected(self, make_product):
        product_id = make_product(stock=3)
        item_id = _add("cust-001", product_id, quantity=1)
        with pytest.raises(InsufficientStockError):
            current_domain.process(
                UpdateCartQuantity(customer_id="cust-001", item_id=item_id, new_quantity=4),
                asynchronous=False,
            )
        assert find_cart("cust-001").items[0].quantity == 1

    def test_update_without_cart_not_found(self):
        with pytest.raises(ObjectNotFoundError):
            current_domain.process(
                UpdateCartQuantity(customer_id="cust-001", item_id="item-1", new_quantity=2),
                asynchronous=False,
            )

    def test_update_unknown_item_not_found(self, make_product):
        product_id = make_product()
        _add("cust-001", product_id)
        with pytest.raises(ObjectNotFoundError):
            current_domain.process(
                UpdateCartQuantity(customer_id="cust-001", item_id="item-unknown", new_quantity=2),
                asynchronous=False,
            )


class TestRemoveFromCart:
    def test_remove_persists(self, make_product):
        product_id = make_product()
        item_id = _add("cust-001", product_id)
        current_domain.process(RemoveFromCart(customer_id="cust-001", item_id=item_id), asynchronous=False)
        cart = find_cart("cust-001")
        assert cart.is_empty()
        assert cart.total_price == 0.0

    def test_remove_unknown_item_not_found(self, make_product):
        product_id = make_product()
        _add("cust-001", product_id)
        with pytest.raises(ObjectNotFoundError):
            current_domain.process(RemoveFromCart(customer_id="cust-001", item_id="item-unknown"), asynchronous=False)


class TestClearCart:
    def test_clear_empties_cart(self, make_product):
        product_id = make_product()
        _add("cust-001", product_id, quantity=2)
        current_domain.process(ClearCart(customer_id="cust-001"), asynchronous=False)
        cart = find_cart("cust-001")
        assert cart is not None
        assert cart.is_empty()
        assert cart.total_items == 0

    def test_clear_empty_cart_is_idempotent(self):
        current_domain.process(OpenCart(customer_id="cust-001"), asynchronous=False)
        current_domain.process(ClearCart(customer_id="cust-001"), asynchronous=False)
        current_domain.process(ClearCart(customer_id="cust-001"), asynchronous=False)
        assert find_cart("cust-001").is_empty()

    def test_clear_without_cart_not_found(self):
        with pytest.raises(ObjectNotFoundError):
            current_domain.process(ClearCart(customer_id="cust-404"), asynchronous=False)
