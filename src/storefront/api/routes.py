"""FastAPI routes for the Storefront — products, cart and orders.

Authentication happens upstream. The caller's identity arrives in the
``X-User-Id`` header and its role in ``X-User-Role`` ("user" or "admin").
"""

import json

from fastapi import APIRouter, Depends, Header
from protean.utils.globals import current_domain

from storefront.api.schemas import (
    AddressSchema,
    AddToCartRequest,
    CancelOrderRequest,
    CartItemIdResponse,
    CartItemResponse,
    CartResponse,
    ChangeProductDetailsRequest,
    CheckoutRequest,
    DeliverOrderRequest,
    OrderIdResponse,
    OrderItemResponse,
    OrderResponse,
    PaymentMethodSchema,
    PayOrderRequest,
    ProductIdResponse,
    ProductResponse,
    RegisterProductRequest,
    ShipOrderRequest,
    StatusResponse,
    UpdateCartQuantityRequest,
)
from storefront.cart.cart import ShoppingCart
from storefront.cart.items import AddToCart, RemoveFromCart, UpdateCartQuantity
from storefront.cart.locks import process_cart_command
from storefront.cart.management import ClearCart, OpenCart
from storefront.checkout.workflow import CheckoutWorkflow
from storefront.exceptions import AuthorizationError
from storefront.order.access import Role, ensure_admin
from storefront.order.cancellation import cancel_order
from storefront.order.fulfillment import DeliverOrder, ShipOrder
from storefront.order.payment import PayOrder
from storefront.order.queries import find_order, list_orders
from storefront.stock.ledger import get_stock_ledger
from storefront.stock.management import ChangeProductDetails, RegisterProduct


# ---------------------------------------------------------------------------
# Caller identity
# ---------------------------------------------------------------------------
class Caller:
    def __init__(self, user_id: str, role: str) -> None:
        self.user_id = user_id
        self.role = role


async def current_caller(
    x_user_id: str = Header(default=""),
    x_user_role: str = Header(default=Role.CUSTOMER.value),
) -> Caller:
    if not x_user_id:
        raise AuthorizationError("Missing caller identity")
    # The system role is reserved for internal compensation
    if x_user_role not in (Role.CUSTOMER.value, Role.ADMIN.value):
        raise AuthorizationError(f"Unknown role {x_user_role}")
    return Caller(user_id=x_user_id, role=x_user_role)


# ---------------------------------------------------------------------------
# Serialization helpers
# ---------------------------------------------------------------------------
def _decode(payload):
    return json.loads(payload) if payload else None


def _iso(value):
    return value.isoformat() if value else None


def _product_response(product) -> ProductResponse:
    return ProductResponse(
        product_id=str(product.id),
        name=product.name,
        price=product.price,
        discount_price=product.discount_price,
        stock=product.stock or 0,
        sizes=product.size_options(),
        image=product.image,
    )


def _cart_response(cart) -> CartResponse:
    return CartResponse(
        cart_id=str(cart.id),
        customer_id=str(cart.customer_id),
        items=[
            CartItemResponse(
                item_id=str(item.id),
                product_id=str(item.product_id),
                size=item.size,
                quantity=item.quantity,
                unit_price=item.unit_price,
                customization=_decode(item.customization),
            )
            for item in cart.items
        ],
        total_items=cart.total_items or 0,
        total_price=cart.total_price or 0.0,
    )


def _order_response(order) -> OrderResponse:
    address = order.shipping_address
    return OrderResponse(
        order_id=str(order.id),
        customer_id=str(order.customer_id),
        status=order.status,
        items=[
            OrderItemResponse(
                product_id=str(item.product_id),
                name=item.name,
                quantity=item.quantity,
                size=item.size,
                unit_price=item.unit_price,
                image=item.image,
                customization=_decode(item.customization),
            )
            for item in order.items
        ],
        shipping_address=AddressSchema(**{field: getattr(address, field) for field in AddressSchema.model_fields}),
        payment_method=PaymentMethodSchema(**order.payment_method.as_payload()),
        items_price=order.items_price,
        shipping_price=order.shipping_price,
        tax_price=order.tax_price,
        total_price=order.total_price,
        is_paid=order.is_paid,
        paid_at=_iso(order.paid_at),
        is_delivered=order.is_delivered,
        delivered_at=_iso(order.delivered_at),
        tracking_number=order.tracking_number,
        cancellation_reason=order.cancellation_reason,
        cancelled_by=order.cancelled_by,
        created_at=_iso(order.created_at),
    )


# ---------------------------------------------------------------------------
# Product Router
# ---------------------------------------------------------------------------
product_router = APIRouter(prefix="/products", tags=["products"])


@product_router.post("", status_code=201, response_model=ProductIdResponse)
async def register_product(body: RegisterProductRequest, caller: Caller = Depends(current_caller)) -> ProductIdResponse:
    ensure_admin(caller.role)
    command = RegisterProduct(
        name=body.name,
        price=body.price,
        discount_price=body.discount_price,
        stock=body.stock,
        sizes=json.dumps(body.sizes),
        image=body.image,
    )
    result = current_domain.process(command, asynchronous=False)
    return ProductIdResponse(product_id=result)


@product_router.get("/{product_id}", response_model=ProductResponse)
async def get_product(product_id: str) -> ProductResponse:
    return _product_response(get_stock_ledger().find_product(product_id))


@product_router.put("/{product_id}", response_model=StatusResponse)
async def change_product_details(
    product_id: str, body: ChangeProductDetailsRequest, caller: Caller = Depends(current_caller)
) -> StatusResponse:
    ensure_admin(caller.role)
    command = ChangeProductDetails(
        product_id=product_id,
        name=body.name,
        price=body.price,
        discount_price=body.discount_price,
    )
    current_domain.process(command, asynchronous=False)
    return StatusResponse()


# ---------------------------------------------------------------------------
# Cart Router
# ---------------------------------------------------------------------------
cart_router = APIRouter(prefix="/cart", tags=["cart"])


@cart_router.get("", response_model=CartResponse)
async def get_cart(caller: Caller = Depends(current_caller)) -> CartResponse:
    cart_id = process_cart_command(OpenCart(customer_id=caller.user_id))
    return _cart_response(current_domain.repository_for(ShoppingCart).get(cart_id))


@cart_router.post("/items", status_code=201, response_model=CartItemIdResponse)
async def add_to_cart(body: AddToCartRequest, caller: Caller = Depends(current_caller)) -> CartItemIdResponse:
    command = AddToCart(
        customer_id=caller.user_id,
        product_id=body.product_id,
        size=body.size,
        quantity=body.quantity,
        customization=json.dumps(body.customization) if body.customization else None,
    )
    result = process_cart_command(command)
    return CartItemIdResponse(item_id=result)


@cart_router.put("/items/{item_id}", response_model=StatusResponse)
async def update_cart_quantity(
    item_id: str, body: UpdateCartQuantityRequest, caller: Caller = Depends(current_caller)
) -> StatusResponse:
    command = UpdateCartQuantity(
        customer_id=caller.user_id,
        item_id=item_id,
        new_quantity=body.new_quantity,
    )
    process_cart_command(command)
    return StatusResponse()


@cart_router.delete("/items/{item_id}", response_model=StatusResponse)
async def remove_from_cart(item_id: str, caller: Caller = Depends(current_caller)) -> StatusResponse:
    command = RemoveFromCart(customer_id=caller.user_id, item_id=item_id)
    process_cart_command(command)
    return StatusResponse()


@cart_router.delete("", response_model=StatusResponse)
async def clear_cart(caller: Caller = Depends(current_caller)) -> StatusResponse:
    process_cart_command(ClearCart(customer_id=caller.user_id))
    return StatusResponse()


# ---------------------------------------------------------------------------
# Order Router
# ---------------------------------------------------------------------------
order_router = APIRouter(prefix="/orders", tags=["orders"])


@order_router.post("", status_code=201, response_model=OrderIdResponse)
async def checkout(body: CheckoutRequest, caller: Caller = Depends(current_caller)) -> OrderIdResponse:
    order_id = CheckoutWorkflow().place_order(
        caller.user_id,
        shipping_address=body.shipping_address.model_dump(exclude_none=True),
        payment_method=body.payment_method.model_dump(exclude_none=True),
        shipping_price=body.shipping_price,
        tax_price=body.tax_price,
    )
    return OrderIdResponse(order_id=order_id)


@order_router.get("", response_model=list[OrderResponse])
async def get_my_orders(caller: Caller = Depends(current_caller)) -> list[OrderResponse]:
    return [_order_response(order) for order in list_orders(caller.user_id)]


@order_router.get("/{order_id}", response_model=OrderResponse)
async def get_order(order_id: str, caller: Caller = Depends(current_caller)) -> OrderResponse:
    return _order_response(find_order(order_id, caller.user_id, caller.role))


@order_router.put("/{order_id}/pay", response_model=StatusResponse)
async def pay_order(order_id: str, body: PayOrderRequest, caller: Caller = Depends(current_caller)) -> StatusResponse:
    command = PayOrder(
        order_id=order_id,
        actor_id=caller.user_id,
        actor_role=caller.role,
        payment_result=json.dumps(body.payment_result),
    )
    current_domain.process(command, asynchronous=False)
    return StatusResponse()


@order_router.put("/{order_id}/ship", response_model=StatusResponse)
async def ship_order(order_id: str, body: ShipOrderRequest, caller: Caller = Depends(current_caller)) -> StatusResponse:
    command = ShipOrder(
        order_id=order_id,
        actor_role=caller.role,
        tracking_number=body.tracking_number,
    )
    current_domain.process(command, asynchronous=False)
    return StatusResponse()


@order_router.put("/{order_id}/deliver", response_model=StatusResponse)
async def deliver_order(
    order_id: str, body: DeliverOrderRequest | None = None, caller: Caller = Depends(current_caller)
) -> StatusResponse:
    command = DeliverOrder(
        order_id=order_id,
        actor_role=caller.role,
        tracking_number=body.tracking_number if body else None,
    )
    current_domain.process(command, asynchronous=False)
    return StatusResponse()


@order_router.put("/{order_id}/cancel", response_model=StatusResponse)
async def cancel_placed_order(
    order_id: str, body: CancelOrderRequest | None = None, caller: Caller = Depends(current_caller)
) -> StatusResponse:
    cancel_order(order_id, caller.user_id, caller.role, reason=body.reason if body else None)
    return StatusResponse()
