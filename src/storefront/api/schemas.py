"""Pydantic request/response schemas for the Storefront API."""

from typing import Any

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Shared Schemas
# ---------------------------------------------------------------------------
class AddressSchema(BaseModel):
    label: str | None = None
    recipient: str
    street: str
    complement: str | None = None
    neighborhood: str | None = None
    city: str
    state: str
    postal_code: str
    country: str = "BR"


class PaymentMethodSchema(BaseModel):
    type: str  # credit_card, debit_card, pix or boleto
    details: dict[str, Any] | None = None


# ---------------------------------------------------------------------------
# Product Request Schemas
# ---------------------------------------------------------------------------
class RegisterProductRequest(BaseModel):
    name: str
    price: float = Field(ge=0)
    discount_price: float | None = Field(default=None, ge=0)
    stock: int = Field(default=0, ge=0)
    sizes: list[str]
    image: str | None = None

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "name": "Classic Tee",
                    "price": 79.9,
                    "discount_price": 59.9,
                    "stock": 25,
                    "sizes": ["P", "M", "G"],
                    "image": "https://cdn.example.com/tee.jpg",
                }
            ]
        }
    }


class ChangeProductDetailsRequest(BaseModel):
    name: str | None = None
    price: float | None = Field(default=None, ge=0)
    discount_price: float | None = Field(default=None, ge=0)


# ---------------------------------------------------------------------------
# Cart Request Schemas
# ---------------------------------------------------------------------------
class AddToCartRequest(BaseModel):
    product_id: str
    size: str | None = None
    quantity: int = Field(default=1, ge=1)
    customization: dict[str, Any] | None = None

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "product_id": "prod-001",
                    "size": "M",
                    "quantity": 2,
                    "customization": {"print": "Front", "name": "ANA"},
                }
            ]
        }
    }


class UpdateCartQuantityRequest(BaseModel):
    new_quantity: int = Field(ge=1)


# ---------------------------------------------------------------------------
# Order Request Schemas
# ---------------------------------------------------------------------------
class CheckoutRequest(BaseModel):
    shipping_address: AddressSchema
    payment_method: PaymentMethodSchema
    shipping_price: float = Field(default=0.0, ge=0)
    tax_price: float = Field(default=0.0, ge=0)

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "shipping_address": {
                        "recipient": "Ana Souza",
                        "street": "Rua das Flores, 100",
                        "city": "Sao Paulo",
                        "state": "SP",
                        "postal_code": "01000-000",
                        "country": "BR",
                    },
                    "payment_method": {"type": "pix", "details": {"key": "ana@example.com"}},
                    "shipping_price": 15.0,
                    "tax_price": 0.0,
                }
            ]
        }
    }


class PayOrderRequest(BaseModel):
    payment_result: dict[str, Any]


class ShipOrderRequest(BaseModel):
    tracking_number: str


class DeliverOrderRequest(BaseModel):
    tracking_number: str | None = None


class CancelOrderRequest(BaseModel):
    reason: str | None = None


# ---------------------------------------------------------------------------
# Response Schemas
# ---------------------------------------------------------------------------
class ProductIdResponse(BaseModel):
    product_id: str


class CartItemIdResponse(BaseModel):
    item_id: str


class OrderIdResponse(BaseModel):
    order_id: str


class StatusResponse(BaseModel):
    status: str = "ok"


class ProductResponse(BaseModel):
    product_id: str
    name: str
    price: float
    discount_price: float | None = None
    stock: int
    sizes: list[str]
    image: str | None = None


class CartItemResponse(BaseModel):
    item_id: str
    product_id: str
    size: str
    quantity: int
    unit_price: float
    customization: dict[str, Any] | None = None


class CartResponse(BaseModel):
    cart_id: str | None = None
    customer_id: str
    items: list[CartItemResponse] = []
    total_items: int = 0
    total_price: float = 0.0


class OrderItemResponse(BaseModel):
    product_id: str
    name: str
    quantity: int
    size: str
    unit_price: float
    image: str | None = None
    customization: dict[str, Any] | None = None


class OrderResponse(BaseModel):
    order_id: str
    customer_id: str
    status: str
    items: list[OrderItemResponse]
    shipping_address: AddressSchema
    payment_method: PaymentMethodSchema
    items_price: float
    shipping_price: float
    tax_price: float
    total_price: float
    is_paid: bool
    paid_at: str | None = None
    is_delivered: bool
    delivered_at: str | None = None
    tracking_number: str | None = None
    cancellation_reason: str | None = None
    cancelled_by: str | None = None
    created_at: str | None = None
