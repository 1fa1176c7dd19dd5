"""Pydantic request/response schemas for the storefront API.

These are the external contracts. Money crosses this boundary as decimal
strings (``"275.99"``); the domain works in integer minor units.
"""

from datetime import datetime
from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, Field

from storefront.shared.money import format_minor


# ---------------------------------------------------------------------------
# Shared sub-models
# ---------------------------------------------------------------------------
class AddressSchema(BaseModel):
    recipient_name: str
    street: str
    city: str
    state: str | None = None
    postal_code: str
    country: str = "India"
    phone: str | None = None


class PriceBreakdownSchema(BaseModel):
    subtotal: str
    shipping_cost: str
    tax: str
    total: str
    currency: str

    @classmethod
    def from_pricing(cls, pricing) -> "PriceBreakdownSchema":
        return cls(
            subtotal=format_minor(pricing.subtotal),
            shipping_cost=format_minor(pricing.shipping_cost),
            tax=format_minor(pricing.tax),
            total=format_minor(pricing.total),
            currency=pricing.currency,
        )


# ---------------------------------------------------------------------------
# Cart
# ---------------------------------------------------------------------------
class AddCartItemRequest(BaseModel):
    product_id: str
    quantity: int = 1

    model_config = {"json_schema_extra": {"examples": [{"product_id": "prod-dog-food-10kg", "quantity": 2}]}}


class UpdateCartItemRequest(BaseModel):
    quantity: int


class CartItemResponse(BaseModel):
    id: str
    product_id: str
    quantity: int
    unit_price: str
    line_total: str


class CartResponse(BaseModel):
    customer_id: str
    items: list[CartItemResponse] = Field(default_factory=list)
    item_count: int = 0
    subtotal: str = "0.00"
    last_modified_at: datetime | None = None

    @classmethod
    def from_cart(cls, customer_id: str, cart) -> "CartResponse":
        if cart is None:
            return cls(customer_id=customer_id)
        return cls(
            customer_id=customer_id,
            items=[
                CartItemResponse(
                    id=str(item.id),
                    product_id=str(item.product_id),
                    quantity=item.quantity,
                    unit_price=format_minor(item.unit_price),
                    line_total=format_minor(item.unit_price * item.quantity),
                )
                for item in cart.items
            ],
            item_count=cart.item_count,
            subtotal=format_minor(sum(item.unit_price * item.quantity for item in cart.items)),
            last_modified_at=cart.last_modified_at,
        )


class CartItemIdResponse(BaseModel):
    cart_item_id: str


# ---------------------------------------------------------------------------
# Checkout & orders
# ---------------------------------------------------------------------------
class CheckoutRequest(BaseModel):
    shipping_address: AddressSchema
    payment_method: str = "PAYPAL"
    shipping_option: Literal["STANDARD", "EXPRESS"] = "STANDARD"

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "shipping_address": {
                        "recipient_name": "Asha Rao",
                        "street": "12 MG Road",
                        "city": "Bengaluru",
                        "state": "KA",
                        "postal_code": "560001",
                        "country": "India",
                        "phone": "9876543210",
                    },
                    "payment_method": "PAYPAL",
                    "shipping_option": "STANDARD",
                }
            ]
        }
    }


class OrderLineResponse(BaseModel):
    product_id: str
    vendor_id: str
    product_name: str | None = None
    quantity: int
    unit_price: str
    line_total: str


class OrderResponse(BaseModel):
    id: str
    order_number: str
    customer_id: str
    status: str
    payment_status: str
    lines: list[OrderLineResponse]
    pricing: PriceBreakdownSchema
    shipping_address: AddressSchema
    payment_method: str | None = None
    shipping_option: str
    payment_intent_id: str | None = None
    cancellation_reason: str | None = None
    cancelled_by: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_order(cls, order) -> "OrderResponse":
        address = order.shipping_address
        return cls(
            id=str(order.id),
            order_number=order.order_number,
            customer_id=str(order.customer_id),
            status=order.status,
            payment_status=order.payment_status,
            lines=[
                OrderLineResponse(
                    product_id=str(line.product_id),
                    vendor_id=str(line.vendor_id),
                    product_name=line.product_name,
                    quantity=line.quantity,
                    unit_price=format_minor(line.unit_price),
                    line_total=format_minor(line.line_total),
                )
                for line in order.lines
            ],
            pricing=PriceBreakdownSchema.from_pricing(order.pricing),
            shipping_address=AddressSchema(
                recipient_name=address.recipient_name,
                street=address.street,
                city=address.city,
                state=address.state,
                postal_code=address.postal_code,
                country=address.country,
                phone=address.phone,
            ),
            payment_method=order.payment_method,
            shipping_option=order.shipping_option,
            payment_intent_id=str(order.payment_intent_id) if order.payment_intent_id else None,
            cancellation_reason=order.cancellation_reason,
            cancelled_by=order.cancelled_by,
            created_at=order.created_at,
            updated_at=order.updated_at,
        )


class CancelOrderRequest(BaseModel):
    reason: str | None = None


class AdvanceStatusRequest(BaseModel):
    status: str

    model_config = {"json_schema_extra": {"examples": [{"status": "SHIPPED"}]}}


class OrderStatusResponse(BaseModel):
    order_id: str
    status: str


# ---------------------------------------------------------------------------
# Vendor
# ---------------------------------------------------------------------------
class VendorOrderResponse(BaseModel):
    order_id: str
    order_number: str
    status: str
    payment_status: str
    line_count: int
    item_count: int
    vendor_subtotal: str
    currency: str | None = None
    placed_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_row(cls, row) -> "VendorOrderResponse":
        return cls(
            order_id=str(row.order_id),
            order_number=row.order_number,
            status=row.status,
            payment_status=row.payment_status,
            line_count=row.line_count,
            item_count=row.item_count,
            vendor_subtotal=format_minor(row.vendor_subtotal),
            currency=row.currency,
            placed_at=row.placed_at,
            updated_at=row.updated_at,
        )


# ---------------------------------------------------------------------------
# Payments
# ---------------------------------------------------------------------------
class CreatePaymentIntentRequest(BaseModel):
    order_id: str
    amount: Decimal
    currency: str = "INR"

    model_config = {
        "json_schema_extra": {"examples": [{"order_id": "ord-uuid", "amount": "275.99", "currency": "INR"}]}
    }


class PaymentIntentResponse(BaseModel):
    payment_intent_id: str
    order_id: str
    order_number: str
    provider_reference: str | None = None
    approval_url: str | None = None
    amount: str
    currency: str
    status: str
    reused: bool = False

    @classmethod
    def from_view(cls, view) -> "PaymentIntentResponse":
        return cls(
            payment_intent_id=view.payment_intent_id,
            order_id=view.order_id,
            order_number=view.order_number,
            provider_reference=view.provider_reference,
            approval_url=view.approval_url,
            amount=format_minor(view.amount),
            currency=view.currency,
            status=view.status,
            reused=view.reused,
        )


class ProviderCallbackRequest(BaseModel):
    provider_reference: str
    outcome: Literal["APPROVED", "CANCELLED", "FAILED"]
    payer_reference: str | None = None
    failure_reason: str | None = None


class CallbackResponse(BaseModel):
    payment_intent_id: str
    order_id: str
    order_number: str
    provider_reference: str
    status: str
    failure_reason: str | None = None
    replayed: bool = False


class ExpireIntentsRequest(BaseModel):
    older_than_minutes: int | None = Field(default=None, ge=0)


class ExpiredCountResponse(BaseModel):
    expired_count: int


class ConfigureProviderRequest(BaseModel):
    approve: bool = True
    reject_creation: bool = False
    unreachable_for: int = Field(default=0, ge=0)
    failure_reason: str = "Payment declined"


class ProviderConfigResponse(BaseModel):
    provider: str
    approve: bool
    reject_creation: bool
    unreachable_for: int
    failure_reason: str


# ---------------------------------------------------------------------------
# Catalog (development only)
# ---------------------------------------------------------------------------
class AddProductRequest(BaseModel):
    product_id: str
    name: str
    price: Decimal = Field(ge=0)
    stock: int = Field(ge=0)
    vendor_id: str
    active: bool = True


class ProductResponse(BaseModel):
    product_id: str
    name: str
    price: str
    stock: int
    active: bool
    vendor_id: str

    @classmethod
    def from_info(cls, info) -> "ProductResponse":
        return cls(
            product_id=info.product_id,
            name=info.name,
            price=format_minor(info.price),
            stock=info.stock,
            active=info.active,
            vendor_id=info.vendor_id,
        )
