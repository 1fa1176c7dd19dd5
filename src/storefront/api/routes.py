"""FastAPI routes for the storefront: cart, checkout, orders, vendors, payments.

Actor identity is an explicit input: customers are identified by the
``X-Customer-Id`` header and vendors by ``X-Vendor-Id``.
"""

import json
import os
from dataclasses import asdict

from fastapi import APIRouter, Header, HTTPException
from protean.utils.globals import current_domain

from storefront.api.schemas import (
    AddCartItemRequest,
    AddProductRequest,
    AdvanceStatusRequest,
    CallbackResponse,
    CancelOrderRequest,
    CartItemIdResponse,
    CartResponse,
    CheckoutRequest,
    ConfigureProviderRequest,
    CreatePaymentIntentRequest,
    ExpiredCountResponse,
    ExpireIntentsRequest,
    OrderResponse,
    OrderStatusResponse,
    PaymentIntentResponse,
    ProductResponse,
    ProviderCallbackRequest,
    ProviderConfigResponse,
    UpdateCartItemRequest,
    VendorOrderResponse,
)
from storefront.cart.cart import ShoppingCart
from storefront.cart.items import AddItem, ClearCart, RemoveItem, UpdateQuantity
from storefront.catalog import get_catalog
from storefront.catalog.memory_adapter import InMemoryCatalog
from storefront.errors import NotAuthorized
from storefront.order.cancellation import CancelOrder
from storefront.order.order import ActorType, Order
from storefront.order.placement import PlaceOrder
from storefront.payment import initiation
from storefront.payment.callback import handle_provider_callback
from storefront.payment.expiry import expire_stale_payment_intents
from storefront.payment.gateway import get_provider
from storefront.payment.gateway.fake_adapter import FakeProvider
from storefront.shared.money import to_minor
from storefront.utils.locks import dispatch
from storefront.vendor.gateway import AdvanceVendorOrder
from storefront.vendor.projections.vendor_orders import list_vendor_orders

def _forbid_in_production(what: str) -> None:
    if os.environ.get("PROTEAN_ENV") == "production":
        raise HTTPException(status_code=403, detail=f"{what} not available in production")

# ---------------------------------------------------------------------------
# Cart Router
# ---------------------------------------------------------------------------
cart_router = APIRouter(prefix="/cart", tags=["cart"])

def _cart_response(customer_id: str) -> CartResponse:
    cart = current_domain.repository_for(ShoppingCart).for_customer(customer_id)
    return CartResponse.from_cart(customer_id, cart)

@cart_router.get("", response_model=CartResponse)
async def get_cart(x_customer_id: str = Header()) -> CartResponse:
    return _cart_response(x_customer_id)

@cart_router.post("/items", status_code=201, response_model=CartItemIdResponse)
def add_cart_item(body: AddCartItemRequest, x_customer_id: str = Header()) -> CartItemIdResponse:
    command = AddItem(customer_id=x_customer_id, product_id=body.product_id, quantity=body.quantity)
    item_id = dispatch(command)
    return CartItemIdResponse(cart_item_id=item_id)

@cart_router.put("/items/{item_id}", response_model=CartResponse)
def update_cart_item(item_id: str, body: UpdateCartItemRequest, x_customer_id: str = Header()) -> CartResponse:
    command = UpdateQuantity(customer_id=x_customer_id, cart_item_id=item_id, quantity=body.quantity)
    dispatch(command)
    return _cart_response(x_customer_id)

@cart_router.delete("/items/{item_id}", response_model=CartResponse)
def remove_cart_item(item_id: str, x_customer_id: str = Header()) -> CartResponse:
    dispatch(RemoveItem(customer_id=x_customer_id, cart_item_id=item_id))
    return _cart_response(x_customer_id)

@cart_router.delete("", response_model=CartResponse)
def clear_cart(x_customer_id: str = Header()) -> CartResponse:
    dispatch(ClearCart(customer_id=x_customer_id))
    return _cart_response(x_customer_id)

# ---------------------------------------------------------------------------
# Checkout Router
# ---------------------------------------------------------------------------
checkout_router = APIRouter(tags=["checkout"])

@checkout_router.post("/checkout", status_code=201, response_model=OrderResponse)
def checkout(
    body: CheckoutRequest,
    x_customer_id: str = Header(),
    idempotency_key: str = Header(alias="Idempotency-Key"),
) -> OrderResponse:
    """Place an order from the customer's current cart."""
    snapshot = current_domain.repository_for(ShoppingCart).snapshot_for(x_customer_id)
    command = PlaceOrder(
        customer_id=x_customer_id,
        snapshot=snapshot.to_json(),
        shipping_address=json.dumps(body.shipping_address.model_dump()),
        payment_method=body.payment_method,
        shipping_option=body.shipping_option,
        idempotency_key=idempotency_key,
    )
    order_id = dispatch(command)
    return OrderResponse.from_order(current_domain.repository_for(Order).load(order_id))

# ---------------------------------------------------------------------------
# Order Router
# ---------------------------------------------------------------------------
order_router = APIRouter(prefix="/orders", tags=["orders"])

@order_router.get("", response_model=list[OrderResponse])
async def list_orders(x_customer_id: str = Header()) -> list[OrderResponse]:
    orders = current_domain.repository_for(Order).for_customer(x_customer_id)
    return [OrderResponse.from_order(order) for order in orders]

@order_router.get("/{order_number}", response_model=OrderResponse)
async def get_order(order_number: str, x_customer_id: str = Header()) -> OrderResponse:
    order = current_domain.repository_for(Order).by_order_number(order_number)
    if not order.owned_by(x_customer_id):
        raise NotAuthorized("Order does not belong to user", order_number=order_number)
    return OrderResponse.from_order(order)

@order_router.patch("/{order_id}/cancel", response_model=OrderStatusResponse)
def cancel_order(
    order_id: str,
    body: CancelOrderRequest | None = None,
    x_customer_id: str = Header(),
) -> OrderStatusResponse:
    command = CancelOrder(
        order_id=order_id,
        actor_type=ActorType.CUSTOMER.value,
        actor_id=x_customer_id,
        reason=body.reason if body else None,
    )
    status = dispatch(command)
    return OrderStatusResponse(order_id=order_id, status=status)

@order_router.patch("/{order_id}/status", response_model=OrderStatusResponse)
def advance_order_status(
    order_id: str,
    body: AdvanceStatusRequest,
    x_vendor_id: str = Header(),
) -> OrderStatusResponse:
    command = AdvanceVendorOrder(order_id=order_id, vendor_id=x_vendor_id, target_status=body.status)
    status = dispatch(command)
    return OrderStatusResponse(order_id=order_id, status=status)

# ---------------------------------------------------------------------------
# Vendor Router
# ---------------------------------------------------------------------------
vendor_router = APIRouter(prefix="/vendors", tags=["vendors"])

@vendor_router.get("/orders", response_model=list[VendorOrderResponse])
async def vendor_orders(status: str | None = None, x_vendor_id: str = Header()) -> list[VendorOrderResponse]:
    rows = list_vendor_orders(x_vendor_id, status=status)
    return [VendorOrderResponse.from_row(row) for row in rows]

# ---------------------------------------------------------------------------
# Payment Router
# ---------------------------------------------------------------------------
payment_router = APIRouter(prefix="/payments", tags=["payments"])

@payment_router.post("/intents", status_code=201, response_model=PaymentIntentResponse)
def create_payment_intent(body: CreatePaymentIntentRequest) -> PaymentIntentResponse:
    view = initiation.create_payment_intent(
        order_id=body.order_id,
        amount=to_minor(body.amount),
        currency=body.currency.upper(),
    )
    return PaymentIntentResponse.from_view(view)

@payment_router.post("/callback", response_model=CallbackResponse)
def provider_callback(body: ProviderCallbackRequest) -> CallbackResponse:
    """Reconcile a provider outcome. Safe to deliver more than once."""
    result = handle_provider_callback(
        provider_reference=body.provider_reference,
        outcome=body.outcome,
        payer_reference=body.payer_reference,
        failure_reason=body.failure_reason,
    )
    return CallbackResponse(**asdict(result))

@payment_router.post("/maintenance/expire", response_model=ExpiredCountResponse)
def expire_payment_intents(body: ExpireIntentsRequest | None = None) -> ExpiredCountResponse:
    """Expire intents that were never approved. Meant for a scheduler."""
    count = expire_stale_payment_intents(older_than_minutes=body.older_than_minutes if body else None)
    return ExpiredCountResponse(expired_count=count)

@payment_router.post("/provider/configure", response_model=ProviderConfigResponse)
async def configure_provider(body: ConfigureProviderRequest) -> ProviderConfigResponse:
    """Change the fake provider's behaviour (non-production only)."""
    _forbid_in_production("Provider configuration")

    provider = get_provider()
    if not isinstance(provider, FakeProvider):
        raise HTTPException(status_code=400, detail="Provider configuration only available for the fake provider")

    provider.configure(
        approve=body.approve,
        reject_creation=body.reject_creation,
        unreachable_for=body.unreachable_for,
        failure_reason=body.failure_reason,
    )
    return ProviderConfigResponse(
        provider=provider.name,
        approve=provider.approve,
        reject_creation=provider.reject_creation,
        unreachable_for=provider.unreachable_for,
        failure_reason=provider.failure_reason,
    )

# ---------------------------------------------------------------------------
# Catalog Router (development only, in-memory catalog)
# ---------------------------------------------------------------------------
catalog_router = APIRouter(prefix="/catalog", tags=["catalog"])

@catalog_router.put("/products", response_model=ProductResponse)
async def upsert_product(body: AddProductRequest) -> ProductResponse:
    _forbid_in_production("Catalog seeding")

    catalog = get_catalog()
    if not isinstance(catalog, InMemoryCatalog):
        raise HTTPException(status_code=400, detail="Catalog seeding only available for the in-memory catalog")

    product = catalog.add_product(
        product_id=body.product_id,
        name=body.name,
        price=to_minor(body.price),
        stock=body.stock,
        vendor_id=body.vendor_id,
        active=body.active,
    )
    return ProductResponse.from_info(product)

@catalog_router.get("/products/{product_id}", response_model=ProductResponse)
async def get_product(product_id: str) -> ProductResponse:
    return ProductResponse.from_info(get_catalog().get_product(product_id))

routers = [cart_router, checkout_router, order_router, vendor_router, payment_router, catalog_router]
