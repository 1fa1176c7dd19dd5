"""Storefront API package."""

from storefront.api.context import request_context_middleware
from storefront.api.errors import register_exception_handlers
from storefront.api.routes import (
    cart_router,
    catalog_router,
    checkout_router,
    order_router,
    payment_router,
    routers,
    vendor_router,
)

__all__ = [
    "cart_router",
    "catalog_router",
    "checkout_router",
    "order_router",
    "payment_router",
    "vendor_router",
    "routers",
    "register_exception_handlers",
    "request_context_middleware",
]
