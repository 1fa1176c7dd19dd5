"""Per-request logging context."""

from fastapi import Request

from storefront.utils.logging import bind_request_context, clear_request_context

_ACTOR_HEADERS = {"x-customer-id": "customer_id", "x-vendor-id": "vendor_id"}


async def request_context_middleware(request: Request, call_next):
    """Bind the request path and the acting customer or vendor to every log line."""
    clear_request_context()
    actors = {key: request.headers[header] for header, key in _ACTOR_HEADERS.items() if header in request.headers}
    bind_request_context(method=request.method, path=request.url.path, **actors)
    try:
        return await call_next(request)
    finally:
        clear_request_context()
