"""Storefront FastAPI application.

Commands are processed synchronously per request inside the storefront
domain context.

Usage:
    uvicorn app:app --app-dir src --host 0.0.0.0 --port 8000 --reload
"""

# PROTEAN_ENV selects the domain.toml overlay (e.g. "production" for PostgreSQL)
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from storefront.domain import storefront

storefront.init()

# ---------------------------------------------------------------------------
# FastAPI app
# ---------------------------------------------------------------------------
app = FastAPI(
    title="Storefront API",
    description="Pet-supplies marketplace: cart, checkout, payments and vendor fulfillment",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def domain_context_middleware(request: Request, call_next):
    """Push the storefront domain context for each request."""
    with storefront.domain_context():
        return await call_next(request)


# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------
from storefront.api import register_exception_handlers, request_context_middleware, routers  # noqa: E402

for router in routers:
    app.include_router(router)

register_exception_handlers(app)
app.middleware("http")(request_context_middleware)


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------
@app.get("/health")
async def health():
    from storefront.payment.gateway import get_provider

    return JSONResponse(
        content={
            "status": "ok",
            "domain": storefront.name,
            "payment_provider": get_provider().name,
        }
    )
