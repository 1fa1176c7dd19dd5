"""Translate domain errors into HTTP responses.

Every error body has the same shape::

    {"error": {"code": ..., "category": ..., "message": ..., "details": {...}}}
"""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from protean.exceptions import ObjectNotFoundError, ValidationError

from storefront.domain import logger
from storefront.errors import ErrorCategory, NotAuthorized, ProviderRejected, StorefrontError

_STATUS_BY_CATEGORY = {
    ErrorCategory.VALIDATION: 422,
    ErrorCategory.NOT_FOUND: 404,
    ErrorCategory.CONFLICT: 409,
    ErrorCategory.TRANSIENT: 503,
    ErrorCategory.FATAL: 500,
}

_STATUS_BY_ERROR = {
    NotAuthorized: 403,
    ProviderRejected: 402,
}


def status_for(exc: StorefrontError) -> int:
    for error_type, status_code in _STATUS_BY_ERROR.items():
        if isinstance(exc, error_type):
            return status_code
    return _STATUS_BY_CATEGORY[exc.category]


async def storefront_error_handler(request: Request, exc: StorefrontError) -> JSONResponse:
    status_code = status_for(exc)
    if exc.category == ErrorCategory.FATAL:
        logger.error("request_failed", path=request.url.path, **exc.to_dict())
    headers = {"Retry-After": "30"} if exc.category == ErrorCategory.TRANSIENT else None
    return JSONResponse(status_code=status_code, content={"error": exc.to_dict()}, headers=headers)


async def validation_error_handler(request: Request, exc: ValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content={
            "error": {
                "code": "validation_error",
                "category": ErrorCategory.VALIDATION.value,
                "message": "Invalid request",
                "details": exc.messages,
            }
        },
    )


async def not_found_handler(request: Request, exc: ObjectNotFoundError) -> JSONResponse:
    return JSONResponse(
        status_code=404,
        content={
            "error": {
                "code": "not_found",
                "category": ErrorCategory.NOT_FOUND.value,
                "message": str(exc),
                "details": {},
            }
        },
    )


def register_exception_handlers(app: FastAPI) -> None:
    # Resolved through the exception MRO, so StorefrontError wins over ValidationError
    app.add_exception_handler(StorefrontError, storefront_error_handler)
    app.add_exception_handler(ValidationError, validation_error_handler)
    app.add_exception_handler(ObjectNotFoundError, not_found_handler)
