"""Exception-to-response mapping for the Checkout API.

Protean's own handlers cover framework errors; checkout domain errors are
mapped by type, the most specific class winning.
"""

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from protean.exceptions import ObjectNotFoundError
from protean.integrations.fastapi import register_exception_handlers

from checkout.exceptions import (
    CheckoutError,
    CouponConflict,
    CouponValidationError,
    EmptyCartError,
    InvalidAddress,
    InvalidAmount,
    InvalidTransition,
    SessionExpired,
    TaxProviderUnavailable,
    UnsupportedShippingMethod,
)

logger = structlog.get_logger(__name__)

STATUS_CODES = {
    EmptyCartError: 400,
    CouponValidationError: 400,
    InvalidAmount: 400,
    InvalidAddress: 400,
    UnsupportedShippingMethod: 400,
    CouponConflict: 409,
    InvalidTransition: 409,
    SessionExpired: 410,
    TaxProviderUnavailable: 503,
}


def status_code_for(exc: CheckoutError) -> int:
    for cls in type(exc).__mro__:
        if cls in STATUS_CODES:
            return STATUS_CODES[cls]
    return 400


async def checkout_error_handler(request: Request, exc: CheckoutError) -> JSONResponse:
    status_code = status_code_for(exc)
    logger.info(
        "Checkout request rejected",
        path=request.url.path,
        error_type=type(exc).__name__,
        status_code=status_code,
        error=exc.message,
    )
    return JSONResponse(status_code=status_code, content={"error": exc.message})


async def not_found_handler(request: Request, exc: ObjectNotFoundError) -> JSONResponse:
    return JSONResponse(status_code=404, content={"error": str(exc)})


def register_checkout_exception_handlers(app: FastAPI) -> None:
    register_exception_handlers(app)
    app.add_exception_handler(ObjectNotFoundError, not_found_handler)
    app.add_exception_handler(CheckoutError, checkout_error_handler)
