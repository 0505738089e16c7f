"""
Error responses.

Every failure leaves the API as ``{"code", "message", "description"}``.
``code`` is stable across releases so clients can localise it; the HTTP
status follows from the error class.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from taxe.domain.errors import (
    AuthenticationFailed,
    BookingNotFound,
    CompanyNotFound,
    CustomerAlreadyHasActiveBooking,
    DomainError,
    DriverAlreadyAdded,
    InvalidObjectId,
    InvalidRole,
    InvalidToken,
    MissingToken,
    TokenExpired,
    UnauthorizedEdit,
    UnauthorizedView,
    UserAlreadyExists,
    UserNotFound,
    ValidationError,
)
from taxe.infrastructure.locks import LockNotAcquired

logger = logging.getLogger(__name__)

HTTP_STATUS: dict[type[DomainError], int] = {
    InvalidToken: 403,
    TokenExpired: 403,
    MissingToken: 401,
    UserNotFound: 404,
    UserAlreadyExists: 400,
    AuthenticationFailed: 403,
    ValidationError: 400,
    InvalidObjectId: 400,
    InvalidRole: 403,
    BookingNotFound: 404,
    CustomerAlreadyHasActiveBooking: 403,
    UnauthorizedView: 403,
    UnauthorizedEdit: 403,
    CompanyNotFound: 404,
    DriverAlreadyAdded: 403,
}


def status_for(exc: DomainError) -> int:
    for klass in type(exc).__mro__:
        if klass in HTTP_STATUS:
            return HTTP_STATUS[klass]
    return 500


def _body(code: int, message: str, description) -> dict:
    return {"code": code, "message": message, "description": description}


async def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
    description = exc.errors if isinstance(exc, ValidationError) else exc.description
    return JSONResponse(
        status_code=status_for(exc),
        content=_body(exc.code, exc.message, description),
    )


def _clean(msg: str) -> str:
    prefix = "Value error, "
    return msg[len(prefix):] if msg.startswith(prefix) else msg


async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    errors = exc.errors()
    # A malformed id in the URL is reported separately from a bad body.
    if any(err.get("loc", ("",))[0] == "path" for err in errors):
        return await domain_error_handler(request, InvalidObjectId())

    messages = []
    for err in errors:
        loc = ".".join(str(part) for part in err.get("loc", ())[1:])
        msg = _clean(err.get("msg", "Invalid value"))
        messages.append(f"{loc}: {msg}" if loc else msg)
    return await domain_error_handler(request, ValidationError(*messages))


async def lock_busy_handler(request: Request, exc: LockNotAcquired) -> JSONResponse:
    return JSONResponse(
        status_code=409,
        content=_body(
            14,
            "Booking Busy Error",
            "The booking is being updated by another request, try again.",
        ),
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content=_body(0, "Internal Server Error", str(exc)),
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(DomainError, domain_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(LockNotAcquired, lock_busy_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
