"""Render pipeline errors as ``{success: false, error, code, ...}`` JSON bodies."""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from courier_booking.config import settings
from courier_booking.exceptions import BookingIntakeError, ValidationError
from courier_booking.middleware.logging import request_id

logger = logging.getLogger("courier.errors")


def _describe_validation_errors(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request body"
    first = errors[0]
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = first.get("msg", "Invalid value")
    return f"Invalid value for '{location}': {message}" if location else message


async def booking_error_handler(request: Request, exc: BookingIntakeError) -> JSONResponse:
    context = dict(exc.context)
    details = context.pop("details", None)

    body = {"success": False, "error": exc.message, "code": exc.code, **context}
    body["requestId"] = request_id(request)

    if exc.is_server_error:
        logger.error("%s on %s %s: %s", exc.code, request.method, request.url.path, details or exc.message)
        if settings.environment == "development" and details:
            body["details"] = details
    else:
        logger.info("%s on %s %s: %s", exc.code, request.method, request.url.path, exc.message)

    return JSONResponse(status_code=exc.status_code, content=body)


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=ValidationError.status_code,
        content={
            "success": False,
            "error": _describe_validation_errors(exc),
            "code": ValidationError.code,
            "requestId": request_id(request),
        },
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unexpected error on %s %s", request.method, request.url.path)
    body = {
        "success": False,
        "error": "Failed to process request",
        "code": BookingIntakeError.code,
        "requestId": request_id(request),
    }
    if settings.environment == "development":
        body["details"] = str(exc)
    return JSONResponse(status_code=500, content=body)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(BookingIntakeError, booking_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
