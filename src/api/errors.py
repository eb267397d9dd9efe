"""Error payloads for the billing API.

Every failure is returned as ``{"error": "<message>"}`` with the status class
carried by the raised BillingError: 400 for bad input and conflicts, 404 for
missing tenant data, 500 for everything else.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict

from src.services.errors import BillingError, ConflictError

logger = logging.getLogger(__name__)


class ErrorResponse(BaseModel):
    """Standard error response."""

    error: str
    existing_count: int | None = None

    model_config = ConfigDict(from_attributes=True)


def error_response(error: BillingError) -> JSONResponse:
    """Render a BillingError as its HTTP status and ``{"error": message}`` body."""
    payload = ErrorResponse(error=error.message)
    if isinstance(error, ConflictError):
        payload.existing_count = error.existing_count
    return JSONResponse(
        status_code=error.http_status,
        content=payload.model_dump(exclude_none=True),
    )


async def billing_error_handler(request: Request, exc: BillingError) -> JSONResponse:
    if exc.http_status >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    else:
        logger.warning("%s %s rejected: %s", request.method, request.url.path, exc.message)
    return error_response(exc)


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    # Malformed request bodies are client errors, reported like any other
    first = exc.errors()[0] if exc.errors() else {}
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = first.get("msg", "Invalid request")
    return JSONResponse(
        status_code=400,
        content={"error": f"{location}: {message}" if location else message},
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("Unhandled error in %s %s: %s", request.method, request.url.path, exc, exc_info=exc)
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


def register_error_handlers(app: FastAPI) -> None:
    """Attach the billing error handlers to an application."""
    app.add_exception_handler(BillingError, billing_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)


__all__ = [
    "ErrorResponse",
    "billing_error_handler",
    "error_response",
    "register_error_handlers",
]
