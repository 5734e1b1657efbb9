"""
Domain exceptions and their HTTP rendering.

Services raise the exceptions defined here; they know nothing about
HTTP.  ``register_exception_handlers`` wires them (and FastAPI's own
errors) into the application so that every failure reaches the client
as ``{"error": message}`` with the matching status code.
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException


logger = logging.getLogger(__name__)


class UtaskError(Exception):
    """Base class for errors that map onto an HTTP response."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Internal server error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(UtaskError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid request"


class InvalidState(UtaskError):
    """The action is not valid for the current status of the record."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Action not allowed in the current state"


class Unauthenticated(UtaskError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Not authenticated"


class Forbidden(UtaskError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Forbidden"


class NotFound(UtaskError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found"


class Conflict(UtaskError):
    status_code = status.HTTP_409_CONFLICT
    default_message = "Conflict"


def error_response(status_code: int, message: str, headers: dict | None = None) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message}, headers=headers)


def _first_validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    first = errors[0]
    # ``loc`` looks like ("body", "price"); drop the request part.
    location = [str(part) for part in first.get("loc", ()) if part not in ("body", "query", "path")]
    field_name = ".".join(location)
    message = first.get("msg", "Invalid value")
    return f"{field_name}: {message}" if field_name else message


def register_exception_handlers(app: FastAPI) -> None:
    """Attach JSON error handlers for domain, HTTP and unexpected errors."""

    @app.exception_handler(UtaskError)
    async def handle_domain_error(request: Request, exc: UtaskError) -> JSONResponse:
        headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, Unauthenticated) else None
        return error_response(exc.status_code, exc.message, headers)

    @app.exception_handler(HTTPException)
    async def handle_http_error(request: Request, exc: HTTPException) -> JSONResponse:
        return error_response(exc.status_code, str(exc.detail), getattr(exc, "headers", None))

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        return error_response(status.HTTP_400_BAD_REQUEST, _first_validation_message(exc))

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error")
