"""Client-facing errors raised by account request actions.

Each error carries the HTTP status it maps to; ``register_error_handlers``
renders them as ``{"message": ...}`` bodies, and request validation failures
the same way with status 400.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class ActionError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidHttpParameterError(ActionError):
    """A request parameter is missing or malformed."""

    status_code = 400


class InvalidHttpRequestBodyError(ActionError):
    """The request body is missing a mandatory field or fails validation."""

    status_code = 400


class InvalidOperationError(ActionError):
    """The operation is not allowed in the entity's current state."""

    status_code = 400


class EntityNotFoundError(ActionError):
    status_code = 404


class EntityAlreadyExistsError(ActionError):
    status_code = 409


async def _handle_action_error(request: Request, exc: ActionError) -> JSONResponse:
    logger.info("%s %s -> %d: %s", request.method, request.url.path, exc.status_code, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"message": exc.message})


async def _handle_request_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    first = errors[0] if errors else {}
    location = ".".join(str(part) for part in first.get("loc", ()) if part not in ("body", "query"))
    message = first.get("msg", "Invalid request")
    if location:
        message = f"{location}: {message}"
    logger.info("%s %s -> 400: %s", request.method, request.url.path, message)
    return JSONResponse(status_code=400, content={"message": message})


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ActionError, _handle_action_error)
    app.add_exception_handler(RequestValidationError, _handle_request_validation_error)
