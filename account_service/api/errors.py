"""Maps domain error kinds onto HTTP responses.

Bodies always have the shape ``{"message": str, "errors"?: [{"field", "message"}]}``.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from ..domain.errors import (
    AuthenticationError,
    ConflictError,
    InternalError,
    ValidationError,
)

logger = logging.getLogger(__name__)

SERVER_ERROR_MESSAGE = "Server error"
VALIDATION_MESSAGE = "Validation failed"


def _validation_response(errors: list[dict[str, str]]) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"message": VALIDATION_MESSAGE, "errors": errors},
    )


async def _handle_validation(request: Request, exc: ValidationError) -> JSONResponse:
    return _validation_response(
        [{"field": error.field, "message": error.message} for error in exc.errors]
    )


async def _handle_request_validation(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Report bodies that are not JSON objects in the same shape as field rules."""
    errors = []
    for error in exc.errors():
        loc = error.get("loc", ())
        field = loc[-1] if len(loc) > 1 and isinstance(loc[-1], str) else "body"
        errors.append({"field": field, "message": error.get("msg", "Invalid value")})
    return _validation_response(errors)


async def _handle_conflict(request: Request, exc: ConflictError) -> JSONResponse:
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"message": str(exc)})


async def _handle_authentication(request: Request, exc: AuthenticationError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_401_UNAUTHORIZED,
        content={"message": str(exc)},
        headers={"WWW-Authenticate": "Bearer"},
    )


async def _handle_internal(request: Request, exc: InternalError) -> JSONResponse:
    logger.error("%s %s failed", request.method, request.url.path, exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"message": SERVER_ERROR_MESSAGE},
    )


def register_error_handlers(app: FastAPI) -> None:
    """Attach one handler per error kind to ``app``."""
    app.add_exception_handler(ValidationError, _handle_validation)
    app.add_exception_handler(RequestValidationError, _handle_request_validation)
    app.add_exception_handler(ConflictError, _handle_conflict)
    app.add_exception_handler(AuthenticationError, _handle_authentication)
    app.add_exception_handler(InternalError, _handle_internal)
