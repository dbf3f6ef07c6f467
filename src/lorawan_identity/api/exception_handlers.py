"""Exception handlers of the HTTP surface.

Every identity server error is rendered as
``{"error": {code, message, details, type, category}}`` with the status
code of its category. Request bodies that fail model validation are
reported as invalid arguments.
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from ..core.exceptions.base import (
    ErrorCategory,
    IdentityServerError,
    create_error_response,
    get_http_status_code,
)
from ..core.exceptions.domain import InvalidArgumentError

logger = logging.getLogger(__name__)


def error_response(exc: IdentityServerError) -> JSONResponse:
    """JSON response of an identity server error."""
    return JSONResponse(
        status_code=get_http_status_code(exc),
        content=create_error_response(exc),
    )


class ExceptionHandlerRegistry:
    """Registers the exception handlers of the identity server API."""

    def __init__(self, is_production: bool = True):
        self.is_production = is_production

    def register_handlers(self, app: FastAPI) -> None:
        """Register exception handlers for the application.

        Args:
            app: FastAPI application instance
        """
        @app.exception_handler(IdentityServerError)
        async def identity_server_error_handler(request: Request, exc: IdentityServerError):
            if exc.category == ErrorCategory.INTERNAL:
                logger.error(f"{request.method} {request.url.path} failed: {exc}", exc_info=exc)
            else:
                logger.debug(f"{request.method} {request.url.path} rejected: {exc}")
            return error_response(exc)

        @app.exception_handler(RequestValidationError)
        async def request_validation_error_handler(request: Request, exc: RequestValidationError):
            errors = [
                {
                    "loc": [str(part) for part in error.get("loc", ())],
                    "msg": error.get("msg", ""),
                    "type": error.get("type", ""),
                }
                for error in exc.errors()
            ]
            return error_response(
                InvalidArgumentError("Invalid request", error_code="invalid_request", details={"errors": errors})
            )

        @app.exception_handler(Exception)
        async def general_exception_handler(request: Request, exc: Exception):
            """Handle unexpected exceptions."""
            logger.error(f"Unhandled exception: {exc}", exc_info=True)
            message = "An unexpected error occurred" if self.is_production else str(exc)
            return JSONResponse(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                content={
                    "error": {
                        "code": "internal",
                        "message": message,
                        "details": {},
                        "type": exc.__class__.__name__,
                        "category": ErrorCategory.INTERNAL.value,
                    }
                },
            )


def register_exception_handlers(app: FastAPI, is_production: bool = True) -> None:
    """Register exception handlers for a FastAPI application.

    Args:
        app: FastAPI application instance
        is_production: Hide messages of unexpected errors
    """
    ExceptionHandlerRegistry(is_production).register_handlers(app)
