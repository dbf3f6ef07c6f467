"""HTTP status code mapping for exceptions.

Exceptions carry a wire category; the transport maps categories to HTTP
status codes. Individual exception classes can override the category
mapping through ``HTTP_STATUS_OVERRIDES``.
"""

from typing import Dict, Type

from .base import ErrorCategory, IdentityServerError


HTTP_STATUS_MAP: Dict[ErrorCategory, int] = {
    ErrorCategory.INVALID_ARGUMENT: 400,
    ErrorCategory.UNAUTHENTICATED: 401,
    ErrorCategory.PERMISSION_DENIED: 403,
    ErrorCategory.NOT_FOUND: 404,
    ErrorCategory.ALREADY_EXISTS: 409,
    ErrorCategory.FAILED_PRECONDITION: 412,
    ErrorCategory.INTERNAL: 500,
    ErrorCategory.DEADLINE_EXCEEDED: 504,
}

HTTP_STATUS_OVERRIDES: Dict[Type[Exception], int] = {}


def get_http_status_code(exception: Exception) -> int:
    """Get HTTP status code for exception.

    Args:
        exception: The exception instance

    Returns:
        HTTP status code, 500 for exceptions outside the hierarchy
    """
    for exception_type in type(exception).__mro__:
        if exception_type in HTTP_STATUS_OVERRIDES:
            return HTTP_STATUS_OVERRIDES[exception_type]
    if isinstance(exception, IdentityServerError):
        return HTTP_STATUS_MAP.get(exception.category, 500)
    return 500


def get_error_category(exception: Exception) -> ErrorCategory:
    """Get the wire category of an exception."""
    if isinstance(exception, IdentityServerError):
        return exception.category
    return ErrorCategory.INTERNAL
