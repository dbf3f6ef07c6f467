"""Base exceptions for lorawan-identity.

This module defines the base exception hierarchy of the identity server.
Every exception inherits from IdentityServerError and carries a machine
readable error code, a details mapping with the error attributes and the
wire category the transport layer translates into a status code.
"""

import re
from enum import Enum
from typing import Any, Dict, Optional


class ErrorCategory(str, Enum):
    """Error categories surfaced on the wire."""
    UNAUTHENTICATED = "unauthenticated"
    PERMISSION_DENIED = "permission_denied"
    INVALID_ARGUMENT = "invalid_argument"
    NOT_FOUND = "not_found"
    ALREADY_EXISTS = "already_exists"
    FAILED_PRECONDITION = "failed_precondition"
    INTERNAL = "internal"
    DEADLINE_EXCEEDED = "deadline_exceeded"


_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")


def _default_error_code(cls: type) -> str:
    name = cls.__name__
    if name.endswith("Error"):
        name = name[: -len("Error")]
    return _CAMEL_BOUNDARY.sub("_", name).lower()


class IdentityServerError(Exception):
    """Base exception for all identity server errors.

    Subclasses set ``category`` and optionally ``default_code``; instances may
    override the code per raise site.
    """

    category: ErrorCategory = ErrorCategory.INTERNAL
    default_code: Optional[str] = None

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        *args,
        **kwargs
    ):
        super().__init__(message, *args, **kwargs)
        self.message = message
        self.error_code = error_code or self.default_code or _default_error_code(self.__class__)
        self.details = details or {}

    def __str__(self) -> str:
        return f"{self.error_code}: {self.message}"


def get_http_status_code(exception: Exception) -> int:
    """Get HTTP status code for exception.

    Args:
        exception: The exception instance

    Returns:
        HTTP status code
    """
    from .http_mapping import get_http_status_code as get_mapped_status_code
    return get_mapped_status_code(exception)


def create_error_response(exception: IdentityServerError) -> Dict[str, Any]:
    """Create standardized error response from exception.

    Args:
        exception: The identity server exception

    Returns:
        Error response dictionary
    """
    return {
        "error": {
            "code": exception.error_code,
            "message": exception.message,
            "details": exception.details,
            "type": exception.__class__.__name__,
            "category": exception.category.value,
        }
    }
