"""HTTP surface of the identity server.

The application factory lives in ``lorawan_identity.api.app``; routers
import their dependencies from ``lorawan_identity.api.dependencies``.
"""

from .exception_handlers import error_response, register_exception_handlers
from .middleware import RequestScopeMiddleware, parse_request_timeout

__all__ = [
    "RequestScopeMiddleware",
    "error_response",
    "parse_request_timeout",
    "register_exception_handlers",
]
