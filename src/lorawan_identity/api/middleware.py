"""Request scope middleware.

Opens the per-request authentication scope, verifies cluster keys before
any handler runs, enforces the request deadline and reports state
warnings in ``Warning`` response headers.
"""

import asyncio
import logging
import re
from datetime import timedelta
from typing import Callable, Optional

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from ..config.constants import (
    AUTH_TYPE_CLUSTER,
    HEADER_AUTHORIZATION,
    HEADER_REQUEST_TIMEOUT,
    HEADER_WARNING,
)
from ..core.exceptions.auth import InvalidClusterKeyError
from ..core.exceptions.base import IdentityServerError
from ..core.exceptions.domain import InvalidArgumentError
from ..core.exceptions.infrastructure import DeadlineExceededError
from ..features.auth.services.credential_resolver import CredentialResolver
from ..features.auth.services.request_cache import request_scope
from ..features.auth.utils.tokens import split_authorization
from .exception_handlers import error_response

logger = logging.getLogger(__name__)


_TIMEOUT_PATTERN = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*(ms|s)?\s*$")


def parse_request_timeout(value: Optional[str], limit: timedelta) -> float:
    """Deadline of a request in seconds.

    The header holds seconds, optionally suffixed with ``s`` or ``ms``. The
    configured request timeout caps the deadline and applies without header.

    Raises:
        InvalidArgumentError: Malformed header value
    """
    maximum = limit.total_seconds()
    if value is None:
        return maximum
    match = _TIMEOUT_PATTERN.match(value)
    if match is None:
        raise InvalidArgumentError(
            f"Invalid request timeout `{value}`",
            details={"header": HEADER_REQUEST_TIMEOUT, "value": value},
        )
    seconds = float(match.group(1))
    if match.group(2) == "ms":
        seconds /= 1000
    if seconds <= 0:
        raise InvalidArgumentError(
            "Request timeout must be positive",
            details={"header": HEADER_REQUEST_TIMEOUT, "value": value},
        )
    return min(seconds, maximum)


def verify_cluster_authorization(credentials: CredentialResolver, authorization: Optional[str]) -> bool:
    """Verify a cluster key presented in the authorization header.

    Returns:
        Whether the request carries a verified cluster key

    Raises:
        AuthenticationError: Unsupported or malformed authorization
        InvalidClusterKeyError: Unknown cluster key
    """
    parsed = split_authorization(authorization)
    if parsed is None or parsed[0] != AUTH_TYPE_CLUSTER:
        return False
    if not credentials.verify_cluster_key(parsed[1]):
        logger.warning("Rejected request with an unknown cluster key")
        raise InvalidClusterKeyError("Invalid cluster key")
    return True


class RequestScopeMiddleware(BaseHTTPMiddleware):
    """Run every request inside its own authentication scope and deadline."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        container = request.app.state.container
        authorization = request.headers.get(HEADER_AUTHORIZATION)
        try:
            cluster_verified = verify_cluster_authorization(container.credentials, authorization)
            timeout = parse_request_timeout(
                request.headers.get(HEADER_REQUEST_TIMEOUT),
                container.settings.current.request_timeout,
            )
        except IdentityServerError as e:
            return error_response(e)

        with request_scope(authorization, cluster_verified) as state:
            try:
                async with asyncio.timeout(timeout):
                    response = await call_next(request)
            except TimeoutError:
                logger.warning(f"{request.method} {request.url.path} exceeded its deadline of {timeout}s")
                return error_response(
                    DeadlineExceededError(
                        "Request deadline exceeded",
                        details={"timeout": timeout},
                    )
                )
            for warning in state.warnings:
                response.headers.append(HEADER_WARNING, f'299 - "{warning}"')
        return response
