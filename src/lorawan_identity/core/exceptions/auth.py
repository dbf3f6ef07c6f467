"""Authentication and authorization exceptions."""

from typing import Optional

from .base import ErrorCategory, IdentityServerError


class AuthenticationError(IdentityServerError):
    """Base exception for authentication errors."""
    category = ErrorCategory.UNAUTHENTICATED
    default_code = "unauthenticated"


class UnsupportedAuthorizationError(AuthenticationError):
    """Raised when the authorization type or token kind is not supported."""
    default_code = "unsupported_authorization"


class InvalidAuthorizationError(AuthenticationError):
    """Raised when a credential is malformed or its secret does not match."""
    default_code = "invalid_authorization"


class APIKeyNotFoundError(AuthenticationError):
    """Raised when the API key of a bearer token does not exist."""
    default_code = "api_key_not_found"


class APIKeyExpiredError(AuthenticationError):
    """Raised when the API key of a bearer token has expired."""
    default_code = "api_key_expired"


class AccessTokenNotFoundError(AuthenticationError):
    """Raised when the OAuth access token does not exist."""
    default_code = "access_token_not_found"


class AccessTokenExpiredError(AuthenticationError):
    """Raised when the OAuth access token has expired."""
    default_code = "access_token_expired"


class SessionNotFoundError(AuthenticationError):
    """Raised when the user session does not exist."""
    default_code = "session_not_found"


class SessionExpiredError(AuthenticationError):
    """Raised when the user session has expired."""
    default_code = "session_expired"


class InvalidClusterKeyError(AuthenticationError):
    """Raised when a cluster marker is presented with an unknown key."""
    default_code = "invalid_cluster_key"


class AuthorizationError(IdentityServerError):
    """Base exception for authorization errors."""
    category = ErrorCategory.PERMISSION_DENIED
    default_code = "permission_denied"


class PermissionDeniedError(AuthorizationError):
    """Raised when the caller lacks rights on the target."""
    pass


class AdminRequiredError(AuthorizationError):
    """Raised when an operation is restricted to admins."""
    default_code = "admin_required"


class StateDeniedError(AuthorizationError):
    """Raised when the state of a user or client denies the request.

    The ``description`` detail carries the state description set by the admin.
    """

    def __init__(
        self,
        message: str,
        state: str,
        description: Optional[str] = None,
        error_code: Optional[str] = None,
    ):
        super().__init__(
            message,
            error_code=error_code,
            details={"state": state, "description": description or ""},
        )
        self.state = state
        self.description = description or ""


class ClientStateDeniedError(StateDeniedError):
    """Raised when the OAuth client is rejected or suspended."""
    default_code = "client_state_denied"
