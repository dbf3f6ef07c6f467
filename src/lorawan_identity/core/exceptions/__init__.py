"""Exception hierarchy of the identity server."""

from .base import (
    ErrorCategory,
    IdentityServerError,
    create_error_response,
    get_http_status_code,
)
from .auth import (
    AuthenticationError,
    UnsupportedAuthorizationError,
    InvalidAuthorizationError,
    APIKeyNotFoundError,
    APIKeyExpiredError,
    AccessTokenNotFoundError,
    AccessTokenExpiredError,
    SessionNotFoundError,
    SessionExpiredError,
    InvalidClusterKeyError,
    AuthorizationError,
    PermissionDeniedError,
    AdminRequiredError,
    StateDeniedError,
    ClientStateDeniedError,
)
from .domain import (
    InvalidArgumentError,
    InvalidIdentifierError,
    BlacklistedIDError,
    InvalidRightsError,
    InvalidMembershipError,
    InvalidEmailError,
    WeakPasswordError,
    IncorrectPasswordError,
    InvalidUpdateError,
    NotFoundError,
    EntityNotFoundError,
    MemberNotFoundError,
    APIKeyMissingError,
    ValidationNotFoundError,
    InvitationNotFoundError,
    AuthorizationNotFoundError,
    AlreadyExistsError,
    EntityAlreadyExistsError,
    GatewayEUITakenError,
    InvitationAlreadySentError,
    ValidationsAlreadySentError,
    FailedPreconditionError,
    NeedsCollaboratorError,
    ValidationRequestForbiddenError,
    ValidationExpiredError,
    ValidationAlreadyUsedError,
    NoValidationNeededError,
    TemporaryPasswordStillValidError,
    InvitationExpiredError,
    InvitationUsedError,
    RestoreWindowExpiredError,
    EntityNotDeletedError,
    RegistrationDisabledError,
    InvitationRequiredError,
)
from .infrastructure import (
    StoreError,
    TransactionError,
    CacheError,
    DeadlineExceededError,
)
from .http_mapping import HTTP_STATUS_MAP, get_error_category

__all__ = [
    "ErrorCategory",
    "IdentityServerError",
    "create_error_response",
    "get_http_status_code",
    "get_error_category",
    "HTTP_STATUS_MAP",
    "AuthenticationError",
    "UnsupportedAuthorizationError",
    "InvalidAuthorizationError",
    "APIKeyNotFoundError",
    "APIKeyExpiredError",
    "AccessTokenNotFoundError",
    "AccessTokenExpiredError",
    "SessionNotFoundError",
    "SessionExpiredError",
    "InvalidClusterKeyError",
    "AuthorizationError",
    "PermissionDeniedError",
    "AdminRequiredError",
    "StateDeniedError",
    "ClientStateDeniedError",
    "InvalidArgumentError",
    "InvalidIdentifierError",
    "BlacklistedIDError",
    "InvalidRightsError",
    "InvalidMembershipError",
    "InvalidEmailError",
    "WeakPasswordError",
    "IncorrectPasswordError",
    "InvalidUpdateError",
    "NotFoundError",
    "EntityNotFoundError",
    "MemberNotFoundError",
    "APIKeyMissingError",
    "ValidationNotFoundError",
    "InvitationNotFoundError",
    "AuthorizationNotFoundError",
    "AlreadyExistsError",
    "EntityAlreadyExistsError",
    "GatewayEUITakenError",
    "InvitationAlreadySentError",
    "ValidationsAlreadySentError",
    "FailedPreconditionError",
    "NeedsCollaboratorError",
    "ValidationRequestForbiddenError",
    "ValidationExpiredError",
    "ValidationAlreadyUsedError",
    "NoValidationNeededError",
    "TemporaryPasswordStillValidError",
    "InvitationExpiredError",
    "InvitationUsedError",
    "RestoreWindowExpiredError",
    "EntityNotDeletedError",
    "RegistrationDisabledError",
    "InvitationRequiredError",
    "StoreError",
    "TransactionError",
    "CacheError",
    "DeadlineExceededError",
]
