"""Domain exceptions for the identity server.

Errors raised by registries, the membership store and the validation
protocol. Each class fixes its wire category; raise sites attach the
attributes that explain the failure in ``details``.
"""

from datetime import timedelta

from .base import ErrorCategory, IdentityServerError


# Invalid argument

class InvalidArgumentError(IdentityServerError):
    """Base exception for rejected input."""
    category = ErrorCategory.INVALID_ARGUMENT
    default_code = "invalid_argument"


class InvalidIdentifierError(InvalidArgumentError):
    """Raised when an entity identifier does not match the ID syntax."""
    default_code = "invalid_identifier"


class BlacklistedIDError(InvalidArgumentError):
    """Raised when an entity identifier is reserved."""
    default_code = "id_blacklisted"


class InvalidRightsError(InvalidArgumentError):
    """Raised when rights do not belong to the entity kind."""
    default_code = "invalid_rights"


class InvalidMembershipError(InvalidArgumentError):
    """Raised for an illegal account and entity kind combination."""
    default_code = "invalid_membership"


class InvalidEmailError(InvalidArgumentError):
    """Raised when an email address is malformed."""
    default_code = "invalid_email"


class WeakPasswordError(InvalidArgumentError):
    """Raised when a password violates the password requirements."""
    default_code = "weak_password"


class IncorrectPasswordError(InvalidArgumentError):
    """Raised when the old password does not match."""
    default_code = "incorrect_password"


class InvalidUpdateError(InvalidArgumentError):
    """Raised when an update touches a field that cannot be updated."""
    default_code = "invalid_update"


# Not found

class NotFoundError(IdentityServerError):
    """Base exception for missing resources."""
    category = ErrorCategory.NOT_FOUND
    default_code = "not_found"


class EntityNotFoundError(NotFoundError):
    """Raised when an entity does not exist."""

    def __init__(self, kind: str, entity_id: str):
        super().__init__(
            f"{kind} `{entity_id}` not found",
            error_code=f"{kind}_not_found",
            details={"kind": kind, "id": entity_id},
        )


class MemberNotFoundError(NotFoundError):
    """Raised when an account is not a member of an entity."""
    default_code = "membership_not_found"


class APIKeyMissingError(NotFoundError):
    """Raised when an API key does not exist on the entity."""
    default_code = "api_key_not_found"


class ValidationNotFoundError(NotFoundError):
    """Raised when an email validation does not exist or the token is wrong."""
    default_code = "validation_not_found"


class InvitationNotFoundError(NotFoundError):
    """Raised when an invitation does not exist."""
    default_code = "invitation_not_found"


class AuthorizationNotFoundError(NotFoundError):
    """Raised when an OAuth authorization or access token does not exist."""
    default_code = "authorization_not_found"


# Already exists

class AlreadyExistsError(IdentityServerError):
    """Base exception for conflicts."""
    category = ErrorCategory.ALREADY_EXISTS
    default_code = "already_exists"


class EntityAlreadyExistsError(AlreadyExistsError):
    """Raised when an entity identifier is taken."""

    def __init__(self, kind: str, entity_id: str):
        super().__init__(
            f"{kind} `{entity_id}` already exists",
            error_code=f"{kind}_id_taken",
            details={"kind": kind, "id": entity_id},
        )


class GatewayEUITakenError(AlreadyExistsError):
    """Raised when a gateway EUI is registered to another gateway."""
    default_code = "gateway_eui_taken"


class InvitationAlreadySentError(AlreadyExistsError):
    """Raised when a pending invitation exists for an email address."""
    default_code = "invitation_already_sent"


class ValidationsAlreadySentError(AlreadyExistsError):
    """Raised when an active email validation exists for the address."""
    default_code = "validations_already_sent"


# Failed precondition

class FailedPreconditionError(IdentityServerError):
    """Base exception for invariant violations."""
    category = ErrorCategory.FAILED_PRECONDITION
    default_code = "failed_precondition"


class NeedsCollaboratorError(FailedPreconditionError):
    """Raised when a change would leave an entity without an owner."""

    def __init__(self, kind: str, entity_id: str):
        super().__init__(
            f"{kind} `{entity_id}` needs at least one collaborator with all rights",
            error_code=f"{kind}_needs_collaborator",
            details={"kind": kind, "id": entity_id},
        )


class ValidationRequestForbiddenError(FailedPreconditionError):
    """Raised when a validation is requested before the retry interval passed."""
    default_code = "validation_request_forbidden"

    def __init__(self, message: str, retry_interval: timedelta):
        super().__init__(
            message,
            details={"retry_interval": int(retry_interval.total_seconds())},
        )
        self.retry_interval = retry_interval


class ValidationExpiredError(FailedPreconditionError):
    """Raised when an email validation has expired."""
    default_code = "validation_expired"


class ValidationAlreadyUsedError(FailedPreconditionError):
    """Raised when an email validation has already been consumed."""
    default_code = "validation_already_used"


class NoValidationNeededError(FailedPreconditionError):
    """Raised when the contact info of an entity is already validated."""
    default_code = "no_validation_needed"


class TemporaryPasswordStillValidError(FailedPreconditionError):
    """Raised when a temporary password exists that has not expired."""
    default_code = "temporary_password_still_valid"


class InvitationExpiredError(FailedPreconditionError):
    """Raised when an invitation token has expired."""
    default_code = "invitation_expired"


class InvitationUsedError(FailedPreconditionError):
    """Raised when an invitation token has already been accepted."""
    default_code = "invitation_used"


class RestoreWindowExpiredError(FailedPreconditionError):
    """Raised when a deleted entity can no longer be restored."""
    default_code = "restore_window_expired"


class EntityNotDeletedError(FailedPreconditionError):
    """Raised when restoring an entity that is not deleted."""
    default_code = "entity_not_deleted"


# Permission denied variants that are not authorization failures of a caller

class RegistrationDisabledError(IdentityServerError):
    """Raised when user registration is disabled."""
    category = ErrorCategory.PERMISSION_DENIED
    default_code = "user_registration_disabled"


class InvitationRequiredError(IdentityServerError):
    """Raised when registration requires an invitation token."""
    category = ErrorCategory.PERMISSION_DENIED
    default_code = "invitation_token_required"
