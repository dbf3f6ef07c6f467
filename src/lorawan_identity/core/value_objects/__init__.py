"""Value objects of the identity server."""

from .identifiers import (
    EntityKind,
    EntityIdentifiers,
    ID_MAX_LENGTH,
    is_valid_id,
    user_ids,
    organization_ids,
    application_ids,
    client_ids,
    gateway_ids,
    validate_email,
)

__all__ = [
    "EntityKind",
    "EntityIdentifiers",
    "ID_MAX_LENGTH",
    "is_valid_id",
    "user_ids",
    "organization_ids",
    "application_ids",
    "client_ids",
    "gateway_ids",
    "validate_email",
]
