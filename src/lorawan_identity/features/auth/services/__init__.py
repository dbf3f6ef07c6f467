"""Auth services."""

from .credential_resolver import CredentialResolver
from .request_cache import (
    RequestAuthState,
    current_request_state,
    forget_entity_rights,
    request_scope,
)

__all__ = [
    "CredentialResolver",
    "RequestAuthState",
    "current_request_state",
    "forget_entity_rights",
    "request_scope",
]
