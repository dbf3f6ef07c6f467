"""Combined store protocol.

Services receive one store handle that provides every capability they
need; tests and deployments choose the in-memory or the PostgreSQL
implementation.
"""

from typing import Protocol, runtime_checkable

from ...auth.entities.protocols import APIKeyStore, OAuthStore, UserSessionStore
from ...invitations.entities.protocols import InvitationStore
from ...memberships.entities.protocols import MembershipStore, TransactionManager
from ...registry.entities.protocols import EntityStore
from ...validation.entities.protocols import EmailValidationStore


@runtime_checkable
class IdentityStore(
    TransactionManager,
    MembershipStore,
    EntityStore,
    APIKeyStore,
    UserSessionStore,
    OAuthStore,
    EmailValidationStore,
    InvitationStore,
    Protocol,
):
    """Every store capability of the identity server."""
    pass
