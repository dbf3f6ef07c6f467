"""Authentication info entity.

``AuthInfo`` is the authenticated principal of one request: who presented
the credential, which rights the credential scope allows and which rights
the caller holds regardless of the target entity.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from ....core.value_objects.identifiers import EntityIdentifiers, EntityKind
from ...rights.entities.rights import Rights


class AccessMethod(str, Enum):
    """How the caller authenticated."""
    ANONYMOUS = "anonymous"
    API_KEY = "api_key"
    ACCESS_TOKEN = "access_token"
    SESSION_TOKEN = "session_token"
    CLUSTER = "cluster"


@dataclass(frozen=True)
class AuthInfo:
    """Authenticated principal of a request."""

    principal: Optional[EntityIdentifiers] = None
    rights: Rights = field(default_factory=Rights)
    universal_rights: Rights = field(default_factory=Rights)
    access_method: AccessMethod = AccessMethod.ANONYMOUS
    is_admin: bool = False

    # Credential details
    credential_id: Optional[str] = None
    expires_at: Optional[datetime] = None

    # State of the principal user, when the credential belongs to a user
    user_state: Optional[str] = None
    state_description: str = ""
    state_restricted: bool = False
    warnings: Tuple[str, ...] = ()

    @property
    def is_anonymous(self) -> bool:
        return self.access_method == AccessMethod.ANONYMOUS

    @property
    def user_ids(self) -> Optional[EntityIdentifiers]:
        """The principal when it is a user."""
        if self.principal is not None and self.principal.kind == EntityKind.USER:
            return self.principal
        return None

    def to_dict(self) -> Dict[str, Any]:
        """Convert auth info to dictionary."""
        return {
            "principal": (
                {"kind": self.principal.kind.value, "id": self.principal.id}
                if self.principal else None
            ),
            "rights": self.rights.to_list(),
            "universal_rights": self.universal_rights.to_list(),
            "access_method": self.access_method.value,
            "is_admin": self.is_admin,
            "credential_id": self.credential_id,
            "expires_at": self.expires_at.isoformat() if self.expires_at else None,
            "user_state": self.user_state,
            "warnings": list(self.warnings),
        }
