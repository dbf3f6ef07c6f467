"""Invitation entity."""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional

from ....core.value_objects.identifiers import EntityIdentifiers


@dataclass
class Invitation:
    """A single-use registration invitation sent to an email address.

    The token handed out is ``<id>.<secret>``; only the hash of the secret
    is stored.
    """
    id: str
    email: str
    token_hash: Optional[str] = None
    expires_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    accepted_by: Optional[EntityIdentifiers] = None
    accepted_at: Optional[datetime] = None
    token: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "email": self.email,
            "expires_at": self.expires_at.isoformat() if self.expires_at else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "accepted_by": self.accepted_by.id if self.accepted_by else None,
            "accepted_at": self.accepted_at.isoformat() if self.accepted_at else None,
        }
