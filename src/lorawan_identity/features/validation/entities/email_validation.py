"""Email validation entities."""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional

from ....core.value_objects.identifiers import EntityIdentifiers


@dataclass
class EmailValidation:
    """A single-use token proving that an email address is reachable.

    ``token`` is only populated between generation and mail dispatch; the
    store keeps ``token_hash``.
    """
    id: str
    entity_ids: EntityIdentifiers
    address: str
    token_hash: Optional[str] = None
    expires_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    used: bool = False
    token: Optional[str] = None

    def is_active(self, now: datetime) -> bool:
        """Not consumed and not expired."""
        return not self.used and self.expires_at is not None and self.expires_at > now

    def without_token(self) -> "EmailValidation":
        return EmailValidation(
            id=self.id,
            entity_ids=self.entity_ids,
            address=self.address,
            expires_at=self.expires_at,
            created_at=self.created_at,
            updated_at=self.updated_at,
            used=self.used,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "entity_ids": {"kind": self.entity_ids.kind.value, "id": self.entity_ids.id},
            "address": self.address,
            "expires_at": self.expires_at.isoformat() if self.expires_at else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
