"""Credential entities.

API keys, OAuth access tokens and user sessions are looked up by their
ID; only a salted hash of their secret is stored.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional

from ....core.value_objects.identifiers import EntityIdentifiers
from ...rights.entities.rights import Rights


@dataclass
class APIKey:
    """An API key of an entity."""
    id: str
    entity_ids: EntityIdentifiers
    rights: Rights = field(default_factory=Rights)
    name: str = ""
    key_hash: Optional[str] = None
    expires_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    # Plain token, only set on the response of Create
    key: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Dictionary representation without the key hash."""
        data = {
            "id": self.id,
            "entity_ids": {"kind": self.entity_ids.kind.value, "id": self.entity_ids.id},
            "name": self.name,
            "rights": self.rights.to_list(),
            "expires_at": self.expires_at.isoformat() if self.expires_at else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
        if self.key:
            data["key"] = self.key
        return data

    def without_secrets(self) -> "APIKey":
        return APIKey(
            id=self.id,
            entity_ids=self.entity_ids,
            rights=self.rights,
            name=self.name,
            expires_at=self.expires_at,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )


@dataclass
class UserSession:
    """A browser session of a user."""
    id: str
    user_ids: EntityIdentifiers
    session_secret_hash: Optional[str] = None
    expires_at: Optional[datetime] = None
    created_at: Optional[datetime] = None


@dataclass
class OAuthAuthorization:
    """Rights a user authorized an OAuth client to exercise."""
    user_ids: EntityIdentifiers
    client_ids: EntityIdentifiers
    rights: Rights = field(default_factory=Rights)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "user_ids": {"kind": self.user_ids.kind.value, "id": self.user_ids.id},
            "client_ids": {"kind": self.client_ids.kind.value, "id": self.client_ids.id},
            "rights": self.rights.to_list(),
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }


@dataclass
class OAuthAccessToken:
    """An OAuth access token issued to a client on behalf of a user."""
    id: str
    user_ids: EntityIdentifiers
    client_ids: EntityIdentifiers
    rights: Rights = field(default_factory=Rights)
    access_token_hash: Optional[str] = None
    refresh_token_hash: Optional[str] = None
    user_session_id: Optional[str] = None
    expires_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        """Dictionary representation without token hashes."""
        return {
            "id": self.id,
            "user_ids": {"kind": self.user_ids.kind.value, "id": self.user_ids.id},
            "client_ids": {"kind": self.client_ids.kind.value, "id": self.client_ids.id},
            "rights": self.rights.to_list(),
            "user_session_id": self.user_session_id,
            "expires_at": self.expires_at.isoformat() if self.expires_at else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
