"""Protocol interfaces for credential storage and caching.

Defines the contracts the credential resolver and the access services
consume. Lookups return None for missing records; mutations raise domain
errors.
"""

from abc import abstractmethod
from typing import Dict, List, Optional, Protocol, Tuple, runtime_checkable

from ....core.value_objects.identifiers import EntityIdentifiers, EntityKind
from ...rights.entities.rights import Rights
from .credentials import APIKey, OAuthAccessToken, OAuthAuthorization, UserSession


@runtime_checkable
class APIKeyStore(Protocol):
    """Protocol for API key persistence."""

    @abstractmethod
    async def create_api_key(self, api_key: APIKey) -> APIKey:
        """Persist a new API key."""
        ...

    @abstractmethod
    async def get_api_key(self, key_id: str) -> Optional[APIKey]:
        """Find an API key by ID."""
        ...

    @abstractmethod
    async def find_api_keys(
        self, entity_ids: EntityIdentifiers, limit: Optional[int] = None, offset: int = 0
    ) -> Tuple[List[APIKey], int]:
        """List the API keys of an entity with the total count."""
        ...

    @abstractmethod
    async def update_api_key(self, api_key: APIKey) -> APIKey:
        """Update name, rights and expiry of an API key."""
        ...

    @abstractmethod
    async def delete_api_key(self, key_id: str) -> None:
        """Delete an API key."""
        ...

    @abstractmethod
    async def delete_entity_api_keys(self, entity_ids: EntityIdentifiers) -> None:
        """Delete every API key of an entity."""
        ...


@runtime_checkable
class UserSessionStore(Protocol):
    """Protocol for user session persistence."""

    @abstractmethod
    async def create_session(self, session: UserSession) -> UserSession:
        ...

    @abstractmethod
    async def get_session(self, session_id: str) -> Optional[UserSession]:
        ...

    @abstractmethod
    async def delete_session(self, session_id: str) -> None:
        ...

    @abstractmethod
    async def delete_all_user_sessions(self, user_ids: EntityIdentifiers) -> None:
        """Delete every session of a user."""
        ...


@runtime_checkable
class OAuthStore(Protocol):
    """Protocol for OAuth authorization and access token persistence."""

    @abstractmethod
    async def get_authorization(
        self, user_ids: EntityIdentifiers, client_ids: EntityIdentifiers
    ) -> Optional[OAuthAuthorization]:
        ...

    @abstractmethod
    async def list_authorizations(
        self, user_ids: EntityIdentifiers, limit: Optional[int] = None, offset: int = 0
    ) -> Tuple[List[OAuthAuthorization], int]:
        ...

    @abstractmethod
    async def set_authorization(self, authorization: OAuthAuthorization) -> OAuthAuthorization:
        """Create or update an authorization."""
        ...

    @abstractmethod
    async def delete_authorization(
        self, user_ids: EntityIdentifiers, client_ids: EntityIdentifiers
    ) -> None:
        """Delete an authorization and the access tokens issued under it."""
        ...

    @abstractmethod
    async def create_access_token(self, token: OAuthAccessToken) -> OAuthAccessToken:
        ...

    @abstractmethod
    async def get_access_token(self, token_id: str) -> Optional[OAuthAccessToken]:
        ...

    @abstractmethod
    async def list_access_tokens(
        self, user_ids: EntityIdentifiers, client_ids: EntityIdentifiers,
        limit: Optional[int] = None, offset: int = 0,
    ) -> Tuple[List[OAuthAccessToken], int]:
        ...

    @abstractmethod
    async def delete_access_token(self, token_id: str) -> None:
        ...


@runtime_checkable
class MembershipCache(Protocol):
    """Protocol for the cross-request membership cache.

    Entries map the entities of one kind an account has rights on to the
    effective rights. Implementations never raise; failures are logged and
    reported as cache misses.
    """

    @abstractmethod
    async def get_member_rights(
        self, account: EntityIdentifiers, entity_kind: EntityKind
    ) -> Optional[Dict[str, Rights]]:
        """Get cached rights per entity ID, None on miss."""
        ...

    @abstractmethod
    async def set_member_rights(
        self, account: EntityIdentifiers, entity_kind: EntityKind, rights: Dict[str, Rights]
    ) -> None:
        """Cache rights per entity ID."""
        ...

    @abstractmethod
    async def invalidate(self, account: EntityIdentifiers) -> None:
        """Drop every entry of an account."""
        ...
