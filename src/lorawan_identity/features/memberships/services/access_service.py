"""Entity access service.

Implements the Access operations every entity kind shares: the rights of
the caller, API keys and collaborators. Collaborator and API key writes go
through the rights-delta guard.
"""

import logging
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from ....config.constants import TOKEN_ID_BYTES, TOKEN_KIND_API_KEY, TOKEN_SECRET_BYTES
from ....config.settings import SettingsHolder
from ....core.exceptions.domain import (
    APIKeyMissingError,
    EntityNotFoundError,
    InvalidArgumentError,
)
from ....core.value_objects.identifiers import EntityIdentifiers, EntityKind
from ....utils.datetime import utc_now
from ....utils.pagination import PageRequest
from ....utils.secrets import SecretHasher, generate_secret, generate_token_id
from ...auth.entities.auth_info import AuthInfo
from ...auth.entities.credentials import APIKey
from ...auth.utils.tokens import format_token
from ...events.entities.protocols import EventSink
from ...rights.entities.right import Right
from ...rights.entities.rights import Rights
from ...store.entities.protocols import IdentityStore
from ..entities.membership import Membership, validate_membership
from .rights_guard import RightsDelta, RightsGuard, check_api_key_rights, check_delta
from .rights_resolver import RightsResolver

logger = logging.getLogger(__name__)


API_KEYS_RIGHT: Dict[EntityKind, Right] = {
    EntityKind.USER: Right.RIGHT_USER_SETTINGS_API_KEYS,
    EntityKind.APPLICATION: Right.RIGHT_APPLICATION_SETTINGS_API_KEYS,
    EntityKind.GATEWAY: Right.RIGHT_GATEWAY_SETTINGS_API_KEYS,
    EntityKind.ORGANIZATION: Right.RIGHT_ORGANIZATION_SETTINGS_API_KEYS,
}

COLLABORATORS_RIGHT: Dict[EntityKind, Right] = {
    EntityKind.APPLICATION: Right.RIGHT_APPLICATION_SETTINGS_COLLABORATORS,
    EntityKind.CLIENT: Right.RIGHT_CLIENT_SETTINGS_COLLABORATORS,
    EntityKind.GATEWAY: Right.RIGHT_GATEWAY_SETTINGS_COLLABORATORS,
    EntityKind.ORGANIZATION: Right.RIGHT_ORGANIZATION_SETTINGS_MEMBERS,
}


def api_keys_right(kind: EntityKind) -> Right:
    right = API_KEYS_RIGHT.get(kind)
    if right is None:
        raise InvalidArgumentError(f"{kind.value} entities have no API keys", details={"kind": kind.value})
    return right


def collaborators_right(kind: EntityKind) -> Right:
    right = COLLABORATORS_RIGHT.get(kind)
    if right is None:
        raise InvalidArgumentError(f"{kind.value} entities have no collaborators", details={"kind": kind.value})
    return right


class AccessService:
    """Rights, API keys and collaborators of entities."""

    def __init__(
        self,
        store: IdentityStore,
        resolver: RightsResolver,
        guard: RightsGuard,
        events: EventSink,
        settings: SettingsHolder,
        hasher: Optional[SecretHasher] = None,
    ):
        self.store = store
        self.resolver = resolver
        self.guard = guard
        self.events = events
        self.settings = settings
        self.hasher = hasher or SecretHasher(settings.current.secret_hash_iterations)

    def _bounds(self, page: Optional[PageRequest]) -> Tuple[int, int]:
        settings = self.settings.current
        return (page or PageRequest()).bounds(settings.default_page_size, settings.max_page_size)

    # Entity access

    async def auth_info(self) -> AuthInfo:
        """AuthInfo of the caller."""
        return await self.resolver.auth_info()

    async def list_rights(self, entity: EntityIdentifiers) -> Rights:
        """Rights of the caller on an entity; empty when it has none."""
        return await self.resolver.entity_rights(entity)

    # API keys

    async def create_api_key(
        self,
        entity: EntityIdentifiers,
        rights: Rights,
        name: str = "",
        expires_at: Optional[datetime] = None,
    ) -> APIKey:
        """Create an API key; the returned key carries its token once.

        Raises:
            InvalidRightsError: Rights that do not apply to the entity kind
            PermissionDeniedError: Missing settings right or rights to grant
        """
        required = api_keys_right(entity.kind)
        await self.resolver.require(entity, required)
        check_api_key_rights(entity.kind, rights)
        if expires_at is not None and expires_at <= utc_now():
            raise InvalidArgumentError("API key expiry lies in the past", details={"expires_at": expires_at.isoformat()})

        key_id = generate_token_id(TOKEN_ID_BYTES)
        secret = generate_secret(TOKEN_SECRET_BYTES)
        async with self.store.transaction():
            await self.store.lock_entity(entity)
            if entity.kind != EntityKind.END_DEVICE and await self.store.get_entity(entity) is None:
                raise EntityNotFoundError(entity.kind.value, entity.id)
            caller_rights = await self.guard.caller_rights(entity, required)
            check_delta(caller_rights, RightsDelta.between(Rights(), rights))
            created = await self.store.create_api_key(
                APIKey(
                    id=key_id,
                    entity_ids=entity,
                    rights=rights,
                    name=name,
                    key_hash=self.hasher.hash(secret),
                    expires_at=expires_at,
                )
            )

        logger.info(f"Created API key {key_id} for {entity}")
        await self.events.publish(f"{entity.kind.value}.api-key.create", (entity,), {"key_id": key_id})
        result = created.without_secrets()
        result.key = format_token(TOKEN_KIND_API_KEY, key_id, secret)
        return result

    async def list_api_keys(
        self, entity: EntityIdentifiers, page: Optional[PageRequest] = None
    ) -> Tuple[List[APIKey], int]:
        await self.resolver.require(entity, api_keys_right(entity.kind))
        limit, offset = self._bounds(page)
        keys, total = await self.store.find_api_keys(entity, limit=limit, offset=offset)
        return [key.without_secrets() for key in keys], total

    async def get_api_key(self, entity: EntityIdentifiers, key_id: str) -> APIKey:
        """Get an API key of an entity.

        Raises:
            APIKeyMissingError: No such key on the entity
        """
        await self.resolver.require(entity, api_keys_right(entity.kind))
        api_key = await self.store.get_api_key(key_id)
        if api_key is None or api_key.entity_ids != entity:
            raise APIKeyMissingError(
                f"API key `{key_id}` not found",
                details={"key_id": key_id, "entity": entity.unique_id},
            )
        return api_key.without_secrets()

    async def update_api_key(
        self,
        entity: EntityIdentifiers,
        key_id: str,
        rights: Rights,
        name: Optional[str] = None,
        expires_at: Optional[datetime] = None,
        update_expiry: bool = False,
    ) -> Optional[APIKey]:
        """Update an API key; empty rights delete it (deprecated, use delete)."""
        required = api_keys_right(entity.kind)
        await self.resolver.require(entity, required)
        if not rights:
            logger.warning(f"Deprecated delete of API key {key_id} through update with empty rights")
        return await self.guard.update_api_key(
            entity, key_id, rights, name=name, expires_at=expires_at, update_expiry=update_expiry,
            required=required,
        )

    async def delete_api_key(self, entity: EntityIdentifiers, key_id: str) -> None:
        required = api_keys_right(entity.kind)
        await self.resolver.require(entity, required)
        await self.guard.update_api_key(entity, key_id, Rights(), required=required)

    # Collaborators

    async def get_collaborator(self, entity: EntityIdentifiers, account: EntityIdentifiers) -> Membership:
        """Get the rights of a collaborator.

        Raises:
            MemberNotFoundError: The account is not a collaborator
        """
        validate_membership(account, entity)
        await self.resolver.require(entity, collaborators_right(entity.kind))
        rights = await self.store.get_member(account, entity)
        return Membership(account=account, entity=entity, rights=rights)

    async def set_collaborator(
        self, entity: EntityIdentifiers, account: EntityIdentifiers, rights: Rights
    ) -> Membership:
        """Set the rights of a collaborator; empty rights remove it (deprecated)."""
        validate_membership(account, entity)
        required = collaborators_right(entity.kind)
        await self.resolver.require(entity, required)
        if not rights:
            logger.warning(f"Deprecated delete of collaborator {account} on {entity} through empty rights")
        elif await self.store.get_entity(account) is None:
            raise EntityNotFoundError(account.kind.value, account.id)
        return await self.guard.set_member(entity, account, rights, required=required)

    async def list_collaborators(
        self, entity: EntityIdentifiers, page: Optional[PageRequest] = None
    ) -> Tuple[List[Membership], int]:
        await self.resolver.require(entity, collaborators_right(entity.kind))
        limit, offset = self._bounds(page)
        members, total = await self.store.find_members(entity, limit=limit, offset=offset)
        return [
            Membership(account=account, entity=entity, rights=rights)
            for account, rights in members.items()
        ], total

    async def delete_collaborator(self, entity: EntityIdentifiers, account: EntityIdentifiers) -> None:
        """Remove a collaborator.

        Raises:
            MemberNotFoundError: The account is not a collaborator
            NeedsCollaboratorError: The collaborator is the last owner
        """
        validate_membership(account, entity)
        required = collaborators_right(entity.kind)
        await self.resolver.require(entity, required)
        await self.guard.set_member(entity, account, Rights(), must_exist=True, required=required)
