"""Entity registry service.

Create, read, update, delete, restore and purge of applications, clients,
gateways and organizations. The creator becomes the first collaborator of
a new entity with all rights of its kind.
"""

import copy
import logging
from datetime import timedelta
from typing import Any, Dict, Iterable, List, Optional, Tuple

from ....config.settings import SettingsHolder
from ....core.exceptions.auth import AdminRequiredError, PermissionDeniedError
from ....core.exceptions.domain import (
    BlacklistedIDError,
    EntityNotDeletedError,
    EntityNotFoundError,
    InvalidArgumentError,
    InvalidMembershipError,
    InvalidUpdateError,
    RestoreWindowExpiredError,
)
from ....core.value_objects.identifiers import EntityIdentifiers, EntityKind
from ....utils.datetime import ensure_utc, utc_now
from ....utils.field_mask import apply_field_mask, normalize_paths
from ....utils.pagination import PageRequest
from ...auth.services.request_cache import forget_entity_rights
from ...events.entities.protocols import EventSink
from ...memberships.services.rights_resolver import RightsResolver
from ...rights.entities.right import Right, all_right_for
from ...rights.entities.rights import Rights
from ...rights.entities.state import State
from ...store.entities.protocols import IdentityStore
from ..entities.entity import Client, Entity, Gateway, entity_type

logger = logging.getLogger(__name__)


INFO_RIGHT = {
    EntityKind.APPLICATION: Right.RIGHT_APPLICATION_INFO,
    EntityKind.CLIENT: Right.RIGHT_CLIENT_INFO,
    EntityKind.GATEWAY: Right.RIGHT_GATEWAY_INFO,
    EntityKind.ORGANIZATION: Right.RIGHT_ORGANIZATION_INFO,
    EntityKind.USER: Right.RIGHT_USER_INFO,
}

SETTINGS_BASIC_RIGHT = {
    EntityKind.APPLICATION: Right.RIGHT_APPLICATION_SETTINGS_BASIC,
    EntityKind.CLIENT: Right.RIGHT_CLIENT_SETTINGS_BASIC,
    EntityKind.GATEWAY: Right.RIGHT_GATEWAY_SETTINGS_BASIC,
    EntityKind.ORGANIZATION: Right.RIGHT_ORGANIZATION_SETTINGS_BASIC,
    EntityKind.USER: Right.RIGHT_USER_SETTINGS_BASIC,
}

DELETE_RIGHT = {
    EntityKind.APPLICATION: Right.RIGHT_APPLICATION_DELETE,
    EntityKind.CLIENT: Right.RIGHT_CLIENT_DELETE,
    EntityKind.GATEWAY: Right.RIGHT_GATEWAY_DELETE,
    EntityKind.ORGANIZATION: Right.RIGHT_ORGANIZATION_DELETE,
    EntityKind.USER: Right.RIGHT_USER_DELETE,
}

# Right an account needs to create or list entities of a kind, per account kind
CREATE_RIGHT = {
    EntityKind.USER: {
        EntityKind.APPLICATION: Right.RIGHT_USER_APPLICATIONS_CREATE,
        EntityKind.CLIENT: Right.RIGHT_USER_CLIENTS_CREATE,
        EntityKind.GATEWAY: Right.RIGHT_USER_GATEWAYS_CREATE,
        EntityKind.ORGANIZATION: Right.RIGHT_USER_ORGANIZATIONS_CREATE,
    },
    EntityKind.ORGANIZATION: {
        EntityKind.APPLICATION: Right.RIGHT_ORGANIZATION_APPLICATIONS_CREATE,
        EntityKind.CLIENT: Right.RIGHT_ORGANIZATION_CLIENTS_CREATE,
        EntityKind.GATEWAY: Right.RIGHT_ORGANIZATION_GATEWAYS_CREATE,
    },
}

LIST_RIGHT = {
    EntityKind.USER: {
        EntityKind.APPLICATION: Right.RIGHT_USER_APPLICATIONS_LIST,
        EntityKind.CLIENT: Right.RIGHT_USER_CLIENTS_LIST,
        EntityKind.GATEWAY: Right.RIGHT_USER_GATEWAYS_LIST,
        EntityKind.ORGANIZATION: Right.RIGHT_USER_ORGANIZATIONS_LIST,
    },
    EntityKind.ORGANIZATION: {
        EntityKind.APPLICATION: Right.RIGHT_ORGANIZATION_APPLICATIONS_LIST,
        EntityKind.CLIENT: Right.RIGHT_ORGANIZATION_CLIENTS_LIST,
        EntityKind.GATEWAY: Right.RIGHT_ORGANIZATION_GATEWAYS_LIST,
    },
}


def project(entity: Entity, paths: Optional[Iterable[str]] = None) -> Dict[str, Any]:
    """User-observable representation of an entity restricted to a field mask."""
    paths = normalize_paths(paths, entity.field_paths()) if paths else []
    return apply_field_mask(entity.to_dict(), paths, always=("ids",))


def apply_update(existing: Entity, update: Entity, paths: Iterable[str]) -> Entity:
    """Copy the masked fields of ``update`` onto ``existing``.

    A dotted path below a mapping field, such as ``attributes.key``, sets or
    removes a single key.
    """
    result = copy.deepcopy(existing)
    for path in paths:
        top, _, sub = path.partition(".")
        current = getattr(result, top)
        if sub and isinstance(current, dict):
            value = getattr(update, top).get(sub)
            current = dict(current)
            if value is None:
                current.pop(sub, None)
            else:
                current[sub] = value
            setattr(result, top, current)
        else:
            setattr(result, top, copy.deepcopy(getattr(update, top)))
    if isinstance(result, Gateway) and result.gateway_eui:
        result.gateway_eui = result.gateway_eui.upper()
    return result


class EntityRegistry:
    """Registry operations for applications, clients, gateways and organizations."""

    KINDS = frozenset({EntityKind.APPLICATION, EntityKind.CLIENT, EntityKind.GATEWAY, EntityKind.ORGANIZATION})

    def __init__(
        self,
        store: IdentityStore,
        resolver: RightsResolver,
        events: EventSink,
        settings: SettingsHolder,
    ):
        self.store = store
        self.resolver = resolver
        self.events = events
        self.settings = settings

    def _check_kind(self, kind: EntityKind) -> None:
        if kind not in self.KINDS:
            raise InvalidArgumentError(
                f"{kind.value} is not managed by the entity registry",
                details={"kind": kind.value},
            )

    async def create(self, entity: Entity, owner: EntityIdentifiers) -> Entity:
        """Create an entity owned by an account.

        Raises:
            BlacklistedIDError: The ID is blacklisted
            InvalidMembershipError: The owner cannot own entities of the kind
            PermissionDeniedError: The caller lacks the create right on the owner
            EntityAlreadyExistsError: The ID is taken
            GatewayEUITakenError: The gateway EUI is registered already
        """
        kind = entity.ids.kind
        self._check_kind(kind)
        settings = self.settings.current
        if not settings.is_id_allowed(entity.ids.id):
            raise BlacklistedIDError(
                f"ID `{entity.ids.id}` is not allowed",
                details={"id": entity.ids.id},
            )
        create_right = CREATE_RIGHT.get(owner.kind, {}).get(kind)
        if create_right is None:
            raise InvalidMembershipError(
                f"{owner.kind.value} cannot own a {kind.value}",
                details={"owner": owner.unique_id, "kind": kind.value},
            )
        await self.resolver.require(owner, create_right)

        is_admin = await self.resolver.is_admin()
        if not is_admin and not getattr(settings.user_rights, f"create_{kind.value}s"):
            raise PermissionDeniedError(
                f"Creating {kind.value}s is restricted to admins",
                details={"kind": kind.value},
            )

        entity = copy.deepcopy(entity)
        entity.created_at = entity.updated_at = entity.deleted_at = None
        if isinstance(entity, Client) and not is_admin:
            entity.state = (
                State.REQUESTED if settings.user_registration.admin_approval.required else State.APPROVED
            )
            entity.state_description = ""
            entity.endorsed = False
            entity.skip_authorization = False

        async with self.store.transaction():
            created = await self.store.create_entity(entity)
            await self.store.set_member(owner, created.ids, Rights.of(all_right_for(kind)))

        await self.resolver.invalidate(*(await self._accounts_of(owner)))
        logger.info(f"Created {created.ids} owned by {owner}")
        await self.events.publish(f"{kind.value}.create", (created.ids, owner))
        return created

    async def get(self, ids: EntityIdentifiers) -> Entity:
        """Get an entity.

        Raises:
            PermissionDeniedError: The caller has no info right on the entity
            EntityNotFoundError: The entity does not exist
        """
        self._check_kind(ids.kind)
        await self.resolver.require(ids, INFO_RIGHT[ids.kind])
        entity = await self.store.get_entity(ids)
        if entity is None:
            raise EntityNotFoundError(ids.kind.value, ids.id)
        return entity

    async def list(
        self,
        kind: EntityKind,
        collaborator: Optional[EntityIdentifiers] = None,
        page: Optional[PageRequest] = None,
        deleted: bool = False,
    ) -> Tuple[List[Entity], int]:
        """List entities, by default those the caller collaborates on.

        Admins without a collaborator filter list every entity. Indirect
        memberships through organizations count.

        Returns:
            Entities of the page and the total count
        """
        self._check_kind(kind)
        settings = self.settings.current
        request = page or PageRequest()
        limit, offset = request.bounds(settings.default_page_size, settings.max_page_size)

        auth_info = await self.resolver.auth_info()
        if deleted and not auth_info.is_admin:
            raise AdminRequiredError("Listing deleted entities requires admin rights")

        if collaborator is None:
            if auth_info.is_admin:
                return await self.store.list_entities(
                    kind, include_deleted=deleted, limit=limit, offset=offset, order=request.order,
                )
            if auth_info.principal is None or not auth_info.principal.is_account:
                raise PermissionDeniedError("Listing requires an account")
            collaborator = auth_info.principal

        list_right = LIST_RIGHT.get(collaborator.kind, {}).get(kind)
        if list_right is None:
            raise InvalidMembershipError(
                f"{collaborator.kind.value} cannot collaborate on {kind.value}s",
                details={"collaborator": collaborator.unique_id, "kind": kind.value},
            )
        await self.resolver.require(collaborator, list_right)
        entity_ids = await self.store.find_memberships(collaborator, kind, include_indirect=True)
        if not entity_ids:
            return [], 0
        return await self.store.list_entities(
            kind,
            entity_ids=[ids.id for ids in entity_ids],
            include_deleted=deleted,
            limit=limit,
            offset=offset,
            order=request.order,
        )

    async def update(self, entity: Entity, paths: Iterable[str]) -> Entity:
        """Update the fields of an entity named by a field mask.

        Unknown paths are dropped. Admin-only fields require admin rights.

        Raises:
            InvalidUpdateError: No updatable path remains
            AdminRequiredError: An admin-only field is set by a non-admin
        """
        ids = entity.ids
        self._check_kind(ids.kind)
        await self.resolver.require(ids, SETTINGS_BASIC_RIGHT[ids.kind])
        paths = normalize_paths(paths, type(entity).UPDATABLE_FIELDS)
        if not paths:
            raise InvalidUpdateError("No updatable fields in field mask")
        admin_paths = [path for path in paths if path.split(".")[0] in type(entity).ADMIN_FIELDS]
        if admin_paths and not await self.resolver.is_admin():
            raise AdminRequiredError(
                "Fields can only be updated by admins",
                details={"fields": admin_paths},
            )

        async with self.store.transaction():
            await self.store.lock_entity(ids)
            existing = await self.store.get_entity(ids)
            if existing is None:
                raise EntityNotFoundError(ids.kind.value, ids.id)
            updated = await self.store.update_entity(apply_update(existing, entity, paths))

        logger.info(f"Updated {ids}: {', '.join(paths)}")
        await self.events.publish(f"{ids.kind.value}.update", (ids,), {"field_mask": paths})
        return updated

    async def delete(self, ids: EntityIdentifiers) -> None:
        """Soft delete an entity; it can be restored within the restore window."""
        self._check_kind(ids.kind)
        await self.resolver.require(ids, DELETE_RIGHT[ids.kind])
        await self.store.delete_entity(ids)
        forget_entity_rights(ids)
        logger.info(f"Deleted {ids}")
        await self.events.publish(f"{ids.kind.value}.delete", (ids,))

    async def restore(self, ids: EntityIdentifiers) -> None:
        """Restore a soft deleted entity.

        Raises:
            EntityNotDeletedError: The entity is not deleted
            RestoreWindowExpiredError: The restore window passed and the caller is no admin
        """
        self._check_kind(ids.kind)
        await self.resolver.require(ids, DELETE_RIGHT[ids.kind], include_deleted=True)
        await self._restore(ids, self.settings.current.delete.restore)

    async def _restore(self, ids: EntityIdentifiers, window: timedelta) -> None:
        async with self.store.transaction():
            await self.store.lock_entity(ids)
            entity = await self.store.get_entity(ids, include_deleted=True)
            if entity is None:
                raise EntityNotFoundError(ids.kind.value, ids.id)
            if not entity.is_deleted:
                raise EntityNotDeletedError(f"{ids.kind.value} `{ids.id}` is not deleted", details={"id": ids.id})
            if ensure_utc(entity.deleted_at) + window < utc_now() and not await self.resolver.is_admin():
                raise RestoreWindowExpiredError(
                    f"{ids.kind.value} `{ids.id}` can no longer be restored",
                    details={"id": ids.id, "deleted_at": entity.deleted_at.isoformat()},
                )
            await self.store.restore_entity(ids)
        forget_entity_rights(ids)
        logger.info(f"Restored {ids}")
        await self.events.publish(f"{ids.kind.value}.restore", (ids,))

    async def purge(self, ids: EntityIdentifiers) -> None:
        """Remove an entity permanently with its memberships and API keys. Admin only."""
        self._check_kind(ids.kind)
        await self.resolver.require_admin()
        async with self.store.transaction():
            await self.store.lock_entity(ids)
            if await self.store.get_entity(ids, include_deleted=True) is None:
                raise EntityNotFoundError(ids.kind.value, ids.id)
            members, _ = await self.store.find_members(ids)
            await self.store.delete_entity_members(ids)
            if ids.is_account:
                await self.store.delete_account_members(ids)
            await self.store.delete_entity_api_keys(ids)
            await self.store.purge_entity(ids)

        await self.resolver.invalidate(ids, *members)
        logger.info(f"Purged {ids}")
        await self.events.publish(f"{ids.kind.value}.purge", (ids,))

    async def _accounts_of(self, account: EntityIdentifiers) -> List[EntityIdentifiers]:
        accounts = [account]
        if account.kind == EntityKind.ORGANIZATION:
            members, _ = await self.store.find_members(account)
            accounts.extend(members)
        return accounts


def new_entity(kind: EntityKind, entity_id: str, **fields: Any) -> Entity:
    """Build an entity of a kind from field values."""
    return entity_type(kind)(ids=EntityIdentifiers(kind, entity_id), **fields)
