"""Rights-delta guard.

Every change to the rights of a collaborator or an API key is checked
against the rights of the caller: a caller may only grant rights it holds,
and may only take away rights it holds unless the whole membership or key
is removed. An entity never loses its last owner, the member holding the
``*_ALL`` right of the entity kind.

The checks and the write run in one store transaction with the target
entity locked, so concurrent updates of the same entity form a linear
history in which the invariants hold after every commit.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ....core.exceptions.auth import PermissionDeniedError
from ....core.exceptions.domain import (
    APIKeyMissingError,
    InvalidRightsError,
    MemberNotFoundError,
    NeedsCollaboratorError,
)
from ....core.value_objects.identifiers import EntityIdentifiers, EntityKind
from ...auth.entities.credentials import APIKey
from ...events.entities.protocols import EventSink
from ...rights.entities.right import Right, all_right_for
from ...rights.entities.rights import Rights, all_entity_rights
from ...store.entities.protocols import IdentityStore
from ..entities.membership import Membership, validate_membership
from .rights_resolver import RightsResolver

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RightsDelta:
    """Rights added and removed by a change, both implied."""
    old: Rights
    new: Rights
    added: Rights
    removed: Rights

    @classmethod
    def between(cls, old: Rights, new: Rights) -> "RightsDelta":
        old = old.implied()
        new = new.implied()
        return cls(old=old, new=new, added=new.sub(old), removed=old.sub(new))


def check_delta(caller_rights: Rights, delta: RightsDelta) -> None:
    """Check that the caller holds every right a change touches.

    Removed rights are only checked when rights remain; deleting a
    membership or key altogether is governed by the last-owner rule.

    Raises:
        PermissionDeniedError: The caller lacks an added or removed right
    """
    missing_added = delta.added.sub(caller_rights)
    if missing_added:
        raise PermissionDeniedError(
            "Cannot grant rights the caller does not have",
            error_code="insufficient_rights_to_add",
            details={"missing": missing_added.to_list()},
        )
    if delta.new:
        missing_removed = delta.removed.sub(caller_rights)
        if missing_removed:
            raise PermissionDeniedError(
                "Cannot revoke rights the caller does not have",
                error_code="insufficient_rights_to_remove",
                details={"missing": missing_removed.to_list()},
            )


class RightsGuard:
    """Guarded writes of collaborator and API key rights."""

    def __init__(self, store: IdentityStore, resolver: RightsResolver, events: EventSink):
        self.store = store
        self.resolver = resolver
        self.events = events

    async def set_member(
        self,
        entity: EntityIdentifiers,
        account: EntityIdentifiers,
        rights: Rights,
        must_exist: bool = False,
        required: Optional[Right] = None,
    ) -> Membership:
        """Set the rights of a collaborator on an entity; empty rights remove it.

        The caller's rights are read inside the transaction, after the
        entity is locked. ``required`` names a right the caller must hold,
        such as the collaborators settings right.

        Raises:
            InvalidMembershipError: Illegal account and entity kinds
            MemberNotFoundError: ``must_exist`` is set and the account is no member
            PermissionDeniedError: The change touches rights the caller lacks
            NeedsCollaboratorError: The change removes the last owner
        """
        validate_membership(account, entity)

        async with self.store.transaction():
            await self.store.lock_entity(entity)
            caller_rights = await self.caller_rights(entity, required)
            try:
                old = await self.store.get_member(account, entity)
            except MemberNotFoundError:
                if must_exist:
                    raise
                old = Rights()

            delta = RightsDelta.between(old, rights)
            check_delta(caller_rights, delta)
            await self._check_last_owner(entity, delta.removed, exclude_account=account)
            if delta.new:
                await self.store.set_member(account, entity, delta.new)
            elif delta.old:
                await self.store.delete_member(account, entity)

        await self._invalidate(account)
        name = "delete" if not delta.new else "update"
        logger.info(f"Collaborator {account} on {entity}: {name} with {delta.new.to_list()}")
        await self.events.publish(
            f"{entity.kind.value}.collaborator.{name}",
            (entity, account),
            {"rights": delta.new.to_list()},
        )
        return Membership(account=account, entity=entity, rights=delta.new)

    async def update_api_key(
        self,
        entity: EntityIdentifiers,
        key_id: str,
        rights: Rights,
        name: Optional[str] = None,
        expires_at: Optional[datetime] = None,
        update_expiry: bool = False,
        required: Optional[Right] = None,
    ) -> Optional[APIKey]:
        """Update an API key of an entity; empty rights delete the key.

        The caller's rights are read inside the transaction, after the
        entity is locked.

        Returns:
            The updated key, None when it was deleted

        Raises:
            APIKeyMissingError: No such key on the entity
            InvalidRightsError: Rights that do not apply to the entity kind
            PermissionDeniedError: The change touches rights the caller lacks
            NeedsCollaboratorError: The change removes the last owner
        """
        check_api_key_rights(entity.kind, rights)

        async with self.store.transaction():
            await self.store.lock_entity(entity)
            caller_rights = await self.caller_rights(entity, required)
            api_key = await self.store.get_api_key(key_id)
            if api_key is None or api_key.entity_ids != entity:
                raise APIKeyMissingError(
                    f"API key `{key_id}` not found",
                    details={"key_id": key_id, "entity": entity.unique_id},
                )

            delta = RightsDelta.between(api_key.rights, rights)
            check_delta(caller_rights, delta)
            if entity.kind == EntityKind.ORGANIZATION:
                await self._check_last_owner(entity, delta.removed, exclude_key=key_id)

            if not delta.new:
                await self.store.delete_api_key(key_id)
                updated = None
            else:
                api_key.rights = rights
                if name is not None:
                    api_key.name = name
                if update_expiry:
                    api_key.expires_at = expires_at
                updated = (await self.store.update_api_key(api_key)).without_secrets()

        action = "delete" if updated is None else "update"
        logger.info(f"API key {key_id} of {entity}: {action}")
        await self.events.publish(f"{entity.kind.value}.api-key.{action}", (entity,), {"key_id": key_id})
        return updated

    async def caller_rights(self, entity: EntityIdentifiers, required: Optional[Right] = None) -> Rights:
        """Rights of the caller on a locked entity, requiring one of them when given."""
        rights = await self.resolver.locked_rights(entity)
        if required is not None and required not in rights:
            raise PermissionDeniedError(
                "Insufficient rights",
                details={"missing": [required.value], "entity": entity.unique_id},
            )
        return rights

    async def _check_last_owner(
        self,
        entity: EntityIdentifiers,
        removed: Rights,
        exclude_account: Optional[EntityIdentifiers] = None,
        exclude_key: Optional[str] = None,
    ) -> None:
        """Reject a change that leaves the entity without an owner.

        Other members holding the ``*_ALL`` right count as owners; for
        organizations, API keys of the organization holding it count too.

        Raises:
            NeedsCollaboratorError: No other owner remains
        """
        if entity.kind not in (
            EntityKind.APPLICATION, EntityKind.CLIENT, EntityKind.GATEWAY, EntityKind.ORGANIZATION,
        ):
            return
        owner_right = all_right_for(entity.kind)
        if not removed.includes(owner_right):
            return

        members, _ = await self.store.find_members(entity)
        for member, member_rights in members.items():
            if member == exclude_account:
                continue
            if member_rights.implied().includes(owner_right):
                return

        if entity.kind == EntityKind.ORGANIZATION:
            api_keys, _ = await self.store.find_api_keys(entity)
            for api_key in api_keys:
                if api_key.id != exclude_key and api_key.rights.implied().includes(owner_right):
                    return

        logger.info(f"Rejected change that removes the last owner of {entity}")
        raise NeedsCollaboratorError(entity.kind.value, entity.id)

    async def _invalidate(self, account: EntityIdentifiers) -> None:
        accounts = [account]
        if account.kind == EntityKind.ORGANIZATION:
            members, _ = await self.store.find_members(account)
            accounts.extend(members)
        await self.resolver.invalidate(*accounts)


def check_api_key_rights(kind: EntityKind, rights: Rights) -> None:
    """API key rights must apply to the kind of the entity owning the key.

    Raises:
        InvalidRightsError: A right belongs to another kind
    """
    invalid = rights.sub(all_entity_rights(kind))
    if invalid:
        raise InvalidRightsError(
            f"Rights do not apply to {kind.value} API keys",
            details={"invalid": invalid.to_list()},
        )
