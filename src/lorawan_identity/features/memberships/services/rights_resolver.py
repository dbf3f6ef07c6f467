"""Rights resolution.

Computes the rights a caller holds on a target entity from the caller's
AuthInfo and the membership chains between the caller and the entity.
Membership rights are capped by the credential scope; universal rights
(admin or cluster) apply to every entity of a kind.
"""

import logging
from typing import Dict, List, Optional

from ....core.exceptions.auth import AdminRequiredError, PermissionDeniedError
from ....core.exceptions.domain import EntityNotFoundError
from ....core.value_objects.identifiers import EntityIdentifiers, EntityKind
from ...auth.entities.auth_info import AuthInfo
from ...auth.entities.protocols import MembershipCache
from ...auth.services.credential_resolver import CredentialResolver
from ...auth.services.request_cache import current_request_state, forget_entity_rights
from ...registry.entities.entity import Gateway
from ...rights.entities.right import Right
from ...rights.entities.rights import Rights, all_potential_rights
from ...store.entities.protocols import IdentityStore
from ..entities.membership import MembershipChain

logger = logging.getLogger(__name__)


def chain_rights(chains: List[MembershipChain]) -> Dict[str, Rights]:
    """Union of the effective rights of every chain, per entity ID."""
    result: Dict[str, Rights] = {}
    for chain in chains:
        rights = chain.effective_rights()
        existing = result.get(chain.entity.id)
        result[chain.entity.id] = existing.union(rights) if existing else rights
    return result


class RightsResolver:
    """Resolve the effective rights of the caller on entities."""

    def __init__(
        self,
        store: IdentityStore,
        credentials: CredentialResolver,
        cache: Optional[MembershipCache] = None,
    ):
        self.store = store
        self.credentials = credentials
        self.cache = cache

    async def auth_info(self) -> AuthInfo:
        return await self.credentials.auth_info()

    async def entity_rights(self, entity: EntityIdentifiers, include_deleted: bool = False) -> Rights:
        """Rights of the caller of the current request on an entity.

        Memoized for the rest of the request; rights on soft deleted
        entities are resolved anew each time.
        """
        auth_info = await self.auth_info()
        if include_deleted:
            return await self.resolve(auth_info, entity, include_deleted=True)
        state = current_request_state()
        if state is not None and entity in state.entity_rights:
            return state.entity_rights[entity]
        rights = await self.resolve(auth_info, entity)
        if state is not None:
            state.entity_rights[entity] = rights
        return rights

    async def locked_rights(self, entity: EntityIdentifiers) -> Rights:
        """Rights of the caller on an entity, read from the store.

        Bypasses the request memo and the membership cache. Called inside the
        transaction that holds the entity lock, the result stays valid until
        the transaction commits.
        """
        auth_info = await self.auth_info()
        return await self.resolve(auth_info, entity, use_cache=False)

    async def resolve(
        self,
        auth_info: AuthInfo,
        entity: EntityIdentifiers,
        include_deleted: bool = False,
        use_cache: bool = True,
    ) -> Rights:
        """Compute the rights of an AuthInfo on an entity.

        Membership rights only apply to entities that exist; soft deleted
        entities count as missing unless ``include_deleted`` is set. Public
        gateway rights apply to every caller.

        Raises:
            EntityNotFoundError: The caller is an admin and the entity does not exist
        """
        if auth_info.principal == entity:
            return auth_info.rights.union(auth_info.universal_rights)

        if auth_info.is_admin and entity.kind != EntityKind.END_DEVICE:
            if await self.store.get_entity(entity, include_deleted=True) is None:
                raise EntityNotFoundError(entity.kind.value, entity.id)

        potential = all_potential_rights(entity.kind, auth_info.rights)
        universal = all_potential_rights(entity.kind, auth_info.universal_rights)

        if not potential:
            rights = universal
        elif auth_info.principal is None or not auth_info.principal.is_account:
            rights = universal
        elif entity.kind == EntityKind.USER:
            rights = universal
        else:
            member_rights = await self.member_rights(auth_info.principal, entity, use_cache=use_cache)
            member_rights = member_rights.intersect(auth_info.rights)
            if member_rights and not await self._exists(entity, include_deleted):
                member_rights = Rights()
            rights = member_rights.union(universal)

        if entity.kind == EntityKind.GATEWAY:
            rights = rights.union(await self._public_gateway_rights(entity))
        return rights

    async def member_rights(
        self, account: EntityIdentifiers, entity: EntityIdentifiers, use_cache: bool = True
    ) -> Rights:
        """Effective membership rights of an account on an entity, direct and indirect."""
        if self.cache is not None and use_cache:
            cached = await self.cache.get_member_rights(account, entity.kind)
            if cached is not None:
                return cached.get(entity.id, Rights())
            chains = await self.store.find_account_membership_chains(account, entity.kind)
            per_entity = chain_rights(chains)
            await self.cache.set_member_rights(account, entity.kind, per_entity)
            return per_entity.get(entity.id, Rights())

        chains = await self.store.find_account_membership_chains(account, entity.kind, entity.id)
        return chain_rights(chains).get(entity.id, Rights())

    async def _exists(self, entity: EntityIdentifiers, include_deleted: bool) -> bool:
        if entity.kind == EntityKind.END_DEVICE:
            return True
        return await self.store.get_entity(entity, include_deleted=include_deleted) is not None

    async def _public_gateway_rights(self, entity: EntityIdentifiers) -> Rights:
        gateway = await self.store.get_entity(entity)
        if not isinstance(gateway, Gateway):
            return Rights()
        public = []
        if gateway.status_public:
            public.append(Right.RIGHT_GATEWAY_STATUS_READ)
        if gateway.location_public:
            public.append(Right.RIGHT_GATEWAY_LOCATION_READ)
        return Rights(public)

    async def require(
        self, entity: EntityIdentifiers, *required: Right, include_deleted: bool = False
    ) -> Rights:
        """Resolve the caller's rights on an entity and require some of them.

        Raises:
            PermissionDeniedError: A required right is missing
        """
        rights = await self.entity_rights(entity, include_deleted=include_deleted)
        missing = rights.missing(*required)
        if missing:
            logger.debug(f"Caller lacks {missing.to_list()} on {entity}")
            raise PermissionDeniedError(
                "Insufficient rights",
                details={"missing": missing.to_list(), "entity": entity.unique_id},
            )
        return rights

    async def require_any(self, entity: EntityIdentifiers, *candidates: Right) -> Rights:
        """Require at least one of the given rights on an entity."""
        rights = await self.entity_rights(entity)
        if not any(right in rights for right in candidates):
            raise PermissionDeniedError(
                "Insufficient rights",
                details={"required_any": [right.value for right in candidates], "entity": entity.unique_id},
            )
        return rights

    async def require_universal(self, *required: Right) -> AuthInfo:
        """Require rights that do not belong to an entity, such as sending invites."""
        auth_info = await self.auth_info()
        held = auth_info.rights.union(auth_info.universal_rights)
        missing = held.missing(*required)
        if missing:
            raise PermissionDeniedError(
                "Insufficient rights",
                details={"missing": missing.to_list()},
            )
        return auth_info

    async def require_admin(self) -> AuthInfo:
        auth_info = await self.auth_info()
        if not auth_info.is_admin:
            raise AdminRequiredError("Admin rights required")
        return auth_info

    async def is_admin(self) -> bool:
        return (await self.auth_info()).is_admin

    async def invalidate(self, *accounts: EntityIdentifiers) -> None:
        """Drop cached rights after a membership change."""
        forget_entity_rights()
        if self.cache is None:
            return
        for account in accounts:
            await self.cache.invalidate(account)
