"""In-memory implementation of the identity store.

Used by tests and single-process deployments. Transactions serialize on
one asyncio lock and roll back to a snapshot when the block raises or is
cancelled. Records are copied on the way in and out so callers never hold
references to stored state.
"""

import asyncio
import copy
import logging
from contextlib import asynccontextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field
from datetime import datetime
from typing import AsyncIterator, Dict, List, Optional, Sequence, Tuple, TypeVar

from ....core.exceptions.domain import (
    EntityAlreadyExistsError,
    EntityNotFoundError,
    GatewayEUITakenError,
    InvitationAlreadySentError,
    MemberNotFoundError,
    ValidationsAlreadySentError,
)
from ....core.value_objects.identifiers import EntityIdentifiers, EntityKind
from ....utils.datetime import utc_now
from ...auth.entities.credentials import APIKey, OAuthAccessToken, OAuthAuthorization, UserSession
from ...invitations.entities.invitation import Invitation
from ...memberships.entities.membership import MembershipChain, validate_membership
from ...registry.entities.entity import Entity, Gateway, User
from ...rights.entities.rights import Rights
from ...validation.entities.email_validation import EmailValidation

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _page(items: List[T], limit: Optional[int], offset: int) -> Tuple[List[T], int]:
    total = len(items)
    if limit:
        return items[offset:offset + limit], total
    return items[offset:], total


@dataclass
class _StoreState:
    entities: Dict[EntityKind, Dict[str, Entity]] = field(
        default_factory=lambda: {kind: {} for kind in EntityKind}
    )
    # entity -> account -> implied rights
    memberships: Dict[EntityIdentifiers, Dict[EntityIdentifiers, Rights]] = field(default_factory=dict)
    api_keys: Dict[str, APIKey] = field(default_factory=dict)
    sessions: Dict[str, UserSession] = field(default_factory=dict)
    authorizations: Dict[Tuple[str, str], OAuthAuthorization] = field(default_factory=dict)
    access_tokens: Dict[str, OAuthAccessToken] = field(default_factory=dict)
    email_validations: Dict[str, EmailValidation] = field(default_factory=dict)
    invitations: Dict[str, Invitation] = field(default_factory=dict)


class MemoryStore:
    """Identity store kept in process memory."""

    def __init__(self):
        self._state = _StoreState()
        self._lock = asyncio.Lock()
        self._in_transaction: ContextVar[bool] = ContextVar(
            f"memory_store_transaction_{id(self)}", default=False
        )

    # Transactions

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[None]:
        """Serialize with other transactions and roll back on error."""
        if self._in_transaction.get():
            yield
            return
        async with self._lock:
            snapshot = copy.deepcopy(self._state)
            token = self._in_transaction.set(True)
            try:
                yield
            except BaseException:
                self._state = snapshot
                logger.debug("Rolled back memory store transaction")
                raise
            finally:
                self._in_transaction.reset(token)

    @asynccontextmanager
    async def _write(self) -> AsyncIterator[None]:
        # Writes outside a transaction still serialize with open transactions
        if self._in_transaction.get():
            yield
            return
        async with self._lock:
            yield

    async def lock_entity(self, entity: EntityIdentifiers) -> None:
        """Transactions hold the store lock, which covers every row."""
        return None

    # Entities

    async def create_entity(self, entity: Entity) -> Entity:
        async with self._write():
            entities = self._state.entities[entity.ids.kind]
            if entity.ids.id in entities:
                raise EntityAlreadyExistsError(entity.ids.kind.value, entity.ids.id)
            if isinstance(entity, Gateway):
                self._check_gateway_eui(entity)
            now = utc_now()
            stored = copy.deepcopy(entity)
            stored.created_at = stored.created_at or now
            stored.updated_at = stored.updated_at or now
            entities[entity.ids.id] = stored
            return copy.deepcopy(stored)

    def _check_gateway_eui(self, gateway: Gateway) -> None:
        if not gateway.gateway_eui:
            return
        for other in self._state.entities[EntityKind.GATEWAY].values():
            if other.ids != gateway.ids and other.gateway_eui == gateway.gateway_eui:
                raise GatewayEUITakenError(
                    f"Gateway EUI {gateway.gateway_eui} is already registered",
                    details={"gateway_eui": gateway.gateway_eui},
                )

    async def get_entity(self, ids: EntityIdentifiers, include_deleted: bool = False) -> Optional[Entity]:
        entity = self._state.entities[ids.kind].get(ids.id)
        if entity is None or (entity.is_deleted and not include_deleted):
            return None
        return copy.deepcopy(entity)

    async def list_entities(
        self,
        kind: EntityKind,
        entity_ids: Optional[Sequence[str]] = None,
        include_deleted: bool = False,
        limit: Optional[int] = None,
        offset: int = 0,
        order: Optional[str] = None,
    ) -> Tuple[List[Entity], int]:
        entities = [
            entity for entity in self._state.entities[kind].values()
            if (include_deleted or not entity.is_deleted)
            and (entity_ids is None or entity.ids.id in entity_ids)
        ]
        order = order or "ids"
        descending = order.startswith("-")
        attribute = order.lstrip("-")

        def sort_key(entity: Entity):
            value = entity.ids.id if attribute in ("ids", "id") else getattr(entity, attribute, None)
            return (value is None, value if value is not None else "")

        entities.sort(key=sort_key, reverse=descending)
        page, total = _page(entities, limit, offset)
        return [copy.deepcopy(entity) for entity in page], total

    async def update_entity(self, entity: Entity) -> Entity:
        async with self._write():
            entities = self._state.entities[entity.ids.kind]
            if entity.ids.id not in entities:
                raise EntityNotFoundError(entity.ids.kind.value, entity.ids.id)
            if isinstance(entity, Gateway):
                self._check_gateway_eui(entity)
            stored = copy.deepcopy(entity)
            stored.updated_at = utc_now()
            entities[entity.ids.id] = stored
            return copy.deepcopy(stored)

    async def delete_entity(self, ids: EntityIdentifiers) -> None:
        async with self._write():
            entity = self._state.entities[ids.kind].get(ids.id)
            if entity is None or entity.is_deleted:
                raise EntityNotFoundError(ids.kind.value, ids.id)
            entity.deleted_at = utc_now()

    async def restore_entity(self, ids: EntityIdentifiers) -> None:
        async with self._write():
            entity = self._state.entities[ids.kind].get(ids.id)
            if entity is None:
                raise EntityNotFoundError(ids.kind.value, ids.id)
            entity.deleted_at = None
            entity.updated_at = utc_now()

    async def purge_entity(self, ids: EntityIdentifiers) -> None:
        async with self._write():
            if self._state.entities[ids.kind].pop(ids.id, None) is None:
                raise EntityNotFoundError(ids.kind.value, ids.id)
            self._state.memberships.pop(ids, None)
            for members in self._state.memberships.values():
                members.pop(ids, None)
            for key_id in [k for k, v in self._state.api_keys.items() if v.entity_ids == ids]:
                del self._state.api_keys[key_id]
            if ids.kind == EntityKind.USER:
                for session_id in [k for k, v in self._state.sessions.items() if v.user_ids == ids]:
                    del self._state.sessions[session_id]
                for validation_id in [
                    k for k, v in self._state.email_validations.items() if v.entity_ids == ids
                ]:
                    del self._state.email_validations[validation_id]
            if ids.kind in (EntityKind.USER, EntityKind.CLIENT):
                attribute = "user_ids" if ids.kind == EntityKind.USER else "client_ids"
                for key in [k for k, v in self._state.authorizations.items() if getattr(v, attribute) == ids]:
                    del self._state.authorizations[key]
                for token_id in [k for k, v in self._state.access_tokens.items() if getattr(v, attribute) == ids]:
                    del self._state.access_tokens[token_id]

    # Memberships

    async def get_member(self, account: EntityIdentifiers, entity: EntityIdentifiers) -> Rights:
        rights = self._state.memberships.get(entity, {}).get(account)
        if rights is None:
            raise MemberNotFoundError(
                f"{account} is not a member of {entity}",
                details={"account": account.unique_id, "entity": entity.unique_id},
            )
        return rights

    async def find_members(
        self, entity: EntityIdentifiers, limit: Optional[int] = None, offset: int = 0
    ) -> Tuple[Dict[EntityIdentifiers, Rights], int]:
        members = sorted(
            self._state.memberships.get(entity, {}).items(), key=lambda item: item[0].unique_id
        )
        page, total = _page(members, limit, offset)
        return dict(page), total

    async def find_memberships(
        self, account: EntityIdentifiers, entity_kind: EntityKind, include_indirect: bool = False
    ) -> List[EntityIdentifiers]:
        found = {
            entity for entity, members in self._state.memberships.items()
            if entity.kind == entity_kind and account in members
        }
        if include_indirect and account.kind == EntityKind.USER and entity_kind != EntityKind.ORGANIZATION:
            for organization in self._organizations_of(account):
                found.update(
                    entity for entity, members in self._state.memberships.items()
                    if entity.kind == entity_kind and organization in members
                )
        return sorted(found, key=lambda ids: ids.id)

    def _organizations_of(self, user: EntityIdentifiers) -> Dict[EntityIdentifiers, Rights]:
        return {
            entity: members[user]
            for entity, members in self._state.memberships.items()
            if entity.kind == EntityKind.ORGANIZATION and user in members
        }

    async def find_account_membership_chains(
        self, account: EntityIdentifiers, entity_kind: EntityKind, *entity_ids: str
    ) -> List[MembershipChain]:
        wanted = set(entity_ids)

        def selected(entity: EntityIdentifiers) -> bool:
            return entity.kind == entity_kind and (not wanted or entity.id in wanted)

        chains = [
            MembershipChain(account=account, entity=entity, rights_on_entity=members[account])
            for entity, members in self._state.memberships.items()
            if selected(entity) and account in members
        ]
        if account.kind == EntityKind.USER and entity_kind != EntityKind.ORGANIZATION:
            for organization, rights_on_organization in self._organizations_of(account).items():
                chains.extend(
                    MembershipChain(
                        account=account,
                        entity=entity,
                        rights_on_entity=members[organization],
                        organization=organization,
                        rights_on_organization=rights_on_organization,
                    )
                    for entity, members in self._state.memberships.items()
                    if selected(entity) and organization in members
                )
        return chains

    async def set_member(self, account: EntityIdentifiers, entity: EntityIdentifiers, rights: Rights) -> None:
        validate_membership(account, entity)
        async with self._write():
            if not rights:
                members = self._state.memberships.get(entity, {})
                members.pop(account, None)
                return
            self._state.memberships.setdefault(entity, {})[account] = rights.implied()

    async def find_member_rights(
        self, account: EntityIdentifiers, entity_kind: EntityKind
    ) -> Dict[EntityIdentifiers, Rights]:
        return {
            entity: members[account]
            for entity, members in self._state.memberships.items()
            if entity.kind == entity_kind and account in members
        }

    async def delete_member(self, account: EntityIdentifiers, entity: EntityIdentifiers) -> None:
        async with self._write():
            members = self._state.memberships.get(entity, {})
            if account not in members:
                raise MemberNotFoundError(
                    f"{account} is not a member of {entity}",
                    details={"account": account.unique_id, "entity": entity.unique_id},
                )
            del members[account]

    async def delete_entity_members(self, entity: EntityIdentifiers) -> None:
        async with self._write():
            self._state.memberships.pop(entity, None)

    async def delete_account_members(self, account: EntityIdentifiers) -> None:
        async with self._write():
            for members in self._state.memberships.values():
                members.pop(account, None)

    # API keys

    async def create_api_key(self, api_key: APIKey) -> APIKey:
        async with self._write():
            now = utc_now()
            stored = copy.deepcopy(api_key)
            stored.key = None
            stored.created_at = stored.created_at or now
            stored.updated_at = now
            self._state.api_keys[stored.id] = stored
            return copy.deepcopy(stored)

    async def get_api_key(self, key_id: str) -> Optional[APIKey]:
        api_key = self._state.api_keys.get(key_id)
        return copy.deepcopy(api_key) if api_key else None

    async def find_api_keys(
        self, entity_ids: EntityIdentifiers, limit: Optional[int] = None, offset: int = 0
    ) -> Tuple[List[APIKey], int]:
        keys = sorted(
            (key for key in self._state.api_keys.values() if key.entity_ids == entity_ids),
            key=lambda key: (key.created_at or datetime.min, key.id),
        )
        page, total = _page(keys, limit, offset)
        return [copy.deepcopy(key) for key in page], total

    async def update_api_key(self, api_key: APIKey) -> APIKey:
        async with self._write():
            stored = self._state.api_keys.get(api_key.id)
            if stored is None:
                raise EntityNotFoundError("api_key", api_key.id)
            stored.name = api_key.name
            stored.rights = api_key.rights
            stored.expires_at = api_key.expires_at
            stored.updated_at = utc_now()
            return copy.deepcopy(stored)

    async def delete_api_key(self, key_id: str) -> None:
        async with self._write():
            self._state.api_keys.pop(key_id, None)

    async def delete_entity_api_keys(self, entity_ids: EntityIdentifiers) -> None:
        async with self._write():
            for key_id in [k for k, v in self._state.api_keys.items() if v.entity_ids == entity_ids]:
                del self._state.api_keys[key_id]

    # Sessions

    async def create_session(self, session: UserSession) -> UserSession:
        async with self._write():
            stored = copy.deepcopy(session)
            stored.created_at = stored.created_at or utc_now()
            self._state.sessions[stored.id] = stored
            return copy.deepcopy(stored)

    async def get_session(self, session_id: str) -> Optional[UserSession]:
        session = self._state.sessions.get(session_id)
        return copy.deepcopy(session) if session else None

    async def delete_session(self, session_id: str) -> None:
        async with self._write():
            self._state.sessions.pop(session_id, None)

    async def delete_all_user_sessions(self, user_ids: EntityIdentifiers) -> None:
        async with self._write():
            for session_id in [k for k, v in self._state.sessions.items() if v.user_ids == user_ids]:
                del self._state.sessions[session_id]

    # OAuth

    async def get_authorization(
        self, user_ids: EntityIdentifiers, client_ids: EntityIdentifiers
    ) -> Optional[OAuthAuthorization]:
        authorization = self._state.authorizations.get((user_ids.id, client_ids.id))
        return copy.deepcopy(authorization) if authorization else None

    async def list_authorizations(
        self, user_ids: EntityIdentifiers, limit: Optional[int] = None, offset: int = 0
    ) -> Tuple[List[OAuthAuthorization], int]:
        authorizations = sorted(
            (a for a in self._state.authorizations.values() if a.user_ids == user_ids),
            key=lambda a: a.client_ids.id,
        )
        page, total = _page(authorizations, limit, offset)
        return [copy.deepcopy(a) for a in page], total

    async def set_authorization(self, authorization: OAuthAuthorization) -> OAuthAuthorization:
        async with self._write():
            key = (authorization.user_ids.id, authorization.client_ids.id)
            now = utc_now()
            stored = copy.deepcopy(authorization)
            existing = self._state.authorizations.get(key)
            stored.created_at = existing.created_at if existing else (stored.created_at or now)
            stored.updated_at = now
            self._state.authorizations[key] = stored
            return copy.deepcopy(stored)

    async def delete_authorization(self, user_ids: EntityIdentifiers, client_ids: EntityIdentifiers) -> None:
        async with self._write():
            self._state.authorizations.pop((user_ids.id, client_ids.id), None)
            for token_id in [
                k for k, v in self._state.access_tokens.items()
                if v.user_ids == user_ids and v.client_ids == client_ids
            ]:
                del self._state.access_tokens[token_id]

    async def create_access_token(self, token: OAuthAccessToken) -> OAuthAccessToken:
        async with self._write():
            stored = copy.deepcopy(token)
            stored.created_at = stored.created_at or utc_now()
            self._state.access_tokens[stored.id] = stored
            return copy.deepcopy(stored)

    async def get_access_token(self, token_id: str) -> Optional[OAuthAccessToken]:
        token = self._state.access_tokens.get(token_id)
        return copy.deepcopy(token) if token else None

    async def list_access_tokens(
        self, user_ids: EntityIdentifiers, client_ids: EntityIdentifiers,
        limit: Optional[int] = None, offset: int = 0,
    ) -> Tuple[List[OAuthAccessToken], int]:
        tokens = sorted(
            (
                t for t in self._state.access_tokens.values()
                if t.user_ids == user_ids and t.client_ids == client_ids
            ),
            key=lambda t: (t.created_at or datetime.min, t.id),
        )
        page, total = _page(tokens, limit, offset)
        return [copy.deepcopy(t) for t in page], total

    async def delete_access_token(self, token_id: str) -> None:
        async with self._write():
            self._state.access_tokens.pop(token_id, None)

    # Email validations

    async def create_email_validation(self, validation: EmailValidation) -> EmailValidation:
        async with self._write():
            now = utc_now()
            if await self.find_active_email_validation(validation.entity_ids, validation.address, now):
                raise ValidationsAlreadySentError(
                    f"A validation was already sent to {validation.address}",
                    details={"address": validation.address},
                )
            stored = copy.deepcopy(validation)
            stored.token = None
            stored.created_at = stored.created_at or now
            stored.updated_at = stored.updated_at or now
            self._state.email_validations[stored.id] = stored
            return copy.deepcopy(stored)

    async def get_email_validation(self, validation_id: str) -> Optional[EmailValidation]:
        validation = self._state.email_validations.get(validation_id)
        return copy.deepcopy(validation) if validation else None

    async def find_active_email_validation(
        self, entity_ids: EntityIdentifiers, address: str, now: datetime
    ) -> Optional[EmailValidation]:
        for validation in self._state.email_validations.values():
            if (
                validation.entity_ids == entity_ids
                and validation.address == address
                and validation.is_active(now)
            ):
                return copy.deepcopy(validation)
        return None

    async def refresh_email_validation(self, validation: EmailValidation) -> EmailValidation:
        async with self._write():
            stored = self._state.email_validations.get(validation.id)
            if stored is None:
                raise EntityNotFoundError("email_validation", validation.id)
            stored.token_hash = validation.token_hash
            stored.expires_at = validation.expires_at
            stored.updated_at = validation.updated_at or utc_now()
            return copy.deepcopy(stored)

    async def expire_email_validation(self, validation: EmailValidation, validated_at: datetime) -> None:
        async with self._write():
            stored = self._state.email_validations.get(validation.id)
            if stored is None:
                raise EntityNotFoundError("email_validation", validation.id)
            stored.used = True
            stored.expires_at = validated_at
            stored.updated_at = validated_at

            entity = self._state.entities[validation.entity_ids.kind].get(validation.entity_ids.id)
            if entity is None:
                return
            for contact in entity.contact_info:
                if contact.contact_method == "email" and contact.value == validation.address:
                    contact.validated_at = validated_at
            if isinstance(entity, User) and entity.primary_email_address == validation.address:
                entity.primary_email_address_validated_at = validated_at
            entity.updated_at = validated_at

    # Invitations

    async def create_invitation(self, invitation: Invitation) -> Invitation:
        async with self._write():
            now = utc_now()
            for existing in self._state.invitations.values():
                pending = existing.accepted_by is None and (
                    existing.expires_at is None or existing.expires_at > now
                )
                if existing.email == invitation.email and pending:
                    raise InvitationAlreadySentError(
                        f"An invitation was already sent to {invitation.email}",
                        details={"email": invitation.email},
                    )
            stored = copy.deepcopy(invitation)
            stored.token = None
            stored.created_at = stored.created_at or now
            stored.updated_at = now
            self._state.invitations[stored.id] = stored
            return copy.deepcopy(stored)

    async def get_invitation(self, invitation_id: str) -> Optional[Invitation]:
        invitation = self._state.invitations.get(invitation_id)
        return copy.deepcopy(invitation) if invitation else None

    async def list_invitations(self, limit: Optional[int] = None, offset: int = 0) -> Tuple[List[Invitation], int]:
        invitations = sorted(
            self._state.invitations.values(), key=lambda i: (i.created_at or datetime.min, i.id)
        )
        page, total = _page(invitations, limit, offset)
        return [copy.deepcopy(i) for i in page], total

    async def accept_invitation(self, invitation_id: str, user_ids: EntityIdentifiers, accepted_at: datetime) -> None:
        async with self._write():
            invitation = self._state.invitations.get(invitation_id)
            if invitation is None:
                raise EntityNotFoundError("invitation", invitation_id)
            invitation.accepted_by = user_ids
            invitation.accepted_at = accepted_at
            invitation.updated_at = accepted_at

    async def delete_invitation(self, invitation_id: str) -> None:
        async with self._write():
            self._state.invitations.pop(invitation_id, None)
