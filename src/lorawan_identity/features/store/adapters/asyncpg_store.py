"""PostgreSQL implementation of the identity store using asyncpg.

A transaction binds one pooled connection to the running task; store
calls inside the transaction use that connection, calls outside it
acquire their own. ``lock_entity`` locks the entity row until the
transaction ends so that concurrent rights changes serialize. Driver
errors other than unique violations surface as ``StoreError``.
"""

import json
import logging
from contextlib import asynccontextmanager
from contextvars import ContextVar
from datetime import datetime
from typing import Any, AsyncIterator, Dict, List, Optional, Sequence, Tuple

import asyncpg

from ....core.exceptions.domain import (
    EntityAlreadyExistsError,
    EntityNotFoundError,
    GatewayEUITakenError,
    InvitationAlreadySentError,
    MemberNotFoundError,
    ValidationsAlreadySentError,
)
from ....core.exceptions.infrastructure import StoreError, TransactionError
from ....core.value_objects.identifiers import EntityIdentifiers, EntityKind
from ....utils.datetime import ensure_utc, utc_now
from ...auth.entities.credentials import APIKey, OAuthAccessToken, OAuthAuthorization, UserSession
from ...invitations.entities.invitation import Invitation
from ...memberships.entities.membership import MembershipChain, validate_membership
from ...registry.entities.entity import ContactMethod, Entity, Gateway, User, entity_type
from ...rights.entities.rights import Rights
from ...validation.entities.email_validation import EmailValidation
from ..utils import queries

logger = logging.getLogger(__name__)

# Columns entities can be ordered by; other attributes sort on the JSONB document
ORDER_COLUMNS = {"ids": "id", "id": "id", "created_at": "created_at", "updated_at": "updated_at"}


def _rights(values: Optional[Sequence[str]]) -> Rights:
    return Rights(values or ())


def _row_to_entity(kind: EntityKind, row: asyncpg.Record) -> Entity:
    data = row["data"]
    if isinstance(data, str):
        data = json.loads(data)
    entity = entity_type(kind).from_dict(data)
    entity.created_at = ensure_utc(row["created_at"])
    entity.updated_at = ensure_utc(row["updated_at"])
    entity.deleted_at = ensure_utc(row["deleted_at"])
    return entity


def _entity_document(entity: Entity) -> str:
    data = entity.to_dict(include_secrets=True)
    for name in ("created_at", "updated_at", "deleted_at"):
        data.pop(name, None)
    return json.dumps(data)


def _row_to_api_key(row: asyncpg.Record) -> APIKey:
    return APIKey(
        id=row["id"],
        entity_ids=EntityIdentifiers(row["entity_kind"], row["entity_id"]),
        rights=_rights(row["rights"]),
        name=row["name"],
        key_hash=row["key_hash"],
        expires_at=ensure_utc(row["expires_at"]),
        created_at=ensure_utc(row["created_at"]),
        updated_at=ensure_utc(row["updated_at"]),
    )


def _row_to_session(row: asyncpg.Record) -> UserSession:
    return UserSession(
        id=row["id"],
        user_ids=EntityIdentifiers(EntityKind.USER, row["user_id"]),
        session_secret_hash=row["session_secret_hash"],
        expires_at=ensure_utc(row["expires_at"]),
        created_at=ensure_utc(row["created_at"]),
    )


def _row_to_authorization(row: asyncpg.Record) -> OAuthAuthorization:
    return OAuthAuthorization(
        user_ids=EntityIdentifiers(EntityKind.USER, row["user_id"]),
        client_ids=EntityIdentifiers(EntityKind.CLIENT, row["client_id"]),
        rights=_rights(row["rights"]),
        created_at=ensure_utc(row["created_at"]),
        updated_at=ensure_utc(row["updated_at"]),
    )


def _row_to_access_token(row: asyncpg.Record) -> OAuthAccessToken:
    return OAuthAccessToken(
        id=row["id"],
        user_ids=EntityIdentifiers(EntityKind.USER, row["user_id"]),
        client_ids=EntityIdentifiers(EntityKind.CLIENT, row["client_id"]),
        rights=_rights(row["rights"]),
        access_token_hash=row["access_token_hash"],
        refresh_token_hash=row["refresh_token_hash"],
        user_session_id=row["user_session_id"],
        expires_at=ensure_utc(row["expires_at"]),
        created_at=ensure_utc(row["created_at"]),
    )


def _row_to_validation(row: asyncpg.Record) -> EmailValidation:
    return EmailValidation(
        id=row["id"],
        entity_ids=EntityIdentifiers(row["entity_kind"], row["entity_id"]),
        address=row["address"],
        token_hash=row["token_hash"],
        used=row["used"],
        expires_at=ensure_utc(row["expires_at"]),
        created_at=ensure_utc(row["created_at"]),
        updated_at=ensure_utc(row["updated_at"]),
    )


def _row_to_invitation(row: asyncpg.Record) -> Invitation:
    accepted_by = row["accepted_by"]
    return Invitation(
        id=row["id"],
        email=row["email"],
        token_hash=row["token_hash"],
        expires_at=ensure_utc(row["expires_at"]),
        created_at=ensure_utc(row["created_at"]),
        updated_at=ensure_utc(row["updated_at"]),
        accepted_by=EntityIdentifiers(EntityKind.USER, accepted_by) if accepted_by else None,
        accepted_at=ensure_utc(row["accepted_at"]),
    )


class AsyncPGIdentityStore:
    """Identity store backed by PostgreSQL."""

    def __init__(self, connection_pool: asyncpg.Pool, schema: str = "identity"):
        self.connection_pool = connection_pool
        self.schema = schema
        self._connection: ContextVar[Optional[asyncpg.Connection]] = ContextVar(
            f"asyncpg_store_connection_{id(self)}", default=None
        )

    @classmethod
    async def connect(
        cls, dsn: str, schema: str = "identity", min_size: int = 2, max_size: int = 10
    ) -> "AsyncPGIdentityStore":
        """Create a pool and a store on it."""
        if "+asyncpg" in dsn:
            dsn = dsn.replace("+asyncpg", "")
        logger.info(f"Creating database pool with size {max_size}")
        pool = await asyncpg.create_pool(
            dsn,
            min_size=min_size,
            max_size=max_size,
            server_settings={"application_name": "lorawan-identity"},
        )
        return cls(pool, schema)

    async def close(self) -> None:
        await self.connection_pool.close()
        logger.info("Database pool closed")

    def _sql(self, query: str) -> str:
        return query.format(schema=self.schema)

    async def create_schema(self) -> None:
        """Create the tables when missing."""
        async with self._acquire() as conn:
            await conn.execute(f"CREATE SCHEMA IF NOT EXISTS {self.schema}")
            await conn.execute(self._sql(queries.SCHEMA_SQL))
        logger.info(f"Ensured identity store schema {self.schema}")

    @asynccontextmanager
    async def _acquire(self) -> AsyncIterator[asyncpg.Connection]:
        conn = self._connection.get()
        try:
            if conn is not None:
                yield conn
                return
            async with self.connection_pool.acquire() as conn:
                yield conn
        except asyncpg.UniqueViolationError:
            raise
        except (asyncpg.PostgresError, asyncpg.InterfaceError, OSError) as e:
            logger.error(f"Identity store query failed: {e}")
            raise StoreError(f"Identity store query failed: {e}") from e

    # Transactions

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[None]:
        """Run the block in one database transaction; nested blocks join it."""
        if self._connection.get() is not None:
            yield
            return
        async with self.connection_pool.acquire() as conn:
            token = self._connection.set(conn)
            try:
                async with conn.transaction():
                    yield
            finally:
                self._connection.reset(token)

    async def lock_entity(self, entity: EntityIdentifiers) -> None:
        if self._connection.get() is None:
            raise TransactionError("Entity locks require a transaction", details={"entity": entity.unique_id})
        async with self._acquire() as conn:
            await conn.execute(self._sql(queries.LOCK_ENTITY), entity.kind.value, entity.id)

    # Entities

    async def create_entity(self, entity: Entity) -> Entity:
        eui = entity.gateway_eui if isinstance(entity, Gateway) else None
        try:
            async with self._acquire() as conn:
                row = await conn.fetchrow(
                    self._sql(queries.INSERT_ENTITY),
                    entity.ids.kind.value,
                    entity.ids.id,
                    _entity_document(entity),
                    eui,
                    entity.created_at or utc_now(),
                )
        except asyncpg.UniqueViolationError as e:
            if e.constraint_name == "entities_gateway_eui_key":
                raise GatewayEUITakenError(
                    f"Gateway EUI {eui} is already registered",
                    details={"gateway_eui": eui},
                )
            raise EntityAlreadyExistsError(entity.ids.kind.value, entity.ids.id)
        return _row_to_entity(entity.ids.kind, row)

    async def get_entity(self, ids: EntityIdentifiers, include_deleted: bool = False) -> Optional[Entity]:
        async with self._acquire() as conn:
            row = await conn.fetchrow(self._sql(queries.SELECT_ENTITY), ids.kind.value, ids.id, include_deleted)
        return _row_to_entity(ids.kind, row) if row else None

    async def list_entities(
        self,
        kind: EntityKind,
        entity_ids: Optional[Sequence[str]] = None,
        include_deleted: bool = False,
        limit: Optional[int] = None,
        offset: int = 0,
        order: Optional[str] = None,
    ) -> Tuple[List[Entity], int]:
        where_conditions = ["kind = $1"]
        params: List[Any] = [kind.value]
        if not include_deleted:
            where_conditions.append("deleted_at IS NULL")
        if entity_ids is not None:
            params.append(list(entity_ids))
            where_conditions.append(f"id = ANY(${len(params)}::text[])")
        where_clause = " AND ".join(where_conditions)

        order = order or "ids"
        direction = "DESC" if order.startswith("-") else "ASC"
        attribute = order.lstrip("-")
        if attribute in ORDER_COLUMNS:
            order_clause = f"{ORDER_COLUMNS[attribute]} {direction}"
        else:
            params.append(attribute)
            order_clause = f"data->>${len(params)} {direction} NULLS LAST, id"

        count_params = params[:len(params) - (0 if attribute in ORDER_COLUMNS else 1)]
        params.extend([limit, offset])
        query = f"""
            SELECT data, created_at, updated_at, deleted_at FROM {self.schema}.entities
            WHERE {where_clause}
            ORDER BY {order_clause}
            LIMIT ${len(params) - 1} OFFSET ${len(params)}
        """
        async with self._acquire() as conn:
            rows = await conn.fetch(query, *params)
            total = await conn.fetchval(
                f"SELECT COUNT(*) FROM {self.schema}.entities WHERE {where_clause}", *count_params
            )
        return [_row_to_entity(kind, row) for row in rows], total

    async def update_entity(self, entity: Entity) -> Entity:
        eui = entity.gateway_eui if isinstance(entity, Gateway) else None
        try:
            async with self._acquire() as conn:
                row = await conn.fetchrow(
                    self._sql(queries.UPDATE_ENTITY),
                    entity.ids.kind.value,
                    entity.ids.id,
                    _entity_document(entity),
                    eui,
                    utc_now(),
                )
        except asyncpg.UniqueViolationError:
            raise GatewayEUITakenError(
                f"Gateway EUI {eui} is already registered",
                details={"gateway_eui": eui},
            )
        if row is None:
            raise EntityNotFoundError(entity.ids.kind.value, entity.ids.id)
        return _row_to_entity(entity.ids.kind, row)

    async def delete_entity(self, ids: EntityIdentifiers) -> None:
        async with self._acquire() as conn:
            result = await conn.execute(self._sql(queries.SOFT_DELETE_ENTITY), ids.kind.value, ids.id, utc_now())
        if result.split()[-1] == "0":
            raise EntityNotFoundError(ids.kind.value, ids.id)

    async def restore_entity(self, ids: EntityIdentifiers) -> None:
        async with self._acquire() as conn:
            result = await conn.execute(self._sql(queries.RESTORE_ENTITY), ids.kind.value, ids.id, utc_now())
        if result.split()[-1] == "0":
            raise EntityNotFoundError(ids.kind.value, ids.id)

    async def purge_entity(self, ids: EntityIdentifiers) -> None:
        async with self.transaction():
            async with self._acquire() as conn:
                result = await conn.execute(self._sql(queries.PURGE_ENTITY), ids.kind.value, ids.id)
                if result.split()[-1] == "0":
                    raise EntityNotFoundError(ids.kind.value, ids.id)
                await conn.execute(self._sql(queries.DELETE_ENTITY_MEMBERS), ids.kind.value, ids.id)
                await conn.execute(self._sql(queries.DELETE_ACCOUNT_MEMBERS), ids.kind.value, ids.id)
                await conn.execute(self._sql(queries.DELETE_ENTITY_API_KEYS), ids.kind.value, ids.id)
                if ids.kind == EntityKind.USER:
                    await conn.execute(self._sql(queries.DELETE_USER_SESSIONS), ids.id)
                    await conn.execute(self._sql(queries.DELETE_USER_VALIDATIONS), ids.kind.value, ids.id)
                    await conn.execute(self._sql(queries.DELETE_USER_AUTHORIZATIONS), ids.id)
                    await conn.execute(self._sql(queries.DELETE_USER_ACCESS_TOKENS), ids.id)
                elif ids.kind == EntityKind.CLIENT:
                    await conn.execute(self._sql(queries.DELETE_CLIENT_AUTHORIZATIONS), ids.id)
                    await conn.execute(self._sql(queries.DELETE_CLIENT_ACCESS_TOKENS), ids.id)

    # Memberships

    async def get_member(self, account: EntityIdentifiers, entity: EntityIdentifiers) -> Rights:
        async with self._acquire() as conn:
            rights = await conn.fetchval(
                self._sql(queries.SELECT_MEMBER),
                account.kind.value, account.id, entity.kind.value, entity.id,
            )
        if rights is None:
            raise MemberNotFoundError(
                f"{account} is not a member of {entity}",
                details={"account": account.unique_id, "entity": entity.unique_id},
            )
        return _rights(rights)

    async def find_members(
        self, entity: EntityIdentifiers, limit: Optional[int] = None, offset: int = 0
    ) -> Tuple[Dict[EntityIdentifiers, Rights], int]:
        async with self._acquire() as conn:
            rows = await conn.fetch(
                self._sql(queries.SELECT_MEMBERS), entity.kind.value, entity.id, limit, offset
            )
            total = await conn.fetchval(self._sql(queries.COUNT_MEMBERS), entity.kind.value, entity.id)
        members = {
            EntityIdentifiers(row["account_kind"], row["account_id"]): _rights(row["rights"])
            for row in rows
        }
        return members, total

    async def find_memberships(
        self, account: EntityIdentifiers, entity_kind: EntityKind, include_indirect: bool = False
    ) -> List[EntityIdentifiers]:
        if include_indirect:
            chains = await self.find_account_membership_chains(account, entity_kind)
        else:
            chains = await self._direct_chains(account, entity_kind, None)
        found = {chain.entity for chain in chains}
        return sorted(found, key=lambda ids: ids.id)

    async def _direct_chains(
        self, account: EntityIdentifiers, entity_kind: EntityKind, entity_ids: Optional[List[str]]
    ) -> List[MembershipChain]:
        async with self._acquire() as conn:
            rows = await conn.fetch(
                self._sql(queries.SELECT_DIRECT_MEMBERSHIPS),
                account.kind.value, account.id, entity_kind.value, entity_ids,
            )
        return [
            MembershipChain(
                account=account,
                entity=EntityIdentifiers(entity_kind, row["entity_id"]),
                rights_on_entity=_rights(row["rights"]),
            )
            for row in rows
        ]

    async def find_account_membership_chains(
        self, account: EntityIdentifiers, entity_kind: EntityKind, *entity_ids: str
    ) -> List[MembershipChain]:
        wanted = list(entity_ids) or None
        chains = await self._direct_chains(account, entity_kind, wanted)
        if account.kind != EntityKind.USER or entity_kind == EntityKind.ORGANIZATION:
            return chains
        async with self._acquire() as conn:
            rows = await conn.fetch(
                self._sql(queries.SELECT_INDIRECT_MEMBERSHIPS), account.id, entity_kind.value, wanted
            )
        chains.extend(
            MembershipChain(
                account=account,
                entity=EntityIdentifiers(entity_kind, row["entity_id"]),
                rights_on_entity=_rights(row["rights"]),
                organization=EntityIdentifiers(EntityKind.ORGANIZATION, row["organization_id"]),
                rights_on_organization=_rights(row["organization_rights"]),
            )
            for row in rows
        )
        return chains

    async def set_member(self, account: EntityIdentifiers, entity: EntityIdentifiers, rights: Rights) -> None:
        validate_membership(account, entity)
        async with self._acquire() as conn:
            if not rights:
                await conn.execute(
                    self._sql(queries.DELETE_MEMBER),
                    account.kind.value, account.id, entity.kind.value, entity.id,
                )
                return
            await conn.execute(
                self._sql(queries.UPSERT_MEMBER),
                account.kind.value, account.id, entity.kind.value, entity.id, rights.implied().to_list(),
            )

    async def find_member_rights(
        self, account: EntityIdentifiers, entity_kind: EntityKind
    ) -> Dict[EntityIdentifiers, Rights]:
        chains = await self._direct_chains(account, entity_kind, None)
        return {chain.entity: chain.rights_on_entity for chain in chains}

    async def delete_member(self, account: EntityIdentifiers, entity: EntityIdentifiers) -> None:
        async with self._acquire() as conn:
            result = await conn.execute(
                self._sql(queries.DELETE_MEMBER),
                account.kind.value, account.id, entity.kind.value, entity.id,
            )
        if result.split()[-1] == "0":
            raise MemberNotFoundError(
                f"{account} is not a member of {entity}",
                details={"account": account.unique_id, "entity": entity.unique_id},
            )

    async def delete_entity_members(self, entity: EntityIdentifiers) -> None:
        async with self._acquire() as conn:
            await conn.execute(self._sql(queries.DELETE_ENTITY_MEMBERS), entity.kind.value, entity.id)

    async def delete_account_members(self, account: EntityIdentifiers) -> None:
        async with self._acquire() as conn:
            await conn.execute(self._sql(queries.DELETE_ACCOUNT_MEMBERS), account.kind.value, account.id)

    # API keys

    async def create_api_key(self, api_key: APIKey) -> APIKey:
        async with self._acquire() as conn:
            row = await conn.fetchrow(
                self._sql(queries.INSERT_API_KEY),
                api_key.id,
                api_key.entity_ids.kind.value,
                api_key.entity_ids.id,
                api_key.name,
                api_key.key_hash,
                api_key.rights.to_list(),
                api_key.expires_at,
                api_key.created_at or utc_now(),
            )
        return _row_to_api_key(row)

    async def get_api_key(self, key_id: str) -> Optional[APIKey]:
        async with self._acquire() as conn:
            row = await conn.fetchrow(self._sql(queries.SELECT_API_KEY), key_id)
        return _row_to_api_key(row) if row else None

    async def find_api_keys(
        self, entity_ids: EntityIdentifiers, limit: Optional[int] = None, offset: int = 0
    ) -> Tuple[List[APIKey], int]:
        async with self._acquire() as conn:
            rows = await conn.fetch(
                self._sql(queries.SELECT_ENTITY_API_KEYS), entity_ids.kind.value, entity_ids.id, limit, offset
            )
            total = await conn.fetchval(
                self._sql(queries.COUNT_ENTITY_API_KEYS), entity_ids.kind.value, entity_ids.id
            )
        return [_row_to_api_key(row) for row in rows], total

    async def update_api_key(self, api_key: APIKey) -> APIKey:
        async with self._acquire() as conn:
            row = await conn.fetchrow(
                self._sql(queries.UPDATE_API_KEY),
                api_key.id, api_key.name, api_key.rights.to_list(), api_key.expires_at,
            )
        if row is None:
            raise EntityNotFoundError("api_key", api_key.id)
        return _row_to_api_key(row)

    async def delete_api_key(self, key_id: str) -> None:
        async with self._acquire() as conn:
            await conn.execute(self._sql(queries.DELETE_API_KEY), key_id)

    async def delete_entity_api_keys(self, entity_ids: EntityIdentifiers) -> None:
        async with self._acquire() as conn:
            await conn.execute(self._sql(queries.DELETE_ENTITY_API_KEYS), entity_ids.kind.value, entity_ids.id)

    # Sessions

    async def create_session(self, session: UserSession) -> UserSession:
        async with self._acquire() as conn:
            row = await conn.fetchrow(
                self._sql(queries.INSERT_SESSION),
                session.id,
                session.user_ids.id,
                session.session_secret_hash,
                session.expires_at,
                session.created_at or utc_now(),
            )
        return _row_to_session(row)

    async def get_session(self, session_id: str) -> Optional[UserSession]:
        async with self._acquire() as conn:
            row = await conn.fetchrow(self._sql(queries.SELECT_SESSION), session_id)
        return _row_to_session(row) if row else None

    async def delete_session(self, session_id: str) -> None:
        async with self._acquire() as conn:
            await conn.execute(self._sql(queries.DELETE_SESSION), session_id)

    async def delete_all_user_sessions(self, user_ids: EntityIdentifiers) -> None:
        async with self._acquire() as conn:
            await conn.execute(self._sql(queries.DELETE_USER_SESSIONS), user_ids.id)

    # OAuth

    async def get_authorization(
        self, user_ids: EntityIdentifiers, client_ids: EntityIdentifiers
    ) -> Optional[OAuthAuthorization]:
        async with self._acquire() as conn:
            row = await conn.fetchrow(self._sql(queries.SELECT_AUTHORIZATION), user_ids.id, client_ids.id)
        return _row_to_authorization(row) if row else None

    async def list_authorizations(
        self, user_ids: EntityIdentifiers, limit: Optional[int] = None, offset: int = 0
    ) -> Tuple[List[OAuthAuthorization], int]:
        async with self._acquire() as conn:
            rows = await conn.fetch(self._sql(queries.SELECT_USER_AUTHORIZATIONS), user_ids.id, limit, offset)
            total = await conn.fetchval(self._sql(queries.COUNT_USER_AUTHORIZATIONS), user_ids.id)
        return [_row_to_authorization(row) for row in rows], total

    async def set_authorization(self, authorization: OAuthAuthorization) -> OAuthAuthorization:
        async with self._acquire() as conn:
            row = await conn.fetchrow(
                self._sql(queries.UPSERT_AUTHORIZATION),
                authorization.user_ids.id,
                authorization.client_ids.id,
                authorization.rights.to_list(),
            )
        return _row_to_authorization(row)

    async def delete_authorization(self, user_ids: EntityIdentifiers, client_ids: EntityIdentifiers) -> None:
        async with self.transaction():
            async with self._acquire() as conn:
                await conn.execute(self._sql(queries.DELETE_AUTHORIZATION_TOKENS), user_ids.id, client_ids.id)
                await conn.execute(self._sql(queries.DELETE_AUTHORIZATION), user_ids.id, client_ids.id)

    async def create_access_token(self, token: OAuthAccessToken) -> OAuthAccessToken:
        async with self._acquire() as conn:
            row = await conn.fetchrow(
                self._sql(queries.INSERT_ACCESS_TOKEN),
                token.id,
                token.user_ids.id,
                token.client_ids.id,
                token.rights.to_list(),
                token.access_token_hash,
                token.refresh_token_hash,
                token.user_session_id,
                token.expires_at,
                token.created_at or utc_now(),
            )
        return _row_to_access_token(row)

    async def get_access_token(self, token_id: str) -> Optional[OAuthAccessToken]:
        async with self._acquire() as conn:
            row = await conn.fetchrow(self._sql(queries.SELECT_ACCESS_TOKEN), token_id)
        return _row_to_access_token(row) if row else None

    async def list_access_tokens(
        self, user_ids: EntityIdentifiers, client_ids: EntityIdentifiers,
        limit: Optional[int] = None, offset: int = 0,
    ) -> Tuple[List[OAuthAccessToken], int]:
        async with self._acquire() as conn:
            rows = await conn.fetch(
                self._sql(queries.SELECT_ACCESS_TOKENS), user_ids.id, client_ids.id, limit, offset
            )
            total = await conn.fetchval(self._sql(queries.COUNT_ACCESS_TOKENS), user_ids.id, client_ids.id)
        return [_row_to_access_token(row) for row in rows], total

    async def delete_access_token(self, token_id: str) -> None:
        async with self._acquire() as conn:
            await conn.execute(self._sql(queries.DELETE_ACCESS_TOKEN), token_id)

    # Email validations

    async def create_email_validation(self, validation: EmailValidation) -> EmailValidation:
        now = utc_now()
        if await self.find_active_email_validation(validation.entity_ids, validation.address, now):
            raise ValidationsAlreadySentError(
                f"A validation was already sent to {validation.address}",
                details={"address": validation.address},
            )
        async with self._acquire() as conn:
            row = await conn.fetchrow(
                self._sql(queries.INSERT_EMAIL_VALIDATION),
                validation.id,
                validation.entity_ids.kind.value,
                validation.entity_ids.id,
                validation.address,
                validation.token_hash,
                validation.expires_at,
                validation.created_at or now,
                validation.updated_at or now,
            )
        return _row_to_validation(row)

    async def get_email_validation(self, validation_id: str) -> Optional[EmailValidation]:
        async with self._acquire() as conn:
            row = await conn.fetchrow(self._sql(queries.SELECT_EMAIL_VALIDATION), validation_id)
        return _row_to_validation(row) if row else None

    async def find_active_email_validation(
        self, entity_ids: EntityIdentifiers, address: str, now: datetime
    ) -> Optional[EmailValidation]:
        async with self._acquire() as conn:
            row = await conn.fetchrow(
                self._sql(queries.SELECT_ACTIVE_EMAIL_VALIDATION),
                entity_ids.kind.value, entity_ids.id, address, now,
            )
        return _row_to_validation(row) if row else None

    async def refresh_email_validation(self, validation: EmailValidation) -> EmailValidation:
        async with self._acquire() as conn:
            row = await conn.fetchrow(
                self._sql(queries.REFRESH_EMAIL_VALIDATION),
                validation.id, validation.token_hash, validation.expires_at, validation.updated_at or utc_now(),
            )
        if row is None:
            raise EntityNotFoundError("email_validation", validation.id)
        return _row_to_validation(row)

    async def expire_email_validation(self, validation: EmailValidation, validated_at: datetime) -> None:
        async with self.transaction():
            async with self._acquire() as conn:
                await conn.execute(self._sql(queries.EXPIRE_EMAIL_VALIDATION), validation.id, validated_at)
            entity = await self.get_entity(validation.entity_ids, include_deleted=True)
            if entity is None:
                return
            for contact in entity.contact_info:
                if contact.contact_method == ContactMethod.EMAIL and contact.value == validation.address:
                    contact.validated_at = validated_at
            if isinstance(entity, User) and entity.primary_email_address == validation.address:
                entity.primary_email_address_validated_at = validated_at
            await self.update_entity(entity)

    # Invitations

    async def create_invitation(self, invitation: Invitation) -> Invitation:
        now = utc_now()
        async with self._acquire() as conn:
            if await conn.fetchval(self._sql(queries.SELECT_PENDING_INVITATION), invitation.email, now):
                raise InvitationAlreadySentError(
                    f"An invitation was already sent to {invitation.email}",
                    details={"email": invitation.email},
                )
            row = await conn.fetchrow(
                self._sql(queries.INSERT_INVITATION),
                invitation.id,
                invitation.email,
                invitation.token_hash,
                invitation.expires_at,
                invitation.created_at or now,
            )
        return _row_to_invitation(row)

    async def get_invitation(self, invitation_id: str) -> Optional[Invitation]:
        async with self._acquire() as conn:
            row = await conn.fetchrow(self._sql(queries.SELECT_INVITATION), invitation_id)
        return _row_to_invitation(row) if row else None

    async def list_invitations(self, limit: Optional[int] = None, offset: int = 0) -> Tuple[List[Invitation], int]:
        async with self._acquire() as conn:
            rows = await conn.fetch(self._sql(queries.SELECT_INVITATIONS), limit, offset)
            total = await conn.fetchval(self._sql(queries.COUNT_INVITATIONS))
        return [_row_to_invitation(row) for row in rows], total

    async def accept_invitation(self, invitation_id: str, user_ids: EntityIdentifiers, accepted_at: datetime) -> None:
        async with self._acquire() as conn:
            result = await conn.execute(self._sql(queries.ACCEPT_INVITATION), invitation_id, user_ids.id, accepted_at)
        if result.split()[-1] == "0":
            raise EntityNotFoundError("invitation", invitation_id)

    async def delete_invitation(self, invitation_id: str) -> None:
        async with self._acquire() as conn:
            await conn.execute(self._sql(queries.DELETE_INVITATION), invitation_id)
