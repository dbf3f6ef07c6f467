"""Pytest configuration and fixtures for lorawan-identity tests."""

from datetime import datetime
from typing import List, Optional

import pytest
import pytest_asyncio
from unittest.mock import AsyncMock, MagicMock

from lorawan_identity.config.constants import (
    TOKEN_KIND_ACCESS_TOKEN,
    TOKEN_KIND_API_KEY,
    TOKEN_KIND_SESSION,
)
from lorawan_identity.config.settings import IdentityServerSettings, SettingsHolder
from lorawan_identity.container import ServiceContainer, build_container
from lorawan_identity.core.value_objects.identifiers import EntityIdentifiers, EntityKind, user_ids
from lorawan_identity.features.auth.entities.credentials import (
    APIKey,
    OAuthAccessToken,
    OAuthAuthorization,
    UserSession,
)
from lorawan_identity.features.auth.utils.tokens import format_token
from lorawan_identity.features.events.adapters.memory_sink import MemoryEventSink
from lorawan_identity.features.registry.entities.entity import Entity, User, entity_type
from lorawan_identity.features.rights.entities.right import Right, all_right_for
from lorawan_identity.features.rights.entities.rights import Rights
from lorawan_identity.features.rights.entities.state import State
from lorawan_identity.features.store.adapters.memory_store import MemoryStore
from lorawan_identity.features.validation.entities.protocols import MailMessage, MailSender
from lorawan_identity.utils.datetime import utc_now
from lorawan_identity.utils.secrets import SecretHasher, generate_secret, generate_token_id


# Low iteration count keeps hashing fast in tests
HASH_ITERATIONS = 1000
CLUSTER_KEY = "cluster-secret-key"
PASSWORD = "Correct-Horse-42"


def bearer(token: str) -> str:
    return f"Bearer {token}"


class RecordingMailSender(MailSender):
    """Mail sender that keeps delivered messages."""

    def __init__(self):
        self.messages: List[MailMessage] = []

    async def send(self, message: MailMessage) -> None:
        self.messages.append(message)

    def last(self, template: str) -> MailMessage:
        return [message for message in self.messages if message.template == template][-1]


class IdentityFactory:
    """Seeds the store directly, bypassing rights checks."""

    def __init__(self, store: MemoryStore, hasher: SecretHasher):
        self.store = store
        self.hasher = hasher

    async def user(
        self,
        user_id: str,
        admin: bool = False,
        state: State = State.APPROVED,
        validated: bool = True,
        **fields,
    ) -> User:
        email = f"{user_id}@example.com"
        return await self.store.create_entity(
            User(
                ids=user_ids(user_id),
                primary_email_address=email,
                primary_email_address_validated_at=utc_now() if validated else None,
                state=state,
                admin=admin,
                password=self.hasher.hash(PASSWORD),
                **fields,
            )
        )

    async def entity(
        self,
        kind: EntityKind,
        entity_id: str,
        owner: Optional[EntityIdentifiers] = None,
        **fields,
    ) -> Entity:
        """Create an entity, with ``owner`` holding the ALL right of the kind."""
        entity = await self.store.create_entity(
            entity_type(kind)(ids=EntityIdentifiers(kind, entity_id), **fields)
        )
        if owner is not None:
            await self.store.set_member(owner, entity.ids, Rights.of(all_right_for(kind)))
        return entity

    async def member(self, account: EntityIdentifiers, entity: EntityIdentifiers, *rights: Right) -> None:
        await self.store.set_member(account, entity, Rights(rights))

    async def api_key(
        self,
        entity: EntityIdentifiers,
        *rights: Right,
        expires_at: Optional[datetime] = None,
    ) -> str:
        """Create an API key and return its bearer token."""
        key_id = generate_token_id()
        secret = generate_secret()
        await self.store.create_api_key(
            APIKey(
                id=key_id,
                entity_ids=entity,
                rights=Rights(rights),
                name="test key",
                key_hash=self.hasher.hash(secret),
                expires_at=expires_at,
            )
        )
        return format_token(TOKEN_KIND_API_KEY, key_id, secret)

    async def session(self, user: EntityIdentifiers, expires_at: Optional[datetime] = None) -> str:
        session_id = generate_token_id()
        secret = generate_secret()
        await self.store.create_session(
            UserSession(
                id=session_id,
                user_ids=user,
                session_secret_hash=self.hasher.hash(secret),
                expires_at=expires_at,
            )
        )
        return format_token(TOKEN_KIND_SESSION, session_id, secret)

    async def access_token(
        self,
        user: EntityIdentifiers,
        client: EntityIdentifiers,
        *rights: Right,
        expires_at: Optional[datetime] = None,
    ) -> str:
        """Authorize a client and issue an access token under the authorization."""
        await self.store.set_authorization(
            OAuthAuthorization(user_ids=user, client_ids=client, rights=Rights(rights))
        )
        token_id = generate_token_id()
        secret = generate_secret()
        await self.store.create_access_token(
            OAuthAccessToken(
                id=token_id,
                user_ids=user,
                client_ids=client,
                rights=Rights(rights),
                access_token_hash=self.hasher.hash(secret),
                expires_at=expires_at,
            )
        )
        return format_token(TOKEN_KIND_ACCESS_TOKEN, token_id, secret)


@pytest.fixture
def identity_settings():
    """Settings snapshot with fast hashing and one cluster key."""
    return IdentityServerSettings(
        secret_hash_iterations=HASH_ITERATIONS,
        cluster={"keys": [CLUSTER_KEY]},
    )


@pytest.fixture
def settings(identity_settings):
    return SettingsHolder(identity_settings)


@pytest.fixture
def hasher():
    return SecretHasher(HASH_ITERATIONS)


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def events():
    return MemoryEventSink()


@pytest.fixture
def mail_sender():
    return RecordingMailSender()


@pytest.fixture
def factory(store, hasher):
    return IdentityFactory(store, hasher)


@pytest_asyncio.fixture
async def container(settings, store, events, mail_sender):
    """Services on the in-memory store without a membership cache."""
    services: ServiceContainer = build_container(
        settings,
        store=store,
        events=events,
        mail_sender=mail_sender,
        use_cache=False,
    )
    yield services
    await services.mail.stop()


@pytest.fixture
def mock_redis():
    """Mock Redis client for cache tests."""
    client = MagicMock()
    client.get = AsyncMock(return_value=None)
    client.setex = AsyncMock()
    client.delete = AsyncMock()
    client.ping = AsyncMock()
    client.aclose = AsyncMock()
    return client


@pytest.fixture
def mock_connection():
    """Mock asyncpg connection."""
    conn = AsyncMock()
    conn.fetchrow = AsyncMock()
    conn.fetch = AsyncMock(return_value=[])
    conn.fetchval = AsyncMock()
    conn.execute = AsyncMock()
    return conn
