"""Service wiring.

Builds the store, the membership cache, the resolvers and the services
from settings. The in-memory store is used when no database DSN is
configured; the membership cache is disabled by a zero TTL and kept in
Redis when a Redis URL is configured.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from .config.settings import IdentityServerSettings, SettingsHolder
from .features.auth.adapters import MemoryMembershipCache, RedisMembershipCache
from .features.auth.entities.protocols import MembershipCache
from .features.auth.services import CredentialResolver
from .features.events.adapters import LoggingEventSink
from .features.events.entities import EventSink
from .features.invitations.services import InvitationService
from .features.memberships.services import AccessService, RightsGuard, RightsResolver
from .features.oauth.services import OAuthAuthorizationRegistry
from .features.registry.services import EntityRegistry
from .features.store.adapters import AsyncPGIdentityStore, MemoryStore
from .features.store.entities import IdentityStore
from .features.users.services import UserRegistry
from .features.validation.adapters import EmailQueue, LoggingMailSender
from .features.validation.entities import MailSender
from .features.validation.services import EmailValidationService
from .utils.secrets import SecretHasher

logger = logging.getLogger(__name__)


@dataclass
class ServiceContainer:
    """Every service of one identity server instance."""
    settings: SettingsHolder
    store: IdentityStore
    cache: Optional[MembershipCache]
    events: EventSink
    mail: EmailQueue
    credentials: CredentialResolver
    resolver: RightsResolver
    guard: RightsGuard
    access: AccessService
    registry: EntityRegistry
    users: UserRegistry
    validations: EmailValidationService
    invitations: InvitationService
    oauth: OAuthAuthorizationRegistry

    async def startup(self) -> None:
        """Connect external collaborators and start the mail worker."""
        if isinstance(self.cache, RedisMembershipCache):
            await self.cache.connect()
        await self.mail.start()
        logger.info("Identity server services started")

    async def shutdown(self) -> None:
        await self.mail.stop()
        if isinstance(self.cache, RedisMembershipCache):
            await self.cache.disconnect()
        if isinstance(self.store, AsyncPGIdentityStore):
            await self.store.close()
        logger.info("Identity server services stopped")


def build_cache(settings: IdentityServerSettings) -> Optional[MembershipCache]:
    """Membership cache for the settings, None when disabled."""
    ttl = settings.auth_cache.membership_ttl
    if ttl.total_seconds() <= 0:
        return None
    if settings.redis.url:
        password = settings.redis.password.get_secret_value() if settings.redis.password else None
        return RedisMembershipCache(
            redis_url=settings.redis.url,
            redis_password=password,
            redis_db=settings.redis.db,
            key_prefix=settings.redis.key_prefix,
            ttl=ttl,
        )
    return MemoryMembershipCache(ttl)


def build_container(
    settings: Optional[SettingsHolder] = None,
    store: Optional[IdentityStore] = None,
    cache: Optional[MembershipCache] = None,
    events: Optional[EventSink] = None,
    mail_sender: Optional[MailSender] = None,
    use_cache: bool = True,
) -> ServiceContainer:
    """Wire the services.

    Args:
        settings: Settings holder, loaded from the environment when omitted
        store: Identity store, in-memory when omitted
        cache: Membership cache, built from settings when omitted
        events: Event sink, logging when omitted
        mail_sender: Mail collaborator, logging when omitted
        use_cache: Build a cache from settings when none is given
    """
    settings = settings or SettingsHolder()
    current = settings.current
    store = store if store is not None else MemoryStore()
    if cache is None and use_cache:
        cache = build_cache(current)
    events = events or LoggingEventSink()
    mail = EmailQueue(mail_sender or LoggingMailSender(), current.email.queue_size)
    hasher = SecretHasher(current.secret_hash_iterations)

    credentials = CredentialResolver(store, settings, hasher)
    resolver = RightsResolver(store, credentials, cache)
    guard = RightsGuard(store, resolver, events)
    validations = EmailValidationService(store, resolver, mail, events, settings, hasher)
    invitations = InvitationService(store, resolver, mail, events, settings, hasher)
    return ServiceContainer(
        settings=settings,
        store=store,
        cache=cache,
        events=events,
        mail=mail,
        credentials=credentials,
        resolver=resolver,
        guard=guard,
        access=AccessService(store, resolver, guard, events, settings, hasher),
        registry=EntityRegistry(store, resolver, events, settings),
        users=UserRegistry(store, resolver, events, settings, validations, invitations, mail, hasher),
        validations=validations,
        invitations=invitations,
        oauth=OAuthAuthorizationRegistry(store, resolver, events, settings),
    )


async def create_container(settings: Optional[SettingsHolder] = None) -> ServiceContainer:
    """Wire the services on the configured store, connecting to PostgreSQL when a DSN is set."""
    settings = settings or SettingsHolder()
    database = settings.current.database
    store: IdentityStore
    if database.dsn:
        store = await AsyncPGIdentityStore.connect(
            database.dsn,
            schema=database.db_schema,
            min_size=database.min_pool_size,
            max_size=database.max_pool_size,
        )
        await store.create_schema()
    else:
        logger.warning("No database configured, using the in-memory identity store")
        store = MemoryStore()
    return build_container(settings, store=store)
