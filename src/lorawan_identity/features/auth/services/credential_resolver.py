"""Credential resolution.

Maps the authorization value presented on a request to the AuthInfo of the
caller. Resolution happens at most once per request; the result is
memoized in the request state.
"""

import hmac
import logging
from datetime import datetime
from typing import List, Optional

from ....config.constants import (
    AUTH_TYPE_CLUSTER,
    TOKEN_KIND_ACCESS_TOKEN,
    TOKEN_KIND_API_KEY,
    TOKEN_KIND_SESSION,
)
from ....config.settings import SettingsHolder
from ....core.exceptions.auth import (
    AccessTokenExpiredError,
    AccessTokenNotFoundError,
    APIKeyExpiredError,
    APIKeyNotFoundError,
    InvalidAuthorizationError,
    InvalidClusterKeyError,
    SessionExpiredError,
    SessionNotFoundError,
)
from ....core.value_objects.identifiers import EntityIdentifiers, EntityKind
from ....utils.datetime import is_expired
from ....utils.secrets import SecretHasher
from ...registry.entities.entity import Client, User
from ...rights.entities.rights import Rights, all_admin_rights, all_cluster_rights, all_rights
from ...rights.entities.state import State
from ...rights.services.state_guard import apply_user_state, ensure_client_usable
from ...store.entities.protocols import IdentityStore
from ..entities.auth_info import AccessMethod, AuthInfo
from ..utils.tokens import BearerToken, parse_token, split_authorization
from .request_cache import current_request_state

logger = logging.getLogger(__name__)


class CredentialResolver:
    """Resolve request credentials into AuthInfo."""

    def __init__(
        self,
        store: IdentityStore,
        settings: SettingsHolder,
        hasher: Optional[SecretHasher] = None,
    ):
        self.store = store
        self.settings = settings
        self.hasher = hasher or SecretHasher(settings.current.secret_hash_iterations)

    async def auth_info(self) -> AuthInfo:
        """AuthInfo of the current request, resolved on first use."""
        state = current_request_state()
        if state is None:
            return AuthInfo()
        if state.auth_info is None:
            auth_info = await self.resolve(state.authorization, state.cluster_verified)
            for warning in auth_info.warnings:
                state.add_warning(warning)
            state.auth_info = auth_info
        return state.auth_info

    def verify_cluster_key(self, key: str) -> bool:
        """Compare a presented cluster key against the configured keys in constant time."""
        presented = key.encode("utf-8")
        matched = False
        for configured in self.settings.current.cluster.keys:
            if hmac.compare_digest(presented, configured.get_secret_value().encode("utf-8")):
                matched = True
        return matched

    async def resolve(self, authorization: Optional[str], cluster_verified: bool = False) -> AuthInfo:
        """Resolve an authorization header value.

        Args:
            authorization: Header value, ``Bearer <token>`` or ``ClusterKey <key>``
            cluster_verified: Whether the transport already verified a cluster peer

        Returns:
            AuthInfo of the caller; anonymous without authorization

        Raises:
            AuthenticationError: Unsupported, malformed, unknown or expired credentials
            ClientStateDeniedError: Access token of a rejected or suspended client
        """
        parsed = split_authorization(authorization)
        if parsed is None:
            return AuthInfo()
        auth_type, value = parsed

        if auth_type == AUTH_TYPE_CLUSTER:
            if not (cluster_verified or self.verify_cluster_key(value)):
                logger.warning("Rejected cluster authentication with an unknown key")
                raise InvalidClusterKeyError("Invalid cluster key")
            return AuthInfo(
                universal_rights=all_cluster_rights().implied(),
                access_method=AccessMethod.CLUSTER,
            )

        token = parse_token(value)
        if token.kind == TOKEN_KIND_API_KEY:
            return await self._resolve_api_key(token)
        if token.kind == TOKEN_KIND_ACCESS_TOKEN:
            return await self._resolve_access_token(token)
        if token.kind == TOKEN_KIND_SESSION:
            return await self._resolve_session(token)
        raise InvalidAuthorizationError("Malformed bearer token")

    async def _resolve_api_key(self, token: BearerToken) -> AuthInfo:
        api_key = await self.store.get_api_key(token.id)
        if api_key is None:
            logger.warning(f"API key {token.id} not found")
            raise APIKeyNotFoundError(f"API key `{token.id}` not found")
        if not self.hasher.verify(token.secret, api_key.key_hash):
            logger.warning(f"Invalid secret for API key {token.id}")
            raise InvalidAuthorizationError("Invalid authorization")
        if is_expired(api_key.expires_at):
            logger.warning(f"API key {token.id} expired at {api_key.expires_at}")
            raise APIKeyExpiredError(f"API key `{token.id}` expired")

        user = None
        if api_key.entity_ids.kind == EntityKind.USER:
            user = await self._load_user(api_key.entity_ids)
        return self._build(
            principal=api_key.entity_ids,
            rights=api_key.rights.implied(),
            access_method=AccessMethod.API_KEY,
            credential_id=api_key.id,
            expires_at=api_key.expires_at,
            user=user,
        )

    async def _resolve_access_token(self, token: BearerToken) -> AuthInfo:
        access_token = await self.store.get_access_token(token.id)
        if access_token is None:
            logger.warning(f"Access token {token.id} not found")
            raise AccessTokenNotFoundError(f"Access token `{token.id}` not found")
        if not self.hasher.verify(token.secret, access_token.access_token_hash):
            logger.warning(f"Invalid secret for access token {token.id}")
            raise InvalidAuthorizationError("Invalid authorization")
        if is_expired(access_token.expires_at):
            logger.warning(f"Access token {token.id} expired at {access_token.expires_at}")
            raise AccessTokenExpiredError(f"Access token `{token.id}` expired")

        client = await self.store.get_entity(access_token.client_ids)
        if not isinstance(client, Client):
            logger.warning(f"Client {access_token.client_ids.id} of access token {token.id} not found")
            raise InvalidAuthorizationError("Invalid authorization")
        ensure_client_usable(client.ids.id, client.state, client.state_description)

        user = await self._load_user(access_token.user_ids)
        return self._build(
            principal=access_token.user_ids,
            rights=access_token.rights.implied(),
            access_method=AccessMethod.ACCESS_TOKEN,
            credential_id=access_token.id,
            expires_at=access_token.expires_at,
            user=user,
        )

    async def _resolve_session(self, token: BearerToken) -> AuthInfo:
        session = await self.store.get_session(token.id)
        if session is None:
            logger.warning(f"Session {token.id} not found")
            raise SessionNotFoundError(f"Session `{token.id}` not found")
        if not self.hasher.verify(token.secret, session.session_secret_hash):
            logger.warning(f"Invalid secret for session {token.id}")
            raise InvalidAuthorizationError("Invalid authorization")
        if is_expired(session.expires_at):
            logger.warning(f"Session {token.id} expired at {session.expires_at}")
            raise SessionExpiredError(f"Session `{token.id}` expired")

        user = await self._load_user(session.user_ids)
        # Sessions carry no scope of their own; CSRF protection is the HTTP edge's job
        return self._build(
            principal=session.user_ids,
            rights=all_rights().implied(),
            access_method=AccessMethod.SESSION_TOKEN,
            credential_id=session.id,
            expires_at=session.expires_at,
            user=user,
        )

    async def _load_user(self, user_ids: EntityIdentifiers) -> User:
        user = await self.store.get_entity(user_ids)
        if not isinstance(user, User):
            logger.warning(f"User {user_ids.id} of credential not found")
            raise InvalidAuthorizationError("Invalid authorization")
        return user

    def _build(
        self,
        principal: EntityIdentifiers,
        rights: Rights,
        access_method: AccessMethod,
        credential_id: str,
        expires_at: Optional[datetime],
        user: Optional[User],
    ) -> AuthInfo:
        if user is None:
            return AuthInfo(
                principal=principal,
                rights=rights,
                access_method=access_method,
                credential_id=credential_id,
                expires_at=expires_at,
            )

        settings = self.settings.current
        universal = Rights()
        is_admin = user.admin and user.state == State.APPROVED
        if is_admin:
            admin_rights = all_rights() if settings.admin_rights.all else all_admin_rights()
            universal = admin_rights.implied().intersect(rights)

        restriction = apply_user_state(
            user.state,
            rights,
            universal,
            state_description=user.state_description,
            primary_email_validated_at=user.primary_email_address_validated_at,
            require_validated_email=settings.user_registration.contact_info_validation.required,
        )
        warnings: List[str] = list(restriction.warnings)
        for warning in warnings:
            logger.info(f"Credential {credential_id} of user {user.ids.id}: {warning}")

        return AuthInfo(
            principal=principal,
            rights=restriction.rights,
            universal_rights=restriction.universal_rights,
            access_method=access_method,
            is_admin=is_admin,
            credential_id=credential_id,
            expires_at=expires_at,
            user_state=user.state.value,
            state_description=user.state_description,
            state_restricted=restriction.restricted,
            warnings=tuple(warnings),
        )
