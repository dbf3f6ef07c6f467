"""OAuth authorization registry.

Users list and revoke the authorizations they granted to OAuth clients and
the access tokens issued under them. Revoking an authorization revokes its
tokens; both take effect on the next request that presents them.
"""

import logging
from typing import List, Optional, Tuple

from ....config.settings import SettingsHolder
from ....core.exceptions.domain import AuthorizationNotFoundError
from ....core.value_objects.identifiers import EntityIdentifiers
from ....utils.pagination import PageRequest
from ...auth.entities.credentials import OAuthAccessToken, OAuthAuthorization
from ...events.entities.protocols import EventSink
from ...memberships.services.rights_resolver import RightsResolver
from ...rights.entities.right import Right
from ...store.entities.protocols import IdentityStore

logger = logging.getLogger(__name__)


class OAuthAuthorizationRegistry:
    """Authorizations and access tokens of a user."""

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

    def _bounds(self, page: Optional[PageRequest]) -> Tuple[int, int]:
        settings = self.settings.current
        return (page or PageRequest()).bounds(settings.default_page_size, settings.max_page_size)

    async def list_authorizations(
        self, user_ids: EntityIdentifiers, page: Optional[PageRequest] = None
    ) -> Tuple[List[OAuthAuthorization], int]:
        await self.resolver.require(user_ids, Right.RIGHT_USER_AUTHORIZED_CLIENTS)
        limit, offset = self._bounds(page)
        return await self.store.list_authorizations(user_ids, limit=limit, offset=offset)

    async def list_tokens(
        self,
        user_ids: EntityIdentifiers,
        client_ids: EntityIdentifiers,
        page: Optional[PageRequest] = None,
    ) -> Tuple[List[OAuthAccessToken], int]:
        await self.resolver.require(user_ids, Right.RIGHT_USER_AUTHORIZED_CLIENTS)
        limit, offset = self._bounds(page)
        return await self.store.list_access_tokens(user_ids, client_ids, limit=limit, offset=offset)

    async def delete_authorization(self, user_ids: EntityIdentifiers, client_ids: EntityIdentifiers) -> None:
        """Revoke an authorization with every access token issued under it.

        Raises:
            AuthorizationNotFoundError: The user never authorized the client
        """
        await self.resolver.require(user_ids, Right.RIGHT_USER_AUTHORIZED_CLIENTS)
        async with self.store.transaction():
            if await self.store.get_authorization(user_ids, client_ids) is None:
                raise AuthorizationNotFoundError(
                    f"No authorization of {client_ids} by {user_ids}",
                    details={"user": user_ids.unique_id, "client": client_ids.unique_id},
                )
            await self.store.delete_authorization(user_ids, client_ids)
        logger.info(f"Deleted authorization of {client_ids} by {user_ids}")
        await self.events.publish("oauth.authorization.delete", (user_ids, client_ids))

    async def delete_token(
        self, user_ids: EntityIdentifiers, client_ids: EntityIdentifiers, token_id: str
    ) -> None:
        """Revoke one access token.

        Raises:
            AuthorizationNotFoundError: The token does not belong to the user and client
        """
        await self.resolver.require(user_ids, Right.RIGHT_USER_AUTHORIZED_CLIENTS)
        token = await self.store.get_access_token(token_id)
        if token is None or token.user_ids != user_ids or token.client_ids != client_ids:
            raise AuthorizationNotFoundError(
                f"Access token `{token_id}` not found",
                details={"id": token_id},
            )
        await self.store.delete_access_token(token_id)
        logger.info(f"Deleted access token {token_id} of {client_ids} for {user_ids}")
        await self.events.publish("oauth.token.delete", (user_ids, client_ids), {"id": token_id})
