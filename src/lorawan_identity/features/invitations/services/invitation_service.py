"""Registration invitations.

Holders of ``RIGHT_SEND_INVITES`` invite email addresses to register. The
invitation token is ``<id>.<secret>``; it is mailed to the invitee and
accepted once, when the invited user registers.
"""

import logging
from datetime import datetime
from typing import List, Optional, Tuple

from ....config.constants import TOKEN_ID_BYTES, TOKEN_SECRET_BYTES
from ....config.settings import SettingsHolder
from ....core.exceptions.domain import (
    InvitationExpiredError,
    InvitationNotFoundError,
    InvitationUsedError,
)
from ....core.value_objects.identifiers import EntityIdentifiers, validate_email
from ....utils.datetime import is_expired, utc_now
from ....utils.pagination import PageRequest
from ....utils.secrets import SecretHasher, generate_secret, generate_token_id
from ...events.entities.protocols import EventSink
from ...memberships.services.rights_resolver import RightsResolver
from ...rights.entities.right import Right
from ...store.entities.protocols import IdentityStore
from ...validation.adapters.mail_queue import EmailQueue
from ...validation.entities.protocols import MailMessage
from ..entities.invitation import Invitation

logger = logging.getLogger(__name__)


def format_invitation_token(invitation_id: str, secret: str) -> str:
    return f"{invitation_id}.{secret}"


class InvitationService:
    """Send, list, delete and redeem invitations."""

    def __init__(
        self,
        store: IdentityStore,
        resolver: RightsResolver,
        mail: EmailQueue,
        events: EventSink,
        settings: SettingsHolder,
        hasher: Optional[SecretHasher] = None,
    ):
        self.store = store
        self.resolver = resolver
        self.mail = mail
        self.events = events
        self.settings = settings
        self.hasher = hasher or SecretHasher(settings.current.secret_hash_iterations)

    async def send_invitation(self, email: str) -> Invitation:
        """Invite an email address to register.

        Raises:
            PermissionDeniedError: The caller cannot send invites
            InvalidEmailError: Malformed address
            InvitationAlreadySentError: A pending invitation exists for the address
        """
        auth_info = await self.resolver.require_universal(Right.RIGHT_SEND_INVITES)
        email = validate_email(email)
        settings = self.settings.current
        invitation_id = generate_token_id(TOKEN_ID_BYTES)
        secret = generate_secret(TOKEN_SECRET_BYTES)
        now = utc_now()

        invitation = await self.store.create_invitation(
            Invitation(
                id=invitation_id,
                email=email,
                token_hash=self.hasher.hash(secret),
                expires_at=now + settings.user_registration.invitation.token_ttl,
                created_at=now,
            )
        )
        self.mail.enqueue(
            MailMessage(
                recipient=email,
                subject=f"You have been invited to join {settings.email.network_name}",
                template="invitation",
                data={
                    "token": format_invitation_token(invitation_id, secret),
                    "network_name": settings.email.network_name,
                    "sender": auth_info.principal.id if auth_info.principal else "",
                },
            )
        )
        logger.info(f"Sent invitation {invitation_id} to {email}")
        await self.events.publish("invitation.create", (), {"id": invitation_id})
        return invitation

    async def list_invitations(self, page: Optional[PageRequest] = None) -> Tuple[List[Invitation], int]:
        await self.resolver.require_universal(Right.RIGHT_SEND_INVITES)
        settings = self.settings.current
        limit, offset = (page or PageRequest()).bounds(settings.default_page_size, settings.max_page_size)
        return await self.store.list_invitations(limit=limit, offset=offset)

    async def delete_invitation(self, invitation_id: str) -> None:
        await self.resolver.require_universal(Right.RIGHT_SEND_INVITES)
        if await self.store.get_invitation(invitation_id) is None:
            raise InvitationNotFoundError(
                f"Invitation `{invitation_id}` not found",
                details={"id": invitation_id},
            )
        await self.store.delete_invitation(invitation_id)
        logger.info(f"Deleted invitation {invitation_id}")
        await self.events.publish("invitation.delete", (), {"id": invitation_id})

    async def check_token(self, token: str) -> Invitation:
        """Find the pending invitation of a token.

        Raises:
            InvitationNotFoundError: Unknown invitation or wrong secret
            InvitationUsedError: The invitation was accepted already
            InvitationExpiredError: The invitation expired
        """
        invitation_id, _, secret = (token or "").partition(".")
        invitation = await self.store.get_invitation(invitation_id) if invitation_id else None
        if invitation is None or not self.hasher.verify(secret, invitation.token_hash):
            logger.warning("Registration with unknown invitation token")
            raise InvitationNotFoundError("Invitation not found")
        if invitation.accepted_by is not None:
            raise InvitationUsedError(
                f"Invitation `{invitation.id}` was used already",
                details={"id": invitation.id},
            )
        if is_expired(invitation.expires_at):
            raise InvitationExpiredError(
                f"Invitation `{invitation.id}` expired",
                details={"id": invitation.id},
            )
        return invitation

    async def accept(self, invitation: Invitation, user_ids: EntityIdentifiers, accepted_at: Optional[datetime] = None) -> None:
        """Mark an invitation accepted by a new user; runs inside the registration transaction."""
        await self.store.accept_invitation(invitation.id, user_ids, accepted_at or utc_now())
