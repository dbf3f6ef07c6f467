"""User registry.

Registration, profile updates, passwords and the user lifecycle. Delete,
restore and purge follow the generic entity registry; registration adds
the blacklist, invitation, password and admin approval policies.
"""

import copy
import logging
from typing import Iterable, List, Optional, Tuple

from ....config.constants import TOKEN_SECRET_BYTES
from ....config.settings import SettingsHolder
from ....core.exceptions.auth import AdminRequiredError
from ....core.exceptions.base import IdentityServerError
from ....core.exceptions.domain import (
    BlacklistedIDError,
    EntityNotFoundError,
    IncorrectPasswordError,
    InvalidUpdateError,
    InvitationRequiredError,
    RegistrationDisabledError,
    TemporaryPasswordStillValidError,
)
from ....core.value_objects.identifiers import EntityIdentifiers, EntityKind, validate_email
from ....utils.datetime import is_expired, utc_now
from ....utils.field_mask import normalize_paths
from ....utils.pagination import PageRequest
from ....utils.secrets import SecretHasher, generate_secret
from ...events.entities.protocols import EventSink
from ...invitations.services.invitation_service import InvitationService
from ...memberships.services.rights_resolver import RightsResolver
from ...registry.entities.entity import ContactInfo, ContactMethod, ContactType, User
from ...registry.services.registry_service import EntityRegistry, apply_update
from ...rights.entities.right import Right
from ...rights.entities.state import State
from ...store.entities.protocols import IdentityStore
from ...validation.adapters.mail_queue import EmailQueue
from ...validation.entities.protocols import MailMessage
from ...validation.services.email_validation_service import EmailValidationService
from ..utils.password_policy import check_password

logger = logging.getLogger(__name__)


def without_secrets(user: User) -> User:
    result = copy.deepcopy(user)
    result.password = None
    result.temporary_password = None
    return result


class UserRegistry(EntityRegistry):
    """Registry operations for users."""

    KINDS = frozenset({EntityKind.USER})

    def __init__(
        self,
        store: IdentityStore,
        resolver: RightsResolver,
        events: EventSink,
        settings: SettingsHolder,
        validations: EmailValidationService,
        invitations: InvitationService,
        mail: EmailQueue,
        hasher: Optional[SecretHasher] = None,
    ):
        super().__init__(store, resolver, events, settings)
        self.validations = validations
        self.invitations = invitations
        self.mail = mail
        self.hasher = hasher or SecretHasher(settings.current.secret_hash_iterations)

    async def create(self, user: User, password: str, invitation_token: Optional[str] = None) -> User:
        """Register a user.

        Raises:
            RegistrationDisabledError: Registration is disabled and the caller is no admin
            BlacklistedIDError: The user ID is blacklisted
            InvalidEmailError: Malformed primary email address
            InvitationRequiredError: An invitation is required and missing
            WeakPasswordError: The password violates the requirements
            EntityAlreadyExistsError: The user ID is taken
        """
        settings = self.settings.current
        registration = settings.user_registration
        is_admin = await self.resolver.is_admin()

        if not registration.enabled and not is_admin:
            raise RegistrationDisabledError("User registration is disabled")
        if not settings.is_id_allowed(user.ids.id):
            raise BlacklistedIDError(f"ID `{user.ids.id}` is not allowed", details={"id": user.ids.id})
        primary_email = validate_email(user.primary_email_address)

        invitation = None
        if invitation_token:
            invitation = await self.invitations.check_token(invitation_token)
        elif registration.invitation.required and not is_admin:
            raise InvitationRequiredError("Registration requires an invitation")
        check_password(password, registration.password_requirements, user.ids.id)

        now = utc_now()
        user = copy.deepcopy(user)
        user.primary_email_address = primary_email
        user.created_at = user.updated_at = user.deleted_at = None
        if not is_admin:
            user.admin = False
            user.state = State.REQUESTED if registration.admin_approval.required else State.APPROVED
            user.state_description = ""
            user.primary_email_address_validated_at = None
            user.require_password_update = False
        user.password = self.hasher.hash(password)
        user.password_updated_at = now
        user.temporary_password = None
        user.temporary_password_created_at = user.temporary_password_expires_at = None
        if not any(contact.value == primary_email for contact in user.contact_info):
            user.contact_info.append(
                ContactInfo(
                    contact_type=ContactType.OTHER,
                    contact_method=ContactMethod.EMAIL,
                    value=primary_email,
                    validated_at=user.primary_email_address_validated_at,
                )
            )

        async with self.store.transaction():
            created = await self.store.create_entity(user)
            if invitation is not None:
                await self.invitations.accept(invitation, created.ids, now)

        logger.info(f"Created user {created.ids.id} in state {created.state.value}")
        await self.events.publish("user.create", (created.ids,))

        if created.primary_email_address_validated_at is None:
            try:
                await self.validations.send_validation(created.ids)
            except IdentityServerError as e:
                logger.warning(f"Could not request email validation for {created.ids.id}: {e}")
        return without_secrets(created)

    create_user = create

    async def get(self, ids: EntityIdentifiers) -> User:
        return without_secrets(await super().get(ids))

    async def list(
        self,
        kind: EntityKind = EntityKind.USER,
        collaborator: Optional[EntityIdentifiers] = None,
        page: Optional[PageRequest] = None,
        deleted: bool = False,
    ) -> Tuple[List[User], int]:
        """List every user. Admin only."""
        self._check_kind(kind)
        await self.resolver.require_admin()
        settings = self.settings.current
        request = page or PageRequest()
        limit, offset = request.bounds(settings.default_page_size, settings.max_page_size)
        users, total = await self.store.list_entities(
            EntityKind.USER, include_deleted=deleted, limit=limit, offset=offset, order=request.order,
        )
        return [without_secrets(user) for user in users], total

    async def update(self, user: User, paths: Iterable[str]) -> User:
        """Update a user through a field mask.

        A changed primary email address needs validation again, unless an
        admin sets its validation time in the same update.

        Raises:
            InvalidUpdateError: No updatable path remains
            AdminRequiredError: An admin-only field is set by a non-admin
        """
        ids = user.ids
        await self.resolver.require(ids, Right.RIGHT_USER_SETTINGS_BASIC)
        paths = normalize_paths(paths, User.UPDATABLE_FIELDS)
        if not paths:
            raise InvalidUpdateError("No updatable fields in field mask")
        admin_paths = [path for path in paths if path.split(".")[0] in User.ADMIN_FIELDS]
        is_admin = await self.resolver.is_admin()
        if admin_paths and not is_admin:
            raise AdminRequiredError("Fields can only be updated by admins", details={"fields": admin_paths})
        if "primary_email_address" in paths:
            user.primary_email_address = validate_email(user.primary_email_address)

        async with self.store.transaction():
            await self.store.lock_entity(ids)
            existing = await self.store.get_entity(ids)
            if existing is None:
                raise EntityNotFoundError(ids.kind.value, ids.id)
            updated = apply_update(existing, user, paths)
            email_changed = updated.primary_email_address != existing.primary_email_address
            if email_changed and "primary_email_address_validated_at" not in paths:
                updated.primary_email_address_validated_at = None
            updated = await self.store.update_entity(updated)

        logger.info(f"Updated user {ids.id}: {', '.join(paths)}")
        await self.events.publish("user.update", (ids,), {"field_mask": paths})
        if email_changed and updated.primary_email_address_validated_at is None:
            try:
                await self.validations.send_validation(ids, updated.primary_email_address)
            except IdentityServerError as e:
                logger.warning(f"Could not request email validation for {ids.id}: {e}")
        return without_secrets(updated)

    async def delete(self, ids: EntityIdentifiers) -> None:
        await super().delete(ids)
        await self.store.delete_all_user_sessions(ids)

    async def update_password(
        self,
        ids: EntityIdentifiers,
        old_password: str,
        new_password: str,
        revoke_all_sessions: bool = False,
    ) -> None:
        """Change the password of a user.

        A valid temporary password is accepted as the old password.

        Raises:
            IncorrectPasswordError: The old password does not match
            WeakPasswordError: The new password violates the requirements
        """
        await self.resolver.require(ids, Right.RIGHT_USER_SETTINGS_BASIC)
        requirements = self.settings.current.user_registration.password_requirements

        async with self.store.transaction():
            await self.store.lock_entity(ids)
            user = await self.store.get_entity(ids)
            if not isinstance(user, User):
                raise EntityNotFoundError(ids.kind.value, ids.id)
            valid = self.hasher.verify(old_password, user.password)
            if not valid and user.temporary_password and not is_expired(user.temporary_password_expires_at):
                valid = self.hasher.verify(old_password, user.temporary_password)
            if not valid:
                raise IncorrectPasswordError("Old password is incorrect")
            check_password(new_password, requirements, ids.id)

            user.password = self.hasher.hash(new_password)
            user.password_updated_at = utc_now()
            user.require_password_update = False
            user.temporary_password = None
            user.temporary_password_created_at = user.temporary_password_expires_at = None
            await self.store.update_entity(user)
            if revoke_all_sessions:
                await self.store.delete_all_user_sessions(ids)

        logger.info(f"Updated password of user {ids.id}")
        await self.events.publish("user.update-password", (ids,), {"revoke_all_sessions": revoke_all_sessions})

    async def create_temporary_password(self, ids: EntityIdentifiers) -> None:
        """Mail a temporary password to a user who forgot theirs.

        Raises:
            TemporaryPasswordStillValidError: An unexpired temporary password exists
        """
        settings = self.settings.current
        temporary = generate_secret(TOKEN_SECRET_BYTES)[:16]

        async with self.store.transaction():
            await self.store.lock_entity(ids)
            user = await self.store.get_entity(ids)
            if not isinstance(user, User):
                raise EntityNotFoundError(ids.kind.value, ids.id)
            if user.temporary_password and not is_expired(user.temporary_password_expires_at):
                raise TemporaryPasswordStillValidError(
                    "A temporary password was sent already",
                    details={"expires_at": user.temporary_password_expires_at.isoformat()
                             if user.temporary_password_expires_at else None},
                )
            now = utc_now()
            user.temporary_password = self.hasher.hash(temporary)
            user.temporary_password_created_at = now
            user.temporary_password_expires_at = now + settings.temporary_password_ttl
            await self.store.update_entity(user)

        self.mail.enqueue(
            MailMessage(
                recipient=user.primary_email_address,
                subject="Your temporary password",
                template="temporary_password",
                data={"user_id": ids.id, "password": temporary, "network_name": settings.email.network_name},
                entity_ids=ids,
            )
        )
        logger.info(f"Created temporary password for user {ids.id}")
        await self.events.publish("user.create-temporary-password", (ids,))
