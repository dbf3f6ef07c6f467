"""Email validation protocol.

A validation is a single-use token mailed to an address. At most one
active validation exists per entity and address: a request inside the
retry interval is refused, a later request refreshes the active validation
with a new token and expiry, and only when none is active a new one is
created. Tokens are mailed in the background and never returned.
"""

import logging
from typing import Optional

from ....config.constants import VALIDATION_TOKEN_BYTES
from ....config.settings import SettingsHolder
from ....core.exceptions.domain import (
    EntityNotFoundError,
    NoValidationNeededError,
    ValidationAlreadyUsedError,
    ValidationExpiredError,
    ValidationNotFoundError,
    ValidationRequestForbiddenError,
    ValidationsAlreadySentError,
)
from ....core.value_objects.identifiers import EntityIdentifiers
from ....utils.datetime import ensure_utc, utc_now
from ....utils.secrets import SecretHasher, generate_secret, generate_token_id
from ...events.entities.protocols import EventSink
from ...memberships.services.rights_resolver import RightsResolver
from ...registry.entities.entity import ContactMethod, Entity, User
from ...registry.services.registry_service import SETTINGS_BASIC_RIGHT
from ...store.entities.protocols import IdentityStore
from ..adapters.mail_queue import EmailQueue
from ..entities.email_validation import EmailValidation
from ..entities.protocols import MailMessage

logger = logging.getLogger(__name__)


def address_to_validate(entity: Entity) -> Optional[str]:
    """The email address of an entity that still needs validation.

    The primary email address of a user comes first, then email contact
    info in order.
    """
    if isinstance(entity, User) and entity.primary_email_address and entity.primary_email_address_validated_at is None:
        return entity.primary_email_address
    for contact in entity.contact_info:
        if contact.contact_method == ContactMethod.EMAIL and contact.value and contact.validated_at is None:
            return contact.value
    return None


class EmailValidationService:
    """RequestValidation and Validate."""

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

    async def request_validation(self, entity: EntityIdentifiers) -> EmailValidation:
        """Request a validation of the unvalidated email address of an entity.

        Raises:
            PermissionDeniedError: The caller lacks the basic settings right
            NoValidationNeededError: Every email address is validated
            ValidationRequestForbiddenError: A validation was sent within the retry interval
        """
        await self.resolver.require(entity, SETTINGS_BASIC_RIGHT[entity.kind])
        return await self.send_validation(entity)

    async def send_validation(self, entity: EntityIdentifiers, address: Optional[str] = None) -> EmailValidation:
        """Create or refresh a validation and mail its token, without rights checks."""
        config = self.settings.current.user_registration.contact_info_validation
        token = generate_secret(VALIDATION_TOKEN_BYTES)

        async with self.store.transaction():
            await self.store.lock_entity(entity)
            record = await self.store.get_entity(entity)
            if record is None:
                raise EntityNotFoundError(entity.kind.value, entity.id)
            address = address or address_to_validate(record)
            if address is None:
                raise NoValidationNeededError(
                    "No email address needs validation",
                    details={"entity": entity.unique_id},
                )

            now = utc_now()
            active = await self.store.find_active_email_validation(entity, address, now)
            if active is not None:
                if ensure_utc(active.updated_at or active.created_at) > now - config.retry_interval:
                    raise ValidationRequestForbiddenError(
                        f"A validation was sent to {address} recently",
                        retry_interval=config.retry_interval,
                    )
                active.token_hash = self.hasher.hash(token)
                active.expires_at = now + config.token_ttl
                active.updated_at = now
                validation = await self.store.refresh_email_validation(active)
                action = "refresh"
            else:
                try:
                    validation = await self.store.create_email_validation(
                        EmailValidation(
                            id=generate_token_id(),
                            entity_ids=entity,
                            address=address,
                            token_hash=self.hasher.hash(token),
                            expires_at=now + config.token_ttl,
                            created_at=now,
                            updated_at=now,
                        )
                    )
                except ValidationsAlreadySentError:
                    raise ValidationRequestForbiddenError(
                        f"A validation was sent to {address} recently",
                        retry_interval=config.retry_interval,
                    )
                action = "create"

        self.mail.enqueue(
            MailMessage(
                recipient=address,
                subject="Please validate your email address",
                template="validate",
                data={
                    "id": validation.id,
                    "token": token,
                    "network_name": self.settings.current.email.network_name,
                },
                entity_ids=entity,
            )
        )
        logger.info(f"Email validation {validation.id} for {entity}: {action}")
        await self.events.publish(f"{entity.kind.value}.email-validation.{action}", (entity,), {"id": validation.id})
        return validation.without_token()

    async def validate(self, validation_id: str, token: str) -> None:
        """Consume a validation and mark its address validated.

        Raises:
            ValidationNotFoundError: Unknown validation or wrong token
            ValidationAlreadyUsedError: The validation was consumed
            ValidationExpiredError: The validation expired
        """
        async with self.store.transaction():
            validation = await self.store.get_email_validation(validation_id)
            if validation is None or not self.hasher.verify(token, validation.token_hash):
                logger.warning(f"Validation attempt with unknown id or wrong token for {validation_id}")
                raise ValidationNotFoundError(
                    f"Validation `{validation_id}` not found",
                    details={"id": validation_id},
                )
            if validation.used:
                raise ValidationAlreadyUsedError(
                    f"Validation `{validation_id}` was used already",
                    details={"id": validation_id},
                )
            now = utc_now()
            if validation.expires_at is None or ensure_utc(validation.expires_at) <= now:
                raise ValidationExpiredError(
                    f"Validation `{validation_id}` expired",
                    details={"id": validation_id},
                )
            await self.store.lock_entity(validation.entity_ids)
            await self.store.expire_email_validation(validation, now)

        await self.resolver.invalidate()
        logger.info(f"Validated {validation.address} of {validation.entity_ids}")
        await self.events.publish(
            f"{validation.entity_ids.kind.value}.email-validation.validate",
            (validation.entity_ids,),
            {"id": validation_id},
        )
