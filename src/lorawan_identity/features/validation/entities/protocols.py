"""Protocol interfaces for email validation storage and mail delivery."""

from abc import abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Optional, Protocol, runtime_checkable

from ....core.value_objects.identifiers import EntityIdentifiers
from .email_validation import EmailValidation


@runtime_checkable
class EmailValidationStore(Protocol):
    """Protocol for email validation persistence."""

    @abstractmethod
    async def create_email_validation(self, validation: EmailValidation) -> EmailValidation:
        """Persist a validation.

        Raises:
            ValidationsAlreadySentError: An active validation exists for the
                entity and address
        """
        ...

    @abstractmethod
    async def get_email_validation(self, validation_id: str) -> Optional[EmailValidation]:
        """Find a validation by ID, consumed and expired ones included."""
        ...

    @abstractmethod
    async def find_active_email_validation(
        self, entity_ids: EntityIdentifiers, address: str, now: datetime
    ) -> Optional[EmailValidation]:
        """Find the active validation of an entity and address."""
        ...

    @abstractmethod
    async def refresh_email_validation(self, validation: EmailValidation) -> EmailValidation:
        """Store a new token hash, expiry and update time."""
        ...

    @abstractmethod
    async def expire_email_validation(
        self, validation: EmailValidation, validated_at: datetime
    ) -> None:
        """Consume a validation and mark the address validated on the entity."""
        ...


@dataclass
class MailMessage:
    """An email to deliver."""
    recipient: str
    subject: str
    template: str
    data: Dict[str, str] = field(default_factory=dict)
    entity_ids: Optional[EntityIdentifiers] = None


@runtime_checkable
class MailSender(Protocol):
    """Protocol for the external mail collaborator."""

    @abstractmethod
    async def send(self, message: MailMessage) -> None:
        """Deliver one message."""
        ...
