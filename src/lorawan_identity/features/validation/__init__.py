"""Email validation feature for lorawan-identity.

- entities/: validations, mail messages and their protocols
- adapters/: the background mail queue
- services/: requesting and consuming validations
"""

from .entities import EmailValidation, EmailValidationStore, MailMessage, MailSender

__all__ = [
    "EmailValidation",
    "EmailValidationStore",
    "MailMessage",
    "MailSender",
]
