"""Validation entities."""

from .email_validation import EmailValidation
from .protocols import EmailValidationStore, MailMessage, MailSender

__all__ = [
    "EmailValidation",
    "EmailValidationStore",
    "MailMessage",
    "MailSender",
]
