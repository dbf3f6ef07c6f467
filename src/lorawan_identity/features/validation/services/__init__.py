"""Validation services."""

from .email_validation_service import EmailValidationService, address_to_validate

__all__ = ["EmailValidationService", "address_to_validate"]
