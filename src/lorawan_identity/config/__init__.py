"""Configuration and logging of the identity server."""

from .settings import (
    IdentityServerSettings,
    SettingsHolder,
    get_settings,
    UserRegistrationSettings,
    PasswordRequirements,
    ContactInfoValidationSettings,
    InvitationSettings,
)
from .logging_config import LoggingConfig, setup_logging

__all__ = [
    "IdentityServerSettings",
    "SettingsHolder",
    "get_settings",
    "UserRegistrationSettings",
    "PasswordRequirements",
    "ContactInfoValidationSettings",
    "InvitationSettings",
    "LoggingConfig",
    "setup_logging",
]
