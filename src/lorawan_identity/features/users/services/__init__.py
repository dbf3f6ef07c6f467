"""User services."""

from .user_registry import UserRegistry, without_secrets

__all__ = ["UserRegistry", "without_secrets"]
