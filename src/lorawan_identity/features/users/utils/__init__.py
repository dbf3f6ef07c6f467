"""User utilities."""

from .password_policy import COMMON_PASSWORDS, check_password, password_violations

__all__ = ["COMMON_PASSWORDS", "check_password", "password_violations"]
