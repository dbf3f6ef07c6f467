"""Password requirements."""

import string
from typing import List, Optional

from ....config.settings import PasswordRequirements
from ....core.exceptions.domain import WeakPasswordError

COMMON_PASSWORDS = frozenset({
    "123456", "12345678", "123456789", "1234567890", "password", "password1",
    "password123", "qwerty", "qwerty123", "abc123", "111111", "letmein",
    "welcome", "iloveyou", "admin", "admin123", "monkey", "dragon",
    "football", "baseball", "sunshine", "princess", "trustno1", "passw0rd",
})


def password_violations(
    password: str,
    requirements: PasswordRequirements,
    user_id: Optional[str] = None,
) -> List[str]:
    """Names of the requirements a password violates."""
    violations = []
    if len(password) < requirements.min_length:
        violations.append("min_length")
    if len(password) > requirements.max_length:
        violations.append("max_length")
    if sum(1 for c in password if c.isupper()) < requirements.min_uppercase:
        violations.append("min_uppercase")
    if sum(1 for c in password if c.isdigit()) < requirements.min_digits:
        violations.append("min_digits")
    if sum(1 for c in password if c in string.punctuation or c.isspace()) < requirements.min_special:
        violations.append("min_special")
    if requirements.reject_user_id and user_id and user_id.lower() in password.lower():
        violations.append("contains_user_id")
    if requirements.reject_common and password.lower() in COMMON_PASSWORDS:
        violations.append("common_password")
    return violations


def check_password(
    password: Optional[str],
    requirements: PasswordRequirements,
    user_id: Optional[str] = None,
) -> None:
    """Raise WeakPasswordError when the password violates a requirement."""
    violations = password_violations(password or "", requirements, user_id)
    if violations:
        raise WeakPasswordError(
            "Password does not meet the requirements",
            details={"violations": violations},
        )
