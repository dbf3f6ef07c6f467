"""Users feature for lorawan-identity.

- services/: the user registry
- utils/: password requirements
"""

from .services import UserRegistry, without_secrets
from .utils import check_password, password_violations

__all__ = [
    "UserRegistry",
    "without_secrets",
    "check_password",
    "password_violations",
]
