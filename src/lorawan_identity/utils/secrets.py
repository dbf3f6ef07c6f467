"""Secret generation and hashing utilities.

Credential secrets, validation tokens and passwords are stored as salted
PBKDF2-SHA256 hashes. Hashes are self-describing so the iteration count
can be raised without invalidating stored credentials.
"""

import base64
import os
import secrets as _random
from typing import Optional

from cryptography.exceptions import InvalidKey
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC


HASH_SCHEME = "PBKDF2"
HASH_ALGORITHM = "sha256"
SALT_BYTES = 16
KEY_LENGTH = 32
DEFAULT_ITERATIONS = 20000


def generate_token_id(nbytes: int = 16) -> str:
    """Generate a random identifier that is safe inside a dotted token."""
    return base64.b32encode(os.urandom(nbytes)).decode("ascii").rstrip("=")


def generate_secret(nbytes: int = 32) -> str:
    """Generate a random URL-safe secret without dots."""
    return base64.b32encode(_random.token_bytes(nbytes)).decode("ascii").rstrip("=")


def _b64encode(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).decode("ascii").rstrip("=")


def _b64decode(data: str) -> bytes:
    return base64.urlsafe_b64decode(data + "=" * (-len(data) % 4))


def _kdf(salt: bytes, iterations: int) -> PBKDF2HMAC:
    return PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=KEY_LENGTH,
        salt=salt,
        iterations=iterations,
    )


class SecretHasher:
    """Hash and verify secrets with salted PBKDF2-SHA256."""

    def __init__(self, iterations: int = DEFAULT_ITERATIONS):
        self.iterations = iterations

    def hash(self, secret: str) -> str:
        """Hash a secret into the ``PBKDF2$sha256$<iterations>$<salt>$<key>`` form."""
        salt = os.urandom(SALT_BYTES)
        key = _kdf(salt, self.iterations).derive(secret.encode("utf-8"))
        return "$".join(
            (HASH_SCHEME, HASH_ALGORITHM, str(self.iterations), _b64encode(salt), _b64encode(key))
        )

    def verify(self, secret: Optional[str], hashed: Optional[str]) -> bool:
        """Verify a secret against a stored hash in constant time.

        Malformed hashes never verify.
        """
        if not secret or not hashed:
            return False
        try:
            scheme, algorithm, iterations, salt, key = hashed.split("$")
            if scheme != HASH_SCHEME or algorithm != HASH_ALGORITHM:
                return False
            _kdf(_b64decode(salt), int(iterations)).verify(
                secret.encode("utf-8"), _b64decode(key)
            )
        except (ValueError, InvalidKey):
            return False
        return True
