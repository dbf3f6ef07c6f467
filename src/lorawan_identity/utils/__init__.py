"""Utilities shared by the identity server features."""

from .datetime import utc_now, ensure_utc, is_expired
from .field_mask import apply_field_mask, normalize_paths
from .pagination import Page, PageRequest
from .secrets import SecretHasher, generate_secret, generate_token_id

__all__ = [
    "utc_now",
    "ensure_utc",
    "is_expired",
    "apply_field_mask",
    "normalize_paths",
    "Page",
    "PageRequest",
    "SecretHasher",
    "generate_secret",
    "generate_token_id",
]
