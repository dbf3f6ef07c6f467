"""Infrastructure exceptions for stores, caches and deadlines."""

from .base import ErrorCategory, IdentityServerError


class StoreError(IdentityServerError):
    """Raised when the store fails for reasons other than not found or conflict."""
    category = ErrorCategory.INTERNAL
    default_code = "store_error"


class TransactionError(StoreError):
    """Raised when a transaction cannot be started or committed."""
    default_code = "transaction_error"


class CacheError(IdentityServerError):
    """Raised when the cache cannot be reached.

    Callers of the membership cache log and swallow this error.
    """
    category = ErrorCategory.INTERNAL
    default_code = "cache_error"


class DeadlineExceededError(IdentityServerError):
    """Raised when a request exceeds its deadline."""
    category = ErrorCategory.DEADLINE_EXCEEDED
    default_code = "deadline_exceeded"
