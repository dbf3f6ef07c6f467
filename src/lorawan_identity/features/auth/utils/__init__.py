"""Auth utilities."""

from .tokens import BearerToken, TOKEN_KINDS, format_token, parse_token, split_authorization

__all__ = [
    "BearerToken",
    "TOKEN_KINDS",
    "format_token",
    "parse_token",
    "split_authorization",
]
