"""Request models of the user registry API."""

from .requests import CreateUserRequest, UpdatePasswordRequest

__all__ = ["CreateUserRequest", "UpdatePasswordRequest"]
