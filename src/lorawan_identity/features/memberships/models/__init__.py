"""Request models of the entity access API."""

from .requests import CreateAPIKeyRequest, SetCollaboratorRequest, UpdateAPIKeyRequest

__all__ = ["CreateAPIKeyRequest", "SetCollaboratorRequest", "UpdateAPIKeyRequest"]
