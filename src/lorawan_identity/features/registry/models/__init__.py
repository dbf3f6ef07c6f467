"""Request models of the entity registry API."""

from .requests import CreateEntityRequest, UpdateEntityRequest

__all__ = ["CreateEntityRequest", "UpdateEntityRequest"]
