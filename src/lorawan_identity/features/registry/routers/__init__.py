"""Entity registry routers."""

from .registry_router import build_registry_router

__all__ = ["build_registry_router"]
