"""Entity access routers."""

from .access_router import build_access_router

__all__ = ["build_access_router"]
