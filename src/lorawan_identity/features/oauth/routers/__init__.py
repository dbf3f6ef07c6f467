from .oauth_router import router as oauth_router

__all__ = ["oauth_router"]
