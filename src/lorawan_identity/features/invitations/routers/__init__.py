from .invitation_router import router as invitation_router

__all__ = ["invitation_router"]
