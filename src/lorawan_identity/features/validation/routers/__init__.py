from .validation_router import router as validation_router

__all__ = ["validation_router"]
