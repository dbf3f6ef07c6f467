"""FastAPI application of the identity server.

``create_app`` wires the routers, the request scope middleware and the
exception handlers around a service container. Without a container the
lifespan builds one from the settings, on PostgreSQL when a database DSN
is configured.
"""

import logging
import os
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI

from ..__version__ import __version__
from ..config.logging_config import setup_logging
from ..config.settings import SettingsHolder
from ..container import ServiceContainer, create_container
from ..core.value_objects.identifiers import EntityKind
from ..features.auth.routers import auth_router
from ..features.invitations.routers import invitation_router
from ..features.memberships.routers import build_access_router
from ..features.oauth.routers import oauth_router
from ..features.registry.routers import build_registry_router
from ..features.users.routers import user_router
from ..features.validation.routers import validation_router
from .exception_handlers import register_exception_handlers
from .middleware import RequestScopeMiddleware

logger = logging.getLogger(__name__)


REGISTRY_KINDS = (
    EntityKind.APPLICATION,
    EntityKind.CLIENT,
    EntityKind.GATEWAY,
    EntityKind.ORGANIZATION,
)

ACCESS_KINDS = REGISTRY_KINDS + (EntityKind.USER,)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    container = getattr(app.state, "container", None)
    if container is None:
        container = await create_container(app.state.settings)
        app.state.container = container
    await container.startup()
    try:
        yield
    finally:
        await container.shutdown()


def create_app(
    container: Optional[ServiceContainer] = None,
    settings: Optional[SettingsHolder] = None,
) -> FastAPI:
    """Create the identity server API.

    Args:
        container: Services to serve; built on startup when omitted
        settings: Settings holder, taken from the container when omitted

    Returns:
        Configured FastAPI application
    """
    if settings is None:
        settings = container.settings if container is not None else SettingsHolder()
    current = settings.current

    app = FastAPI(
        title="LoRaWAN Identity Server",
        version=__version__,
        description="Entity registry and rights resolution of a LoRaWAN identity server",
        lifespan=lifespan,
    )
    app.state.settings = settings
    if container is not None:
        app.state.container = container

    app.add_middleware(RequestScopeMiddleware)
    register_exception_handlers(app, is_production=current.is_production)

    app.include_router(auth_router)
    app.include_router(user_router)
    app.include_router(oauth_router)
    for kind in REGISTRY_KINDS:
        app.include_router(build_registry_router(kind))
    for kind in ACCESS_KINDS:
        app.include_router(build_access_router(kind))
    app.include_router(validation_router)
    app.include_router(invitation_router)

    logger.info(f"Created {current.app_name} API {__version__} ({current.environment})")
    return app


def run() -> None:
    """Run the application."""
    setup_logging()
    host = os.getenv("HOST", "0.0.0.0")
    port = int(os.getenv("PORT", "1885"))
    logger.info(f"Starting identity server on {host}:{port}")
    uvicorn.run(create_app(), host=host, port=port, access_log=True)


if __name__ == "__main__":
    run()
