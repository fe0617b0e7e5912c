"""
FastAPI application for the school permission service.

Routes:
- GET    /role-permissions                     : roles and permissions of the caller's school
- PUT    /role-permissions/{role}/permissions  : replace a role's permissions
- POST   /role-permissions/custom              : create a custom role
- PUT    /role-permissions/enabled             : replace the enabled standard roles
- DELETE /role-permissions/custom/{role}       : delete a custom role
- GET    /health                               : database and cache health

All role-permission routes are also served under APP_API_PREFIX when set.
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from config.database import get_database_settings
from config.settings import Settings, get_settings, validate_startup_security
from database.async_engine import (
    close_database,
    get_async_engine,
    get_session_factory,
    init_database,
)
from middleware.correlation import CorrelationIdMiddleware, configure_correlation_logging
from rbac.service import PermissionService, create_permission_service
from security.api_errors import register_exception_handlers
from web.routers import health_router, role_permissions_router

logger = logging.getLogger(__name__)


async def startup_permission_service(app: FastAPI, settings: Settings) -> None:
    """Connect the database and cache and publish the PermissionService."""
    db_settings = get_database_settings()
    engine = get_async_engine(db_settings)

    # PostgreSQL schemas are managed by migrations
    if db_settings.is_sqlite:
        await init_database(engine)

    app.state.permission_service = await create_permission_service(
        get_session_factory(engine), settings
    )
    logger.info(
        f"Permission service started ({db_settings.driver}, cache {settings.redis.url})"
    )


async def shutdown_permission_service(app: FastAPI) -> None:
    service: Optional[PermissionService] = getattr(app.state, "permission_service", None)
    if service is not None:
        await service.close()
    await close_database()
    logger.info("Permission service stopped")


def create_app(
    settings: Optional[Settings] = None,
    permission_service: Optional[PermissionService] = None,
) -> FastAPI:
    """
    Build the application.

    Args:
        settings: Application settings. Loaded from the environment if omitted.
        permission_service: Ready-made service. When given, the caller owns its
            lifecycle and no database or cache connection is opened at startup.
    """
    settings = settings or get_settings()

    configure_correlation_logging(settings.log_format, settings.log_level)

    validate_startup_security(settings, exit_on_failure=True)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if permission_service is None:
            await startup_permission_service(app, settings)
            try:
                yield
            finally:
                await shutdown_permission_service(app)
        else:
            yield

    app = FastAPI(
        title=settings.name,
        version=settings.version,
        debug=settings.debug,
        lifespan=lifespan,
    )

    if permission_service is not None:
        app.state.permission_service = permission_service

    # Gates read settings through Depends(get_settings)
    app.dependency_overrides[get_settings] = lambda: settings

    app.add_middleware(CorrelationIdMiddleware)
    register_exception_handlers(app)

    app.include_router(role_permissions_router)
    if settings.api_prefix:
        app.include_router(role_permissions_router, prefix=settings.api_prefix)
    app.include_router(health_router)

    return app


app = create_app()
