"""
FastAPI application entry point.
Configures middleware, routers, and lifecycle events.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from dsportal.core.config import get_settings
from dsportal.core.logging import configure_logging, get_logger
from dsportal.db.session import close_db, init_db
from dsportal.modules.assets.router import router as assets_router
from dsportal.modules.connectors.edc.health import check_control_plane_health
from dsportal.modules.connectors.factory import build_gateways
from dsportal.modules.contracts.router import router as contracts_router
from dsportal.modules.identity.router import router as identity_router
from dsportal.modules.providers.router import router as providers_router
from dsportal.modules.tenants.router import router as tenants_router

configure_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Open the database pool and gateway clients; close both on shutdown."""
    settings = get_settings()
    logger.info(
        "starting_application",
        environment=settings.environment,
        version=settings.version,
    )

    await init_db()
    app.state.gateways = build_gateways(settings)
    logger.info("database_initialized")

    yield

    await app.state.gateways.close()
    await close_db()
    logger.info("application_shutdown_complete")


def create_application() -> FastAPI:
    """Application factory."""
    settings = get_settings()

    app = FastAPI(
        title=settings.project_name,
        version=settings.version,
        openapi_url=f"{settings.api_public_prefix}/openapi.json",
        docs_url=f"{settings.api_public_prefix}/docs",
        redoc_url=None,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get(f"{settings.api_public_prefix}/health", tags=["Public"])
    async def health_check(request: Request) -> dict[str, object]:
        checks: dict[str, str] = {}
        gateways = getattr(request.app.state, "gateways", None)
        if gateways is not None:
            result = await check_control_plane_health(gateways.control_plane)
            checks["control_plane"] = str(result.get("status", "error"))
        return {
            "status": "UP",
            "application": settings.project_name,
            "version": settings.version,
            "checks": checks,
        }

    @app.get(f"{settings.api_public_prefix}/info", tags=["Public"])
    async def info() -> dict[str, object]:
        return {
            "application": settings.project_name,
            "version": settings.version,
            "environment": settings.environment,
            "endpoints": {
                "tenantManager": settings.tenant_manager_url,
                "controlPlane": settings.control_plane_management_url,
                "identityHub": settings.identity_hub_url,
                "dataPlane": settings.data_plane_url,
            },
        }

    app.include_router(
        providers_router,
        prefix=settings.api_ui_prefix,
        tags=["Service Providers"],
    )
    app.include_router(
        tenants_router,
        prefix=f"{settings.api_ui_prefix}/service-providers",
        tags=["Tenants"],
    )
    app.include_router(
        assets_router,
        prefix=f"{settings.api_ui_prefix}/service-providers",
        tags=["Files"],
    )
    app.include_router(
        contracts_router,
        prefix=f"{settings.api_ui_prefix}/service-providers",
        tags=["Contracts"],
    )
    app.include_router(
        identity_router,
        prefix=f"{settings.api_ui_prefix}/service-providers",
        tags=["Identity"],
    )

    return app


app = create_application()
