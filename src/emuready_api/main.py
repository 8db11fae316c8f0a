"""Main application entry point for the EmuReady API."""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from emuready_api.api.approvals import router as approvals_router
from emuready_api.api.audit import router as audit_router
from emuready_api.api.bans import router as bans_router
from emuready_api.api.permissions import router as permissions_router
from emuready_api.api.reports import router as reports_router
from emuready_api.api.trust import router as trust_router
from emuready_api.config.settings import get_settings
from emuready_api.database.connection import close_database
from emuready_api.database.connection import db
from emuready_api.database.connection import init_database
from emuready_api.workers.redis_connection import close_redis_connections


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    # Startup
    await init_database()
    yield
    # Shutdown
    await close_redis_connections()
    await close_database()


def create_app() -> FastAPI:
    """Create and configure FastAPI application."""
    settings = get_settings()
    app = FastAPI(
        title=settings.app_name,
        description="Trust, ban and moderation engine for the EmuReady catalog",
        version=settings.version,
        lifespan=lifespan,
    )

    # Add CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include routers
    app.include_router(approvals_router, prefix="/api/v1")
    app.include_router(audit_router, prefix="/api/v1")
    app.include_router(bans_router, prefix="/api/v1")
    app.include_router(permissions_router, prefix="/api/v1")
    app.include_router(reports_router, prefix="/api/v1")
    app.include_router(trust_router, prefix="/api/v1")

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""

        db_healthy = await db.health_check()
        pool_stats = await db.get_pool_stats()

        return {
            "status": "ok" if db_healthy else "error",
            "database": {
                "healthy": db_healthy,
                "pool": pool_stats,
            },
        }

    return app


app = create_app()


def main():
    """Main entry point - creates and returns the app instance."""
    return create_app()


if __name__ == "__main__":
    # Only run uvicorn when called directly, not when imported
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "emuready_api.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level="info",
    )
