"""
main.py
-------
FastAPI application factory and entry point.

Application lifecycle:
  1. App is created by create_application().
  2. lifespan context manager runs on startup / shutdown and owns the store
     and cache clients (app.state.database, app.state.cache).
  3. Routers are registered with their URL prefixes.
  4. Exception handlers turn service errors into JSON responses and
     normalise unexpected errors.

Run with:
    uvicorn main:app --reload              # development
    uvicorn main:app --workers 4           # production (no --reload)
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from dealerdesk.api.routes import cache, dealers, me, team
from dealerdesk.core.config import settings
from dealerdesk.core.errors import DealerDeskError, InfrastructureError
from dealerdesk.core.logging import clear_request_context, configure_logging, get_logger
from dealerdesk.db.session import Database
from dealerdesk.services.cache_service import RedisTagCache

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """
    Startup / shutdown lifecycle hook.

    Startup:
      - Configure structured logging
      - Build the database and cache clients

    Shutdown:
      - Close the cache client
      - Dispose the async engine (graceful connection pool drain)
    """
    configure_logging()
    logger.info(
        "Starting up",
        app=settings.APP_NAME,
        env=settings.APP_ENV,
        debug=settings.DEBUG,
    )
    app.state.database = Database.from_settings(settings)
    app.state.cache = RedisTagCache.from_settings(settings)
    yield
    logger.info("Shutting down — closing cache, disposing DB engine")
    await app.state.cache.close()
    await app.state.database.dispose()


def create_application() -> FastAPI:
    app = FastAPI(
        title=settings.APP_NAME,
        description=(
            "Multi-tenant dealer and sales-team dashboard backend with "
            "identity-provider auth, role hierarchy and tenant-scoped caching."
        ),
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # ── CORS ─────────────────────────────────────────────────────────────────
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def reset_log_context(request: Request, call_next):
        clear_request_context()
        return await call_next(request)

    # ── Routers ───────────────────────────────────────────────────────────────
    app.include_router(me.router)
    app.include_router(team.router)
    app.include_router(dealers.router)
    app.include_router(cache.router)

    # ── Exception Handlers ────────────────────────────────────────────────────

    @app.exception_handler(DealerDeskError)
    async def service_error_handler(
        request: Request, exc: DealerDeskError
    ) -> JSONResponse:
        logger.info(
            "Request rejected",
            path=request.url.path,
            method=request.method,
            status_code=exc.status_code,
            error=exc.detail,
        )
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.detail},
        )

    @app.exception_handler(SQLAlchemyError)
    @app.exception_handler(OSError)
    async def store_error_handler(request: Request, exc: Exception) -> JSONResponse:
        # Store failures not already wrapped by Database.session()
        return await service_error_handler(
            request, InfrastructureError("Database unavailable")
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        logger.error(
            "Unhandled exception",
            path=request.url.path,
            method=request.method,
            error=str(exc),
            exc_info=True,
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": "Internal server error"},
        )

    # ── Health Check ──────────────────────────────────────────────────────────

    @app.get("/health", tags=["Health"], summary="Service health check")
    async def health() -> dict:
        return {"status": "ok", "app": settings.APP_NAME, "env": settings.APP_ENV}

    return app


app = create_application()
