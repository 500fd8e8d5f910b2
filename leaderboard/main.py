"""FastAPI application entry point.

Leaderboard API - ranked users served from a bounded cache over PostgreSQL.
"""

from contextlib import asynccontextmanager
from collections.abc import AsyncGenerator
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from leaderboard.routes import api_router
from leaderboard.schemas import ErrorDetail, ErrorResponse
from leaderboard.services.errors import (
    DuplicateUserError,
    LeaderboardError,
    NotFoundError,
    PersistenceError,
    ValidationError,
)
from leaderboard.services.leaderboard import build_leaderboard_service
from leaderboard.settings import get_settings
from leaderboard.stores.postgres import init_db, close_db, ping_db
from leaderboard.stores.redis import init_redis, close_redis

logger = logging.getLogger("uvicorn.error")

# Most specific first; the first isinstance match wins.
ERROR_STATUS: list[tuple[type[LeaderboardError], int]] = [
    (ValidationError, 400),
    (NotFoundError, 404),
    (DuplicateUserError, 409),
    (PersistenceError, 503),
]


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager.

    Handles startup and shutdown events.
    """
    settings = get_settings()

    db_ready = False
    try:
        await init_db()
        await ping_db()
        db_ready = True
        logger.info("Postgres connected")
    except Exception:
        logger.exception("Postgres init failed")

    if settings.cache_backend == "redis":
        # The service cannot be built without the shared cache; fail startup.
        await init_redis()

    app.state.leaderboard = build_leaderboard_service(settings)

    if settings.resync_on_startup and db_ready:
        try:
            await app.state.leaderboard.resync()
        except Exception:
            logger.exception("Initial cache sync failed; reads fall back to PostgreSQL")

    yield

    # Shutdown
    await close_redis()
    await close_db()


def _error_response(status_code: int, code: str, message: str) -> JSONResponse:
    body = ErrorResponse(error=ErrorDetail(code=code, message=message))
    return JSONResponse(status_code=status_code, content=body.model_dump())


def create_app() -> FastAPI:
    """Create and configure FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Ranked leaderboard API with a bounded in-memory ranking cache",
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(LeaderboardError)
    async def leaderboard_exception_handler(request: Request, exc: LeaderboardError) -> JSONResponse:
        """Map service errors onto the structured error format."""
        status_code = next(
            (code for error_cls, code in ERROR_STATUS if isinstance(exc, error_cls)),
            500,
        )
        if status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc}")
        return _error_response(status_code, exc.code, str(exc))

    # Exception handler for structured error format
    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Global exception handler returning structured error format."""
        logger.exception(f"Unhandled error on {request.method} {request.url.path}")
        return _error_response(
            500,
            "INTERNAL_ERROR",
            str(exc) if settings.debug else "Internal server error",
        )

    # Health check endpoint
    @app.get("/health", tags=["health"])
    async def health_check() -> dict[str, bool]:
        """Health check endpoint."""
        return {"ok": True}

    # Include API routes
    app.include_router(api_router)

    return app


# Application instance
app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "leaderboard.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )
