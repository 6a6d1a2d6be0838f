"""FastAPI application entry point.

UmojaHub Marketplace API - order settlement, trust scores and price alerts.
"""

from contextlib import asynccontextmanager
from collections.abc import AsyncGenerator
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from umoja.routes import api_router
from umoja.schemas import ErrorDetail, ErrorResponse
from umoja.services.errors import AppError
from umoja.services.sms_client import close_sms_gateway
from umoja.services.tasks import get_dispatcher
from umoja.settings import get_settings
from umoja.stores.postgres import init_db, close_db, ping_db
from umoja.stores.redis import init_redis, close_redis

logger = logging.getLogger("uvicorn.error")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager.

    Handles startup and shutdown events.
    """
    # Initialize database (skip in tests if no DB available)
    try:
        await init_db()
        await ping_db()
        logger.info("Postgres connected")
    except Exception:
        logger.exception("Postgres init failed")

    # Initialize Redis (cache and sweep lock degrade gracefully without it)
    try:
        await init_redis()
    except Exception:
        logger.exception("Redis init failed")

    dispatcher = get_dispatcher()
    await dispatcher.start()

    yield

    # Shutdown
    await dispatcher.stop()
    await close_sms_gateway()
    await close_redis()
    await close_db()


def _error_body(code: str, message: str, detail: dict | None = None) -> dict:
    return ErrorResponse(error=ErrorDetail(code=code, message=message, detail=detail)).model_dump()


def create_app() -> FastAPI:
    """Create and configure FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Farmer/buyer marketplace: order settlement, trust scores and price alerts",
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

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
        """Caller-visible errors in the structured error format."""
        headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_body(exc.code, exc.message, exc.detail),
            headers=headers,
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        fields = [".".join(str(p) for p in err.get("loc", ())) for err in exc.errors()]
        return JSONResponse(
            status_code=422,
            content=_error_body("VALIDATION_FAILED", "Request validation failed", {"fields": fields}),
        )

    # Exception handler for structured error format
    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Global exception handler returning structured error format."""
        logger.exception(f"Unhandled error on {request.method} {request.url.path}")
        return JSONResponse(
            status_code=500,
            content=_error_body(
                "INTERNAL_ERROR",
                str(exc) if settings.debug else "Internal server error",
            ),
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
        "umoja.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )
