"""
AdPulse - FastAPI Application Entry Point
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from adpulse.api.v1 import api_router
from adpulse.core.config import settings
from adpulse.core.database import init_db
from adpulse.core.exceptions import (
    EntityNotFoundError,
    InvalidInputError,
    MetaAPIError,
    TransportError,
)
from adpulse.core.logging_config import configure_logging
from adpulse.schemas.common import ErrorResponse

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events"""
    # Startup
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION} ({settings.ENVIRONMENT})")
    init_db()

    if settings.SCHEDULER_ENABLED:
        from adpulse.tasks.scheduler import start_scheduler
        start_scheduler()

    yield

    # Shutdown
    if settings.SCHEDULER_ENABLED:
        from adpulse.tasks.scheduler import stop_scheduler
        stop_scheduler()

    logger.info(f"Shutting down {settings.APP_NAME}")


def _error(status_code: int, error: str, detail=None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=error, detail=detail).model_dump(),
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Map the engine's error taxonomy onto HTTP responses"""

    @app.exception_handler(EntityNotFoundError)
    async def not_found_handler(request: Request, exc: EntityNotFoundError):
        return _error(status.HTTP_404_NOT_FOUND, str(exc))

    @app.exception_handler(InvalidInputError)
    async def invalid_input_handler(request: Request, exc: InvalidInputError):
        return _error(status.HTTP_400_BAD_REQUEST, str(exc))

    @app.exception_handler(MetaAPIError)
    async def meta_api_error_handler(request: Request, exc: MetaAPIError):
        logger.warning(f"Meta API error on {request.url.path}: {exc.message}")
        return _error(
            status.HTTP_502_BAD_GATEWAY,
            exc.message,
            {"code": exc.code, "type": exc.error_type, "status_code": exc.status_code},
        )

    @app.exception_handler(TransportError)
    async def transport_error_handler(request: Request, exc: TransportError):
        logger.warning(f"Meta transport error on {request.url.path}: {exc.message}")
        return _error(status.HTTP_502_BAD_GATEWAY, exc.message, {"status_code": exc.status_code})


def create_app() -> FastAPI:
    """Create FastAPI application"""
    configure_logging()

    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        description="Meta ads performance dashboard",
        docs_url="/docs" if settings.DEBUG else None,
        redoc_url="/redoc" if settings.DEBUG else None,
        lifespan=lifespan,
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    # Include API routers
    app.include_router(api_router)

    return app


# Create app instance
app = create_app()
