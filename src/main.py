"""
FastAPI application entry point.

This module creates and configures the FastAPI application.
Using an application factory pattern (create_app function) because:
- Easier to test with different configurations
- Explicit about initialization order
- Tests can inject a store and transformer instead of real ones

For local development:
    uvicorn src.main:app --reload

For production:
    gunicorn src.main:app -w 4 -k uvicorn.workers.UvicornWorker
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import __version__
from .api.routes import derivatives, health
from .config.logging_setup import configure_logging
from .config.settings import Settings, get_settings
from .core.derivatives.errors import DerivativeError, TransformError
from .core.derivatives.pipeline import BlobStore
from .core.derivatives.scratch import ScratchSpaceManager
from .core.derivatives.transform import Transformer
from .infrastructure.imaging.transformer import create_transformer
from .infrastructure.storage.client import build_storage_client

logger = logging.getLogger(__name__)


def error_body(message: str, status_code: int) -> dict:
    """The {message, statusCode} shape every error response uses."""
    return {"message": message, "statusCode": status_code}


def create_app(
    settings: Optional[Settings] = None,
    storage: Optional[BlobStore] = None,
    transformer: Optional[Transformer] = None,
) -> FastAPI:
    """
    Application factory.

    Args:
        settings: Defaults to the cached environment settings
        storage: Injected store; built from settings at startup if None
        transformer: Injected transformer; built from settings at startup if None
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        Create the process-wide store client and transformer on startup,
        close them on shutdown.
        """
        logger.info(
            "Derivative API starting",
            extra={
                "version": __version__,
                "bucket": settings.bucket_name,
                "mock_mode": {
                    "storage": settings.storage_mock_mode,
                    "transform": settings.transform_mock_mode,
                }
            }
        )

        missing_fields = settings.validate_required_fields()
        if missing_fields:
            # readiness reports this too; liveness stays up so the error is visible
            logger.error(
                "Missing required configuration",
                extra={"missing_fields": missing_fields}
            )

        app.state.storage = storage if storage is not None else build_storage_client(settings)
        app.state.transformer = transformer if transformer is not None else create_transformer(
            binary_path=settings.transform_binary_path,
            timeout_seconds=settings.transform_timeout_seconds,
            mock_mode=settings.transform_mock_mode,
        )
        app.state.scratch = ScratchSpaceManager(
            settings.scratch_root,
            suffix=settings.derivative_suffix,
        )

        yield

        logger.info("Derivative API shutting down")
        app.state.storage.close()

    app = FastAPI(
        title=settings.api_title,
        version=__version__,
        description="""
        On-demand image derivatives.

        `GET /api/v1/derivatives?filename=photos/cat.jpg&quality=10&scale=100`
        downloads the stored image, reduces its quality and size with
        ImageMagick, uploads the result as `photos/cat.jpg_modified` and
        returns a signed URL for it as plain text.
        """,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=False,
        allow_methods=["GET"],
        allow_headers=["*"],
        expose_headers=["X-Derivative-Key", "X-Source-Url"],
    )

    # Include routers
    app.include_router(
        health.router,
        prefix="/health",
        tags=["Health"],
    )

    app.include_router(
        derivatives.router,
        prefix="/api/v1/derivatives",
        tags=["Derivatives"],
    )

    # Same contract under the original function name, for existing callers
    app.add_api_route(
        "/createNewLowerQualityImage",
        derivatives.create_derivative,
        methods=["GET"],
        response_class=PlainTextResponse,
        include_in_schema=False,
    )

    # Root endpoint
    @app.get("/", include_in_schema=False)
    async def root():
        return {
            "message": settings.api_title,
            "version": __version__,
            "docs": "/docs",
            "health": "/health",
        }

    @app.exception_handler(DerivativeError)
    async def derivative_error_handler(request: Request, exc: DerivativeError):
        """One structured error response per failed request."""
        if isinstance(exc, TransformError) and exc.stderr:
            logger.error(
                "Transform diagnostics",
                extra={"path": request.url.path, "stderr": exc.stderr[-2000:]}
            )
        return JSONResponse(
            status_code=exc.status_code,
            content=error_body(exc.message, exc.status_code),
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content=error_body(str(exc.detail), exc.status_code),
            headers=getattr(exc, "headers", None),
        )

    # Global exception handler
    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """
        Catch-all exception handler.

        In production, this prevents stack traces from leaking to clients.
        We log the full error server-side but return a generic message.
        """
        logger.error(
            "Unhandled exception",
            extra={
                "path": request.url.path,
                "method": request.method,
                "error": str(exc),
            },
            exc_info=exc,
        )

        return JSONResponse(
            status_code=500,
            content=error_body("Internal server error", 500),
        )

    logger.info(
        "FastAPI application created",
        extra={"title": settings.api_title, "version": __version__}
    )

    return app


configure_logging(get_settings().log_level)

# Create the application instance
# This is what uvicorn/gunicorn will import
app = create_app()


# For debugging/development
if __name__ == "__main__":
    import uvicorn

    settings = get_settings()

    uvicorn.run(
        "src.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level=settings.log_level.lower(),
    )
