from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from commentboard.app import App
from commentboard.config import Config
from commentboard.errors import ServiceError, UserError
from commentboard.web.error_handlers import (
    general_exception_handler,
    request_validation_error_handler,
    service_error_handler,
    user_error_handler,
)
from commentboard.web.openapi import set_custom_openapi
from commentboard.web.routers import attachments_router, comments_router, metadata_router


def create_fastapi_app(app_instance: App, config: Config) -> FastAPI:
    """Create and configure FastAPI application."""

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
        """FastAPI application lifespan management."""
        async with app_instance.lifespan():
            yield

    app = FastAPI(
        title="CommentBoard API",
        lifespan=lifespan,
    )

    # Store app instance and config in app state
    app.state.app = app_instance
    app.state.config = config

    # CORS for the web frontend
    origins = config.cors_origins or [config.frontend_url]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Health check endpoint (at root level, not versioned)
    @app.get("/health")
    async def health_check() -> dict[str, str]:
        return {"status": "healthy"}

    # API v1 routes
    app.include_router(comments_router, prefix="/api/v1")
    app.include_router(attachments_router, prefix="/api/v1")
    app.include_router(metadata_router, prefix="/api/v1")

    # Register error handlers
    app.add_exception_handler(RequestValidationError, request_validation_error_handler)
    app.add_exception_handler(UserError, user_error_handler)
    app.add_exception_handler(ServiceError, service_error_handler)
    app.add_exception_handler(Exception, general_exception_handler)

    set_custom_openapi(app)

    return app
