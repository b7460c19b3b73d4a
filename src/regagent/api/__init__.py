"""regagent API service.

FastAPI application providing:
- Mail notification webhook for the virtual mailbox provider
- Registered agent address registry and consent endpoints
- Received document queries, audit trail and status transitions

This module provides the app factory pattern for creating configured
FastAPI instances suitable for testing and production deployment.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import AsyncExitStack, asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from regagent.api.middleware import ErrorHandlerMiddleware, RequestIDMiddleware
from regagent.api.routers import agents_router, documents_router, mailbox_router
from regagent.core.config import Settings
from regagent.core.settings import get_settings
from regagent.db import close_engine
from regagent.services.agent_registry import DEFAULT_AGENT_ADDRESSES, load_seed_file
from regagent.services.mailbox_client import MailboxClientConfig, VirtualMailboxClient
from regagent.services.notifications import build_client_notifier
from regagent.services.ocr import MindeeConfig, MindeeOcrProvider, SimulatedOcrProvider

logger = logging.getLogger(__name__)

# Application metadata
API_TITLE = "Registered Agent API"
API_DESCRIPTION = """
Registered agent document intake service.

## Namespaces

- **/mailbox/** - Provider webhook and virtual mailbox provisioning
- **/agents/** - Registered agent addresses and consents
- **/documents/** - Received documents and their audit trail

## Documentation

- OpenAPI schema: `/api/openapi.json`
- Swagger UI: `/api/docs`
- ReDoc: `/api/redoc`
"""


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Open the provider clients for the lifetime of the application.

    The agent address seed table is loaded once here and reused by every
    request.
    """
    settings: Settings = app.state.settings or get_settings()

    seed_file = settings.agent.seed_file
    app.state.agent_seeds = load_seed_file(seed_file) if seed_file else DEFAULT_AGENT_ADDRESSES

    async with AsyncExitStack() as stack:
        app.state.mailbox_client = await stack.enter_async_context(
            VirtualMailboxClient(MailboxClientConfig.from_settings(settings.mailbox))
        )

        mindee_config = MindeeConfig.from_settings(settings.ocr)
        if mindee_config is None:
            app.state.ocr_provider = SimulatedOcrProvider()
        else:
            app.state.ocr_provider = await stack.enter_async_context(
                MindeeOcrProvider(mindee_config)
            )

        app.state.notifier = build_client_notifier(settings)

        logger.info(
            "Provider clients ready (mailbox_simulation=%s, ocr_simulation=%s, notifier=%s)",
            settings.mailbox.simulation_mode,
            mindee_config is None,
            type(app.state.notifier).__name__,
        )
        try:
            yield
        finally:
            await close_engine()


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create and configure a FastAPI application instance.

    Args:
        settings: Optional Settings instance. If not provided, settings are
            loaded from the environment at startup.

    Returns:
        Configured FastAPI application ready to serve requests.

    Example:
        app = create_app()

        # For testing
        test_settings = Settings(database={"url": "postgresql://u:p@localhost/test"})
        app = create_app(test_settings)
    """
    version = "0.1.0"
    if settings:
        version = settings.app_version

    app = FastAPI(
        title=API_TITLE,
        description=API_DESCRIPTION,
        version=version,
        docs_url="/api/docs",
        redoc_url="/api/redoc",
        openapi_url="/api/openapi.json",
        lifespan=lifespan,
    )

    # Store settings in app state for access in routes
    app.state.settings = settings

    # Add middleware (last added is outermost)
    _add_middleware(app, settings)

    _include_routers(app)

    @app.get("/health", tags=["health"])
    async def health_check() -> dict[str, str]:
        """Health check endpoint for container orchestration."""
        return {"status": "healthy"}

    logger.info("Registered agent API application created (version=%s)", version)

    return app


def _add_middleware(app: FastAPI, settings: Settings | None) -> None:
    # Error handler middleware - converts exceptions to JSON responses
    app.add_middleware(ErrorHandlerMiddleware)

    # Request ID middleware - wraps the error handler so error bodies carry the ID
    app.add_middleware(RequestIDMiddleware)

    allowed_origins = ["http://localhost:3000", "http://localhost:8000"]
    if settings and settings.is_production:
        allowed_origins = []

    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID"],
    )


def _include_routers(app: FastAPI) -> None:
    """Include API namespace routers under /api."""
    app.include_router(mailbox_router, prefix="/api")
    app.include_router(agents_router, prefix="/api")
    app.include_router(documents_router, prefix="/api")
