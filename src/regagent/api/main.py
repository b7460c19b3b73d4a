"""regagent API service entry point.

This module provides the application instance for ASGI servers (uvicorn)
and a run() function for direct execution.

The app is created using the factory pattern from regagent.api.create_app().
"""

import logging

from regagent.api import create_app
from regagent.api.middleware import RequestIDLogFilter

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s [%(request_id)s] %(name)s: %(message)s"

# Create the application instance for ASGI servers
# This is what uvicorn references: regagent.api.main:app
app = create_app()


def configure_logging(level: str) -> None:
    """Configure root logging with the request ID in every line."""
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler.addFilter(RequestIDLogFilter())
    logging.basicConfig(level=level, handlers=[handler], force=True)


def run() -> None:
    """Run the API server using uvicorn.

    This function is called by the regagent-api console script
    defined in pyproject.toml.
    """
    import uvicorn

    from regagent.core.settings import get_settings_safe

    settings = get_settings_safe()
    if settings is None:
        logger.warning("Could not load settings, using defaults")
        host, port, level = "127.0.0.1", 8000, "INFO"
    else:
        host, port, level = settings.api_host, settings.api_port, settings.log_level

    configure_logging(level)
    logger.info("Starting registered agent API on %s:%d", host, port)

    uvicorn.run(
        "regagent.api.main:app",
        host=host,
        port=port,
        reload=False,
        log_config=None,
    )


if __name__ == "__main__":
    run()
