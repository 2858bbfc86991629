"""Main FastAPI application for the feedback relay."""

from contextlib import asynccontextmanager
from typing import Optional
import logging
import sys

import httpx
from fastapi import FastAPI

from feedback_relay import __version__
from feedback_relay.api import feedback, health
from feedback_relay.config import RelayConfig, load_config
from feedback_relay.lib.exceptions import ConfigurationError, register_exception_handlers
from feedback_relay.lib.feedback.apprise_notifier import AppriseNotifier
from feedback_relay.lib.feedback.negotiation import ContentNegotiator
from feedback_relay.lib.logging_config import configure_logging, create_request_context_middleware

logger = logging.getLogger(__name__)


def create_app(
    config: RelayConfig,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> FastAPI:
    """Build the application around an already validated configuration.

    Args:
        config: Validated relay configuration, shared read-only by all requests
        transport: Optional httpx transport for the outbound client (tests)
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Own the outbound connection pool for the life of the app."""
        logger.info("Starting feedback relay...")
        async with httpx.AsyncClient(transport=transport) as client:
            app.state.notifier = AppriseNotifier(config.notification, client)
            yield
        logger.info("Shutting down feedback relay...")

    app = FastAPI(
        title="Feedback Relay",
        description="Relays feedback form submissions to an Apprise API endpoint",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.config = config
    app.state.negotiator = ContentNegotiator()

    register_exception_handlers(app)
    create_request_context_middleware(app)

    app.include_router(health.router, tags=["Health"])
    app.include_router(feedback.router, tags=["Feedback"])

    return app


def run() -> None:
    """Console entry point: configure logging, validate config, serve."""
    configure_logging()

    try:
        config = load_config()
    except ConfigurationError as e:
        logger.error(f"❌ CRITICAL: invalid configuration: {e}", extra={"error_code": e.error_code})
        sys.exit(1)

    import uvicorn

    logger.info(f"listening on {config.addr}")
    uvicorn.run(create_app(config), host=config.host, port=config.port, log_config=None)


if __name__ == "__main__":
    run()
