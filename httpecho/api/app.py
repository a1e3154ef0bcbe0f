"""FastAPI application factory for the echo server."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from structlog import get_logger

from httpecho import __version__
from httpecho.api.diagnostics import Diagnostics
from httpecho.api.echo import EchoEndpoint
from httpecho.api.middleware.errors import setup_error_handlers
from httpecho.config.settings import Settings, get_settings


logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    settings: Settings = app.state.settings
    logger.info(
        "echo_server_starting",
        url=settings.server_url,
        prefix=settings.echo.prefix,
        suffix=settings.echo.suffix,
        wait=settings.echo.wait,
        verbose=settings.logging.verbose,
        verbose_headers=settings.logging.verbose_headers,
        verbose_body=settings.logging.verbose_body,
        category="lifecycle",
    )

    yield

    logger.info("echo_server_stopping", category="lifecycle")


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Every path and every method is served by one :class:`EchoEndpoint`, so
    the interactive docs and OpenAPI schema routes are disabled.

    Args:
        settings: Optional settings override. If None, uses get_settings().

    Returns:
        Configured FastAPI application instance.
    """
    if settings is None:
        settings = get_settings()

    app = FastAPI(
        title="httpecho",
        description="HTTP endpoint mirroring request headers and bodies",
        version=__version__,
        lifespan=lifespan,
        openapi_url=None,
        docs_url=None,
        redoc_url=None,
    )
    app.state.settings = settings

    setup_error_handlers(app)

    endpoint = EchoEndpoint(
        echo=settings.echo,
        diagnostics=Diagnostics(settings.logging),
    )
    app.mount("/", endpoint, name="echo")

    return app
