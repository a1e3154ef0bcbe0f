"""Serve command: start the echo server under uvicorn."""

from pathlib import Path
from typing import Annotated, Any

import typer
import uvicorn
from click import get_current_context
from rich.console import Console

from httpecho.api.app import create_app
from httpecho.config.settings import ConfigurationError, Settings
from httpecho.core.logging import get_logger, setup_logging

from ..options.server_options import (
    validate_backlog,
    validate_log_level,
    validate_port,
)


def get_config_path_from_context() -> Path | None:
    """Get config path from typer context if available."""
    try:
        ctx = get_current_context()
        if ctx and ctx.obj and "config_path" in ctx.obj:
            config_path = ctx.obj["config_path"]
            return config_path if config_path is None else Path(config_path)
    except RuntimeError:
        # No active click context (e.g., in tests)
        pass
    return None


def _run_local_server(settings: Settings) -> None:
    """Run the echo app with uvicorn until interrupted."""
    logger = get_logger(__name__)
    logger.info(
        "server_starting",
        host=settings.server.host,
        port=settings.server.port,
        backlog=settings.server.backlog,
        url=settings.server_url,
    )

    uvicorn.run(
        app=create_app(settings),
        host=settings.server.host,
        port=settings.server.port,
        backlog=settings.server.backlog,
        log_config=None,
        access_log=settings.logging.verbose,
    )


def serve(
    config: Annotated[
        Path | None,
        typer.Option(
            "--config",
            "-c",
            help="Path to configuration file (TOML)",
            exists=True,
            file_okay=True,
            dir_okay=False,
            readable=True,
            rich_help_panel="Configuration",
        ),
    ] = None,
    host: Annotated[
        str | None,
        typer.Option(
            "--host",
            "-h",
            help="The host to listen on (default \"localhost\")",
            rich_help_panel="Server Settings",
        ),
    ] = None,
    port: Annotated[
        int | None,
        typer.Option(
            "--port",
            "-p",
            help="The port to listen on (default 8080)",
            callback=validate_port,
            rich_help_panel="Server Settings",
        ),
    ] = None,
    backlog: Annotated[
        int | None,
        typer.Option(
            "--backlog",
            "-b",
            help="The maximum number of queued incoming connections to allow (default 1)",
            callback=validate_backlog,
            rich_help_panel="Server Settings",
        ),
    ] = None,
    wait: Annotated[
        bool | None,
        typer.Option(
            "--wait/--no-wait",
            "-w",
            help="Wait for the request to finish before sending the response (some clients may choke otherwise)",
            rich_help_panel="Echo Settings",
        ),
    ] = None,
    prefix: Annotated[
        str | None,
        typer.Option(
            "--prefix",
            "-P",
            help="The prefix to use for the echoed headers (default \"X-Echo-\")",
            rich_help_panel="Echo Settings",
        ),
    ] = None,
    suffix: Annotated[
        str | None,
        typer.Option(
            "--suffix",
            "-s",
            help="The suffix to use for the echoed headers",
            rich_help_panel="Echo Settings",
        ),
    ] = None,
    verbose: Annotated[
        bool | None,
        typer.Option(
            "--verbose/--no-verbose",
            "-v",
            help="Log incoming requests completely",
            rich_help_panel="Logging Settings",
        ),
    ] = None,
    headers: Annotated[
        bool | None,
        typer.Option(
            "--headers/--no-headers",
            "-H",
            help="Log incoming requests' headers",
            rich_help_panel="Logging Settings",
        ),
    ] = None,
    body: Annotated[
        bool | None,
        typer.Option(
            "--body/--no-body",
            "-B",
            help="Log incoming requests' body",
            rich_help_panel="Logging Settings",
        ),
    ] = None,
    log_level: Annotated[
        str | None,
        typer.Option(
            "--log-level",
            help="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
            callback=validate_log_level,
            rich_help_panel="Logging Settings",
        ),
    ] = None,
) -> None:
    """Start the echo server."""
    console = Console(stderr=True)
    try:
        if config is None:
            config = get_config_path_from_context()

        cli_context: dict[str, Any] = {
            "host": host,
            "port": port,
            "backlog": backlog,
            "wait": wait,
            "prefix": prefix,
            "suffix": suffix,
            "verbose": verbose,
            "verbose_headers": headers,
            "verbose_body": body,
            "log_level": log_level,
        }

        settings = Settings.from_config(config_path=config, cli_context=cli_context)

        setup_logging(
            json_logs=settings.logging.json_logs,
            log_level_name=settings.logging.level,
            console_width=settings.logging.console_width,
        )

        get_logger(__name__).debug(
            "configuration_loaded",
            host=settings.server.host,
            port=settings.server.port,
            log_level=settings.logging.level,
            category="config",
        )

        _run_local_server(settings)

    except ConfigurationError as e:
        console.print(f"[bold red]Configuration error:[/bold red] {e}")
        raise typer.Exit(1) from e
    except OSError as e:
        console.print(
            f"[bold red]Server startup failed (port/permission issue):[/bold red] {e}"
        )
        raise typer.Exit(1) from e
