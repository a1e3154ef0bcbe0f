"""structlog configuration shared by the CLI, the app and the tests."""

import logging
import sys
from typing import Any

import structlog
from rich.console import Console
from rich.logging import RichHandler
from structlog.typing import Processor


_UVICORN_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access")


def _shared_processors() -> list[Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="%Y-%m-%d %H:%M:%S", utc=False),
        structlog.processors.StackInfoRenderer(),
    ]


def setup_logging(
    json_logs: bool = False,
    log_level_name: str = "INFO",
    console_width: int | None = None,
) -> None:
    """Configure stdlib logging and structlog.

    Args:
        json_logs: Render one JSON object per line instead of rich console output
        log_level_name: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        console_width: Optional console width override for rich output
    """
    level = getattr(logging, log_level_name.upper(), logging.INFO)
    shared = _shared_processors()

    renderer: Processor
    handler: logging.Handler
    if json_logs:
        renderer = structlog.processors.JSONRenderer()
        handler = logging.StreamHandler(sys.stderr)
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=False)
        handler = RichHandler(
            console=Console(stderr=True, width=console_width),
            show_time=False,
            show_level=False,
            show_path=False,
            markup=False,
            rich_tracebacks=True,
        )

    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=shared,
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                *([structlog.processors.format_exc_info] if json_logs else []),
                renderer,
            ],
        )
    )

    logging.basicConfig(level=level, handlers=[handler], force=True)

    for name in _UVICORN_LOGGERS:
        uvicorn_logger = logging.getLogger(name)
        uvicorn_logger.handlers = []
        uvicorn_logger.setLevel(level)
        uvicorn_logger.propagate = True

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *shared,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.UnicodeDecoder(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def get_logger(name: str | None = None, **initial_values: Any) -> Any:
    """Get a structlog logger bound to ``name``."""
    return structlog.get_logger(name, **initial_values)


__all__ = ["get_logger", "setup_logging"]
