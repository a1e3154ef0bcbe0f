"""Per-request diagnostic output: arrival lines, header lines and raw bodies."""

import sys
from collections.abc import Awaitable, Callable
from datetime import datetime
from typing import BinaryIO

import structlog

from httpecho.config.logging import LoggingSettings
from httpecho.core.errors import IOFailure
from httpecho.streaming.sinks import AsyncSink, Buffer, StreamSink

from .exchange import Exchange


logger = structlog.get_logger(__name__)


class ConsoleSink:
    """Best-effort wrapper around the diagnostic console.

    The first write, flush or close failure is logged as a warning and turns
    every later call into a no-op; nothing is raised to the caller.
    """

    def __init__(self, sink: AsyncSink):
        self._sink = sink
        self._failed = False

    @property
    def failed(self) -> bool:
        return self._failed

    async def _guard(self, name: str, operation: Callable[[], Awaitable[None]]) -> None:
        if self._failed:
            return
        try:
            await operation()
        except (IOFailure, OSError) as e:
            self._failed = True
            logger.warning(
                "diagnostic_output_failed", operation=name, error=str(e)
            )

    async def write(self, data: Buffer) -> None:
        await self._guard("write", lambda: self._sink.write(data))

    async def flush(self) -> None:
        await self._guard("flush", self._sink.flush)

    async def close(self) -> None:
        await self._guard("close", self._sink.close)


class Diagnostics:
    """Observational output for requests, driven by the verbose switches.

    Structured lines go through structlog; raw body bytes and the blank
    separator lines go to ``console`` (``sys.stdout.buffer`` by default).
    """

    def __init__(self, settings: LoggingSettings, console: BinaryIO | None = None):
        self.settings = settings
        self._console = console

    @property
    def console(self) -> BinaryIO:
        return self._console if self._console is not None else sys.stdout.buffer

    @property
    def print_headers(self) -> bool:
        return self.settings.verbose or self.settings.verbose_headers

    @property
    def print_body(self) -> bool:
        return self.settings.verbose or self.settings.verbose_body

    @property
    def enabled(self) -> bool:
        return self.print_headers or self.print_body

    def request_received(self, exchange: Exchange) -> None:
        log = logger.info if self.enabled else logger.debug
        log(
            "request_received",
            received_at=datetime.now().strftime("%Y-%m-%d %H:%M:%S"),
            method=exchange.method,
            uri=exchange.uri,
            protocol=exchange.protocol,
        )

    def header(self, name: str, value: str) -> None:
        logger.info("request_header", name=name, value=value)

    def body_sink(self) -> ConsoleSink:
        return ConsoleSink(StreamSink(self.console))

    async def separator(self, count: int = 1) -> None:
        if not self.enabled:
            return
        sink = self.body_sink()
        await sink.write(b"\n" * count)
        await sink.flush()
