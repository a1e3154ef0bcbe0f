"""Request echo engine.

Every request walks the same steps: log its arrival, echo its headers under
the configured prefix and suffix, pass ``Content-Type`` through, then
dispatch on the method. ``POST``, ``PUT`` and ``PATCH`` get their body mirrored
back, ``GET``, ``HEAD`` and ``DELETE`` an empty ``200``, ``OPTIONS`` the
``Allow`` list, anything else ``405``.
"""

import structlog
from starlette.types import Receive, Scope, Send

from httpecho.config.echo import EchoSettings
from httpecho.core.errors import MalformedRequestMetadata
from httpecho.streaming.multiplex import MultiplexedSink
from httpecho.streaming.sinks import AsyncSink

from .diagnostics import Diagnostics
from .exchange import CHUNKED, CONTENT_LENGTH, NO_BODY, Exchange


logger = structlog.get_logger(__name__)

ALLOW = "Allow"
CONTENT_TYPE = "Content-Type"

STATUS_OK = 200
STATUS_METHOD_NOT_ALLOWED = 405

ALLOWED_METHODS = ",".join(
    ("DELETE", "GET", "HEAD", "OPTIONS", "PATCH", "POST", "PUT")
)


def parse_content_length(value: str) -> int:
    """Parse a ``Content-Length`` value, rejecting anything but a non-negative integer."""
    # Optional whitespace around the field value is allowed; the value itself
    # must be 1*DIGIT, so signs ("+5"), decimals and non-ASCII digits are rejected.
    stripped = value.strip()
    if not stripped.isascii() or not stripped.isdigit():
        raise MalformedRequestMetadata(CONTENT_LENGTH, value)
    return int(stripped)


class EchoEndpoint:
    """ASGI endpoint mirroring every request back to its sender.

    Holds only the read-only echo settings and the diagnostics switches, so
    one instance serves all concurrent requests.
    """

    def __init__(self, echo: EchoSettings, diagnostics: Diagnostics):
        self.echo = echo
        self.diagnostics = diagnostics

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            return
        await self.handle(Exchange.from_asgi(scope, receive, send))

    async def handle(self, exchange: Exchange) -> None:
        async with exchange:
            self.diagnostics.request_received(exchange)
            self.echo_headers(exchange)
            await self.diagnostics.separator()

            content_type = exchange.request_headers.get_first(CONTENT_TYPE)
            if content_type is not None:
                exchange.response_headers.set(CONTENT_TYPE, content_type)

            match exchange.method:
                case "PATCH" | "POST" | "PUT":
                    await self.echo_body(exchange)
                    await self.diagnostics.separator(2)
                case "DELETE" | "GET" | "HEAD":
                    await exchange.send_response_headers(STATUS_OK, NO_BODY)
                case "OPTIONS":
                    exchange.response_headers.set(ALLOW, ALLOWED_METHODS)
                    await exchange.send_response_headers(STATUS_OK, NO_BODY)
                case _:
                    exchange.response_headers.set(ALLOW, ALLOWED_METHODS)
                    await exchange.send_response_headers(
                        STATUS_METHOD_NOT_ALLOWED, NO_BODY
                    )

    def echo_headers(self, exchange: Exchange) -> None:
        """Copy every request header to ``prefix + name + suffix``.

        When two names collapse to the same echoed name the later one wins.
        """
        for name, values in exchange.request_headers.items():
            if self.diagnostics.print_headers:
                for value in values:
                    self.diagnostics.header(name, value)
            exchange.response_headers[self.echo.echoed_name(name)] = values

    async def echo_body(self, exchange: Exchange) -> None:
        """Mirror the request body, buffered in wait mode and streamed otherwise."""
        declared = exchange.request_headers.get_first(CONTENT_LENGTH)
        length = CHUNKED if declared is None else parse_content_length(declared)

        payload = await exchange.request_body.read_all() if self.echo.wait else None

        sink: AsyncSink = await exchange.send_response_headers(STATUS_OK, length)
        if self.diagnostics.print_body:
            sink = MultiplexedSink([sink, self.diagnostics.body_sink()])

        if payload is not None:
            await sink.write(payload)
        else:
            async for chunk in exchange.request_body:
                await sink.write(chunk)
        await sink.flush()

        logger.debug(
            "request_body_echoed",
            method=exchange.method,
            uri=exchange.uri,
            declared_length=length,
            wait=self.echo.wait,
        )
