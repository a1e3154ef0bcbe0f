"""One request/response exchange over an ASGI connection.

The echo engine only talks to the transport through :class:`Exchange`: request
line and headers, a readable request body, mutable response headers and a
response body sink obtained by sending the status line.
"""

from collections.abc import AsyncIterator, Iterable, Iterator, MutableMapping
from types import TracebackType

from starlette.types import Receive, Scope, Send

from httpecho.core.errors import IOFailure
from httpecho.streaming.sinks import ResponseBodySink


CONTENT_LENGTH = "Content-Length"

# Declared response lengths accepted by ``send_response_headers``; any value
# >= 0 is sent verbatim as Content-Length.
NO_BODY = -1
CHUNKED = None


def canonical_header_name(name: str) -> str:
    """Title-case each dash separated part: ``x-forwarded-for`` -> ``X-Forwarded-For``."""
    return "-".join(part[:1].upper() + part[1:].lower() for part in name.split("-"))


class HeaderMap(MutableMapping[str, list[str]]):
    """Ordered, case-insensitive map from header name to its values.

    Setting a name replaces all of its values; the spelling of the most
    recent assignment is the one sent on the wire.
    """

    def __init__(self, items: Iterable[tuple[str, str]] = ()):
        self._entries: dict[str, tuple[str, list[str]]] = {}
        for name, value in items:
            self.add(name, value)

    @classmethod
    def from_asgi(cls, raw_headers: Iterable[tuple[bytes, bytes]]) -> "HeaderMap":
        return cls(
            (canonical_header_name(name.decode("latin-1")), value.decode("latin-1"))
            for name, value in raw_headers
        )

    def __getitem__(self, name: str) -> list[str]:
        return self._entries[name.lower()][1]

    def __setitem__(self, name: str, values: list[str]) -> None:
        self._entries[name.lower()] = (name, list(values))

    def __delitem__(self, name: str) -> None:
        del self._entries[name.lower()]

    def __iter__(self) -> Iterator[str]:
        return (name for name, _ in self._entries.values())

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and name.lower() in self._entries

    def add(self, name: str, value: str) -> None:
        key = name.lower()
        if key in self._entries:
            self._entries[key][1].append(value)
        else:
            self._entries[key] = (name, [value])

    def set(self, name: str, value: str) -> None:
        self[name] = [value]

    def get_first(self, name: str) -> str | None:
        values = self.get(name)
        return values[0] if values else None

    def to_asgi(self) -> list[tuple[bytes, bytes]]:
        return [
            (name.encode("latin-1"), value.encode("latin-1"))
            for name, values in self._entries.values()
            for value in values
        ]

    def __repr__(self) -> str:
        return f"{type(self).__name__}({dict(self.items())!r})"


class RequestBody:
    """Readable request body fed by ASGI ``http.request`` messages."""

    def __init__(self, receive: Receive):
        self._receive = receive
        self._consumed = False

    async def chunks(self) -> AsyncIterator[bytes]:
        while not self._consumed:
            message = await self._receive()
            if message["type"] == "http.request":
                if not message.get("more_body", False):
                    self._consumed = True
                body = message.get("body", b"")
                if body:
                    yield body
            elif message["type"] == "http.disconnect":
                self._consumed = True
                raise IOFailure("Client disconnected before the request body was read")

    def __aiter__(self) -> AsyncIterator[bytes]:
        return self.chunks()

    async def read_all(self) -> bytes:
        return b"".join([chunk async for chunk in self.chunks()])


class Exchange:
    """Per-request context handed to the echo engine.

    Must be closed exactly once; use it as an async context manager. On a
    clean exit the response body is terminated, on failure a started response
    is left unterminated so the server aborts the connection.
    """

    def __init__(
        self,
        method: str,
        uri: str,
        protocol: str,
        request_headers: HeaderMap,
        receive: Receive,
        send: Send,
    ):
        self._send = send
        self.method = method
        self.uri = uri
        self.protocol = protocol
        self.request_headers = request_headers
        self.response_headers = HeaderMap()
        self.request_body = RequestBody(receive)
        self._response_body: ResponseBodySink | None = None
        self._closed = False

    @classmethod
    def from_asgi(cls, scope: Scope, receive: Receive, send: Send) -> "Exchange":
        """Build an exchange from an ASGI ``http`` connection scope.

        The URI is the raw request target (path plus query string) and the
        protocol is rendered as ``HTTP/<version>``.
        """
        if scope["type"] != "http":
            raise ValueError(f"Unsupported ASGI scope type: {scope['type']}")
        raw_path = scope.get("raw_path")
        path = raw_path.decode("latin-1") if raw_path else scope.get("path", "/")
        query = scope.get("query_string", b"").decode("latin-1")
        return cls(
            method=scope["method"],
            uri=f"{path}?{query}" if query else path,
            protocol=f"HTTP/{scope.get('http_version', '1.1')}",
            request_headers=HeaderMap.from_asgi(scope.get("headers", [])),
            receive=receive,
            send=send,
        )

    @property
    def response_started(self) -> bool:
        return self._response_body is not None

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def response_body(self) -> ResponseBodySink:
        if self._response_body is None:
            raise IOFailure("Response headers have not been sent")
        return self._response_body

    async def send_response_headers(
        self, status: int, length: int | None
    ) -> ResponseBodySink:
        """Send the status line and headers.

        ``length`` is ``NO_BODY`` for an empty response, ``CHUNKED`` for a body
        of unknown length, or the exact body length.
        """
        if self._closed:
            raise IOFailure("Exchange is closed")
        if self._response_body is not None:
            raise IOFailure("Response headers have already been sent")

        if length is CHUNKED:
            self.response_headers.pop(CONTENT_LENGTH, None)
        else:
            self.response_headers.set(CONTENT_LENGTH, str(max(length, 0)))

        try:
            await self._send(
                {
                    "type": "http.response.start",
                    "status": status,
                    "headers": self.response_headers.to_asgi(),
                }
            )
        except OSError as e:
            raise IOFailure.wrap(e) from e
        self._response_body = ResponseBodySink(self._send)
        return self._response_body

    async def close(self, failed: bool = False) -> None:
        if self._closed:
            return
        self._closed = True
        if self._response_body is not None and not failed:
            await self._response_body.close()

    async def __aenter__(self) -> "Exchange":
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.close(failed=exc_type is not None)
