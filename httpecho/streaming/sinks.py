"""Asynchronous write destinations used by the echo pipeline."""

from typing import BinaryIO, Protocol, runtime_checkable

from starlette.types import Send

from httpecho.core.errors import IOFailure


Buffer = bytes | bytearray | memoryview


@runtime_checkable
class AsyncSink(Protocol):
    """A writable byte destination."""

    async def write(self, data: Buffer) -> None: ...

    async def flush(self) -> None: ...

    async def close(self) -> None: ...


class StreamSink:
    """Adapts a blocking binary stream such as ``sys.stdout.buffer``.

    Writes go straight to the underlying stream; ``close()`` only closes it when
    ``close_underlying`` is set, so process-wide streams survive a request.
    """

    def __init__(self, stream: BinaryIO, close_underlying: bool = False):
        self._stream = stream
        self._close_underlying = close_underlying

    async def write(self, data: Buffer) -> None:
        try:
            self._stream.write(data)
        except ValueError as e:
            # writing to a closed file
            raise IOFailure.wrap(e) from e

    async def flush(self) -> None:
        try:
            self._stream.flush()
        except ValueError as e:
            raise IOFailure.wrap(e) from e

    async def close(self) -> None:
        if self._close_underlying:
            self._stream.close()
        else:
            await self.flush()


class ResponseBodySink:
    """Response body of one exchange, written as ASGI body messages."""

    def __init__(self, send: Send):
        self._send = send
        self._closed = False
        self.bytes_written = 0

    @property
    def closed(self) -> bool:
        return self._closed

    async def write(self, data: Buffer) -> None:
        if self._closed:
            raise IOFailure("Response body is already closed")
        if not data:
            return
        await self._send_body(bytes(data), more_body=True)
        self.bytes_written += len(data)

    async def flush(self) -> None:
        if self._closed:
            raise IOFailure("Response body is already closed")

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        await self._send_body(b"", more_body=False)

    async def _send_body(self, body: bytes, more_body: bool) -> None:
        try:
            await self._send(
                {"type": "http.response.body", "body": body, "more_body": more_body}
            )
        except OSError as e:
            raise IOFailure.wrap(e) from e
