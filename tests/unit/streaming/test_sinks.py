"""Tests for the stream and response body sinks."""

import io

import pytest

from httpecho.core.errors import IOFailure
from httpecho.streaming.sinks import AsyncSink, ResponseBodySink, StreamSink


@pytest.mark.unit
class TestStreamSink:
    async def test_writes_go_to_the_underlying_stream(self):
        buffer = io.BytesIO()
        sink = StreamSink(buffer)

        await sink.write(b"abc")
        await sink.write(memoryview(b"defgh")[1:3])

        assert buffer.getvalue() == b"abcef"

    async def test_close_keeps_underlying_stream_open_by_default(self):
        buffer = io.BytesIO()

        await StreamSink(buffer).close()

        assert not buffer.closed

    async def test_close_underlying(self):
        buffer = io.BytesIO()

        await StreamSink(buffer, close_underlying=True).close()

        assert buffer.closed

    async def test_write_to_closed_stream_is_an_io_failure(self):
        buffer = io.BytesIO()
        buffer.close()

        with pytest.raises(IOFailure):
            await StreamSink(buffer).write(b"x")

    def test_satisfies_protocol(self):
        assert isinstance(StreamSink(io.BytesIO()), AsyncSink)


@pytest.mark.unit
class TestResponseBodySink:
    async def test_write_sends_body_chunks(self, asgi_recorder):
        recorder = asgi_recorder()
        sink = ResponseBodySink(recorder.send)

        await sink.write(b"hel")
        await sink.write(b"")
        await sink.write(bytearray(b"lo"))

        assert recorder.sent == [
            {"type": "http.response.body", "body": b"hel", "more_body": True},
            {"type": "http.response.body", "body": b"lo", "more_body": True},
        ]
        assert sink.bytes_written == 5

    async def test_close_terminates_the_body_once(self, asgi_recorder):
        recorder = asgi_recorder()
        sink = ResponseBodySink(recorder.send)

        await sink.close()
        await sink.close()

        assert recorder.sent == [
            {"type": "http.response.body", "body": b"", "more_body": False}
        ]
        assert sink.closed

    async def test_write_after_close_fails(self, asgi_recorder):
        sink = ResponseBodySink(asgi_recorder().send)
        await sink.close()

        with pytest.raises(IOFailure):
            await sink.write(b"late")

    async def test_transport_errors_become_io_failures(self):
        error = ConnectionResetError("peer reset")

        async def send(message):
            raise error

        with pytest.raises(IOFailure) as exc_info:
            await ResponseBodySink(send).write(b"data")

        assert exc_info.value.primary is error
