"""Streaming sinks for request body passthrough."""

from .multiplex import MultiplexedSink
from .sinks import AsyncSink, ResponseBodySink, StreamSink


__all__ = ["AsyncSink", "MultiplexedSink", "ResponseBodySink", "StreamSink"]
