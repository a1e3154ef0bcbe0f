"""Shared test fixtures for the httpecho tests.

Fixtures build real components around in-memory ASGI plumbing; only the
network is replaced.
"""

import io
from collections.abc import Callable, Iterator
from typing import Any

import pytest
import structlog
from fastapi import FastAPI
from fastapi.testclient import TestClient

from httpecho.api.app import create_app
from httpecho.config.echo import EchoSettings
from httpecho.config.logging import LoggingSettings
from httpecho.config.server import ServerSettings
from httpecho.config.settings import Settings
from httpecho.core.logging import setup_logging


def pytest_configure(config: pytest.Config) -> None:
    """Configure pytest with custom settings."""
    config.option.asyncio_mode = "auto"

    # Reuse the application logging pipeline so structlog behaves as in production.
    setup_logging(json_logs=False, log_level_name="DEBUG")
    # structlog.testing.capture_logs only sees loggers that are not cached.
    structlog.configure(cache_logger_on_first_use=False)


class RecordingSink:
    """In-memory sink recording every call made on it."""

    def __init__(self, fail_on: set[str] | None = None, error: Exception | None = None):
        self.data = bytearray()
        self.calls: list[str] = []
        self.closed = False
        self.fail_on = fail_on or set()
        self.error = error or OSError("sink failure")

    def _record(self, name: str) -> None:
        self.calls.append(name)
        if name in self.fail_on:
            raise self.error

    async def write(self, data: bytes | bytearray | memoryview) -> None:
        self._record("write")
        self.data.extend(data)

    async def flush(self) -> None:
        self._record("flush")

    async def close(self) -> None:
        self._record("close")
        self.closed = True


class ASGIRecorder:
    """Collects ASGI messages sent by an application."""

    def __init__(self, body_messages: list[dict[str, Any]] | None = None):
        self.sent: list[dict[str, Any]] = []
        self._incoming = list(body_messages or [{"type": "http.request", "body": b""}])

    async def receive(self) -> dict[str, Any]:
        if self._incoming:
            return self._incoming.pop(0)
        return {"type": "http.disconnect"}

    async def send(self, message: dict[str, Any]) -> None:
        self.sent.append(message)

    @property
    def start(self) -> dict[str, Any]:
        starts = [m for m in self.sent if m["type"] == "http.response.start"]
        assert len(starts) == 1
        return starts[0]

    @property
    def status(self) -> int:
        return int(self.start["status"])

    @property
    def headers(self) -> list[tuple[str, str]]:
        return [(k.decode("latin-1"), v.decode("latin-1")) for k, v in self.start["headers"]]

    def header(self, name: str) -> str | None:
        for key, value in self.headers:
            if key.lower() == name.lower():
                return value
        return None

    @property
    def body(self) -> bytes:
        return b"".join(
            m.get("body", b"") for m in self.sent if m["type"] == "http.response.body"
        )

    @property
    def finished(self) -> bool:
        bodies = [m for m in self.sent if m["type"] == "http.response.body"]
        return bool(bodies) and not bodies[-1].get("more_body", False)


def _make_scope(
    method: str = "GET",
    path: str = "/",
    headers: list[tuple[str, str]] | None = None,
    query_string: bytes = b"",
) -> dict[str, Any]:
    return {
        "type": "http",
        "asgi": {"version": "3.0"},
        "http_version": "1.1",
        "method": method,
        "scheme": "http",
        "path": path,
        "raw_path": path.encode("latin-1"),
        "query_string": query_string,
        "root_path": "",
        "headers": [
            (k.lower().encode("latin-1"), v.encode("latin-1"))
            for k, v in (headers or [])
        ],
        "client": ("127.0.0.1", 50000),
        "server": ("testserver", 80),
    }


@pytest.fixture
def make_scope() -> Callable[..., dict[str, Any]]:
    return _make_scope


@pytest.fixture
def recording_sink() -> Callable[..., RecordingSink]:
    return RecordingSink


@pytest.fixture
def asgi_recorder() -> Callable[..., ASGIRecorder]:
    return ASGIRecorder


@pytest.fixture
def console() -> io.BytesIO:
    return io.BytesIO()


@pytest.fixture
def settings_factory() -> Callable[..., Settings]:
    """Build frozen settings without reading the environment or config files."""

    def factory(
        prefix: str = "X-Echo-",
        suffix: str = "",
        wait: bool = False,
        verbose: bool = False,
        verbose_headers: bool = False,
        verbose_body: bool = False,
    ) -> Settings:
        return Settings.model_construct(
            server=ServerSettings(),
            echo=EchoSettings(prefix=prefix, suffix=suffix, wait=wait),
            logging=LoggingSettings(
                verbose=verbose,
                verbose_headers=verbose_headers,
                verbose_body=verbose_body,
            ),
        )

    return factory


@pytest.fixture
def app(settings_factory: Callable[..., Settings]) -> FastAPI:
    return create_app(settings_factory())


@pytest.fixture
def client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app) as test_client:
        yield test_client
