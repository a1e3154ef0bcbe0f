"""Fan-out sink broadcasting every operation to several destinations."""

from collections.abc import Awaitable, Callable, Iterable
from types import TracebackType

import structlog

from httpecho.core.errors import InvalidConfiguration, IOFailure

from .sinks import AsyncSink, Buffer


logger = structlog.get_logger(__name__)

SinkOperation = Callable[[AsyncSink], Awaitable[None]]


class MultiplexedSink:
    """Broadcasts writes to an ordered list of sinks.

    The list order is the write order. Nothing is buffered: each call is
    forwarded to every destination before it returns.

    With ``fail_fast`` the first failing destination aborts the call and the
    remaining destinations are skipped. Without it every destination is
    attempted and the failures are reported together as one ``IOFailure``
    whose ``primary`` is the first failure and whose ``suppressed`` list holds
    the rest.

    ``close()`` only reaches the destinations when ``auto_close`` is set.
    """

    def __init__(
        self,
        destinations: Iterable[AsyncSink | None],
        auto_close: bool = False,
        fail_fast: bool = False,
    ) -> None:
        """
        Args:
            destinations: Sinks to broadcast to. ``None`` entries are rejected
                with ``fail_fast`` and dropped otherwise.
            auto_close: Close all destinations when this sink is closed
            fail_fast: Abort an operation as soon as one destination fails
        """
        if fail_fast:
            checked = []
            for index, destination in enumerate(destinations):
                if destination is None:
                    raise InvalidConfiguration(
                        f"Destination {index} of a fail-fast multiplexed sink is missing"
                    )
                checked.append(destination)
            self._destinations: tuple[AsyncSink, ...] = tuple(checked)
        else:
            self._destinations = tuple(d for d in destinations if d is not None)
        self._auto_close = auto_close
        self._fail_fast = fail_fast

    @property
    def destinations(self) -> tuple[AsyncSink, ...]:
        return self._destinations

    @property
    def auto_close(self) -> bool:
        return self._auto_close

    @property
    def fail_fast(self) -> bool:
        return self._fail_fast

    async def _run(self, name: str, operation: SinkOperation) -> None:
        if self._fail_fast:
            for destination in self._destinations:
                try:
                    await operation(destination)
                except IOFailure:
                    raise
                except OSError as e:
                    raise IOFailure.wrap(e) from e
            return

        failure: IOFailure | None = None
        for index, destination in enumerate(self._destinations):
            try:
                await operation(destination)
            except (OSError, IOFailure) as e:
                logger.debug(
                    "sink_operation_failed",
                    operation=name,
                    destination=index,
                    error=str(e),
                )
                if failure is None:
                    failure = IOFailure(
                        f"{name} failed on destination {index}: {e}", primary=e
                    )
                else:
                    failure.add_suppressed(e)
        if failure is not None:
            raise failure from failure.primary

    async def write(
        self, data: Buffer, offset: int = 0, length: int | None = None
    ) -> None:
        """Write ``data[offset:offset + length]`` to every destination."""
        view = memoryview(data)
        if length is None:
            length = len(view) - offset
        if offset < 0 or length < 0 or offset + length > len(view):
            raise IndexError(
                f"offset={offset}, length={length} out of range for {len(view)} bytes"
            )
        if offset or length != len(view):
            view = view[offset : offset + length]
        await self._run("write", lambda destination: destination.write(view))

    async def write_byte(self, value: int) -> None:
        """Write the low eight bits of ``value`` to every destination."""
        payload = bytes((value & 0xFF,))
        await self._run("write", lambda destination: destination.write(payload))

    async def flush(self) -> None:
        await self._run("flush", lambda destination: destination.flush())

    async def close(self) -> None:
        if self._auto_close:
            await self._run("close", lambda destination: destination.close())

    async def __aenter__(self) -> "MultiplexedSink":
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.close()
