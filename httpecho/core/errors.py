"""Error taxonomy for the echo server."""

from typing import Any


class EchoError(Exception):
    """Base exception for echo server errors."""

    def __init__(
        self,
        message: str,
        error_type: str = "internal_server_error",
        status_code: int = 500,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.error_type = error_type
        self.status_code = status_code
        self.details = details or {}


class IOFailure(EchoError):
    """Read, write, flush or close failure on a request-scoped stream.

    When several destinations fail during one operation, ``primary`` holds the
    first failure and ``suppressed`` every later one, in the order they
    happened.
    """

    def __init__(
        self,
        message: str,
        primary: BaseException | None = None,
        suppressed: list[BaseException] | None = None,
    ) -> None:
        super().__init__(message=message, error_type="io_failure", status_code=500)
        self.primary = primary
        self.suppressed: list[BaseException] = list(suppressed or [])

    @classmethod
    def wrap(cls, exc: BaseException) -> "IOFailure":
        """Wrap ``exc`` unless it already is an ``IOFailure``."""
        if isinstance(exc, IOFailure):
            return exc
        return cls(f"{type(exc).__name__}: {exc}", primary=exc)

    def add_suppressed(self, exc: BaseException) -> None:
        self.suppressed.append(exc)

    @property
    def causes(self) -> list[BaseException]:
        """Every contributing failure, primary first."""
        head = [self.primary] if self.primary is not None else []
        return head + self.suppressed


class InvalidConfiguration(EchoError):
    """A component was constructed with an unusable configuration."""

    def __init__(self, message: str) -> None:
        super().__init__(
            message=message, error_type="invalid_configuration", status_code=500
        )


class MalformedRequestMetadata(EchoError):
    """Request metadata, such as ``Content-Length``, could not be parsed (400)."""

    def __init__(self, header: str, value: str) -> None:
        super().__init__(
            message=f"Malformed {header} header: {value!r}",
            error_type="malformed_request_metadata",
            status_code=400,
            details={"header": header, "value": value},
        )
        self.header = header
        self.value = value


class ConfigurationError(Exception):
    """Raised when configuration loading or validation fails."""

    pass


__all__ = [
    "ConfigurationError",
    "EchoError",
    "IOFailure",
    "InvalidConfiguration",
    "MalformedRequestMetadata",
]
