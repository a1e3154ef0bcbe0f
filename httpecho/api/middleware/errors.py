"""Error handlers for the echo application."""

from collections.abc import Awaitable, Callable

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from structlog import get_logger

from httpecho.core.errors import EchoError, MalformedRequestMetadata


logger = get_logger(__name__)

# Errors that are always raised before the response starts and can therefore
# still be answered with a JSON error body.
ERROR_MAPPINGS: dict[type[EchoError], tuple[int | None, str]] = {
    MalformedRequestMetadata: (None, "malformed_request_metadata"),
}


def setup_error_handlers(app: FastAPI) -> None:
    """Setup error handlers for the FastAPI application.

    Failures after the response has started are not handled here; they
    propagate to the server, which aborts the connection.

    Args:
        app: FastAPI application instance
    """
    logger.debug("error_handlers_setup_start")

    async def echo_error_handler(
        request: Request,
        exc: Exception,
        status_code: int | None = None,
        error_type: str | None = None,
    ) -> JSONResponse:
        if status_code is None:
            status_code = getattr(exc, "status_code", 500)
        if error_type is None:
            error_type = getattr(exc, "error_type", "unknown_error")

        logger.warning(
            "request_rejected",
            error_type=error_type,
            error_message=str(exc),
            status_code=status_code,
            request_method=request.method,
            request_url=str(request.url.path),
            details=getattr(exc, "details", None),
        )

        return JSONResponse(
            status_code=status_code,
            content={
                "error": {
                    "type": error_type,
                    "message": str(exc),
                }
            },
        )

    def make_handler(
        status_code: int | None, error_type: str
    ) -> Callable[[Request, Exception], Awaitable[JSONResponse]]:
        async def handler(request: Request, exc: Exception) -> JSONResponse:
            return await echo_error_handler(request, exc, status_code, error_type)

        return handler

    for exc_class, (status, err_type) in ERROR_MAPPINGS.items():
        app.add_exception_handler(exc_class, make_handler(status, err_type))

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Report failures that happened before the response started."""
        logger.error(
            "unhandled_exception",
            error_type=type(exc).__name__,
            error_message=str(exc),
            request_method=request.method,
            request_url=str(request.url.path),
            exc_info=exc,
        )
        return JSONResponse(
            status_code=500,
            content={
                "error": {
                    "type": "internal_server_error",
                    "message": "Internal server error occurred",
                }
            },
        )

    logger.debug("error_handlers_setup_complete", handlers=len(ERROR_MAPPINGS) + 1)
