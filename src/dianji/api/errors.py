"""Exception handlers — one JSON error shape for every failure.

Learn: services raise DianjiError subclasses; this module renders them as
{"error": message, "code": code} with the subclass's status. Body
validation errors become a 400 carrying the first field message. Anything
unexpected is logged with its traceback and answered with a generic 500,
so stack traces and driver messages never reach the client.
"""

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from dianji.errors import DianjiError, RateLimitedError
from dianji.schemas.auth import INVALID_EMAIL_MESSAGE

# Fields whose library-generated messages are replaced for display
_FIELD_MESSAGES = {"email": INVALID_EMAIL_MESSAGE}

logger = structlog.get_logger()


def error_response(status_code: int, message: str, code: str, **extra) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message, "code": code, **extra})


def _first_validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid input"
    first = errors[0]
    loc = first.get("loc") or ()
    if loc and loc[-1] in _FIELD_MESSAGES:
        return _FIELD_MESSAGES[loc[-1]]
    message = str(first.get("msg", "Invalid input"))
    # pydantic prefixes messages raised from validators
    return message.removeprefix("Value error, ")


def register_exception_handlers(app: FastAPI) -> None:
    """Install handlers for domain errors, validation errors and crashes."""

    @app.exception_handler(DianjiError)
    async def handle_dianji_error(request: Request, exc: DianjiError):
        log_fn = logger.error if exc.status_code >= 500 else logger.info
        log_fn(
            "request.rejected",
            path=request.url.path,
            method=request.method,
            status_code=exc.status_code,
            error_code=exc.code,
        )
        if isinstance(exc, RateLimitedError):
            response = error_response(
                exc.status_code, exc.message, exc.code, retryAfter=exc.retry_after
            )
            response.headers["Retry-After"] = str(exc.retry_after)
            return response
        return error_response(exc.status_code, exc.message, exc.code)

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError):
        return error_response(400, _first_validation_message(exc), "validation_error")

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(request: Request, exc: StarletteHTTPException):
        if exc.status_code == 404:
            return error_response(404, "Not Found", "not_found")
        return error_response(exc.status_code, str(exc.detail), "http_error")

    @app.exception_handler(Exception)
    async def handle_unexpected(request: Request, exc: Exception):
        logger.exception("request.crashed", path=request.url.path, method=request.method)
        response = error_response(500, "Internal server error", "server_error")
        request_id = getattr(request.state, "request_id", None)
        if request_id:
            response.headers["X-Request-ID"] = request_id
        return response
