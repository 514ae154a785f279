"""Application errors and the exception handlers that normalize them.

Every error leaving the API has the same JSON shape::

    {"success": false, "status": "fail", "status_code": 400, "message": "..."}

``status`` is ``"fail"`` for 4xx responses and ``"error"`` for everything else.
"""

import logging
import re
import traceback

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from jose import ExpiredSignatureError, JWTError
from sqlalchemy.exc import IntegrityError
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)

GENERIC_ERROR_MESSAGE = "Something went wrong"

# "UNIQUE constraint failed: users.email" (SQLite)
_SQLITE_UNIQUE = re.compile(r"UNIQUE constraint failed: (?:\w+\.)?(\w+)")
# "Key (email)=(a@b.c) already exists." (PostgreSQL)
_POSTGRES_UNIQUE = re.compile(r"Key \((\w+)\)=")
# "Duplicate entry 'a@b.c' for key 'users.email'" (MySQL)
_MYSQL_UNIQUE = re.compile(r"for key '(?:\w+\.)?(\w+)'")


class AppError(Exception):
    """Operational error with an explicit HTTP status code."""

    def __init__(self, message: str, status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.status = "fail" if str(status_code).startswith("4") else "error"
        self.is_operational = True


class BadRequestError(AppError):
    def __init__(self, message: str):
        super().__init__(message, status.HTTP_400_BAD_REQUEST)


class UnauthorizedError(AppError):
    def __init__(self, message: str):
        super().__init__(message, status.HTTP_401_UNAUTHORIZED)


class ForbiddenError(AppError):
    def __init__(self, message: str):
        super().__init__(message, status.HTTP_403_FORBIDDEN)


class NotFoundError(AppError):
    def __init__(self, message: str):
        super().__init__(message, status.HTTP_404_NOT_FOUND)


class ServiceUnavailableError(AppError):
    def __init__(self, message: str):
        super().__init__(message, status.HTTP_503_SERVICE_UNAVAILABLE)


def error_response(status_code: int, message: str, headers: dict[str, str] | None = None) -> JSONResponse:
    """Build the uniform error body."""
    return JSONResponse(
        status_code=status_code,
        content={
            "success": False,
            "status": "fail" if 400 <= status_code < 500 else "error",
            "status_code": status_code,
            "message": message,
        },
        headers=headers,
    )


def _field_name(loc: tuple | list) -> str:
    """Turn a pydantic error location into a dotted field name."""
    parts = [str(part) for part in loc if part not in ("body", "query", "path", "header", "cookie")]
    return ".".join(parts) or "request"


def format_validation_errors(errors: list[dict]) -> str:
    """Join per-field validation errors into a single message."""
    details = [f"{_field_name(err.get('loc', ()))}: {err.get('msg', 'invalid value')}" for err in errors]
    return f"Invalid input data. {'. '.join(details)}"


def duplicate_field(exc: IntegrityError) -> str | None:
    """Return the column named by a unique-constraint violation, if any."""
    text = str(exc.orig) if exc.orig is not None else str(exc)
    for pattern in (_SQLITE_UNIQUE, _POSTGRES_UNIQUE, _MYSQL_UNIQUE):
        match = pattern.search(text)
        if match:
            return match.group(1)
    return None


def _request_context(request: Request) -> dict[str, object]:
    return {
        "method": request.method,
        "url": str(request.url),
        "client": request.client.host if request.client else None,
        "path_params": dict(request.path_params),
        "query_params": dict(request.query_params),
    }


def _is_production(request: Request) -> bool:
    settings = getattr(request.app.state, "settings", None)
    return bool(settings and settings.is_production)


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Pass operational errors through with their own status and message."""
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    else:
        logger.debug("%s %s -> %s %s", request.method, request.url.path, exc.status_code, exc.message)
    return error_response(exc.status_code, exc.message)


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Map request validation failures to 400.

    A path parameter that cannot be parsed (for example a non-numeric id) is a
    cast failure and names the offending value; anything else lists every
    failing field.
    """
    errors = list(exc.errors())
    for err in errors:
        loc = err.get("loc", ())
        if len(loc) == 2 and loc[0] == "path":
            return error_response(status.HTTP_400_BAD_REQUEST, f"Invalid {loc[1]}: {err.get('input')}.")
    return error_response(status.HTTP_400_BAD_REQUEST, format_validation_errors(errors))


async def integrity_error_handler(request: Request, exc: IntegrityError) -> JSONResponse:
    """Duplicate unique keys become 400; other integrity failures are unexpected."""
    field = duplicate_field(exc)
    if field is None:
        return await unhandled_error_handler(request, exc)
    return error_response(
        status.HTTP_400_BAD_REQUEST,
        f"Duplicate field value: {field}. Please use another value!",
    )


async def jwt_error_handler(request: Request, exc: JWTError) -> JSONResponse:
    """Invalid or expired bearer tokens."""
    if isinstance(exc, ExpiredSignatureError):
        message = "Your token has expired! Please log in again."
    else:
        message = "Invalid token. Please log in again!"
    return error_response(status.HTTP_401_UNAUTHORIZED, message, headers={"WWW-Authenticate": "Bearer"})


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Framework HTTP errors (unknown routes, wrong methods)."""
    if exc.status_code == status.HTTP_404_NOT_FOUND and exc.detail == "Not Found":
        message = f"Can't find {request.url.path} on this server!"
    else:
        message = str(exc.detail)
    return error_response(exc.status_code, message, headers=getattr(exc, "headers", None))


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Programmer or runtime faults: generic 500, details only in the log."""
    if _is_production(request):
        logger.error("Unhandled %s on %s %s", type(exc).__name__, request.method, request.url.path)
    else:
        logger.error(
            "Unhandled exception: %s\nrequest=%s\n%s",
            exc,
            _request_context(request),
            "".join(traceback.format_exception(type(exc), exc, exc.__traceback__)),
        )
    return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, GENERIC_ERROR_MESSAGE)


def register_exception_handlers(app: FastAPI) -> None:
    """Install the error handlers on the application."""
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(IntegrityError, integrity_error_handler)
    app.add_exception_handler(JWTError, jwt_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
