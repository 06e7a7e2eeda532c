"""Domain error taxonomy and its HTTP rendering."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class DomainError(RuntimeError):
    """Base error carrying a machine readable code and an HTTP status."""

    code = "SERVER_ERROR"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, code: str | None = None, message: str | None = None) -> None:
        if code is not None:
            self.code = code
        super().__init__(message or self.code)


class Unauthorized(DomainError):
    """No session, an unknown token or an expired session."""

    code = "UNAUTHORIZED"
    status_code = status.HTTP_401_UNAUTHORIZED


class InvalidCredentials(DomainError):
    code = "INVALID_CREDENTIALS"
    status_code = status.HTTP_401_UNAUTHORIZED


class AccountDisabled(DomainError):
    """The session is valid but the account was deactivated."""

    code = "ACCOUNT_DISABLED"
    status_code = status.HTTP_403_FORBIDDEN


class Forbidden(DomainError):
    code = "FORBIDDEN"
    status_code = status.HTTP_403_FORBIDDEN


class NotFound(DomainError):
    code = "NOT_FOUND"
    status_code = status.HTTP_404_NOT_FOUND


class InvalidInput(DomainError):
    """Malformed or incomplete input; ``code`` names the offending rule."""

    code = "MISSING_FIELDS"
    status_code = status.HTTP_400_BAD_REQUEST


class Conflict(DomainError):
    code = "EMAIL_EXISTS"
    status_code = status.HTTP_409_CONFLICT


class CannotDelete(DomainError):
    code = "CANNOT_DELETE"
    status_code = status.HTTP_400_BAD_REQUEST


class NotResolved(DomainError):
    code = "NOT_RESOLVED"
    status_code = status.HTTP_400_BAD_REQUEST


class PayloadTooLarge(DomainError):
    code = "FILE_TOO_LARGE"
    status_code = status.HTTP_413_REQUEST_ENTITY_TOO_LARGE


def error_response(status_code: int, code: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": code})


async def _domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
    return error_response(exc.status_code, exc.code)


async def _validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    missing = any(error.get("type") == "missing" for error in exc.errors())
    return error_response(status.HTTP_400_BAD_REQUEST, "MISSING_FIELDS" if missing else "INVALID_INPUT")


_HTTP_CODES = {
    status.HTTP_401_UNAUTHORIZED: "UNAUTHORIZED",
    status.HTTP_403_FORBIDDEN: "FORBIDDEN",
    status.HTTP_404_NOT_FOUND: "NOT_FOUND",
    status.HTTP_405_METHOD_NOT_ALLOWED: "METHOD_NOT_ALLOWED",
    status.HTTP_413_REQUEST_ENTITY_TOO_LARGE: "FILE_TOO_LARGE",
    status.HTTP_503_SERVICE_UNAVAILABLE: "SERVICE_UNAVAILABLE",
}


async def _http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    response = error_response(exc.status_code, _HTTP_CODES.get(exc.status_code, f"HTTP_{exc.status_code}"))
    if exc.headers:
        response.headers.update(exc.headers)
    return response


async def _unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "SERVER_ERROR")


def install_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(DomainError, _domain_error_handler)
    app.add_exception_handler(StarletteHTTPException, _http_error_handler)
    app.add_exception_handler(RequestValidationError, _validation_error_handler)
    app.add_exception_handler(Exception, _unexpected_error_handler)
