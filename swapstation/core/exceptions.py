"""Custom exception types for domain and API layers."""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

logger = logging.getLogger(__name__)


class AppError(Exception):
    """Base app exception."""

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str, errors: Optional[Dict[str, str]] = None):
        super().__init__(message)
        self.message = message
        self.errors = errors or {}


class ValidationError(AppError):
    """Validation failure for user input."""

    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY


class NotFoundError(AppError):
    """Requested record does not exist or is not visible to the caller."""

    status_code = status.HTTP_404_NOT_FOUND


class ConflictError(AppError):
    """Uniqueness violation, e.g. duplicate email or VIN."""

    status_code = status.HTTP_409_CONFLICT


class AuthenticationError(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED


class PermissionDeniedError(AppError):
    status_code = status.HTTP_403_FORBIDDEN


class AvailabilityError(AppError):
    """Station has no free battery of the requested type."""

    status_code = status.HTTP_409_CONFLICT


class BookingStateError(AppError):
    """Illegal booking or kiosk state transition."""

    status_code = status.HTTP_409_CONFLICT


def error_body(message: str, errors: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
    body: Dict[str, Any] = {"success": False, "message": message}
    if errors:
        body["errors"] = errors
    return body


def _field_name(loc: tuple) -> str:
    parts = [str(p) for p in loc if p not in ("body", "query", "path")]
    return ".".join(parts) or "__root__"


def _clean_message(message: str) -> str:
    # pydantic prefixes custom ValueError messages with "Value error, ".
    prefix = "Value error, "
    return message[len(prefix):] if message.startswith(prefix) else message


def validation_errors_to_fields(errors: list[dict]) -> Dict[str, str]:
    """Collapse pydantic error entries to the first message per field."""
    fields: Dict[str, str] = {}
    for err in errors:
        name = _field_name(tuple(err.get("loc", ())))
        fields.setdefault(name, _clean_message(str(err.get("msg", ""))))
    return fields


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("Unhandled application error on %s: %s", request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=error_body(exc.message, exc.errors))


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(str(exc.detail)),
        headers=getattr(exc, "headers", None),
    )


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    fields = validation_errors_to_fields(exc.errors())
    first = next(iter(fields.values()), "Dữ liệu không hợp lệ")
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=error_body(first, fields),
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
