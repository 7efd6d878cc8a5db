"""Tagged application errors.

Every failure the API reports carries a kind so that callers can tell a
rejected request apart from a transient outage and decide whether to retry.
"""

import logging
from enum import Enum
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import OperationalError, SQLAlchemyError

logger = logging.getLogger(__name__)


class ErrorKind(str, Enum):
    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    UNAUTHORIZED = "unauthorized"
    FORBIDDEN = "forbidden"
    NETWORK = "network"
    SERVER = "server"


STATUS_BY_KIND = {
    ErrorKind.VALIDATION: 422,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.CONFLICT: 409,
    ErrorKind.UNAUTHORIZED: 401,
    ErrorKind.FORBIDDEN: 403,
    ErrorKind.NETWORK: 503,
    ErrorKind.SERVER: 500,
}

RETRYABLE_KINDS = {ErrorKind.NETWORK}


class AppError(Exception):
    def __init__(self, kind: ErrorKind, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.details = details or {}

    @property
    def status_code(self) -> int:
        return STATUS_BY_KIND[self.kind]

    @property
    def retryable(self) -> bool:
        return self.kind in RETRYABLE_KINDS

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "message": self.message,
            "retryable": self.retryable,
            "details": self.details,
        }


def validation_error(message: str, **details: Any) -> AppError:
    return AppError(ErrorKind.VALIDATION, message, details)


def not_found(message: str, **details: Any) -> AppError:
    return AppError(ErrorKind.NOT_FOUND, message, details)


def conflict(message: str, **details: Any) -> AppError:
    return AppError(ErrorKind.CONFLICT, message, details)


def from_database_error(exc: SQLAlchemyError) -> AppError:
    if isinstance(exc, OperationalError):
        return AppError(ErrorKind.NETWORK, "Database is unavailable")
    return AppError(ErrorKind.SERVER, "Database error")


def _error_response(error: AppError) -> JSONResponse:
    return JSONResponse(status_code=error.status_code, content={"error": error.to_dict()})


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(AppError)
    async def handle_app_error(request: Request, exc: AppError):
        return _error_response(exc)

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        error = validation_error("Invalid request", errors=jsonable_errors(exc))
        return _error_response(error)

    @app.exception_handler(SQLAlchemyError)
    async def handle_database_error(request: Request, exc: SQLAlchemyError):
        logger.error("Database failure on %s %s", request.method, request.url.path, exc_info=exc)
        return _error_response(from_database_error(exc))


def jsonable_errors(exc: RequestValidationError) -> list[dict[str, Any]]:
    return [
        {"loc": [str(part) for part in err.get("loc", ())], "msg": err.get("msg", "")}
        for err in exc.errors()
    ]
