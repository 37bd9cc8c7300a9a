"""Application error types and the JSON envelope shared by every endpoint."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Mapping, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from luxora.core.logging import get_logger
from luxora.middleware.request_tracing import get_request_id

logger = get_logger("errors")


class AppError(Exception):
    """An error that is surfaced to the API caller with a status and code."""

    status_code: int = 500
    default_code: str = "INTERNAL_ERROR"

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        status_code: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        if status_code is not None:
            self.status_code = status_code


class ValidationAppError(AppError):
    status_code = 400
    default_code = "VALIDATION_ERROR"


class AuthenticationError(AppError):
    status_code = 401
    default_code = "UNAUTHORIZED"


class NotFoundError(AppError):
    status_code = 404
    default_code = "NOT_FOUND"


class ConflictError(AppError):
    status_code = 409
    default_code = "CONFLICT"


class ServiceNotConfiguredError(AppError):
    status_code = 503
    default_code = "SERVICE_NOT_CONFIGURED"


class BackendUnavailableError(Exception):
    """Raised by storage/identity clients when the backend can't be reached."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code

    @property
    def not_configured(self) -> bool:
        return "not configured" in self.message


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


def success_response(data: Any, status_code: int = 200) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": True, "data": data, "timestamp": utc_timestamp()},
    )


def error_payload(message: str, code: Optional[str] = None) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "success": False,
        "error": message,
        "timestamp": utc_timestamp(),
    }
    if code:
        payload["code"] = code
    return payload


def validate_request_data(data: Mapping[str, Any] | None, required: Iterable[str]) -> None:
    for field_name in required:
        value = data.get(field_name) if data else None
        if value is None or value == "":
            raise ValidationAppError(
                f"Missing or invalid required field: {field_name}"
            )


def sanitize_input(value: Any) -> str:
    if not isinstance(value, str):
        return ""
    return value.strip().replace("<", "").replace(">", "")


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(AppError)
    async def _handle_app_error(request: Request, exc: AppError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error(
                "%s %s failed: %s [%s]",
                request.method,
                request.url.path,
                exc.message,
                get_request_id(request),
            )
        else:
            logger.info(
                "%s %s rejected (%s): %s",
                request.method,
                request.url.path,
                exc.code,
                exc.message,
            )
        return JSONResponse(
            status_code=exc.status_code, content=error_payload(exc.message, exc.code)
        )

    @app.exception_handler(RequestValidationError)
    async def _handle_validation_error(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        errors = exc.errors()
        first = errors[0] if errors else {}
        location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = first.get("msg", "Invalid request")
        if location:
            message = f"{location}: {message}"
        return JSONResponse(
            status_code=400, content=error_payload(message, "VALIDATION_ERROR")
        )

    @app.exception_handler(Exception)
    async def _handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
        logger.error(
            "Unhandled error on %s %s: %s [%s]",
            request.method,
            request.url.path,
            exc,
            get_request_id(request),
            exc_info=True,
        )
        return JSONResponse(
            status_code=500, content=error_payload("Internal server error", "INTERNAL_ERROR")
        )
