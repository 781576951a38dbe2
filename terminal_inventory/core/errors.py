from __future__ import annotations

import logging
from typing import Any

from fastapi import Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette import status
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class InventoryError(Exception):
    """Base class for every failure raised by the device store.

    Each subclass pins a stable ``code`` and HTTP ``status_code`` so the API
    layer can render it without knowing the concrete type.
    """

    code = "inventory_error"
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str, *, details: Any | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details


class ValidationError(InventoryError):
    """Rejected locally before anything reaches the database."""

    code = "validation_error"
    status_code = 422


class DuplicateSerialError(InventoryError):
    code = "duplicate_serial"
    status_code = status.HTTP_409_CONFLICT


class InvalidStateError(InventoryError):
    """Checkout of a checked-out device, or return of an available one."""

    code = "invalid_state"
    status_code = status.HTTP_409_CONFLICT


class DeviceNotFoundError(InventoryError):
    code = "device_not_found"
    status_code = status.HTTP_404_NOT_FOUND


class PersistenceError(InventoryError):
    code = "persistence_error"
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE


class ErrorEnvelope(JSONResponse):
    def __init__(
        self,
        *,
        status_code: int,
        code: str,
        message: str,
        details: Any | None = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        payload: dict[str, Any] = {"code": code, "message": message}
        if details is not None:
            payload["details"] = details
        super().__init__(payload, status_code=status_code, headers=headers)


async def inventory_exception_handler(request: Request, exc: InventoryError):
    logger.info(
        "request.rejected",
        extra={"extra_data": {"code": exc.code, "path": request.url.path}},
    )
    return ErrorEnvelope(
        status_code=exc.status_code,
        code=exc.code,
        message=exc.message,
        details=exc.details,
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    detail = exc.detail
    message = detail if isinstance(detail, str) else "Error"
    details = detail if isinstance(detail, dict) else None
    return ErrorEnvelope(
        status_code=exc.status_code,
        code="http_error",
        message=message,
        details=details,
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return ErrorEnvelope(
        status_code=422,
        code="validation_error",
        message="Validation failed",
        details={"errors": jsonable_encoder(exc.errors())},
    )


__all__ = [
    "DeviceNotFoundError",
    "DuplicateSerialError",
    "ErrorEnvelope",
    "InvalidStateError",
    "InventoryError",
    "PersistenceError",
    "ValidationError",
    "http_exception_handler",
    "inventory_exception_handler",
    "validation_exception_handler",
]
