from __future__ import annotations

from typing import Any, cast

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from rsv.api.middleware.request_id import get_request_id
from rsv.application.use_cases.availability import InvalidPartySizeError, TableNotFoundError
from rsv.application.use_cases.cancel_reservation import InvalidReservationTransitionError
from rsv.application.use_cases.create_reservation import (
    AvailabilityConflictError,
    BookingValidationError,
)
from rsv.application.use_cases.get_reservation import (
    ReservationChangedError,
    ReservationNotFoundError,
)
from rsv.application.use_cases.modify_reservation import ReservationNotModifiableError
from rsv.application.use_cases.refund_reservation import (
    AlreadyRefundedError,
    NotRefundableError,
    PaymentCollaboratorError,
)
from rsv.application.use_cases.table_blocks import (
    TableBlockConflictError,
    TableBlockNotFoundError,
)
from rsv.domain.calendar.slots import InvalidSlotFormatError


def _error_response(
    *,
    status_code: int,
    code: str,
    message: str,
    details: dict[str, Any] | None = None,
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "error": {
                "code": code,
                "message": message,
                "details": details or {},
            },
            "requestId": get_request_id(),
        },
    )


def _exception_handler(status_code: int, code: str):
    async def handler(_: Request, exc: Exception) -> JSONResponse:
        details = getattr(exc, "details", None)
        return _error_response(
            status_code=status_code,
            code=code,
            message=str(exc),
            details=details if isinstance(details, dict) else None,
        )

    return handler


async def _http_exception_handler(_: Request, exc: Exception) -> JSONResponse:
    http_exc = cast(StarletteHTTPException, exc)
    message = str(http_exc.detail) if http_exc.detail else "request failed"
    code = "HTTP_ERROR"
    if http_exc.status_code == 404:
        code = "NOT_FOUND"
    elif http_exc.status_code == 400:
        code = "BAD_REQUEST"
    elif http_exc.status_code == 405:
        code = "METHOD_NOT_ALLOWED"
    return _error_response(status_code=http_exc.status_code, code=code, message=message)


def _public_error(error: Any) -> dict[str, Any]:
    return {key: value for key, value in error.items() if key in ("type", "loc", "msg")}


async def _validation_exception_handler(_: Request, exc: Exception) -> JSONResponse:
    validation_exc = cast(RequestValidationError, exc)
    return _error_response(
        status_code=400,
        code="INVALID_REQUEST",
        message="request validation failed",
        details={"errors": [_public_error(error) for error in validation_exc.errors()]},
    )


def register_exception_handlers(app: FastAPI) -> None:
    mappings: list[tuple[type[Exception], int, str]] = [
        (BookingValidationError, 400, "VALIDATION_ERROR"),
        (InvalidPartySizeError, 400, "INVALID_PARTY_SIZE"),
        (InvalidSlotFormatError, 400, "INVALID_TIME_SLOT"),
        (TableNotFoundError, 404, "TABLE_NOT_FOUND"),
        (ReservationNotFoundError, 404, "RESERVATION_NOT_FOUND"),
        (TableBlockNotFoundError, 404, "TABLE_BLOCK_NOT_FOUND"),
        (AvailabilityConflictError, 409, "AVAILABILITY_CONFLICT"),
        (ReservationNotModifiableError, 409, "RESERVATION_NOT_MODIFIABLE"),
        (InvalidReservationTransitionError, 409, "INVALID_RESERVATION_TRANSITION"),
        (ReservationChangedError, 409, "RESERVATION_CHANGED"),
        (AlreadyRefundedError, 409, "ALREADY_REFUNDED"),
        (TableBlockConflictError, 409, "TABLE_BLOCK_CONFLICT"),
        (NotRefundableError, 422, "NOT_REFUNDABLE"),
        (PaymentCollaboratorError, 502, "PAYMENT_FAILED"),
    ]

    for exc_cls, status_code, code in mappings:
        app.add_exception_handler(exc_cls, _exception_handler(status_code, code))

    app.add_exception_handler(StarletteHTTPException, _http_exception_handler)
    app.add_exception_handler(RequestValidationError, _validation_exception_handler)
