from __future__ import annotations

from fastapi import HTTPException

from backend.services.errors import (
    ClientNotFound,
    InvalidExpiration,
    InvalidQuantity,
    InvalidStateTransition,
    ProductNotFound,
    ReservationError,
    ReservationNotFound,
)

_STATUS_BY_ERROR: list[tuple[type[ReservationError], int]] = [
    (InvalidQuantity, 400),
    (InvalidExpiration, 400),
    (InvalidStateTransition, 409),
    (ReservationNotFound, 404),
    (ProductNotFound, 404),
    (ClientNotFound, 404),
]


def http_error(exc: ReservationError) -> HTTPException:
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return HTTPException(status_code=status_code, detail=str(exc))
    return HTTPException(status_code=500, detail=str(exc))
