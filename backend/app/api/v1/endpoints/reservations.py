from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from backend.app.api.deps import get_db
from backend.app.api.errors import http_error
from backend.app.db.models.core_types import ReservationStatus
from backend.app.schemas.reservation import (
    ReservationCreate,
    ReservationFulfill,
    ReservationRead,
)
from backend.services.errors import ReservationError
from backend.services.reservations import (
    cancel_reservation,
    create_reservation,
    fulfill_reservation,
    get_reservation,
    list_expired,
    list_reservations,
)
from backend.services.stock_counters import reservations_today

router = APIRouter(prefix="/reservations")


@router.get("", response_model=list[ReservationRead])
def get_reservations(
    organization_id: int | None = None,
    product_id: int | None = None,
    client_id: int | None = None,
    status: list[ReservationStatus] | None = Query(default=None),
    db: Session = Depends(get_db),
):
    return list_reservations(
        db,
        organization_id=organization_id,
        product_id=product_id,
        client_id=client_id,
        statuses=status,
    )


@router.get("/expired", response_model=list[ReservationRead])
def get_expired_reservations(
    as_of: date | None = None,
    db: Session = Depends(get_db),
):
    """
    Réservations ACTIVE échues (READ ONLY).
    Ce que le prochain sweep passera en EXPIRED.
    """
    return list_expired(db, as_of or reservations_today())


@router.get("/{reservation_id}", response_model=ReservationRead)
def get_one_reservation(reservation_id: int, db: Session = Depends(get_db)):
    try:
        return get_reservation(db, reservation_id)
    except ReservationError as exc:
        raise http_error(exc) from exc


@router.post("", response_model=ReservationRead, status_code=201)
def post_reservation(payload: ReservationCreate, db: Session = Depends(get_db)):
    try:
        reservation = create_reservation(
            db,
            organization_id=payload.organization_id,
            product_id=payload.product_id,
            quantity=payload.quantity,
            expiration_date=payload.expiration_date,
            client_id=payload.client_id,
            notes=payload.notes,
        )
    except ReservationError as exc:
        raise http_error(exc) from exc

    # réservation + reserved_stock dans le même commit
    db.commit()
    db.refresh(reservation)
    return reservation


@router.post("/{reservation_id}/fulfill", response_model=ReservationRead)
def post_fulfill(
    reservation_id: int,
    payload: ReservationFulfill | None = None,
    db: Session = Depends(get_db),
):
    try:
        reservation = fulfill_reservation(
            db,
            reservation_id,
            quantity=payload.quantity if payload else None,
        )
    except ReservationError as exc:
        raise http_error(exc) from exc

    db.commit()
    db.refresh(reservation)
    return reservation


@router.post("/{reservation_id}/cancel", response_model=ReservationRead)
def post_cancel(reservation_id: int, db: Session = Depends(get_db)):
    try:
        reservation = cancel_reservation(db, reservation_id)
    except ReservationError as exc:
        raise http_error(exc) from exc

    db.commit()
    db.refresh(reservation)
    return reservation
