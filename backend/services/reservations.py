"""
Registre des réservations (ledger).

Source de vérité des allocations de stock. Toute création / consommation /
annulation passe par ici ; personne n'écrit reserved_stock directement.

Les fonctions font flush() mais ne commit pas : la réservation et la mise à
jour du compteur sont visibles ensemble ou pas du tout, au commit de
l'appelant.
"""
from __future__ import annotations

import logging
from datetime import date
from typing import Iterable

from sqlalchemy import select
from sqlalchemy.orm import Session

from backend.app.db.models.core_types import ReservationStatus, can_transition
from backend.app.db.models.models_v1 import Client, ProductReservation
from backend.services.catalog import get_product_stock
from backend.services.errors import (
    ClientNotFound,
    InvalidExpiration,
    InvalidQuantity,
    InvalidStateTransition,
    ReservationNotFound,
)
from backend.services.stock_counters import (
    release_reserved_stock,
    reservations_today,
    reserve_stock,
)

logger = logging.getLogger(__name__)


def create_reservation(
    db: Session,
    *,
    organization_id: int,
    product_id: int,
    quantity: int,
    expiration_date: date | None = None,
    client_id: int | None = None,
    notes: str | None = None,
    today: date | None = None,
) -> ProductReservation:
    if quantity is None or quantity <= 0:
        raise InvalidQuantity(f"Quantity must be positive (got {quantity})")

    today = today or reservations_today()
    if expiration_date is not None and expiration_date < today:
        raise InvalidExpiration(
            f"Expiration date {expiration_date.isoformat()} is in the past"
        )

    # Produit du tenant uniquement
    stock = get_product_stock(db, product_id, organization_id=organization_id)

    if client_id is not None:
        client = db.get(Client, client_id)
        if client is None or client.organization_id != organization_id:
            raise ClientNotFound(client_id)

    reservation = ProductReservation(
        organization_id=organization_id,
        product_id=product_id,
        client_id=client_id,
        quantity=quantity,
        expiration_date=expiration_date,
        status=ReservationStatus.active,
        notes=notes,
    )
    db.add(reservation)
    db.flush()

    if not stock.unlimited_stock:
        reserve_stock(db, product_id, quantity)

    logger.info(
        "reservation %s created: product=%s qty=%s expires=%s",
        reservation.id,
        product_id,
        quantity,
        expiration_date,
    )
    return reservation


def get_reservation(
    db: Session,
    reservation_id: int,
    *,
    organization_id: int | None = None,
    for_update: bool = False,
) -> ProductReservation:
    stmt = select(ProductReservation).where(ProductReservation.id == reservation_id)
    if organization_id is not None:
        stmt = stmt.where(ProductReservation.organization_id == organization_id)
    if for_update:
        stmt = stmt.with_for_update()

    reservation = db.execute(stmt).scalar_one_or_none()
    if reservation is None:
        raise ReservationNotFound(reservation_id)
    return reservation


def _close(
    db: Session,
    reservation_id: int,
    target: ReservationStatus,
    organization_id: int | None,
) -> ProductReservation:
    reservation = get_reservation(
        db, reservation_id, organization_id=organization_id, for_update=True
    )
    if not can_transition(reservation.status, target):
        raise InvalidStateTransition(reservation.id, reservation.status, target)

    reservation.status = target
    db.flush()
    release_reserved_stock(db, reservation.product_id, reservation.quantity)

    logger.info(
        "reservation %s %s: product=%s released=%s",
        reservation.id,
        target.value.lower(),
        reservation.product_id,
        reservation.quantity,
    )
    return reservation


def fulfill_reservation(
    db: Session,
    reservation_id: int,
    *,
    quantity: int | None = None,
    organization_id: int | None = None,
) -> ProductReservation:
    """
    Consomme une réservation (ex: ligne de facture issue d'une réservation).

    - quantity None ou >= quantité restante : FULFILLED, tout est libéré
    - 0 < quantity < restante : consommation partielle, la réservation reste
      ACTIVE avec le reliquat, seule la part consommée est libérée
    """
    if quantity is not None and quantity <= 0:
        raise InvalidQuantity(f"Quantity must be positive (got {quantity})")

    if quantity is None:
        return _close(db, reservation_id, ReservationStatus.fulfilled, organization_id)

    reservation = get_reservation(
        db, reservation_id, organization_id=organization_id, for_update=True
    )
    if reservation.status != ReservationStatus.active:
        raise InvalidStateTransition(
            reservation.id, reservation.status, ReservationStatus.fulfilled
        )
    if quantity >= reservation.quantity:
        return _close(db, reservation_id, ReservationStatus.fulfilled, organization_id)

    reservation.quantity -= quantity
    db.flush()
    release_reserved_stock(db, reservation.product_id, quantity)

    logger.info(
        "reservation %s partially fulfilled: product=%s consumed=%s remaining=%s",
        reservation.id,
        reservation.product_id,
        quantity,
        reservation.quantity,
    )
    return reservation


def cancel_reservation(
    db: Session,
    reservation_id: int,
    *,
    organization_id: int | None = None,
) -> ProductReservation:
    return _close(db, reservation_id, ReservationStatus.cancelled, organization_id)


def list_expired(db: Session, as_of: date) -> list[ProductReservation]:
    """
    Réservations ACTIVE dont expiration_date < as_of (strict).

    Une réservation qui expire aujourd'hui reste active jusqu'au lendemain.
    Lecture seule.
    """
    stmt = (
        select(ProductReservation)
        .where(ProductReservation.status == ReservationStatus.active)
        .where(ProductReservation.expiration_date.is_not(None))
        .where(ProductReservation.expiration_date < as_of)
        .order_by(ProductReservation.id.asc())
    )
    return list(db.execute(stmt).scalars().all())


def list_reservations(
    db: Session,
    *,
    organization_id: int | None = None,
    product_id: int | None = None,
    client_id: int | None = None,
    statuses: Iterable[ReservationStatus] | None = None,
) -> list[ProductReservation]:
    stmt = select(ProductReservation).order_by(ProductReservation.created_at.desc(), ProductReservation.id.desc())

    if organization_id is not None:
        stmt = stmt.where(ProductReservation.organization_id == organization_id)
    if product_id is not None:
        stmt = stmt.where(ProductReservation.product_id == product_id)
    if client_id is not None:
        stmt = stmt.where(ProductReservation.client_id == client_id)
    if statuses:
        stmt = stmt.where(ProductReservation.status.in_(list(statuses)))

    return list(db.execute(stmt).scalars().all())
