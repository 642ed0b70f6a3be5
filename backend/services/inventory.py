"""
Réconciliateur de stock réservé.

Deux points d'entrée :

- expire_reservations : sweep périodique, passe les réservations échues en
  EXPIRED et libère leur reserved_stock
- rebuild_reserved_stock : recalcul du compteur depuis la source de vérité
  (réservations ACTIVE), pour réparer une dérive
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Iterable

from sqlalchemy import func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from backend.app.db.models.core_types import ReservationStatus
from backend.app.db.models.models_v1 import ProductReservation
from backend.services.catalog import (
    adjust_reserved_stock,
    get_product_stock,
    update_reserved_stock,
)
from backend.services.errors import (
    CounterUpdateFailure,
    FetchFailure,
    FlipFailure,
    ProductNotFound,
)
from backend.services.reservations import list_expired
from backend.services.stock_counters import (
    group_quantities_by_product,
    reservations_today,
    warn_on_drift,
)

logger = logging.getLogger(__name__)


@dataclass
class SweepReport:
    processed_count: int = 0
    products_updated: int = 0
    failed_product_ids: list[int] = field(default_factory=list)


def expire_reservations(db: Session, *, today: date | None = None) -> SweepReport:
    """
    Sweep des réservations échues.

    Phases :
        1. fetch   : ACTIVE avec expiration_date < today
        2. flip    : UPDATE status = EXPIRED en bloc (RETURNING), COMMIT
        3. agrégat : SUM(quantity) par produit, sur les lignes flippées
        4. release : un décrément atomique par produit, COMMIT par produit

    Le flip est commité AVANT les compteurs : un arrêt avant 4 laisse
    un compteur trop haut (stock sous-disponible), jamais trop bas.

    Propriétés :
    - idempotent (le flip ne matche que status = ACTIVE)
    - échec fetch / flip : rien n'est appliqué, FetchFailure / FlipFailure
    - échec compteur d'un produit : loggé, les autres produits continuent
    """
    today = today or reservations_today()

    # ---------- FETCH ----------
    try:
        expired = list_expired(db, today)
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error("expired reservations fetch failed: %s", exc)
        raise FetchFailure(f"Could not fetch expired reservations: {exc}") from exc

    if not expired:
        logger.info("No expired reservations found (as of %s)", today.isoformat())
        return SweepReport()

    logger.info("Found %d expired reservations (as of %s)", len(expired), today.isoformat())

    reservation_ids = [int(r.id) for r in expired]

    # ---------- FLIP ----------
    try:
        flipped = db.execute(
            update(ProductReservation)
            .where(ProductReservation.id.in_(reservation_ids))
            .where(ProductReservation.status == ReservationStatus.active)
            .values(status=ReservationStatus.expired, updated_at=datetime.now(timezone.utc))
            .returning(ProductReservation.id, ProductReservation.product_id, ProductReservation.quantity)
            .execution_options(synchronize_session=False)
        ).all()
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error("expired reservations status flip failed: %s", exc)
        raise FlipFailure(f"Could not mark reservations as expired: {exc}") from exc

    if len(flipped) != len(reservation_ids):
        # Une partie a changé de statut entre fetch et flip (annulation,
        # sweep concurrent)
        logger.warning(
            "%d of %d reservations were no longer active at flip time",
            len(reservation_ids) - len(flipped),
            len(reservation_ids),
        )

    # ---------- AGRÉGAT ----------
    # Quantités lues au flip, pas au fetch : une consommation partielle
    # commitée entre les deux a déjà libéré sa part.
    to_release = group_quantities_by_product(flipped)

    report = SweepReport(processed_count=len(flipped))

    # ---------- RELEASE ----------
    for product_id, quantity in to_release.items():
        if _release_for_sweep(db, product_id, quantity, report):
            report.products_updated += 1

    logger.info(
        "Expired %d reservations, released stock on %d products (%d failures)",
        report.processed_count,
        report.products_updated,
        len(report.failed_product_ids),
    )
    return report


def _release_for_sweep(db: Session, product_id: int, quantity: int, report: SweepReport) -> bool:
    """Libère le compteur d'un produit ; un échec est isolé à ce produit."""
    try:
        stock = get_product_stock(db, product_id, lock=True)
    except (SQLAlchemyError, ProductNotFound) as exc:
        _record_counter_failure(db, report, CounterUpdateFailure(product_id, "read", exc))
        return False

    if stock.unlimited_stock:
        db.rollback()
        return False

    warn_on_drift(product_id, quantity, stock.reserved_stock)

    try:
        touched = adjust_reserved_stock(db, product_id, -quantity)
        db.commit()
    except SQLAlchemyError as exc:
        _record_counter_failure(db, report, CounterUpdateFailure(product_id, "write", exc))
        return False

    return touched


def _record_counter_failure(db: Session, report: SweepReport, failure: CounterUpdateFailure) -> None:
    db.rollback()
    logger.error("%s", failure)
    report.failed_product_ids.append(failure.product_id)


def rebuild_reserved_stock(
    db: Session,
    *,
    product_ids: Iterable[int],
) -> dict[int, tuple[int, int]]:
    """
    Rebuild reserved_stock à partir de la source de vérité.

    Règle métier :
        reserved_stock = SUM(quantity des réservations ACTIVE)

    Propriétés :
    - déterministe
    - idempotent
    - verrouillage SQL (FOR UPDATE)
    - produits unlimited_stock ignorés

    Retourne {product_id: (ancienne valeur, nouvelle valeur)} pour les
    compteurs modifiés. Pas de commit : c'est à l'appelant.
    """
    product_ids = sorted({int(pid) for pid in product_ids if pid is not None})
    if not product_ids:
        return {}

    active_rows = db.execute(
        select(
            ProductReservation.product_id,
            func.coalesce(func.sum(ProductReservation.quantity), 0).label("reserved_qty"),
        )
        .where(ProductReservation.status == ReservationStatus.active)
        .where(ProductReservation.product_id.in_(product_ids))
        .group_by(ProductReservation.product_id)
    ).all()
    reserved = {int(pid): int(qty) for pid, qty in active_rows}

    changed: dict[int, tuple[int, int]] = {}
    for pid in product_ids:
        stock = get_product_stock(db, pid, lock=True)
        if stock.unlimited_stock:
            continue

        expected = reserved.get(pid, 0)
        if stock.reserved_stock != expected:
            logger.warning(
                "reserved_stock rebuilt on product %s: %s -> %s",
                pid,
                stock.reserved_stock,
                expected,
            )
            update_reserved_stock(db, pid, expected)
            changed[pid] = (stock.reserved_stock, expected)

    return changed
