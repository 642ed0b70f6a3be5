"""
Helpers partagés registre / réconciliateur.

- date "aujourd'hui" des réservations (date calendaire, pas timestamp)
- regroupement des quantités par produit
- réservation / libération du compteur reserved_stock
"""
from __future__ import annotations

import logging
from collections import defaultdict
from datetime import date, datetime
from typing import Iterable
from zoneinfo import ZoneInfo

from sqlalchemy.orm import Session

from backend.app.core.config import RESERVATIONS_TIMEZONE
from backend.services.catalog import adjust_reserved_stock, get_product_stock

logger = logging.getLogger(__name__)


def reservations_today() -> date:
    return datetime.now(ZoneInfo(RESERVATIONS_TIMEZONE)).date()


def group_quantities_by_product(rows: Iterable) -> dict[int, int]:
    """
    SUM(quantity) par product_id.

    Un seul update compteur par produit distinct, quel que soit le nombre
    de réservations qui le concernent.
    """
    totals: dict[int, int] = defaultdict(int)
    for row in rows:
        totals[int(row.product_id)] += int(row.quantity)
    return dict(totals)


def warn_on_drift(product_id: int, releasing: int, counter: int) -> None:
    if counter < releasing:
        logger.warning(
            "reserved_stock drift on product %s: releasing %s but counter is %s",
            product_id,
            releasing,
            counter,
        )


def reserve_stock(db: Session, product_id: int, quantity: int) -> bool:
    """Incrémente reserved_stock (sans effet si unlimited_stock)."""
    return adjust_reserved_stock(db, product_id, quantity)


def release_reserved_stock(db: Session, product_id: int, quantity: int) -> bool:
    """
    Libère `quantity` sur reserved_stock, plancher à 0.

    Retourne False si le produit est unlimited_stock (pas de compteur).
    Un compteur inférieur à la quantité libérée est une dérive : on la
    logge pour revue, le plancher à 0 s'applique quand même.
    """
    stock = get_product_stock(db, product_id, lock=True)
    if stock.unlimited_stock:
        return False

    warn_on_drift(product_id, quantity, stock.reserved_stock)
    return adjust_reserved_stock(db, product_id, -quantity)
