from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import and_, func, select
from sqlalchemy.orm import Session

from backend.app.api.deps import get_db
from backend.app.db.models.core_types import ReservationStatus
from backend.app.db.models.models_v1 import Product, ProductReservation
from backend.app.schemas.stock_level import (
    ReservedStockChange,
    ReservedStockRead,
    ReservedStockRebuild,
)
from backend.services.errors import ProductNotFound
from backend.services.inventory import rebuild_reserved_stock

router = APIRouter(prefix="/stock")


@router.get(
    "/reserved",
    response_model=list[ReservedStockRead],
)
def get_reserved_stock(
    organization_id: int | None = None,
    product_id: int | None = None,
    db: Session = Depends(get_db),
):
    """
    Stock réservé (READ ONLY)
    - reserved_stock n'est modifiable que via le registre des réservations
    - active_reserved permet de repérer une dérive du compteur
    """

    active_reserved = func.coalesce(func.sum(ProductReservation.quantity), 0).label("active_reserved")
    stmt = (
        select(
            Product.id,
            Product.sku,
            Product.reserved_stock,
            Product.unlimited_stock,
            active_reserved,
        )
        .outerjoin(
            ProductReservation,
            and_(
                ProductReservation.product_id == Product.id,
                ProductReservation.status == ReservationStatus.active,
            ),
        )
        .group_by(Product.id, Product.sku, Product.reserved_stock, Product.unlimited_stock)
        .order_by(Product.sku)
    )

    if organization_id is not None:
        stmt = stmt.where(Product.organization_id == organization_id)

    if product_id is not None:
        stmt = stmt.where(Product.id == product_id)

    rows = db.execute(stmt).all()
    return [
        ReservedStockRead(
            product_id=r.id,
            sku=r.sku,
            reserved_stock=r.reserved_stock,
            unlimited_stock=r.unlimited_stock,
            active_reserved=r.active_reserved,
        )
        for r in rows
    ]


@router.post(
    "/reserved/rebuild",
    response_model=list[ReservedStockChange],
)
def post_rebuild_reserved_stock(payload: ReservedStockRebuild, db: Session = Depends(get_db)):
    """Recalcule reserved_stock depuis les réservations ACTIVE (réparation de dérive)."""
    try:
        changed = rebuild_reserved_stock(db, product_ids=payload.product_ids)
    except ProductNotFound as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc

    db.commit()
    return [
        ReservedStockChange(product_id=pid, previous=previous, current=current)
        for pid, (previous, current) in changed.items()
    ]
