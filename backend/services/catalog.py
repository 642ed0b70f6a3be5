"""
Accès catalogue restreint au compteur reserved_stock.

Le cœur réservations ne lit que reserved_stock / unlimited_stock et n'écrit
que reserved_stock. Aucun autre champ produit n'est touché ici.
"""
from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy import case, select, update
from sqlalchemy.orm import Session

from backend.app.db.models.models_v1 import Product
from backend.services.errors import ProductNotFound


@dataclass(frozen=True)
class ProductStock:
    product_id: int
    reserved_stock: int
    unlimited_stock: bool


def get_product_stock(
    db: Session,
    product_id: int,
    *,
    organization_id: int | None = None,
    lock: bool = False,
) -> ProductStock:
    stmt = select(Product.id, Product.reserved_stock, Product.unlimited_stock).where(
        Product.id == product_id
    )
    if organization_id is not None:
        stmt = stmt.where(Product.organization_id == organization_id)
    if lock:
        stmt = stmt.with_for_update()

    row = db.execute(stmt).one_or_none()
    if row is None:
        raise ProductNotFound(product_id)

    return ProductStock(
        product_id=int(row.id),
        reserved_stock=int(row.reserved_stock or 0),
        unlimited_stock=bool(row.unlimited_stock),
    )


def update_reserved_stock(db: Session, product_id: int, new_value: int) -> None:
    """Écriture absolue du compteur (utilisée par le rebuild)."""
    if new_value < 0:
        raise ValueError("reserved_stock cannot be negative")

    result = db.execute(
        update(Product)
        .where(Product.id == product_id)
        .values(reserved_stock=new_value)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        raise ProductNotFound(product_id)


def adjust_reserved_stock(db: Session, product_id: int, delta: int) -> bool:
    """
    Ajuste reserved_stock de `delta` en UNE seule instruction SQL.

    - plancher à 0 (jamais négatif)
    - sans effet sur un produit unlimited_stock
    - retourne True si une ligne a été modifiée

    Le read-modify-write est fait par la base, pas en deux allers-retours :
    pas de lost update entre deux sweeps ou un sweep et une annulation.
    """
    if delta == 0:
        return False

    new_value = Product.reserved_stock + delta
    result = db.execute(
        update(Product)
        .where(Product.id == product_id)
        .where(Product.unlimited_stock.is_(False))
        .values(reserved_stock=case((new_value > 0, new_value), else_=0))
        .execution_options(synchronize_session=False)
    )
    return result.rowcount > 0
