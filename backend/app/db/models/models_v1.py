from __future__ import annotations

from datetime import datetime, date, timezone

from sqlalchemy import (
    String,
    Integer,
    BigInteger,
    DateTime,
    Date,
    Boolean,
    ForeignKey,
    Text,
    Enum,
    UniqueConstraint,
    Index,
    CheckConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backend.app.db.base import Base
from backend.app.db.models.core_types import ReservationStatus

# BIGINT en Postgres, INTEGER en SQLite (sinon pas d'autoincrement)
PK = BigInteger().with_variant(Integer, "sqlite")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ---------- TENANTS / MASTER DATA ----------
class Organization(Base):
    __tablename__ = "organizations"
    id: Mapped[int] = mapped_column(PK, primary_key=True)
    name: Mapped[str] = mapped_column(String(200), unique=True, nullable=False)
    active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)


class Client(Base):
    __tablename__ = "clients"
    id: Mapped[int] = mapped_column(PK, primary_key=True)
    organization_id: Mapped[int] = mapped_column(
        ForeignKey("organizations.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    organization: Mapped[Organization] = relationship()


# ---------- CATALOG (sous-ensemble) ----------
class Product(Base):
    __tablename__ = "products"
    id: Mapped[int] = mapped_column(PK, primary_key=True)
    organization_id: Mapped[int] = mapped_column(
        ForeignKey("organizations.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    sku: Mapped[str] = mapped_column(String(64), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)

    current_stock: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    # Compteur dérivé : SUM(quantity) des réservations ACTIVE (si stock suivi)
    reserved_stock: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    unlimited_stock: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utcnow,
        onupdate=_utcnow,
        nullable=False,
    )

    __table_args__ = (
        UniqueConstraint("organization_id", "sku", name="uq_product_org_sku"),
        CheckConstraint("reserved_stock >= 0", name="ck_product_reserved_stock_nonneg"),
    )


# ---------- RESERVATIONS ----------
class ProductReservation(Base):
    """
    Ligne du registre des réservations.

    Jamais supprimée : c'est la trace d'audit des allocations.
    expiration_date NULL = la réservation n'expire jamais.
    """

    __tablename__ = "product_reservations"
    id: Mapped[int] = mapped_column(PK, primary_key=True)
    organization_id: Mapped[int] = mapped_column(
        ForeignKey("organizations.id", ondelete="RESTRICT"),
        nullable=False,
    )
    product_id: Mapped[int] = mapped_column(
        ForeignKey("products.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    client_id: Mapped[int | None] = mapped_column(ForeignKey("clients.id", ondelete="RESTRICT"))

    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    expiration_date: Mapped[date | None] = mapped_column(Date)
    status: Mapped[ReservationStatus] = mapped_column(
        Enum(ReservationStatus, name="reservation_status"),
        default=ReservationStatus.active,
        nullable=False,
    )
    notes: Mapped[str | None] = mapped_column(Text)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utcnow,
        onupdate=_utcnow,
        nullable=False,
    )

    product: Mapped[Product] = relationship()
    client: Mapped[Client | None] = relationship()

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_reservation_qty_pos"),
        # Requête du sweep : status = ACTIVE AND expiration_date < today
        Index("ix_reservations_status_expiration", "status", "expiration_date"),
        Index("ix_reservations_client", "client_id"),
    )
