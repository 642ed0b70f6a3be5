"""create organizations, clients, products, product_reservations

Revision ID: 3f9a1c2b7d10
Revises:
Create Date: 2026-10-18
"""
from __future__ import annotations

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "3f9a1c2b7d10"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

RESERVATION_STATUS = sa.Enum(
    "active",
    "fulfilled",
    "cancelled",
    "expired",
    name="reservation_status",
)


def upgrade() -> None:
    op.create_table(
        "organizations",
        sa.Column("id", sa.BigInteger(), primary_key=True),
        sa.Column("name", sa.String(200), nullable=False, unique=True),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.true()),
    )

    op.create_table(
        "clients",
        sa.Column("id", sa.BigInteger(), primary_key=True),
        sa.Column(
            "organization_id",
            sa.BigInteger(),
            sa.ForeignKey("organizations.id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.true()),
    )
    op.create_index("ix_clients_organization_id", "clients", ["organization_id"])

    op.create_table(
        "products",
        sa.Column("id", sa.BigInteger(), primary_key=True),
        sa.Column(
            "organization_id",
            sa.BigInteger(),
            sa.ForeignKey("organizations.id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column("sku", sa.String(64), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("current_stock", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("reserved_stock", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("unlimited_stock", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.UniqueConstraint("organization_id", "sku", name="uq_product_org_sku"),
        sa.CheckConstraint("reserved_stock >= 0", name="ck_product_reserved_stock_nonneg"),
    )
    op.create_index("ix_products_organization_id", "products", ["organization_id"])

    op.create_table(
        "product_reservations",
        sa.Column("id", sa.BigInteger(), primary_key=True),
        sa.Column(
            "organization_id",
            sa.BigInteger(),
            sa.ForeignKey("organizations.id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column(
            "product_id",
            sa.BigInteger(),
            sa.ForeignKey("products.id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column("client_id", sa.BigInteger(), sa.ForeignKey("clients.id", ondelete="RESTRICT")),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("expiration_date", sa.Date()),
        sa.Column("status", RESERVATION_STATUS, nullable=False, server_default="active"),
        sa.Column("notes", sa.Text()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint("quantity > 0", name="ck_reservation_qty_pos"),
    )
    op.create_index("ix_product_reservations_product_id", "product_reservations", ["product_id"])
    op.create_index("ix_reservations_client", "product_reservations", ["client_id"])
    # Requête du sweep : status = active AND expiration_date < today
    op.create_index(
        "ix_reservations_status_expiration",
        "product_reservations",
        ["status", "expiration_date"],
    )


def downgrade() -> None:
    op.drop_index("ix_reservations_status_expiration", table_name="product_reservations")
    op.drop_index("ix_reservations_client", table_name="product_reservations")
    op.drop_index("ix_product_reservations_product_id", table_name="product_reservations")
    op.drop_table("product_reservations")
    RESERVATION_STATUS.drop(op.get_bind(), checkfirst=True)

    op.drop_index("ix_products_organization_id", table_name="products")
    op.drop_table("products")

    op.drop_index("ix_clients_organization_id", table_name="clients")
    op.drop_table("clients")

    op.drop_table("organizations")
