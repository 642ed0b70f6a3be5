from __future__ import annotations

from datetime import date, datetime

from pydantic import BaseModel, Field

from backend.app.db.models.core_types import ReservationStatus


class ReservationCreate(BaseModel):
    organization_id: int
    product_id: int
    quantity: int
    expiration_date: date | None = None  # None = n'expire jamais
    client_id: int | None = None
    notes: str | None = Field(default=None, max_length=2000)


class ReservationFulfill(BaseModel):
    # None = consommation totale
    quantity: int | None = None


class ReservationRead(BaseModel):
    id: int
    organization_id: int
    product_id: int
    client_id: int | None
    quantity: int
    expiration_date: date | None
    status: ReservationStatus
    notes: str | None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class SweepResult(BaseModel):
    processed_count: int = Field(alias="processedCount")
    products_updated: int = Field(alias="productsUpdated")

    class Config:
        populate_by_name = True
