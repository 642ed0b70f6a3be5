from pydantic import BaseModel


class ReservedStockRead(BaseModel):
    product_id: int
    sku: str
    reserved_stock: int  # READ ONLY — maintenu par le registre, jamais écrit ici
    unlimited_stock: bool
    active_reserved: int  # SUM(quantity) des réservations ACTIVE


class ReservedStockRebuild(BaseModel):
    product_ids: list[int]


class ReservedStockChange(BaseModel):
    product_id: int
    previous: int
    current: int
