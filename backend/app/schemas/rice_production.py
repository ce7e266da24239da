import datetime as dt
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from app.schemas.ledger import ProductType, RiceMovementType


class RiceProductionCreate(BaseModel):
    date: dt.date
    outturn_code: str = Field(..., examples=["OUT01"])
    product_type: ProductType = Field(..., examples=["Rice"])
    bags: int = Field(..., ge=0, examples=[50])
    packaging_id: int
    movement_type: RiceMovementType = RiceMovementType.KUNCHINITTU
    location_code: Optional[str] = Field(default=None, examples=["A1"])
    lorry_number: Optional[str] = None
    bill_number: Optional[str] = None
    created_by: Optional[str] = None


class RiceProductionOut(BaseModel):
    rice_production_id: int
    date: Optional[dt.date] = None
    outturn_id: int
    product_type: str
    bags: int
    quantity_quintals: Decimal
    paddy_bags_deducted: int
    packaging_id: Optional[int] = None
    movement_type: str
    location_code: Optional[str] = None
    lorry_number: Optional[str] = None
    bill_number: Optional[str] = None
    status: str
    approved_by: Optional[str] = None
    approved_at: Optional[dt.datetime] = None
    created_by: Optional[str] = None
    created_at: Optional[dt.datetime] = None

    class Config:
        from_attributes = True
