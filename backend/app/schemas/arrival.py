import datetime as dt
from typing import Optional

from pydantic import BaseModel, Field

from app.schemas.ledger import MovementType


class ArrivalBase(BaseModel):
    date: Optional[dt.date] = None
    movement_type: MovementType = Field(..., examples=["purchase"])
    variety: Optional[str] = Field(default=None, examples=["SONA"])
    bags: int = Field(..., ge=0, examples=[100])
    net_weight: Optional[float] = None
    broker: Optional[str] = None
    lorry_number: Optional[str] = None

    from_kunchinittu_id: Optional[int] = None
    from_warehouse_id: Optional[int] = None
    to_kunchinittu_id: Optional[int] = None
    to_warehouse_id: Optional[int] = None


class ArrivalCreate(ArrivalBase):
    outturn_code: Optional[str] = Field(default=None, examples=["OUT01"])
    created_by: Optional[str] = None


class ArrivalOut(ArrivalBase):
    arrival_id: int
    outturn_id: Optional[int] = None
    status: str
    approved_by: Optional[str] = None
    approved_at: Optional[dt.datetime] = None
    admin_approved_by: Optional[str] = None
    admin_approved_at: Optional[dt.datetime] = None
    created_by: Optional[str] = None
    created_at: Optional[dt.datetime] = None

    class Config:
        from_attributes = True


class ApprovalRequest(BaseModel):
    approved_by: str = Field(..., examples=["manager"])
    as_admin: bool = False


class RejectionRequest(BaseModel):
    rejected_by: str = Field(..., examples=["manager"])
    reason: Optional[str] = None
