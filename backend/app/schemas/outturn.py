import datetime as dt
from typing import Optional

from pydantic import BaseModel, Field


class OutturnOut(BaseModel):
    outturn_id: int
    code: str
    allotted_variety: Optional[str] = None
    type: Optional[str] = None
    is_cleared: bool = False
    cleared_at: Optional[dt.date] = None
    cleared_by: Optional[str] = None
    created_at: Optional[dt.datetime] = None

    class Config:
        from_attributes = True


class OutturnClearRequest(BaseModel):
    cleared_at: dt.date
    cleared_by: str = Field(..., examples=["admin"])


class OutturnClearResult(BaseModel):
    outturn: OutturnOut
    remaining_bags: int
    already_cleared: bool = False
