from typing import Optional

from pydantic import BaseModel


class WarehouseOut(BaseModel):
    warehouse_id: int
    name: str
    code: str
    location: Optional[str] = None

    class Config:
        from_attributes = True


class KunchinittuOut(BaseModel):
    kunchinittu_id: int
    name: str
    code: str
    variety: Optional[str] = None
    is_active: Optional[bool] = True
    warehouse: Optional[WarehouseOut] = None

    class Config:
        from_attributes = True
