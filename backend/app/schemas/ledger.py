import datetime as dt
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from app.utils.paddy_bags import calculate_paddy_bags_deducted

# Rice production marker written when an outturn is administratively cleared
CLEARING_LOCATION = "CLEARING"


class MovementType(str, Enum):
    PURCHASE = "purchase"
    SHIFTING = "shifting"
    PRODUCTION_SHIFTING = "production-shifting"
    FOR_PRODUCTION_PURCHASE = "for-production-purchase"
    LOADING = "loading"
    LOOSE = "loose"


class ApprovalStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class RiceMovementType(str, Enum):
    KUNCHINITTU = "kunchinittu"
    LOADING = "loading"


class ProductType(str, Enum):
    RICE = "Rice"
    BRAN = "Bran"
    FARM_BRAN = "Farm Bran"
    REJECTION_RICE = "Rejection Rice"
    SIZER_BROKEN = "Sizer Broken"
    REJECTION_BROKEN = "Rejection Broken"
    BROKEN = "Broken"
    ZERO_BROKEN = "Zero Broken"
    FARAM = "Faram"
    UNPOLISHED = "Unpolished"
    RJ_RICE_1 = "RJ Rice 1"
    RJ_RICE_2 = "RJ Rice 2"


class StorageLocation(BaseModel):
    """Storage unit (kunchinittu) code plus its warehouse."""

    model_config = ConfigDict(frozen=True)

    kunchinittu: Optional[str] = None
    warehouse: Optional[str] = None

    @property
    def label(self) -> str:
        return f"{self.kunchinittu or ''} - {self.warehouse or ''}"


class Movement(BaseModel):
    model_config = ConfigDict(frozen=True)

    movement_id: Optional[int] = None
    date: Optional[dt.date] = None
    movement_type: MovementType
    variety: Optional[str] = None
    bags: int = 0
    from_location: Optional[StorageLocation] = None
    to_location: Optional[StorageLocation] = None
    outturn_code: Optional[str] = None
    status: ApprovalStatus = ApprovalStatus.APPROVED
    admin_approved_by: Optional[str] = None
    broker: Optional[str] = None


class RiceProductionEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    entry_id: Optional[int] = None
    date: Optional[dt.date] = None
    outturn_code: Optional[str] = None
    product_type: ProductType
    bags: int = 0
    quantity_quintals: Decimal = Decimal("0")
    paddy_bags_deducted: Optional[int] = None
    packaging: Optional[str] = None
    bag_size_kg: Decimal = Decimal("0")
    movement_type: RiceMovementType = RiceMovementType.KUNCHINITTU
    location_code: Optional[str] = None
    lorry_number: Optional[str] = None
    bill_number: Optional[str] = None
    status: ApprovalStatus = ApprovalStatus.APPROVED

    @property
    def is_clearing(self) -> bool:
        return self.location_code == CLEARING_LOCATION

    def bags_deducted(self) -> int:
        """Stored paddy deduction, falling back to the quintal formula."""
        if self.paddy_bags_deducted:
            return self.paddy_bags_deducted
        return calculate_paddy_bags_deducted(self.quantity_quintals, self.product_type.value)


class OutturnInfo(BaseModel):
    model_config = ConfigDict(frozen=True, from_attributes=True)

    code: str
    allotted_variety: Optional[str] = None
    type: Optional[str] = None
    is_cleared: bool = False
    cleared_at: Optional[dt.date] = None


class LedgerDiagnostic(BaseModel):
    severity: str = Field(..., description="warning or error")
    code: str
    date: Optional[dt.date] = None
    message: str
    context: Dict[str, Any] = Field(default_factory=dict)


# --- Paddy stock report ---


class PaddyStockLine(BaseModel):
    variety: str
    bags: int
    kunchinittu: Optional[str] = None
    warehouse: Optional[str] = None
    outturn_code: Optional[str] = None


class PaddyMovementLine(BaseModel):
    movement_id: Optional[int] = None
    movement_type: str
    variety: str
    bags: int
    from_label: Optional[str] = None
    to_label: Optional[str] = None
    outturn_code: Optional[str] = None
    broker: Optional[str] = None
    applied: bool = True


class PaddyDailyMovements(BaseModel):
    purchase: List[PaddyMovementLine] = Field(default_factory=list)
    shifting: List[PaddyMovementLine] = Field(default_factory=list)
    production_shifting: List[PaddyMovementLine] = Field(default_factory=list)
    rice_production: List[PaddyMovementLine] = Field(default_factory=list)
    loading: List[PaddyMovementLine] = Field(default_factory=list)
    clearing: List[PaddyMovementLine] = Field(default_factory=list)


class PaddyLedgerDay(BaseModel):
    date: dt.date
    opening_stock: List[PaddyStockLine]
    daily_movements: PaddyDailyMovements
    closing_stock: List[PaddyStockLine]
    opening_total: int
    closing_total: int
    inflows: int = 0
    outflows: int = 0


class RemainingInProduction(BaseModel):
    variety: str
    outturn_code: Optional[str] = None
    shifted: int
    consumed: int
    remaining: int


class PaddyLedgerReport(BaseModel):
    range_start: dt.date
    range_end: dt.date
    days: List[PaddyLedgerDay]
    remaining_in_production: List[RemainingInProduction] = Field(default_factory=list)
    diagnostics: List[LedgerDiagnostic] = Field(default_factory=list)


# --- Rice stock report ---


class RiceStockLine(BaseModel):
    product: str
    product_label: str
    packaging: Optional[str] = None
    bag_size_kg: Decimal
    location: Optional[str] = None
    outturn_code: Optional[str] = None
    qtls: Decimal
    bags: int


class RiceProductionLine(BaseModel):
    entry_id: Optional[int] = None
    movement_type: RiceMovementType
    product: str
    product_label: str
    packaging: Optional[str] = None
    bag_size_kg: Decimal
    location: str
    outturn_code: Optional[str] = None
    qtls: Decimal
    bags: int
    applied: bool = True


class RiceStockDay(BaseModel):
    date: dt.date
    opening_stock: List[RiceStockLine]
    productions: List[RiceProductionLine]
    closing_stock: List[RiceStockLine]
    opening_total: Decimal
    closing_total: Decimal
    inflows: Decimal = Decimal("0")
    outflows: Decimal = Decimal("0")


class RiceStockReport(BaseModel):
    range_start: dt.date
    range_end: dt.date
    days: List[RiceStockDay]
    diagnostics: List[LedgerDiagnostic] = Field(default_factory=list)
