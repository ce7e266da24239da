"""
Composite keys for the running stock maps.

Keys are plain tuples, so two stock pools are the same only when every
segment matches; a missing segment is None and never collides with an empty
code.
"""
from decimal import Decimal
from typing import Any, NamedTuple, Optional, Tuple


class WarehouseKey(NamedTuple):
    variety: str
    kunchinittu: Optional[str]
    warehouse: Optional[str]

    @property
    def label(self) -> str:
        return f"{self.kunchinittu or ''} - {self.warehouse or ''}"


class ProductionKey(NamedTuple):
    variety: str
    outturn_code: Optional[str]


class RiceStockKey(NamedTuple):
    product: str
    packaging: Optional[str]
    bag_size_kg: Decimal
    location: Optional[str]
    outturn_code: Optional[str]

    def matches_dispatch(self, other: "RiceStockKey") -> bool:
        """Loading dispatches carry no storage location, so location is ignored."""
        return (
            self.product == other.product
            and self.packaging == other.packaging
            and self.bag_size_kg == other.bag_size_kg
            and self.outturn_code == other.outturn_code
        )


class RiceQuantity(NamedTuple):
    qtls: Decimal
    bags: int


def sort_key(key: Tuple[Any, ...]) -> Tuple[str, ...]:
    """Stable ordering for output lines; None sorts as an empty segment."""
    return tuple("" if part is None else str(part) for part in key)
