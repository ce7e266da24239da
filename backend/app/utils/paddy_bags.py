from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Optional

# One bag of paddy yields roughly 0.47 quintals of product
QUINTALS_PER_PADDY_BAG = Decimal("0.47")

NO_DEDUCTION_PRODUCTS = {"Bran", "Farm Bran", "Faram"}


def to_decimal(value: Any) -> Optional[Decimal]:
    if value is None:
        return None
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None


def calculate_paddy_bags_deducted(quantity_quintals: Any, product_type: str) -> int:
    """
    Paddy bags consumed to produce ``quantity_quintals`` of a product.

    By-products (Bran, Farm Bran, Faram) consume nothing. Everything else is
    quintals / 0.47 rounded half-up: 0.4 truncates, 0.5 rounds up.
    """
    if product_type in NO_DEDUCTION_PRODUCTS:
        return 0
    quintals = to_decimal(quantity_quintals) or Decimal("0")
    bags = (quintals / QUINTALS_PER_PADDY_BAG).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    return int(bags)


def calculate_quantity_quintals(bags: int, packaging_kg: Any) -> Decimal:
    """Bags x packaging weight (kg) expressed in quintals."""
    kg = to_decimal(packaging_kg) or Decimal("0")
    return (Decimal(bags) * kg / Decimal("100")).quantize(Decimal("0.001"), rounding=ROUND_HALF_UP)
