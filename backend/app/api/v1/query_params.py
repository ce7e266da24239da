import re
from datetime import date
from typing import Optional

from fastapi import HTTPException, status

DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def parse_query_date(value: Optional[str], name: str) -> Optional[date]:
    """Strict YYYY-MM-DD query dates; anything else is a 400."""
    if not value:
        return None
    if not DATE_PATTERN.match(value):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid {name} format. Use YYYY-MM-DD",
        )
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid {name}: {value}",
        )


def error_status(exc: ValueError) -> int:
    if "not found" in str(exc).lower():
        return status.HTTP_404_NOT_FOUND
    return status.HTTP_400_BAD_REQUEST
