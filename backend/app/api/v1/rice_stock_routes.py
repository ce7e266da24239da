import logging
import math
from datetime import date
from io import BytesIO
from typing import Any, Dict, Optional, Tuple

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from app.api.v1.query_params import parse_query_date
from app.core.config import settings
from app.deps import get_db
from app.schemas.ledger import ProductType, RiceStockReport
from app.services.ledger_export import frame_to_csv_bytes, rice_stock_frame
from app.services.ledger_source import available_rice_months, load_rice_inputs, rice_date_span
from app.services.rice_stock_service import build_rice_ledger
from app.services.stock_consistency import LedgerRangeError
from app.utils.dates import parse_month

router = APIRouter()
logger = logging.getLogger(__name__)

VALID_PRODUCT_TYPES = {p.value for p in ProductType}


def _resolve_range(
    db: Session,
    month: Optional[str],
    date_from: Optional[str],
    date_to: Optional[str],
) -> Tuple[date, date]:
    if month:
        try:
            return parse_month(month)
        except ValueError as exc:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))

    range_start = parse_query_date(date_from, "dateFrom")
    range_end = parse_query_date(date_to, "dateTo")
    if range_start is None or range_end is None:
        first, last = rice_date_span(db)
        range_end = range_end or max(last or date.today(), date.today())
        range_start = range_start or first or range_end
    return range_start, range_end


def _rice_report(
    db: Session,
    month: Optional[str],
    date_from: Optional[str],
    date_to: Optional[str],
    product_type: Optional[str],
    location_code: Optional[str],
) -> RiceStockReport:
    if product_type and product_type not in VALID_PRODUCT_TYPES:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid product type")

    range_start, range_end = _resolve_range(db, month, date_from, date_to)
    entries, outturns = load_rice_inputs(db, range_end, product_type=product_type)
    try:
        return build_rice_ledger(
            range_start,
            range_end,
            entries,
            outturns,
            tolerance=settings.RICE_BALANCE_TOLERANCE,
            location_code=location_code,
        )
    except LedgerRangeError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))


@router.get("", summary="Rice stock report with month-wise pagination")
def get_rice_stock(
    month: Optional[str] = Query(None, description="YYYY-MM"),
    date_from: Optional[str] = Query(None, alias="dateFrom"),
    date_to: Optional[str] = Query(None, alias="dateTo"),
    product_type: Optional[str] = Query(None, alias="productType"),
    location_code: Optional[str] = Query(None, alias="locationCode"),
    page: Optional[int] = Query(None, ge=1),
    limit: Optional[int] = Query(None, ge=1, le=500),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    report = _rice_report(db, month, date_from, date_to, product_type, location_code)
    days = report.days
    pagination: Dict[str, Any] = {
        "total_records": len(days),
        "available_months": available_rice_months(db),
    }

    if month:
        pagination["current_month"] = month
    elif page and limit:
        start = (page - 1) * limit
        days = days[start : start + limit]
        pagination.update(
            {
                "current_page": page,
                "total_pages": math.ceil(len(report.days) / limit),
                "records_per_page": limit,
            }
        )

    return {
        "range_start": report.range_start,
        "range_end": report.range_end,
        "rice_stock": days,
        "diagnostics": report.diagnostics,
        "pagination": pagination,
    }


@router.get("/csv", summary="Rice stock report as CSV")
def download_rice_stock(
    month: Optional[str] = Query(None, description="YYYY-MM"),
    date_from: Optional[str] = Query(None, alias="dateFrom"),
    date_to: Optional[str] = Query(None, alias="dateTo"),
    product_type: Optional[str] = Query(None, alias="productType"),
    location_code: Optional[str] = Query(None, alias="locationCode"),
    db: Session = Depends(get_db),
):
    report = _rice_report(db, month, date_from, date_to, product_type, location_code)
    content = frame_to_csv_bytes(rice_stock_frame(report))
    filename = f"rice_stock_{report.range_start}_{report.range_end}.csv"
    return StreamingResponse(
        BytesIO(content),
        media_type="text/csv",
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )
