import logging
from datetime import date
from io import BytesIO
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session, joinedload

from app.api.v1.query_params import parse_query_date
from app.core.config import settings
from app.deps import get_db
from app.models.location import Kunchinittu
from app.schemas.ledger import PaddyLedgerReport
from app.schemas.location import KunchinittuOut
from app.services.ledger_export import frame_to_csv_bytes, paddy_ledger_frame
from app.services.ledger_source import data_date_span, load_paddy_inputs
from app.services.paddy_stock_service import build_paddy_ledger
from app.services.stock_consistency import LedgerRangeError

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get(
    "/kunchinittus",
    response_model=List[KunchinittuOut],
    summary="Storage units with their warehouses",
)
def list_kunchinittus(
    include_inactive: bool = False,
    db: Session = Depends(get_db),
):
    query = db.query(Kunchinittu).options(joinedload(Kunchinittu.warehouse))
    if not include_inactive:
        query = query.filter(Kunchinittu.is_active.is_(True))
    return query.order_by(Kunchinittu.code).all()


def _paddy_report(
    db: Session,
    kunchinittu_id: int,
    date_from: Optional[str],
    date_to: Optional[str],
) -> PaddyLedgerReport:
    kunchinittu = db.query(Kunchinittu).filter(Kunchinittu.kunchinittu_id == kunchinittu_id).first()
    if not kunchinittu:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Kunchinittu not found")

    range_start = parse_query_date(date_from, "dateFrom")
    range_end = parse_query_date(date_to, "dateTo")
    if range_start is None or range_end is None:
        first, last = data_date_span(db, kunchinittu_id)
        range_end = range_end or last or date.today()
        range_start = range_start or first or range_end

    movements, rice_entries, outturns = load_paddy_inputs(db, range_end)
    try:
        return build_paddy_ledger(
            range_start,
            range_end,
            movements,
            rice_entries,
            outturns,
            require_admin_approval=settings.PADDY_REQUIRE_ADMIN_APPROVAL,
            tolerance=settings.PADDY_BALANCE_TOLERANCE,
            kunchinittu=kunchinittu.code,
        )
    except LedgerRangeError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))


@router.get(
    "/paddy-stock/{kunchinittu_id}",
    response_model=PaddyLedgerReport,
    summary="Day-by-day paddy stock for a storage unit",
)
def get_paddy_stock(
    kunchinittu_id: int,
    date_from: Optional[str] = Query(None, alias="dateFrom"),
    date_to: Optional[str] = Query(None, alias="dateTo"),
    db: Session = Depends(get_db),
):
    report = _paddy_report(db, kunchinittu_id, date_from, date_to)
    if report.diagnostics:
        logger.info(
            "Paddy ledger for kunchinittu %s returned %d diagnostic(s)",
            kunchinittu_id,
            len(report.diagnostics),
        )
    return report


@router.get(
    "/paddy-stock/{kunchinittu_id}/csv",
    summary="Paddy stock ledger as CSV",
)
def download_paddy_stock(
    kunchinittu_id: int,
    date_from: Optional[str] = Query(None, alias="dateFrom"),
    date_to: Optional[str] = Query(None, alias="dateTo"),
    db: Session = Depends(get_db),
):
    report = _paddy_report(db, kunchinittu_id, date_from, date_to)
    content = frame_to_csv_bytes(paddy_ledger_frame(report))
    filename = f"paddy_stock_{kunchinittu_id}_{report.range_start}_{report.range_end}.csv"
    return StreamingResponse(
        BytesIO(content),
        media_type="text/csv",
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )
