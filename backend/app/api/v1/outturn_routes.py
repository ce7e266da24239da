from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.api.v1.query_params import error_status
from app.deps import get_db
from app.schemas.outturn import OutturnClearRequest, OutturnClearResult, OutturnOut
from app.services.outturn_service import clear_outturn, list_outturns

router = APIRouter()


@router.get("", response_model=List[OutturnOut], summary="List outturns")
def list_outturns_api(include_cleared: bool = True, db: Session = Depends(get_db)):
    return list_outturns(db, include_cleared=include_cleared)


@router.post(
    "/{outturn_id}/clear",
    response_model=OutturnClearResult,
    summary="Clear an outturn and write off its remaining paddy",
)
def clear_outturn_api(
    outturn_id: int,
    payload: OutturnClearRequest,
    db: Session = Depends(get_db),
):
    try:
        result = clear_outturn(db, outturn_id, payload.cleared_at, payload.cleared_by)
    except ValueError as exc:
        raise HTTPException(status_code=error_status(exc), detail=str(exc))
    return OutturnClearResult(
        outturn=OutturnOut.model_validate(result["outturn"]),
        remaining_bags=result["remaining_bags"],
        already_cleared=result["already_cleared"],
    )
