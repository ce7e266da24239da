from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from app.api.v1.query_params import error_status
from app.deps import get_db
from app.schemas.arrival import ApprovalRequest, ArrivalCreate, ArrivalOut, RejectionRequest
from app.schemas.rice_production import RiceProductionCreate, RiceProductionOut
from app.services.entry_service import (
    approve_arrival,
    approve_rice_production,
    record_arrival,
    record_rice_production,
    reject_arrival,
    reject_rice_production,
)

router = APIRouter()


@router.post(
    "/arrivals",
    response_model=ArrivalOut,
    status_code=status.HTTP_201_CREATED,
    summary="Record a paddy movement (pending approval)",
    tags=["Arrivals"],
)
def create_arrival(payload: ArrivalCreate, db: Session = Depends(get_db)):
    try:
        return record_arrival(db, payload)
    except ValueError as exc:
        raise HTTPException(status_code=error_status(exc), detail=str(exc))


@router.post("/arrivals/{arrival_id}/approve", response_model=ArrivalOut, tags=["Arrivals"])
def approve_arrival_api(arrival_id: int, payload: ApprovalRequest, db: Session = Depends(get_db)):
    try:
        return approve_arrival(db, arrival_id, payload.approved_by, admin=payload.as_admin)
    except ValueError as exc:
        raise HTTPException(status_code=error_status(exc), detail=str(exc))


@router.post("/arrivals/{arrival_id}/reject", response_model=ArrivalOut, tags=["Arrivals"])
def reject_arrival_api(arrival_id: int, payload: RejectionRequest, db: Session = Depends(get_db)):
    try:
        return reject_arrival(db, arrival_id, payload.rejected_by)
    except ValueError as exc:
        raise HTTPException(status_code=error_status(exc), detail=str(exc))


@router.post(
    "/rice-productions",
    response_model=RiceProductionOut,
    status_code=status.HTTP_201_CREATED,
    summary="Record a rice production or dispatch (pending approval)",
    tags=["Rice Production"],
)
def create_rice_production(payload: RiceProductionCreate, db: Session = Depends(get_db)):
    try:
        return record_rice_production(db, payload)
    except ValueError as exc:
        raise HTTPException(status_code=error_status(exc), detail=str(exc))


@router.post(
    "/rice-productions/{rice_production_id}/approve",
    response_model=RiceProductionOut,
    tags=["Rice Production"],
)
def approve_rice_production_api(
    rice_production_id: int,
    payload: ApprovalRequest,
    db: Session = Depends(get_db),
):
    try:
        return approve_rice_production(db, rice_production_id, payload.approved_by)
    except ValueError as exc:
        raise HTTPException(status_code=error_status(exc), detail=str(exc))


@router.post(
    "/rice-productions/{rice_production_id}/reject",
    response_model=RiceProductionOut,
    tags=["Rice Production"],
)
def reject_rice_production_api(
    rice_production_id: int,
    payload: RejectionRequest,
    db: Session = Depends(get_db),
):
    try:
        return reject_rice_production(db, rice_production_id, payload.rejected_by)
    except ValueError as exc:
        raise HTTPException(status_code=error_status(exc), detail=str(exc))
