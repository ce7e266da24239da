"""
Data entry and approval for the records the ledgers replay.

Entries start as pending; the only change an entry sees afterwards is its
approval state.
"""
import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.orm import Session

from app.models.arrival import Arrival
from app.models.location import Kunchinittu, Warehouse
from app.models.rice_production import Packaging, RiceProduction
from app.schemas.arrival import ArrivalCreate
from app.schemas.ledger import CLEARING_LOCATION, ApprovalStatus, MovementType, RiceMovementType
from app.schemas.rice_production import RiceProductionCreate
from app.services.outturn_service import get_or_create_outturn
from app.utils.paddy_bags import calculate_paddy_bags_deducted, calculate_quantity_quintals
from app.utils.text_cleaner import normalize_code, normalize_name

logger = logging.getLogger(__name__)

# Movement types that take paddy out of a storage unit
SOURCE_REQUIRED = {MovementType.SHIFTING, MovementType.PRODUCTION_SHIFTING, MovementType.LOADING}
OUTTURN_REQUIRED = {MovementType.PRODUCTION_SHIFTING, MovementType.FOR_PRODUCTION_PURCHASE}


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _check_location(db: Session, kunchinittu_id: Optional[int], warehouse_id: Optional[int]) -> None:
    if kunchinittu_id is not None:
        kunchinittu = db.query(Kunchinittu).filter(Kunchinittu.kunchinittu_id == kunchinittu_id).first()
        if not kunchinittu:
            raise ValueError("Kunchinittu not found")
        if warehouse_id is not None and kunchinittu.warehouse_id != warehouse_id:
            raise ValueError("Kunchinittu does not belong to the given warehouse")
    if warehouse_id is not None:
        if not db.query(Warehouse).filter(Warehouse.warehouse_id == warehouse_id).first():
            raise ValueError("Warehouse not found")


def record_arrival(db: Session, payload: ArrivalCreate) -> Arrival:
    kind = payload.movement_type
    if kind in SOURCE_REQUIRED and payload.from_kunchinittu_id is None:
        raise ValueError(f"{kind.value} requires a source kunchinittu")
    if kind is MovementType.SHIFTING and payload.to_kunchinittu_id is None:
        raise ValueError("shifting requires a destination kunchinittu")
    if kind in OUTTURN_REQUIRED and not payload.outturn_code:
        raise ValueError(f"{kind.value} requires an outturn code")

    _check_location(db, payload.from_kunchinittu_id, payload.from_warehouse_id)
    _check_location(db, payload.to_kunchinittu_id, payload.to_warehouse_id)

    variety = normalize_name(payload.variety) if payload.variety else None
    outturn = None
    if payload.outturn_code:
        outturn = get_or_create_outturn(db, payload.outturn_code, allotted_variety=variety)

    arrival = Arrival(
        date=payload.date,
        movement_type=kind.value,
        variety=variety,
        bags=payload.bags,
        net_weight=payload.net_weight,
        broker=payload.broker,
        lorry_number=normalize_code(payload.lorry_number),
        from_kunchinittu_id=payload.from_kunchinittu_id,
        from_warehouse_id=payload.from_warehouse_id,
        to_kunchinittu_id=payload.to_kunchinittu_id,
        to_warehouse_id=payload.to_warehouse_id,
        outturn_id=outturn.outturn_id if outturn else None,
        status=ApprovalStatus.PENDING.value,
        created_by=payload.created_by,
    )
    db.add(arrival)
    db.commit()
    db.refresh(arrival)
    logger.info("Recorded %s arrival %s (%d bags)", kind.value, arrival.arrival_id, arrival.bags)
    return arrival


def get_arrival(db: Session, arrival_id: int) -> Arrival:
    arrival = db.query(Arrival).filter(Arrival.arrival_id == arrival_id).first()
    if not arrival:
        raise ValueError("Arrival not found")
    return arrival


def approve_arrival(db: Session, arrival_id: int, approver: str, admin: bool = False) -> Arrival:
    """
    Manager approval puts the movement on the ledger; admin approval is a
    second sign-off, required when paddy approvals are admin-gated.
    """
    arrival = get_arrival(db, arrival_id)
    if arrival.status == ApprovalStatus.REJECTED.value:
        raise ValueError("Rejected arrival cannot be approved")
    if arrival.status != ApprovalStatus.APPROVED.value:
        arrival.status = ApprovalStatus.APPROVED.value
        arrival.approved_by = approver
        arrival.approved_at = _now()
    if admin and not arrival.admin_approved_by:
        arrival.admin_approved_by = approver
        arrival.admin_approved_at = _now()
    db.commit()
    db.refresh(arrival)
    return arrival


def reject_arrival(db: Session, arrival_id: int, rejected_by: str) -> Arrival:
    arrival = get_arrival(db, arrival_id)
    if arrival.status != ApprovalStatus.PENDING.value:
        raise ValueError(f"Arrival is already {arrival.status}")
    arrival.status = ApprovalStatus.REJECTED.value
    arrival.approved_by = rejected_by
    arrival.approved_at = _now()
    db.commit()
    db.refresh(arrival)
    logger.info("Arrival %s rejected by %s", arrival_id, rejected_by)
    return arrival


def record_rice_production(db: Session, payload: RiceProductionCreate) -> RiceProduction:
    packaging = db.query(Packaging).filter(Packaging.packaging_id == payload.packaging_id).first()
    if not packaging:
        raise ValueError("Packaging not found")

    location_code = normalize_code(payload.location_code)
    lorry_number = normalize_code(payload.lorry_number)
    bill_number = normalize_code(payload.bill_number)
    if payload.movement_type is RiceMovementType.LOADING:
        if not lorry_number or not bill_number:
            raise ValueError("Loading entries require lorry number and bill number")
        location_code = None
    else:
        if not location_code:
            raise ValueError("Kunchinittu entries require a location code")
        if location_code == CLEARING_LOCATION:
            raise ValueError(f"{CLEARING_LOCATION} is reserved for outturn clearing")

    outturn = get_or_create_outturn(db, payload.outturn_code)
    if outturn.is_cleared:
        raise ValueError(f"Outturn {outturn.code} is cleared")

    quantity = calculate_quantity_quintals(payload.bags, packaging.allotted_kg)
    production = RiceProduction(
        date=payload.date,
        outturn_id=outturn.outturn_id,
        product_type=payload.product_type.value,
        bags=payload.bags,
        quantity_quintals=quantity,
        paddy_bags_deducted=calculate_paddy_bags_deducted(quantity, payload.product_type.value),
        packaging_id=packaging.packaging_id,
        movement_type=payload.movement_type.value,
        location_code=location_code,
        lorry_number=lorry_number,
        bill_number=bill_number,
        status=ApprovalStatus.PENDING.value,
        created_by=payload.created_by,
    )
    db.add(production)
    db.commit()
    db.refresh(production)
    logger.info(
        "Recorded %s %s for outturn %s: %s qtls",
        production.movement_type,
        production.product_type,
        outturn.code,
        quantity,
    )
    return production


def get_rice_production(db: Session, rice_production_id: int) -> RiceProduction:
    production = (
        db.query(RiceProduction)
        .filter(RiceProduction.rice_production_id == rice_production_id)
        .first()
    )
    if not production:
        raise ValueError("Rice production not found")
    return production


def approve_rice_production(db: Session, rice_production_id: int, approver: str) -> RiceProduction:
    production = get_rice_production(db, rice_production_id)
    if production.status != ApprovalStatus.PENDING.value:
        raise ValueError(f"Rice production is already {production.status}")
    production.status = ApprovalStatus.APPROVED.value
    production.approved_by = approver
    production.approved_at = _now()
    db.commit()
    db.refresh(production)
    return production


def reject_rice_production(db: Session, rice_production_id: int, rejected_by: str) -> RiceProduction:
    production = get_rice_production(db, rice_production_id)
    if production.status != ApprovalStatus.PENDING.value:
        raise ValueError(f"Rice production is already {production.status}")
    production.status = ApprovalStatus.REJECTED.value
    production.approved_by = rejected_by
    production.approved_at = _now()
    db.commit()
    db.refresh(production)
    logger.info("Rice production %s rejected by %s", rice_production_id, rejected_by)
    return production
