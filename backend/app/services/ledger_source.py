"""
Loads ledger inputs from the database.

Every query returns approved records up to ``range_end`` (history included),
ordered by date then id, converted into the engine's input records. Records
without a date are passed through so the engines can report them.
"""
import logging
from datetime import date
from typing import Dict, List, Optional, Tuple

from sqlalchemy import or_
from sqlalchemy.orm import Session, joinedload

from app.models.arrival import Arrival
from app.models.outturn import Outturn
from app.models.rice_production import RiceProduction
from app.schemas.ledger import (
    ApprovalStatus,
    Movement,
    MovementType,
    OutturnInfo,
    ProductType,
    RiceMovementType,
    RiceProductionEntry,
    StorageLocation,
)
from app.utils.dates import parse_date
from app.utils.paddy_bags import to_decimal

logger = logging.getLogger(__name__)


def _storage_location(kunchinittu, warehouse) -> Optional[StorageLocation]:
    if kunchinittu is None and warehouse is None:
        return None
    if warehouse is None and kunchinittu is not None:
        warehouse = kunchinittu.warehouse
    return StorageLocation(
        kunchinittu=kunchinittu.code if kunchinittu else None,
        warehouse=warehouse.code if warehouse else None,
    )


def to_movement(arrival: Arrival) -> Optional[Movement]:
    try:
        movement_type = MovementType(arrival.movement_type)
    except ValueError:
        logger.warning("Skipping arrival %s with unknown movement type %r", arrival.arrival_id, arrival.movement_type)
        return None
    return Movement(
        movement_id=arrival.arrival_id,
        date=parse_date(arrival.date),
        movement_type=movement_type,
        variety=arrival.variety,
        bags=arrival.bags or 0,
        from_location=_storage_location(arrival.from_kunchinittu, arrival.from_warehouse),
        to_location=_storage_location(arrival.to_kunchinittu, arrival.to_warehouse),
        outturn_code=arrival.outturn.code if arrival.outturn else None,
        status=ApprovalStatus(arrival.status),
        admin_approved_by=arrival.admin_approved_by,
        broker=arrival.broker,
    )


def to_rice_entry(production: RiceProduction) -> RiceProductionEntry:
    packaging = production.packaging
    return RiceProductionEntry(
        entry_id=production.rice_production_id,
        date=parse_date(production.date),
        outturn_code=production.outturn.code if production.outturn else None,
        product_type=ProductType(production.product_type),
        bags=production.bags or 0,
        quantity_quintals=to_decimal(production.quantity_quintals) or 0,
        paddy_bags_deducted=production.paddy_bags_deducted,
        packaging=packaging.brand_name if packaging else None,
        bag_size_kg=(to_decimal(packaging.allotted_kg) if packaging else None) or 0,
        movement_type=RiceMovementType(production.movement_type),
        location_code=production.location_code,
        lorry_number=production.lorry_number,
        bill_number=production.bill_number,
        status=ApprovalStatus(production.status),
    )


def load_outturns(db: Session) -> Dict[str, OutturnInfo]:
    rows = db.query(Outturn).order_by(Outturn.outturn_id).all()
    return {row.code: OutturnInfo.model_validate(row) for row in rows}


def _approved_arrivals(db: Session, range_end: date):
    return (
        db.query(Arrival)
        .options(
            joinedload(Arrival.from_kunchinittu),
            joinedload(Arrival.from_warehouse),
            joinedload(Arrival.to_kunchinittu),
            joinedload(Arrival.to_warehouse),
            joinedload(Arrival.outturn),
        )
        .filter(Arrival.status == ApprovalStatus.APPROVED.value)
        .filter(or_(Arrival.date.is_(None), Arrival.date <= range_end))
    )


def _approved_rice_productions(db: Session, range_end: date):
    return (
        db.query(RiceProduction)
        .options(joinedload(RiceProduction.outturn), joinedload(RiceProduction.packaging))
        .filter(RiceProduction.status == ApprovalStatus.APPROVED.value)
        .filter(or_(RiceProduction.date.is_(None), RiceProduction.date <= range_end))
    )


def load_paddy_inputs(
    db: Session,
    range_end: date,
) -> Tuple[List[Movement], List[RiceProductionEntry], Dict[str, OutturnInfo]]:
    """
    Every approved movement and rice production of the mill up to ``range_end``.

    A storage unit's ledger still needs the whole mill: stock shifted into it
    comes from other units, and its outturns are fed from elsewhere too. The
    engine narrows the output, never the inputs.
    """
    arrivals = _approved_arrivals(db, range_end).order_by(Arrival.date, Arrival.arrival_id).all()
    movements = [m for m in (to_movement(a) for a in arrivals) if m is not None]

    productions = (
        _approved_rice_productions(db, range_end)
        .order_by(RiceProduction.date, RiceProduction.rice_production_id)
        .all()
    )

    logger.debug(
        "Loaded %d movement(s) and %d rice production(s) up to %s",
        len(movements),
        len(productions),
        range_end,
    )
    return movements, [to_rice_entry(p) for p in productions], load_outturns(db)


def load_rice_inputs(
    db: Session,
    range_end: date,
    product_type: Optional[str] = None,
) -> Tuple[List[RiceProductionEntry], Dict[str, OutturnInfo]]:
    """
    Approved rice productions up to ``range_end``, optionally for one product.

    There is no location filter here: dispatches carry no location and match
    the first pool of any location, so they must be replayed against every
    pool. The engine narrows the report to a location afterwards.
    """
    query = _approved_rice_productions(db, range_end)
    if product_type:
        query = query.filter(RiceProduction.product_type == product_type)
    productions = query.order_by(RiceProduction.date, RiceProduction.rice_production_id).all()
    return [to_rice_entry(p) for p in productions], load_outturns(db)


def available_rice_months(db: Session) -> List[Dict[str, str]]:
    """Months (newest first) that hold approved rice production."""
    rows = (
        db.query(RiceProduction.date)
        .filter(RiceProduction.status == ApprovalStatus.APPROVED.value)
        .filter(RiceProduction.date.isnot(None))
        .distinct()
        .all()
    )
    months = {(d.year, d.month) for (d,) in rows if d is not None}
    return [
        {
            "month": f"{year:04d}-{month:02d}",
            "month_label": date(year, month, 1).strftime("%B %Y"),
        }
        for year, month in sorted(months, reverse=True)
    ]


def data_date_span(db: Session, kunchinittu_id: Optional[int] = None) -> Tuple[Optional[date], Optional[date]]:
    """Earliest and latest approved movement dates, used as a default ledger range."""
    query = db.query(Arrival.date).filter(
        Arrival.status == ApprovalStatus.APPROVED.value,
        Arrival.date.isnot(None),
    )
    if kunchinittu_id is not None:
        query = query.filter(
            or_(
                Arrival.from_kunchinittu_id == kunchinittu_id,
                Arrival.to_kunchinittu_id == kunchinittu_id,
            )
        )
    dates = [parse_date(d) for (d,) in query.all()]
    dates = [d for d in dates if d is not None]
    if not dates:
        return None, None
    return min(dates), max(dates)


def rice_date_span(db: Session) -> Tuple[Optional[date], Optional[date]]:
    """Earliest and latest approved rice production dates."""
    rows = (
        db.query(RiceProduction.date)
        .filter(RiceProduction.status == ApprovalStatus.APPROVED.value)
        .filter(RiceProduction.date.isnot(None))
        .all()
    )
    dates = [d for d in (parse_date(value) for (value,) in rows) if d is not None]
    if not dates:
        return None, None
    return min(dates), max(dates)
