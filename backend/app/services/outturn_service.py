import logging
from datetime import date, datetime, timezone
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from app.core.config import settings
from app.models.outturn import Outturn
from app.models.rice_production import RiceProduction
from app.schemas.ledger import CLEARING_LOCATION, ApprovalStatus, ProductType, RiceMovementType
from app.services.ledger_source import load_paddy_inputs
from app.services.paddy_stock_service import production_balance
from app.utils.text_cleaner import normalize_code, normalize_name

logger = logging.getLogger(__name__)


def get_outturn(db: Session, outturn_id: int) -> Outturn:
    outturn = db.query(Outturn).filter(Outturn.outturn_id == outturn_id).first()
    if not outturn:
        raise ValueError("Outturn not found")
    return outturn


def get_or_create_outturn(
    db: Session,
    code: str,
    allotted_variety: Optional[str] = None,
    type: Optional[str] = None,
) -> Outturn:
    """Outturns are created implicitly the first time a movement names them."""
    norm = normalize_code(code)
    if not norm:
        raise ValueError("Outturn code is required")
    outturn = db.query(Outturn).filter(Outturn.code == norm).first()
    if outturn:
        if not outturn.allotted_variety and allotted_variety:
            outturn.allotted_variety = normalize_name(allotted_variety)
        return outturn

    outturn = Outturn(
        code=norm,
        allotted_variety=normalize_name(allotted_variety) if allotted_variety else None,
        type=type,
    )
    db.add(outturn)
    db.flush()
    logger.info("Created outturn %s (%s)", norm, outturn.allotted_variety or "no variety")
    return outturn


def list_outturns(db: Session, include_cleared: bool = True) -> List[Outturn]:
    query = db.query(Outturn)
    if not include_cleared:
        query = query.filter(Outturn.is_cleared.is_(False))
    return query.order_by(Outturn.code).all()


def clear_outturn(
    db: Session,
    outturn_id: int,
    cleared_at: date,
    cleared_by: Optional[str] = None,
) -> Dict[str, object]:
    """
    Close an outturn for good.

    The paddy still in production at the close of ``cleared_at`` is written
    off through a CLEARING rice production entry, so it is accounted for
    rather than silently dropped from the ledgers.
    """
    outturn = get_outturn(db, outturn_id)
    if outturn.is_cleared:
        logger.info(
            "Outturn %s already cleared on %s; nothing to do",
            outturn.code,
            outturn.cleared_at,
        )
        return {"outturn": outturn, "remaining_bags": 0, "already_cleared": True}

    movements, rice_entries, outturns = load_paddy_inputs(db, cleared_at)
    remaining = production_balance(
        cleared_at,
        movements,
        rice_entries,
        outturns,
        outturn.code,
        require_admin_approval=settings.PADDY_REQUIRE_ADMIN_APPROVAL,
    )

    now = datetime.now(timezone.utc)
    db.add(
        RiceProduction(
            date=cleared_at,
            outturn_id=outturn.outturn_id,
            product_type=ProductType.RICE.value,
            bags=remaining,
            quantity_quintals=0,
            paddy_bags_deducted=0,
            movement_type=RiceMovementType.KUNCHINITTU.value,
            location_code=CLEARING_LOCATION,
            status=ApprovalStatus.APPROVED.value,
            approved_by=cleared_by,
            approved_at=now,
            created_by=cleared_by,
        )
    )
    outturn.is_cleared = True
    outturn.cleared_at = cleared_at
    outturn.cleared_by = cleared_by

    db.commit()
    db.refresh(outturn)
    logger.info("Cleared outturn %s on %s with %d bag(s) written off", outturn.code, cleared_at, remaining)
    return {"outturn": outturn, "remaining_bags": remaining, "already_cleared": False}
