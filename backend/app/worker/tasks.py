import logging
from collections import Counter
from datetime import date
from typing import Dict, List, Optional

from celery import shared_task

from app.core.celery_app import celery_app  # noqa: F401  registers the app for shared tasks
from app.core.config import settings
from app.core.database import SessionLocal
from app.models.location import Kunchinittu
from app.schemas.ledger import LedgerDiagnostic
from app.services.ledger_source import load_paddy_inputs, load_rice_inputs
from app.services.paddy_stock_service import build_paddy_ledger
from app.services.rice_stock_service import build_rice_ledger

logger = logging.getLogger(__name__)


def _summarize(diagnostics: List[LedgerDiagnostic], days: int) -> Dict[str, object]:
    by_code = Counter(d.code for d in diagnostics)
    return {
        "days": days,
        "warnings": sum(1 for d in diagnostics if d.severity == "warning"),
        "errors": sum(1 for d in diagnostics if d.severity == "error"),
        "by_code": dict(sorted(by_code.items())),
    }


@shared_task(name="app.worker.tasks.rice_stock_consistency")
def rice_stock_consistency_job(date_from: str, date_to: str) -> dict:
    """
    Recompute the rice stock report for a range and return the diagnostic
    counts, so discrepancies can be reviewed without loading the report.
    """
    range_start, range_end = date.fromisoformat(date_from), date.fromisoformat(date_to)
    db = SessionLocal()
    try:
        entries, outturns = load_rice_inputs(db, range_end)
        report = build_rice_ledger(
            range_start,
            range_end,
            entries,
            outturns,
            tolerance=settings.RICE_BALANCE_TOLERANCE,
        )
    finally:
        db.close()

    summary = _summarize(report.diagnostics, len(report.days))
    logger.info("Rice stock consistency %s..%s", date_from, date_to, extra={"summary": summary})
    return summary


@shared_task(name="app.worker.tasks.paddy_stock_consistency")
def paddy_stock_consistency_job(
    kunchinittu_id: Optional[int],
    date_from: str,
    date_to: str,
) -> dict:
    """A storage unit's ledger when ``kunchinittu_id`` is given, else the whole mill."""
    range_start, range_end = date.fromisoformat(date_from), date.fromisoformat(date_to)
    db = SessionLocal()
    try:
        code = None
        if kunchinittu_id is not None:
            kunchinittu = db.query(Kunchinittu).filter(Kunchinittu.kunchinittu_id == kunchinittu_id).first()
            if not kunchinittu:
                raise ValueError(f"Kunchinittu {kunchinittu_id} not found")
            code = kunchinittu.code
        movements, rice_entries, outturns = load_paddy_inputs(db, range_end)
        report = build_paddy_ledger(
            range_start,
            range_end,
            movements,
            rice_entries,
            outturns,
            require_admin_approval=settings.PADDY_REQUIRE_ADMIN_APPROVAL,
            tolerance=settings.PADDY_BALANCE_TOLERANCE,
            kunchinittu=code,
        )
    finally:
        db.close()

    summary = _summarize(report.diagnostics, len(report.days))
    summary["kunchinittu_id"] = kunchinittu_id
    logger.info(
        "Paddy stock consistency %s..%s for kunchinittu %s",
        date_from,
        date_to,
        kunchinittu_id,
        extra={"summary": summary},
    )
    return summary
