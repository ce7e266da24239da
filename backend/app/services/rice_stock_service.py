"""
Rice stock ledger.

Finished-product balances in quintals and bags, keyed by
(product, packaging, bag size, location, outturn). Stored entries add to
their pool; loading dispatches subtract from the first pool with the same
product, packaging, bag size and outturn, whatever its location.
"""
import logging
from collections import defaultdict
from datetime import date
from decimal import Decimal
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from app.schemas.ledger import (
    ApprovalStatus,
    LedgerDiagnostic,
    OutturnInfo,
    ProductType,
    RiceMovementType,
    RiceProductionEntry,
    RiceProductionLine,
    RiceStockDay,
    RiceStockLine,
    RiceStockReport,
)
from app.services.paddy_stock_service import clearing_dates
from app.services.stock_consistency import (
    check_balance,
    check_continuity,
    check_non_negative,
    record_diagnostic,
    validate_range,
)
from app.services.stock_keys import RiceQuantity, RiceStockKey, sort_key
from app.utils.text_cleaner import normalize_code

logger = logging.getLogger(__name__)

RICE_BALANCE_TOLERANCE = 0.01
ZERO = Decimal("0")

RiceStockMap = Dict[RiceStockKey, RiceQuantity]

VARIETY_PREFIXED_PRODUCTS = {ProductType.RJ_RICE_1.value, ProductType.RJ_RICE_2.value, ProductType.BROKEN.value}


def product_label(product: str, outturn: Optional[OutturnInfo]) -> str:
    """Display name: RJ Rice and Broken carry the outturn's variety and type, Bran its type."""
    if outturn is None or not outturn.allotted_variety:
        return product
    if product in VARIETY_PREFIXED_PRODUCTS:
        parts = [outturn.allotted_variety, outturn.type, product]
    elif product == ProductType.BRAN.value:
        parts = [outturn.type, product]
    else:
        return product
    return " ".join(part for part in parts if part)


def stock_key(entry: RiceProductionEntry) -> RiceStockKey:
    location = normalize_code(entry.location_code) if entry.movement_type is RiceMovementType.KUNCHINITTU else None
    return RiceStockKey(
        product=entry.product_type.value,
        packaging=entry.packaging,
        bag_size_kg=entry.bag_size_kg,
        location=location,
        outturn_code=entry.outturn_code,
    )


def _display_location(entry: RiceProductionEntry) -> str:
    if entry.movement_type is RiceMovementType.LOADING:
        lorry = (entry.lorry_number or "N/A").upper()
        bill = (entry.bill_number or "N/A").upper()
        return f"Lorry: {lorry}, Bill: {bill}"
    return normalize_code(entry.location_code) or "N/A"


def eligible_entries(
    entries: Iterable[RiceProductionEntry],
    range_end: date,
    diagnostics: List[LedgerDiagnostic],
) -> List[RiceProductionEntry]:
    kept = []
    for entry in entries:
        if entry.status is not ApprovalStatus.APPROVED or entry.is_clearing:
            continue
        if entry.date is None:
            record_diagnostic(
                diagnostics,
                "error",
                "missing-date",
                None,
                "Rice production has no usable date and cannot be placed in the stock report",
                entry_id=entry.entry_id,
                product=entry.product_type.value,
                outturn=entry.outturn_code,
            )
            continue
        if entry.date > range_end:
            continue
        kept.append(entry)
    return sorted(kept, key=lambda e: (e.date, e.entry_id is None, e.entry_id or 0))


class RiceStockFold:
    def __init__(self, diagnostics: List[LedgerDiagnostic], cleared: Optional[Mapping[str, date]] = None):
        self.stock: RiceStockMap = {}
        self.diagnostics = diagnostics
        self.cleared = dict(cleared or {})
        self.effects: List[Tuple[RiceStockKey, Decimal]] = []

    def begin_day(self) -> None:
        self.effects = []

    def _cleared_before(self, key: RiceStockKey, day: date) -> bool:
        cleared_at = self.cleared.get(key.outturn_code or "")
        return cleared_at is not None and cleared_at < day

    def store(self, entry: RiceProductionEntry) -> RiceStockKey:
        key = stock_key(entry)
        current = self.stock.get(key, RiceQuantity(ZERO, 0))
        self.stock[key] = RiceQuantity(current.qtls + entry.quantity_quintals, current.bags + entry.bags)
        self.effects.append((key, entry.quantity_quintals))
        return key

    def dispatch(self, entry: RiceProductionEntry) -> Optional[RiceStockKey]:
        """Subtract from the first matching pool still on the books; returns that pool."""
        wanted = stock_key(entry)
        match = next(
            (
                key
                for key in self.stock
                if key.matches_dispatch(wanted) and not self._cleared_before(key, entry.date)
            ),
            None,
        )
        if match is None:
            record_diagnostic(
                self.diagnostics,
                "error",
                "unmatched-loading",
                entry.date,
                f"Loading transaction without matching stock: {wanted.product} "
                f"{wanted.packaging or 'N/A'} {wanted.bag_size_kg}kg outturn {wanted.outturn_code or 'NONE'}",
                entry_id=entry.entry_id,
                product=wanted.product,
                packaging=wanted.packaging,
                bag_size_kg=wanted.bag_size_kg,
                outturn=wanted.outturn_code,
                outturn_cleared_at=self.cleared.get(wanted.outturn_code or ""),
                quantity=entry.quantity_quintals,
                bags=entry.bags,
                available_stock_keys=[list(key) for key in self.stock if not self._cleared_before(key, entry.date)],
            )
            return None

        before = self.stock[match]
        after = RiceQuantity(before.qtls - entry.quantity_quintals, before.bags - entry.bags)
        if after.qtls < 0 or after.bags < 0:
            record_diagnostic(
                self.diagnostics,
                "warning",
                "loading-overshoot",
                entry.date,
                f"Loading of {entry.quantity_quintals} qtls exceeds the {before.qtls} qtls held for {match.product}",
                entry_id=entry.entry_id,
                key=list(match),
                held_qtls=before.qtls,
                held_bags=before.bags,
                dispatched_qtls=entry.quantity_quintals,
                dispatched_bags=entry.bags,
            )
        if after.qtls <= 0 or after.bags <= 0:
            del self.stock[match]
            self.effects.append((match, -before.qtls))
        else:
            self.stock[match] = after
            self.effects.append((match, -entry.quantity_quintals))
        return match

    def apply(self, entry: RiceProductionEntry) -> Optional[RiceStockKey]:
        """Apply one entry; returns the pool it changed, None when it changed nothing."""
        if entry.movement_type is RiceMovementType.KUNCHINITTU:
            return self.store(entry)
        if entry.movement_type is RiceMovementType.LOADING:
            return self.dispatch(entry)
        raise ValueError(f"Unhandled rice movement type: {entry.movement_type}")


def _visible(stock: RiceStockMap, cleared: Mapping[str, date], hidden) -> RiceStockMap:
    return {
        key: quantity
        for key, quantity in stock.items()
        if not (key.outturn_code in cleared and hidden(cleared[key.outturn_code]))
    }


def _stock_lines(stock: RiceStockMap, outturns: Mapping[str, OutturnInfo]) -> List[RiceStockLine]:
    return [
        RiceStockLine(
            product=key.product,
            product_label=product_label(key.product, outturns.get(key.outturn_code or "")),
            packaging=key.packaging,
            bag_size_kg=key.bag_size_kg,
            location=key.location,
            outturn_code=key.outturn_code,
            qtls=quantity.qtls,
            bags=quantity.bags,
        )
        for key, quantity in sorted(stock.items(), key=lambda item: sort_key(item[0]))
    ]


def _production_line(entry: RiceProductionEntry, outturns: Mapping[str, OutturnInfo], applied: bool) -> RiceProductionLine:
    return RiceProductionLine(
        entry_id=entry.entry_id,
        movement_type=entry.movement_type,
        product=entry.product_type.value,
        product_label=product_label(entry.product_type.value, outturns.get(entry.outturn_code or "")),
        packaging=entry.packaging,
        bag_size_kg=entry.bag_size_kg,
        location=_display_location(entry),
        outturn_code=entry.outturn_code,
        qtls=entry.quantity_quintals,
        bags=entry.bags,
        applied=applied,
    )


def _qtls(stock: RiceStockMap) -> Dict[RiceStockKey, Decimal]:
    return {key: quantity.qtls for key, quantity in stock.items()}


def _total(stock: RiceStockMap) -> Decimal:
    return sum((quantity.qtls for quantity in stock.values()), ZERO)


def build_rice_ledger(
    range_start: date,
    range_end: date,
    rice_productions: Iterable[RiceProductionEntry],
    outturns: Optional[Mapping[str, OutturnInfo]] = None,
    tolerance: float = RICE_BALANCE_TOLERANCE,
    location_code: Optional[str] = None,
) -> RiceStockReport:
    """
    Rice stock for every date of ``range_start``..``range_end`` that carries entries.

    An outturn cleared on day C is dropped from that day's closing stock and
    from every later opening; the dropped quantity is reported as an outflow.

    Every entry is replayed whatever ``location_code`` says, so a dispatch
    drains the same pool in every report. The location only narrows the
    output: pools stored there, the entries that changed them and the dates
    carrying such entries.
    """
    validate_range(range_start, range_end)
    outturns = dict(outturns or {})
    location = normalize_code(location_code)
    mill_diagnostics: List[LedgerDiagnostic] = []
    diagnostics: List[LedgerDiagnostic] = []

    rice_productions = list(rice_productions)
    approved = [e for e in rice_productions if e.status is ApprovalStatus.APPROVED]
    cleared = clearing_dates(outturns, approved)
    entries = eligible_entries(rice_productions, range_end, mill_diagnostics)

    def in_view(key: Optional[RiceStockKey]) -> bool:
        return location is None or (key is not None and key.location == location)

    # Stored entries keep their location even when undated
    view_ids = {
        e.entry_id
        for e in rice_productions
        if e.movement_type is RiceMovementType.KUNCHINITTU and in_view(stock_key(e))
    }

    grouped: Dict[date, List[RiceProductionEntry]] = defaultdict(list)
    for entry in entries:
        grouped[entry.date].append(entry)

    fold = RiceStockFold(mill_diagnostics, cleared)
    for day in sorted(d for d in grouped if d < range_start):
        for entry in grouped[day]:
            if in_view(fold.apply(entry)):
                view_ids.add(entry.entry_id)

    days: List[RiceStockDay] = []
    snapshots = []
    for day in sorted(d for d in grouped if d >= range_start):
        opening = _visible(
            {key: q for key, q in fold.stock.items() if in_view(key)},
            cleared,
            lambda cleared_at: cleared_at < day,
        )

        fold.begin_day()
        lines = []
        for entry in grouped[day]:
            touched = fold.apply(entry)
            if location is None or in_view(touched):
                view_ids.add(entry.entry_id)
                lines.append(_production_line(entry, outturns, touched is not None))
        if not lines:
            continue

        closing = _visible(
            {key: q for key, q in fold.stock.items() if in_view(key)},
            cleared,
            lambda cleared_at: cleared_at <= day,
        )

        inflows = outflows = ZERO
        for key, delta in fold.effects:
            if not in_view(key):
                continue
            if key.outturn_code in cleared and cleared[key.outturn_code] <= day:
                continue
            if delta > 0:
                inflows += delta
            else:
                outflows -= delta
        # Balance still held by an outturn cleared today leaves the books
        outflows += sum(
            (q.qtls for key, q in opening.items() if cleared.get(key.outturn_code or "") == day),
            ZERO,
        )

        opening_total = _total(opening)
        closing_total = _total(closing)
        check_balance(day, opening_total, closing_total, inflows, outflows, diagnostics, tolerance)
        check_non_negative(day, "rice", _qtls(closing), diagnostics)
        snapshots.append((day, _qtls(opening), _qtls(closing)))

        days.append(
            RiceStockDay(
                date=day,
                opening_stock=_stock_lines(opening, outturns),
                productions=lines,
                closing_stock=_stock_lines(closing, outturns),
                opening_total=opening_total,
                closing_total=closing_total,
                inflows=inflows,
                outflows=outflows,
            )
        )

    def cleared_between(key: RiceStockKey, prev_day: date, curr_day: date) -> bool:
        cleared_at = cleared.get(key.outturn_code or "")
        return cleared_at is not None and prev_day < cleared_at < curr_day

    check_continuity(snapshots, diagnostics, tolerance, ignore_key=cleared_between)

    if location is not None:
        mill_diagnostics = [
            d for d in mill_diagnostics if "entry_id" not in d.context or d.context["entry_id"] in view_ids
        ]
    diagnostics = mill_diagnostics + diagnostics

    logger.info(
        "Rice stock %s..%s at %s: %d day(s), %d diagnostic(s)",
        range_start,
        range_end,
        location or "all locations",
        len(days),
        len(diagnostics),
    )
    return RiceStockReport(range_start=range_start, range_end=range_end, days=days, diagnostics=diagnostics)
