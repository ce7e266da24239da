"""
Paddy stock ledger.

Replays approved paddy movements and rice-production consumption into two
running maps, warehouse bags keyed by (variety, kunchinittu, warehouse) and
in-production bags keyed by (variety, outturn), and emits opening stock,
classified movement lines and closing stock for every date of the range.

The computation is pure: it only reads the records it is given and keeps all
running state on a PaddyStockFold owned by a single call.
"""
import logging
from collections import defaultdict
from datetime import date
from typing import Dict, Hashable, Iterable, List, Mapping, Optional, Sequence, Tuple

from app.schemas.ledger import (
    ApprovalStatus,
    LedgerDiagnostic,
    Movement,
    MovementType,
    OutturnInfo,
    PaddyDailyMovements,
    PaddyLedgerDay,
    PaddyLedgerReport,
    PaddyMovementLine,
    PaddyStockLine,
    RemainingInProduction,
    RiceMovementType,
    RiceProductionEntry,
    StorageLocation,
)
from app.services.stock_consistency import (
    check_balance,
    check_continuity,
    check_non_negative,
    record_diagnostic,
    validate_range,
)
from app.services.stock_keys import ProductionKey, WarehouseKey, sort_key
from app.utils.dates import iter_dates, month_bounds

logger = logging.getLogger(__name__)

PADDY_BALANCE_TOLERANCE = 0.5
UNKNOWN_VARIETY = "Unknown"

StockMap = Dict[Hashable, int]


def _warehouse_key(variety: str, location: Optional[StorageLocation]) -> WarehouseKey:
    if location is None:
        return WarehouseKey(variety, None, None)
    return WarehouseKey(variety, location.kunchinittu, location.warehouse)


def _label(location: Optional[StorageLocation]) -> Optional[str]:
    return location.label if location else None


class StorageUnitView:
    """
    The part of the whole-mill ledger shown for one storage unit: its own
    warehouse keys, the outturns it shifted paddy into, and the records
    touching either. Without a storage unit the view is the whole mill.
    """

    def __init__(self, kunchinittu: Optional[str] = None, movements: Iterable[Movement] = ()):
        self.kunchinittu = kunchinittu
        self.outturns = set()
        if kunchinittu is not None:
            self.outturns = {
                m.outturn_code
                for m in movements
                if m.movement_type is MovementType.PRODUCTION_SHIFTING
                and m.outturn_code
                and self._in_unit(m.from_location)
            }

    @property
    def whole_mill(self) -> bool:
        return self.kunchinittu is None

    def _in_unit(self, location: Optional[StorageLocation]) -> bool:
        return location is not None and location.kunchinittu == self.kunchinittu

    def holds(self, key: Hashable) -> bool:
        if self.whole_mill:
            return True
        if isinstance(key, WarehouseKey):
            return key.kunchinittu == self.kunchinittu
        return key.outturn_code in self.outturns

    def restrict(self, stock: StockMap) -> StockMap:
        return {key: bags for key, bags in stock.items() if self.holds(key)}

    def touches(self, movement: Movement) -> bool:
        return (
            self.whole_mill
            or self._in_unit(movement.from_location)
            or self._in_unit(movement.to_location)
            or movement.outturn_code in self.outturns
        )

    def covers(self, entry: RiceProductionEntry) -> bool:
        return self.whole_mill or entry.outturn_code in self.outturns

    def keeps(self, diagnostic: LedgerDiagnostic, movement_ids: set, entry_ids: set) -> bool:
        """Record-level diagnostics follow their record into or out of the view."""
        if self.whole_mill:
            return True
        context = diagnostic.context
        if "movement_id" in context:
            return context["movement_id"] in movement_ids
        if "entry_id" in context:
            return context["entry_id"] in entry_ids
        return True


WHOLE_MILL = StorageUnitView()


class PaddyStockFold:
    """Running warehouse and production balances for one ledger computation."""

    def __init__(self, diagnostics: List[LedgerDiagnostic], outturns: Mapping[str, OutturnInfo]):
        self.warehouse: Dict[WarehouseKey, int] = {}
        self.production: Dict[ProductionKey, int] = {}
        self.diagnostics = diagnostics
        self.outturns = outturns
        self.effects: List[Tuple[Hashable, int]] = []
        # Production shiftings that passed the stock guard
        self.production_shifts: List[Movement] = []

    def begin_day(self) -> None:
        self.effects = []

    def _deposit(self, stock: StockMap, key: Hashable, bags: int) -> None:
        if bags <= 0:
            return
        stock[key] = stock.get(key, 0) + bags
        self.effects.append((key, bags))

    def _withdraw(self, stock: StockMap, key: Hashable, bags: int) -> int:
        """Remove up to ``bags`` from ``key``; keys reaching zero are dropped."""
        available = stock.get(key, 0)
        taken = min(available, bags)
        if taken <= 0:
            return 0
        left = available - taken
        if left:
            stock[key] = left
        else:
            del stock[key]
        self.effects.append((key, -taken))
        return taken

    def _guarded_withdraw(self, stock: StockMap, key: WarehouseKey, bags: int, day: date, movement: Movement) -> bool:
        available = stock.get(key, 0)
        if available >= bags:
            self._withdraw(stock, key, bags)
            return True
        # Source is clamped at zero and the paired addition is skipped
        self._withdraw(stock, key, available)
        record_diagnostic(
            self.diagnostics,
            "warning",
            "insufficient-stock",
            day,
            f"Insufficient warehouse stock in {key.label} for {movement.movement_type.value} "
            f"{bags} bags of {key.variety}",
            movement_id=movement.movement_id,
            location=key.label,
            variety=key.variety,
            requested=bags,
            available=available,
        )
        return False

    def apply_movement(self, movement: Movement, day: date) -> Tuple[Optional[str], Optional[PaddyMovementLine]]:
        """Apply one movement; returns (daily section, display line)."""
        variety = movement.variety or UNKNOWN_VARIETY
        bags = movement.bags
        kind = movement.movement_type

        if kind is MovementType.LOOSE:
            return None, None
        if bags < 0:
            record_diagnostic(
                self.diagnostics,
                "warning",
                "negative-bags",
                day,
                f"Movement with negative bag count ignored ({bags})",
                movement_id=movement.movement_id,
            )
            return None, None

        applied = True
        outturn_code = movement.outturn_code
        if kind is MovementType.PURCHASE:
            section = "purchase"
            has_destination = movement.to_location is not None and movement.to_location.kunchinittu
            if outturn_code:
                if has_destination:
                    record_diagnostic(
                        self.diagnostics,
                        "warning",
                        "purchase-both-targets",
                        day,
                        "Purchase has both an outturn and a destination; treating as for-production",
                        movement_id=movement.movement_id,
                    )
                self._deposit(self.production, ProductionKey(variety, outturn_code), bags)
            else:
                if not has_destination:
                    record_diagnostic(
                        self.diagnostics,
                        "warning",
                        "purchase-no-target",
                        day,
                        "Purchase has neither an outturn nor a destination; stored with an empty location",
                        movement_id=movement.movement_id,
                    )
                self._deposit(self.warehouse, _warehouse_key(variety, movement.to_location), bags)
        elif kind is MovementType.FOR_PRODUCTION_PURCHASE:
            section = "purchase"
            self._warn_missing_outturn(movement, day)
            self._deposit(self.production, ProductionKey(variety, outturn_code), bags)
        elif kind is MovementType.SHIFTING:
            section = "shifting"
            source = _warehouse_key(variety, movement.from_location)
            applied = self._guarded_withdraw(self.warehouse, source, bags, day, movement)
            if applied:
                self._deposit(self.warehouse, _warehouse_key(variety, movement.to_location), bags)
        elif kind is MovementType.PRODUCTION_SHIFTING:
            section = "production_shifting"
            self._warn_missing_outturn(movement, day)
            source = _warehouse_key(variety, movement.from_location)
            applied = self._guarded_withdraw(self.warehouse, source, bags, day, movement)
            if applied:
                self._deposit(self.production, ProductionKey(variety, outturn_code), bags)
                self.production_shifts.append(movement)
        elif kind is MovementType.LOADING:
            section = "loading"
            source = _warehouse_key(variety, movement.from_location)
            applied = self._guarded_withdraw(self.warehouse, source, bags, day, movement)
        else:
            raise ValueError(f"Unhandled movement type: {kind}")

        to_label = _label(movement.to_location)
        if kind in (MovementType.PRODUCTION_SHIFTING, MovementType.FOR_PRODUCTION_PURCHASE) or (
            kind is MovementType.PURCHASE and outturn_code
        ):
            to_label = outturn_code
        line = PaddyMovementLine(
            movement_id=movement.movement_id,
            movement_type=kind.value,
            variety=variety,
            bags=bags,
            from_label=_label(movement.from_location),
            to_label=to_label,
            outturn_code=outturn_code,
            broker=movement.broker,
            applied=applied,
        )
        return section, line

    def _warn_missing_outturn(self, movement: Movement, day: date) -> None:
        if not movement.outturn_code:
            record_diagnostic(
                self.diagnostics,
                "warning",
                "missing-outturn",
                day,
                f"{movement.movement_type.value} without an outturn",
                movement_id=movement.movement_id,
            )

    def apply_consumption(self, entry: RiceProductionEntry, day: date) -> Optional[PaddyMovementLine]:
        """Deduct the paddy consumed by a stored rice production from its outturn."""
        deducted = entry.bags_deducted()
        if deducted <= 0:
            return None

        keys = [key for key in self.production if key.outturn_code == entry.outturn_code]
        remaining = deducted
        for key in keys:
            remaining -= self._withdraw(self.production, key, remaining)
            if remaining <= 0:
                break

        if not keys:
            record_diagnostic(
                self.diagnostics,
                "warning",
                "unmatched-consumption",
                day,
                f"No production stock for rice production outturn {entry.outturn_code}",
                entry_id=entry.entry_id,
                outturn=entry.outturn_code,
                paddy_bags=deducted,
            )
        elif remaining > 0:
            record_diagnostic(
                self.diagnostics,
                "warning",
                "insufficient-production-stock",
                day,
                f"Rice production for {entry.outturn_code} needs {deducted} paddy bags, "
                f"{deducted - remaining} available; floored at zero",
                entry_id=entry.entry_id,
                outturn=entry.outturn_code,
                requested=deducted,
                shortfall=remaining,
            )

        return PaddyMovementLine(
            movement_id=entry.entry_id,
            movement_type="rice-production",
            variety=keys[0].variety if keys else self._outturn_variety(entry.outturn_code),
            bags=deducted,
            from_label=entry.outturn_code,
            to_label=entry.product_type.value,
            outturn_code=entry.outturn_code,
            applied=remaining <= 0,
        )

    def clearing_line(self, entry: RiceProductionEntry) -> PaddyMovementLine:
        return PaddyMovementLine(
            movement_id=entry.entry_id,
            movement_type="clearing",
            variety=self._outturn_variety(entry.outturn_code),
            bags=entry.bags,
            from_label=entry.outturn_code,
            to_label=entry.location_code,
            outturn_code=entry.outturn_code,
        )

    def _outturn_variety(self, outturn_code: Optional[str]) -> str:
        info = self.outturns.get(outturn_code) if outturn_code else None
        return (info.allotted_variety if info else None) or UNKNOWN_VARIETY

    def apply_day(
        self,
        day: date,
        movements: Sequence[Movement],
        rice_entries: Sequence[RiceProductionEntry],
        view: StorageUnitView = WHOLE_MILL,
    ) -> PaddyDailyMovements:
        """Apply every record of ``day``; only lines inside ``view`` are returned."""
        daily = PaddyDailyMovements()
        for movement in movements:
            section, line = self.apply_movement(movement, day)
            if section and view.touches(movement):
                getattr(daily, section).append(line)
        for entry in rice_entries:
            # Dispatches of finished rice never touch paddy stock
            if entry.movement_type is RiceMovementType.LOADING:
                continue
            if entry.is_clearing:
                if view.covers(entry):
                    daily.clearing.append(self.clearing_line(entry))
                continue
            line = self.apply_consumption(entry, day)
            if line and view.covers(entry):
                daily.rice_production.append(line)
        return daily


def _record_sort_key(record_date: date, record_id: Optional[int]) -> Tuple[date, bool, int]:
    # Same-day records are processed in ascending record id
    return record_date, record_id is None, record_id or 0


def eligible_movements(
    movements: Iterable[Movement],
    range_end: date,
    diagnostics: List[LedgerDiagnostic],
    require_admin_approval: bool = False,
) -> List[Movement]:
    kept = []
    for movement in movements:
        if movement.status is not ApprovalStatus.APPROVED:
            continue
        if require_admin_approval and not movement.admin_approved_by:
            continue
        if movement.movement_type is MovementType.LOOSE:
            continue
        if movement.date is None:
            record_diagnostic(
                diagnostics,
                "error",
                "missing-date",
                None,
                "Movement has no usable date and cannot be placed in the ledger",
                movement_id=movement.movement_id,
                movement_type=movement.movement_type.value,
                bags=movement.bags,
            )
            continue
        if movement.date > range_end:
            continue
        kept.append(movement)
    return sorted(kept, key=lambda m: _record_sort_key(m.date, m.movement_id))


def eligible_rice_entries(
    entries: Iterable[RiceProductionEntry],
    range_end: date,
    diagnostics: List[LedgerDiagnostic],
) -> List[RiceProductionEntry]:
    kept = []
    for entry in entries:
        if entry.status is not ApprovalStatus.APPROVED:
            continue
        if entry.date is None:
            record_diagnostic(
                diagnostics,
                "error",
                "missing-date",
                None,
                "Rice production has no usable date and cannot be placed in the ledger",
                entry_id=entry.entry_id,
                outturn=entry.outturn_code,
            )
            continue
        if entry.date > range_end:
            continue
        kept.append(entry)
    return sorted(kept, key=lambda e: _record_sort_key(e.date, e.entry_id))


def clearing_dates(
    outturns: Mapping[str, OutturnInfo],
    rice_entries: Iterable[RiceProductionEntry],
) -> Dict[str, date]:
    """Outturn code -> clearing date, from the outturn or its CLEARING marker."""
    cleared: Dict[str, date] = {}
    for entry in rice_entries:
        if entry.is_clearing and entry.outturn_code and entry.date:
            current = cleared.get(entry.outturn_code)
            cleared[entry.outturn_code] = min(current, entry.date) if current else entry.date
    for code, info in outturns.items():
        if info.is_cleared and info.cleared_at:
            cleared[code] = info.cleared_at
    return cleared


def _group_by_date(
    movements: Sequence[Movement],
    rice_entries: Sequence[RiceProductionEntry],
) -> Dict[date, Tuple[List[Movement], List[RiceProductionEntry]]]:
    grouped: Dict[date, Tuple[List[Movement], List[RiceProductionEntry]]] = defaultdict(lambda: ([], []))
    for movement in movements:
        grouped[movement.date][0].append(movement)
    for entry in rice_entries:
        grouped[entry.date][1].append(entry)
    return grouped


def _visible_production(snapshot: Dict[ProductionKey, int], day: date, cleared: Mapping[str, date]) -> Dict[ProductionKey, int]:
    """Drop outturns cleared strictly before ``day``."""
    return {
        key: bags
        for key, bags in snapshot.items()
        if not (key.outturn_code in cleared and cleared[key.outturn_code] < day)
    }


def _stock_lines(warehouse: Dict[WarehouseKey, int], production: Dict[ProductionKey, int]) -> List[PaddyStockLine]:
    lines = [
        PaddyStockLine(variety=key.variety, bags=bags, kunchinittu=key.kunchinittu, warehouse=key.warehouse)
        for key, bags in sorted(warehouse.items(), key=lambda item: sort_key(item[0]))
    ]
    lines.extend(
        PaddyStockLine(variety=key.variety, bags=bags, outturn_code=key.outturn_code)
        for key, bags in sorted(production.items(), key=lambda item: sort_key(item[0]))
    )
    return lines


def _remaining_in_production(
    as_of: date,
    production_shifts: Sequence[Movement],
    rice_entries: Sequence[RiceProductionEntry],
    outturns: Mapping[str, OutturnInfo],
) -> List[RemainingInProduction]:
    """
    Month-to-date production shifting minus rice consumption, per outturn.

    A display figure that restarts from zero on the 1st of each month and is
    independent of the cumulative production stock. ``production_shifts``
    holds only the shiftings the fold applied; ones refused for lack of
    warehouse stock never reached production.
    """
    month_start, _ = month_bounds(as_of)
    variety_by_outturn: Dict[str, str] = {}
    totals: Dict[ProductionKey, List[int]] = {}

    for movement in production_shifts:
        variety = movement.variety or UNKNOWN_VARIETY
        if movement.outturn_code:
            variety_by_outturn.setdefault(movement.outturn_code, variety)
        if month_start <= movement.date <= as_of:
            totals.setdefault(ProductionKey(variety, movement.outturn_code), [0, 0])[0] += movement.bags

    for entry in rice_entries:
        if entry.movement_type is RiceMovementType.LOADING or entry.is_clearing:
            continue
        if not month_start <= entry.date <= as_of:
            continue
        info = outturns.get(entry.outturn_code) if entry.outturn_code else None
        variety = (
            variety_by_outturn.get(entry.outturn_code or "")
            or (info.allotted_variety if info else None)
            or UNKNOWN_VARIETY
        )
        totals.setdefault(ProductionKey(variety, entry.outturn_code), [0, 0])[1] += entry.bags_deducted()

    results = []
    for key in sorted(totals, key=sort_key):
        shifted, consumed = totals[key]
        if shifted - consumed > 0:
            results.append(
                RemainingInProduction(
                    variety=key.variety,
                    outturn_code=key.outturn_code,
                    shifted=shifted,
                    consumed=consumed,
                    remaining=shifted - consumed,
                )
            )
    return results


def build_paddy_ledger(
    range_start: date,
    range_end: date,
    movements: Iterable[Movement],
    rice_productions: Iterable[RiceProductionEntry],
    outturns: Optional[Mapping[str, OutturnInfo]] = None,
    require_admin_approval: bool = False,
    tolerance: float = PADDY_BALANCE_TOLERANCE,
    kunchinittu: Optional[str] = None,
) -> PaddyLedgerReport:
    """
    Day-by-day paddy stock for ``range_start``..``range_end`` (inclusive).

    History before the range only seeds the running balances. The fold always
    replays the whole mill so shiftings between storage units keep their
    source history; ``kunchinittu`` narrows only the reported stock, lines and
    diagnostics to that storage unit and the outturns it feeds.

    Problems in the data are returned as diagnostics; only an inverted range
    raises LedgerRangeError.
    """
    validate_range(range_start, range_end)
    outturns = dict(outturns or {})
    mill_diagnostics: List[LedgerDiagnostic] = []
    diagnostics: List[LedgerDiagnostic] = []

    all_movements = list(movements)
    all_entries = list(rice_productions)
    movements = eligible_movements(all_movements, range_end, mill_diagnostics, require_admin_approval)
    rice_entries = eligible_rice_entries(all_entries, range_end, mill_diagnostics)
    cleared = clearing_dates(outturns, rice_entries)
    grouped = _group_by_date(movements, rice_entries)

    view = StorageUnitView(kunchinittu, movements)
    movement_ids = {m.movement_id for m in all_movements if view.touches(m)}
    entry_ids = {e.entry_id for e in all_entries if view.covers(e)}

    fold = PaddyStockFold(mill_diagnostics, outturns)
    for day in sorted(d for d in grouped if d < range_start):
        day_movements, day_entries = grouped[day]
        fold.apply_day(day, day_movements, day_entries)

    days: List[PaddyLedgerDay] = []
    snapshots = []
    for day in iter_dates(range_start, range_end):
        opening_warehouse = view.restrict(fold.warehouse)
        opening_production = _visible_production(view.restrict(fold.production), day, cleared)

        fold.begin_day()
        day_movements, day_entries = grouped.get(day, ([], []))
        daily = fold.apply_day(day, day_movements, day_entries, view)

        closing_warehouse = view.restrict(fold.warehouse)
        closing_production = _visible_production(view.restrict(fold.production), day, cleared)

        inflows = outflows = 0
        for key, delta in fold.effects:
            if not view.holds(key):
                continue
            if isinstance(key, ProductionKey) and key.outturn_code in cleared and cleared[key.outturn_code] < day:
                continue
            if delta > 0:
                inflows += delta
            else:
                outflows -= delta

        opening_total = sum(opening_warehouse.values()) + sum(opening_production.values())
        closing_total = sum(closing_warehouse.values()) + sum(closing_production.values())
        check_balance(day, opening_total, closing_total, inflows, outflows, diagnostics, tolerance)

        opening_all = {**opening_warehouse, **opening_production}
        closing_all = {**closing_warehouse, **closing_production}
        check_non_negative(day, "paddy", closing_all, diagnostics)
        snapshots.append((day, opening_all, closing_all))

        days.append(
            PaddyLedgerDay(
                date=day,
                opening_stock=_stock_lines(opening_warehouse, opening_production),
                daily_movements=daily,
                closing_stock=_stock_lines(closing_warehouse, closing_production),
                opening_total=opening_total,
                closing_total=closing_total,
                inflows=inflows,
                outflows=outflows,
            )
        )

    def cleared_between(key: Hashable, prev_day: date, curr_day: date) -> bool:
        if not isinstance(key, ProductionKey) or key.outturn_code not in cleared:
            return False
        return prev_day <= cleared[key.outturn_code] < curr_day

    check_continuity(snapshots, diagnostics, tolerance, ignore_key=cleared_between)

    diagnostics = [d for d in mill_diagnostics if view.keeps(d, movement_ids, entry_ids)] + diagnostics
    remaining = [
        line
        for line in _remaining_in_production(range_end, fold.production_shifts, rice_entries, outturns)
        if view.holds(ProductionKey(line.variety, line.outturn_code))
    ]

    logger.info(
        "Paddy ledger %s..%s for %s: %d diagnostic(s)",
        range_start,
        range_end,
        kunchinittu or "whole mill",
        len(diagnostics),
    )
    return PaddyLedgerReport(
        range_start=range_start,
        range_end=range_end,
        days=days,
        remaining_in_production=remaining,
        diagnostics=diagnostics,
    )


def production_balance(
    as_of: date,
    movements: Iterable[Movement],
    rice_productions: Iterable[RiceProductionEntry],
    outturns: Optional[Mapping[str, OutturnInfo]],
    outturn_code: str,
    require_admin_approval: bool = False,
) -> int:
    """Paddy bags of ``outturn_code`` still in production at the close of ``as_of``."""
    outturns = dict(outturns or {})
    diagnostics: List[LedgerDiagnostic] = []
    movements = eligible_movements(movements, as_of, diagnostics, require_admin_approval)
    rice_entries = eligible_rice_entries(rice_productions, as_of, diagnostics)
    grouped = _group_by_date(movements, rice_entries)

    fold = PaddyStockFold(diagnostics, outturns)
    for day in sorted(grouped):
        day_movements, day_entries = grouped[day]
        fold.apply_day(day, day_movements, day_entries)
    return sum(bags for key, bags in fold.production.items() if key.outturn_code == outturn_code)
