from datetime import date
from decimal import Decimal

import pytest

from app.schemas.ledger import (
    CLEARING_LOCATION,
    ApprovalStatus,
    Movement,
    MovementType,
    OutturnInfo,
    ProductType,
    RiceMovementType,
    RiceProductionEntry,
    StorageLocation,
)
from app.services.paddy_stock_service import build_paddy_ledger, production_balance
from app.services.stock_consistency import LedgerRangeError

K1 = StorageLocation(kunchinittu="K1", warehouse="WH1")
K2 = StorageLocation(kunchinittu="K2", warehouse="WH1")
K3 = StorageLocation(kunchinittu="K3", warehouse="WH1")


def d(n: int) -> date:
    return date(2024, 1, n)


def move(movement_id, day, kind, bags, variety="A", source=None, target=None, outturn=None, **extra):
    return Movement(
        movement_id=movement_id,
        date=day,
        movement_type=kind,
        variety=variety,
        bags=bags,
        from_location=source,
        to_location=target,
        outturn_code=outturn,
        **extra,
    )


def rice(entry_id, day, outturn, quintals, product=ProductType.RICE, **extra):
    return RiceProductionEntry(
        entry_id=entry_id,
        date=day,
        outturn_code=outturn,
        product_type=product,
        quantity_quintals=Decimal(quintals),
        bags=extra.pop("bags", 10),
        location_code=extra.pop("location_code", "A1"),
        **extra,
    )


def stock(lines):
    return {(line.variety, line.kunchinittu, line.outturn_code): line.bags for line in lines}


def codes(report):
    return [diag.code for diag in report.diagnostics]


def test_purchase_then_shift():
    movements = [
        move(1, d(1), MovementType.PURCHASE, 100, target=K1),
        move(2, d(2), MovementType.SHIFTING, 40, source=K1, target=K2),
    ]

    report = build_paddy_ledger(d(1), d(2), movements, [])
    day1, day2 = report.days

    assert stock(day1.opening_stock) == {}
    assert stock(day1.closing_stock) == {("A", "K1", None): 100}
    assert stock(day2.opening_stock) == {("A", "K1", None): 100}
    assert stock(day2.closing_stock) == {("A", "K1", None): 60, ("A", "K2", None): 40}
    assert [line.bags for line in day2.daily_movements.shifting] == [40]
    assert report.diagnostics == []


def test_rice_production_consumes_production_stock_fully():
    movements = [
        move(1, d(1), MovementType.PURCHASE, 50, target=K1),
        move(2, d(2), MovementType.PRODUCTION_SHIFTING, 50, source=K1, outturn="OUT01"),
    ]
    productions = [rice(10, d(3), "OUT01", "23.5")]

    report = build_paddy_ledger(d(2), d(3), movements, productions)
    day2, day3 = report.days

    assert stock(day2.closing_stock) == {("A", None, "OUT01"): 50}
    assert stock(day3.closing_stock) == {}
    assert [line.bags for line in day3.daily_movements.rice_production] == [50]
    assert report.diagnostics == []


def test_shifting_more_than_available_is_skipped():
    movements = [
        move(1, d(1), MovementType.PURCHASE, 50, target=K1),
        move(2, d(2), MovementType.SHIFTING, 80, source=K1, target=K2),
    ]

    report = build_paddy_ledger(d(1), d(2), movements, [])
    day2 = report.days[1]

    assert stock(day2.closing_stock) == {}
    assert day2.daily_movements.shifting[0].applied is False
    assert codes(report) == ["insufficient-stock"]
    assert report.diagnostics[0].context["available"] == 50


def test_production_shifting_guard_skips_production_addition():
    movements = [move(1, d(1), MovementType.PRODUCTION_SHIFTING, 30, source=K1, outturn="OUT01")]

    report = build_paddy_ledger(d(1), d(1), movements, [])

    assert stock(report.days[0].closing_stock) == {}
    assert "insufficient-stock" in codes(report)


def test_for_production_purchase_goes_straight_to_production():
    movements = [move(1, d(1), MovementType.FOR_PRODUCTION_PURCHASE, 70, outturn="OUT02")]

    report = build_paddy_ledger(d(1), d(1), movements, [])
    day1 = report.days[0]

    assert stock(day1.closing_stock) == {("A", None, "OUT02"): 70}
    assert day1.daily_movements.purchase[0].to_label == "OUT02"


def test_purchase_with_outturn_and_destination_prefers_outturn():
    movements = [move(1, d(1), MovementType.PURCHASE, 20, target=K1, outturn="OUT03")]

    report = build_paddy_ledger(d(1), d(1), movements, [])

    assert stock(report.days[0].closing_stock) == {("A", None, "OUT03"): 20}
    assert codes(report) == ["purchase-both-targets"]


def test_loading_takes_paddy_out_of_storage():
    movements = [
        move(1, d(1), MovementType.PURCHASE, 100, target=K1),
        move(2, d(2), MovementType.LOADING, 30, source=K1),
    ]

    report = build_paddy_ledger(d(1), d(2), movements, [])
    day2 = report.days[1]

    assert stock(day2.closing_stock) == {("A", "K1", None): 70}
    assert day2.outflows == 30


def test_loose_movements_never_touch_stock():
    movements = [
        move(1, d(1), MovementType.PURCHASE, 100, target=K1),
        move(2, d(1), MovementType.LOOSE, 5, source=K1),
    ]

    report = build_paddy_ledger(d(1), d(1), movements, [])

    assert stock(report.days[0].closing_stock) == {("A", "K1", None): 100}


def test_every_movement_type_is_handled():
    for kind in MovementType:
        movements = [
            move(1, d(1), MovementType.PURCHASE, 10, target=K1),
            move(2, d(1), kind, 5, source=K1, target=K2, outturn="OUT01"),
        ]
        report = build_paddy_ledger(d(1), d(1), movements, [])
        assert len(report.days) == 1


def test_unapproved_and_admin_gated_movements_are_excluded():
    movements = [
        move(1, d(1), MovementType.PURCHASE, 100, target=K1, admin_approved_by="admin"),
        move(2, d(1), MovementType.PURCHASE, 40, target=K2),
        move(3, d(1), MovementType.PURCHASE, 7, target=K2, status=ApprovalStatus.PENDING),
    ]

    gated = build_paddy_ledger(d(1), d(1), movements, [], require_admin_approval=True)
    open_ = build_paddy_ledger(d(1), d(1), movements, [])

    assert stock(gated.days[0].closing_stock) == {("A", "K1", None): 100}
    assert stock(open_.days[0].closing_stock) == {("A", "K1", None): 100, ("A", "K2", None): 40}


def test_movement_without_date_is_reported():
    movements = [
        move(1, d(1), MovementType.PURCHASE, 100, target=K1),
        move(2, None, MovementType.PURCHASE, 40, target=K2),
    ]

    report = build_paddy_ledger(d(1), d(1), movements, [])

    assert stock(report.days[0].closing_stock) == {("A", "K1", None): 100}
    missing = [diag for diag in report.diagnostics if diag.code == "missing-date"]
    assert len(missing) == 1
    assert missing[0].severity == "error"
    assert missing[0].context["movement_id"] == 2


def test_inverted_range_raises():
    with pytest.raises(LedgerRangeError):
        build_paddy_ledger(d(5), d(1), [], [])


def test_every_calendar_date_is_reported():
    report = build_paddy_ledger(d(1), d(4), [move(1, d(2), MovementType.PURCHASE, 10, target=K1)], [])

    assert [day.date for day in report.days] == [d(1), d(2), d(3), d(4)]
    assert report.days[3].closing_total == 10


def test_cleared_outturn_leaves_opening_stock_after_clearing_day():
    movements = [
        move(1, d(1), MovementType.PURCHASE, 100, target=K1),
        move(2, d(1), MovementType.PRODUCTION_SHIFTING, 60, source=K1, outturn="OUT01"),
    ]
    productions = [
        rice(5, d(2), "OUT01", "0", bags=60, location_code=CLEARING_LOCATION, paddy_bags_deducted=0),
    ]
    outturns = {"OUT01": OutturnInfo(code="OUT01", allotted_variety="A", is_cleared=True, cleared_at=d(2))}

    report = build_paddy_ledger(d(1), d(4), movements, productions, outturns)
    day2, day3, day4 = report.days[1:]

    assert stock(day2.closing_stock) == {("A", "K1", None): 40, ("A", None, "OUT01"): 60}
    assert [line.bags for line in day2.daily_movements.clearing] == [60]
    assert stock(day3.opening_stock) == {("A", "K1", None): 40}
    assert stock(day4.opening_stock) == {("A", "K1", None): 40}
    assert report.diagnostics == []


def test_recomputation_is_identical():
    movements = [
        move(1, d(1), MovementType.PURCHASE, 100, target=K1),
        move(2, d(2), MovementType.SHIFTING, 30, source=K1, target=K2),
        move(3, d(2), MovementType.PRODUCTION_SHIFTING, 50, source=K1, outturn="OUT01"),
    ]
    productions = [rice(7, d(3), "OUT01", "4.7")]

    first = build_paddy_ledger(d(1), d(3), movements, productions)
    second = build_paddy_ledger(d(1), d(3), movements, productions)

    assert first == second
    assert first.model_dump_json() == second.model_dump_json()


def test_daily_totals_balance_and_days_chain():
    movements = [
        move(1, d(1), MovementType.PURCHASE, 100, target=K1),
        move(2, d(1), MovementType.FOR_PRODUCTION_PURCHASE, 20, outturn="OUT02"),
        move(3, d(2), MovementType.SHIFTING, 30, source=K1, target=K2),
        move(4, d(3), MovementType.PRODUCTION_SHIFTING, 50, source=K1, outturn="OUT01"),
        move(5, d(4), MovementType.LOADING, 10, source=K2),
    ]
    productions = [rice(7, d(4), "OUT01", "9.4"), rice(8, d(4), "OUT02", "2.35")]

    report = build_paddy_ledger(d(1), d(5), movements, productions)

    for day in report.days:
        assert day.closing_total == day.opening_total + day.inflows - day.outflows
        assert all(line.bags >= 0 for line in day.closing_stock)
    for previous, current in zip(report.days, report.days[1:]):
        assert stock(previous.closing_stock) == stock(current.opening_stock)
    assert report.days[-1].closing_total == 100 + 20 - 10 - 20 - 5
    assert report.diagnostics == []


def test_rice_production_without_production_stock_is_reported():
    report = build_paddy_ledger(d(1), d(1), [], [rice(1, d(1), "OUT99", "4.7")])

    assert codes(report) == ["unmatched-consumption"]
    assert report.days[0].closing_stock == []


def test_by_products_and_rice_loading_do_not_consume_paddy():
    movements = [move(1, d(1), MovementType.FOR_PRODUCTION_PURCHASE, 40, outturn="OUT01")]
    productions = [
        rice(1, d(1), "OUT01", "5", product=ProductType.BRAN),
        rice(2, d(1), "OUT01", "4.7", movement_type=RiceMovementType.LOADING, location_code=None),
    ]

    report = build_paddy_ledger(d(1), d(1), movements, productions)

    assert stock(report.days[0].closing_stock) == {("A", None, "OUT01"): 40}


def test_month_remaining_in_production():
    movements = [
        move(1, date(2023, 12, 30), MovementType.PURCHASE, 500, target=K1),
        move(2, date(2023, 12, 31), MovementType.PRODUCTION_SHIFTING, 100, source=K1, outturn="OUT01"),
        move(3, d(2), MovementType.PRODUCTION_SHIFTING, 50, source=K1, outturn="OUT01"),
    ]
    productions = [rice(1, d(3), "OUT01", "4.7")]

    report = build_paddy_ledger(d(1), d(5), movements, productions)

    [remaining] = report.remaining_in_production
    assert (remaining.outturn_code, remaining.shifted, remaining.consumed, remaining.remaining) == ("OUT01", 50, 10, 40)


def test_production_balance_as_of_date():
    movements = [
        move(1, d(1), MovementType.PURCHASE, 100, target=K1),
        move(2, d(1), MovementType.PRODUCTION_SHIFTING, 80, source=K1, outturn="OUT01"),
    ]
    productions = [rice(1, d(2), "OUT01", "4.7"), rice(2, d(5), "OUT01", "4.7")]

    assert production_balance(d(3), movements, productions, {}, "OUT01") == 70
    assert production_balance(d(5), movements, productions, {}, "OUT01") == 60
    assert production_balance(d(5), movements, productions, {}, "OUT02") == 0


def test_storage_unit_view_replays_whole_mill():
    movements = [
        move(1, d(1), MovementType.PURCHASE, 100, target=K1),
        move(2, d(2), MovementType.SHIFTING, 40, source=K1, target=K2),
        move(3, d(2), MovementType.PRODUCTION_SHIFTING, 30, source=K1, outturn="OUT01"),
        move(4, d(2), MovementType.LOADING, 5, source=K3),
    ]

    k2 = build_paddy_ledger(d(2), d(2), movements, [], kunchinittu="K2")
    [day] = k2.days
    assert stock(day.opening_stock) == {}
    assert stock(day.closing_stock) == {("A", "K2", None): 40}
    assert [line.applied for line in day.daily_movements.shifting] == [True]
    assert day.daily_movements.production_shifting == []
    assert (day.inflows, day.outflows) == (40, 0)
    assert k2.diagnostics == []

    k1 = build_paddy_ledger(d(2), d(2), movements, [], kunchinittu="K1")
    [day] = k1.days
    assert stock(day.closing_stock) == {("A", "K1", None): 30, ("A", None, "OUT01"): 30}
    assert (day.opening_total, day.inflows, day.outflows, day.closing_total) == (100, 30, 70, 60)
    assert k1.diagnostics == []

    k3 = build_paddy_ledger(d(2), d(2), movements, [], kunchinittu="K3")
    assert codes(k3) == ["insufficient-stock"]


def test_storage_unit_view_follows_its_outturns():
    movements = [
        move(1, d(1), MovementType.PURCHASE, 100, target=K1),
        move(2, d(1), MovementType.PRODUCTION_SHIFTING, 50, source=K1, outturn="OUT01"),
        move(3, d(1), MovementType.FOR_PRODUCTION_PURCHASE, 20, outturn="OUT02"),
    ]
    productions = [rice(7, d(2), "OUT01", "4.7"), rice(8, d(2), "OUT02", "4.7")]

    report = build_paddy_ledger(d(2), d(2), movements, productions, kunchinittu="K1")
    [day] = report.days

    assert stock(day.closing_stock) == {("A", "K1", None): 50, ("A", None, "OUT01"): 40}
    assert [line.outturn_code for line in day.daily_movements.rice_production] == ["OUT01"]
    assert [line.outturn_code for line in report.remaining_in_production] == ["OUT01"]


def test_refused_production_shifting_is_not_counted_as_shifted():
    movements = [
        move(1, d(1), MovementType.PURCHASE, 40, target=K1),
        move(2, d(2), MovementType.PRODUCTION_SHIFTING, 30, source=K1, outturn="OUT01"),
        move(3, d(3), MovementType.PRODUCTION_SHIFTING, 50, source=K1, outturn="OUT01"),
    ]

    report = build_paddy_ledger(d(1), d(5), movements, [])

    assert report.days[2].daily_movements.production_shifting[0].applied is False
    [remaining] = report.remaining_in_production
    assert (remaining.shifted, remaining.consumed, remaining.remaining) == (30, 0, 30)
