from datetime import date
from decimal import Decimal

import pytest

from app.schemas.ledger import (
    CLEARING_LOCATION,
    ApprovalStatus,
    OutturnInfo,
    ProductType,
    RiceMovementType,
    RiceProductionEntry,
)
from app.services.rice_stock_service import build_rice_ledger, product_label
from app.services.stock_consistency import LedgerRangeError


def d(n: int) -> date:
    return date(2024, 1, n)


def stored(entry_id, day, qtls, bags, location="A1", outturn="O1", product=ProductType.RICE, **extra):
    return RiceProductionEntry(
        entry_id=entry_id,
        date=day,
        outturn_code=outturn,
        product_type=product,
        quantity_quintals=Decimal(qtls),
        bags=bags,
        packaging=extra.pop("packaging", "P"),
        bag_size_kg=Decimal("26"),
        movement_type=RiceMovementType.KUNCHINITTU,
        location_code=location,
        **extra,
    )


def loading(entry_id, day, qtls, bags, outturn="O1", product=ProductType.RICE, packaging="P"):
    return RiceProductionEntry(
        entry_id=entry_id,
        date=day,
        outturn_code=outturn,
        product_type=product,
        quantity_quintals=Decimal(qtls),
        bags=bags,
        packaging=packaging,
        bag_size_kg=Decimal("26"),
        movement_type=RiceMovementType.LOADING,
        lorry_number="ka01ab1234",
        bill_number="b-77",
    )


def quantities(lines):
    return {(line.product, line.location, line.outturn_code): (line.qtls, line.bags) for line in lines}


def codes(report):
    return [diag.code for diag in report.diagnostics]


def test_loading_without_matching_stock_is_dropped():
    entries = [loading(1, d(1), "2.6", 10, outturn="O1", packaging="P")]

    report = build_rice_ledger(d(1), d(1), entries)
    day1 = report.days[0]

    assert day1.opening_stock == [] and day1.closing_stock == []
    assert day1.productions[0].applied is False
    assert codes(report) == ["unmatched-loading"]
    diag = report.diagnostics[0]
    assert diag.severity == "error"
    assert diag.context["quantity"] == Decimal("2.6")
    assert diag.context["available_stock_keys"] == []


def test_loading_ignores_storage_location():
    entries = [stored(1, d(1), "2.6", 10, location="a1"), loading(2, d(2), "1.04", 4)]

    report = build_rice_ledger(d(1), d(2), entries)
    day2 = report.days[1]

    assert quantities(day2.closing_stock) == {("Rice", "A1", "O1"): (Decimal("1.56"), 6)}
    assert day2.productions[0].location == "Lorry: KA01AB1234, Bill: B-77"
    assert day2.outflows == Decimal("1.04")
    assert report.diagnostics == []


def test_fully_dispatched_pool_is_removed():
    entries = [stored(1, d(1), "2.6", 10), loading(2, d(1), "2.6", 10)]

    report = build_rice_ledger(d(1), d(1), entries)

    assert report.days[0].closing_stock == []
    assert report.diagnostics == []


def test_overshooting_dispatch_removes_pool_and_warns():
    entries = [stored(1, d(1), "2.6", 10), loading(2, d(2), "5.2", 20)]

    report = build_rice_ledger(d(1), d(2), entries)
    day2 = report.days[1]

    assert day2.closing_stock == []
    assert day2.outflows == Decimal("2.6")
    assert codes(report) == ["loading-overshoot"]


def test_pools_differ_by_every_key_segment():
    entries = [
        stored(1, d(1), "2.6", 10),
        stored(2, d(1), "2.6", 10, location="B2"),
        stored(3, d(1), "2.6", 10, outturn="O2"),
        stored(4, d(1), "2.6", 10, packaging="Q"),
        stored(5, d(1), "2.6", 10),
    ]

    report = build_rice_ledger(d(1), d(1), entries)

    assert len(report.days[0].closing_stock) == 4
    assert report.days[0].closing_total == Decimal("13.0")


def test_clearing_entries_are_not_stock():
    entries = [
        stored(1, d(1), "2.6", 10),
        stored(2, d(1), "0", 40, location=CLEARING_LOCATION),
    ]

    report = build_rice_ledger(d(1), d(1), entries)

    assert quantities(report.days[0].closing_stock) == {("Rice", "A1", "O1"): (Decimal("2.6"), 10)}
    assert len(report.days[0].productions) == 1


def test_only_approved_entries_and_dates_with_entries():
    entries = [
        stored(1, d(1), "2.6", 10),
        stored(2, d(3), "1.3", 5),
        stored(3, d(3), "9.9", 5, status=ApprovalStatus.PENDING),
        stored(4, d(9), "1.3", 5),
    ]

    report = build_rice_ledger(d(2), d(5), entries)

    assert [day.date for day in report.days] == [d(3)]
    assert report.days[0].opening_total == Decimal("2.6")
    assert report.days[0].closing_total == Decimal("3.9")


def test_cleared_outturn_drops_out_of_closing_on_clearing_day():
    outturns = {"O1": OutturnInfo(code="O1", allotted_variety="SONA", is_cleared=True, cleared_at=d(2))}
    entries = [
        stored(1, d(1), "2.6", 10),
        stored(2, d(1), "1.3", 5, outturn="O2"),
        stored(3, d(2), "1.3", 5, outturn="O2"),
        stored(4, d(3), "1.3", 5, outturn="O2"),
    ]

    report = build_rice_ledger(d(1), d(3), entries, outturns)
    day1, day2, day3 = report.days

    assert ("Rice", "A1", "O1") in quantities(day1.closing_stock)
    assert ("Rice", "A1", "O1") in quantities(day2.opening_stock)
    assert ("Rice", "A1", "O1") not in quantities(day2.closing_stock)
    assert ("Rice", "A1", "O1") not in quantities(day3.opening_stock)
    assert day2.outflows == Decimal("2.6")
    assert report.diagnostics == []


def test_continuity_and_balance_hold_across_days():
    entries = [
        stored(1, d(1), "13", 50),
        stored(2, d(2), "2.6", 10, location="B2"),
        loading(3, d(3), "5.2", 20),
        stored(4, d(4), "1.3", 5, product=ProductType.BROKEN),
    ]

    report = build_rice_ledger(d(1), d(4), entries)

    for day in report.days:
        assert day.closing_total == day.opening_total + day.inflows - day.outflows
    for previous, current in zip(report.days, report.days[1:]):
        assert quantities(previous.closing_stock) == quantities(current.opening_stock)
    assert report.diagnostics == []


def test_recomputation_is_identical():
    entries = [stored(1, d(1), "13", 50), loading(2, d(2), "2.6", 10)]

    assert build_rice_ledger(d(1), d(2), entries) == build_rice_ledger(d(1), d(2), entries)


def test_missing_date_is_reported():
    entries = [stored(1, None, "2.6", 10), stored(2, d(1), "1.3", 5)]

    report = build_rice_ledger(d(1), d(1), entries)

    assert codes(report) == ["missing-date"]
    assert report.days[0].closing_total == Decimal("1.3")


def test_inverted_range_raises():
    with pytest.raises(LedgerRangeError):
        build_rice_ledger(d(2), d(1), [])


def test_product_labels():
    outturn = OutturnInfo(code="O1", allotted_variety="SONA", type="Raw")

    assert product_label("RJ Rice 1", outturn) == "SONA Raw RJ Rice 1"
    assert product_label("Broken", outturn) == "SONA Raw Broken"
    assert product_label("Bran", outturn) == "Raw Bran"
    assert product_label("Rice", outturn) == "Rice"
    assert product_label("RJ Rice 2", None) == "RJ Rice 2"
    assert product_label("RJ Rice 2", OutturnInfo(code="O2", allotted_variety="BPT")) == "BPT RJ Rice 2"


def test_location_view_keeps_dispatch_on_the_pool_it_drained():
    entries = [
        stored(1, d(1), "4.68", 18, location="A1"),
        stored(2, d(1), "4.68", 18, location="B2"),
        loading(3, d(2), "2.6", 10),
    ]

    everything = build_rice_ledger(d(1), d(2), entries)
    a1 = build_rice_ledger(d(1), d(2), entries, location_code="A1")
    b2 = build_rice_ledger(d(1), d(2), entries, location_code=" b2 ")

    assert quantities(everything.days[-1].closing_stock) == {
        ("Rice", "A1", "O1"): (Decimal("2.08"), 8),
        ("Rice", "B2", "O1"): (Decimal("4.68"), 18),
    }
    assert [day.date for day in b2.days] == [d(1)]
    assert quantities(b2.days[0].closing_stock) == {("Rice", "B2", "O1"): (Decimal("4.68"), 18)}
    assert [day.date for day in a1.days] == [d(1), d(2)]
    assert quantities(a1.days[1].closing_stock) == {("Rice", "A1", "O1"): (Decimal("2.08"), 8)}
    assert a1.days[1].outflows == Decimal("2.6")
    assert a1.diagnostics == [] and b2.diagnostics == []


def test_location_view_leaves_out_unmatched_dispatches():
    entries = [stored(1, d(1), "2.6", 10, location="A1"), loading(2, d(2), "1.04", 4, outturn="O9")]

    report = build_rice_ledger(d(1), d(2), entries, location_code="A1")

    assert [day.date for day in report.days] == [d(1)]
    assert report.diagnostics == []
    assert codes(build_rice_ledger(d(1), d(2), entries)) == ["unmatched-loading"]


def test_dispatch_after_clearing_finds_no_stock():
    entries = [stored(1, d(1), "2.6", 10), loading(2, d(3), "1.04", 4)]
    outturns = {"O1": OutturnInfo(code="O1", allotted_variety="A", is_cleared=True, cleared_at=d(2))}

    report = build_rice_ledger(d(1), d(3), entries, outturns)
    day3 = report.days[-1]

    assert day3.date == d(3)
    assert day3.productions[0].applied is False
    assert day3.closing_stock == []
    assert codes(report) == ["unmatched-loading"]
    assert report.diagnostics[0].context["outturn_cleared_at"] == d(2)
