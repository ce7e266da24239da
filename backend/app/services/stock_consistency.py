"""
Reconciliation checks shared by the paddy and rice ledgers.

The checks never raise: every problem becomes a LedgerDiagnostic appended to
the caller's list and a log line, so report generation always completes. Only
an inverted date range is rejected outright (validate_range).
"""
import logging
from datetime import date
from decimal import Decimal
from typing import Any, Callable, Dict, Hashable, List, Optional, Sequence, Tuple

from app.schemas.ledger import LedgerDiagnostic

logger = logging.getLogger(__name__)

Snapshot = Dict[Hashable, Any]
IgnoreKey = Callable[[Hashable, date, date], bool]


def record_diagnostic(
    sink: List[LedgerDiagnostic],
    severity: str,
    code: str,
    day: Optional[date],
    message: str,
    **context: Any,
) -> LedgerDiagnostic:
    entry = LedgerDiagnostic(severity=severity, code=code, date=day, message=message, context=context)
    sink.append(entry)
    log = logger.error if severity == "error" else logger.warning
    log("%s: %s", day or "undated", message, extra={"diagnostic": {"code": code, **context}})
    return entry


def _as_decimal(value: Any) -> Decimal:
    return value if isinstance(value, Decimal) else Decimal(str(value))


def _key_repr(key: Hashable) -> Any:
    return list(key) if isinstance(key, tuple) else key


def check_continuity(
    snapshots: Sequence[Tuple[date, Snapshot, Snapshot]],
    sink: List[LedgerDiagnostic],
    tolerance: Any,
    ignore_key: Optional[IgnoreKey] = None,
) -> int:
    """
    Compare closing stock of each day with opening stock of the next one.

    ``snapshots`` holds (date, opening, closing) in ascending date order with
    numeric quantities. ``ignore_key`` marks keys expected to disappear
    between the two days (outturn clearing). Returns the number of problems.
    """
    tol = _as_decimal(tolerance)
    problems = 0
    for (prev_day, _, prev_closing), (curr_day, curr_opening, _) in zip(snapshots, snapshots[1:]):
        def relevant(key: Hashable) -> bool:
            return ignore_key is None or not ignore_key(key, prev_day, curr_day)

        prev_keys = {k for k in prev_closing if relevant(k)}
        curr_keys = {k for k in curr_opening if relevant(k)}

        if prev_keys != curr_keys:
            problems += 1
            record_diagnostic(
                sink,
                "warning",
                "continuity-keys",
                curr_day,
                f"Stock continuity warning: {prev_day} -> {curr_day}",
                previous_closing_only=sorted(map(str, prev_keys - curr_keys)),
                current_opening_only=sorted(map(str, curr_keys - prev_keys)),
            )

        for key in prev_keys & curr_keys:
            before = _as_decimal(prev_closing[key])
            after = _as_decimal(curr_opening[key])
            if abs(before - after) > tol:
                problems += 1
                record_diagnostic(
                    sink,
                    "warning",
                    "continuity-quantity",
                    curr_day,
                    f"Quantity mismatch for {key}: {prev_day} closing={before}, {curr_day} opening={after}",
                    key=_key_repr(key),
                    previous_closing=before,
                    current_opening=after,
                )
    return problems


def check_balance(
    day: date,
    opening_total: Any,
    closing_total: Any,
    inflows: Any,
    outflows: Any,
    sink: List[LedgerDiagnostic],
    tolerance: Any,
) -> bool:
    """Expected closing = opening + inflows - outflows, within tolerance."""
    opening = _as_decimal(opening_total)
    closing = _as_decimal(closing_total)
    expected = opening + _as_decimal(inflows) - _as_decimal(outflows)
    if abs(closing - expected) > _as_decimal(tolerance):
        record_diagnostic(
            sink,
            "warning",
            "balance-mismatch",
            day,
            "Stock calculation mismatch detected",
            opening=opening,
            inflows=_as_decimal(inflows),
            outflows=_as_decimal(outflows),
            expected_closing=expected,
            actual_closing=closing,
            difference=closing - expected,
        )
        return False
    return True


def check_non_negative(
    day: date,
    label: str,
    snapshot: Snapshot,
    sink: List[LedgerDiagnostic],
) -> bool:
    ok = True
    for key, quantity in snapshot.items():
        if _as_decimal(quantity) < 0:
            ok = False
            record_diagnostic(
                sink,
                "error",
                "negative-stock",
                day,
                f"Negative {label} stock for {key}",
                key=_key_repr(key),
                quantity=quantity,
            )
    return ok


class LedgerRangeError(ValueError):
    """Requested ledger range is invalid (end before start)."""


def validate_range(range_start: date, range_end: date) -> None:
    if range_start is None or range_end is None:
        raise LedgerRangeError("Both range start and range end are required.")
    if range_end < range_start:
        raise LedgerRangeError(f"Range end {range_end} is before range start {range_start}.")
