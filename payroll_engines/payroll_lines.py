"""
payroll_engines.payroll_lines -- Per-shift payroll listing.

Lists ended, live shifts newest first with their measured minutes and
rounded payroll hours, one page at a time.  Used by the payroll screen
next to the period reconciliation.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from payroll_engines.civil_time import UtcRange
from payroll_engines.rounding import elapsed_minutes
from payroll_kernel.domain.records import WorkedShift

MAX_PAGE_SIZE = 100
DEFAULT_PAGE_SIZE = 25


@dataclass(frozen=True)
class PayrollLine:
    shift_id: str
    employee_id: str
    employee_name: str | None
    store_id: str
    store_name: str | None
    start_at: datetime
    end_at: datetime
    minutes: int
    rounded_hours: Decimal


@dataclass(frozen=True)
class PayrollLinePage:
    rows: tuple[PayrollLine, ...]
    page: int
    page_size: int
    total: int


def build_payroll_lines(
    worked: Iterable[WorkedShift],
    *,
    store_names: Mapping[str, str] | None = None,
    bounds: UtcRange | None = None,
    employee_id: str | None = None,
    page: int = 1,
    page_size: int = DEFAULT_PAGE_SIZE,
) -> PayrollLinePage:
    """One page of payroll lines.

    ``bounds`` keeps shifts whose planned start falls inside the range,
    the same key the row source fetches by and the reconciliation uses
    for business dates.  Rows are ordered and measured by clock-in.  Page
    numbers below 1 become 1; page sizes are clamped to 1..100.
    """
    page = max(1, page)
    page_size = min(MAX_PAGE_SIZE, max(1, page_size))
    names = store_names or {}

    eligible = [
        s for s in worked
        if not s.soft_deleted
        and s.ended_at is not None
        and (employee_id is None or s.employee_id == employee_id)
        and (bounds is None or bounds.contains(s.planned_start))
    ]
    eligible.sort(key=lambda s: (s.clock_start, s.id), reverse=True)

    offset = (page - 1) * page_size
    rows = []
    for shift in eligible[offset: offset + page_size]:
        measured = elapsed_minutes(shift.clock_start, shift.ended_at, record_id=shift.id)
        rows.append(PayrollLine(
            shift_id=shift.id,
            employee_id=shift.employee_id,
            employee_name=shift.employee_name,
            store_id=shift.store_id,
            store_name=names.get(shift.store_id),
            start_at=shift.clock_start,
            end_at=shift.ended_at,
            minutes=measured.minutes,
            rounded_hours=measured.hours,
        ))

    return PayrollLinePage(rows=tuple(rows), page=page, page_size=page_size, total=len(eligible))
