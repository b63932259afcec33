"""
payroll_engines.coverage -- Scheduled-vs-worked coverage matching.

Responsibility:
    Decide, for each scheduled slot in the worked-through window, whether
    a clocked shift satisfies it.  A slot is covered when a worked shift
    links to it explicitly, or, with no link, when the same employee
    worked a compatible shift type at the same store on the same business
    date.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    Business dates of worked shifts come from ``civil_time`` only.

Invariants enforced:
    - Compatibility: equal types match; a worked double covers a scheduled
      open, close or double; a worked open or close covers a scheduled
      double.  ``other`` matches only ``other``.
    - Unassigned slots (no employee) are never reported missing.
    - Inputs are already filtered (published schedules, live shifts).

Audit relevance:
    Unmatched slots become the ``missing_coverage`` check.  A single
    logged half of a double satisfies the whole scheduled double; the
    missing half surfaces through hours variance, not through coverage.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import date

from payroll_engines.civil_time import CivilCalendar
from payroll_engines.tracer import traced_engine
from payroll_kernel.domain.records import ScheduledShift, ShiftType, WorkedShift
from payroll_kernel.logging_config import get_logger

logger = get_logger("engines.coverage")

_HALF_SHIFTS = frozenset({ShiftType.OPEN, ShiftType.CLOSE})

CoverageKey = tuple[str, str, date]


def is_compatible(scheduled_type: ShiftType, worked_type: ShiftType) -> bool:
    """True if a worked shift of ``worked_type`` covers a scheduled ``scheduled_type``."""
    if scheduled_type == worked_type:
        return True
    if worked_type == ShiftType.DOUBLE and scheduled_type in _HALF_SHIFTS:
        return True
    if scheduled_type == ShiftType.DOUBLE and worked_type in _HALF_SHIFTS:
        return True
    return False


@dataclass(frozen=True)
class CoverageResult:
    """Matched slot ids (with the worked shifts that satisfy them) and missing slots."""

    matched: dict[str, tuple[str, ...]] = field(default_factory=dict)
    missing: tuple[ScheduledShift, ...] = ()

    @property
    def matched_count(self) -> int:
        return len(self.matched)

    @property
    def missing_count(self) -> int:
        return len(self.missing)

    def is_matched(self, scheduled_shift_id: str) -> bool:
        return scheduled_shift_id in self.matched


class CoverageMatcher:
    """Pairs scheduled slots with worked shifts.

    Usage:
        matcher = CoverageMatcher(calendar)
        result = matcher.match(scheduled=slots, worked=shifts)
    """

    def __init__(self, calendar: CivilCalendar):
        self._calendar = calendar

    def coverage_key(self, shift: WorkedShift) -> CoverageKey:
        return (
            shift.employee_id,
            shift.store_id,
            self._calendar.business_date_of(shift.planned_start),
        )

    @traced_engine("coverage", "1.0", fingerprint_fields=("scheduled", "worked"))
    def match(
        self,
        *,
        scheduled: Sequence[ScheduledShift],
        worked: Sequence[WorkedShift],
    ) -> CoverageResult:
        linked: dict[str, list[str]] = defaultdict(list)
        by_key: dict[CoverageKey, list[WorkedShift]] = defaultdict(list)
        for shift in worked:
            if shift.scheduled_shift_id:
                linked[shift.scheduled_shift_id].append(shift.id)
            by_key[self.coverage_key(shift)].append(shift)

        matched: dict[str, tuple[str, ...]] = {}
        missing: list[ScheduledShift] = []
        for slot in scheduled:
            if slot.id in linked:
                matched[slot.id] = tuple(linked[slot.id])
                continue
            if slot.employee_id is None:
                continue

            same_day = by_key.get((slot.employee_id, slot.store_id, slot.business_date), [])
            compatible = tuple(
                s.id for s in same_day if is_compatible(slot.shift_type, s.shift_type)
            )
            if compatible:
                matched[slot.id] = compatible
            else:
                missing.append(slot)

        logger.debug(
            "coverage_matched",
            extra={
                "scheduled_count": len(scheduled),
                "matched_count": len(matched),
                "missing_count": len(missing),
            },
        )
        return CoverageResult(matched=matched, missing=tuple(missing))
