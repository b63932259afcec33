"""
payroll_engines.anomalies -- Operational checks a manager must act on.

Responsibility:
    Evaluate four independent, non-exclusive checks over the worked-through
    shifts and the coverage result, and derive the overall run status.

        unapproved_shifts     manual close not reviewed, or an ended shift
                              still waiting for override approval
        missing_coverage      scheduled slot with no satisfying worked shift
        open_shifts           worked shift with no clock-out
        unexplained_variance  linked, ended shift whose drift from its slot
                              reaches the threshold with no override note

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - Drift is measured from the planned clock-in, not the actual one, so
      an undocumented late arrival counts toward the drift.
    - ``details`` are capped for display; ``count`` is never capped.
    - Bad durations never raise; they are clamped and returned as
      data-quality notices.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from payroll_engines.civil_time import CivilCalendar
from payroll_engines.coverage import CoverageResult
from payroll_engines.reconciliation_types import (
    CheckKey,
    DataQualityNotice,
    OperationalCheck,
    ReconciliationStatus,
)
from payroll_engines.rounding import MINUTES_PER_HOUR, elapsed_minutes, scheduled_minutes
from payroll_engines.tracer import traced_engine
from payroll_kernel.domain.records import ScheduledShift, WorkedShift
from payroll_kernel.logging_config import get_logger

logger = get_logger("engines.anomalies")

DEFAULT_DETAIL_LIMIT = 10

_UNKNOWN = "Unknown"
_CENT = Decimal("0.01")

REASON_MANUAL_CLOSE = "manual_close_pending_review"
REASON_OVERRIDE = "override_pending"


def unapproved_reason(shift: WorkedShift) -> str | None:
    """Why a shift still needs manager approval, or None."""
    if shift.manually_closed and shift.manual_close_reviewed_at is None:
        return REASON_MANUAL_CLOSE
    if shift.requires_override and shift.ended_at is not None and shift.override_approved_at is None:
        return REASON_OVERRIDE
    return None


@dataclass(frozen=True)
class ShiftDrift:
    """Difference between a worked shift and the slot it is linked to."""

    shift: WorkedShift
    scheduled: ScheduledShift
    actual_minutes: int
    scheduled_minutes: int
    clamp_reason: str | None = None
    raw_minutes: int | None = None

    @property
    def drift_hours(self) -> Decimal:
        return Decimal(abs(self.actual_minutes - self.scheduled_minutes)) / MINUTES_PER_HOUR


def measure_drift(shift: WorkedShift, scheduled: ScheduledShift) -> ShiftDrift:
    """Drift from planned clock-in to clock-out against the slot length."""
    measured = elapsed_minutes(shift.planned_start, shift.ended_at, record_id=shift.id)
    return ShiftDrift(
        shift=shift,
        scheduled=scheduled,
        actual_minutes=measured.minutes,
        scheduled_minutes=scheduled_minutes(scheduled.scheduled_start, scheduled.scheduled_end),
        clamp_reason=measured.clamp_reason,
        raw_minutes=measured.raw_minutes,
    )


@dataclass(frozen=True)
class AnomalyFindings:
    """Checks in report order, plus any clamped measurements seen on the way."""

    checks: tuple[OperationalCheck, ...]
    data_quality: tuple[DataQualityNotice, ...] = ()

    @property
    def all_ok(self) -> bool:
        return all(c.ok for c in self.checks)


def overall_status(
    checks: Sequence[OperationalCheck],
    scheduled_minus_submitted: Decimal,
    variance_warn_hours: Decimal,
) -> ReconciliationStatus:
    """needs_attention if any check fails or the hours variance exceeds the threshold."""
    if any(not c.ok for c in checks):
        return ReconciliationStatus.NEEDS_ATTENTION
    if abs(scheduled_minus_submitted) > variance_warn_hours:
        return ReconciliationStatus.NEEDS_ATTENTION
    return ReconciliationStatus.OK


class AnomalyDetector:
    """Runs the four operational checks.

    Contract:
        ``worked`` is the worked-through, non-deleted set; ``scheduled``
        is every published slot of the period (used to resolve links).
    """

    def __init__(
        self,
        calendar: CivilCalendar,
        *,
        store_names: Mapping[str, str] | None = None,
        employee_names: Mapping[str, str] | None = None,
        detail_limit: int = DEFAULT_DETAIL_LIMIT,
    ):
        self._calendar = calendar
        self._store_names = dict(store_names or {})
        self._employee_names = dict(employee_names or {})
        self._detail_limit = detail_limit

    def _store(self, store_id: str) -> str:
        return self._store_names.get(store_id, _UNKNOWN)

    def _employee(self, employee_id: str | None, fallback: str | None) -> str:
        if employee_id is not None and employee_id in self._employee_names:
            return self._employee_names[employee_id]
        return fallback or _UNKNOWN

    def _build(self, key: CheckKey, label: str, details: list[dict[str, Any]]) -> OperationalCheck:
        return OperationalCheck(
            key=key,
            label=label,
            count=len(details),
            details=tuple(details[: self._detail_limit]),
        )

    def check_unapproved_shifts(self, worked: Sequence[WorkedShift]) -> OperationalCheck:
        details = []
        for shift in worked:
            reason = unapproved_reason(shift)
            if reason is None:
                continue
            details.append({
                "shift_id": shift.id,
                "employee": self._employee(shift.employee_id, shift.employee_name),
                "store": self._store(shift.store_id),
                "planned_start_at": shift.planned_start.isoformat(),
                "reason": reason,
            })
        return self._build(CheckKey.UNAPPROVED_SHIFTS, "Unapproved shifts", details)

    def check_missing_coverage(self, coverage: CoverageResult) -> OperationalCheck:
        details = [
            {
                "schedule_shift_id": slot.id,
                "employee": self._employee(slot.employee_id, slot.employee_name),
                "store": self._store(slot.store_id),
                "shift_date": slot.business_date.isoformat(),
                "shift_type": slot.shift_type.value,
            }
            for slot in coverage.missing
        ]
        return self._build(
            CheckKey.MISSING_COVERAGE,
            "Missing coverage (scheduled but no logged shift)",
            details,
        )

    def check_open_shifts(self, worked: Sequence[WorkedShift]) -> OperationalCheck:
        details = [
            {
                "shift_id": shift.id,
                "employee": self._employee(shift.employee_id, shift.employee_name),
                "store": self._store(shift.store_id),
                "planned_start_at": shift.planned_start.isoformat(),
            }
            for shift in worked
            if shift.is_open
        ]
        return self._build(CheckKey.OPEN_SHIFTS, "Clock out violations (open shifts)", details)

    def drifts(
        self,
        worked: Sequence[WorkedShift],
        scheduled_by_id: Mapping[str, ScheduledShift],
    ) -> list[ShiftDrift]:
        """Drift for every ended worked shift linked to a known slot."""
        result = []
        for shift in worked:
            if not shift.scheduled_shift_id or shift.ended_at is None:
                continue
            slot = scheduled_by_id.get(shift.scheduled_shift_id)
            if slot is None:
                continue
            result.append(measure_drift(shift, slot))
        return result

    def check_unexplained_variance(
        self,
        drifts: Sequence[ShiftDrift],
        drift_threshold_hours: Decimal,
    ) -> OperationalCheck:
        details = []
        for drift in drifts:
            if drift.drift_hours < drift_threshold_hours or drift.shift.has_override_note:
                continue
            shift, slot = drift.shift, drift.scheduled
            details.append({
                "shift_id": shift.id,
                "employee": self._employee(shift.employee_id, shift.employee_name),
                "store": self._store(shift.store_id),
                "shift_date": self._calendar.business_date_of(shift.planned_start).isoformat(),
                "planned_start_at": shift.planned_start.isoformat(),
                "ended_at": shift.ended_at.isoformat(),
                "scheduled_start": slot.scheduled_start.strftime("%H:%M"),
                "scheduled_end": slot.scheduled_end.strftime("%H:%M"),
                "drift_hours": drift.drift_hours.quantize(_CENT, rounding=ROUND_HALF_UP),
            })
        return self._build(
            CheckKey.UNEXPLAINED_VARIANCE,
            f"Unexplained variances (>= {drift_threshold_hours}h drift without override note)",
            details,
        )

    @traced_engine(
        "anomalies", "1.0",
        fingerprint_fields=("worked", "drift_threshold_hours"),
    )
    def run(
        self,
        *,
        worked: Sequence[WorkedShift],
        scheduled: Sequence[ScheduledShift],
        coverage: CoverageResult,
        drift_threshold_hours: Decimal,
    ) -> AnomalyFindings:
        scheduled_by_id = {slot.id: slot for slot in scheduled}
        drifts = self.drifts(worked, scheduled_by_id)
        checks = (
            self.check_unapproved_shifts(worked),
            self.check_missing_coverage(coverage),
            self.check_open_shifts(worked),
            self.check_unexplained_variance(drifts, drift_threshold_hours),
        )
        notices = tuple(
            DataQualityNotice(
                record_id=d.shift.id,
                record_kind="variance_check",
                reason=d.clamp_reason,
                raw_minutes=d.raw_minutes,
            )
            for d in drifts
            if d.clamp_reason is not None
        )
        failing = [c.key.value for c in checks if not c.ok]
        if failing:
            logger.info("anomalies_detected", extra={"failing_checks": failing})
        return AnomalyFindings(checks=checks, data_quality=notices)
