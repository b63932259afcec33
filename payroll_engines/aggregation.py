"""
payroll_engines.aggregation -- Payroll period aggregation and reconciliation.

Responsibility:
    Roll scheduled, worked, projected and advance hours into per-employee
    and per-store totals, run coverage matching and the operational
    checks, and compute the cross-view deltas that must reconcile:
    open (every published slot) vs. scheduled (assigned slots) vs.
    submitted (payable) hours.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    Composes ``CoverageMatcher`` and ``AnomalyDetector``; all date math
    goes through ``CivilCalendar``; all durations through ``rounding``.

Invariants enforced:
    - Worked-through window ``[from, as_of]`` feeds worked hours and the
      checks; projected window ``(as_of, to]`` feeds projected hours.
    - ``scheduled_hours`` covers every published slot in ``[from, to]``.
    - ``submit_hours == worked + projected - advance`` exactly, with no
      rounding at that step (inputs are already rounded).
    - Draft schedules, soft-deleted shifts and unverified advances are
      excluded from every view.
    - The strictest in-scope store sets the thresholds.

Failure modes:
    - InvalidDateRangeError when building a period with inverted bounds
      or an as_of outside them.
    - Never raises on data: unmeasurable durations count as zero and
      are reported as data-quality notices.

Usage:
    reconciler = PayrollReconciler(calendar, StoreBucketClassifier(stores))
    report = reconciler.reconcile(
        period=ReconciliationPeriod.of("2026-02-01", "2026-02-14"),
        inputs=ReconciliationInputs(scheduled=..., worked=..., advances=..., stores=...),
        thresholds=resolve_thresholds(settings),
    )
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from datetime import date
from decimal import ROUND_HALF_UP, Decimal

from payroll_engines.anomalies import DEFAULT_DETAIL_LIMIT, AnomalyDetector, overall_status
from payroll_engines.civil_time import CivilCalendar, parse_business_date
from payroll_engines.coverage import CoverageMatcher
from payroll_engines.reconciliation_types import (
    BucketTotals,
    CheckKey,
    DataQualityNotice,
    EmployeeSummary,
    FinancialReconciliation,
    OperationalCheck,
    ReconciliationReport,
    ReconciliationThresholds,
    StaffingReconciliation,
)
from payroll_engines.rounding import elapsed_minutes, round_to_payroll_hours, scheduled_minutes
from payroll_engines.tracer import traced_engine
from payroll_kernel.domain.records import (
    PayrollAdvance,
    ScheduledShift,
    Store,
    StoreReconciliationSettings,
    WorkedShift,
)
from payroll_kernel.exceptions import InvalidDateRangeError
from payroll_kernel.logging_config import get_logger

logger = get_logger("engines.aggregation")

DEFAULT_WARN_HOURS = Decimal("2")

_ZERO = Decimal("0")
_HUNDRED = Decimal("100")
_TENTH = Decimal("0.1")


# ---------------------------------------------------------------------------
# Inputs
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ReconciliationPeriod:
    """A payroll period and how far into it payroll has been worked."""

    from_date: date
    to_date: date
    as_of: date

    def __post_init__(self) -> None:
        if self.to_date < self.from_date:
            raise InvalidDateRangeError(self.from_date.isoformat(), self.to_date.isoformat())
        if not self.from_date <= self.as_of <= self.to_date:
            raise InvalidDateRangeError(
                self.from_date.isoformat(),
                self.to_date.isoformat(),
                self.as_of.isoformat(),
            )

    @classmethod
    def of(
        cls,
        from_date: str | date,
        to_date: str | date,
        as_of: str | date | None = None,
    ) -> ReconciliationPeriod:
        """Parse strict business dates; ``as_of`` defaults to ``to_date``."""
        start = parse_business_date(from_date, "from")
        end = parse_business_date(to_date, "to")
        cutoff = end if as_of is None else parse_business_date(as_of, "as_of")
        return cls(from_date=start, to_date=end, as_of=cutoff)

    def contains(self, day: date) -> bool:
        return self.from_date <= day <= self.to_date

    def is_worked_through(self, day: date) -> bool:
        return self.from_date <= day <= self.as_of

    def is_projected(self, day: date) -> bool:
        return self.as_of < day <= self.to_date


@dataclass(frozen=True)
class ReconciliationInputs:
    """Already fetched, already authorized row sets for one run."""

    scheduled: tuple[ScheduledShift, ...] = ()
    worked: tuple[WorkedShift, ...] = ()
    advances: tuple[PayrollAdvance, ...] = ()
    stores: tuple[Store, ...] = ()
    employee_names: dict[str, str] = field(default_factory=dict)


def resolve_thresholds(
    settings: Iterable[StoreReconciliationSettings],
    *,
    default_variance_hours: Decimal = DEFAULT_WARN_HOURS,
    default_drift_hours: Decimal = DEFAULT_WARN_HOURS,
) -> ReconciliationThresholds:
    """Strictest (minimum) threshold across in-scope stores.

    A missing column takes the default; negative values are ignored; with
    no usable row the default applies.
    """
    rows = list(settings)

    def strictest(values: Iterable[Decimal | None], default: Decimal) -> Decimal:
        usable = [default if v is None else v for v in values]
        usable = [v for v in usable if v.is_finite() and v >= _ZERO]
        return min(usable) if usable else default

    return ReconciliationThresholds(
        variance_warn_hours=strictest(
            (r.variance_warn_hours for r in rows), default_variance_hours,
        ),
        shift_drift_warn_hours=strictest(
            (r.shift_drift_warn_hours for r in rows), default_drift_hours,
        ),
    )


# ---------------------------------------------------------------------------
# Accumulators
# ---------------------------------------------------------------------------


@dataclass
class _EmployeeTotals:
    employee_id: str
    name: str | None = None
    worked: Decimal = _ZERO
    projected: Decimal = _ZERO
    scheduled: Decimal = _ZERO
    advance: Decimal = _ZERO

    def freeze(self) -> EmployeeSummary:
        return EmployeeSummary(
            employee_id=self.employee_id,
            name=self.name,
            worked_hours=self.worked,
            projected_hours=self.projected,
            scheduled_hours=self.scheduled,
            advance_hours=self.advance,
        )


class _BucketAccumulator:
    def __init__(self, labels: Sequence[str]):
        self.hours: dict[str, Decimal] = {label: _ZERO for label in labels}
        self.total = _ZERO

    def add(self, bucket: str | None, hours: Decimal) -> None:
        if bucket is not None:
            self.hours[bucket] = self.hours.get(bucket, _ZERO) + hours
        self.total += hours

    def freeze(self) -> BucketTotals:
        return BucketTotals(hours_by_bucket=dict(self.hours), total_hours=self.total)


def slot_hours(slot: ScheduledShift) -> Decimal:
    return round_to_payroll_hours(scheduled_minutes(slot.scheduled_start, slot.scheduled_end))


# ---------------------------------------------------------------------------
# Reconciler
# ---------------------------------------------------------------------------


class PayrollReconciler:
    """Pure engine producing a ``ReconciliationReport`` for one period.

    Contract:
        Each call is an independent computation over its arguments; no
        state is kept between calls, so one instance may serve concurrent
        runs.
    """

    def __init__(
        self,
        calendar: CivilCalendar,
        classifier: Callable[[str], str | None],
        *,
        bucket_labels: Sequence[str] | None = None,
        detail_limit: int = DEFAULT_DETAIL_LIMIT,
    ):
        self._calendar = calendar
        self._classifier = classifier
        if bucket_labels is None:
            bucket_labels = getattr(classifier, "bucket_labels", ())
        self._bucket_labels = tuple(bucket_labels)
        self._detail_limit = detail_limit

    @traced_engine(
        "payroll_reconciliation", "1.0",
        fingerprint_fields=("period", "thresholds"),
    )
    def reconcile(
        self,
        *,
        period: ReconciliationPeriod,
        inputs: ReconciliationInputs,
        thresholds: ReconciliationThresholds,
    ) -> ReconciliationReport:
        scheduled = [
            s for s in inputs.scheduled
            if s.is_published and period.contains(s.business_date)
        ]
        worked = [
            s for s in inputs.worked
            if not s.soft_deleted
            and period.contains(self._calendar.business_date_of(s.planned_start))
        ]
        worked_through = [
            s for s in worked
            if period.is_worked_through(self._calendar.business_date_of(s.planned_start))
        ]
        scheduled_through = [s for s in scheduled if period.is_worked_through(s.business_date)]

        coverage = CoverageMatcher(self._calendar).match(
            scheduled=scheduled_through, worked=worked_through,
        )
        detector = AnomalyDetector(
            self._calendar,
            store_names={s.store_id: s.name for s in inputs.stores},
            employee_names=self._employee_names(inputs, scheduled, worked),
            detail_limit=self._detail_limit,
        )
        findings = detector.run(
            worked=worked_through,
            scheduled=scheduled,
            coverage=coverage,
            drift_threshold_hours=thresholds.shift_drift_warn_hours,
        )

        employees, worked_notices = self._employee_totals(
            period, inputs, scheduled, worked_through,
        )
        staffing = self._staffing(scheduled)
        financial = FinancialReconciliation(
            scheduled_hours=sum((e.scheduled_hours for e in employees), _ZERO),
            worked_hours=sum((e.worked_hours for e in employees), _ZERO),
            projected_hours=sum((e.projected_hours for e in employees), _ZERO),
            advance_hours=sum((e.advance_hours for e in employees), _ZERO),
            submitted_hours=sum((e.submit_hours for e in employees), _ZERO),
            open_hours=staffing.open_totals.total_hours,
        )

        status = overall_status(
            findings.checks,
            financial.scheduled_minus_submitted,
            thresholds.variance_warn_hours,
        )
        data_quality = worked_notices + findings.data_quality
        if data_quality:
            logger.warning(
                "payroll_data_quality_issues",
                extra={"notice_count": len(data_quality)},
            )

        return ReconciliationReport(
            status=status,
            from_date=period.from_date,
            to_date=period.to_date,
            as_of=period.as_of,
            thresholds=thresholds,
            operational_checks=findings.checks,
            staffing=staffing,
            employees=employees,
            financial=financial,
            warnings=build_warnings(findings.checks, financial, thresholds),
            data_quality=data_quality,
        )

    # -----------------------------------------------------------------
    # Per-employee view
    # -----------------------------------------------------------------

    @staticmethod
    def _employee_names(
        inputs: ReconciliationInputs,
        scheduled: Sequence[ScheduledShift],
        worked: Sequence[WorkedShift],
    ) -> dict[str, str]:
        names = dict(inputs.employee_names)
        for row in (*scheduled, *worked):
            if row.employee_id and row.employee_name and row.employee_id not in names:
                names[row.employee_id] = row.employee_name
        return names

    def _employee_totals(
        self,
        period: ReconciliationPeriod,
        inputs: ReconciliationInputs,
        scheduled: Sequence[ScheduledShift],
        worked_through: Sequence[WorkedShift],
    ) -> tuple[tuple[EmployeeSummary, ...], tuple[DataQualityNotice, ...]]:
        names = self._employee_names(inputs, scheduled, worked_through)
        totals: dict[str, _EmployeeTotals] = {}

        def entry(employee_id: str) -> _EmployeeTotals:
            if employee_id not in totals:
                totals[employee_id] = _EmployeeTotals(employee_id, names.get(employee_id))
            return totals[employee_id]

        for slot in scheduled:
            if slot.employee_id is None:
                continue
            row = entry(slot.employee_id)
            hours = slot_hours(slot)
            row.scheduled += hours
            if period.is_projected(slot.business_date):
                row.projected += hours

        notices: list[DataQualityNotice] = []
        for shift in worked_through:
            if shift.ended_at is None:
                continue
            measured = elapsed_minutes(shift.clock_start, shift.ended_at, record_id=shift.id)
            if measured.clamped:
                notices.append(DataQualityNotice(
                    record_id=shift.id,
                    record_kind="worked_shift",
                    reason=measured.clamp_reason,
                    raw_minutes=measured.raw_minutes,
                ))
            entry(shift.employee_id).worked += measured.hours

        for advance in inputs.advances:
            if not advance.is_verified or not period.contains(advance.advance_date):
                continue
            entry(advance.employee_id).advance += advance.advance_hours

        rows = sorted(
            (t.freeze() for t in totals.values()),
            key=lambda r: (r.display_name.casefold(), r.employee_id),
        )
        return tuple(rows), tuple(notices)

    # -----------------------------------------------------------------
    # Per-store staffing view
    # -----------------------------------------------------------------

    def _staffing(self, scheduled: Sequence[ScheduledShift]) -> StaffingReconciliation:
        open_totals = _BucketAccumulator(self._bucket_labels)
        assigned_totals = _BucketAccumulator(self._bucket_labels)
        for slot in scheduled:
            hours = slot_hours(slot)
            bucket = self._classifier(slot.store_id)
            open_totals.add(bucket, hours)
            if slot.employee_id is not None:
                assigned_totals.add(bucket, hours)

        if open_totals.total > _ZERO:
            coverage_percent = (assigned_totals.total / open_totals.total * _HUNDRED).quantize(
                _TENTH, rounding=ROUND_HALF_UP,
            )
        else:
            coverage_percent = _HUNDRED.quantize(_TENTH)

        return StaffingReconciliation(
            open_totals=open_totals.freeze(),
            scheduled_totals=assigned_totals.freeze(),
            open_minus_scheduled=open_totals.total - assigned_totals.total,
            coverage_percent=coverage_percent,
        )


def build_warnings(
    checks: Sequence[OperationalCheck],
    financial: FinancialReconciliation,
    thresholds: ReconciliationThresholds,
) -> tuple[str, ...]:
    """Human-readable warnings, one per failing condition."""
    by_key: Mapping[CheckKey, OperationalCheck] = {c.key: c for c in checks}
    warnings: list[str] = []

    delta = financial.scheduled_minus_submitted
    if abs(delta) > thresholds.variance_warn_hours:
        warnings.append(
            f"Scheduled vs submitted differs by {delta:.1f} hours "
            f"(threshold {thresholds.variance_warn_hours})."
        )
    missing = by_key.get(CheckKey.MISSING_COVERAGE)
    if missing is not None and missing.count:
        warnings.append(f"Missing coverage detected on {missing.count} scheduled shift(s).")
    unapproved = by_key.get(CheckKey.UNAPPROVED_SHIFTS)
    if unapproved is not None and unapproved.count:
        warnings.append(f"{unapproved.count} shift(s) still need manager approval.")
    open_shifts = by_key.get(CheckKey.OPEN_SHIFTS)
    if open_shifts is not None and open_shifts.count:
        warnings.append(f"{open_shifts.count} shift(s) are still open.")
    variance = by_key.get(CheckKey.UNEXPLAINED_VARIANCE)
    if variance is not None and variance.count:
        warnings.append(
            f"{variance.count} shift(s) have drift above threshold without override note."
        )
    return tuple(warnings)
