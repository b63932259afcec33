"""
Payroll reconciliation result types -- frozen dataclasses for engine output.

Architecture: payroll_engines -- pure data, zero I/O.
Everything here is derived per request from the four input row sets and
is never written back.  ``to_dict`` renders JSON-ready payloads with
Decimal values as strings so formatters print them verbatim.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any


class ReconciliationStatus(str, Enum):
    """Overall outcome of a reconciliation run."""

    OK = "ok"
    NEEDS_ATTENTION = "needs_attention"


class CheckKey(str, Enum):
    """The four operational checks, in report order."""

    UNAPPROVED_SHIFTS = "unapproved_shifts"
    MISSING_COVERAGE = "missing_coverage"
    OPEN_SHIFTS = "open_shifts"
    UNEXPLAINED_VARIANCE = "unexplained_variance"


def _plain(value: Any) -> Any:
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {k: _plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_plain(v) for v in value]
    return value


@dataclass(frozen=True)
class ReconciliationThresholds:
    """Effective warning thresholds for one run (the strictest store governs)."""

    variance_warn_hours: Decimal
    shift_drift_warn_hours: Decimal

    def to_dict(self) -> dict[str, Any]:
        return {
            "payroll_variance_warn_hours": str(self.variance_warn_hours),
            "payroll_shift_drift_warn_hours": str(self.shift_drift_warn_hours),
        }


@dataclass(frozen=True)
class DataQualityNotice:
    """A record whose duration could not be measured and was clamped to zero."""

    record_id: str
    record_kind: str  # "worked_shift" or "variance_check"
    reason: str
    raw_minutes: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "record_id": self.record_id,
            "record_kind": self.record_kind,
            "reason": self.reason,
            "raw_minutes": self.raw_minutes,
        }


@dataclass(frozen=True)
class OperationalCheck:
    """One anomaly check.  ``details`` is capped; ``count`` is not."""

    key: CheckKey
    label: str
    count: int
    details: tuple[dict[str, Any], ...] = ()

    @property
    def ok(self) -> bool:
        return self.count == 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "key": self.key.value,
            "label": self.label,
            "ok": self.ok,
            "count": self.count,
            "details": [_plain(d) for d in self.details],
        }


@dataclass(frozen=True)
class EmployeeSummary:
    """Per-employee payroll figures for the period."""

    employee_id: str
    name: str | None
    worked_hours: Decimal
    projected_hours: Decimal
    scheduled_hours: Decimal
    advance_hours: Decimal

    @property
    def submit_hours(self) -> Decimal:
        return self.worked_hours + self.projected_hours - self.advance_hours

    @property
    def gross_hours(self) -> Decimal:
        return self.worked_hours + self.projected_hours

    @property
    def display_name(self) -> str:
        return self.name or "Unknown"

    def to_dict(self) -> dict[str, Any]:
        return {
            "employee_id": self.employee_id,
            "name": self.name,
            "worked_hours": str(self.worked_hours),
            "projected_hours": str(self.projected_hours),
            "scheduled_hours": str(self.scheduled_hours),
            "advance_hours": str(self.advance_hours),
            "submit_hours": str(self.submit_hours),
        }


@dataclass(frozen=True)
class BucketTotals:
    """Scheduled hours per staffing bucket, plus the grand total.

    Stores without a bucket contribute to ``total_hours`` only, so the
    named buckets may sum to less than the total.
    """

    hours_by_bucket: dict[str, Decimal] = field(default_factory=dict)
    total_hours: Decimal = Decimal("0")

    def bucket_hours(self, label: str) -> Decimal:
        return self.hours_by_bucket.get(label, Decimal("0"))

    def to_dict(self) -> dict[str, Any]:
        payload = {f"{label}_hours": str(hours) for label, hours in self.hours_by_bucket.items()}
        payload["total_hours"] = str(self.total_hours)
        return payload


@dataclass(frozen=True)
class StaffingReconciliation:
    """Store-level view: every published slot vs. the assigned ones."""

    open_totals: BucketTotals
    scheduled_totals: BucketTotals
    open_minus_scheduled: Decimal
    coverage_percent: Decimal

    def to_dict(self) -> dict[str, Any]:
        return {
            "open_totals": self.open_totals.to_dict(),
            "scheduled_totals": self.scheduled_totals.to_dict(),
            "open_minus_scheduled": str(self.open_minus_scheduled),
            "coverage_percent": str(self.coverage_percent),
        }


@dataclass(frozen=True)
class FinancialReconciliation:
    """Employee-level totals and the cross-view deltas."""

    scheduled_hours: Decimal
    worked_hours: Decimal
    projected_hours: Decimal
    advance_hours: Decimal
    submitted_hours: Decimal
    open_hours: Decimal

    @property
    def scheduled_minus_submitted(self) -> Decimal:
        return self.scheduled_hours - self.submitted_hours

    @property
    def submitted_minus_scheduled(self) -> Decimal:
        return self.submitted_hours - self.scheduled_hours

    @property
    def open_minus_submitted(self) -> Decimal:
        return self.open_hours - self.submitted_hours

    def to_dict(self) -> dict[str, Any]:
        return {
            "scheduled_hours": str(self.scheduled_hours),
            "worked_hours": str(self.worked_hours),
            "projected_hours": str(self.projected_hours),
            "advances_hours": str(self.advance_hours),
            "submitted_hours": str(self.submitted_hours),
            "scheduled_minus_submitted": str(self.scheduled_minus_submitted),
            "submitted_minus_scheduled": str(self.submitted_minus_scheduled),
            "open_minus_submitted": str(self.open_minus_submitted),
        }


@dataclass(frozen=True)
class ReconciliationReport:
    """Complete output of one reconciliation run."""

    status: ReconciliationStatus
    from_date: date
    to_date: date
    as_of: date
    thresholds: ReconciliationThresholds
    operational_checks: tuple[OperationalCheck, ...]
    staffing: StaffingReconciliation
    employees: tuple[EmployeeSummary, ...]
    financial: FinancialReconciliation
    warnings: tuple[str, ...] = ()
    data_quality: tuple[DataQualityNotice, ...] = ()

    def check(self, key: CheckKey | str) -> OperationalCheck:
        wanted = CheckKey(key)
        for item in self.operational_checks:
            if item.key == wanted:
                return item
        raise KeyError(wanted.value)

    def employee(self, employee_id: str) -> EmployeeSummary:
        for row in self.employees:
            if row.employee_id == employee_id:
                return row
        raise KeyError(employee_id)

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status.value,
            "period": {
                "from": self.from_date.isoformat(),
                "to": self.to_date.isoformat(),
                "as_of": self.as_of.isoformat(),
            },
            "thresholds": self.thresholds.to_dict(),
            "operational_checks": [c.to_dict() for c in self.operational_checks],
            "staffing_reconciliation": self.staffing.to_dict(),
            "employee_summary": [e.to_dict() for e in self.employees],
            "financial_reconciliation": self.financial.to_dict(),
            "warnings": list(self.warnings),
            "data_quality": [n.to_dict() for n in self.data_quality],
        }
