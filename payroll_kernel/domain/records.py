"""
Reconciliation Input Records (``payroll_kernel.domain.records``).

Responsibility
--------------
Frozen dataclass value objects for the four persisted inputs of a payroll
reconciliation run: published schedule slots, worked (clocked) shifts,
payroll advances, and per-store reconciliation settings.  Also carries the
``Store`` reference row used for names and staffing buckets.

Architecture position
---------------------
**Kernel layer** -- pure data definitions with ZERO I/O.  Rows are fetched
and access-controlled by the service layer, then handed to the engines
unchanged.  Nothing here is ever written back.

Invariants enforced
-------------------
* All models are ``frozen=True`` (immutable after construction).
* All hour fields use ``Decimal`` -- NEVER ``float``.
* Instants must be timezone-aware; naive datetimes are rejected because
  business-date projection would be ambiguous.
* Advance hours must be positive.

Failure modes
-------------
* Construction with a naive datetime raises ``ValueError``.
* Non-positive advance hours raise ``ValueError``.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class ShiftType(str, Enum):
    """Kind of shift slot, shared by schedules and clocked shifts."""
    OPEN = "open"
    CLOSE = "close"
    DOUBLE = "double"
    OTHER = "other"


class ScheduleStatus(str, Enum):
    """Lifecycle of the schedule a slot belongs to."""
    DRAFT = "draft"
    PUBLISHED = "published"


class AdvanceStatus(str, Enum):
    """Verification state of a payroll advance."""
    PENDING_VERIFICATION = "pending_verification"
    VERIFIED = "verified"
    VOIDED = "voided"


def _require_aware(value: datetime | None, field_name: str) -> None:
    if value is not None and value.utcoffset() is None:
        raise ValueError(f"{field_name} must be timezone-aware: {value!r}")


# ---------------------------------------------------------------------------
# Reference data
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Store:
    """A store in scope.  ``bucket`` is the stored staffing-rollup label."""
    store_id: str
    name: str
    bucket: str | None = None


# ---------------------------------------------------------------------------
# Core records
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ScheduledShift:
    """A slot on a schedule for one business date.

    ``employee_id`` is None for an unassigned slot; such slots count toward
    store-level open hours but never toward an employee or coverage.
    """
    id: str
    employee_id: str | None
    store_id: str
    business_date: date
    shift_type: ShiftType
    scheduled_start: time
    scheduled_end: time
    schedule_status: ScheduleStatus = ScheduleStatus.PUBLISHED
    employee_name: str | None = None

    @property
    def is_published(self) -> bool:
        return self.schedule_status == ScheduleStatus.PUBLISHED


@dataclass(frozen=True)
class WorkedShift:
    """A clocked shift, from clock-in through clock-out or force-close."""
    id: str
    employee_id: str
    store_id: str
    shift_type: ShiftType
    planned_start: datetime
    actual_start: datetime | None = None
    ended_at: datetime | None = None
    scheduled_shift_id: str | None = None
    requires_override: bool = False
    override_approved_at: datetime | None = None
    override_note: str | None = None
    manually_closed: bool = False
    manual_close_reviewed_at: datetime | None = None
    soft_deleted: bool = False
    employee_name: str | None = None

    def __post_init__(self) -> None:
        _require_aware(self.planned_start, "planned_start")
        _require_aware(self.actual_start, "actual_start")
        _require_aware(self.ended_at, "ended_at")

    @property
    def is_open(self) -> bool:
        return self.ended_at is None

    @property
    def clock_start(self) -> datetime:
        """Actual clock-in when recorded, otherwise the planned start."""
        return self.actual_start or self.planned_start

    @property
    def has_override_note(self) -> bool:
        return bool((self.override_note or "").strip())


@dataclass(frozen=True)
class PayrollAdvance:
    """Hours paid out ahead of the payroll run."""
    id: str
    employee_id: str
    store_id: str | None
    advance_date: date
    advance_hours: Decimal
    status: AdvanceStatus = AdvanceStatus.PENDING_VERIFICATION

    def __post_init__(self) -> None:
        if self.advance_hours <= Decimal("0"):
            raise ValueError(
                f"PayrollAdvance hours must be positive: {self.advance_hours}"
            )

    @property
    def is_verified(self) -> bool:
        return self.status == AdvanceStatus.VERIFIED


@dataclass(frozen=True)
class StoreReconciliationSettings:
    """Per-store warning thresholds.  None means "use the policy default"."""
    store_id: str
    variance_warn_hours: Decimal | None = None
    shift_drift_warn_hours: Decimal | None = None
