"""Domain records consumed by the reconciliation engines."""

from payroll_kernel.domain.records import (
    AdvanceStatus,
    PayrollAdvance,
    ScheduledShift,
    ScheduleStatus,
    ShiftType,
    Store,
    StoreReconciliationSettings,
    WorkedShift,
)

__all__ = [
    "AdvanceStatus",
    "PayrollAdvance",
    "ScheduleStatus",
    "ScheduledShift",
    "ShiftType",
    "Store",
    "StoreReconciliationSettings",
    "WorkedShift",
]
