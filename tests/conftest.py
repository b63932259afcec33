"""
Pytest fixtures for the payroll reconciliation test suite.

Provides:
- A clean logging state for every test
- The region calendar (America/Chicago)
- Factory fixtures for stores, schedule slots, worked shifts and advances

All instants are built from local wall-clock times through the calendar so
tests read the way a store manager would describe a shift.
"""

from datetime import date, datetime, time
from decimal import Decimal
from itertools import count

import pytest

from payroll_engines.civil_time import CivilCalendar
from payroll_kernel.domain.records import (
    AdvanceStatus,
    PayrollAdvance,
    ScheduledShift,
    ScheduleStatus,
    ShiftType,
    Store,
    WorkedShift,
)
from payroll_kernel.logging_config import LogContext, reset_logging


@pytest.fixture(autouse=True)
def _clean_logging():
    reset_logging()
    LogContext.clear()
    yield
    LogContext.clear()
    reset_logging()


@pytest.fixture
def calendar() -> CivilCalendar:
    return CivilCalendar("America/Chicago")


def _clock(value: str) -> time:
    return time.fromisoformat(value)


@pytest.fixture
def local(calendar):
    """``local(date, "08:05")`` -> aware UTC instant of that wall-clock time."""

    def _local(day: date, clock: str) -> datetime:
        return calendar.local_instant(day, _clock(clock))

    return _local


@pytest.fixture
def make_store():
    def _make(store_id: str = "store-1", name: str = "Main St", bucket: str | None = None) -> Store:
        return Store(store_id=store_id, name=name, bucket=bucket)

    return _make


@pytest.fixture
def make_slot():
    ids = count(1)

    def _make(
        day: date,
        start: str = "08:00",
        end: str = "14:00",
        *,
        employee_id: str | None = "emp-1",
        store_id: str = "store-1",
        shift_type: ShiftType = ShiftType.OPEN,
        status: ScheduleStatus = ScheduleStatus.PUBLISHED,
        slot_id: str | None = None,
        employee_name: str | None = None,
    ) -> ScheduledShift:
        return ScheduledShift(
            id=slot_id or f"slot-{next(ids)}",
            employee_id=employee_id,
            store_id=store_id,
            business_date=day,
            shift_type=shift_type,
            scheduled_start=_clock(start),
            scheduled_end=_clock(end),
            schedule_status=status,
            employee_name=employee_name,
        )

    return _make


@pytest.fixture
def make_worked(local):
    ids = count(1)

    def _make(
        day: date,
        start: str = "08:00",
        end: str | None = "14:00",
        *,
        end_day: date | None = None,
        actual_start: str | None = None,
        employee_id: str = "emp-1",
        store_id: str = "store-1",
        shift_type: ShiftType = ShiftType.OPEN,
        scheduled_shift_id: str | None = None,
        shift_id: str | None = None,
        **overrides,
    ) -> WorkedShift:
        return WorkedShift(
            id=shift_id or f"shift-{next(ids)}",
            employee_id=employee_id,
            store_id=store_id,
            shift_type=shift_type,
            planned_start=local(day, start),
            actual_start=local(day, actual_start) if actual_start else None,
            ended_at=local(end_day or day, end) if end else None,
            scheduled_shift_id=scheduled_shift_id,
            **overrides,
        )

    return _make


@pytest.fixture
def make_advance():
    ids = count(1)

    def _make(
        day: date,
        hours: str = "4",
        *,
        employee_id: str = "emp-1",
        store_id: str | None = "store-1",
        status: AdvanceStatus = AdvanceStatus.VERIFIED,
    ) -> PayrollAdvance:
        return PayrollAdvance(
            id=f"adv-{next(ids)}",
            employee_id=employee_id,
            store_id=store_id,
            advance_date=day,
            advance_hours=Decimal(hours),
            status=status,
        )

    return _make
