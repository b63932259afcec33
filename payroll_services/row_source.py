"""
payroll_services.row_source -- Row-fetch interface for reconciliation runs.

Responsibility:
    Define the narrow read interface the reconciliation service fetches
    through, and an in-memory implementation used by tests and by callers
    that already hold the rows.

Contract:
    Implementations return only rows a reconciliation may ever see:
    published schedule slots, live (not soft-deleted) worked shifts, and
    verified advances.  Worked shifts are selected by clock-in instant
    over a half-open ``[start, end_exclusive)`` range built by
    ``payroll_engines.civil_time``; everything else by business date.
    Implementations must be safe to call from several threads at once.
"""

from __future__ import annotations

from collections.abc import Collection, Iterable, Sequence
from datetime import date, datetime
from typing import Protocol

from payroll_kernel.domain.records import (
    PayrollAdvance,
    ScheduledShift,
    Store,
    StoreReconciliationSettings,
    WorkedShift,
)


class RowSource(Protocol):
    """Read-only access to the persisted reconciliation inputs."""

    def stores(self, store_ids: Collection[str]) -> Sequence[Store]: ...

    def store_settings(
        self, store_ids: Collection[str],
    ) -> Sequence[StoreReconciliationSettings]: ...

    def scheduled_shifts(
        self, store_ids: Collection[str], from_date: date, to_date: date,
    ) -> Sequence[ScheduledShift]: ...

    def worked_shifts(
        self, store_ids: Collection[str], start: datetime, end_exclusive: datetime,
    ) -> Sequence[WorkedShift]: ...

    def advances(
        self, employee_ids: Collection[str], from_date: date, to_date: date,
    ) -> Sequence[PayrollAdvance]: ...


class InMemoryRowSource:
    """``RowSource`` over plain lists, applying the same filters a database would."""

    def __init__(
        self,
        *,
        stores: Iterable[Store] = (),
        settings: Iterable[StoreReconciliationSettings] = (),
        scheduled: Iterable[ScheduledShift] = (),
        worked: Iterable[WorkedShift] = (),
        advances: Iterable[PayrollAdvance] = (),
    ):
        self._stores = tuple(stores)
        self._settings = tuple(settings)
        self._scheduled = tuple(scheduled)
        self._worked = tuple(worked)
        self._advances = tuple(advances)

    def stores(self, store_ids: Collection[str]) -> list[Store]:
        return [s for s in self._stores if s.store_id in store_ids]

    def store_settings(self, store_ids: Collection[str]) -> list[StoreReconciliationSettings]:
        return [s for s in self._settings if s.store_id in store_ids]

    def scheduled_shifts(
        self, store_ids: Collection[str], from_date: date, to_date: date,
    ) -> list[ScheduledShift]:
        return [
            s for s in self._scheduled
            if s.store_id in store_ids
            and s.is_published
            and from_date <= s.business_date <= to_date
        ]

    def worked_shifts(
        self, store_ids: Collection[str], start: datetime, end_exclusive: datetime,
    ) -> list[WorkedShift]:
        return [
            s for s in self._worked
            if s.store_id in store_ids
            and not s.soft_deleted
            and start <= s.planned_start < end_exclusive
        ]

    def advances(
        self, employee_ids: Collection[str], from_date: date, to_date: date,
    ) -> list[PayrollAdvance]:
        return [
            a for a in self._advances
            if a.employee_id in employee_ids
            and a.is_verified
            and from_date <= a.advance_date <= to_date
        ]
