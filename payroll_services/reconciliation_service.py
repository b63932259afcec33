"""
payroll_services.reconciliation_service -- Payroll period reconciliation runs.

Responsibility:
    Validate a reconciliation request against the caller's store scope,
    fetch the four input row sets, resolve the effective warning
    thresholds, and hand everything to the pure ``PayrollReconciler``.
    Also applies manager actions on shifts and advances through
    ``payroll_engines.close_rules``.

Architecture position:
    Services -- orchestration over engines + kernel.
    Owns every fetch; the engines below it never see a ``RowSource``.

Invariants enforced:
    - All validation happens before any fetch: malformed dates, then
      inverted ranges or an out-of-range as-of, then store scope.
    - Store settings, schedules, worked shifts and stores are fetched
      concurrently and joined before matching starts; advances follow
      once the employees in scope are known.
    - Worked shifts are fetched over the half-open instant range of the
      period's business dates in the policy time zone.

Failure modes:
    - InvalidDateFormatError / InvalidDateRangeError: bad request dates.
    - NoStoresInScopeError: the caller manages no stores.
    - InvalidStoreSelectionError: explicit store outside the caller's scope.
    - Any exception raised by the row source propagates unchanged.

Usage:
    service = PayrollReconciliationService(row_source, get_active_policy())
    report = service.reconcile(
        ReconciliationRequest(from_date="2026-02-01", to_date="2026-02-14"),
        authorized_store_ids=["store-1", "store-2"],
    )
"""

from __future__ import annotations

from collections.abc import Collection
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import date, datetime, timezone
from uuid import uuid4

from payroll_config.schema import ReconciliationPolicy
from payroll_engines.aggregation import (
    PayrollReconciler,
    ReconciliationInputs,
    ReconciliationPeriod,
    resolve_thresholds,
)
from payroll_engines.buckets import StoreBucketClassifier
from payroll_engines.civil_time import CivilCalendar
from payroll_engines.close_rules import (
    approve_override,
    force_close,
    review_manual_close,
    set_advance_status,
)
from payroll_engines.payroll_lines import DEFAULT_PAGE_SIZE, PayrollLinePage, build_payroll_lines
from payroll_engines.reconciliation_types import ReconciliationReport
from payroll_kernel.domain.records import AdvanceStatus, PayrollAdvance, WorkedShift
from payroll_kernel.exceptions import InvalidStoreSelectionError, NoStoresInScopeError
from payroll_kernel.logging_config import LogContext, get_logger
from payroll_services.row_source import RowSource

logger = get_logger("services.reconciliation")

_FETCH_WORKERS = 4


@dataclass(frozen=True)
class ReconciliationRequest:
    """Raw request parameters; dates may be ``YYYY-MM-DD`` strings."""

    from_date: str | date
    to_date: str | date
    as_of: str | date | None = None
    store_id: str | None = None


class PayrollReconciliationService:
    """Runs reconciliations for one policy over one row source.

    Contract:
        ``reconcile`` holds no state between calls and may run on several
        threads at once provided the row source is thread-safe.
    """

    def __init__(self, row_source: RowSource, policy: ReconciliationPolicy):
        self._rows = row_source
        self._policy = policy
        self._calendar = CivilCalendar(policy.region_timezone)

    @property
    def calendar(self) -> CivilCalendar:
        return self._calendar

    def resolve_scope(
        self,
        request: ReconciliationRequest,
        authorized_store_ids: Collection[str],
    ) -> tuple[str, ...]:
        authorized = tuple(dict.fromkeys(authorized_store_ids))
        if not authorized:
            raise NoStoresInScopeError()
        if request.store_id is None:
            return authorized
        if request.store_id not in authorized:
            raise InvalidStoreSelectionError(request.store_id)
        return (request.store_id,)

    def reconcile(
        self,
        request: ReconciliationRequest,
        authorized_store_ids: Collection[str],
    ) -> ReconciliationReport:
        period = ReconciliationPeriod.of(request.from_date, request.to_date, request.as_of)
        scope = self.resolve_scope(request, authorized_store_ids)

        run_id = str(uuid4())
        with LogContext.bind(run_id=run_id, store_scope=",".join(scope)):
            logger.info(
                "payroll_reconciliation_started",
                extra={
                    "from_date": period.from_date,
                    "to_date": period.to_date,
                    "as_of": period.as_of,
                    "store_count": len(scope),
                },
            )
            inputs, settings = self._fetch(period, scope)
            thresholds = resolve_thresholds(
                settings,
                default_variance_hours=self._policy.default_variance_warn_hours,
                default_drift_hours=self._policy.default_shift_drift_warn_hours,
            )
            classifier = StoreBucketClassifier(
                inputs.stores, self._policy.bucket_pattern_pairs,
            )
            reconciler = PayrollReconciler(
                self._calendar, classifier, detail_limit=self._policy.detail_limit,
            )
            report = reconciler.reconcile(
                period=period, inputs=inputs, thresholds=thresholds,
            )
            logger.info(
                "payroll_reconciliation_completed",
                extra={
                    "status": report.status.value,
                    "employee_count": len(report.employees),
                    "scheduled_count": len(inputs.scheduled),
                    "worked_count": len(inputs.worked),
                    "advance_count": len(inputs.advances),
                    "failing_checks": [
                        c.key.value for c in report.operational_checks if not c.ok
                    ],
                    "submitted_hours": report.financial.submitted_hours,
                },
            )
            return report

    def _fetch(self, period: ReconciliationPeriod, scope: tuple[str, ...]):
        bounds = self._calendar.half_open_utc_range(period.from_date, period.to_date)
        with ThreadPoolExecutor(max_workers=_FETCH_WORKERS) as pool:
            stores_f = pool.submit(self._rows.stores, scope)
            settings_f = pool.submit(self._rows.store_settings, scope)
            scheduled_f = pool.submit(
                self._rows.scheduled_shifts, scope, period.from_date, period.to_date,
            )
            worked_f = pool.submit(
                self._rows.worked_shifts, scope, bounds.start, bounds.end,
            )
            stores = tuple(stores_f.result())
            settings = tuple(settings_f.result())
            scheduled = tuple(scheduled_f.result())
            worked = tuple(worked_f.result())

        employee_ids = sorted(
            {s.employee_id for s in scheduled if s.employee_id is not None}
            | {s.employee_id for s in worked}
        )
        advances = (
            tuple(self._rows.advances(employee_ids, period.from_date, period.to_date))
            if employee_ids else ()
        )
        inputs = ReconciliationInputs(
            scheduled=scheduled,
            worked=worked,
            advances=advances,
            stores=stores,
        )
        return inputs, settings

    def payroll_lines(
        self,
        request: ReconciliationRequest,
        authorized_store_ids: Collection[str],
        *,
        employee_id: str | None = None,
        page: int = 1,
        page_size: int = DEFAULT_PAGE_SIZE,
    ) -> PayrollLinePage:
        """Per-shift payroll listing for the request's period and scope."""
        period = ReconciliationPeriod.of(request.from_date, request.to_date, request.as_of)
        scope = self.resolve_scope(request, authorized_store_ids)
        bounds = self._calendar.half_open_utc_range(period.from_date, period.to_date)
        worked = self._rows.worked_shifts(scope, bounds.start, bounds.end)
        stores = self._rows.stores(scope)
        return build_payroll_lines(
            worked,
            store_names={s.store_id: s.name for s in stores},
            bounds=bounds,
            employee_id=employee_id,
            page=page,
            page_size=page_size,
        )

    def close_shift(self, shift: WorkedShift, ended_at: datetime) -> WorkedShift:
        """Manager force-close under the policy's override ceiling."""
        return force_close(shift, ended_at, self._policy.override_ceiling_hours)

    def approve_override(
        self,
        shift: WorkedShift,
        note: str,
        at: datetime | None = None,
    ) -> WorkedShift:
        """Manager approval of an over-ceiling shift; ``at`` defaults to now."""
        return approve_override(shift, note, at or datetime.now(timezone.utc))

    def review_manual_close(self, shift: WorkedShift, at: datetime | None = None) -> WorkedShift:
        return review_manual_close(shift, at or datetime.now(timezone.utc))

    def update_advance_status(
        self,
        advance: PayrollAdvance,
        status: AdvanceStatus | str,
    ) -> PayrollAdvance:
        return set_advance_status(advance, status)
