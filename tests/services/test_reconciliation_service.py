"""
Tests for PayrollReconciliationService.

Covers:
- Request validation order and store scoping
- Row-source filters (published, live, verified, half-open instant range)
- Threshold resolution from store settings and policy defaults
- Completion logging inside a bound run context
- Payroll lines and manager actions on shifts and advances
"""

import logging
from dataclasses import replace
from datetime import date, datetime, timezone
from decimal import Decimal

import pytest

from payroll_config import get_active_policy
from payroll_engines.reconciliation_types import CheckKey, ReconciliationStatus
from payroll_kernel.domain.records import (
    AdvanceStatus,
    ScheduleStatus,
    Store,
    StoreReconciliationSettings,
)
from payroll_kernel.exceptions import (
    InvalidDateFormatError,
    InvalidDateRangeError,
    InvalidStoreSelectionError,
    NoStoresInScopeError,
)
from payroll_services import (
    InMemoryRowSource,
    PayrollReconciliationService,
    ReconciliationRequest,
)

DAY = date(2026, 2, 10)
STORES = (Store("store-1", "Main St LV1"), Store("store-2", "Airport LV2"))
APPROVED_AT = datetime(2026, 2, 11, 15, 0, tzinfo=timezone.utc)


class _CountingSource(InMemoryRowSource):
    """Records every fetch so tests can assert nothing ran."""

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.calls: list[str] = []

    def stores(self, store_ids):
        self.calls.append("stores")
        return super().stores(store_ids)

    def store_settings(self, store_ids):
        self.calls.append("store_settings")
        return super().store_settings(store_ids)

    def scheduled_shifts(self, store_ids, from_date, to_date):
        self.calls.append("scheduled_shifts")
        return super().scheduled_shifts(store_ids, from_date, to_date)

    def worked_shifts(self, store_ids, start, end_exclusive):
        self.calls.append("worked_shifts")
        return super().worked_shifts(store_ids, start, end_exclusive)

    def advances(self, employee_ids, from_date, to_date):
        self.calls.append("advances")
        return super().advances(employee_ids, from_date, to_date)


def _service(**rows) -> tuple[PayrollReconciliationService, _CountingSource]:
    rows.setdefault("stores", STORES)
    source = _CountingSource(**rows)
    return PayrollReconciliationService(source, get_active_policy()), source


def _request(**overrides) -> ReconciliationRequest:
    values = {"from_date": "2026-02-01", "to_date": "2026-02-14"}
    values.update(overrides)
    return ReconciliationRequest(**values)


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


class TestValidation:

    def test_bad_format_before_anything(self):
        service, source = _service()
        with pytest.raises(InvalidDateFormatError):
            service.reconcile(_request(from_date="02/01/2026"), [])
        assert source.calls == []

    def test_inverted_range(self):
        service, source = _service()
        with pytest.raises(InvalidDateRangeError):
            service.reconcile(_request(from_date="2026-02-14", to_date="2026-02-01"), ["store-1"])
        assert source.calls == []

    def test_as_of_outside_range(self):
        service, _ = _service()
        with pytest.raises(InvalidDateRangeError) as exc_info:
            service.reconcile(_request(as_of="2026-03-01"), ["store-1"])
        assert str(exc_info.value) == (
            "as_of (2026-03-01) must be within the selected date range "
            "(2026-02-01 to 2026-02-14)"
        )

    def test_range_checked_before_scope(self):
        service, _ = _service()
        with pytest.raises(InvalidDateRangeError):
            service.reconcile(_request(from_date="2026-02-14", to_date="2026-02-01"), [])

    def test_no_stores(self):
        service, source = _service()
        with pytest.raises(NoStoresInScopeError) as exc_info:
            service.reconcile(_request(), [])
        assert str(exc_info.value) == "No managed stores."
        assert source.calls == []

    def test_store_outside_scope(self):
        service, source = _service()
        with pytest.raises(InvalidStoreSelectionError) as exc_info:
            service.reconcile(_request(store_id="store-9"), ["store-1", "store-2"])
        assert exc_info.value.store_id == "store-9"
        assert source.calls == []


# ---------------------------------------------------------------------------
# Fetch and scope
# ---------------------------------------------------------------------------


class TestRun:

    def test_end_to_end(self, make_slot, make_worked):
        slot = make_slot(DAY, "08:00", "14:00", employee_name="Ana Ruiz")
        shift = make_worked(DAY, "08:05", "14:50", scheduled_shift_id=slot.id)
        service, source = _service(scheduled=[slot], worked=[shift])

        report = service.reconcile(_request(), ["store-1"])

        assert report.status == ReconciliationStatus.OK
        assert report.employee("emp-1").worked_hours == Decimal("7")
        assert report.staffing.open_totals.bucket_hours("lv1") == Decimal("6")
        assert sorted(source.calls) == [
            "advances", "scheduled_shifts", "store_settings", "stores", "worked_shifts",
        ]
        assert source.calls[-1] == "advances"

    def test_explicit_store_limits_scope(self, make_slot):
        scheduled = [
            make_slot(DAY, store_id="store-1"),
            make_slot(DAY, store_id="store-2", employee_id="emp-2"),
        ]
        service, _ = _service(scheduled=scheduled)
        report = service.reconcile(_request(store_id="store-2"), ["store-1", "store-2"])
        assert [e.employee_id for e in report.employees] == ["emp-2"]

    def test_unauthorized_store_rows_never_seen(self, make_worked):
        service, _ = _service(worked=[make_worked(DAY, end=None, store_id="store-2")])
        report = service.reconcile(_request(), ["store-1"])
        assert report.check(CheckKey.OPEN_SHIFTS).ok

    def test_row_filters(self, make_slot, make_worked, make_advance):
        service, _ = _service(
            scheduled=[make_slot(DAY, status=ScheduleStatus.DRAFT)],
            worked=[
                make_worked(DAY, "08:00", "12:00"),
                make_worked(DAY, "13:00", "15:00", soft_deleted=True),
            ],
            advances=[
                make_advance(DAY, "1"),
                make_advance(DAY, "5", status=AdvanceStatus.PENDING_VERIFICATION),
            ],
        )
        row = service.reconcile(_request(), ["store-1"]).employee("emp-1")
        assert row.scheduled_hours == Decimal("0")
        assert row.worked_hours == Decimal("4")
        assert row.advance_hours == Decimal("1")

    def test_late_night_shift_on_last_day_included(self, make_worked):
        # 23:30 local on the 14th is 05:30 UTC on the 15th
        shift = make_worked(date(2026, 2, 14), "23:30", "23:59")
        service, _ = _service(worked=[shift])
        report = service.reconcile(_request(), ["store-1"])
        assert report.employee("emp-1").worked_hours == Decimal("0.5")

    def test_early_morning_after_last_day_excluded(self, make_worked):
        shift = make_worked(date(2026, 2, 15), "00:10", "06:00")
        service, _ = _service(worked=[shift])
        assert service.reconcile(_request(), ["store-1"]).employees == ()


# ---------------------------------------------------------------------------
# Thresholds
# ---------------------------------------------------------------------------


class TestThresholds:

    def test_policy_default_without_settings(self):
        service, _ = _service()
        report = service.reconcile(_request(), ["store-1"])
        assert report.thresholds.variance_warn_hours == Decimal("2")
        assert report.thresholds.shift_drift_warn_hours == Decimal("2")

    def test_strictest_in_scope_store(self):
        settings = [
            StoreReconciliationSettings("store-1", Decimal("3"), None),
            StoreReconciliationSettings("store-2", Decimal("1"), Decimal("0.5")),
        ]
        service, _ = _service(settings=settings)
        report = service.reconcile(_request(), ["store-1", "store-2"])
        assert report.thresholds.variance_warn_hours == Decimal("1")
        assert report.thresholds.shift_drift_warn_hours == Decimal("0.5")

    def test_out_of_scope_settings_ignored(self):
        settings = [StoreReconciliationSettings("store-2", Decimal("1"), Decimal("1"))]
        service, _ = _service(settings=settings)
        report = service.reconcile(_request(), ["store-1"])
        assert report.thresholds.variance_warn_hours == Decimal("2")

    def test_policy_defaults_flow_through(self):
        policy = replace(get_active_policy(), default_variance_warn_hours=Decimal("5"))
        service = PayrollReconciliationService(InMemoryRowSource(stores=STORES), policy)
        report = service.reconcile(_request(), ["store-1"])
        assert report.thresholds.variance_warn_hours == Decimal("5")


# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------


class TestLogging:

    def test_completion_logged_with_run_id(self, caplog):
        service, _ = _service()
        with caplog.at_level(logging.INFO, logger="payroll_kernel"):
            report = service.reconcile(_request(), ["store-1"])

        record = next(
            r for r in caplog.records if r.getMessage() == "payroll_reconciliation_completed"
        )
        assert record.status == report.status.value
        assert record.employee_count == 0

    def test_exceptions_propagate_unchanged(self):
        class _Broken(InMemoryRowSource):
            def worked_shifts(self, store_ids, start, end_exclusive):
                raise ConnectionError("row store unavailable")

        service = PayrollReconciliationService(_Broken(stores=STORES), get_active_policy())
        with pytest.raises(ConnectionError, match="row store unavailable"):
            service.reconcile(_request(), ["store-1"])


# ---------------------------------------------------------------------------
# Payroll lines and force close
# ---------------------------------------------------------------------------


class TestPayrollLines:

    def test_lines_scoped_to_period_and_stores(self, make_worked):
        worked = [
            make_worked(DAY, "08:00", "13:25", shift_id="in"),
            make_worked(date(2026, 2, 20), shift_id="later"),
            make_worked(DAY, store_id="store-2", shift_id="other-store"),
        ]
        service, _ = _service(worked=worked)
        page = service.payroll_lines(_request(), ["store-1"])
        assert [r.shift_id for r in page.rows] == ["in"]
        assert page.rows[0].rounded_hours == Decimal("5.5")
        assert page.rows[0].store_name == "Main St LV1"

    def test_lines_validate_scope(self):
        service, _ = _service()
        with pytest.raises(NoStoresInScopeError):
            service.payroll_lines(_request(), [])

    def test_lines_match_row_source_period_key(self, make_worked, local):
        before = replace(
            make_worked(
                date(2026, 1, 31), "23:00", "06:00", end_day=date(2026, 2, 1), shift_id="before",
            ),
            actual_start=local(date(2026, 2, 1), "00:30"),
        )
        last_night = replace(
            make_worked(
                date(2026, 2, 14), "23:00", "06:00", end_day=date(2026, 2, 15), shift_id="last",
            ),
            actual_start=local(date(2026, 2, 15), "00:15"),
        )
        service, _ = _service(worked=[before, last_night])
        page = service.payroll_lines(_request(), ["store-1"])
        assert [r.shift_id for r in page.rows] == ["last"]


class TestCloseShift:

    def test_policy_ceiling_applies(self, make_worked, local):
        service, _ = _service()
        shift = make_worked(DAY, "06:00", None)
        assert not service.close_shift(shift, local(DAY, "19:00")).requires_override
        assert service.close_shift(shift, local(DAY, "19:30")).requires_override

    def test_custom_ceiling(self, make_worked, local):
        policy = replace(get_active_policy(), override_ceiling_hours=Decimal("8"))
        service = PayrollReconciliationService(InMemoryRowSource(stores=STORES), policy)
        closed = service.close_shift(make_worked(DAY, "06:00", None), local(DAY, "15:00"))
        assert closed.requires_override
        assert closed.manually_closed


class TestManagerActions:

    def test_approved_override_clears_unapproved_check(self, make_worked):
        shift = make_worked(DAY, "06:00", "20:00", requires_override=True)
        service, _ = _service(worked=[shift])
        report = service.reconcile(_request(), ["store-1"])
        assert report.check(CheckKey.UNAPPROVED_SHIFTS).count == 1

        approved = service.approve_override(shift, "inventory night", APPROVED_AT)
        service, _ = _service(worked=[approved])
        report = service.reconcile(_request(), ["store-1"])
        assert report.check(CheckKey.UNAPPROVED_SHIFTS).ok
        assert approved.override_note == "inventory night"

    def test_approval_defaults_to_now(self, make_worked):
        service, _ = _service()
        shift = make_worked(DAY, "06:00", "20:00", requires_override=True)
        approved = service.approve_override(shift, "ok")
        assert approved.override_approved_at.tzinfo is not None

    def test_approval_rejections_propagate(self, make_worked):
        service, _ = _service()
        with pytest.raises(ValueError, match="Override not required."):
            service.approve_override(make_worked(DAY), "ok", APPROVED_AT)

    def test_reviewed_manual_close_clears_unapproved_check(self, make_worked, local):
        service, _ = _service()
        closed = service.close_shift(make_worked(DAY, "08:00", None), local(DAY, "15:00"))
        reviewed = service.review_manual_close(closed, APPROVED_AT)
        service, _ = _service(worked=[reviewed])
        assert service.reconcile(_request(), ["store-1"]).check(CheckKey.UNAPPROVED_SHIFTS).ok

    def test_verified_advance_enters_submit_hours(self, make_worked, make_advance):
        pending = make_advance(DAY, "3", status=AdvanceStatus.PENDING_VERIFICATION)
        worked = [make_worked(DAY, "08:00", "14:00")]
        service, _ = _service(worked=worked, advances=[pending])
        assert service.reconcile(_request(), ["store-1"]).financial.advance_hours == Decimal("0")

        verified = service.update_advance_status(pending, "verified")
        service, _ = _service(worked=worked, advances=[verified])
        assert service.reconcile(_request(), ["store-1"]).financial.advance_hours == Decimal("3")

    def test_unknown_advance_status_rejected(self, make_advance):
        service, _ = _service()
        with pytest.raises(ValueError, match="Invalid status."):
            service.update_advance_status(make_advance(DAY), "paid")
