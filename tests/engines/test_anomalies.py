"""
Tests for the operational checks (payroll_engines.anomalies).

Covers:
- Unapproved shifts: manual close pending review, override pending
- Open shifts
- Unexplained variance: threshold, override note, planned-start drift
- Detail capping and status derivation
"""

from datetime import date, datetime, timezone
from decimal import Decimal

import pytest

from payroll_engines.anomalies import (
    REASON_MANUAL_CLOSE,
    REASON_OVERRIDE,
    AnomalyDetector,
    measure_drift,
    overall_status,
    unapproved_reason,
)
from payroll_engines.coverage import CoverageMatcher, CoverageResult
from payroll_engines.reconciliation_types import CheckKey, OperationalCheck, ReconciliationStatus

DAY = date(2026, 2, 10)
REVIEWED = datetime(2026, 2, 11, 15, 0, tzinfo=timezone.utc)
TWO = Decimal("2")


def _run(calendar, worked, scheduled=(), threshold=TWO, **kwargs):
    detector = AnomalyDetector(calendar, **kwargs)
    coverage = CoverageMatcher(calendar).match(scheduled=list(scheduled), worked=list(worked))
    return detector.run(
        worked=list(worked),
        scheduled=list(scheduled),
        coverage=coverage,
        drift_threshold_hours=threshold,
    )


def _check(findings, key: CheckKey) -> OperationalCheck:
    return next(c for c in findings.checks if c.key == key)


# ---------------------------------------------------------------------------
# Unapproved shifts
# ---------------------------------------------------------------------------


class TestUnapprovedShifts:

    def test_manual_close_pending_review(self, make_worked):
        shift = make_worked(DAY, manually_closed=True)
        assert unapproved_reason(shift) == REASON_MANUAL_CLOSE

    def test_reviewed_manual_close_is_fine(self, make_worked):
        shift = make_worked(DAY, manually_closed=True, manual_close_reviewed_at=REVIEWED)
        assert unapproved_reason(shift) is None

    def test_override_pending_on_ended_shift(self, make_worked):
        shift = make_worked(DAY, requires_override=True)
        assert unapproved_reason(shift) == REASON_OVERRIDE

    def test_override_on_open_shift_is_not_unapproved(self, make_worked):
        shift = make_worked(DAY, end=None, requires_override=True)
        assert unapproved_reason(shift) is None

    def test_approved_override_is_fine(self, make_worked):
        shift = make_worked(DAY, requires_override=True, override_approved_at=REVIEWED)
        assert unapproved_reason(shift) is None

    def test_check_details(self, calendar, make_worked):
        shift = make_worked(DAY, manually_closed=True, employee_name="Ana Ruiz")
        findings = _run(calendar, [shift], store_names={"store-1": "Main St"})
        check = _check(findings, CheckKey.UNAPPROVED_SHIFTS)
        assert check.count == 1
        assert check.label == "Unapproved shifts"
        detail = check.details[0]
        assert detail["shift_id"] == shift.id
        assert detail["employee"] == "Ana Ruiz"
        assert detail["store"] == "Main St"
        assert detail["reason"] == REASON_MANUAL_CLOSE

    def test_unknown_names_fall_back(self, calendar, make_worked):
        findings = _run(calendar, [make_worked(DAY, manually_closed=True)])
        detail = _check(findings, CheckKey.UNAPPROVED_SHIFTS).details[0]
        assert detail["employee"] == "Unknown"
        assert detail["store"] == "Unknown"


# ---------------------------------------------------------------------------
# Open shifts
# ---------------------------------------------------------------------------


class TestOpenShifts:

    def test_open_shift_flagged(self, calendar, make_worked):
        findings = _run(calendar, [make_worked(DAY, end=None), make_worked(DAY)])
        check = _check(findings, CheckKey.OPEN_SHIFTS)
        assert check.count == 1
        assert check.label == "Clock out violations (open shifts)"

    def test_details_capped_count_is_not(self, calendar, make_worked):
        shifts = [make_worked(DAY, end=None) for _ in range(12)]
        findings = _run(calendar, shifts, detail_limit=10)
        check = _check(findings, CheckKey.OPEN_SHIFTS)
        assert check.count == 12
        assert len(check.details) == 10


# ---------------------------------------------------------------------------
# Unexplained variance
# ---------------------------------------------------------------------------


class TestUnexplainedVariance:

    def test_drift_above_threshold_flagged(self, calendar, make_slot, make_worked):
        slot = make_slot(DAY, "08:00", "14:00")
        shift = make_worked(DAY, "08:00", "16:30", scheduled_shift_id=slot.id)
        check = _check(_run(calendar, [shift], [slot]), CheckKey.UNEXPLAINED_VARIANCE)
        assert check.count == 1
        assert check.details[0]["drift_hours"] == Decimal("2.50")
        assert check.details[0]["scheduled_start"] == "08:00"
        assert check.details[0]["scheduled_end"] == "14:00"
        assert check.details[0]["shift_date"] == "2026-02-10"

    def test_drift_equal_to_threshold_flagged(self, calendar, make_slot, make_worked):
        slot = make_slot(DAY, "08:00", "14:00")
        shift = make_worked(DAY, "08:00", "16:00", scheduled_shift_id=slot.id)
        check = _check(_run(calendar, [shift], [slot]), CheckKey.UNEXPLAINED_VARIANCE)
        assert check.count == 1

    def test_drift_below_threshold_ok(self, calendar, make_slot, make_worked):
        slot = make_slot(DAY, "08:00", "14:00")
        shift = make_worked(DAY, "08:00", "15:59", scheduled_shift_id=slot.id)
        check = _check(_run(calendar, [shift], [slot]), CheckKey.UNEXPLAINED_VARIANCE)
        assert check.ok

    def test_short_shift_drift_counts(self, calendar, make_slot, make_worked):
        slot = make_slot(DAY, "08:00", "14:00")
        shift = make_worked(DAY, "08:00", "11:00", scheduled_shift_id=slot.id)
        check = _check(_run(calendar, [shift], [slot]), CheckKey.UNEXPLAINED_VARIANCE)
        assert check.count == 1

    def test_override_note_explains_drift(self, calendar, make_slot, make_worked):
        slot = make_slot(DAY, "08:00", "14:00")
        shift = make_worked(
            DAY, "08:00", "17:00", scheduled_shift_id=slot.id, override_note="truck late",
        )
        check = _check(_run(calendar, [shift], [slot]), CheckKey.UNEXPLAINED_VARIANCE)
        assert check.ok

    def test_blank_note_does_not_explain(self, calendar, make_slot, make_worked):
        slot = make_slot(DAY, "08:00", "14:00")
        shift = make_worked(DAY, "08:00", "17:00", scheduled_shift_id=slot.id, override_note="  ")
        check = _check(_run(calendar, [shift], [slot]), CheckKey.UNEXPLAINED_VARIANCE)
        assert check.count == 1

    def test_unlinked_shift_never_drifts(self, calendar, make_slot, make_worked):
        slot = make_slot(DAY, "08:00", "14:00")
        shift = make_worked(DAY, "08:00", "20:00")
        check = _check(_run(calendar, [shift], [slot]), CheckKey.UNEXPLAINED_VARIANCE)
        assert check.ok

    def test_drift_measured_from_planned_start(self, make_slot, make_worked):
        slot = make_slot(DAY, "08:00", "14:00")
        late = make_worked(
            DAY, "08:00", "14:00", actual_start="10:30", scheduled_shift_id=slot.id,
        )
        assert measure_drift(late, slot).drift_hours == Decimal("0")

    def test_label_names_threshold(self, calendar):
        check = _check(_run(calendar, [], threshold=Decimal("1.5")), CheckKey.UNEXPLAINED_VARIANCE)
        assert check.label == "Unexplained variances (>= 1.5h drift without override note)"

    def test_clamped_drift_reported_as_data_quality(self, calendar, make_slot, make_worked):
        slot = make_slot(DAY, "08:00", "14:00")
        shift = make_worked(DAY, "08:00", "07:00", scheduled_shift_id=slot.id)
        findings = _run(calendar, [shift], [slot])
        assert len(findings.data_quality) == 1
        notice = findings.data_quality[0]
        assert notice.record_kind == "variance_check"
        assert notice.reason == "negative_duration"
        assert notice.raw_minutes == -60


# ---------------------------------------------------------------------------
# Status
# ---------------------------------------------------------------------------


class TestOverallStatus:

    def _ok_checks(self):
        return [OperationalCheck(key=k, label=k.value, count=0) for k in CheckKey]

    def test_all_clear_is_ok(self):
        assert overall_status(self._ok_checks(), Decimal("2"), TWO) == ReconciliationStatus.OK

    def test_variance_over_threshold(self):
        status = overall_status(self._ok_checks(), Decimal("-2.5"), TWO)
        assert status == ReconciliationStatus.NEEDS_ATTENTION

    def test_any_failing_check(self):
        checks = self._ok_checks()
        checks[2] = OperationalCheck(key=CheckKey.OPEN_SHIFTS, label="open", count=1)
        assert overall_status(checks, Decimal("0"), TWO) == ReconciliationStatus.NEEDS_ATTENTION

    def test_no_findings_on_empty_input(self, calendar):
        findings = _run(calendar, [])
        assert findings.all_ok
        assert [c.key for c in findings.checks] == list(CheckKey)
        assert isinstance(CoverageResult().missing, tuple)
