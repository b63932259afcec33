"""
Module: payroll_engines
Responsibility:
    Package entrypoint that re-exports the public symbols of the pure
    payroll reconciliation engines.  This is the canonical import surface
    for the service layer.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import payroll_kernel (and sibling engine modules).
    MUST NOT import payroll_services or payroll_config.

Invariants enforced:
    - Purity: engines NEVER call ``datetime.now()`` or ``date.today()``.
      Period bounds and as-of dates are passed in explicitly.
    - Decimal-only arithmetic for hours; floats are forbidden.
    - Determinism: identical inputs always produce identical outputs.
    - Time-zone math happens only in ``payroll_engines.civil_time``.

Audit relevance:
    Engine invocations are traced via the ``@traced_engine`` decorator
    (see ``payroll_engines.tracer``), emitting PAYROLL_ENGINE_TRACE log
    records with engine name, version, input fingerprint, and duration.

Usage:
    from payroll_engines import (
        CivilCalendar,
        PayrollReconciler,
        ReconciliationPeriod,
        StoreBucketClassifier,
    )
"""

from payroll_kernel.logging_config import get_logger

logger = get_logger("engines")

from payroll_engines.aggregation import (
    DEFAULT_WARN_HOURS,
    PayrollReconciler,
    ReconciliationInputs,
    ReconciliationPeriod,
    build_warnings,
    resolve_thresholds,
)
from payroll_engines.anomalies import (
    AnomalyDetector,
    AnomalyFindings,
    ShiftDrift,
    measure_drift,
    overall_status,
    unapproved_reason,
)
from payroll_engines.buckets import DEFAULT_BUCKET_PATTERNS, StoreBucketClassifier
from payroll_engines.civil_time import (
    DEFAULT_REGION_TIMEZONE,
    CivilCalendar,
    UtcRange,
    business_date_of,
    half_open_utc_range,
    next_business_date,
    parse_business_date,
    start_of_business_date_utc,
)
from payroll_engines.close_rules import (
    DEFAULT_OVERRIDE_CEILING_HOURS,
    approve_override,
    force_close,
    requires_duration_override,
    review_manual_close,
    set_advance_status,
)
from payroll_engines.coverage import CoverageMatcher, CoverageResult, is_compatible
from payroll_engines.payroll_lines import PayrollLine, PayrollLinePage, build_payroll_lines
from payroll_engines.reconciliation_types import (
    BucketTotals,
    CheckKey,
    DataQualityNotice,
    EmployeeSummary,
    FinancialReconciliation,
    OperationalCheck,
    ReconciliationReport,
    ReconciliationStatus,
    ReconciliationThresholds,
    StaffingReconciliation,
)
from payroll_engines.rounding import (
    DurationMeasurement,
    elapsed_minutes,
    round_to_payroll_hours,
    scheduled_minutes,
)

__all__ = [
    # Normalizer
    "DEFAULT_REGION_TIMEZONE",
    "CivilCalendar",
    "UtcRange",
    "business_date_of",
    "half_open_utc_range",
    "next_business_date",
    "parse_business_date",
    "start_of_business_date_utc",
    # Rounder
    "DurationMeasurement",
    "elapsed_minutes",
    "round_to_payroll_hours",
    "scheduled_minutes",
    # Coverage
    "CoverageMatcher",
    "CoverageResult",
    "is_compatible",
    # Anomalies
    "AnomalyDetector",
    "AnomalyFindings",
    "ShiftDrift",
    "measure_drift",
    "overall_status",
    "unapproved_reason",
    # Aggregation
    "DEFAULT_WARN_HOURS",
    "PayrollReconciler",
    "ReconciliationInputs",
    "ReconciliationPeriod",
    "build_warnings",
    "resolve_thresholds",
    # Buckets
    "DEFAULT_BUCKET_PATTERNS",
    "StoreBucketClassifier",
    # Close rules
    "DEFAULT_OVERRIDE_CEILING_HOURS",
    "approve_override",
    "force_close",
    "requires_duration_override",
    "review_manual_close",
    "set_advance_status",
    # Payroll lines
    "PayrollLine",
    "PayrollLinePage",
    "build_payroll_lines",
    # Result types
    "BucketTotals",
    "CheckKey",
    "DataQualityNotice",
    "EmployeeSummary",
    "FinancialReconciliation",
    "OperationalCheck",
    "ReconciliationReport",
    "ReconciliationStatus",
    "ReconciliationThresholds",
    "StaffingReconciliation",
]
