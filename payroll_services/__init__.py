"""
payroll_services -- Orchestration over the payroll engines.

Architecture position:
    Services -- the only layer that talks to a ``RowSource`` and reads
    the reconciliation policy.  Engines below it stay pure.
"""

from payroll_services.reconciliation_service import (
    PayrollReconciliationService,
    ReconciliationRequest,
)
from payroll_services.report_text import format_hours, render_report_text
from payroll_services.row_source import InMemoryRowSource, RowSource

__all__ = [
    "InMemoryRowSource",
    "PayrollReconciliationService",
    "ReconciliationRequest",
    "RowSource",
    "format_hours",
    "render_report_text",
]
