"""
payroll_services.report_text -- Chat-ready payroll summary.

Formats an already computed ``ReconciliationReport`` as the short text
managers paste into the payroll group chat.  Every number is read from
the report; nothing here recomputes a total.

Example output::

    LV1&LV2 Hours:

    Ana Ruiz: 20 - 4 (advance) = 16
    Ben Cole: 7

    Total hours: 23

    Total hours open:
    LV1: 14
    LV2: 10.5
    Total: 24.5
"""

from __future__ import annotations

from decimal import Decimal

from payroll_engines.reconciliation_types import ReconciliationReport


def format_hours(value: Decimal) -> str:
    """Render hours without trailing zeros (``6``, ``5.5``)."""
    if value == 0:
        return "0"
    return format(value.normalize(), "f")


def render_report_text(report: ReconciliationReport, *, title: str | None = None) -> str:
    open_totals = report.staffing.open_totals
    labels = list(open_totals.hours_by_bucket)
    if title is None:
        title = f"{'&'.join(label.upper() for label in labels)} Hours:" if labels else "Hours:"

    lines = [title, ""]
    for row in report.employees:
        if row.advance_hours > 0:
            lines.append(
                f"{row.display_name}: {format_hours(row.gross_hours)} - "
                f"{format_hours(row.advance_hours)} (advance) = {format_hours(row.submit_hours)}"
            )
        else:
            lines.append(f"{row.display_name}: {format_hours(row.submit_hours)}")

    lines += [
        "",
        f"Total hours: {format_hours(report.financial.submitted_hours)}",
        "",
        "Total hours open:",
    ]
    lines += [f"{label.upper()}: {format_hours(open_totals.bucket_hours(label))}" for label in labels]
    lines.append(f"Total: {format_hours(open_totals.total_hours)}")
    return "\n".join(lines)
