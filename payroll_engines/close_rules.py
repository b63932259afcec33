"""
payroll_engines.close_rules -- Clock-out, force-close and approval rules.

A shift longer than the override ceiling (13 hours by default) cannot be
paid until a manager approves it.  The same rule applies when an employee
clocks out and when a manager force-closes a forgotten shift.  A
force-closed shift stays pending until a manager reviews it.

Every function here returns a new record; nothing is mutated in place.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timedelta, timezone
from decimal import Decimal

from payroll_engines.rounding import elapsed_minutes
from payroll_kernel.domain.records import AdvanceStatus, PayrollAdvance, WorkedShift
from payroll_kernel.logging_config import get_logger

logger = get_logger("engines.close_rules")

DEFAULT_OVERRIDE_CEILING_HOURS = Decimal("13")

_MICROSECONDS_PER_HOUR = 3_600_000_000


def requires_duration_override(
    start: datetime,
    end: datetime,
    ceiling_hours: Decimal = DEFAULT_OVERRIDE_CEILING_HOURS,
) -> bool:
    """True when the shift runs strictly longer than the ceiling."""
    delta = end.astimezone(timezone.utc) - start.astimezone(timezone.utc)
    micro = delta // timedelta(microseconds=1)
    return Decimal(micro) > ceiling_hours * _MICROSECONDS_PER_HOUR


def force_close(
    shift: WorkedShift,
    ended_at: datetime,
    ceiling_hours: Decimal = DEFAULT_OVERRIDE_CEILING_HOURS,
) -> WorkedShift:
    """Manager close of an open shift.

    The closed copy is marked manually closed (pending review) and, when
    it exceeds the ceiling, requires an override.  An existing override
    flag is never cleared.
    """
    if not shift.is_open:
        raise ValueError(f"Shift {shift.id} is already closed")

    over_ceiling = requires_duration_override(shift.clock_start, ended_at, ceiling_hours)
    closed = replace(
        shift,
        ended_at=ended_at,
        manually_closed=True,
        requires_override=shift.requires_override or over_ceiling,
    )
    logger.info(
        "shift_force_closed",
        extra={
            "shift_id": shift.id,
            "minutes": elapsed_minutes(shift.clock_start, ended_at, record_id=shift.id).minutes,
            "requires_override": closed.requires_override,
        },
    )
    return closed


def approve_override(shift: WorkedShift, note: str, at: datetime) -> WorkedShift:
    """Manager approval of an over-ceiling shift.

    The note is required and is stored trimmed.  Raises ValueError when
    the note is blank, the shift needs no override, or it is already
    approved.
    """
    note = (note or "").strip()
    if not note:
        raise ValueError("Approval note is required.")
    if not shift.requires_override:
        raise ValueError("Override not required.")
    if shift.override_approved_at is not None:
        raise ValueError("Already approved.")

    approved = replace(shift, override_approved_at=at, override_note=note)
    logger.info(
        "shift_override_approved",
        extra={"shift_id": shift.id, "approved_at": at},
    )
    return approved


def review_manual_close(shift: WorkedShift, at: datetime) -> WorkedShift:
    """Mark a force-closed shift as reviewed by a manager."""
    if not shift.manually_closed:
        raise ValueError("Shift was not manually closed.")
    if shift.manual_close_reviewed_at is not None:
        raise ValueError("Manual close already reviewed.")

    reviewed = replace(shift, manual_close_reviewed_at=at)
    logger.info(
        "shift_manual_close_reviewed",
        extra={"shift_id": shift.id, "reviewed_at": at},
    )
    return reviewed


def set_advance_status(
    advance: PayrollAdvance,
    status: AdvanceStatus | str,
) -> PayrollAdvance:
    """Move an advance to another status.

    Any of pending_verification, verified and voided may follow any
    other.  Raises ValueError on an unknown status.
    """
    try:
        new_status = AdvanceStatus(status)
    except ValueError:
        raise ValueError("Invalid status.") from None

    updated = replace(advance, status=new_status)
    logger.info(
        "advance_status_changed",
        extra={
            "advance_id": advance.id,
            "from_status": advance.status.value,
            "to_status": new_status.value,
        },
    )
    return updated
