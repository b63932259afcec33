"""
payroll_engines.rounding -- Payroll duration rounding.

Responsibility:
    Turn elapsed minutes into payable hours under the store payroll
    policy, and measure elapsed minutes between instants or between
    scheduled wall-clock times.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - Remainder under 20 minutes rounds down, over 40 rounds up to the
      next hour, 20 through 40 inclusive becomes a half hour.
    - Decimal-only results; never float.
    - Elapsed time is measured between UTC instants, so a DST change
      inside a shift never adds or removes an hour.
    - Negative or unmeasurable durations are clamped to zero and marked
      on the returned measurement so callers can report them.

Failure modes:
    - ``round_to_payroll_hours`` raises ValueError on negative minutes;
      callers clamp through ``elapsed_minutes`` first.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, time, timedelta, timezone
from decimal import Decimal

from payroll_kernel.logging_config import get_logger

logger = get_logger("engines.rounding")

MINUTES_PER_HOUR = 60
MINUTES_PER_DAY = 24 * MINUTES_PER_HOUR
ROUND_DOWN_BELOW_MINUTES = 20
ROUND_UP_ABOVE_MINUTES = 40

_HALF_HOUR = Decimal("0.5")


def round_to_payroll_hours(minutes: int) -> Decimal:
    """Round whole minutes to payroll hours (0, 0.5 or 1 added to the hours)."""
    if minutes < 0:
        raise ValueError(f"minutes must be non-negative, got {minutes}")
    whole, remainder = divmod(minutes, MINUTES_PER_HOUR)
    if remainder < ROUND_DOWN_BELOW_MINUTES:
        return Decimal(whole)
    if remainder > ROUND_UP_ABOVE_MINUTES:
        return Decimal(whole + 1)
    return Decimal(whole) + _HALF_HOUR


@dataclass(frozen=True)
class DurationMeasurement:
    """Whole minutes between two instants, after the zero clamp."""

    minutes: int
    raw_minutes: int | None = None
    clamp_reason: str | None = None

    @property
    def clamped(self) -> bool:
        return self.clamp_reason is not None

    @property
    def hours(self) -> Decimal:
        return round_to_payroll_hours(self.minutes)


def _round_half_up_minutes(delta: timedelta) -> int:
    # Half a minute rounds toward +infinity
    micro = delta // timedelta(microseconds=1)
    return (micro + 30_000_000) // 60_000_000


def elapsed_minutes(
    start: datetime | None,
    end: datetime | None,
    *,
    record_id: str | None = None,
) -> DurationMeasurement:
    """Minutes from ``start`` to ``end``, never negative.

    A missing instant or an end before the start yields zero minutes and a
    clamp reason, and logs a ``payroll_duration_clamped`` warning.
    """
    if start is None or end is None:
        logger.warning(
            "payroll_duration_clamped",
            extra={"record_id": record_id, "reason": "missing_instant"},
        )
        return DurationMeasurement(minutes=0, clamp_reason="missing_instant")

    raw = _round_half_up_minutes(
        end.astimezone(timezone.utc) - start.astimezone(timezone.utc)
    )
    if raw < 0:
        logger.warning(
            "payroll_duration_clamped",
            extra={
                "record_id": record_id,
                "reason": "negative_duration",
                "raw_minutes": raw,
            },
        )
        return DurationMeasurement(
            minutes=0, raw_minutes=raw, clamp_reason="negative_duration",
        )
    return DurationMeasurement(minutes=raw, raw_minutes=raw)


def scheduled_minutes(start: time, end: time) -> int:
    """Length of a scheduled slot; an end before the start wraps past midnight."""
    start_min = start.hour * MINUTES_PER_HOUR + start.minute
    end_min = end.hour * MINUTES_PER_HOUR + end.minute
    if end_min >= start_min:
        return end_min - start_min
    return (MINUTES_PER_DAY - start_min) + end_min
