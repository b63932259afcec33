"""
payroll_engines.civil_time -- Business-date normalizer for the operating region.

Responsibility:
    Convert between UTC instants and the region's civil "business date"
    (a calendar date with no time of day), and build half-open UTC ranges
    covering whole business dates.  This module is the only place in the
    code base that performs time-zone offset math.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    Uses the standard library IANA database (``zoneinfo``); the offset is
    resolved for each date, so daylight-saving transitions are honoured.

Invariants enforced:
    - Business dates are always derived from instants through
      ``business_date_of``; string dates are accepted only through
      ``parse_business_date`` (strict ``YYYY-MM-DD``).
    - ``half_open_utc_range(d, d)`` covers exactly the instants whose
      business date is ``d``.
    - Naive datetimes are rejected rather than guessed.

Failure modes:
    - InvalidDateFormatError for malformed date strings.
    - InvalidDateRangeError when a range ends before it starts.
    - ZoneInfoNotFoundError for an unknown region name.

Usage:
    from payroll_engines.civil_time import CivilCalendar

    calendar = CivilCalendar("America/Chicago")
    start, end = calendar.half_open_utc_range(date(2026, 2, 1), date(2026, 2, 14))
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from typing import NamedTuple
from zoneinfo import ZoneInfo

from payroll_kernel.exceptions import InvalidDateFormatError, InvalidDateRangeError

DEFAULT_REGION_TIMEZONE = "America/Chicago"

_DATE_PATTERN = re.compile(r"[0-9]{4}-[0-9]{2}-[0-9]{2}")


class UtcRange(NamedTuple):
    """Half-open instant range ``[start, end)``, both in UTC."""

    start: datetime
    end: datetime

    def contains(self, instant: datetime) -> bool:
        return self.start <= instant < self.end


def parse_business_date(value: str | date, field: str = "date") -> date:
    """Parse a strict ``YYYY-MM-DD`` string; ``date`` values pass through."""
    if isinstance(value, datetime):
        raise InvalidDateFormatError(value, field)
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not _DATE_PATTERN.fullmatch(value):
        raise InvalidDateFormatError(value, field)
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise InvalidDateFormatError(value, field) from None


def next_business_date(day: date) -> date:
    """Calendar increment by one day, independent of any offset."""
    return day + timedelta(days=1)


def _require_aware(instant: datetime) -> None:
    if instant.utcoffset() is None:
        raise ValueError(f"instant must be timezone-aware: {instant!r}")


@dataclass(frozen=True)
class CivilCalendar:
    """The operating region's civil calendar.

    Contract:
        Every conversion resolves the zone's offset for the specific
        instant or date involved.

    Non-goals:
        Does NOT handle more than one region per reconciliation run.
    """

    zone_name: str = DEFAULT_REGION_TIMEZONE

    @property
    def zone(self) -> ZoneInfo:
        return ZoneInfo(self.zone_name)

    def business_date_of(self, instant: datetime) -> date:
        """Project an instant into the region and keep the date part."""
        _require_aware(instant)
        return instant.astimezone(self.zone).date()

    def start_of_business_date_utc(self, day: date) -> datetime:
        """UTC instant of local midnight on ``day``."""
        local_midnight = datetime.combine(day, time.min, tzinfo=self.zone)
        return local_midnight.astimezone(timezone.utc)

    def half_open_utc_range(self, from_date: date, to_date_inclusive: date) -> UtcRange:
        """``[from 00:00 local, to + 1 day 00:00 local)`` as UTC instants."""
        if to_date_inclusive < from_date:
            raise InvalidDateRangeError(
                from_date.isoformat(), to_date_inclusive.isoformat(),
            )
        return UtcRange(
            start=self.start_of_business_date_utc(from_date),
            end=self.start_of_business_date_utc(next_business_date(to_date_inclusive)),
        )

    def local_instant(self, day: date, clock: time) -> datetime:
        """Wall-clock time on a business date, as an aware UTC instant."""
        return datetime.combine(day, clock, tzinfo=self.zone).astimezone(timezone.utc)


_DEFAULT_CALENDAR = CivilCalendar()


def business_date_of(instant: datetime, calendar: CivilCalendar = _DEFAULT_CALENDAR) -> date:
    return calendar.business_date_of(instant)


def start_of_business_date_utc(day: date, calendar: CivilCalendar = _DEFAULT_CALENDAR) -> datetime:
    return calendar.start_of_business_date_utc(day)


def half_open_utc_range(
    from_date: date,
    to_date_inclusive: date,
    calendar: CivilCalendar = _DEFAULT_CALENDAR,
) -> UtcRange:
    return calendar.half_open_utc_range(from_date, to_date_inclusive)
