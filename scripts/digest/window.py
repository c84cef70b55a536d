"""
Report window and timestamp handling.

The window is one local calendar day, closed on both ends:
00:00:00.000 through 23:59:59.999 in the report timezone. Pipedrive
timestamps (``"2026-10-16 14:05:00"``) are UTC; bare dates
(``"2026-10-16"``) are read as local midnight.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from typing import Any, Optional, Union
from zoneinfo import ZoneInfo

TzLike = Union[str, tzinfo, None]

_UTC_FORMATS = (
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d %H:%M",
    "%Y-%m-%dT%H:%M:%S",
    "%Y-%m-%dT%H:%M:%S.%f",
)


def _zone(tz: TzLike) -> tzinfo:
    if tz is None:
        return timezone.utc
    if isinstance(tz, str):
        return ZoneInfo(tz)
    return tz


def parse_timestamp(value: Any, tz: TzLike = None) -> Optional[datetime]:
    """
    Parse a CRM timestamp into a timezone-aware datetime.

    Returns None for empty or unparseable values instead of raising.
    """
    if value is None or value == "":
        return None
    zone = _zone(tz)
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, date):
        return datetime.combine(value, time.min, tzinfo=zone)
    if not isinstance(value, str):
        return None

    s = value.strip()
    if len(s) == 10:
        try:
            day = datetime.strptime(s, "%Y-%m-%d").date()
        except ValueError:
            return None
        return datetime.combine(day, time.min, tzinfo=zone)

    for fmt in _UTC_FORMATS:
        try:
            return datetime.strptime(s, fmt).replace(tzinfo=timezone.utc)
        except ValueError:
            continue

    try:
        parsed = datetime.fromisoformat(s.replace("Z", "+00:00"))
    except ValueError:
        return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


def in_window(timestamp: Any, start: datetime, end: datetime) -> bool:
    """True iff start <= timestamp <= end. Missing timestamps never match."""
    ts = parse_timestamp(timestamp, start.tzinfo)
    if ts is None:
        return False
    return start <= ts <= end


@dataclass(frozen=True)
class ReportWindow:
    """A closed [start, end] interval covering one local day."""

    start: datetime
    end: datetime

    @property
    def report_date(self) -> date:
        return self.start.date()

    @property
    def start_date(self) -> str:
        return self.start.strftime("%Y-%m-%d")

    @property
    def end_date(self) -> str:
        return self.end.strftime("%Y-%m-%d")

    @property
    def utc_start_date(self) -> str:
        """UTC calendar date of the window start, for filters on UTC timestamps."""
        return self.start.astimezone(timezone.utc).strftime("%Y-%m-%d")

    @property
    def utc_end_date(self) -> str:
        return self.end.astimezone(timezone.utc).strftime("%Y-%m-%d")

    def contains(self, timestamp: Any) -> bool:
        return in_window(timestamp, self.start, self.end)


def day_window(target_date: date, tz: TzLike = None) -> ReportWindow:
    """Window from local midnight to 23:59:59.999 of ``target_date``."""
    zone = _zone(tz)
    start = datetime.combine(target_date, time.min, tzinfo=zone)
    end = datetime.combine(target_date, time(23, 59, 59, 999000), tzinfo=zone)
    return ReportWindow(start=start, end=end)


def yesterday_window(now: Optional[datetime] = None, tz: TzLike = None) -> ReportWindow:
    """Window for the local day before ``now`` (defaults to the current time)."""
    zone = _zone(tz)
    if now is None:
        now = datetime.now(zone)
    elif now.tzinfo is None:
        now = now.replace(tzinfo=zone)
    today = now.astimezone(zone).date()
    return day_window(today - timedelta(days=1), zone)
