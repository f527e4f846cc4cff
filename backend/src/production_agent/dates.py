"""Resolve relative and absolute date expressions into inclusive ranges."""
from __future__ import annotations

import calendar
import re
from collections.abc import Callable
from datetime import datetime, time, timedelta, timezone, tzinfo
from zoneinfo import ZoneInfo

from .models import DateRange

RELATIVE_PATTERN = re.compile(r"\b(today|yesterday|this week|last week|this month|last month)\b", re.IGNORECASE)
ABSOLUTE_PATTERN = re.compile(r"(?<!\d)(\d{2}[_/\-]\d{2}[_/\-]\d{4})(?!\d)")
ABSOLUTE_FORMATS = ("%d-%m-%Y", "%m-%d-%Y")

ONE_MS = timedelta(milliseconds=1)
END_OF_DAY = time(23, 59, 59, 999000)


def zone_for(name: str) -> tzinfo:
    if name.upper() == "UTC":
        return timezone.utc
    return ZoneInfo(name)


class DateRangeResolver:
    """Turns period keywords and ``dd_mm_yyyy`` style dates into ranges.

    Days, weeks and months are cut at local midnights in ``tz``; the bounds
    are returned as UTC instants so the store compares them correctly. ``now``
    is injectable so ranges can be computed against a fixed clock; a naive
    value is read as local time in ``tz``. ``week_start`` uses ``calendar``
    numbering (``calendar.SUNDAY`` by default).
    """

    def __init__(
        self,
        now: Callable[[], datetime] | None = None,
        week_start: int = calendar.SUNDAY,
        tz: tzinfo = timezone.utc,
    ) -> None:
        self.tz = tz
        self._now = now or (lambda: datetime.now(self.tz))
        self.week_start = week_start

    def resolve(self, question: str) -> DateRange | None:
        """Return the date range mentioned in the question, relative keywords first."""

        relative = RELATIVE_PATTERN.search(question)
        if relative:
            return self.for_period(relative.group(1))
        absolute = ABSOLUTE_PATTERN.search(question)
        if absolute:
            return self.for_date_string(absolute.group(1))
        return None

    def local_now(self) -> datetime:
        now = self._now()
        if now.tzinfo is None:
            return now.replace(tzinfo=self.tz)
        return now.astimezone(self.tz)

    def for_period(self, period: str) -> DateRange | None:
        now = self.local_now()
        start_of_day = datetime.combine(now.date(), time.min, tzinfo=self.tz)
        days_into_week = (start_of_day.weekday() - self.week_start) % 7
        start_of_week = start_of_day - timedelta(days=days_into_week)
        start_of_month = start_of_day.replace(day=1)
        start_of_last_month = (start_of_month - timedelta(days=1)).replace(day=1)

        # Wall-clock arithmetic in the local zone, converted to UTC at the end.
        bounds = {
            "today": (start_of_day, now),
            "yesterday": (start_of_day - timedelta(days=1), start_of_day - ONE_MS),
            "this week": (start_of_week, now),
            "last week": (start_of_week - timedelta(days=7), start_of_week - ONE_MS),
            "this month": (start_of_month, now),
            "last month": (start_of_last_month, start_of_month - ONE_MS),
        }
        selected = bounds.get(" ".join(period.lower().split()))
        return self._utc_range(*selected) if selected else None

    def for_date_string(self, value: str) -> DateRange | None:
        normalized = re.sub(r"[_/]", "-", value)
        for fmt in ABSOLUTE_FORMATS:
            try:
                day = datetime.strptime(normalized, fmt).date()
            except ValueError:
                continue
            return self._utc_range(
                datetime.combine(day, time.min, tzinfo=self.tz),
                datetime.combine(day, END_OF_DAY, tzinfo=self.tz),
            )
        return None

    @staticmethod
    def _utc_range(start: datetime, end: datetime) -> DateRange:
        return DateRange(start.astimezone(timezone.utc), end.astimezone(timezone.utc))
