"""Day counting for leave ranges — calendar days, working days, exclusions.

Pure functions apart from ``today()``, the organisation's current day.
Holidays come in as an ISO-date → name mapping supplied by the holiday
provider.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Iterator, Mapping, Union
from zoneinfo import ZoneInfo

from intranet.common.constants import TIMEZONE, WEEKEND_DAYS
from intranet.leave.schemas import DayCount, ExcludedHoliday

DayLike = Union[date, datetime, str]


def today() -> date:
    """Current day in the organisation's timezone."""
    return datetime.now(ZoneInfo(TIMEZONE)).date()


def to_day(value: DayLike) -> date:
    """Normalise a date, datetime or ISO string to its calendar day."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return datetime.fromisoformat(value).date()


def normalise_range(start: DayLike, end: DayLike) -> tuple[date, date]:
    """Return ``(start_day, end_day)``; an inverted range collapses to ``start``."""
    start_day = to_day(start)
    end_day = to_day(end)
    if end_day < start_day:
        return start_day, start_day
    return start_day, end_day


def iter_days(start: DayLike, end: DayLike) -> Iterator[date]:
    """Yield every day of the normalised inclusive range."""
    current, last = normalise_range(start, end)
    while current <= last:
        yield current
        current += timedelta(days=1)


def is_weekend(day: date) -> bool:
    return day.weekday() in WEEKEND_DAYS


def holiday_name(day: date, holidays: Mapping[str, str]) -> str | None:
    return holidays.get(day.isoformat())


def count_calendar_days(start: DayLike, end: DayLike) -> int:
    """Inclusive number of calendar days (never less than 1)."""
    start_day, end_day = normalise_range(start, end)
    return (end_day - start_day).days + 1


def count_working_days(
    start: DayLike,
    end: DayLike,
    holidays: Mapping[str, str],
) -> int:
    """Days of the range that are neither weekend days nor holidays."""
    return sum(
        1
        for day in iter_days(start, end)
        if not is_weekend(day) and holiday_name(day, holidays) is None
    )


def count_days(
    start: DayLike,
    end: DayLike,
    holidays: Mapping[str, str],
) -> DayCount:
    """Full breakdown of a range.

    A holiday falling on a weekend is listed once under ``excluded_holidays``
    and is not counted again in ``excluded_weekend_days``.
    """
    calendar_days = 0
    working_days = 0
    weekend_days = 0
    excluded: list[ExcludedHoliday] = []

    for day in iter_days(start, end):
        calendar_days += 1
        name = holiday_name(day, holidays)
        if name is not None:
            excluded.append(ExcludedHoliday(date=day, name=name))
        elif is_weekend(day):
            weekend_days += 1
        else:
            working_days += 1

    return DayCount(
        calendar_days=calendar_days,
        working_days=working_days,
        excluded_weekend_days=weekend_days,
        excluded_holidays=excluded,
    )
