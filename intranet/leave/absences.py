"""Calendar aggregation — who is away on each day of a month."""

from __future__ import annotations

import calendar
from datetime import date, timedelta
from typing import Iterable, Sequence

from intranet.common.constants import MONTH_KEY_FORMAT, LeaveStatus
from intranet.leave.conflicts import covers_day
from intranet.leave.models import LeaveRequest
from intranet.leave.schemas import CalendarAbsentee, CalendarDay
from intranet.leave.status import subtract_months


def month_bounds(year: int, month: int) -> tuple[date, date]:
    """First and last day of a month."""
    last = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last)


def _absentee(request: LeaveRequest) -> CalendarAbsentee:
    user = request.user
    return CalendarAbsentee(
        user_id=request.user_id,
        request_id=request.id,
        first_name=user.first_name,
        last_name=user.last_name,
        email=user.email,
        role=user.role,
        position=user.position,
    )


def absent_on(day: date, approved_requests: Iterable[LeaveRequest]) -> list[CalendarAbsentee]:
    """Users whose approved request covers ``day``."""
    return [
        _absentee(r)
        for r in approved_requests
        if r.status == LeaveStatus.approved
        and covers_day(r.start_date, r.end_date, day)
    ]


def build_month(
    year: int,
    month: int,
    approved_requests: Sequence[LeaveRequest],
) -> list[CalendarDay]:
    """One CalendarDay per day of the month, in order."""
    first, last = month_bounds(year, month)
    # Only requests touching the month can cover one of its days
    relevant = [
        r for r in approved_requests
        if r.start_date <= last and r.end_date >= first
    ]

    days: list[CalendarDay] = []
    current = first
    while current <= last:
        days.append(CalendarDay(date=current, absentees=absent_on(current, relevant)))
        current += timedelta(days=1)
    return days


def available_months(today: date, span: int = 12) -> list[str]:
    """``YYYY-MM`` keys from ``span`` months before to ``span`` months after today."""
    start = subtract_months(today.replace(day=1), span)
    return [
        subtract_months(start, -offset).strftime(MONTH_KEY_FORMAT)
        for offset in range(2 * span + 1)
    ]
