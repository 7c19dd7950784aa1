"""Administrative status of a user's leave balance."""

from __future__ import annotations

import calendar
from dataclasses import dataclass
from datetime import date
from typing import Optional

from intranet.common.constants import AdminStatus
from intranet.config import settings
from intranet.leave.days import today as _today


@dataclass(frozen=True)
class StatusPolicy:
    """Thresholds of the status classifier."""

    critical_remaining_days: int = 5
    critical_usage_percent: float = 80.0
    warning_usage_percent: float = 60.0
    inactivity_months: int = 2

    @classmethod
    def from_settings(cls) -> "StatusPolicy":
        return cls(
            critical_remaining_days=settings.LEAVE_CRITICAL_REMAINING_DAYS,
            critical_usage_percent=settings.LEAVE_CRITICAL_USAGE_PERCENT,
            warning_usage_percent=settings.LEAVE_WARNING_USAGE_PERCENT,
            inactivity_months=settings.LEAVE_INACTIVITY_MONTHS,
        )


def subtract_months(day: date, months: int) -> date:
    """Same day ``months`` earlier, clamped to the last day of shorter months."""
    index = day.year * 12 + (day.month - 1) - months
    year, month = divmod(index, 12)
    month += 1
    last = calendar.monthrange(year, month)[1]
    return date(year, month, min(day.day, last))


def classify(
    allocation: int,
    remaining_days: int,
    percentage_used: float,
    last_approved_end: Optional[date],
    policy: Optional[StatusPolicy] = None,
    today: Optional[date] = None,
) -> AdminStatus:
    """First matching rule wins:

    1. no allocation                           → unallocated
    2. few days left or usage above critical   → critical
    3. usage at or above warning               → warning_usage
    4. no approved leave in the recent window  → warning_inactive
    5. otherwise                               → good
    """
    policy = policy or StatusPolicy.from_settings()
    today = today or _today()

    if allocation == 0:
        return AdminStatus.unallocated
    if (
        remaining_days < policy.critical_remaining_days
        or percentage_used > policy.critical_usage_percent
    ):
        return AdminStatus.critical
    if percentage_used >= policy.warning_usage_percent:
        return AdminStatus.warning_usage
    cutoff = subtract_months(today, policy.inactivity_months)
    if last_approved_end is None or last_approved_end < cutoff:
        return AdminStatus.warning_inactive
    return AdminStatus.good
