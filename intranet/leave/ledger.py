"""Balance ledger — approved / pending / remaining days for one user.

Balances are derived from the live request set on every read and never
stored. The counting rule defaults to inclusive calendar days; the
working-day rule (weekends and holidays excluded) is available through
``BalanceCounting.working``.
"""

from __future__ import annotations

from datetime import date
from typing import Iterable, Mapping, Optional

from intranet.common.constants import BalanceCounting, LeaveStatus
from intranet.leave.conflicts import DatedRequest
from intranet.leave.days import count_calendar_days, count_working_days
from intranet.leave.schemas import BalanceSnapshot


def request_days(
    request: DatedRequest,
    holidays: Optional[Mapping[str, str]] = None,
    counting: BalanceCounting = BalanceCounting.calendar,
) -> int:
    """Days one request reserves under the given counting rule."""
    return range_days(request.start_date, request.end_date, holidays, counting)


def range_days(
    start: date,
    end: date,
    holidays: Optional[Mapping[str, str]] = None,
    counting: BalanceCounting = BalanceCounting.calendar,
) -> int:
    if counting == BalanceCounting.working:
        return count_working_days(start, end, holidays or {})
    return count_calendar_days(start, end)


def percentage_used(allocation: int, approved_days: int) -> float:
    if allocation <= 0:
        return 0.0
    return min(approved_days * 100 / allocation, 100.0)


def compute_balance(
    allocation: int,
    requests: Iterable[DatedRequest],
    holidays: Optional[Mapping[str, str]] = None,
    counting: BalanceCounting = BalanceCounting.calendar,
) -> BalanceSnapshot:
    """Compute the balance snapshot for ``allocation`` against ``requests``.

    Rejected and cancelled requests are ignored. Remaining values are
    floored at zero; an overdrawn user simply shows ``remaining_days=0``.
    """
    approved = 0
    pending = 0
    for request in requests:
        if request.status == LeaveStatus.approved:
            approved += request_days(request, holidays, counting)
        elif request.status == LeaveStatus.pending:
            pending += request_days(request, holidays, counting)

    remaining = max(allocation - approved, 0)
    return BalanceSnapshot(
        total_allocation_days=allocation,
        approved_days=approved,
        pending_days=pending,
        remaining_days=remaining,
        balance_after_pending=max(remaining - pending, 0),
        percentage_used=percentage_used(allocation, approved),
    )


def last_approved_end(requests: Iterable[DatedRequest]) -> Optional[date]:
    """Latest end date among approved requests, or None."""
    ends = [r.end_date for r in requests if r.status == LeaveStatus.approved]
    return max(ends) if ends else None
