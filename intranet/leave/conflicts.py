"""Overlap detection between leave requests of the same user."""

from __future__ import annotations

import uuid
from datetime import date
from typing import Iterable, Optional, Protocol

from intranet.common.constants import ACTIVE_LEAVE_STATUSES, LeaveStatus
from intranet.leave.days import DayLike, normalise_range, to_day


class DatedRequest(Protocol):
    """Anything shaped like a LeaveRequest row."""

    id: uuid.UUID
    user_id: uuid.UUID
    start_date: date
    end_date: date
    status: LeaveStatus


def ranges_overlap(
    a_start: DayLike,
    a_end: DayLike,
    b_start: DayLike,
    b_end: DayLike,
) -> bool:
    """Inclusive ranges share at least one day."""
    a1, a2 = normalise_range(a_start, a_end)
    b1, b2 = normalise_range(b_start, b_end)
    return a1 <= b2 and b1 <= a2


def covers_day(start: DayLike, end: DayLike, day: DayLike) -> bool:
    """The inclusive range contains ``day``."""
    target = to_day(day)
    return ranges_overlap(start, end, target, target)


def has_overlap(
    existing: Iterable[DatedRequest],
    user_id: uuid.UUID,
    start: DayLike,
    end: DayLike,
    exclude_request_id: Optional[uuid.UUID] = None,
) -> bool:
    """True if the candidate range overlaps one of the user's active requests.

    Only pending/approved requests count; ``exclude_request_id`` lets an edit
    ignore the request being edited.
    """
    for request in existing:
        if request.user_id != user_id:
            continue
        if request.status not in ACTIVE_LEAVE_STATUSES:
            continue
        if exclude_request_id is not None and request.id == exclude_request_id:
            continue
        if ranges_overlap(request.start_date, request.end_date, start, end):
            return True
    return False
