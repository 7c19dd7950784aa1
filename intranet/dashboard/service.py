"""Dashboard service — read-only leave views for users and administrators.

All methods are static async, following the project convention. Balances
and statuses are derived on every call from the live request set.
"""

from __future__ import annotations

import uuid
from collections import defaultdict
from datetime import date
from typing import Mapping, Optional, Sequence

from sqlalchemy import and_, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from intranet.common.constants import MONTH_KEY_FORMAT, LeaveStatus, UserRole
from intranet.common.exceptions import NotFoundException
from intranet.dashboard.schemas import (
    AdminDashboardResponse,
    AdminUserRow,
    LeaveHistoryEntry,
    LeaveSummary,
    MonthCalendarResponse,
    PendingLeaveRequestAdmin,
    UserDashboardResponse,
)
from intranet.leave.absences import absent_on, available_months, build_month, month_bounds
from intranet.leave.days import count_calendar_days, today as _today
from intranet.leave.ledger import compute_balance, last_approved_end, request_days
from intranet.leave.models import LeaveRequest
from intranet.leave.service import balance_counting
from intranet.leave.status import classify
from intranet.users.models import User


def months_between(start: date, end: date) -> int:
    """Whole months from ``start`` to ``end``, truncated toward zero."""
    months = (end.year - start.year) * 12 + (end.month - start.month)
    if months > 0 and end.day < start.day:
        months -= 1
    elif months < 0 and end.day > start.day:
        months += 1
    return months


def _history_entry(
    request: LeaveRequest, holidays: Optional[Mapping[str, str]]
) -> LeaveHistoryEntry:
    approver = request.approver
    return LeaveHistoryEntry(
        id=request.id,
        start_date=request.start_date,
        end_date=request.end_date,
        day_count=request_days(request, holidays, balance_counting()),
        status=request.status,
        reason=request.reason,
        decision_at=request.decision_at,
        approver_name=approver.full_name if approver is not None else None,
        created_at=request.created_at,
    )


class DashboardService:
    """Async dashboard aggregation queries."""

    # ═════════════════════════════════════════════════════════════════
    # GET /me
    # ═════════════════════════════════════════════════════════════════

    @staticmethod
    async def get_user_dashboard(
        db: AsyncSession,
        user_id: uuid.UUID,
        holidays: Optional[Mapping[str, str]] = None,
    ) -> UserDashboardResponse:
        """Balance summary and full request history (newest first)."""
        user = await db.get(User, user_id)
        if user is None:
            raise NotFoundException("User", user_id)

        result = await db.execute(
            select(LeaveRequest)
            .where(LeaveRequest.user_id == user_id)
            .options(selectinload(LeaveRequest.approver))
            .order_by(LeaveRequest.created_at.desc())
        )
        requests = result.scalars().all()

        balance = compute_balance(
            user.conges_total_days, requests, holidays, balance_counting()
        )

        contract_days: Optional[int] = None
        if (
            user.arrival_date is not None
            and user.departure_date is not None
            and user.departure_date >= user.arrival_date
        ):
            contract_days = count_calendar_days(user.arrival_date, user.departure_date)

        summary = LeaveSummary(
            **balance.model_dump(),
            contract_duration_days=contract_days,
            arrival_date=user.arrival_date,
            departure_date=user.departure_date,
        )
        return UserDashboardResponse(
            summary=summary,
            history=[_history_entry(r, holidays) for r in requests],
        )

    # ═════════════════════════════════════════════════════════════════
    # GET /admin
    # ═════════════════════════════════════════════════════════════════

    @staticmethod
    async def get_admin_dashboard(
        db: AsyncSession,
        holidays: Optional[Mapping[str, str]] = None,
        today: Optional[date] = None,
    ) -> AdminDashboardResponse:
        """Per-user balances and statuses, plus the pending-request queue.

        Covers active users with the ``user`` role who take part in leave
        management.
        """
        today = today or _today()
        counting = balance_counting()

        users_result = await db.execute(
            select(User)
            .where(
                User.role == UserRole.user,
                User.conges_enabled.is_(True),
                User.is_active.is_(True),
            )
            .order_by(User.last_name, User.first_name, User.email)
        )
        users: Sequence[User] = users_result.scalars().all()
        if not users:
            return AdminDashboardResponse()

        requests_result = await db.execute(
            select(LeaveRequest)
            .where(LeaveRequest.user_id.in_([u.id for u in users]))
            .options(
                selectinload(LeaveRequest.user),
                selectinload(LeaveRequest.approver),
            )
        )
        by_user: dict[uuid.UUID, list[LeaveRequest]] = defaultdict(list)
        for request in requests_result.scalars().all():
            by_user[request.user_id].append(request)

        rows: list[AdminUserRow] = []
        pending: list[LeaveRequest] = []
        for user in users:
            user_requests = by_user.get(user.id, [])
            pending.extend(
                r for r in user_requests if r.status == LeaveStatus.pending
            )

            balance = compute_balance(
                user.conges_total_days, user_requests, holidays, counting
            )
            last_end = last_approved_end(user_requests)
            departure = user.departure_date
            history = sorted(user_requests, key=lambda r: r.start_date, reverse=True)

            rows.append(
                AdminUserRow(
                    user_id=user.id,
                    first_name=user.first_name,
                    last_name=user.last_name,
                    email=user.email,
                    role=user.role,
                    position=user.position,
                    balance=balance,
                    status=classify(
                        user.conges_total_days,
                        balance.remaining_days,
                        balance.percentage_used,
                        last_end,
                        today=today,
                    ),
                    months_until_departure=(
                        months_between(today, departure) if departure else None
                    ),
                    days_until_departure=(
                        (departure - today).days if departure else None
                    ),
                    last_leave_date=last_end,
                    leave_history=[_history_entry(r, holidays) for r in history],
                )
            )

        pending.sort(key=lambda r: r.created_at)
        pending_out = [
            PendingLeaveRequestAdmin(
                id=r.id,
                user_id=r.user_id,
                first_name=r.user.first_name,
                last_name=r.user.last_name,
                email=r.user.email,
                role=r.user.role,
                start_date=r.start_date,
                end_date=r.end_date,
                created_at=r.created_at,
                reason=r.reason,
                total_days=request_days(r, holidays, counting),
            )
            for r in pending
        ]
        return AdminDashboardResponse(
            pending_requests_count=len(pending_out),
            pending_days_total=sum(p.total_days for p in pending_out),
            pending_requests=pending_out,
            rows=rows,
        )

    # ═════════════════════════════════════════════════════════════════
    # GET /calendar
    # ═════════════════════════════════════════════════════════════════

    @staticmethod
    async def get_month_calendar(
        db: AsyncSession,
        year: int,
        month: int,
        today: Optional[date] = None,
    ) -> MonthCalendarResponse:
        """Absentees per day of the month, today's absences, navigable months."""
        today = today or _today()
        first, last = month_bounds(year, month)

        result = await db.execute(
            select(LeaveRequest)
            .where(
                LeaveRequest.status == LeaveStatus.approved,
                or_(
                    and_(LeaveRequest.start_date <= last, LeaveRequest.end_date >= first),
                    and_(LeaveRequest.start_date <= today, LeaveRequest.end_date >= today),
                ),
            )
            .options(selectinload(LeaveRequest.user))
            .order_by(LeaveRequest.start_date, LeaveRequest.created_at)
        )
        approved = result.scalars().all()

        return MonthCalendarResponse(
            month=first.strftime(MONTH_KEY_FORMAT),
            days=build_month(year, month, approved),
            todays_absences=absent_on(today, approved),
            available_months=available_months(today),
        )
