"""Dashboard router — read-only leave views.

All endpoints require authentication. The administrator overview is
admin-only; the personal dashboard and the team calendar are visible to
every authenticated user.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from intranet.auth.dependencies import get_current_user, require_role
from intranet.common.constants import UserRole
from intranet.dashboard.schemas import (
    AdminDashboardResponse,
    MonthCalendarResponse,
    UserDashboardResponse,
)
from intranet.dashboard.service import DashboardService
from intranet.database import get_db
from intranet.leave.days import today
from intranet.leave.holidays import HolidayMap, get_holidays
from intranet.users.models import User

router = APIRouter()


# ── GET /me ─────────────────────────────────────────────────────────

@router.get("/me", response_model=UserDashboardResponse)
async def my_dashboard(
    user: User = Depends(get_current_user),
    holidays: HolidayMap = Depends(get_holidays),
    db: AsyncSession = Depends(get_db),
):
    """Own balance summary and request history."""
    return await DashboardService.get_user_dashboard(db, user.id, holidays)


# ── GET /admin ──────────────────────────────────────────────────────

@router.get("/admin", response_model=AdminDashboardResponse)
async def admin_dashboard(
    user: User = Depends(require_role(UserRole.admin)),
    holidays: HolidayMap = Depends(get_holidays),
    db: AsyncSession = Depends(get_db),
):
    """Balances, statuses and pending requests of every participating user."""
    return await DashboardService.get_admin_dashboard(db, holidays)


# ── GET /calendar ───────────────────────────────────────────────────

@router.get("/calendar", response_model=MonthCalendarResponse)
async def month_calendar(
    year: Optional[int] = Query(None, ge=1900, le=2200),
    month: Optional[int] = Query(None, ge=1, le=12),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Who is away on each day of the month (default: current month)."""
    current = today()
    return await DashboardService.get_month_calendar(
        db, year or current.year, month or current.month, today=current,
    )
