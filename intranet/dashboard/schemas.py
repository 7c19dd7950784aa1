"""Dashboard Pydantic v2 schemas — response models for the leave dashboards."""

from __future__ import annotations

import uuid
from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, Field

from intranet.common.constants import AdminStatus, LeaveStatus, UserRole
from intranet.leave.schemas import BalanceSnapshot, CalendarAbsentee, CalendarDay


# ═════════════════════════════════════════════════════════════════════
# Shared
# ═════════════════════════════════════════════════════════════════════


class LeaveHistoryEntry(BaseModel):
    """One leave request as listed in a history table."""

    id: uuid.UUID
    start_date: date
    end_date: date
    day_count: int = Field(..., description="Days under the ledger counting rule")
    status: LeaveStatus
    reason: Optional[str] = None
    decision_at: Optional[datetime] = None
    approver_name: Optional[str] = None
    created_at: datetime


# ═════════════════════════════════════════════════════════════════════
# GET /me
# ═════════════════════════════════════════════════════════════════════


class LeaveSummary(BalanceSnapshot):
    """Balance of the current user plus contract bounds."""

    contract_duration_days: Optional[int] = None
    arrival_date: Optional[date] = None
    departure_date: Optional[date] = None


class UserDashboardResponse(BaseModel):
    summary: LeaveSummary
    history: list[LeaveHistoryEntry] = Field(default_factory=list)


# ═════════════════════════════════════════════════════════════════════
# GET /admin
# ═════════════════════════════════════════════════════════════════════


class AdminUserRow(BaseModel):
    """Per-user line of the administrator overview."""

    user_id: uuid.UUID
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: str
    role: UserRole
    position: Optional[str] = None
    balance: BalanceSnapshot
    status: AdminStatus
    months_until_departure: Optional[int] = None
    days_until_departure: Optional[int] = None
    last_leave_date: Optional[date] = None
    leave_history: list[LeaveHistoryEntry] = Field(default_factory=list)


class PendingLeaveRequestAdmin(BaseModel):
    """Pending request awaiting a decision."""

    id: uuid.UUID
    user_id: uuid.UUID
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: str
    role: UserRole
    start_date: date
    end_date: date
    created_at: datetime
    reason: Optional[str] = None
    total_days: int


class AdminDashboardResponse(BaseModel):
    pending_requests_count: int = 0
    pending_days_total: int = 0
    pending_requests: list[PendingLeaveRequestAdmin] = Field(default_factory=list)
    rows: list[AdminUserRow] = Field(default_factory=list)


# ═════════════════════════════════════════════════════════════════════
# GET /calendar
# ═════════════════════════════════════════════════════════════════════


class MonthCalendarResponse(BaseModel):
    """Absentees for each day of one month."""

    month: str = Field(..., description="YYYY-MM")
    days: list[CalendarDay] = Field(default_factory=list)
    todays_absences: list[CalendarAbsentee] = Field(default_factory=list)
    available_months: list[str] = Field(default_factory=list)
