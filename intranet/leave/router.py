"""Leave router — request, edit, decide, cancel, preview, holidays, allocations.

All endpoints require authentication. Decisions and allocation updates are
admin-only. Administrators creating a request get it approved immediately
and may file it on behalf of another user.
"""


import uuid
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from intranet.auth.dependencies import get_current_user, require_role
from intranet.common.constants import UserRole
from intranet.common.rate_limit import MUTATION_LIMIT, limiter
from intranet.database import get_db
from intranet.leave.days import today
from intranet.leave.holidays import HolidayMap, get_holidays, holidays_for_years
from intranet.leave.schemas import (
    AllocationOut,
    AllocationUpdate,
    HolidayOut,
    LeaveDay,
    LeaveDecisionRequest,
    LeavePreviewOut,
    LeaveRequestCreate,
    LeaveRequestOut,
    LeaveRequestUpdate,
)
from intranet.leave.service import LeaveService
from intranet.users.models import User

router = APIRouter(prefix="", tags=["leave"])


# ── POST /requests ──────────────────────────────────────────────────

@router.post("/requests", response_model=LeaveRequestOut, status_code=201)
@limiter.limit(MUTATION_LIMIT)
async def create_leave_request(
    request: Request,
    body: LeaveRequestCreate,
    user: User = Depends(get_current_user),
    holidays: HolidayMap = Depends(get_holidays),
    db: AsyncSession = Depends(get_db),
):
    """Request leave. Rejects inverted ranges, past dates and overlaps."""
    owner_id = user.id
    auto_approve_by: Optional[uuid.UUID] = None
    if user.is_admin:
        owner_id = body.user_id or user.id
        auto_approve_by = user.id
    return await LeaveService.create_leave_request(
        db, owner_id, body, holidays, auto_approve_by=auto_approve_by,
    )


# ── PUT /requests/{id} ──────────────────────────────────────────────

@router.put("/requests/{request_id}", response_model=LeaveRequestOut)
@limiter.limit(MUTATION_LIMIT)
async def edit_leave_request(
    request: Request,
    request_id: uuid.UUID,
    body: LeaveRequestUpdate,
    user: User = Depends(get_current_user),
    holidays: HolidayMap = Depends(get_holidays),
    db: AsyncSession = Depends(get_db),
):
    """Edit a pending request (owner only)."""
    return await LeaveService.edit_leave_request(
        db, request_id, user.id, body, holidays,
    )


# ── PUT /requests/{id}/decision ─────────────────────────────────────

@router.put("/requests/{request_id}/decision", response_model=LeaveRequestOut)
@limiter.limit(MUTATION_LIMIT)
async def decide_leave_request(
    request: Request,
    request_id: uuid.UUID,
    body: LeaveDecisionRequest,
    user: User = Depends(require_role(UserRole.admin)),
    holidays: HolidayMap = Depends(get_holidays),
    db: AsyncSession = Depends(get_db),
):
    """Approve or reject a pending request."""
    return await LeaveService.decide_leave_request(
        db, request_id, user.id, body.decision, holidays,
    )


# ── POST /requests/{id}/cancel ──────────────────────────────────────

@router.post("/requests/{request_id}/cancel", response_model=LeaveRequestOut)
@limiter.limit(MUTATION_LIMIT)
async def cancel_leave_request(
    request: Request,
    request_id: uuid.UUID,
    user: User = Depends(get_current_user),
    holidays: HolidayMap = Depends(get_holidays),
    db: AsyncSession = Depends(get_db),
):
    """Cancel a pending request (owner only)."""
    return await LeaveService.cancel_leave_request(
        db, request_id, user.id, holidays,
    )


# ── GET /preview ────────────────────────────────────────────────────

@router.get("/preview", response_model=LeavePreviewOut)
async def preview_leave_request(
    start_date: Annotated[LeaveDay, Query()],
    end_date: Annotated[LeaveDay, Query()],
    exclude_request_id: Optional[uuid.UUID] = Query(None),
    user: User = Depends(get_current_user),
    holidays: HolidayMap = Depends(get_holidays),
    db: AsyncSession = Depends(get_db),
):
    """Day count and balance impact of a prospective request."""
    return await LeaveService.preview_leave_request(
        db, user.id, start_date, end_date, holidays,
        exclude_request_id=exclude_request_id,
    )


# ── GET /holidays ───────────────────────────────────────────────────

@router.get("/holidays", response_model=list[HolidayOut])
async def list_holidays(
    year: Optional[int] = Query(None, ge=1900, le=2200),
    end_year: Optional[int] = Query(None, ge=1900, le=2200),
    user: User = Depends(get_current_user),
    holidays: HolidayMap = Depends(get_holidays),
):
    """Public holidays of ``year`` (default: current year) through ``end_year``."""
    start = year or today().year
    return holidays_for_years(holidays, start, max(end_year or start, start))


# ── PUT /allocations/{user_id} ──────────────────────────────────────

@router.put("/allocations/{user_id}", response_model=AllocationOut)
@limiter.limit(MUTATION_LIMIT)
async def update_allocation(
    request: Request,
    user_id: uuid.UUID,
    body: AllocationUpdate,
    user: User = Depends(require_role(UserRole.admin)),
    holidays: HolidayMap = Depends(get_holidays),
    db: AsyncSession = Depends(get_db),
):
    """Overwrite a user's yearly leave allocation."""
    return await LeaveService.update_allocation(
        db, user_id, body.total_allocation_days, user.id, holidays,
    )
