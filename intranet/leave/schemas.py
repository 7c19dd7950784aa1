"""Leave Pydantic v2 schemas — request / response validation and value objects.

Naming conventions:
  - *Create / *Update / *Request  → request bodies (write)
  - *Out                          → response bodies (read)
  - DayCount, BalanceSnapshot …   → derived values, never persisted
"""

from __future__ import annotations

import uuid
from datetime import date, datetime
from typing import Annotated, Any, Optional

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, field_validator

from intranet.common.constants import LeaveDecision, LeaveStatus, UserRole


def truncate_to_day(value: Any) -> Any:
    """Drop any time-of-day part so ranges are stored and compared as days."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, str) and len(value) > 10:
        return datetime.fromisoformat(value.replace("Z", "+00:00")).date()
    return value


# A calendar day; datetimes and ISO timestamps are truncated to their date
LeaveDay = Annotated[date, BeforeValidator(truncate_to_day)]


# ═════════════════════════════════════════════════════════════════════
# Derived values
# ═════════════════════════════════════════════════════════════════════


class ExcludedHoliday(BaseModel):
    """A public holiday falling inside a requested range."""

    date: date
    name: str


class DayCount(BaseModel):
    """Calendar / working day breakdown of an inclusive date range."""

    calendar_days: int
    working_days: int
    excluded_weekend_days: int = 0
    excluded_holidays: list[ExcludedHoliday] = Field(default_factory=list)


class BalanceSnapshot(BaseModel):
    """Running balance of one user, recomputed on every read."""

    total_allocation_days: int
    approved_days: int
    pending_days: int
    remaining_days: int
    balance_after_pending: int
    percentage_used: float = 0.0


# ═════════════════════════════════════════════════════════════════════
# Leave Request — Create / Update / Decide
# ═════════════════════════════════════════════════════════════════════


class LeaveRequestCreate(BaseModel):
    """Payload for requesting leave.

    ``user_id`` is honoured for administrators only (request on behalf of
    someone else); it defaults to the caller.
    """

    start_date: LeaveDay = Field(..., description="First day of leave (inclusive)")
    end_date: LeaveDay = Field(..., description="Last day of leave (inclusive)")
    reason: Optional[str] = Field(None, max_length=500)
    user_id: Optional[uuid.UUID] = None

    @field_validator("reason")
    @classmethod
    def blank_reason_is_none(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        return v.strip() or None


class LeaveRequestUpdate(BaseModel):
    """Payload for editing a pending request in place."""

    start_date: LeaveDay
    end_date: LeaveDay
    reason: Optional[str] = Field(None, max_length=500)

    @field_validator("reason")
    @classmethod
    def blank_reason_is_none(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        return v.strip() or None


class LeaveDecisionRequest(BaseModel):
    """Payload for approving or rejecting a pending request."""

    decision: LeaveDecision


class AllocationUpdate(BaseModel):
    """Administrator overwrite of a user's yearly allocation."""

    total_allocation_days: int = Field(..., ge=0)


# ═════════════════════════════════════════════════════════════════════
# Leave Request — Response
# ═════════════════════════════════════════════════════════════════════


class LeaveRequestOut(BaseModel):
    """Full leave request response."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    user_id: uuid.UUID
    start_date: date
    end_date: date
    status: LeaveStatus
    reason: Optional[str] = None
    approver_id: Optional[uuid.UUID] = None
    decision_at: Optional[datetime] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    # Enriched by service
    day_count: Optional[DayCount] = None


class AllocationOut(BaseModel):
    """Allocation after an administrator update."""

    user_id: uuid.UUID
    total_allocation_days: int
    balance: BalanceSnapshot


class LeavePreviewOut(BaseModel):
    """What a request for the given range would cost — never blocks."""

    start_date: date
    end_date: date
    day_count: DayCount
    requested_days: int = Field(
        ..., description="Days the ledger would reserve for this range"
    )
    balance: BalanceSnapshot
    overlaps_existing: bool = False
    insufficient_days: bool = False


class HolidayOut(BaseModel):
    """Public holiday from the holiday provider."""

    date: date
    name: str


# ═════════════════════════════════════════════════════════════════════
# Calendar
# ═════════════════════════════════════════════════════════════════════


class CalendarAbsentee(BaseModel):
    """User away on a given day, with the approved request that covers it."""

    user_id: uuid.UUID
    request_id: uuid.UUID
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: str
    role: UserRole
    position: Optional[str] = None


class CalendarDay(BaseModel):
    date: date
    absentees: list[CalendarAbsentee] = Field(default_factory=list)
