"""Enums and constants for the intranet — matching PostgreSQL ENUM types."""

from __future__ import annotations

import enum


# ── Auth / Roles ────────────────────────────────────────────────────

class UserRole(str, enum.Enum):
    user = "user"
    admin = "admin"


# ── Leave ───────────────────────────────────────────────────────────

class LeaveStatus(str, enum.Enum):
    pending = "pending"
    approved = "approved"
    rejected = "rejected"
    cancelled = "cancelled"


class LeaveDecision(str, enum.Enum):
    """Outcomes an approver may choose for a pending request."""

    approved = "approved"
    rejected = "rejected"

    @property
    def status(self) -> LeaveStatus:
        return LeaveStatus(self.value)


# Statuses that reserve days and take part in overlap detection
ACTIVE_LEAVE_STATUSES: frozenset[LeaveStatus] = frozenset(
    {LeaveStatus.pending, LeaveStatus.approved}
)

# Allowed lifecycle transitions; terminal states map to nothing
LEAVE_TRANSITIONS: dict[LeaveStatus, frozenset[LeaveStatus]] = {
    LeaveStatus.pending: frozenset(
        {LeaveStatus.approved, LeaveStatus.rejected, LeaveStatus.cancelled}
    ),
    LeaveStatus.approved: frozenset(),
    LeaveStatus.rejected: frozenset(),
    LeaveStatus.cancelled: frozenset(),
}


class BalanceCounting(str, enum.Enum):
    """Day-counting rule used by the balance ledger."""

    calendar = "calendar"
    working = "working"


# ── Admin dashboard ─────────────────────────────────────────────────

class AdminStatus(str, enum.Enum):
    critical = "critical"
    warning_usage = "warning_usage"
    warning_inactive = "warning_inactive"
    good = "good"
    unallocated = "unallocated"


# ── Misc constants ──────────────────────────────────────────────────

MONTH_KEY_FORMAT = "%Y-%m"
TIMEZONE = "Europe/Paris"
WEEKEND_DAYS: frozenset[int] = frozenset({5, 6})  # Saturday, Sunday
