"""Common module — shared utilities for the intranet service."""

from intranet.common.audit import AuditTrail, create_audit_entry
from intranet.common.constants import (
    ACTIVE_LEAVE_STATUSES,
    LEAVE_TRANSITIONS,
    TIMEZONE,
    AdminStatus,
    BalanceCounting,
    LeaveDecision,
    LeaveStatus,
    UserRole,
)
from intranet.common.exceptions import (
    AppException,
    ForbiddenException,
    InvalidRangeError,
    LeaveError,
    LeaveOverlapError,
    NotFoundException,
    NotOwnerError,
    NotPendingError,
    PastDateError,
    ValidationException,
    register_exception_handlers,
)

__all__ = [
    # Audit
    "AuditTrail",
    "create_audit_entry",
    # Constants / Enums
    "ACTIVE_LEAVE_STATUSES",
    "AdminStatus",
    "BalanceCounting",
    "LeaveDecision",
    "LeaveStatus",
    "LEAVE_TRANSITIONS",
    "UserRole",
    "TIMEZONE",
    # Exceptions
    "AppException",
    "ForbiddenException",
    "InvalidRangeError",
    "LeaveError",
    "LeaveOverlapError",
    "NotFoundException",
    "NotOwnerError",
    "NotPendingError",
    "PastDateError",
    "ValidationException",
    "register_exception_handlers",
]
