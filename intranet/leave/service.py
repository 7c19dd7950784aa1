"""Leave service layer — request lifecycle, allocation, preview.

Business logic:
  - Create / edit with range validation and per-user overlap detection
  - Approve / reject / cancel through the lifecycle transition table
  - Administrator allocation overwrite
  - Preview of a prospective request (day count + balance warning)

Create and edit serialize per user: the owner row is locked, the overlap
check runs, the write happens, and ``users.leave_version`` is bumped with a
compare-and-set. A lost compare-and-set (or the PostgreSQL exclusion
constraint firing) is reported as ``leaveOverlap``.
"""

from __future__ import annotations

import logging
import uuid
from datetime import date, datetime, timezone
from typing import Any, Mapping, Optional, Sequence

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from intranet.common.audit import create_audit_entry
from intranet.common.constants import (
    ACTIVE_LEAVE_STATUSES,
    LEAVE_TRANSITIONS,
    BalanceCounting,
    LeaveDecision,
    LeaveStatus,
)
from intranet.common.exceptions import (
    InvalidRangeError,
    LeaveOverlapError,
    NotFoundException,
    NotOwnerError,
    NotPendingError,
    PastDateError,
    ValidationException,
)
from intranet.config import settings
from intranet.leave.conflicts import has_overlap
from intranet.leave.days import count_days, today
from intranet.leave.ledger import compute_balance, range_days
from intranet.leave.models import LeaveRequest
from intranet.leave.schemas import (
    AllocationOut,
    BalanceSnapshot,
    LeavePreviewOut,
    LeaveRequestCreate,
    LeaveRequestOut,
    LeaveRequestUpdate,
)
from intranet.users.models import User

logger = logging.getLogger(__name__)


def balance_counting() -> BalanceCounting:
    return BalanceCounting(settings.LEAVE_BALANCE_COUNTING)


# ═════════════════════════════════════════════════════════════════════
# LeaveService
# ═════════════════════════════════════════════════════════════════════


class LeaveService:
    """Async leave operations: create, edit, decide, cancel, allocate, preview."""

    # ─────────────────────────────────────────────────────────────────
    # Helpers
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    def _validate_range(start: date, end: date) -> None:
        if end < start:
            raise InvalidRangeError()
        if not settings.LEAVE_ALLOW_PAST_DATES and start < today():
            raise PastDateError()

    @staticmethod
    def _assert_transition(request: LeaveRequest, target: LeaveStatus) -> None:
        if target not in LEAVE_TRANSITIONS[request.status]:
            raise NotPendingError(request.status.value)

    @staticmethod
    def _assert_pending(request: LeaveRequest) -> None:
        if request.status != LeaveStatus.pending:
            raise NotPendingError(request.status.value)

    @staticmethod
    async def _load_request(
        db: AsyncSession,
        request_id: uuid.UUID,
        lock: bool = False,
    ) -> LeaveRequest:
        query = select(LeaveRequest).where(LeaveRequest.id == request_id)
        if lock:
            query = query.with_for_update().execution_options(populate_existing=True)
        result = await db.execute(query)
        request = result.scalar_one_or_none()
        if request is None:
            raise NotFoundException("LeaveRequest", request_id)
        return request

    @staticmethod
    async def _load_user(
        db: AsyncSession,
        user_id: uuid.UUID,
        lock: bool = False,
    ) -> User:
        """Fetch a user; with ``lock`` the row is selected FOR UPDATE and
        refreshed so ``leave_version`` reflects the committed value."""
        query = select(User).where(User.id == user_id)
        if lock:
            query = query.with_for_update().execution_options(populate_existing=True)
        result = await db.execute(query)
        user = result.scalar_one_or_none()
        if user is None:
            raise NotFoundException("User", user_id)
        return user

    @staticmethod
    async def _active_requests(
        db: AsyncSession, user_id: uuid.UUID
    ) -> Sequence[LeaveRequest]:
        """Pending and approved requests of one user."""
        result = await db.execute(
            select(LeaveRequest).where(
                LeaveRequest.user_id == user_id,
                LeaveRequest.status.in_(ACTIVE_LEAVE_STATUSES),
            )
        )
        return result.scalars().all()

    @staticmethod
    async def _user_requests(
        db: AsyncSession, user_id: uuid.UUID
    ) -> Sequence[LeaveRequest]:
        result = await db.execute(
            select(LeaveRequest).where(LeaveRequest.user_id == user_id)
        )
        return result.scalars().all()

    @staticmethod
    async def _claim_user_slot(
        db: AsyncSession, user_id: uuid.UUID, seen_version: int
    ) -> None:
        """Bump ``leave_version`` only if nobody else did since we read it."""
        result = await db.execute(
            update(User)
            .where(User.id == user_id, User.leave_version == seen_version)
            .values(leave_version=seen_version + 1)
        )
        if result.rowcount != 1:
            logger.warning(
                "Concurrent leave mutation detected for user %s (version %d)",
                user_id,
                seen_version,
            )
            raise LeaveOverlapError()

    @staticmethod
    async def _leave_pending(
        db: AsyncSession,
        request: LeaveRequest,
        target: LeaveStatus,
        **values: Any,
    ) -> None:
        """Move ``request`` to ``target`` only if storage still holds it pending.

        A decision or cancellation committed by another transaction since the
        row was read leaves zero matching rows and fails with ``notPending``.
        """
        result = await db.execute(
            update(LeaveRequest)
            .where(
                LeaveRequest.id == request.id,
                LeaveRequest.status == LeaveStatus.pending,
            )
            .values(status=target, **values)
            .execution_options(synchronize_session=False)
        )
        await db.refresh(request)
        if result.rowcount != 1:
            logger.warning(
                "Leave request %s left pending concurrently (now %s)",
                request.id,
                request.status.value,
            )
            raise NotPendingError(request.status.value)

    @staticmethod
    async def _flush(db: AsyncSession) -> None:
        """Flush pending writes; storage-level overlap becomes leaveOverlap."""
        try:
            await db.flush()
        except IntegrityError as exc:
            logger.warning("Leave write rejected by storage constraint: %s", exc.orig)
            raise LeaveOverlapError() from exc

    @staticmethod
    def _snapshot(request: LeaveRequest) -> dict[str, Any]:
        return {
            "user_id": str(request.user_id),
            "start_date": request.start_date.isoformat(),
            "end_date": request.end_date.isoformat(),
            "reason": request.reason,
            "status": request.status.value,
            "approver_id": str(request.approver_id) if request.approver_id else None,
        }

    @staticmethod
    def to_out(
        request: LeaveRequest,
        holidays: Optional[Mapping[str, str]] = None,
    ) -> LeaveRequestOut:
        out = LeaveRequestOut.model_validate(request)
        out.day_count = count_days(request.start_date, request.end_date, holidays or {})
        return out

    @staticmethod
    async def get_balance(
        db: AsyncSession,
        user: User,
        holidays: Optional[Mapping[str, str]] = None,
    ) -> BalanceSnapshot:
        requests = await LeaveService._user_requests(db, user.id)
        return compute_balance(
            user.conges_total_days, requests, holidays, balance_counting()
        )

    # ─────────────────────────────────────────────────────────────────
    # Create
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def create_leave_request(
        db: AsyncSession,
        user_id: uuid.UUID,
        data: LeaveRequestCreate,
        holidays: Optional[Mapping[str, str]] = None,
        auto_approve_by: Optional[uuid.UUID] = None,
    ) -> LeaveRequestOut:
        """Create a leave request for ``user_id``.

        With ``auto_approve_by`` the request is stored directly as approved
        by that user; otherwise it starts pending.
        """
        LeaveService._validate_range(data.start_date, data.end_date)

        owner = await LeaveService._load_user(db, user_id, lock=True)
        seen_version = owner.leave_version

        existing = await LeaveService._active_requests(db, user_id)
        if has_overlap(existing, user_id, data.start_date, data.end_date):
            logger.warning(
                "Leave request %s..%s for user %s overlaps an existing request",
                data.start_date, data.end_date, user_id,
            )
            raise LeaveOverlapError()

        now = datetime.now(timezone.utc)
        request = LeaveRequest(
            user_id=user_id,
            start_date=data.start_date,
            end_date=data.end_date,
            reason=data.reason,
            status=LeaveStatus.pending,
            created_at=now,
            updated_at=now,
        )
        if auto_approve_by is not None:
            request.status = LeaveStatus.approved
            request.approver_id = auto_approve_by
            request.decision_at = now

        db.add(request)
        await LeaveService._flush(db)
        await LeaveService._claim_user_slot(db, user_id, seen_version)

        await create_audit_entry(
            db,
            action="create",
            entity_type="leave_request",
            entity_id=request.id,
            actor_id=auto_approve_by or user_id,
            new_values=LeaveService._snapshot(request),
        )
        logger.info(
            "Leave request %s created for user %s (%s)",
            request.id, user_id, request.status.value,
        )
        return LeaveService.to_out(request, holidays)

    # ─────────────────────────────────────────────────────────────────
    # Edit
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def edit_leave_request(
        db: AsyncSession,
        request_id: uuid.UUID,
        requester_id: uuid.UUID,
        data: LeaveRequestUpdate,
        holidays: Optional[Mapping[str, str]] = None,
    ) -> LeaveRequestOut:
        """Replace dates and reason of a pending request, owner only."""
        request = await LeaveService._load_request(db, request_id, lock=True)
        if request.user_id != requester_id:
            raise NotOwnerError()
        LeaveService._assert_pending(request)
        LeaveService._validate_range(data.start_date, data.end_date)

        owner = await LeaveService._load_user(db, request.user_id, lock=True)
        seen_version = owner.leave_version

        existing = await LeaveService._active_requests(db, request.user_id)
        if has_overlap(
            existing,
            request.user_id,
            data.start_date,
            data.end_date,
            exclude_request_id=request.id,
        ):
            logger.warning(
                "Edit of leave request %s to %s..%s overlaps an existing request",
                request.id, data.start_date, data.end_date,
            )
            raise LeaveOverlapError()

        old_values = LeaveService._snapshot(request)
        request.start_date = data.start_date
        request.end_date = data.end_date
        request.reason = data.reason
        request.updated_at = datetime.now(timezone.utc)

        await LeaveService._flush(db)
        await LeaveService._claim_user_slot(db, request.user_id, seen_version)

        await create_audit_entry(
            db,
            action="update",
            entity_type="leave_request",
            entity_id=request.id,
            actor_id=requester_id,
            old_values=old_values,
            new_values=LeaveService._snapshot(request),
        )
        logger.info("Leave request %s edited", request.id)
        return LeaveService.to_out(request, holidays)

    # ─────────────────────────────────────────────────────────────────
    # Decide / Cancel
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def decide_leave_request(
        db: AsyncSession,
        request_id: uuid.UUID,
        approver_id: uuid.UUID,
        decision: LeaveDecision,
        holidays: Optional[Mapping[str, str]] = None,
    ) -> LeaveRequestOut:
        """Approve or reject a pending request."""
        request = await LeaveService._load_request(db, request_id, lock=True)
        target = decision.status
        LeaveService._assert_transition(request, target)

        if (
            target == LeaveStatus.approved
            and settings.LEAVE_RECHECK_OVERLAP_ON_APPROVAL
        ):
            approved = [
                r for r in await LeaveService._active_requests(db, request.user_id)
                if r.status == LeaveStatus.approved
            ]
            if has_overlap(
                approved,
                request.user_id,
                request.start_date,
                request.end_date,
                exclude_request_id=request.id,
            ):
                logger.warning(
                    "Approval of leave request %s blocked by an approved overlap",
                    request.id,
                )
                raise LeaveOverlapError()

        old_values = LeaveService._snapshot(request)
        now = datetime.now(timezone.utc)
        await LeaveService._leave_pending(
            db, request, target,
            approver_id=approver_id, decision_at=now, updated_at=now,
        )

        await create_audit_entry(
            db,
            action="approve" if target == LeaveStatus.approved else "reject",
            entity_type="leave_request",
            entity_id=request.id,
            actor_id=approver_id,
            old_values=old_values,
            new_values=LeaveService._snapshot(request),
        )
        logger.info(
            "Leave request %s %s by %s", request.id, target.value, approver_id
        )
        return LeaveService.to_out(request, holidays)

    @staticmethod
    async def cancel_leave_request(
        db: AsyncSession,
        request_id: uuid.UUID,
        requester_id: uuid.UUID,
        holidays: Optional[Mapping[str, str]] = None,
    ) -> LeaveRequestOut:
        """Withdraw a pending request, owner only."""
        request = await LeaveService._load_request(db, request_id, lock=True)
        if request.user_id != requester_id:
            raise NotOwnerError()
        LeaveService._assert_transition(request, LeaveStatus.cancelled)

        old_values = LeaveService._snapshot(request)
        await LeaveService._leave_pending(
            db, request, LeaveStatus.cancelled,
            updated_at=datetime.now(timezone.utc),
        )

        await create_audit_entry(
            db,
            action="cancel",
            entity_type="leave_request",
            entity_id=request.id,
            actor_id=requester_id,
            old_values=old_values,
            new_values=LeaveService._snapshot(request),
        )
        logger.info("Leave request %s cancelled", request.id)
        return LeaveService.to_out(request, holidays)

    # ─────────────────────────────────────────────────────────────────
    # Allocation
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def update_allocation(
        db: AsyncSession,
        user_id: uuid.UUID,
        total_days: int,
        actor_id: uuid.UUID,
        holidays: Optional[Mapping[str, str]] = None,
    ) -> AllocationOut:
        """Overwrite the yearly allocation of a user."""
        if not 0 <= total_days <= settings.LEAVE_MAX_ALLOCATION_DAYS:
            raise ValidationException(
                errors={
                    "total_allocation_days": [
                        f"Must be between 0 and {settings.LEAVE_MAX_ALLOCATION_DAYS}."
                    ]
                }
            )

        user = await LeaveService._load_user(db, user_id)
        previous = user.conges_total_days
        user.conges_total_days = total_days
        user.updated_at = datetime.now(timezone.utc)
        await db.flush()

        await create_audit_entry(
            db,
            action="allocate",
            entity_type="leave_allocation",
            entity_id=user.id,
            actor_id=actor_id,
            old_values={"conges_total_days": previous},
            new_values={"conges_total_days": total_days},
        )
        logger.info(
            "Leave allocation of user %s set to %d (was %d)",
            user.id, total_days, previous,
        )
        balance = await LeaveService.get_balance(db, user, holidays)
        return AllocationOut(
            user_id=user.id, total_allocation_days=total_days, balance=balance
        )

    # ─────────────────────────────────────────────────────────────────
    # Preview
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def preview_leave_request(
        db: AsyncSession,
        user_id: uuid.UUID,
        start: date,
        end: date,
        holidays: Optional[Mapping[str, str]] = None,
        exclude_request_id: Optional[uuid.UUID] = None,
    ) -> LeavePreviewOut:
        """Cost of a prospective request. Read-only; never blocks on balance."""
        if end < start:
            raise InvalidRangeError()

        user = await LeaveService._load_user(db, user_id)
        requests = [
            r for r in await LeaveService._user_requests(db, user_id)
            if r.id != exclude_request_id
        ]
        counting = balance_counting()

        balance = compute_balance(
            user.conges_total_days, requests, holidays, counting
        )
        requested = range_days(start, end, holidays, counting)
        return LeavePreviewOut(
            start_date=start,
            end_date=end,
            day_count=count_days(start, end, holidays or {}),
            requested_days=requested,
            balance=balance,
            overlaps_existing=has_overlap(requests, user_id, start, end),
            insufficient_days=requested > balance.balance_after_pending,
        )
