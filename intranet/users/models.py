"""User directory ORM model.

Profile CRUD lives elsewhere; the leave engine only reads names, role and
contract dates, and owns two columns: the yearly allocation
(``conges_total_days``) and the ``leave_version`` guard counter.
"""

from __future__ import annotations

import uuid
from datetime import date, datetime, timezone
from typing import TYPE_CHECKING, Optional

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from intranet.common.constants import UserRole
from intranet.database import Base

if TYPE_CHECKING:
    from intranet.leave.models import LeaveRequest


class User(Base):
    """Staff member as seen by the leave engine."""

    __tablename__ = "users"

    # ── Primary key ─────────────────────────────────────────────────
    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )

    # ── Identity ────────────────────────────────────────────────────
    email: Mapped[str] = mapped_column(
        sa.String(255), unique=True, nullable=False,
    )
    first_name: Mapped[Optional[str]] = mapped_column(sa.String(100))
    last_name: Mapped[Optional[str]] = mapped_column(sa.String(100))
    role: Mapped[UserRole] = mapped_column(
        sa.Enum(UserRole, name="user_role"),
        nullable=False,
        default=UserRole.user,
    )
    position: Mapped[Optional[str]] = mapped_column(sa.String(150))

    # ── Leave ───────────────────────────────────────────────────────
    conges_enabled: Mapped[bool] = mapped_column(sa.Boolean, default=True)
    conges_total_days: Mapped[int] = mapped_column(
        sa.Integer, nullable=False, default=0,
    )
    # Bumped by every create/edit of this user's requests (compare-and-set)
    leave_version: Mapped[int] = mapped_column(
        sa.Integer, nullable=False, default=0,
    )

    # ── Contract ────────────────────────────────────────────────────
    arrival_date: Mapped[Optional[date]] = mapped_column(sa.Date)
    departure_date: Mapped[Optional[date]] = mapped_column(sa.Date)

    # ── Status / Timestamps ─────────────────────────────────────────
    is_active: Mapped[bool] = mapped_column(sa.Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc),
    )
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc),
    )

    # ── Relationships ───────────────────────────────────────────────
    leave_requests: Mapped[list["LeaveRequest"]] = relationship(
        back_populates="user",
        foreign_keys="LeaveRequest.user_id",
    )

    # ── Helpers ─────────────────────────────────────────────────────

    @property
    def full_name(self) -> Optional[str]:
        """First + last name, or None when neither is set."""
        parts = [self.first_name, self.last_name]
        return " ".join(p for p in parts if p).strip() or None

    @property
    def display_name(self) -> str:
        return self.full_name or self.email

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.admin

    def __repr__(self) -> str:
        return f"<User {self.email} ({self.role.value})>"
