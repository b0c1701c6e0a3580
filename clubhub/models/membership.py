from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import UniqueConstraint
from sqlmodel import SQLModel, Field

from .common import utcnow


class MemberRole(str, Enum):
    ADMIN = "ADMIN"
    MEMBER = "MEMBER"


class MemberStatus(str, Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    REMOVED = "REMOVED"


class Membership(SQLModel, table=True):
    """
    One row per (user, club). Leaving or removal flips status to REMOVED;
    joining again reactivates the same row.
    """

    __tablename__ = "memberships"
    __table_args__ = (UniqueConstraint("user_id", "club_id", name="uq_membership_user_club"),)

    id: Optional[int] = Field(default=None, primary_key=True)

    user_id: int = Field(foreign_key="users.id", index=True)
    club_id: int = Field(foreign_key="clubs.id", index=True)

    role: MemberRole = Field(default=MemberRole.MEMBER, index=True)
    status: MemberStatus = Field(default=MemberStatus.ACTIVE, index=True)

    # Contact visibility towards other (non-admin) members
    show_phone_to_members: bool = Field(default=False)
    show_email_to_members: bool = Field(default=False)

    admin_notes: Optional[str] = Field(default=None)

    created_at: datetime = Field(default_factory=utcnow, index=True)
    updated_at: datetime = Field(default_factory=utcnow)

    def is_active(self) -> bool:
        return self.status == MemberStatus.ACTIVE

    def is_active_admin(self) -> bool:
        return self.role == MemberRole.ADMIN and self.status == MemberStatus.ACTIVE
