from __future__ import annotations

from datetime import datetime, timedelta
from enum import Enum
from typing import Optional

from sqlmodel import SQLModel, Field

from .common import utcnow


class InviteStatus(str, Enum):
    """
    ACTIVE is the only live state; the others are terminal.
    """

    ACTIVE = "ACTIVE"
    CONSUMED = "CONSUMED"
    REVOKED = "REVOKED"
    EXPIRED = "EXPIRED"


class Invite(SQLModel, table=True):
    """
    Invite link for a club. The token is the capability.

    - Targeted invites (target_phone/target_email set) are single use.
    - General invites (no target) stay ACTIVE after use; a club has at most
      one ACTIVE general invite.
    """

    __tablename__ = "invites"

    id: Optional[int] = Field(default=None, primary_key=True)

    club_id: int = Field(foreign_key="clubs.id", index=True)
    token: str = Field(index=True, unique=True)

    target_phone: Optional[str] = Field(default=None, index=True)
    target_email: Optional[str] = Field(default=None, index=True)

    status: InviteStatus = Field(default=InviteStatus.ACTIVE, index=True)

    created_by_user_id: Optional[int] = Field(default=None, foreign_key="users.id", index=True)
    created_at: datetime = Field(default_factory=utcnow, index=True)
    expires_at: datetime = Field(default_factory=lambda: utcnow() + timedelta(days=7), index=True)

    consumed_by_user_id: Optional[int] = Field(default=None, foreign_key="users.id")
    consumed_at: Optional[datetime] = Field(default=None)

    def is_targeted(self) -> bool:
        return bool(self.target_phone or self.target_email)
