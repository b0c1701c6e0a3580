from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional

from sqlmodel import SQLModel, Field

from .common import utcnow


class ApplicationStatus(str, Enum):
    """
    Review lifecycle state. Everything but PENDING is terminal.
    """

    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    CANCELLED = "CANCELLED"


DEFAULT_DENIAL_REASON = "OTHER"


class Application(SQLModel, table=True):
    """
    Request to join an APPLY_TO_JOIN club.

    Notes:
    - denial_notes are for admins only and are never returned to the applicant.
    - approving activates the applicant's membership.
    """

    __tablename__ = "applications"

    id: Optional[int] = Field(default=None, primary_key=True)

    club_id: int = Field(foreign_key="clubs.id", index=True)
    user_id: int = Field(foreign_key="users.id", index=True)

    status: ApplicationStatus = Field(default=ApplicationStatus.PENDING, index=True)
    denial_reason: Optional[str] = Field(default=None)
    denial_notes: Optional[str] = Field(default=None)

    created_at: datetime = Field(default_factory=utcnow, index=True)
    reviewed_at: Optional[datetime] = Field(default=None)
    reviewed_by_user_id: Optional[int] = Field(default=None, foreign_key="users.id")

    def is_pending(self) -> bool:
        return self.status == ApplicationStatus.PENDING
