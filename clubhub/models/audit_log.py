from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlmodel import SQLModel, Field

from .common import utcnow


class AuditLog(SQLModel, table=True):
    """
    Append-only record of privileged club actions.

    club_id is not a foreign key: entries outlive a disbanded club.
    Ids are monotonically increasing, which is what cursor pagination keys on.
    """

    __tablename__ = "audit_logs"

    id: Optional[int] = Field(default=None, primary_key=True)

    club_id: int = Field(index=True)
    action: str = Field(index=True)
    event_category: str = Field(index=True)

    target_type: Optional[str] = Field(default=None)
    target_id: Optional[str] = Field(default=None)
    actor_user_id: Optional[int] = Field(default=None, index=True)

    result: str = Field(default="SUCCESS", index=True)
    status_code: int = Field(default=200)
    correlation_id: Optional[str] = Field(default=None, index=True)

    created_at: datetime = Field(default_factory=utcnow, index=True)
