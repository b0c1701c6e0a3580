from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlmodel import SQLModel, Field

from .common import utcnow


class Notification(SQLModel, table=True):
    __tablename__ = "notifications"

    id: Optional[int] = Field(default=None, primary_key=True)

    user_id: int = Field(foreign_key="users.id", index=True)
    type: str = Field(index=True)  # e.g. MEMBER_JOINED, EVENT_CREATED
    title: str
    body: str = Field(default="")

    # Not a foreign key: notifications survive a disbanded club
    club_id: Optional[int] = Field(default=None, index=True)
    link_url: Optional[str] = Field(default=None)

    read: bool = Field(default=False, index=True)
    created_at: datetime = Field(default_factory=utcnow, index=True)
