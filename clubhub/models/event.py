from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional

from sqlmodel import SQLModel, Field

from .common import utcnow


class Event(SQLModel, table=True):
    __tablename__ = "events"

    id: Optional[int] = Field(default=None, primary_key=True)
    club_id: int = Field(foreign_key="clubs.id", index=True)

    title: str
    description: Optional[str] = Field(default=None)
    location: Optional[str] = Field(default=None)

    start_time: datetime = Field(index=True)
    end_time: Optional[datetime] = Field(default=None, index=True)

    # null = no cap
    max_participants: Optional[int] = Field(default=None)

    created_by_user_id: int = Field(foreign_key="users.id", index=True)
    created_at: datetime = Field(default_factory=utcnow)


class RegistrationStatus(str, Enum):
    REGISTERED = "REGISTERED"
    CANCELLED = "CANCELLED"


class EventRegistration(SQLModel, table=True):
    """
    A user's sign-up for an event. Cancelling keeps the row; signing up
    again adds a new one.
    """

    __tablename__ = "event_registrations"

    id: Optional[int] = Field(default=None, primary_key=True)

    event_id: int = Field(foreign_key="events.id", index=True)
    user_id: int = Field(foreign_key="users.id", index=True)
    status: RegistrationStatus = Field(default=RegistrationStatus.REGISTERED, index=True)

    created_at: datetime = Field(default_factory=utcnow)
    cancelled_at: Optional[datetime] = Field(default=None)
