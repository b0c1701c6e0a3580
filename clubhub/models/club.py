from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from sqlalchemy import Column
from sqlalchemy.types import JSON
from sqlmodel import SQLModel, Field

from .common import utcnow


class ClubType(str, Enum):
    CASUAL = "CASUAL"
    COMPETITIVE = "COMPETITIVE"


class JoinMode(str, Enum):
    """
    How people get into a club.
    INVITE_ONLY: only through an invite link.
    APPLY_TO_JOIN: anyone may apply; an admin approves.
    """

    INVITE_ONLY = "INVITE_ONLY"
    APPLY_TO_JOIN = "APPLY_TO_JOIN"


class Club(SQLModel, table=True):
    """
    Club configuration.

    Notes:
    - active_member_limit caps ACTIVE memberships (null = unlimited).
    - levels_accepted is a de-duplicated list of free-form level labels.
    - Disbanding deletes the club's memberships, invites, applications and
      events; the audit log keeps its entries.
    """

    __tablename__ = "clubs"

    id: Optional[int] = Field(default=None, primary_key=True)

    name: str = Field(index=True)
    description: Optional[str] = Field(default=None)
    type: ClubType = Field(default=ClubType.CASUAL, index=True)

    join_mode: JoinMode = Field(default=JoinMode.APPLY_TO_JOIN, index=True)
    is_accepting_new_members: bool = Field(default=True, index=True)
    active_member_limit: Optional[int] = Field(default=None)

    levels_accepted: List[str] = Field(default_factory=list, sa_column=Column(JSON))
    location: Optional[Dict[str, Any]] = Field(default=None, sa_column=Column(JSON))
    badge: Optional[str] = Field(default=None)
    rules: Optional[str] = Field(default=None)

    created_at: datetime = Field(default_factory=utcnow, index=True)
    updated_at: datetime = Field(default_factory=utcnow)

    def touch(self) -> None:
        self.updated_at = utcnow()
