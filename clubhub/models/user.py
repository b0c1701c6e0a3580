from __future__ import annotations

import re
from datetime import date, datetime
from enum import Enum
from typing import Optional

from sqlmodel import SQLModel, Field

from .common import utcnow

E164_PATTERN = re.compile(r"^\+[1-9]\d{6,14}$")


def is_e164(phone: Optional[str]) -> bool:
    return bool(phone) and bool(E164_PATTERN.match(phone))


class Gender(str, Enum):
    MALE = "male"
    FEMALE = "female"


class User(SQLModel, table=True):
    """
    A registered person.

    Notes:
    - phone is the login identity (E.164) and never changes after creation.
    - email is optional but unique when present.
    """

    __tablename__ = "users"

    id: Optional[int] = Field(default=None, primary_key=True)

    phone: str = Field(index=True, unique=True)
    email: Optional[str] = Field(default=None, index=True, unique=True)

    first_name: Optional[str] = Field(default=None)
    last_name: Optional[str] = Field(default=None)
    nickname: Optional[str] = Field(default=None)

    language: str = Field(default="en")
    date_of_birth: Optional[date] = Field(default=None)
    gender: Optional[Gender] = Field(default=None)
    referrer: Optional[str] = Field(default=None)

    created_at: datetime = Field(default_factory=utcnow, index=True)

    def display_name(self) -> str:
        full = " ".join(p for p in (self.first_name, self.last_name) if p)
        return self.nickname or full or self.phone
