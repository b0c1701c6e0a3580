from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional

from sqlmodel import SQLModel, Field

from .common import utcnow


class TokenType(str, Enum):
    ACCESS = "access"
    REFRESH = "refresh"


class AuthToken(SQLModel, table=True):
    """
    Issued bearer tokens. A token is only honoured while its row exists,
    is unrevoked and unexpired, so logout and rotation take effect immediately.
    """

    __tablename__ = "auth_tokens"

    id: Optional[int] = Field(default=None, primary_key=True)

    token: str = Field(index=True, unique=True)
    user_id: int = Field(foreign_key="users.id", index=True)
    token_type: TokenType = Field(index=True)

    created_at: datetime = Field(default_factory=utcnow)
    expires_at: datetime = Field(index=True)
    revoked: bool = Field(default=False, index=True)


class OtpCode(SQLModel, table=True):
    """
    One-time login code sent to a phone. Single use.
    """

    __tablename__ = "otp_codes"

    id: Optional[int] = Field(default=None, primary_key=True)

    phone: str = Field(index=True)
    code: str
    created_at: datetime = Field(default_factory=utcnow, index=True)
    used: bool = Field(default=False, index=True)
