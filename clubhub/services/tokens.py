from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Dict, Optional
from uuid import uuid4

from fastapi import HTTPException
from jose import JWTError, jwt
from sqlmodel import Session, select

from ..config import settings
from ..models.auth import AuthToken, TokenType
from ..models.common import is_past, utcnow

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str


def _ttl(token_type: TokenType) -> timedelta:
    if token_type == TokenType.ACCESS:
        return timedelta(seconds=settings.access_token_ttl_seconds)
    return timedelta(seconds=settings.refresh_token_ttl_seconds)


def _unauthorized(message: str = "Unauthorized") -> HTTPException:
    return HTTPException(status_code=401, detail=message)


def encode_token(user_id: int, token_type: TokenType, *, now: Optional[datetime] = None) -> tuple[str, datetime]:
    """
    Sign a JWT for user_id. jti keeps two tokens minted in the same second distinct.
    """
    issued = now or utcnow()
    expires = issued + _ttl(token_type)
    claims = {
        "sub": str(user_id),
        "type": token_type.value,
        "iat": int(issued.timestamp()),
        "exp": int(expires.timestamp()),
        "jti": uuid4().hex,
    }
    return jwt.encode(claims, settings.jwt_secret, algorithm=settings.jwt_algorithm), expires


def decode_token(token: str, *, verify_exp: bool = True) -> Dict[str, Any]:
    """
    Structural + signature check. Raises 401 on anything malformed.
    """
    if not token or token.count(".") != 2:
        raise _unauthorized("Invalid token")
    try:
        claims = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            options={"verify_exp": verify_exp},
        )
    except JWTError:
        raise _unauthorized("Invalid or expired token")

    if not claims.get("sub") or claims.get("type") not in (TokenType.ACCESS.value, TokenType.REFRESH.value):
        raise _unauthorized("Invalid token")
    return claims


def issue(session: Session, user_id: int, token_type: TokenType) -> str:
    """
    Mint a token and record it in the token table (not committed here).
    """
    now = utcnow()
    token, expires = encode_token(user_id, token_type, now=now)
    session.add(
        AuthToken(
            token=token,
            user_id=user_id,
            token_type=token_type,
            created_at=now,
            expires_at=expires,
        )
    )
    return token


def issue_token_pair(session: Session, user_id: int) -> TokenPair:
    return TokenPair(
        access_token=issue(session, user_id, TokenType.ACCESS),
        refresh_token=issue(session, user_id, TokenType.REFRESH),
    )


def verify_token(session: Session, token: str, expected_type: TokenType = TokenType.ACCESS) -> AuthToken:
    """
    Fail closed: malformed, expired, revoked, unknown or wrong-type tokens
    all raise 401.
    """
    claims = decode_token(token)
    if claims.get("type") != expected_type.value:
        raise _unauthorized("Invalid token type")

    row = session.exec(select(AuthToken).where(AuthToken.token == token)).first()
    if not row:
        raise _unauthorized("Unknown token")
    if row.revoked:
        raise _unauthorized("Token has been revoked")
    if is_past(row.expires_at):
        raise _unauthorized("Token expired")
    return row


def revoke_all(session: Session, user_id: int) -> int:
    rows = session.exec(
        select(AuthToken).where(AuthToken.user_id == user_id, AuthToken.revoked == False)  # noqa: E712
    ).all()
    for row in rows:
        row.revoked = True
        session.add(row)
    logger.info("revoked %d token(s) for user %s", len(rows), user_id)
    return len(rows)


def rotate(session: Session, old_refresh_token: str) -> TokenPair:
    """
    Refresh-token rotation: the presented refresh token is revoked and a new
    access/refresh pair is issued.
    """
    claims = decode_token(old_refresh_token, verify_exp=False)
    if claims.get("type") != TokenType.REFRESH.value:
        raise _unauthorized("Invalid refresh token")

    row = session.exec(
        select(AuthToken).where(
            AuthToken.token == old_refresh_token,
            AuthToken.token_type == TokenType.REFRESH,
        )
    ).first()
    if not row or row.revoked:
        raise _unauthorized("Refresh token has been revoked")
    if is_past(row.expires_at):
        raise _unauthorized("Refresh token expired")

    row.revoked = True
    session.add(row)
    pair = issue_token_pair(session, row.user_id)
    logger.info("rotated refresh token for user %s", row.user_id)
    return pair
