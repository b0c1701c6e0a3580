from __future__ import annotations

from typing import List, Optional

from fastapi import Depends, Header, HTTPException, Request
from sqlalchemy import func
from sqlmodel import Session, select

from ..database import get_db
from ..models.auth import TokenType
from ..models.club import Club
from ..models.membership import Membership, MemberRole, MemberStatus
from ..models.user import User
from .tokens import verify_token


# -------------------------
# Caller identity (401)
# -------------------------

def bearer_token(authorization: Optional[str]) -> str:
    if not authorization or not authorization.startswith("Bearer "):
        raise HTTPException(status_code=401, detail="Unauthorized")
    token = authorization[len("Bearer "):].strip()
    if not token:
        raise HTTPException(status_code=401, detail="Unauthorized")
    return token


def get_current_user(
    authorization: Optional[str] = Header(default=None),
    db: Session = Depends(get_db),
) -> User:
    """
    FastAPI dependency: resolve the caller from an access token.
    Anything short of a live access token for an existing user is 401.
    """
    token = bearer_token(authorization)
    row = verify_token(db, token, TokenType.ACCESS)
    user = db.get(User, row.user_id)
    if not user:
        raise HTTPException(status_code=401, detail="Unauthorized")
    return user


def get_correlation_id(request: Request) -> Optional[str]:
    return getattr(request.state, "correlation_id", None)


# -------------------------
# Club-scoped authorization (403)
# -------------------------

def get_club_or_404(session: Session, club_id: int) -> Club:
    club = session.get(Club, club_id)
    if not club:
        raise HTTPException(status_code=404, detail="Club not found")
    return club


def find_membership(session: Session, club_id: int, user_id: int) -> Optional[Membership]:
    return session.exec(
        select(Membership).where(Membership.club_id == club_id, Membership.user_id == user_id)
    ).first()


def require_admin(session: Session, club_id: int, user: User) -> Membership:
    m = find_membership(session, club_id, user.id)
    if not m or not m.is_active_admin():
        raise HTTPException(status_code=403, detail="Admin access required")
    return m


def require_member(session: Session, club_id: int, user: User) -> Membership:
    m = find_membership(session, club_id, user.id)
    if not m or not m.is_active():
        raise HTTPException(status_code=403, detail="Member access required")
    return m


def require_self_or_admin(session: Session, club_id: int, user: User, subject_user_id: int) -> Optional[Membership]:
    """
    Pass if the caller is the subject, or an active admin of the club.
    Returns the caller's admin membership when that is what granted access.
    """
    if user.id == subject_user_id:
        return None
    return require_admin(session, club_id, user)


def active_admin_ids(session: Session, club_id: int) -> List[int]:
    return list(
        session.exec(
            select(Membership.user_id).where(
                Membership.club_id == club_id,
                Membership.role == MemberRole.ADMIN,
                Membership.status == MemberStatus.ACTIVE,
            )
        ).all()
    )


def count_active_members(session: Session, club_id: int) -> int:
    q = select(func.count()).select_from(Membership).where(
        Membership.club_id == club_id,
        Membership.status == MemberStatus.ACTIVE,
    )
    return int(session.exec(q).one() or 0)
