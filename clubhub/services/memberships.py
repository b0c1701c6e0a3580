from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from fastapi import HTTPException
from sqlmodel import Session, select

from ..models.club import Club
from ..models.common import utcnow
from ..models.membership import Membership, MemberRole, MemberStatus
from ..models.user import User
from . import audit
from .authz import active_admin_ids, count_active_members, find_membership

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MemberUpdate:
    role: Optional[MemberRole] = None
    status: Optional[MemberStatus] = None
    admin_notes: Optional[str] = None
    admin_notes_set: bool = False


def ensure_capacity(session: Session, club: Club) -> None:
    """
    Joining gate shared by invites and applications:
    the club must be open and below its active member limit.
    """
    if not club.is_accepting_new_members:
        raise HTTPException(status_code=403, detail="Club is not accepting new members")
    limit = club.active_member_limit
    if limit is not None and count_active_members(session, club.id) >= limit:
        raise HTTPException(status_code=403, detail="Club has reached its active member limit")


def activate_membership(session: Session, club_id: int, user_id: int) -> Membership:
    """
    Create-or-reactivate the user's row for the club as an ACTIVE MEMBER.
    Staged, not committed.
    """
    m = find_membership(session, club_id, user_id)
    now = utcnow()
    if m:
        m.role = MemberRole.MEMBER
        m.status = MemberStatus.ACTIVE
        m.updated_at = now
    else:
        m = Membership(
            user_id=user_id,
            club_id=club_id,
            role=MemberRole.MEMBER,
            status=MemberStatus.ACTIVE,
            created_at=now,
            updated_at=now,
        )
    session.add(m)
    return m


def current_membership(session: Session, club_id: int, user_id: int) -> Membership:
    """
    The caller's non-removed membership, else 404.
    """
    m = find_membership(session, club_id, user_id)
    if not m or m.status == MemberStatus.REMOVED:
        raise HTTPException(status_code=404, detail="Membership not found")
    return m


def leave(session: Session, club_id: int, user: User, *, correlation_id: Optional[str] = None) -> Membership:
    """
    Self-service leave. The last active admin may not leave.
    """
    m = current_membership(session, club_id, user.id)

    if m.role == MemberRole.ADMIN:
        others = [uid for uid in active_admin_ids(session, club_id) if uid != user.id]
        if not others:
            raise HTTPException(status_code=400, detail="Cannot leave: you are the last active admin")

    m.status = MemberStatus.REMOVED
    m.updated_at = utcnow()
    session.add(m)
    audit.record(
        session,
        club_id=club_id,
        action="MEMBER_LEFT",
        event_category=audit.Category.MEMBER,
        target_type="MEMBER",
        target_id=m.id,
        actor_user_id=user.id,
        status_code=204,
        correlation_id=correlation_id,
    )
    session.commit()
    return m


def update_settings(
    session: Session,
    club_id: int,
    user: User,
    *,
    show_phone_to_members: Optional[bool] = None,
    show_email_to_members: Optional[bool] = None,
) -> Membership:
    m = current_membership(session, club_id, user.id)
    if show_phone_to_members is not None:
        m.show_phone_to_members = show_phone_to_members
    if show_email_to_members is not None:
        m.show_email_to_members = show_email_to_members
    m.updated_at = utcnow()
    session.add(m)
    session.commit()
    session.refresh(m)
    return m


def admin_update(
    session: Session,
    club_id: int,
    actor: User,
    subject_user_id: int,
    changes: MemberUpdate,
    *,
    correlation_id: Optional[str] = None,
) -> Membership:
    """
    Admin edit of another member's role/status/notes.

    Unlike leave(), this path does not stop an admin from demoting or removing
    the last active admin; when that happens it is logged at WARNING.
    """
    m = find_membership(session, club_id, subject_user_id)
    if not m:
        raise HTTPException(status_code=404, detail="Member not found")

    if changes.role is not None:
        m.role = changes.role
    if changes.status is not None:
        m.status = changes.status
    if changes.admin_notes_set:
        m.admin_notes = changes.admin_notes
    m.updated_at = utcnow()
    session.add(m)

    audit.record(
        session,
        club_id=club_id,
        action="MEMBER_UPDATED",
        event_category=audit.Category.MEMBER,
        target_type="USER",
        target_id=subject_user_id,
        actor_user_id=actor.id,
        correlation_id=correlation_id,
    )
    session.flush()

    if not active_admin_ids(session, club_id):
        logger.warning("club %s has no active admin after member update by user %s", club_id, actor.id)

    session.commit()
    session.refresh(m)
    return m


def _contact_view(user: Optional[User], m: Membership, *, viewer_is_admin: bool) -> Optional[Dict[str, Any]]:
    if not user:
        return None
    return {
        "id": user.id,
        "first_name": user.first_name,
        "last_name": user.last_name,
        "nickname": user.nickname,
        "phone": user.phone if (viewer_is_admin or m.show_phone_to_members) else None,
        "email": user.email if (viewer_is_admin or m.show_email_to_members) else None,
    }


def list_members(session: Session, club_id: int, viewer: Membership) -> List[Dict[str, Any]]:
    """
    Member listing.

    - Admins see every row and every contact field.
    - Members see ACTIVE rows plus their own; phone/email only where the
      row's owner opted in.
    """
    viewer_is_admin = viewer.role == MemberRole.ADMIN
    rows = session.exec(
        select(Membership, User)
        .join(User, User.id == Membership.user_id)
        .where(Membership.club_id == club_id)
        .order_by(Membership.created_at, Membership.id)
    ).all()

    out: List[Dict[str, Any]] = []
    for m, u in rows:
        if not viewer_is_admin and m.status != MemberStatus.ACTIVE and m.user_id != viewer.user_id:
            continue
        item = member_view(m, include_admin_notes=viewer_is_admin)
        item["user"] = _contact_view(u, m, viewer_is_admin=viewer_is_admin)
        out.append(item)
    return out


def member_view(m: Membership, *, include_admin_notes: bool = False) -> Dict[str, Any]:
    data = m.model_dump()
    if not include_admin_notes:
        data.pop("admin_notes", None)
    return data
