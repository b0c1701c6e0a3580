from __future__ import annotations

import logging
import secrets
from datetime import timedelta
from typing import List, Optional

from fastapi import HTTPException
from sqlmodel import Session, select

from ..config import settings
from ..models.club import Club
from ..models.common import is_past, utcnow
from ..models.invite import Invite, InviteStatus
from ..models.membership import Membership
from ..models.user import User, is_e164
from . import audit
from .authz import find_membership, get_club_or_404
from .memberships import activate_membership, ensure_capacity
from .notifications import notify_club_admins

logger = logging.getLogger(__name__)

INVALID_LINK = "Invalid or expired invite link"


def new_token() -> str:
    return secrets.token_hex(16)


def _expire_if_stale(session: Session, invite: Invite) -> bool:
    """
    ACTIVE -> EXPIRED once expires_at has passed. Returns True if it flipped.
    """
    if invite.status == InviteStatus.ACTIVE and is_past(invite.expires_at):
        invite.status = InviteStatus.EXPIRED
        session.add(invite)
        logger.info("invite %s for club %s expired", invite.id, invite.club_id)
        return True
    return False


def create_invite(
    session: Session,
    club_id: int,
    actor: User,
    *,
    target_phone: Optional[str] = None,
    target_email: Optional[str] = None,
    correlation_id: Optional[str] = None,
) -> Invite:
    """
    Issue an invite. A general (untargeted) invite replaces any ACTIVE general
    invite of the club, which is revoked. Targeted invites never displace others.
    """
    target_phone = (target_phone or "").strip() or None
    target_email = (target_email or "").strip() or None
    if target_phone and not is_e164(target_phone):
        raise HTTPException(status_code=400, detail="Invalid phone format. Must be E.164 (e.g., +1234567890)")

    if not (target_phone or target_email):
        previous = session.exec(
            select(Invite).where(
                Invite.club_id == club_id,
                Invite.status == InviteStatus.ACTIVE,
                Invite.target_phone == None,  # noqa: E711
                Invite.target_email == None,  # noqa: E711
            )
        ).all()
        for old in previous:
            old.status = InviteStatus.REVOKED
            session.add(old)

    now = utcnow()
    invite = Invite(
        club_id=club_id,
        token=new_token(),
        target_phone=target_phone,
        target_email=target_email,
        status=InviteStatus.ACTIVE,
        created_by_user_id=actor.id,
        created_at=now,
        expires_at=now + timedelta(days=settings.invite_ttl_days),
    )
    session.add(invite)
    session.flush()

    audit.record(
        session,
        club_id=club_id,
        action="INVITE_CREATED",
        event_category=audit.Category.MEMBER,
        target_type="INVITE",
        target_id=invite.id,
        actor_user_id=actor.id,
        status_code=201,
        correlation_id=correlation_id,
    )
    session.commit()
    session.refresh(invite)
    logger.info("invite %s created for club %s (targeted=%s)", invite.id, club_id, invite.is_targeted())
    return invite


def list_invites(session: Session, club_id: int) -> List[Invite]:
    rows = list(
        session.exec(
            select(Invite).where(Invite.club_id == club_id).order_by(Invite.created_at.desc(), Invite.id.desc())
        ).all()
    )
    if any([_expire_if_stale(session, inv) for inv in rows]):
        session.commit()
        for inv in rows:
            session.refresh(inv)
    return rows


def revoke_invite(
    session: Session,
    club_id: int,
    invite_id: int,
    actor: User,
    *,
    correlation_id: Optional[str] = None,
) -> Invite:
    """
    ACTIVE -> REVOKED. Terminal invites are left as they are (409).
    """
    invite = session.exec(select(Invite).where(Invite.id == invite_id, Invite.club_id == club_id)).first()
    if not invite:
        raise HTTPException(status_code=404, detail="Invite not found")

    if _expire_if_stale(session, invite):
        session.commit()
    if invite.status != InviteStatus.ACTIVE:
        raise HTTPException(status_code=409, detail=f"Invite is already {invite.status.value}")

    invite.status = InviteStatus.REVOKED
    session.add(invite)
    audit.record(
        session,
        club_id=club_id,
        action="INVITE_REVOKED",
        event_category=audit.Category.MEMBER,
        target_type="INVITE",
        target_id=invite.id,
        actor_user_id=actor.id,
        correlation_id=correlation_id,
    )
    session.commit()
    session.refresh(invite)
    return invite


def get_live_invite(session: Session, token: str) -> Invite:
    """
    Resolve a token to an ACTIVE, unexpired invite.

    - unknown or non-ACTIVE token: 404
    - ACTIVE but past expires_at: flipped to EXPIRED (committed) and 410,
      so the link reports "expired" rather than "not found".
    """
    invite = session.exec(
        select(Invite).where(Invite.token == token, Invite.status == InviteStatus.ACTIVE)
    ).first()
    if not invite:
        raise HTTPException(status_code=404, detail=INVALID_LINK)

    if _expire_if_stale(session, invite):
        session.commit()
        raise HTTPException(status_code=410, detail="Invite has expired")
    return invite


def preview(session: Session, token: str) -> tuple[Club, Invite]:
    invite = get_live_invite(session, token)
    club = get_club_or_404(session, invite.club_id)
    return club, invite


def _matches_target(invite: Invite, user: User) -> bool:
    if invite.target_phone and invite.target_phone != user.phone:
        return False
    if invite.target_email and invite.target_email != user.email:
        return False
    return True


def accept(
    session: Session,
    token: str,
    user: User,
    *,
    correlation_id: Optional[str] = None,
) -> Membership:
    """
    Join a club through an invite.

    Order of checks: live invite, target match, not already a member, club
    open, below member limit. Targeted invites are consumed; general invites
    stay ACTIVE for the next person.
    """
    invite = get_live_invite(session, token)
    club = get_club_or_404(session, invite.club_id)

    if invite.is_targeted() and not _matches_target(invite, user):
        raise HTTPException(status_code=403, detail="This invite is for a different user")

    existing = find_membership(session, club.id, user.id)
    if existing and existing.is_active():
        raise HTTPException(status_code=409, detail="Already a member")

    ensure_capacity(session, club)

    membership = activate_membership(session, club.id, user.id)

    if invite.is_targeted():
        invite.status = InviteStatus.CONSUMED
        invite.consumed_by_user_id = user.id
        invite.consumed_at = utcnow()
        session.add(invite)

    session.flush()
    audit.record(
        session,
        club_id=club.id,
        action="INVITE_ACCEPTED",
        event_category=audit.Category.MEMBER,
        target_type="INVITE",
        target_id=invite.id,
        actor_user_id=user.id,
        correlation_id=correlation_id,
    )
    notify_club_admins(
        session,
        club.id,
        type="MEMBER_JOINED",
        title="New member",
        body=f"{user.display_name()} joined {club.name}",
        link_url=f"/clubs/{club.id}?tab=members",
    )
    session.commit()
    session.refresh(membership)
    logger.info("user %s joined club %s via invite %s", user.id, club.id, invite.id)
    return membership
