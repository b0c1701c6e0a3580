from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import delete
from sqlmodel import Session, select

from ..models.application import Application
from ..models.club import Club, JoinMode
from ..models.common import utcnow
from ..models.event import Event, EventRegistration
from ..models.invite import Invite
from ..models.membership import Membership, MemberRole, MemberStatus
from ..models.user import User
from . import audit

logger = logging.getLogger(__name__)

# Fields an admin may change through PATCH /clubs/{id}
EDITABLE_FIELDS = (
    "name",
    "description",
    "type",
    "join_mode",
    "is_accepting_new_members",
    "active_member_limit",
    "levels_accepted",
    "location",
    "badge",
    "rules",
)


def normalize_levels(levels: Optional[Iterable[str]]) -> List[str]:
    """
    Levels are a set: trimmed, blanks dropped, first occurrence wins.
    """
    out: List[str] = []
    for raw in levels or []:
        s = str(raw).strip()
        if s and s not in out:
            out.append(s)
    return out


def create_club(session: Session, creator: User, fields: Dict[str, Any], *, correlation_id: Optional[str] = None) -> Club:
    """
    Create a club; its creator becomes the first ACTIVE ADMIN.
    """
    now = utcnow()
    data = dict(fields)
    data["levels_accepted"] = normalize_levels(data.get("levels_accepted"))
    club = Club(**data, created_at=now, updated_at=now)
    session.add(club)
    session.flush()

    session.add(
        Membership(
            user_id=creator.id,
            club_id=club.id,
            role=MemberRole.ADMIN,
            status=MemberStatus.ACTIVE,
            created_at=now,
            updated_at=now,
        )
    )
    audit.record(
        session,
        club_id=club.id,
        action="CLUB_CREATED",
        event_category=audit.Category.CLUB,
        target_type="CLUB",
        target_id=club.id,
        actor_user_id=creator.id,
        status_code=201,
        correlation_id=correlation_id,
    )
    session.commit()
    session.refresh(club)
    return club


def update_club(
    session: Session,
    club: Club,
    actor: User,
    changes: Dict[str, Any],
    *,
    correlation_id: Optional[str] = None,
) -> Club:
    for key, value in changes.items():
        if key not in EDITABLE_FIELDS:
            continue
        if key == "levels_accepted":
            value = normalize_levels(value)
        setattr(club, key, value)
    club.touch()
    session.add(club)

    audit.record(
        session,
        club_id=club.id,
        action="CLUB_UPDATED",
        event_category=audit.Category.CLUB,
        target_type="CLUB",
        target_id=club.id,
        actor_user_id=actor.id,
        correlation_id=correlation_id,
    )
    session.commit()
    session.refresh(club)
    return club


def disband(
    session: Session,
    club: Club,
    actor: User,
    *,
    action: str = "CLUB_DISBANDED",
    correlation_id: Optional[str] = None,
) -> None:
    """
    Delete a club and everything scoped to it (memberships, invites,
    applications, events, event registrations). Audit entries and
    notifications are kept. Other clubs are untouched.
    """
    club_id = club.id
    audit.record(
        session,
        club_id=club_id,
        action=action,
        event_category=audit.Category.CLUB,
        target_type="CLUB",
        target_id=club_id,
        actor_user_id=actor.id,
        status_code=204,
        correlation_id=correlation_id,
    )

    event_ids = select(Event.id).where(Event.club_id == club_id)
    session.execute(delete(EventRegistration).where(EventRegistration.event_id.in_(event_ids)))
    session.execute(delete(Event).where(Event.club_id == club_id))
    session.execute(delete(Membership).where(Membership.club_id == club_id))
    session.execute(delete(Invite).where(Invite.club_id == club_id))
    session.execute(delete(Application).where(Application.club_id == club_id))
    session.delete(club)
    session.commit()
    logger.info("club %s removed (%s) by user %s", club_id, action, actor.id)


def list_for_user(session: Session, user_id: int) -> List[Club]:
    q = (
        select(Club)
        .join(Membership, Membership.club_id == Club.id)
        .where(Membership.user_id == user_id, Membership.status != MemberStatus.REMOVED)
        .order_by(Club.created_at, Club.id)
    )
    return list(session.exec(q).all())


def search(session: Session, user_id: int, text: Optional[str] = None) -> List[Club]:
    """
    Clubs the user can see in search: ones they belong to, plus clubs open to
    applications that are accepting members. Case-insensitive name/description match.
    """
    needle = (text or "").strip().lower()
    my_club_ids = set(
        session.exec(
            select(Membership.club_id).where(
                Membership.user_id == user_id,
                Membership.status != MemberStatus.REMOVED,
            )
        ).all()
    )

    out: List[Club] = []
    for club in session.exec(select(Club).order_by(Club.name, Club.id)).all():
        if needle:
            haystack = f"{club.name}\n{club.description or ''}".lower()
            if needle not in haystack:
                continue
        if club.id in my_club_ids:
            out.append(club)
        elif club.join_mode == JoinMode.APPLY_TO_JOIN and club.is_accepting_new_members:
            out.append(club)
    return out
