from __future__ import annotations

from typing import Iterable, List, Optional

from sqlmodel import Session, select

from ..models.common import utcnow
from ..models.membership import Membership, MemberStatus
from ..models.notification import Notification
from .authz import active_admin_ids


def notify(
    session: Session,
    *,
    user_id: int,
    type: str,
    title: str,
    body: str = "",
    club_id: Optional[int] = None,
    link_url: Optional[str] = None,
) -> Notification:
    n = Notification(
        user_id=user_id,
        type=type,
        title=title,
        body=body,
        club_id=club_id,
        link_url=link_url,
        created_at=utcnow(),
    )
    session.add(n)
    return n


def notify_many(session: Session, user_ids: Iterable[int], **kwargs) -> List[Notification]:
    return [notify(session, user_id=uid, **kwargs) for uid in user_ids]


def notify_club_admins(session: Session, club_id: int, **kwargs) -> List[Notification]:
    return notify_many(session, active_admin_ids(session, club_id), club_id=club_id, **kwargs)


def notify_club_members(
    session: Session,
    club_id: int,
    *,
    exclude_user_id: Optional[int] = None,
    **kwargs,
) -> List[Notification]:
    member_ids = session.exec(
        select(Membership.user_id).where(
            Membership.club_id == club_id,
            Membership.status == MemberStatus.ACTIVE,
        )
    ).all()
    targets = [uid for uid in member_ids if uid != exclude_user_id]
    return notify_many(session, targets, club_id=club_id, **kwargs)


def list_for_user(session: Session, user_id: int, *, unread_only: bool = False) -> List[Notification]:
    q = select(Notification).where(Notification.user_id == user_id)
    if unread_only:
        q = q.where(Notification.read == False)  # noqa: E712
    q = q.order_by(Notification.created_at.desc(), Notification.id.desc())
    return list(session.exec(q).all())


def mark_all_read(session: Session, user_id: int) -> int:
    rows = list_for_user(session, user_id, unread_only=True)
    for n in rows:
        n.read = True
        session.add(n)
    return len(rows)
