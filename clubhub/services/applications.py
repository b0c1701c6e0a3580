from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from fastapi import HTTPException
from sqlmodel import Session, select

from ..models.application import Application, ApplicationStatus, DEFAULT_DENIAL_REASON
from ..models.club import JoinMode
from ..models.common import utcnow
from ..models.user import User
from . import audit
from .authz import find_membership, get_club_or_404
from .memberships import activate_membership, ensure_capacity
from .notifications import notify, notify_club_admins

logger = logging.getLogger(__name__)


def applicant_view(app: Application) -> Dict[str, Any]:
    """
    What the applicant may see: everything except the admin-only notes.
    """
    data = app.model_dump()
    data.pop("denial_notes", None)
    return data


def admin_view(app: Application, user: Optional[User]) -> Dict[str, Any]:
    data = app.model_dump()
    data["user"] = (
        {
            "id": user.id,
            "first_name": user.first_name,
            "last_name": user.last_name,
            "phone": user.phone,
            "email": user.email,
        }
        if user
        else None
    )
    return data


def _get_in_club(session: Session, club_id: int, application_id: int) -> Application:
    app = session.exec(
        select(Application).where(Application.id == application_id, Application.club_id == club_id)
    ).first()
    if not app:
        raise HTTPException(status_code=404, detail="Application not found")
    return app


def _ensure_pending(app: Application) -> None:
    if not app.is_pending():
        raise HTTPException(status_code=409, detail=f"Application is already {app.status.value}")


def apply(session: Session, club_id: int, user: User, *, correlation_id: Optional[str] = None) -> Application:
    """
    Ask to join an APPLY_TO_JOIN club.

    Rules:
    - invite-only clubs refuse applications (400)
    - active members cannot apply (400)
    - one PENDING application per (club, user) (409)
    """
    club = get_club_or_404(session, club_id)
    if club.join_mode != JoinMode.APPLY_TO_JOIN:
        raise HTTPException(status_code=400, detail="Club is invite-only")

    existing = find_membership(session, club_id, user.id)
    if existing and existing.is_active():
        raise HTTPException(status_code=400, detail="Already a member")

    pending = session.exec(
        select(Application).where(
            Application.club_id == club_id,
            Application.user_id == user.id,
            Application.status == ApplicationStatus.PENDING,
        )
    ).first()
    if pending:
        raise HTTPException(status_code=409, detail="Application already pending")

    app = Application(club_id=club_id, user_id=user.id, status=ApplicationStatus.PENDING, created_at=utcnow())
    session.add(app)
    session.flush()

    audit.record(
        session,
        club_id=club_id,
        action="APPLICATION_SUBMITTED",
        event_category=audit.Category.MEMBER,
        target_type="APPLICATION",
        target_id=app.id,
        actor_user_id=user.id,
        status_code=201,
        correlation_id=correlation_id,
    )
    notify_club_admins(
        session,
        club_id,
        type="APPLICATION_SUBMITTED",
        title="New application",
        body=f"{user.display_name()} applied to join {club.name}",
        link_url=f"/clubs/{club_id}?tab=applications",
    )
    session.commit()
    session.refresh(app)
    return app


def list_for_club(session: Session, club_id: int, *, status: Optional[ApplicationStatus] = None) -> List[Dict[str, Any]]:
    q = (
        select(Application, User)
        .join(User, User.id == Application.user_id, isouter=True)
        .where(Application.club_id == club_id)
    )
    if status is not None:
        q = q.where(Application.status == status)
    q = q.order_by(Application.created_at.desc(), Application.id.desc())
    return [admin_view(app, user) for app, user in session.exec(q).all()]


def latest_for_user(session: Session, club_id: int, user_id: int) -> Application:
    app = session.exec(
        select(Application)
        .where(Application.club_id == club_id, Application.user_id == user_id)
        .order_by(Application.created_at.desc(), Application.id.desc())
    ).first()
    if not app:
        raise HTTPException(status_code=404, detail="No application found")
    return app


def list_for_user(session: Session, user_id: int) -> List[Application]:
    return list(
        session.exec(
            select(Application)
            .where(Application.user_id == user_id)
            .order_by(Application.created_at.desc(), Application.id.desc())
        ).all()
    )


def approve(
    session: Session,
    club_id: int,
    application_id: int,
    actor: User,
    *,
    correlation_id: Optional[str] = None,
) -> Application:
    """
    PENDING -> APPROVED. This is where an applicant becomes a member, so the
    club's member limit applies here.
    """
    app = _get_in_club(session, club_id, application_id)
    _ensure_pending(app)
    club = get_club_or_404(session, club_id)

    # an applicant who got in some other way keeps their row (and role) as is
    existing = find_membership(session, club_id, app.user_id)
    if not (existing and existing.is_active()):
        ensure_capacity(session, club)
        activate_membership(session, club_id, app.user_id)

    app.status = ApplicationStatus.APPROVED
    app.reviewed_at = utcnow()
    app.reviewed_by_user_id = actor.id
    session.add(app)

    audit.record(
        session,
        club_id=club_id,
        action="APPLICATION_APPROVED",
        event_category=audit.Category.MEMBER,
        target_type="APPLICATION",
        target_id=app.id,
        actor_user_id=actor.id,
        correlation_id=correlation_id,
    )
    notify(
        session,
        user_id=app.user_id,
        type="APPLICATION_APPROVED",
        title="Application approved",
        body=f"Welcome to {club.name}!",
        club_id=club_id,
        link_url=f"/clubs/{club_id}",
    )
    session.commit()
    session.refresh(app)
    logger.info("application %s approved by user %s", app.id, actor.id)
    return app


def reject(
    session: Session,
    club_id: int,
    application_id: int,
    actor: User,
    *,
    denial_reason: Optional[str] = None,
    denial_notes: Optional[str] = None,
    correlation_id: Optional[str] = None,
) -> Application:
    """
    PENDING -> REJECTED. denial_reason defaults to OTHER; denial_notes stay
    with the admins.
    """
    app = _get_in_club(session, club_id, application_id)
    _ensure_pending(app)
    club = get_club_or_404(session, club_id)

    app.status = ApplicationStatus.REJECTED
    app.denial_reason = (denial_reason or "").strip() or DEFAULT_DENIAL_REASON
    app.denial_notes = denial_notes
    app.reviewed_at = utcnow()
    app.reviewed_by_user_id = actor.id
    session.add(app)

    audit.record(
        session,
        club_id=club_id,
        action="APPLICATION_REJECTED",
        event_category=audit.Category.MEMBER,
        target_type="APPLICATION",
        target_id=app.id,
        actor_user_id=actor.id,
        correlation_id=correlation_id,
    )
    notify(
        session,
        user_id=app.user_id,
        type="APPLICATION_REJECTED",
        title="Application declined",
        body=f"Your application to {club.name} was not accepted",
        club_id=club_id,
    )
    session.commit()
    session.refresh(app)
    logger.info("application %s rejected by user %s (%s)", app.id, actor.id, app.denial_reason)
    return app


def cancel(session: Session, application_id: int, user: User, *, correlation_id: Optional[str] = None) -> Application:
    """
    PENDING -> CANCELLED, by the applicant only.
    """
    app = session.get(Application, application_id)
    if not app or app.user_id != user.id or not app.is_pending():
        raise HTTPException(status_code=404, detail="Application not found or not cancellable")

    app.status = ApplicationStatus.CANCELLED
    session.add(app)
    audit.record(
        session,
        club_id=app.club_id,
        action="APPLICATION_CANCELLED",
        event_category=audit.Category.MEMBER,
        target_type="APPLICATION",
        target_id=app.id,
        actor_user_id=user.id,
        correlation_id=correlation_id,
    )
    session.commit()
    session.refresh(app)
    return app
