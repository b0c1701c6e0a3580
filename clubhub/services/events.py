from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import HTTPException
from sqlalchemy import func
from sqlmodel import Session, select

from ..models.club import Club
from ..models.common import as_utc, utcnow
from ..models.event import Event, EventRegistration, RegistrationStatus
from ..models.user import User
from . import audit
from .notifications import notify_club_members


def _registered_count(session: Session, event_id: int) -> int:
    q = select(func.count()).select_from(EventRegistration).where(
        EventRegistration.event_id == event_id,
        EventRegistration.status == RegistrationStatus.REGISTERED,
    )
    return int(session.exec(q).one() or 0)


def _active_registration(session: Session, event_id: int, user_id: int) -> Optional[EventRegistration]:
    return session.exec(
        select(EventRegistration).where(
            EventRegistration.event_id == event_id,
            EventRegistration.user_id == user_id,
            EventRegistration.status == RegistrationStatus.REGISTERED,
        )
    ).first()


def with_registration_info(session: Session, event: Event, viewer_id: int) -> Dict[str, Any]:
    """
    Event payload plus live registration_count / is_registered for the viewer.
    Computed on read; nothing is cached on the event row.
    """
    data = event.model_dump()
    data["registration_count"] = _registered_count(session, event.id)
    data["is_registered"] = _active_registration(session, event.id, viewer_id) is not None
    return data


def get_event_or_404(session: Session, club_id: int, event_id: int) -> Event:
    event = session.exec(select(Event).where(Event.id == event_id, Event.club_id == club_id)).first()
    if not event:
        raise HTTPException(status_code=404, detail="Event not found")
    return event


def list_events(session: Session, club_id: int, viewer_id: int) -> List[Dict[str, Any]]:
    rows = session.exec(
        select(Event).where(Event.club_id == club_id).order_by(Event.start_time, Event.id)
    ).all()
    return [with_registration_info(session, e, viewer_id) for e in rows]


def create_event(
    session: Session,
    club: Club,
    actor: User,
    *,
    title: str,
    start_time: Optional[datetime],
    end_time: Optional[datetime] = None,
    description: Optional[str] = None,
    location: Optional[str] = None,
    max_participants: Optional[int] = None,
    correlation_id: Optional[str] = None,
) -> Event:
    title = (title or "").strip()
    if not title:
        raise HTTPException(status_code=400, detail="Event title is required")
    if start_time is None:
        raise HTTPException(status_code=400, detail="Start time is required")
    start_time = as_utc(start_time)
    end_time = as_utc(end_time)
    if end_time is not None and end_time < start_time:
        raise HTTPException(status_code=400, detail="End time must not be before start time")

    event = Event(
        club_id=club.id,
        title=title,
        description=description or None,
        location=location or None,
        start_time=start_time,
        end_time=end_time,
        max_participants=max_participants or None,
        created_by_user_id=actor.id,
        created_at=utcnow(),
    )
    session.add(event)
    session.flush()

    notify_club_members(
        session,
        club.id,
        exclude_user_id=actor.id,
        type="EVENT_CREATED",
        title="New Event",
        body=f"{event.title} in {club.name}",
        link_url=f"/clubs/{club.id}?tab=events",
    )
    audit.record(
        session,
        club_id=club.id,
        action="EVENT_CREATED",
        event_category=audit.Category.EVENT,
        target_type="EVENT",
        target_id=event.id,
        actor_user_id=actor.id,
        status_code=201,
        correlation_id=correlation_id,
    )
    session.commit()
    session.refresh(event)
    return event


def register(session: Session, event: Event, user: User) -> EventRegistration:
    """
    Sign up for an event: one live registration per user (409), and
    REGISTERED rows may not exceed max_participants (403).
    """
    if _active_registration(session, event.id, user.id):
        raise HTTPException(status_code=409, detail="Already registered")

    if event.max_participants and _registered_count(session, event.id) >= event.max_participants:
        raise HTTPException(status_code=403, detail="Event is full")

    reg = EventRegistration(
        event_id=event.id,
        user_id=user.id,
        status=RegistrationStatus.REGISTERED,
        created_at=utcnow(),
    )
    session.add(reg)
    session.commit()
    session.refresh(reg)
    return reg


def unregister(session: Session, event: Event, user: User) -> EventRegistration:
    reg = _active_registration(session, event.id, user.id)
    if not reg:
        raise HTTPException(status_code=404, detail="Not registered")
    reg.status = RegistrationStatus.CANCELLED
    reg.cancelled_at = utcnow()
    session.add(reg)
    session.commit()
    session.refresh(reg)
    return reg
