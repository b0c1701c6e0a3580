from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field as PydField
from sqlmodel import Session

from ..database import get_db
from ..models.event import EventRegistration
from ..models.user import User
from ..services import events as event_service
from ..services.authz import get_club_or_404, get_correlation_id, get_current_user, require_admin, require_member

router = APIRouter(prefix="/clubs/{club_id}/events", tags=["events"])


class EventCreate(BaseModel):
    """
    title and start_time are checked by the service so a missing value is a
    400 with a specific message.
    """
    title: str = ""
    description: Optional[str] = None
    location: Optional[str] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    max_participants: Optional[int] = PydField(default=None, ge=1)


@router.get("")
def list_events(
    club_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> List[Dict[str, Any]]:
    get_club_or_404(db, club_id)
    require_member(db, club_id, user)
    return event_service.list_events(db, club_id, user.id)


@router.post("", status_code=201)
def create_event(
    club_id: int,
    payload: EventCreate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    correlation_id: Optional[str] = Depends(get_correlation_id),
) -> Dict[str, Any]:
    club = get_club_or_404(db, club_id)
    require_admin(db, club_id, user)
    event = event_service.create_event(
        db,
        club,
        user,
        title=payload.title,
        start_time=payload.start_time,
        end_time=payload.end_time,
        description=payload.description,
        location=payload.location,
        max_participants=payload.max_participants,
        correlation_id=correlation_id,
    )
    return event_service.with_registration_info(db, event, user.id)


@router.get("/{event_id}")
def get_event(
    club_id: int,
    event_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    get_club_or_404(db, club_id)
    require_member(db, club_id, user)
    event = event_service.get_event_or_404(db, club_id, event_id)
    return event_service.with_registration_info(db, event, user.id)


@router.post("/{event_id}/register", response_model=EventRegistration, status_code=201)
def register_for_event(
    club_id: int,
    event_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> EventRegistration:
    get_club_or_404(db, club_id)
    require_member(db, club_id, user)
    event = event_service.get_event_or_404(db, club_id, event_id)
    return event_service.register(db, event, user)


@router.delete("/{event_id}/register", response_model=EventRegistration)
def unregister_from_event(
    club_id: int,
    event_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> EventRegistration:
    """
    No membership check: someone who left the club can still drop out.
    """
    event = event_service.get_event_or_404(db, club_id, event_id)
    return event_service.unregister(db, event, user)
