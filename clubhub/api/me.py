from __future__ import annotations

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, EmailStr
from sqlmodel import Session, select

from ..database import get_db
from ..models.club import Club
from ..models.notification import Notification
from ..models.user import User
from ..services import applications as application_service
from ..services import clubs as club_service
from ..services import notifications as notification_service
from ..services.authz import get_correlation_id, get_current_user
from .auth import profile

router = APIRouter(prefix="/me", tags=["me"])


class ProfilePatch(BaseModel):
    """
    Partial profile update. Any field omitted is left unchanged.
    phone is not accepted: it is the login identity.
    """
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    nickname: Optional[str] = None
    email: Optional[EmailStr] = None
    language: Optional[str] = None


@router.get("")
def get_me(user: User = Depends(get_current_user)) -> Dict[str, Any]:
    return profile(user)


@router.patch("")
def patch_me(
    payload: ProfilePatch,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    changes = payload.model_dump(exclude_unset=True)
    # language is NOT NULL on the row; an explicit null leaves it unchanged
    if changes.get("language", "") is None:
        changes.pop("language")

    if changes.get("email"):
        email = str(changes["email"])
        clash = db.exec(select(User).where(User.email == email, User.id != user.id)).first()
        if clash:
            raise HTTPException(status_code=409, detail="Email already in use")
        changes["email"] = email

    for key, value in changes.items():
        setattr(user, key, value)

    db.add(user)
    db.commit()
    db.refresh(user)
    return profile(user)


# -------------------------
# Applications
# -------------------------

@router.get("/applications")
def my_applications(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> List[Dict[str, Any]]:
    return [application_service.applicant_view(a) for a in application_service.list_for_user(db, user.id)]


@router.post("/applications/{application_id}/cancel")
def cancel_application(
    application_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    correlation_id: Optional[str] = Depends(get_correlation_id),
) -> Dict[str, Any]:
    app = application_service.cancel(db, application_id, user, correlation_id=correlation_id)
    return application_service.applicant_view(app)


# -------------------------
# Club discovery
# -------------------------

@router.get("/clubs/search", response_model=List[Club])
def search_clubs(
    q: Optional[str] = None,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> List[Club]:
    return club_service.search(db, user.id, q)


# -------------------------
# Notifications
# -------------------------

@router.get("/notifications", response_model=List[Notification])
def my_notifications(
    unread_only: bool = False,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> List[Notification]:
    return notification_service.list_for_user(db, user.id, unread_only=unread_only)


@router.post("/notifications")
def mark_all_notifications_read(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    updated = notification_service.mark_all_read(db, user.id)
    db.commit()
    return {"ok": True, "updated": updated}


@router.post("/notifications/{notification_id}/read", response_model=Notification)
def mark_notification_read(
    notification_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> Notification:
    n = db.get(Notification, notification_id)
    if not n or n.user_id != user.id:
        raise HTTPException(status_code=404, detail="Notification not found")
    n.read = True
    db.add(n)
    db.commit()
    db.refresh(n)
    return n
