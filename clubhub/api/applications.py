from __future__ import annotations

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlmodel import Session

from ..database import get_db
from ..models.application import ApplicationStatus
from ..models.user import User
from ..services import applications as application_service
from ..services.authz import get_club_or_404, get_correlation_id, get_current_user, require_admin

router = APIRouter(prefix="/clubs/{club_id}/applications", tags=["applications"])


class RejectRequest(BaseModel):
    denial_reason: Optional[str] = None
    denial_notes: Optional[str] = None


# -------------------------
# Applicant
# -------------------------

@router.post("", status_code=201)
def apply_to_club(
    club_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    correlation_id: Optional[str] = Depends(get_correlation_id),
) -> Dict[str, Any]:
    app = application_service.apply(db, club_id, user, correlation_id=correlation_id)
    return application_service.applicant_view(app)


@router.get("/me")
def my_latest_application(
    club_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    app = application_service.latest_for_user(db, club_id, user.id)
    return application_service.applicant_view(app)


# -------------------------
# Review (admin)
# -------------------------

@router.get("")
def list_applications(
    club_id: int,
    status: Optional[ApplicationStatus] = None,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> List[Dict[str, Any]]:
    get_club_or_404(db, club_id)
    require_admin(db, club_id, user)
    return application_service.list_for_club(db, club_id, status=status)


@router.post("/{application_id}/approve")
def approve_application(
    club_id: int,
    application_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    correlation_id: Optional[str] = Depends(get_correlation_id),
) -> Dict[str, Any]:
    get_club_or_404(db, club_id)
    require_admin(db, club_id, user)
    app = application_service.approve(db, club_id, application_id, user, correlation_id=correlation_id)
    return application_service.admin_view(app, db.get(User, app.user_id))


@router.post("/{application_id}/reject")
def reject_application(
    club_id: int,
    application_id: int,
    payload: Optional[RejectRequest] = None,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    correlation_id: Optional[str] = Depends(get_correlation_id),
) -> Dict[str, Any]:
    get_club_or_404(db, club_id)
    require_admin(db, club_id, user)
    payload = payload or RejectRequest()
    app = application_service.reject(
        db,
        club_id,
        application_id,
        user,
        denial_reason=payload.denial_reason,
        denial_notes=payload.denial_notes,
        correlation_id=correlation_id,
    )
    return application_service.admin_view(app, db.get(User, app.user_id))
