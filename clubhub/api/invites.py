from __future__ import annotations

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, EmailStr
from sqlmodel import Session

from ..database import get_db
from ..models.invite import Invite
from ..models.user import User
from ..services import invites as invite_service
from ..services import memberships as membership_service
from ..services.authz import get_club_or_404, get_correlation_id, get_current_user, require_admin

# Admin side lives under the club; the link side is addressed by token alone.
router = APIRouter(prefix="/clubs/{club_id}/invites", tags=["invites"])
public_router = APIRouter(prefix="/invites", tags=["invites"])


class InviteCreate(BaseModel):
    """
    Leave both targets empty for a general (shareable) link.
    """
    target_phone: Optional[str] = None
    target_email: Optional[EmailStr] = None


# -------------------------
# Club admin
# -------------------------

@router.get("", response_model=List[Invite])
def list_invites(
    club_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> List[Invite]:
    get_club_or_404(db, club_id)
    require_admin(db, club_id, user)
    return invite_service.list_invites(db, club_id)


@router.post("", response_model=Invite, status_code=201)
def create_invite(
    club_id: int,
    payload: InviteCreate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    correlation_id: Optional[str] = Depends(get_correlation_id),
) -> Invite:
    get_club_or_404(db, club_id)
    require_admin(db, club_id, user)
    return invite_service.create_invite(
        db,
        club_id,
        user,
        target_phone=payload.target_phone,
        target_email=str(payload.target_email) if payload.target_email else None,
        correlation_id=correlation_id,
    )


@router.post("/{invite_id}/revoke", response_model=Invite)
def revoke_invite(
    club_id: int,
    invite_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    correlation_id: Optional[str] = Depends(get_correlation_id),
) -> Invite:
    get_club_or_404(db, club_id)
    require_admin(db, club_id, user)
    return invite_service.revoke_invite(db, club_id, invite_id, user, correlation_id=correlation_id)


# -------------------------
# Invite link
# -------------------------

@public_router.get("/{token}")
def preview_invite(token: str, db: Session = Depends(get_db)) -> Dict[str, Any]:
    """
    What someone holding the link sees before signing in.
    """
    club, invite = invite_service.preview(db, token)
    return {
        "club": club.model_dump(),
        "invite": {
            "id": invite.id,
            "token": invite.token,
            "target_phone": invite.target_phone,
            "target_email": invite.target_email,
            "expires_at": invite.expires_at,
            "status": invite.status,
        },
    }


@public_router.post("/{token}/accept")
def accept_invite(
    token: str,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    correlation_id: Optional[str] = Depends(get_correlation_id),
) -> Dict[str, Any]:
    m = invite_service.accept(db, token, user, correlation_id=correlation_id)
    return membership_service.member_view(m)
