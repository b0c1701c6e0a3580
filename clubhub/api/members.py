from __future__ import annotations

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Response
from pydantic import BaseModel
from sqlmodel import Session

from ..database import get_db
from ..models.membership import MemberRole, MemberStatus
from ..models.user import User
from ..services import memberships as membership_service
from ..services.authz import (
    find_membership,
    get_club_or_404,
    get_correlation_id,
    get_current_user,
    require_admin,
    require_member,
    require_self_or_admin,
)

router = APIRouter(prefix="/clubs/{club_id}/members", tags=["members"])


class MemberSettingsPatch(BaseModel):
    show_phone_to_members: Optional[bool] = None
    show_email_to_members: Optional[bool] = None


class MemberAdminPatch(BaseModel):
    role: Optional[MemberRole] = None
    status: Optional[MemberStatus] = None
    admin_notes: Optional[str] = None


@router.get("")
def list_members(
    club_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> List[Dict[str, Any]]:
    get_club_or_404(db, club_id)
    viewer = require_member(db, club_id, user)
    return membership_service.list_members(db, club_id, viewer)


@router.get("/me")
def get_my_membership(
    club_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    return membership_service.member_view(membership_service.current_membership(db, club_id, user.id))


@router.delete("/me", status_code=204)
def leave_club(
    club_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    correlation_id: Optional[str] = Depends(get_correlation_id),
) -> Response:
    membership_service.leave(db, club_id, user, correlation_id=correlation_id)
    return Response(status_code=204)


@router.patch("/me/settings")
def patch_my_settings(
    club_id: int,
    payload: MemberSettingsPatch,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    m = membership_service.update_settings(
        db,
        club_id,
        user,
        show_phone_to_members=payload.show_phone_to_members,
        show_email_to_members=payload.show_email_to_members,
    )
    return membership_service.member_view(m)


@router.get("/by-user/{user_id}")
def get_member(
    club_id: int,
    user_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    """
    A single membership row: visible to its owner and to club admins.
    Admin notes are only shown to admins.
    """
    admin = require_self_or_admin(db, club_id, user, user_id)
    m = find_membership(db, club_id, user_id)
    if not m:
        raise HTTPException(status_code=404, detail="Member not found")
    if admin is None:
        caller = find_membership(db, club_id, user.id)
        admin = caller if caller and caller.is_active_admin() else None
    return membership_service.member_view(m, include_admin_notes=admin is not None)


@router.patch("/by-user/{user_id}")
def admin_update_member(
    club_id: int,
    user_id: int,
    payload: MemberAdminPatch,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    correlation_id: Optional[str] = Depends(get_correlation_id),
) -> Dict[str, Any]:
    require_admin(db, club_id, user)
    fields = payload.model_fields_set
    changes = membership_service.MemberUpdate(
        role=payload.role,
        status=payload.status,
        admin_notes=payload.admin_notes,
        admin_notes_set="admin_notes" in fields,
    )
    m = membership_service.admin_update(db, club_id, user, user_id, changes, correlation_id=correlation_id)
    return membership_service.member_view(m, include_admin_notes=True)
