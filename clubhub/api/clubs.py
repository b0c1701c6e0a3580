from __future__ import annotations

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Response
from pydantic import BaseModel, Field as PydField, field_validator
from sqlmodel import Session

from ..database import get_db
from ..models.club import Club, ClubType, JoinMode
from ..models.user import User
from ..services import clubs as club_service
from ..services.authz import get_club_or_404, get_correlation_id, get_current_user, require_admin

router = APIRouter(prefix="/clubs", tags=["clubs"])

REQUIRED_FIELDS = ("name", "type", "join_mode", "is_accepting_new_members")


# -------------------------
# Schemas (do NOT use DB model as input)
# -------------------------

class ClubCreate(BaseModel):
    name: str = PydField(..., min_length=1)
    description: Optional[str] = None
    type: ClubType = ClubType.CASUAL
    join_mode: JoinMode = JoinMode.APPLY_TO_JOIN
    is_accepting_new_members: bool = True
    active_member_limit: Optional[int] = PydField(default=None, ge=1)
    levels_accepted: List[str] = PydField(default_factory=list)
    location: Optional[Dict[str, Any]] = None
    badge: Optional[str] = None
    rules: Optional[str] = None

    @field_validator("name")
    @classmethod
    def _name_not_blank(cls, v: str) -> str:
        s = v.strip()
        if not s:
            raise ValueError("Club name is required")
        return s


class ClubPatch(BaseModel):
    """
    Partial update. Any field omitted is left unchanged;
    active_member_limit may be set to null to lift the cap.
    """
    name: Optional[str] = PydField(default=None, min_length=1)
    description: Optional[str] = None
    type: Optional[ClubType] = None
    join_mode: Optional[JoinMode] = None
    is_accepting_new_members: Optional[bool] = None
    active_member_limit: Optional[int] = PydField(default=None, ge=1)
    levels_accepted: Optional[List[str]] = None
    location: Optional[Dict[str, Any]] = None
    badge: Optional[str] = None
    rules: Optional[str] = None


# -------------------------
# Routes
# -------------------------

@router.get("", response_model=List[Club])
def list_my_clubs(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> List[Club]:
    return club_service.list_for_user(db, user.id)


@router.post("", response_model=Club, status_code=201)
def create_club(
    payload: ClubCreate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    correlation_id: Optional[str] = Depends(get_correlation_id),
) -> Club:
    return club_service.create_club(db, user, payload.model_dump(), correlation_id=correlation_id)


@router.get("/{club_id}", response_model=Club)
def get_club(
    club_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> Club:
    return get_club_or_404(db, club_id)


@router.patch("/{club_id}", response_model=Club)
def patch_club(
    club_id: int,
    payload: ClubPatch,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    correlation_id: Optional[str] = Depends(get_correlation_id),
) -> Club:
    club = get_club_or_404(db, club_id)
    require_admin(db, club_id, user)
    changes = payload.model_dump(exclude_unset=True)
    # these columns are NOT NULL; an explicit null means "leave it"
    for key in REQUIRED_FIELDS:
        if key in changes and changes[key] is None:
            changes.pop(key)
    return club_service.update_club(db, club, user, changes, correlation_id=correlation_id)


@router.delete("/{club_id}", status_code=204)
def delete_club(
    club_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    correlation_id: Optional[str] = Depends(get_correlation_id),
) -> Response:
    club = get_club_or_404(db, club_id)
    require_admin(db, club_id, user)
    club_service.disband(db, club, user, action="CLUB_DELETED", correlation_id=correlation_id)
    return Response(status_code=204)


@router.post("/{club_id}/disband", status_code=204)
def disband_club(
    club_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    correlation_id: Optional[str] = Depends(get_correlation_id),
) -> Response:
    club = get_club_or_404(db, club_id)
    require_admin(db, club_id, user)
    club_service.disband(db, club, user, correlation_id=correlation_id)
    return Response(status_code=204)
