from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field as PydField
from sqlmodel import Session

from ..database import get_db
from ..models.audit_log import AuditLog
from ..models.common import as_utc
from ..models.user import User
from ..services import audit
from ..services.authz import get_club_or_404, get_current_user, require_admin

router = APIRouter(prefix="/clubs/{club_id}/audit-logs", tags=["audit"])


class AuditQuery(BaseModel):
    page_size: int = PydField(default=50, ge=1)
    page_token: Optional[str] = None
    event_category: Optional[str] = None
    result: Optional[str] = None
    correlation_id: Optional[str] = None
    created_after: Optional[datetime] = None
    created_before: Optional[datetime] = None


def _filters(
    event_category: Optional[str],
    result: Optional[str],
    correlation_id: Optional[str],
    created_after: Optional[datetime],
    created_before: Optional[datetime],
) -> audit.AuditFilters:
    return audit.AuditFilters(
        event_category=event_category,
        result=result,
        correlation_id=correlation_id,
        created_after=as_utc(created_after),
        created_before=as_utc(created_before),
    )


@router.get("", response_model=List[AuditLog])
def list_audit_logs(
    club_id: int,
    limit: int = 50,
    offset: int = 0,
    event_category: Optional[str] = None,
    result: Optional[str] = None,
    correlation_id: Optional[str] = None,
    created_after: Optional[datetime] = None,
    created_before: Optional[datetime] = None,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> List[AuditLog]:
    get_club_or_404(db, club_id)
    require_admin(db, club_id, user)
    filters = _filters(event_category, result, correlation_id, created_after, created_before)
    return audit.query_offset(db, club_id, filters, limit=limit, offset=offset)


@router.post("")
def page_audit_logs(
    club_id: int,
    payload: AuditQuery,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    """
    Cursor paging: pass back next_page_token until it comes back empty.
    """
    get_club_or_404(db, club_id)
    require_admin(db, club_id, user)
    filters = _filters(
        payload.event_category,
        payload.result,
        payload.correlation_id,
        payload.created_after,
        payload.created_before,
    )
    page = audit.query_cursor(db, club_id, filters, page_size=payload.page_size, page_token=payload.page_token)
    return {"items": [row.model_dump() for row in page.items], "next_page_token": page.next_page_token}
