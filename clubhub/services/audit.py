from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, List, Optional

from fastapi import HTTPException
from sqlmodel import Session, select

from ..models.audit_log import AuditLog
from ..models.common import utcnow

MAX_PAGE_SIZE = 200


class Category:
    CLUB = "CLUB"
    MEMBER = "MEMBER"
    EVENT = "EVENT"


@dataclass(frozen=True)
class AuditFilters:
    event_category: Optional[str] = None
    result: Optional[str] = None
    correlation_id: Optional[str] = None
    created_after: Optional[datetime] = None
    created_before: Optional[datetime] = None


@dataclass(frozen=True)
class AuditPage:
    items: List[AuditLog]
    next_page_token: str


def record(
    session: Session,
    *,
    club_id: int,
    action: str,
    event_category: str,
    actor_user_id: Optional[int] = None,
    target_type: Optional[str] = None,
    target_id: Any = None,
    status_code: int = 200,
    result: str = "SUCCESS",
    correlation_id: Optional[str] = None,
) -> AuditLog:
    """
    Stage an audit entry in the caller's transaction. The caller commits.
    """
    entry = AuditLog(
        club_id=club_id,
        action=action,
        event_category=event_category,
        target_type=target_type,
        target_id=None if target_id is None else str(target_id),
        actor_user_id=actor_user_id,
        result=result,
        status_code=status_code,
        correlation_id=correlation_id,
        created_at=utcnow(),
    )
    session.add(entry)
    return entry


def _clamp(value: int, low: int, high: int) -> int:
    return max(low, min(high, value))


def _filtered(club_id: int, filters: AuditFilters) -> Any:
    q = select(AuditLog).where(AuditLog.club_id == club_id)
    if filters.event_category:
        q = q.where(AuditLog.event_category == filters.event_category)
    if filters.result:
        q = q.where(AuditLog.result == filters.result)
    if filters.correlation_id:
        q = q.where(AuditLog.correlation_id == filters.correlation_id)
    if filters.created_after:
        q = q.where(AuditLog.created_at >= filters.created_after)
    if filters.created_before:
        q = q.where(AuditLog.created_at <= filters.created_before)
    return q


def query_offset(
    session: Session,
    club_id: int,
    filters: AuditFilters,
    *,
    limit: int = 50,
    offset: int = 0,
) -> List[AuditLog]:
    """
    Newest first, classic offset/limit paging.
    """
    limit = _clamp(limit, 1, MAX_PAGE_SIZE)
    offset = max(offset, 0)
    q = (
        _filtered(club_id, filters)
        .order_by(AuditLog.created_at.desc(), AuditLog.id.desc())
        .offset(offset)
        .limit(limit)
    )
    return list(session.exec(q).all())


def query_cursor(
    session: Session,
    club_id: int,
    filters: AuditFilters,
    *,
    page_size: int = 50,
    page_token: Optional[str] = None,
) -> AuditPage:
    """
    Newest first, keyed by the last id seen. Entries appended while a client
    pages get larger ids, so they never shift or duplicate later pages.
    An empty next_page_token means there is nothing more.
    """
    page_size = _clamp(page_size, 1, MAX_PAGE_SIZE)
    q = _filtered(club_id, filters)

    if page_token:
        try:
            last_id = int(page_token)
        except ValueError:
            raise HTTPException(status_code=400, detail="Invalid page_token")
        q = q.where(AuditLog.id < last_id)

    # one extra row tells us whether another page exists
    rows = list(session.exec(q.order_by(AuditLog.id.desc()).limit(page_size + 1)).all())
    items = rows[:page_size]
    next_token = str(items[-1].id) if len(rows) > page_size else ""
    return AuditPage(items=items, next_page_token=next_token)
