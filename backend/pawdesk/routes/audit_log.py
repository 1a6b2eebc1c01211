from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import field_validator
from sqlmodel import Session

from pawdesk.database import get_session
from pawdesk.services import audit_trail
from pawdesk.utils.api_models import CamelModel
from pawdesk.utils.request_guards import handled_unit_of_work

router = APIRouter()


class SessionTimestamp(CamelModel):
    action: str
    time: str


class SessionCompletionReport(CamelModel):
    """Posted by the live-session screen when the trainer ends a session."""

    session_id: Optional[int] = None
    start_time: str
    end_time: str
    duration_seconds: float
    timestamps: List[SessionTimestamp] = []

    @field_validator("duration_seconds")
    @classmethod
    def validate_duration(cls, v):
        if v < 0:
            raise ValueError("Duration cannot be negative")
        return v


class AuditEntryRead(CamelModel):
    id: int
    action: str
    entity_type: str
    entity_id: str
    summary: Optional[str] = None
    actor_id: Optional[int] = None
    created_at: datetime


class AuditEntryListResponse(CamelModel):
    entries: List[AuditEntryRead]


class SuccessResponse(CamelModel):
    success: bool = True


@router.post("/audit-log", response_model=SuccessResponse)
def report_session_completed(payload: SessionCompletionReport, session: Session = Depends(get_session)):
    """Record a completed live session in the audit trail"""
    with handled_unit_of_work(session, "POST /audit-log", "Failed to save audit log."):
        audit_trail.record(
            session,
            audit_trail.SESSION_COMPLETED,
            "session",
            payload.session_id if payload.session_id is not None else "unknown",
            f"Session completed: {payload.duration_seconds:g}s duration",
        )
    return SuccessResponse(success=True)


@router.get("/audit-log", response_model=AuditEntryListResponse)
def list_audit_log(
    entity_type: Optional[str] = Query(default=None, alias="entityType"),
    entity_id: Optional[str] = Query(default=None, alias="entityId"),
    action: Optional[str] = None,
    limit: int = 50,
    session: Session = Depends(get_session),
):
    """
    Read-only audit log for reporting views.

    Filters:
    - entityType / entityId (exact match)
    - action (exact match)
    - limit (default 50, max 200)
    """
    entries = audit_trail.list_entries(session, entity_type=entity_type, entity_id=entity_id, action=action, limit=limit)
    return AuditEntryListResponse(
        entries=[
            AuditEntryRead(
                id=e.id,
                action=e.action,
                entity_type=e.entity_type,
                entity_id=e.entity_id,
                summary=e.summary,
                actor_id=e.actor_id,
                created_at=e.created_at,
            )
            for e in entries
        ]
    )
