"""
Audit trail: append-only log of state-changing operations.

Entries are added to the caller's unit of work and are committed (or rolled
back) together with the mutation they describe.
"""
import logging
from typing import List, Optional

from sqlmodel import Session, select

from pawdesk.models.audit_log import AuditLog

logger = logging.getLogger(__name__)

SESSION_CREATED_PACKAGE_RESERVED = "SESSION_CREATED_PACKAGE_RESERVED"
SESSION_UPDATED = "SESSION_UPDATED"
SESSION_DELETED = "SESSION_DELETED"
SESSION_STARTED = "SESSION_STARTED"
SESSION_COMPLETED = "SESSION_COMPLETED"
PACKAGE_CREATED = "PACKAGE_CREATED"
PACKAGE_TEMPLATE_CREATED = "PACKAGE_TEMPLATE_CREATED"
PACKAGE_UPDATED = "PACKAGE_UPDATED"
PACKAGE_DELETED = "PACKAGE_DELETED"

MAX_LIST_LIMIT = 200


def record(
    session: Session,
    action: str,
    entity_type: str,
    entity_id,
    summary: Optional[str] = None,
    actor_id: Optional[int] = None,
) -> AuditLog:
    """Append an audit entry to the current unit of work (no commit here)."""
    entry = AuditLog(
        action=action,
        entity_type=entity_type,
        entity_id=str(entity_id),
        summary=summary,
        actor_id=actor_id,
    )
    session.add(entry)
    logger.info("audit %s %s:%s %s", action, entity_type, entity_id, summary or "")
    return entry


def list_entries(
    session: Session,
    entity_type: Optional[str] = None,
    entity_id: Optional[str] = None,
    action: Optional[str] = None,
    limit: int = 50,
) -> List[AuditLog]:
    """Newest-first audit entries for reporting views. Limit is capped at 200."""
    query = select(AuditLog)
    if entity_type:
        query = query.where(AuditLog.entity_type == entity_type)
    if entity_id:
        query = query.where(AuditLog.entity_id == str(entity_id))
    if action:
        query = query.where(AuditLog.action == action)

    limit = max(1, min(limit, MAX_LIST_LIMIT))
    return list(session.exec(query.order_by(AuditLog.created_at.desc(), AuditLog.id.desc()).limit(limit)).all())
