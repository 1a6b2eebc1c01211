"""Audit log model: append-only record of state-changing operations."""

from datetime import datetime
from typing import Optional

from sqlmodel import Field, SQLModel


class AuditLog(SQLModel, table=True):
    """One row per noteworthy mutation. Never updated or deleted."""

    __tablename__ = "audit_log"

    id: Optional[int] = Field(default=None, primary_key=True)
    action: str = Field(index=True)  # SESSION_CREATED_PACKAGE_RESERVED|SESSION_UPDATED|SESSION_DELETED|PACKAGE_CREATED|...
    entity_type: str = Field(index=True)  # session|package
    entity_id: str = Field(index=True)
    summary: Optional[str] = Field(default=None)
    actor_id: Optional[int] = Field(default=None)
    created_at: datetime = Field(default_factory=datetime.utcnow)
